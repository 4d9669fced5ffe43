"""Tests for polling cursor helpers."""

from datetime import datetime, timezone

from areaflow.engine.cursors import (
    Edge,
    cap_ids,
    collect_until,
    crossed_upward,
    edge,
    max_key,
    new_ids,
    newer_than,
    timestamp_ms,
)


class TestMonotonicCursor:
    def test_timestamp_ms(self):
        assert timestamp_ms(None) == 0
        assert timestamp_ms("1970-01-01T00:00:01Z") == 1000
        assert timestamp_ms(datetime(1970, 1, 1, 0, 0, 2)) == 2000
        assert timestamp_ms(datetime(1970, 1, 1, 0, 0, 3, tzinfo=timezone.utc)) == 3000

    def test_newer_than_is_strict_and_oldest_first(self):
        items = [{"t": 5}, {"t": 3}, {"t": 9}, {"t": 7}]
        result = newer_than(items, lambda item: item["t"], 5)
        assert [item["t"] for item in result] == [7, 9]

    def test_max_key(self):
        assert max_key([{"t": 1}, {"t": 4}], lambda item: item["t"], 0) == 4
        assert max_key([], lambda item: item["t"], 42) == 42


class TestIdSetCursor:
    def test_new_ids_preserves_order(self):
        assert new_ids(["d", "c", "b", "a"], ["b", "a"]) == ["d", "c"]
        assert new_ids(["a"], []) == ["a"]

    def test_cap_ids_keeps_most_recent(self):
        assert cap_ids(["5", "4", "3", "2"], 2) == ["5", "4"]

    def test_collect_until_marker(self):
        items = ["new2", "new1", "seen", "old"]
        assert collect_until(items, lambda item: item, "seen") == ["new1", "new2"]
        assert collect_until(items, lambda item: item, "missing") == list(reversed(items))


class TestFlagCursor:
    def test_edge(self):
        assert edge(False, True) is Edge.RISING
        assert edge(True, False) is Edge.FALLING
        assert edge(True, True) is Edge.NONE
        assert edge(False, False) is Edge.NONE

    def test_crossed_upward_only_once(self):
        assert crossed_upward(90, 100, 100) is True
        assert crossed_upward(100, 150, 100) is False
        assert crossed_upward(0, 50, 100) is False
