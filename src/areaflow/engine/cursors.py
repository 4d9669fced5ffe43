"""Helpers for the three polling cursor shapes.

- monotonic: a numeric id or timestamp; newer items compare strictly greater;
- id-set: the most recent ids seen, new items found by set difference;
- flag+value: a boolean state plus a last value, firing only on transitions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

T = TypeVar("T")


def timestamp_ms(value: str | datetime | None) -> int:
    """Convert an ISO-8601 string or datetime to epoch milliseconds (0 for None)."""
    if value is None:
        return 0
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def newer_than(items: Iterable[T], key: Callable[[T], int], cursor: int) -> list[T]:
    """Items strictly newer than a monotonic cursor, oldest first."""
    return sorted((item for item in items if key(item) > cursor), key=key)


def max_key(items: Iterable[T], key: Callable[[T], int], default: int) -> int:
    return max((key(item) for item in items), default=default)


def new_ids(current: Sequence[str], previous: Iterable[str]) -> list[str]:
    """Ids in ``current`` that were not seen before, preserving ``current`` order."""
    seen = set(previous)
    return [item for item in current if item not in seen]


def cap_ids(ids: Sequence[str], cap: int) -> list[str]:
    """Keep the ``cap`` most recent ids (newest first)."""
    return list(ids[:cap])


def collect_until(items: Sequence[T], key: Callable[[T], Any], marker: Any) -> list[T]:
    """Take newest-first items until the previously seen marker, returned oldest first."""
    collected: list[T] = []
    for item in items:
        if key(item) == marker:
            break
        collected.append(item)
    collected.reverse()
    return collected


class Edge(str, Enum):
    """Transition of a boolean flag between two observations."""

    RISING = "rising"
    FALLING = "falling"
    NONE = "none"


def edge(previous: bool, current: bool) -> Edge:
    if current and not previous:
        return Edge.RISING
    if previous and not current:
        return Edge.FALLING
    return Edge.NONE


def crossed_upward(previous: int, current: int, threshold: int) -> bool:
    """True only on the observation where a value reaches the threshold from below."""
    return current >= threshold and previous < threshold
