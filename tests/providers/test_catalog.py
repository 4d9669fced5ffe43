"""Tests for provider catalog assembly."""

from unittest.mock import MagicMock

import pytest

from areaflow.core import EngineConfig, PollingConfig
from areaflow.providers.catalog import build_catalog, build_refreshers
from areaflow.providers.scheduler import CronTrigger, OnActivationTrigger
from areaflow.registry import ActionKind, TriggerType


@pytest.fixture(scope="module")
def catalog():
    return build_catalog()


class TestBuildCatalog:
    def test_every_action_kind_is_registered(self, catalog):
        for kind in ActionKind:
            assert catalog.actions.has(kind.provider, kind.action_id), kind

        assert len(catalog.actions) == len(ActionKind)

    def test_trigger_inventory(self, catalog):
        expected = {
            "gmail": ["receive-email"],
            "spotify": ["new_liked_song", "new_track_played"],
            "twitch": ["new_follower", "stream_ended", "stream_started", "viewer_count_threshold"],
            "github": [
                "issue_labeled",
                "new_issue",
                "new_pull_request",
                "new_star",
                "pr_review_requested",
                "push",
                "release_published",
            ],
            "google-calendar": ["event-cancelled", "new-event"],
            "youtube": ["new_liked_video", "new_video_from_channel"],
            "telegram": [
                "on-command",
                "on-message",
                "on-message-edited",
                "on-pinned-message",
                "on-start-dm",
                "on-video-message",
                "on-voice-message",
            ],
            "scheduler": ["cron", "on-activation"],
            "webhook": ["incoming-webhook"],
        }
        for provider, trigger_ids in expected.items():
            found = sorted(t.id for t in catalog.triggers.get_by_provider(provider))
            assert found == trigger_ids

    def test_adapters_cover_polling_providers(self, catalog):
        providers = [adapter.provider for adapter in catalog.adapters]
        assert providers == [
            "gmail",
            "spotify",
            "twitch",
            "github",
            "youtube",
            "google-calendar",
            "telegram",
        ]

    def test_github_adapter_only_sees_polling_triggers(self, catalog):
        adapter = catalog.adapter_for("github")
        assert [t.id for t in adapter.triggers] == ["new_star"]
        assert all(t.trigger_type is TriggerType.POLLING for t in adapter.triggers)

    def test_google_calendar_adapter_sees_both_triggers(self, catalog):
        adapter = catalog.adapter_for("google-calendar")
        assert sorted(t.id for t in adapter.triggers) == ["event-cancelled", "new-event"]

    def test_unknown_adapter(self, catalog):
        assert catalog.adapter_for("discord") is None

    def test_self_firing_triggers(self, catalog):
        kinds = {type(t) for t in catalog.self_firing_triggers()}
        assert kinds == {CronTrigger, OnActivationTrigger}

    def test_id_cap_reaches_adapters(self):
        config = EngineConfig(polling=PollingConfig(id_set_cap=5))
        catalog = build_catalog(config)
        assert catalog.adapter_for("spotify").id_cap == 5
        assert catalog.adapter_for("twitch").id_cap == 5

    def test_cron_uses_given_scheduler(self):
        scheduler = MagicMock()
        catalog = build_catalog(job_scheduler=scheduler)
        cron = catalog.triggers.get("scheduler", "cron")
        assert cron.scheduler is scheduler

    def test_descriptors_serialize(self, catalog):
        descriptors = catalog.triggers.get_all_metadata("github")
        keys = [d.key for d in descriptors]
        assert keys[:4] == [
            "github:issue_labeled",
            "github:new_issue",
            "github:new_pull_request",
            "github:new_star",
        ]
        data = descriptors[3].to_dict()
        assert data["requiresCredentials"] is True
        assert "owner" in data["configSchema"]["properties"]


class TestRefreshers:
    def test_oauth_providers(self):
        refreshers = build_refreshers()
        assert sorted(refreshers) == [
            "gmail",
            "google-calendar",
            "google_sheets",
            "spotify",
            "twitch",
            "youtube",
        ]
        google = {refreshers[name].token_url for name in ("gmail", "youtube", "google-calendar")}
        assert google == {refreshers["google_sheets"].token_url}
