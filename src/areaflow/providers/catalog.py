"""Assembly of every provider's triggers, actions, polling adapters and token refreshers."""

from __future__ import annotations

from dataclasses import dataclass, field

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..core.config import EngineConfig, HTTPClientConfig
from ..core.logger import get_logger
from ..engine.polling import PollingAdapter
from ..registry.capabilities import Trigger, TriggerType
from ..registry.registries import ActionRegistry, TriggerRegistry
from . import (
    discord,
    github,
    gmail,
    google_calendar,
    google_sheets,
    scheduler,
    spotify,
    telegram,
    twitch,
    webhook,
    youtube,
)
from .common.oauth import GOOGLE_TOKEN_URL, SPOTIFY_TOKEN_URL, TWITCH_TOKEN_URL, OAuthRefresher

logger = get_logger("providers.catalog")


@dataclass
class ProviderCatalog:
    """Everything the application wires from the provider packages."""

    triggers: TriggerRegistry
    actions: ActionRegistry
    adapters: list[PollingAdapter] = field(default_factory=list)

    def adapter_for(self, provider: str) -> PollingAdapter | None:
        return next((a for a in self.adapters if a.provider == provider), None)

    def self_firing_triggers(self) -> list[scheduler.SelfFiringTrigger]:
        return [t for t in self.triggers.get_all() if isinstance(t, scheduler.SelfFiringTrigger)]


def build_refreshers(http_config: HTTPClientConfig | None = None) -> dict[str, OAuthRefresher]:
    """Token refreshers keyed by credential provider; Google apps share one endpoint."""
    return {
        "spotify": OAuthRefresher(
            "spotify", SPOTIFY_TOKEN_URL, basic_auth=True, config=http_config
        ),
        "twitch": OAuthRefresher("twitch", TWITCH_TOKEN_URL, config=http_config),
        "gmail": OAuthRefresher("gmail", GOOGLE_TOKEN_URL, config=http_config),
        "youtube": OAuthRefresher("youtube", GOOGLE_TOKEN_URL, config=http_config),
        "google-calendar": OAuthRefresher(
            "google-calendar", GOOGLE_TOKEN_URL, config=http_config
        ),
        "google_sheets": OAuthRefresher("google_sheets", GOOGLE_TOKEN_URL, config=http_config),
    }


def _by_provider(triggers: list[Trigger], provider: str) -> list[Trigger]:
    return [trigger for trigger in triggers if trigger.provider == provider]


def build_catalog(
    config: EngineConfig | None = None,
    *,
    job_scheduler: AsyncIOScheduler | None = None,
    gmail_watch: gmail.GmailWatchService | None = None,
) -> ProviderCatalog:
    """Instantiate and register every provider capability.

    Args:
        config: Engine configuration (defaults when None)
        job_scheduler: Scheduler hosting cron trigger jobs
        gmail_watch: Push subscription service for the receive-email trigger
    """
    config = config or EngineConfig()
    http_config = config.http
    id_cap = config.polling.id_set_cap

    triggers: list[Trigger] = [
        gmail.ReceiveEmailTrigger(watch=gmail_watch),
        spotify.NewTrackPlayedTrigger(),
        spotify.NewLikedSongTrigger(),
        twitch.StreamStartedTrigger(),
        twitch.StreamEndedTrigger(),
        twitch.NewFollowerTrigger(),
        twitch.ViewerCountThresholdTrigger(),
        github.NewStarTrigger(),
        github.NewIssueTrigger(),
        github.PushTrigger(),
        github.NewPullRequestTrigger(),
        github.IssueLabeledTrigger(),
        github.PullRequestReviewRequestedTrigger(),
        github.ReleasePublishedTrigger(),
        google_calendar.NewEventTrigger(),
        google_calendar.EventCancelledTrigger(),
        youtube.NewLikedVideoTrigger(),
        youtube.NewVideoFromChannelTrigger(),
        telegram.OnMessageTrigger(),
        telegram.OnCommandTrigger(),
        telegram.OnMessageEditedTrigger(),
        telegram.OnStartDMTrigger(),
        telegram.OnPinnedMessageTrigger(),
        telegram.OnVideoMessageTrigger(),
        telegram.OnVoiceMessageTrigger(),
        scheduler.CronTrigger(scheduler=job_scheduler, timezone_name=config.timezone),
        scheduler.OnActivationTrigger(),
        webhook.IncomingWebhookTrigger(),
    ]
    actions = [
        gmail.SendEmailAction(),
        gmail.ReadEmailAction(),
        google_calendar.CreateEventAction(),
        google_calendar.QuickAddAction(),
        google_sheets.AddRowAction(),
        google_sheets.CreateSpreadsheetAction(),
        google_sheets.WriteInCellAction(),
        google_sheets.CreateSheetAction(),
        google_sheets.ClearInRangeAction(),
        google_sheets.DuplicateSheetAction(),
        google_sheets.FindReplaceAction(),
        google_sheets.SortRangeAction(),
        spotify.PlayMusicAction(),
        spotify.AddToPlaylistAction(),
        spotify.CreatePlaylistAction(),
        spotify.SkipTrackAction(),
        spotify.PausePlaybackAction(),
        twitch.UpdateStreamTitleAction(),
        twitch.SendChatMessageAction(),
        twitch.CreateStreamMarkerAction(),
        github.CreateIssueAction(),
        github.AddCommentAction(),
        github.CloseIssueAction(),
        github.AddLabelAction(),
        github.StarRepositoryAction(),
        github.CreatePullRequestAction(),
        github.MergePullRequestAction(),
        github.CreateRepositoryAction(),
        youtube.CreatePlaylistAction(),
        youtube.RateVideoAction(),
        youtube.CommentVideoAction(),
        telegram.SendMessageAction(),
        telegram.SendPhotoAction(),
        telegram.PinMessageAction(),
        telegram.KickMemberAction(),
        telegram.UnbanMemberAction(),
        discord.SendWebhookAction(),
    ]

    trigger_registry = TriggerRegistry()
    for trigger in triggers:
        trigger_registry.register(trigger)
    action_registry = ActionRegistry()
    for action in actions:
        action_registry.register(action)

    oauth_apps = config.oauth_apps
    adapters: list[PollingAdapter] = [
        gmail.GmailPollingAdapter(_by_provider(triggers, "gmail"), http_config, oauth_apps),
        spotify.SpotifyPollingAdapter(
            _by_provider(triggers, "spotify"), http_config, oauth_apps, id_cap=id_cap
        ),
        twitch.TwitchPollingAdapter(
            _by_provider(triggers, "twitch"), http_config, oauth_apps, id_cap=id_cap
        ),
        github.GitHubPollingAdapter(
            [t for t in _by_provider(triggers, "github") if t.trigger_type is TriggerType.POLLING],
            http_config,
            oauth_apps,
        ),
        youtube.YouTubePollingAdapter(_by_provider(triggers, "youtube"), http_config, oauth_apps),
        google_calendar.GoogleCalendarPollingAdapter(
            _by_provider(triggers, "google-calendar"), http_config, oauth_apps
        ),
        telegram.TelegramPollingAdapter(_by_provider(triggers, "telegram"), http_config),
    ]

    logger.info(
        "Loaded %d triggers and %d actions across %d providers",
        len(trigger_registry),
        len(action_registry),
        len(set(trigger_registry.providers()) | set(action_registry.providers())),
    )
    return ProviderCatalog(trigger_registry, action_registry, adapters)
