"""Closed catalog of action kinds the durable backend can execute."""

from __future__ import annotations

from enum import Enum

from ..core.errors import UnsupportedActionError


class ActionKind(str, Enum):
    """Every action the engine knows how to run, keyed ``provider:id``."""

    DISCORD_SEND_WEBHOOK = "discord:send-webhook"

    GITHUB_CREATE_ISSUE = "github:create_issue"
    GITHUB_ADD_COMMENT = "github:add_comment"
    GITHUB_CLOSE_ISSUE = "github:close_issue"
    GITHUB_ADD_LABEL = "github:add_label"
    GITHUB_STAR_REPOSITORY = "github:star_repository"
    GITHUB_CREATE_PULL_REQUEST = "github:create_pull_request"
    GITHUB_MERGE_PULL_REQUEST = "github:merge_pull_request"
    GITHUB_CREATE_REPOSITORY = "github:create_repository"

    GMAIL_SEND_EMAIL = "gmail:send-email"
    GMAIL_READ_EMAIL = "gmail:read-email"

    GOOGLE_CALENDAR_CREATE_EVENT = "google-calendar:create-event"
    GOOGLE_CALENDAR_QUICK_ADD = "google-calendar:quick-add"

    GOOGLE_SHEETS_ADD_ROW = "google_sheets:add_row"
    GOOGLE_SHEETS_CREATE_SPREADSHEET = "google_sheets:create_spreadsheet"
    GOOGLE_SHEETS_WRITE_IN_CELL = "google_sheets:write_in_cell"
    GOOGLE_SHEETS_CREATE_SHEET = "google_sheets:create_sheet"
    GOOGLE_SHEETS_CLEAR_IN_RANGE = "google_sheets:clear_in_range"
    GOOGLE_SHEETS_DUPLICATE_SHEET = "google_sheets:duplicate_sheet"
    GOOGLE_SHEETS_FIND_TO_REPLACE = "google_sheets:find_to_replace"
    GOOGLE_SHEETS_SORT_DATA_IN_RANGE = "google_sheets:sort_data_in_range"

    SPOTIFY_PLAY_MUSIC = "spotify:play_music"
    SPOTIFY_ADD_TO_PLAYLIST = "spotify:add_to_playlist"
    SPOTIFY_CREATE_PLAYLIST = "spotify:create_playlist"
    SPOTIFY_SKIP_TRACK = "spotify:skip_track"
    SPOTIFY_PAUSE_PLAYBACK = "spotify:pause_playback"

    TELEGRAM_SEND_MESSAGE = "telegram:send-message"
    TELEGRAM_SEND_PHOTO = "telegram:send-photo"
    TELEGRAM_PIN_MESSAGE = "telegram:pin-message"
    TELEGRAM_KICK_MEMBER = "telegram:kick-member"
    TELEGRAM_UNBAN_MEMBER = "telegram:unban-member"

    TWITCH_UPDATE_STREAM_TITLE = "twitch:update_stream_title"
    TWITCH_SEND_CHAT_MESSAGE = "twitch:send_chat_message"
    TWITCH_CREATE_STREAM_MARKER = "twitch:create_stream_marker"

    YOUTUBE_CREATE_PLAYLIST = "youtube:create_playlist"
    YOUTUBE_RATE_VIDEO = "youtube:rate_video"
    YOUTUBE_COMMENT_VIDEO = "youtube:comment_video"

    @property
    def provider(self) -> str:
        return self.value.split(":", 1)[0]

    @property
    def action_id(self) -> str:
        return self.value.split(":", 1)[1]

    @classmethod
    def resolve(cls, provider: str, action_id: str) -> ActionKind:
        """Resolve a ``(provider, id)`` pair to its action kind.

        Raises:
            UnsupportedActionError: If the pair is outside the catalog
        """
        try:
            return cls(f"{provider}:{action_id}")
        except ValueError as exc:
            raise UnsupportedActionError(provider, action_id) from exc
