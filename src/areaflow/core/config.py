"""Engine configuration.

One pydantic-settings ``EngineConfig`` groups the sections every component
reads: logging, database, polling cadence, durable run policy, Gmail watch,
OAuth app keys and provider HTTP behaviour. Values come from YAML, ``.env``
and ``AREAFLOW_*`` environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DOTENV_LOADED = False


def _load_env_once() -> None:
    """Load environment variables from a .env file exactly once."""

    global _DOTENV_LOADED
    if not _DOTENV_LOADED:
        load_dotenv()
        _DOTENV_LOADED = True


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in configuration data."""

    if isinstance(data, str):
        return os.path.expandvars(data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


class RetryPolicyConfig(BaseModel):
    """Configuration for retry behaviour with exponential backoff."""

    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Maximum number of attempts (including the first one)",
    )
    backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Initial delay in seconds before retrying",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied to the backoff delay after each failure",
    )
    max_backoff_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Maximum delay cap between retries",
    )

    def delay_for(self, attempt: int) -> float:
        """Return the delay to wait after the given (1-based) failed attempt."""
        delay = self.backoff_seconds * (self.backoff_multiplier ** max(attempt - 1, 0))
        return min(delay, self.max_backoff_seconds)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    log_file: str | None = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10485760, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")
    library_level: str = Field(
        default="WARNING",
        description="Level for chatty dependencies (httpx, apscheduler, sqlalchemy)",
    )

    @field_validator("level", "library_level")
    @classmethod
    def normalise_level(cls, value: str) -> str:
        level = (value or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


class DatabaseConfig(BaseModel):
    """Relational store settings."""

    url: str = Field(default="sqlite:///./areaflow.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL statements (debugging)")


class PollingConfig(BaseModel):
    """Configuration for the per-provider polling reconciliation loops."""

    enabled: bool = Field(default=True, description="Start polling loops with the app")
    interval_seconds: float = Field(
        default=20.0, gt=0.0, description="Default tick interval for every provider"
    )
    provider_intervals: dict[str, float] = Field(
        default_factory=lambda: {"gmail": 5.0, "telegram": 2.0},
        description="Per-provider tick interval overrides in seconds",
    )
    providers: list[str] | None = Field(
        default=None,
        description="Restrict polling to these providers (None polls every provider)",
    )
    id_set_cap: int = Field(
        default=50,
        ge=1,
        description="Maximum number of ids kept in id-set cursors",
    )

    def interval_for(self, provider: str) -> float:
        """Return the tick interval for a provider."""
        return float(self.provider_intervals.get(provider, self.interval_seconds))

    def is_enabled_for(self, provider: str) -> bool:
        """Check whether the polling loop for a provider should run."""
        if not self.enabled:
            return False
        return self.providers is None or provider in self.providers


class DurableBackendConfig(BaseModel):
    """Configuration for the durable execution backend."""

    task_queue: str = Field(default="automation-workflows", description="Task queue name")
    run_timeout_seconds: float = Field(
        default=600.0, gt=0.0, description="Timeout for a whole durable run"
    )
    attempt_timeout_seconds: float = Field(
        default=300.0, gt=0.0, description="Timeout for a single action attempt"
    )
    retry: RetryPolicyConfig = Field(
        default_factory=RetryPolicyConfig, description="Retry policy for action attempts"
    )
    finished_runs_retained: int = Field(
        default=1000,
        ge=0,
        description="Terminal run outcomes kept in memory for get_run_result lookups",
    )


class GmailWatchConfig(BaseModel):
    """Gmail push-notification (watch) settings."""

    pubsub_topic: str | None = Field(
        default=None, description="Fully qualified Pub/Sub topic receiving Gmail notifications"
    )
    label_ids: list[str] = Field(
        default_factory=lambda: ["INBOX"], description="Labels watched when none are configured"
    )
    renewal_interval_hours: float = Field(
        default=6.0, gt=0.0, description="How often the renewal sweep runs"
    )
    renewal_window_hours: float = Field(
        default=24.0, gt=0.0, description="Renew watches expiring within this window"
    )


class OAuthAppConfig(BaseModel):
    """OAuth application keys used when a credential carries none."""

    client_id: str | None = Field(default=None, description="OAuth client id")
    client_secret: str | None = Field(default=None, description="OAuth client secret")


class HTTPClientConfig(BaseModel):
    """Configuration for provider HTTP clients."""

    timeout: float = Field(default=15.0, gt=0.0, description="Request timeout in seconds")
    retry: RetryPolicyConfig = Field(
        default_factory=RetryPolicyConfig, description="Retry policy for provider requests"
    )


class EngineConfig(BaseSettings):
    """Main configuration for the areaflow automation engine."""

    model_config = SettingsConfigDict(
        env_prefix="AREAFLOW_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    polling: PollingConfig = Field(
        default_factory=PollingConfig, description="Polling loop configuration"
    )
    durable: DurableBackendConfig = Field(
        default_factory=DurableBackendConfig, description="Durable backend configuration"
    )
    gmail_watch: GmailWatchConfig = Field(
        default_factory=GmailWatchConfig, description="Gmail watch configuration"
    )
    oauth_apps: dict[str, OAuthAppConfig] = Field(
        default_factory=dict, description="OAuth application keys keyed by provider"
    )
    http: HTTPClientConfig = Field(
        default_factory=HTTPClientConfig, description="Provider HTTP client configuration"
    )
    timezone: str | None = Field(default=None, description="Timezone for cron triggers")

    @model_validator(mode="after")
    def validate_windows(self) -> EngineConfig:
        if self.durable.attempt_timeout_seconds > self.durable.run_timeout_seconds:
            raise ValueError("attempt_timeout_seconds cannot exceed run_timeout_seconds")
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load a YAML config file, expanding ${VAR} references.

        ``AREAFLOW_*`` environment variables fill in whatever the file leaves unset.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid YAML or not a mapping
        """
        _load_env_once()
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError(f"{config_path} must contain a mapping of config sections")
        return cls(**_expand_env_vars(raw))

    def to_yaml(self, path: str | Path) -> None:
        """Write the configuration to a YAML file."""

        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(self.model_dump(mode="json"), handle, sort_keys=False)
