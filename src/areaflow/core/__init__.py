"""Core modules: configuration, logging and the error taxonomy."""

from .config import (
    DatabaseConfig,
    DurableBackendConfig,
    EngineConfig,
    GmailWatchConfig,
    HTTPClientConfig,
    LoggingConfig,
    OAuthAppConfig,
    PollingConfig,
    RetryPolicyConfig,
)
from .errors import (
    AutomationError,
    CredentialError,
    ExternalProviderError,
    InvalidStateError,
    NotActiveError,
    NotFoundError,
    RegistrationError,
    UnsupportedActionError,
    ValidationError,
)
from .logger import get_logger, setup_logging

__all__ = [
    "AutomationError",
    "CredentialError",
    "DatabaseConfig",
    "DurableBackendConfig",
    "EngineConfig",
    "ExternalProviderError",
    "GmailWatchConfig",
    "HTTPClientConfig",
    "InvalidStateError",
    "LoggingConfig",
    "NotActiveError",
    "NotFoundError",
    "OAuthAppConfig",
    "PollingConfig",
    "RegistrationError",
    "RetryPolicyConfig",
    "UnsupportedActionError",
    "ValidationError",
    "get_logger",
    "setup_logging",
]
