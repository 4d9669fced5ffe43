"""Exception taxonomy for the automation engine."""

from __future__ import annotations

from typing import Any


class AutomationError(Exception):
    """Base exception for all automation engine errors."""

    pass


class ValidationError(AutomationError):
    """Raised when a trigger or action configuration is invalid."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        capability: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            field: Name of the first failing config field, if known
            capability: ``provider:id`` key of the capability being validated
            details: Per-field error entries suitable for rendering in a form
        """
        self.field = field
        self.capability = capability
        self.details = details or []
        super().__init__(message)


class NotFoundError(AutomationError):
    """Raised when a workflow, credential or capability does not exist."""

    def __init__(self, kind: str, identifier: Any) -> None:
        """Initialize the exception.

        Args:
            kind: What was looked up (workflow, credential, trigger, action)
            identifier: The identifier that was not found
        """
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found: {identifier}")


class InvalidStateError(AutomationError):
    """Raised when a lifecycle transition is not allowed in the current state."""

    def __init__(self, message: str, workflow_id: int | None = None) -> None:
        self.workflow_id = workflow_id
        super().__init__(message)


class NotActiveError(InvalidStateError):
    """Raised when an execution is requested for an inactive workflow."""

    def __init__(self, workflow_id: int) -> None:
        super().__init__(f"Workflow {workflow_id} is not active", workflow_id=workflow_id)


class CredentialError(AutomationError):
    """Raised when a credential is missing, invalid or cannot be refreshed."""

    def __init__(self, message: str, credential_id: int | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            credential_id: Credential the error refers to
        """
        self.credential_id = credential_id
        super().__init__(message)


class ExternalProviderError(AutomationError):
    """Raised when a third-party API call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            provider: Provider whose API failed
            message: Error message
            status_code: HTTP status code, when the failure was an HTTP response
            original_error: Underlying exception
        """
        self.provider = provider
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(f"{provider} API error: {message}")


class RegistrationError(AutomationError):
    """Raised when trigger-side external setup (e.g. a push subscription) fails."""

    def __init__(
        self,
        message: str,
        capability: str | None = None,
        workflow_id: int | None = None,
    ) -> None:
        self.capability = capability
        self.workflow_id = workflow_id
        super().__init__(message)


class UnsupportedActionError(AutomationError):
    """Raised when an action is outside the supported action catalog."""

    def __init__(self, provider: str, action_id: str) -> None:
        self.provider = provider
        self.action_id = action_id
        super().__init__(f"Unsupported action: {provider}:{action_id}")
