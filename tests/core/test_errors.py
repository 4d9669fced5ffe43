"""Tests for the exception taxonomy."""

from areaflow.core import (
    AutomationError,
    CredentialError,
    ExternalProviderError,
    InvalidStateError,
    NotActiveError,
    NotFoundError,
    UnsupportedActionError,
    ValidationError,
)


class TestErrors:
    def test_every_error_is_an_automation_error(self):
        for error in (
            ValidationError("bad"),
            NotFoundError("workflow", 1),
            NotActiveError(1),
            CredentialError("missing"),
            ExternalProviderError("github", "boom"),
            UnsupportedActionError("x", "y"),
        ):
            assert isinstance(error, AutomationError)

    def test_not_found_message(self):
        error = NotFoundError("workflow", 42)
        assert str(error) == "Workflow not found: 42"
        assert error.identifier == 42

    def test_not_active_is_invalid_state(self):
        error = NotActiveError(7)
        assert isinstance(error, InvalidStateError)
        assert error.workflow_id == 7

    def test_external_provider_error_keeps_status(self):
        error = ExternalProviderError("spotify", "rate limited", status_code=429)
        assert error.status_code == 429
        assert str(error) == "spotify API error: rate limited"

    def test_validation_error_details(self):
        error = ValidationError("bad", field="owner", capability="github:new_star")
        assert error.field == "owner"
        assert error.details == []
