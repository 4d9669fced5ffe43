"""Shared fixtures for the areaflow test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from areaflow.core import HTTPClientConfig, RetryPolicyConfig
from areaflow.registry import ActionContext
from areaflow.store import AutomationStore, CredentialRecord, DatabaseManager


# Configure anyio to only use asyncio backend (skip trio tests)
@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture
def db():
    """In-memory SQLite database with all tables created."""
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def store(db):
    return AutomationStore(db)


@pytest.fixture
def http_config():
    """HTTP settings without retries so mocked responses are consumed once."""
    return HTTPClientConfig(timeout=5.0, retry=RetryPolicyConfig(max_attempts=1))


@pytest.fixture
def make_workflow(store):
    """Insert a workflow with sensible defaults."""

    def _make(**overrides):
        values = {
            "owner_id": "user-1",
            "name": "test workflow",
            "trigger_provider": "github",
            "trigger_id": "new_star",
            "trigger_config": {"owner": "octo", "repo": "hello"},
            "action_provider": "discord",
            "action_id": "send-webhook",
            "action_config": {
                "webhookUrl": "https://discord.com/api/webhooks/1/abc",
                "content": "hi",
            },
            "is_active": True,
        }
        values.update(overrides)
        return store.insert_workflow(**values)

    return _make


@pytest.fixture
def make_credential(store):
    """Insert a credential with a token valid for an hour."""

    def _make(**overrides):
        values = {
            "owner_id": "user-1",
            "provider": "github",
            "access_token": "token",
            "refresh_token": "refresh",
            "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        values.update(overrides)
        return store.insert_credential(**values)

    return _make


@pytest.fixture
def action_context(http_config):
    """Build an ActionContext carrying a credential with an access token."""

    def _make(provider="github", access_token="tok", trigger_data=None, client_id=None):
        credential = CredentialRecord(
            id=1, owner_id="user-1", provider=provider, access_token=access_token
        )
        return ActionContext(
            workflow_id=1,
            owner_id="user-1",
            trigger_data=trigger_data or {},
            credential=credential,
            http_config=http_config,
            client_id=client_id,
        )

    return _make
