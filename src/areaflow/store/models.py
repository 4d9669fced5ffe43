"""Database models for workflows, credentials and executions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a datetime read back from the database to aware UTC.

    SQLite drops tzinfo on round-trip, so naive values are treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ExecutionStatus(str, Enum):
    """Lifecycle states of an execution record."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class WorkflowRecord(Base):
    """A user-owned pairing of one trigger and one action.

    Attributes:
        id: Primary key
        owner_id: Owning user
        trigger_provider / trigger_id / trigger_config: Trigger capability and its config
        action_provider / action_id / action_config: Action capability and its config
        action_credential_id: Credential used by the action, if any
        is_active: True while the trigger holds a live registration
        last_run_at: Time of the last dispatched execution
        gmail_history_id: Last Gmail history id seen through push notifications
        gmail_watch_expiration: Expiry of the Gmail watch subscription
    """

    __tablename__ = "workflows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trigger_provider: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_id: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_config: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    action_provider: Mapped[str] = mapped_column(String(100), nullable=False)
    action_id: Mapped[str] = mapped_column(String(100), nullable=False)
    action_config: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    action_credential_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    gmail_history_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    gmail_watch_expiration: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<WorkflowRecord(id={self.id}, owner='{self.owner_id}', "
            f"trigger='{self.trigger_key}', action='{self.action_key}', active={self.is_active})>"
        )

    @property
    def trigger_key(self) -> str:
        return f"{self.trigger_provider}:{self.trigger_id}"

    @property
    def action_key(self) -> str:
        return f"{self.action_provider}:{self.action_id}"

    def to_dict(self) -> dict[str, Any]:
        """Convert the workflow to a dictionary."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "trigger": {
                "provider": self.trigger_provider,
                "id": self.trigger_id,
                "config": self.trigger_config,
            },
            "action": {
                "provider": self.action_provider,
                "id": self.action_id,
                "config": self.action_config,
                "credential_id": self.action_credential_id,
            },
            "is_active": self.is_active,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CredentialRecord(Base):
    """Per-user, per-provider authorization material plus the polling cursor.

    ``polling_state`` is provider-defined JSON and the only durable memory of
    which external items were already seen.
    """

    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    provider: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    client_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    client_secret: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_valid: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    polling_state: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<CredentialRecord(id={self.id}, owner='{self.owner_id}', "
            f"provider='{self.provider}', valid={self.is_valid})>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary without secret material."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "provider": self.provider,
            "name": self.name,
            "is_valid": self.is_valid,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ExecutionRecord(Base):
    """One dispatched trigger event and the durable run executing its action."""

    __tablename__ = "executions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    workflow_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    owner_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    durable_run_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    durable_run_correlation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ExecutionStatus.RUNNING.value, nullable=False
    )
    trigger_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    result: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True, default=None)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    def __repr__(self) -> str:
        return (
            f"<ExecutionRecord(id={self.id}, workflow={self.workflow_id}, "
            f"run='{self.durable_run_id}', status='{self.status}')>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the execution to a dictionary."""
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "owner_id": self.owner_id,
            "durable_run_id": self.durable_run_id,
            "durable_run_correlation": self.durable_run_correlation,
            "status": self.status,
            "trigger_data": self.trigger_data,
            "result": self.result,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
