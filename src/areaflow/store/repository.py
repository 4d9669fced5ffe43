"""Relational store for workflows, credentials and executions.

Every write targets exactly one row; no cross-table transactions are needed.
Returned records are detached from their session and safe to read after the
call returns.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, select

from ..core.logger import get_logger
from .database import DatabaseManager
from .models import CredentialRecord, ExecutionRecord, WorkflowRecord, utcnow

logger = get_logger("store.repository")


class AutomationStore:
    """Batched select / insert / update-by-id / delete over the three tables."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def insert_workflow(self, **values: Any) -> WorkflowRecord:
        with self.db.get_session() as session:
            workflow = WorkflowRecord(**values)
            session.add(workflow)
            session.flush()
            logger.debug("Inserted workflow %s for owner %s", workflow.id, workflow.owner_id)
            return workflow

    def get_workflow(self, workflow_id: int) -> WorkflowRecord | None:
        with self.db.get_session() as session:
            return session.get(WorkflowRecord, workflow_id)

    def get_workflows_by_ids(self, workflow_ids: Iterable[int]) -> list[WorkflowRecord]:
        ids = list(set(workflow_ids))
        if not ids:
            return []
        with self.db.get_session() as session:
            stmt = select(WorkflowRecord).where(WorkflowRecord.id.in_(ids))
            return list(session.scalars(stmt))

    def list_workflows(self, owner_id: str) -> list[WorkflowRecord]:
        with self.db.get_session() as session:
            stmt = (
                select(WorkflowRecord)
                .where(WorkflowRecord.owner_id == owner_id)
                .order_by(WorkflowRecord.id)
            )
            return list(session.scalars(stmt))

    def list_active_workflows(
        self, provider: str | None = None, trigger_id: str | None = None
    ) -> list[WorkflowRecord]:
        with self.db.get_session() as session:
            stmt = select(WorkflowRecord).where(WorkflowRecord.is_active.is_(True))
            if provider is not None:
                stmt = stmt.where(WorkflowRecord.trigger_provider == provider)
            if trigger_id is not None:
                stmt = stmt.where(WorkflowRecord.trigger_id == trigger_id)
            return list(session.scalars(stmt.order_by(WorkflowRecord.id)))

    def update_workflow(self, workflow_id: int, **patch: Any) -> WorkflowRecord | None:
        with self.db.get_session() as session:
            workflow = session.get(WorkflowRecord, workflow_id)
            if workflow is None:
                return None
            for key, value in patch.items():
                setattr(workflow, key, value)
            session.flush()
            return workflow

    def delete_workflow(self, workflow_id: int) -> bool:
        with self.db.get_session() as session:
            result = session.execute(delete(WorkflowRecord).where(WorkflowRecord.id == workflow_id))
            return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def insert_credential(self, **values: Any) -> CredentialRecord:
        with self.db.get_session() as session:
            credential = CredentialRecord(**values)
            session.add(credential)
            session.flush()
            return credential

    def get_credential(self, credential_id: int) -> CredentialRecord | None:
        with self.db.get_session() as session:
            return session.get(CredentialRecord, credential_id)

    def list_credentials(
        self,
        provider: str,
        owner_ids: Iterable[str],
        extra_ids: Iterable[int] = (),
    ) -> list[CredentialRecord]:
        """Load a provider's credentials for a set of owners in one read.

        Args:
            provider: Provider tag to filter on
            owner_ids: Owners whose credentials are needed
            extra_ids: Credential ids to include regardless of owner
        """
        owners = list(set(owner_ids))
        extras = list(set(extra_ids))
        if not owners and not extras:
            return []
        conditions = []
        if owners:
            conditions.append(CredentialRecord.owner_id.in_(owners))
        if extras:
            conditions.append(CredentialRecord.id.in_(extras))
        with self.db.get_session() as session:
            stmt = select(CredentialRecord).where(
                CredentialRecord.provider == provider, or_(*conditions)
            )
            return list(session.scalars(stmt))

    def update_credential(self, credential_id: int, **patch: Any) -> CredentialRecord | None:
        with self.db.get_session() as session:
            credential = session.get(CredentialRecord, credential_id)
            if credential is None:
                return None
            for key, value in patch.items():
                setattr(credential, key, value)
            session.flush()
            return credential

    def save_polling_state(self, credential_id: int, state: dict[str, Any]) -> None:
        # A fresh dict so the JSON column registers the change
        self.update_credential(credential_id, polling_state=dict(state))

    def save_tokens(
        self,
        credential_id: int,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        patch: dict[str, Any] = {
            "access_token": access_token,
            "expires_at": expires_at,
            "is_valid": True,
        }
        if refresh_token:
            patch["refresh_token"] = refresh_token
        self.update_credential(credential_id, **patch)

    def mark_credential_invalid(self, credential_id: int) -> None:
        self.update_credential(credential_id, is_valid=False)

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    def insert_execution(self, **values: Any) -> ExecutionRecord:
        with self.db.get_session() as session:
            execution = ExecutionRecord(**values)
            session.add(execution)
            session.flush()
            return execution

    def get_execution(self, execution_id: int) -> ExecutionRecord | None:
        with self.db.get_session() as session:
            return session.get(ExecutionRecord, execution_id)

    def get_execution_by_run_id(self, durable_run_id: str) -> ExecutionRecord | None:
        with self.db.get_session() as session:
            stmt = select(ExecutionRecord).where(ExecutionRecord.durable_run_id == durable_run_id)
            return session.scalars(stmt).first()

    def list_executions(self, workflow_id: int, limit: int = 50) -> list[ExecutionRecord]:
        with self.db.get_session() as session:
            stmt = (
                select(ExecutionRecord)
                .where(ExecutionRecord.workflow_id == workflow_id)
                .order_by(ExecutionRecord.started_at.desc(), ExecutionRecord.id.desc())
                .limit(limit)
            )
            return list(session.scalars(stmt))

    def finish_execution(
        self,
        durable_run_id: str,
        status: str,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> ExecutionRecord | None:
        with self.db.get_session() as session:
            stmt = select(ExecutionRecord).where(ExecutionRecord.durable_run_id == durable_run_id)
            execution = session.scalars(stmt).first()
            if execution is None:
                return None
            execution.status = status
            execution.result = result
            execution.error = error
            execution.completed_at = utcnow()
            session.flush()
            return execution


def index_by_id(records: Sequence[Any]) -> dict[int, Any]:
    """Map records to their primary key."""
    return {record.id: record for record in records}
