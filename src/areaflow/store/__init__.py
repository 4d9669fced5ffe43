"""Persistence layer: SQLAlchemy models, engine management and the automation store."""

from .database import DatabaseManager, init_database
from .models import (
    Base,
    CredentialRecord,
    ExecutionRecord,
    ExecutionStatus,
    WorkflowRecord,
    as_utc,
    utcnow,
)
from .repository import AutomationStore, index_by_id

__all__ = [
    "AutomationStore",
    "Base",
    "CredentialRecord",
    "DatabaseManager",
    "ExecutionRecord",
    "ExecutionStatus",
    "WorkflowRecord",
    "as_utc",
    "index_by_id",
    "init_database",
    "utcnow",
]
