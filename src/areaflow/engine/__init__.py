"""Engine: credential resolution, polling reconciliation, dispatch and workflow lifecycle."""

from .credentials import CredentialManager, most_recently_updated, resolve_credential
from .dispatcher import ExecutionDispatcher
from .durable import (
    AutomationRunInput,
    DurableBackend,
    DurableRunHandle,
    InProcessDurableBackend,
    RunOutcome,
)
from .lifecycle import (
    ActionSpec,
    ReloadReport,
    TriggerSpec,
    WorkflowCreate,
    WorkflowLifecycleManager,
    WorkflowUpdate,
)
from .polling import (
    CursorExpired,
    DetectedEvent,
    PollingAdapter,
    PollingEngine,
    PollPartition,
    PollTarget,
    TickReport,
)
from .runner import ActionRunner

__all__ = [
    "ActionRunner",
    "ActionSpec",
    "AutomationRunInput",
    "CredentialManager",
    "CursorExpired",
    "DetectedEvent",
    "DurableBackend",
    "DurableRunHandle",
    "ExecutionDispatcher",
    "InProcessDurableBackend",
    "PollPartition",
    "PollTarget",
    "PollingAdapter",
    "PollingEngine",
    "ReloadReport",
    "RunOutcome",
    "TickReport",
    "TriggerSpec",
    "WorkflowCreate",
    "WorkflowLifecycleManager",
    "WorkflowUpdate",
    "most_recently_updated",
    "resolve_credential",
]
