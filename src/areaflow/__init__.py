"""areaflow automation engine.

An if-this-then-that engine pairing one trigger with one action per workflow:
- Polling reconciliation loops per provider with durable cursors
- Push ingestion for Gmail notifications and repository webhooks
- Cron and on-activation triggers on APScheduler
- Durable, retried action runs with an execution history

Example:
    ```python
    from areaflow import AutomationApp
    from areaflow.engine import ActionSpec, TriggerSpec, WorkflowCreate

    app = AutomationApp.from_config("areaflow.yaml")
    await app.start()

    workflow = app.lifecycle.create_workflow(
        "user-1",
        WorkflowCreate(
            name="Star notifier",
            trigger=TriggerSpec(provider="github", id="new_star",
                                config={"owner": "octo", "repo": "hello"}),
            action=ActionSpec(provider="discord", id="send-webhook",
                              config={"webhookUrl": "https://...", "content": "New star!"}),
        ),
    )
    await app.lifecycle.activate_workflow("user-1", workflow.id)
    ```
"""

from importlib.metadata import PackageNotFoundError, version

from .app import AutomationApp
from .core import EngineConfig, get_logger, setup_logging
from .registry import ActionKind

__all__ = [
    "__version__",
    "ActionKind",
    "AutomationApp",
    "EngineConfig",
    "get_logger",
    "setup_logging",
]

try:  # pragma: no cover - best-effort during development
    __version__ = version("areaflow")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
