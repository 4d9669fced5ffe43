"""Executes one attempt of a durable run: resolve the action and call it."""

from __future__ import annotations

from typing import Any

from ..core.config import HTTPClientConfig
from ..core.errors import CredentialError, NotFoundError, UnsupportedActionError
from ..core.logger import get_logger
from ..registry.capabilities import ActionContext, render_template
from ..registry.registries import ActionRegistry
from ..store.repository import AutomationStore
from .credentials import CredentialManager
from .durable import AutomationRunInput

logger = get_logger("engine.runner")


class ActionRunner:
    """Callable handed to the durable backend as its per-attempt runner."""

    def __init__(
        self,
        actions: ActionRegistry,
        store: AutomationStore,
        credentials: CredentialManager,
        http_config: HTTPClientConfig | None = None,
    ) -> None:
        self.actions = actions
        self.store = store
        self.credentials = credentials
        self.http_config = http_config or HTTPClientConfig()

    async def __call__(self, run_input: AutomationRunInput) -> dict[str, Any]:
        kind = run_input.action_kind
        action = self.actions.get(kind.provider, kind.action_id)
        if action is None:
            raise UnsupportedActionError(kind.provider, kind.action_id)

        rendered = render_template(run_input.action_config, run_input.trigger_data)
        config = action.parse_config(rendered)

        credential = None
        if action.requires_credentials:
            if run_input.action_credential_id is None:
                raise CredentialError(f"Credentials required for {kind.value} action")
            credential = self.store.get_credential(run_input.action_credential_id)
            if credential is None:
                raise NotFoundError("credential", run_input.action_credential_id)
            if credential.owner_id != run_input.owner_id:
                raise CredentialError(
                    f"Credential {credential.id} does not belong to {run_input.owner_id}",
                    credential_id=credential.id,
                )
            credential = await self.credentials.ensure_fresh(credential)

        context = ActionContext(
            workflow_id=run_input.workflow_id,
            owner_id=run_input.owner_id,
            trigger_data=run_input.trigger_data,
            credential=credential,
            http_config=self.http_config,
            client_id=self.credentials.client_id_for(credential) if credential else None,
        )
        logger.debug("Executing %s for workflow %s", kind.value, run_input.workflow_id)
        result = await action.execute(config, context)
        return {"success": True, "actionResult": result}
