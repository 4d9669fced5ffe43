"""Gmail push subscriptions (``users.watch``) bound to workflows.

A watch belongs to a mailbox, not a workflow; the workflow row only records
the history id and expiry returned when the watch was (re)started so the
renewal sweep and Pub/Sub ingestion can find it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from ...core.config import GmailWatchConfig, HTTPClientConfig
from ...core.errors import CredentialError, NotFoundError
from ...core.logger import get_logger
from ...engine.credentials import CredentialManager, resolve_credential
from ...registry.capabilities import Registration
from ...store.models import CredentialRecord, WorkflowRecord
from ...store.repository import AutomationStore, index_by_id
from .client import GmailClient

logger = get_logger("providers.gmail.watch")


@dataclass
class WatchResult:
    history_id: str
    expiration: datetime | None


def expiration_from_ms(value: str | int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class GmailWatchService:
    """Starts and stops Gmail watches on behalf of workflows."""

    def __init__(
        self,
        store: AutomationStore,
        credentials: CredentialManager,
        config: GmailWatchConfig | None = None,
        http_config: HTTPClientConfig | None = None,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.config = config or GmailWatchConfig()
        self.http_config = http_config or HTTPClientConfig()

    @property
    def enabled(self) -> bool:
        return bool(self.config.pubsub_topic)

    def credential_for(
        self, workflow: WorkflowRecord, credential_id: int | None = None
    ) -> CredentialRecord | None:
        """Resolve the Gmail credential for a workflow the way the poller does."""
        explicit = [credential_id] if credential_id is not None else []
        owned = self.store.list_credentials("gmail", [workflow.owner_id], explicit)
        registration = Registration(workflow.id, dict(workflow.trigger_config or {}), credential_id)
        return resolve_credential(
            workflow.owner_id,
            registration,
            [credential for credential in owned if credential.owner_id == workflow.owner_id],
            index_by_id(owned),
        )

    async def _client(self, workflow: WorkflowRecord, credential_id: int | None) -> GmailClient:
        credential = self.credential_for(workflow, credential_id)
        if credential is None:
            raise CredentialError(f"No Gmail credential for workflow {workflow.id}")
        credential = await self.credentials.ensure_fresh(credential)
        if not credential.access_token:
            raise CredentialError(
                f"Gmail credential {credential.id} has no access token",
                credential_id=credential.id,
            )
        return GmailClient(credential.access_token, config=self.http_config)

    async def start(
        self,
        workflow_id: int,
        credential_id: int | None = None,
        label_ids: list[str] | None = None,
    ) -> WatchResult:
        """Start or renew the watch and record it on the workflow.

        Raises:
            NotFoundError: If the workflow does not exist
            CredentialError: If no usable Gmail credential resolves
            ExternalProviderError: If Gmail rejects the watch request
        """
        workflow = self.store.get_workflow(workflow_id)
        if workflow is None:
            raise NotFoundError("workflow", workflow_id)

        labels = label_ids or self.config.label_ids
        async with await self._client(workflow, credential_id) as client:
            response = await client.watch(self.config.pubsub_topic or "", labels)

        result = WatchResult(
            history_id=str(response.get("historyId", "")),
            expiration=expiration_from_ms(response.get("expiration")),
        )
        self.store.update_workflow(
            workflow_id,
            gmail_history_id=result.history_id or workflow.gmail_history_id,
            gmail_watch_expiration=result.expiration,
        )
        logger.info(
            "Gmail watch for workflow %s active until %s", workflow_id, result.expiration
        )
        return result

    async def stop(self, workflow_id: int, credential_id: int | None = None) -> None:
        workflow = self.store.get_workflow(workflow_id)
        if workflow is None:
            return
        async with await self._client(workflow, credential_id) as client:
            await client.stop()
        self.store.update_workflow(workflow_id, gmail_watch_expiration=None)
        logger.info("Stopped Gmail watch for workflow %s", workflow_id)
