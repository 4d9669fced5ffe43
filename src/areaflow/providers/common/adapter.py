"""Polling adapter base for providers authenticated with a stored OAuth credential."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import ClassVar

from ...core.config import HTTPClientConfig, OAuthAppConfig
from ...core.errors import CredentialError
from ...engine.polling import PollingAdapter, PollPartition
from ...registry.capabilities import Trigger
from .http import ProviderClient


class CredentialClientAdapter(PollingAdapter):
    """Opens one ``client_class`` per partition using the partition's access token."""

    client_class: ClassVar[type[ProviderClient]]

    def __init__(
        self,
        triggers: Sequence[Trigger],
        http_config: HTTPClientConfig | None = None,
        oauth_apps: Mapping[str, OAuthAppConfig] | None = None,
    ) -> None:
        super().__init__(triggers)
        self.http_config = http_config or HTTPClientConfig()
        self.oauth_apps = dict(oauth_apps or {})

    def client_id_for(self, partition: PollPartition) -> str | None:
        credential = partition.credential
        if credential is not None and credential.client_id:
            return credential.client_id
        app = self.oauth_apps.get(self.provider)
        return app.client_id if app else None

    def access_token(self, partition: PollPartition) -> str:
        credential = partition.credential
        if credential is None or not credential.access_token:
            raise CredentialError(
                f"No usable {self.provider} access token for {partition.key}",
                credential_id=credential.id if credential else None,
            )
        return credential.access_token

    def connect(self, partition: PollPartition) -> ProviderClient:
        return self.client_class(self.access_token(partition), config=self.http_config)
