"""Credential resolution and just-in-time token refresh.

``resolve_credential`` is pure and re-run on every reconciliation pass; it
decides which stored credential backs a trigger registration. The
``CredentialManager`` refreshes expiring OAuth tokens and persists them
before the caller does anything else with the credential.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone

from ..core.config import OAuthAppConfig
from ..core.errors import CredentialError
from ..core.logger import get_logger
from ..providers.common.oauth import OAuthRefresher
from ..registry.capabilities import Registration
from ..store.models import CredentialRecord, as_utc
from ..store.repository import AutomationStore

logger = get_logger("engine.credentials")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def most_recently_updated(credentials: Sequence[CredentialRecord]) -> CredentialRecord | None:
    """Pick the credential with the latest ``updated_at``; ties go to the higher id."""
    if not credentials:
        return None
    return max(credentials, key=lambda c: (as_utc(c.updated_at) or _EPOCH, c.id))


def resolve_credential(
    owner_id: str,
    registration: Registration,
    owner_credentials: Sequence[CredentialRecord],
    credentials_by_id: Mapping[int, CredentialRecord],
) -> CredentialRecord | None:
    """Decide which credential backs a registration for this pass.

    Args:
        owner_id: Owner of the registered workflow
        registration: The trigger registration
        owner_credentials: The owner's credentials for the trigger's provider
        credentials_by_id: Every credential loaded for this pass

    Returns:
        The credential to use, or None when the workflow must be skipped.
    """
    if registration.credential_id is not None:
        candidate = credentials_by_id.get(registration.credential_id)
    else:
        candidate = most_recently_updated(owner_credentials)

    if candidate is not None and candidate.owner_id != owner_id:
        logger.warning(
            "Credential %s does not belong to owner %s of workflow %s, falling back",
            candidate.id,
            owner_id,
            registration.workflow_id,
        )
        candidate = most_recently_updated(owner_credentials)

    return candidate


class CredentialManager:
    """Refreshes expiring OAuth tokens and persists the result."""

    def __init__(
        self,
        store: AutomationStore,
        refreshers: Mapping[str, OAuthRefresher] | None = None,
        oauth_apps: Mapping[str, OAuthAppConfig] | None = None,
        refresh_skew: timedelta = timedelta(seconds=60),
    ) -> None:
        self.store = store
        self.refreshers = dict(refreshers or {})
        self.oauth_apps = dict(oauth_apps or {})
        self.refresh_skew = refresh_skew

    def client_id_for(self, credential: CredentialRecord) -> str | None:
        """The credential's own client id, else the configured OAuth app's."""
        if credential.client_id:
            return credential.client_id
        app = self.oauth_apps.get(credential.provider)
        return app.client_id if app else None

    def needs_refresh(self, credential: CredentialRecord, now: datetime | None = None) -> bool:
        expires_at = as_utc(credential.expires_at)
        if not credential.access_token:
            return True
        if expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return expires_at - now <= self.refresh_skew

    async def ensure_fresh(self, credential: CredentialRecord) -> CredentialRecord:
        """Return a credential whose access token is usable, refreshing if needed.

        Raises:
            CredentialError: If the token is expired and cannot be refreshed
        """
        if not self.needs_refresh(credential):
            return credential

        refresher = self.refreshers.get(credential.provider)
        if refresher is None:
            if credential.access_token:
                return credential
            raise CredentialError(
                f"Credential {credential.id} has no access token", credential_id=credential.id
            )

        app = self.oauth_apps.get(credential.provider) or OAuthAppConfig()
        try:
            bundle = await refresher.refresh(
                credential.refresh_token,
                credential.client_id or app.client_id,
                credential.client_secret or app.client_secret,
            )
        except CredentialError as exc:
            exc.credential_id = credential.id
            self.store.mark_credential_invalid(credential.id)
            logger.warning("Token refresh failed for credential %s: %s", credential.id, exc)
            raise

        self.store.save_tokens(
            credential.id, bundle.access_token, bundle.refresh_token, bundle.expires_at
        )
        logger.info("Refreshed %s token for credential %s", credential.provider, credential.id)
        refreshed = self.store.get_credential(credential.id)
        if refreshed is None:
            raise CredentialError(
                f"Credential {credential.id} disappeared during refresh",
                credential_id=credential.id,
            )
        return refreshed
