"""
Helpers for resolving and refreshing eWeLink access tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from ewelink_gateway.clients.ewelink import EWeLinkClient
from ewelink_gateway.core.errors import (
    RefreshFailedError,
    RemoteGatewayError,
    SessionExpiredError,
    UnauthenticatedError,
)
from ewelink_gateway.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AccessToken:
    """A usable access token together with the region it is valid for."""

    value: str
    region: str
    expires_at: datetime


class TokenLifecycleManager:
    """Supplies a valid access token for a user, refreshing lazily.

    Every call re-reads the stored record and decides between three cases:
    the access token is still valid, it expired but the refresh token has
    not, or both expired. There is no background refresh.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        ewelink_client: EWeLinkClient,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._credentials = credential_store
        self._client = ewelink_client
        self._clock = clock

    async def resolve_access_token(self, user_id: str) -> AccessToken:
        record = self._credentials.get(user_id)
        if record is None:
            raise UnauthenticatedError()

        now = self._clock()
        if now < record.access_token_expires_at:
            return AccessToken(
                value=record.access_token,
                region=record.region,
                expires_at=record.access_token_expires_at,
            )

        if now >= record.refresh_token_expires_at:
            logger.info("Refresh token for user %s has expired", user_id)
            raise SessionExpiredError()

        logger.info("Access token for user %s expired, refreshing", user_id)
        try:
            grant = await self._client.refresh_token(
                record.refresh_token,
                access_token=record.access_token,
                region=record.region,
            )
        except RemoteGatewayError as exc:
            logger.warning("Token refresh for user %s failed: %s", user_id, exc.msg)
            raise RefreshFailedError() from exc

        refreshed = record.refreshed(grant)
        self._credentials.put(user_id, refreshed)
        return AccessToken(
            value=refreshed.access_token,
            region=refreshed.region,
            expires_at=refreshed.access_token_expires_at,
        )


__all__ = ["AccessToken", "TokenLifecycleManager"]
