from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from ewelink_gateway.clients.sqlite_store import SQLiteStore
from ewelink_gateway.core.errors import (
    RefreshFailedError,
    RemoteGatewayError,
    SessionExpiredError,
    UnauthenticatedError,
)
from ewelink_gateway.models.credentials import CredentialRecord, TokenGrant
from ewelink_gateway.services.credential_store import CredentialStore
from ewelink_gateway.services.token_cipher import TokenCipherService
from ewelink_gateway.services.token_lifecycle import TokenLifecycleManager

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class DummyEWeLinkClient:
    def __init__(self, *, fail: bool = False, delay: float = 0.0) -> None:
        self.fail = fail
        self.delay = delay
        self.calls: list[dict] = []

    async def refresh_token(
        self, refresh_token: str, *, access_token: str, region: str
    ) -> TokenGrant:
        index = len(self.calls)
        self.calls.append(
            {"refresh_token": refresh_token, "access_token": access_token, "region": region}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RemoteGatewayError("rt invalid", remote_code=401)
        return TokenGrant(
            access_token=f"refreshed-access-{index}",
            refresh_token=f"refreshed-refresh-{index}",
            access_token_expires_at=NOW + timedelta(days=30),
            refresh_token_expires_at=NOW + timedelta(days=60),
        )


def _store(tmp_path) -> CredentialStore:
    return CredentialStore(
        SQLiteStore(str(tmp_path / "tokens.db")), TokenCipherService(secret="secret")
    )


def _seed(store: CredentialStore, *, access_delta: timedelta, refresh_delta: timedelta) -> CredentialRecord:
    record = CredentialRecord(
        user_id="user-1",
        access_token="stored-access",
        refresh_token="stored-refresh",
        access_token_expires_at=NOW + access_delta,
        refresh_token_expires_at=NOW + refresh_delta,
        region="eu",
    )
    store.put("user-1", record)
    return store.get("user-1")


@pytest.mark.asyncio
async def test_valid_access_token_is_returned_without_remote_call(tmp_path) -> None:
    store = _store(tmp_path)
    before = _seed(store, access_delta=timedelta(hours=1), refresh_delta=timedelta(days=10))
    client = DummyEWeLinkClient()
    manager = TokenLifecycleManager(store, client, clock=lambda: NOW)

    token = await manager.resolve_access_token("user-1")

    assert token.value == "stored-access"
    assert token.region == "eu"
    assert client.calls == []
    assert store.get("user-1") == before


@pytest.mark.asyncio
async def test_expired_access_token_is_refreshed_once_and_persisted(tmp_path) -> None:
    store = _store(tmp_path)
    before = _seed(store, access_delta=-timedelta(minutes=1), refresh_delta=timedelta(days=10))
    client = DummyEWeLinkClient()
    manager = TokenLifecycleManager(store, client, clock=lambda: NOW)

    token = await manager.resolve_access_token("user-1")

    assert token.value == "refreshed-access-0"
    assert client.calls == [
        {"refresh_token": "stored-refresh", "access_token": "stored-access", "region": "eu"}
    ]
    stored = store.get("user-1")
    assert stored.access_token == "refreshed-access-0"
    assert stored.refresh_token == "refreshed-refresh-0"
    assert stored.access_token_expires_at > before.access_token_expires_at
    assert stored.user_id == before.user_id
    assert stored.region == before.region


@pytest.mark.asyncio
async def test_access_token_expiring_exactly_now_is_refreshed(tmp_path) -> None:
    store = _store(tmp_path)
    _seed(store, access_delta=timedelta(0), refresh_delta=timedelta(days=10))
    client = DummyEWeLinkClient()
    manager = TokenLifecycleManager(store, client, clock=lambda: NOW)

    await manager.resolve_access_token("user-1")

    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_expired_refresh_token_reports_session_expired(tmp_path) -> None:
    store = _store(tmp_path)
    before = _seed(store, access_delta=-timedelta(days=2), refresh_delta=-timedelta(days=1))
    client = DummyEWeLinkClient()
    manager = TokenLifecycleManager(store, client, clock=lambda: NOW)

    for _ in range(2):
        with pytest.raises(SessionExpiredError):
            await manager.resolve_access_token("user-1")

    assert client.calls == []
    assert store.get("user-1") == before


@pytest.mark.asyncio
async def test_failed_refresh_leaves_record_unchanged(tmp_path) -> None:
    store = _store(tmp_path)
    before = _seed(store, access_delta=-timedelta(minutes=1), refresh_delta=timedelta(days=10))
    client = DummyEWeLinkClient(fail=True)
    manager = TokenLifecycleManager(store, client, clock=lambda: NOW)

    with pytest.raises(RefreshFailedError):
        await manager.resolve_access_token("user-1")

    assert store.get("user-1") == before


@pytest.mark.asyncio
async def test_unknown_user_is_unauthenticated(tmp_path) -> None:
    manager = TokenLifecycleManager(_store(tmp_path), DummyEWeLinkClient(), clock=lambda: NOW)

    with pytest.raises(UnauthenticatedError):
        await manager.resolve_access_token("missing")


@pytest.mark.asyncio
async def test_concurrent_refreshes_never_leave_a_hybrid_record(tmp_path) -> None:
    store = _store(tmp_path)
    _seed(store, access_delta=-timedelta(minutes=1), refresh_delta=timedelta(days=10))
    client = DummyEWeLinkClient(delay=0.01)
    manager = TokenLifecycleManager(store, client, clock=lambda: NOW)

    tokens = await asyncio.gather(
        manager.resolve_access_token("user-1"),
        manager.resolve_access_token("user-1"),
    )

    assert len(client.calls) == 2
    stored = store.get("user-1")
    suffix = stored.access_token.rsplit("-", 1)[1]
    assert stored.refresh_token == f"refreshed-refresh-{suffix}"
    assert stored.access_token in {token.value for token in tokens}
