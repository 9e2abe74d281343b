try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from ewelink_gateway.clients.ewelink import EWeLinkClient
from ewelink_gateway.core.config import EWeLinkSettings
from ewelink_gateway.core.errors import RemoteGatewayError
from ewelink_gateway.services.timers import TimerOrchestrator, format_timer_instant


class EchoPlatform:
    """Keeps submitted timers per device and serves them back on status reads."""

    def __init__(self) -> None:
        self.timers: dict[str, list[dict]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            body = json.loads(request.content)
            self.timers.setdefault(body["id"], []).extend(body["params"]["timers"])
            return httpx.Response(200, json={"error": 0, "msg": "", "data": {}})
        device_id = request.url.params["id"]
        return httpx.Response(
            200,
            json={"error": 0, "data": {"params": {"timers": self.timers.get(device_id, [])}}},
        )


def _orchestrator(handler, clock=None) -> TimerOrchestrator:
    settings = EWeLinkSettings(EWELINK_APP_ID="app", EWELINK_APP_SECRET="secret")
    client = EWeLinkClient(settings, transport=httpx.MockTransport(handler))
    if clock is None:
        return TimerOrchestrator(client)
    return TimerOrchestrator(client, clock=clock)


def test_create_timer_for_multi_channel_device() -> None:
    before = datetime.now(timezone.utc)
    descriptor = _orchestrator(EchoPlatform()).create_timer("X", 5, channel_count=3)
    after = datetime.now(timezone.utc)

    switches = descriptor.action["switches"]
    assert len(switches) == 3
    assert [entry["outlet"] for entry in switches] == [0, 1, 2]
    assert all(entry["switch"] == "off" for entry in switches)
    assert before + timedelta(minutes=5) <= descriptor.execute_at <= after + timedelta(minutes=5)
    assert descriptor.enabled is True


def test_create_timer_for_single_channel_device() -> None:
    orchestrator = _orchestrator(EchoPlatform())

    assert orchestrator.create_timer("X", 1).action == {"switch": "off"}
    assert orchestrator.create_timer("X", 1, channel_count=1).action == {"switch": "off"}
    assert orchestrator.create_timer("X", 1, outlet=2).action == {
        "switches": [{"switch": "off", "outlet": 2}]
    }


def test_timer_ids_are_unique() -> None:
    orchestrator = _orchestrator(EchoPlatform())

    ids = {orchestrator.create_timer("X", 1).timer_id for _ in range(200)}

    assert len(ids) == 200


@pytest.mark.parametrize("delay", [0, -5, float("nan"), float("inf"), 1e12])
def test_create_timer_rejects_unusable_delay(delay) -> None:
    with pytest.raises(ValueError):
        _orchestrator(EchoPlatform()).create_timer("X", delay)


def test_timer_payload_matches_platform_format() -> None:
    fixed = datetime(2026, 3, 1, 8, 30, 15, 123456, tzinfo=timezone.utc)
    descriptor = _orchestrator(EchoPlatform(), clock=lambda: fixed).create_timer("X", 10)

    payload = descriptor.to_payload()

    assert payload == {
        "mId": descriptor.timer_id,
        "type": "once",
        "coolkit_timer_type": "delay",
        "at": "2026-03-01T08:40:15.123Z",
        "enabled": 1,
        "do": {"switch": "off"},
        "period": "10",
    }


def test_format_timer_instant_converts_to_utc() -> None:
    offset = timezone(timedelta(hours=2))
    assert format_timer_instant(datetime(2026, 1, 1, 2, 0, tzinfo=offset)) == (
        "2026-01-01T00:00:00.000Z"
    )


@pytest.mark.anyio
async def test_submitted_timer_verifies_as_present() -> None:
    platform = EchoPlatform()
    orchestrator = _orchestrator(platform)
    descriptor = orchestrator.create_timer("dev-1", 5)

    await orchestrator.submit_timer("token", "us", "dev-1", descriptor)
    verification = await orchestrator.verify_timer("token", "us", "dev-1", descriptor.timer_id)

    assert verification.present is True
    assert verification.timers[0]["mId"] == descriptor.timer_id


@pytest.mark.anyio
async def test_disabled_timer_is_not_present() -> None:
    platform = EchoPlatform()
    platform.timers["dev-1"] = [{"mId": "timer-1", "enabled": 0}]

    verification = await _orchestrator(platform).verify_timer("token", "us", "dev-1", "timer-1")

    assert verification.present is False
    assert verification.timers == [{"mId": "timer-1", "enabled": 0}]


@pytest.mark.anyio
async def test_unknown_timer_is_not_present() -> None:
    platform = EchoPlatform()
    platform.timers["dev-1"] = [{"mId": "other", "enabled": 1}]

    verification = await _orchestrator(platform).verify_timer("token", "us", "dev-1", "timer-1")

    assert verification.present is False


@pytest.mark.anyio
async def test_rejected_submission_raises_gateway_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": 4002, "msg": "device offline"})

    orchestrator = _orchestrator(handler)
    descriptor = orchestrator.create_timer("dev-1", 5)

    with pytest.raises(RemoteGatewayError) as excinfo:
        await orchestrator.submit_timer("token", "us", "dev-1", descriptor)

    assert excinfo.value.remote_code == 4002
    assert excinfo.value.msg == "device offline"


@pytest.mark.anyio
async def test_malformed_timer_list_raises_gateway_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": 0, "data": {"params": {"timers": "nope"}}})

    with pytest.raises(RemoteGatewayError):
        await _orchestrator(handler).verify_timer("token", "us", "dev-1", "timer-1")
