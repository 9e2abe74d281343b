"""
Delayed switch-off timers.

A timer is built locally, written into the device's ``timers`` status and
later looked up again by its ``mId``. Acceptance by the platform is all that
is checked; whether the device fires the timer is outside our control.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from ewelink_gateway.clients.ewelink import EWeLinkClient
from ewelink_gateway.core.errors import RemoteGatewayError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timer_instant(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"


def _format_period(delay_minutes: float) -> str:
    if float(delay_minutes).is_integer():
        return str(int(delay_minutes))
    return str(delay_minutes)


@dataclass
class TimerDescriptor:
    device_id: str
    timer_id: str
    execute_at: datetime
    delay_minutes: float
    action: Dict[str, Any]
    enabled: bool = True

    def to_payload(self) -> Dict[str, Any]:
        """Render the timer object the platform expects in ``params.timers``."""
        return {
            "mId": self.timer_id,
            "type": "once",
            "coolkit_timer_type": "delay",
            "at": format_timer_instant(self.execute_at),
            "enabled": 1 if self.enabled else 0,
            "do": self.action,
            "period": _format_period(self.delay_minutes),
        }


@dataclass
class TimerVerification:
    present: bool
    timers: List[Dict[str, Any]] = field(default_factory=list)


def _is_enabled(timer: Dict[str, Any]) -> bool:
    enabled = timer.get("enabled")
    if isinstance(enabled, str):
        return enabled.strip().lower() in ("1", "true")
    return bool(enabled)


class TimerOrchestrator:
    """Builds, submits and verifies delayed switch-off timers."""

    def __init__(
        self,
        ewelink_client: EWeLinkClient,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = ewelink_client
        self._clock = clock

    def create_timer(
        self,
        device_id: str,
        delay_minutes: float,
        channel_count: int | None = None,
        outlet: int | None = None,
    ) -> TimerDescriptor:
        if delay_minutes is None or not 0 < delay_minutes < math.inf:
            raise ValueError("delay_minutes must be a positive finite number")
        try:
            execute_at = self._clock() + timedelta(minutes=delay_minutes)
        except OverflowError as exc:
            raise ValueError("delay_minutes is out of range") from exc

        if channel_count is not None and channel_count > 1:
            action: Dict[str, Any] = {
                "switches": [
                    {"switch": "off", "outlet": index} for index in range(channel_count)
                ]
            }
        elif outlet is not None:
            action = {"switches": [{"switch": "off", "outlet": outlet}]}
        else:
            action = {"switch": "off"}

        return TimerDescriptor(
            device_id=device_id,
            timer_id=str(uuid.uuid4()),
            execute_at=execute_at,
            delay_minutes=delay_minutes,
            action=action,
        )

    async def submit_timer(
        self,
        access_token: str,
        region: str,
        device_id: str,
        descriptor: TimerDescriptor,
    ) -> Dict[str, Any]:
        return await self._client.update_status(
            access_token,
            region,
            device_id,
            {"timers": [descriptor.to_payload()]},
        )

    async def verify_timer(
        self,
        access_token: str,
        region: str,
        device_id: str,
        timer_id: str,
    ) -> TimerVerification:
        status = await self._client.get_status(
            access_token, region, device_id, ["timers"]
        )
        timers = status.get("timers") or []
        if not isinstance(timers, list):
            raise RemoteGatewayError("Malformed timers list returned from eWeLink.")
        present = any(
            isinstance(timer, dict)
            and timer.get("mId") == timer_id
            and _is_enabled(timer)
            for timer in timers
        )
        return TimerVerification(present=present, timers=timers)


__all__ = [
    "TimerDescriptor",
    "TimerOrchestrator",
    "TimerVerification",
    "format_timer_instant",
]
