"""Request bodies of the device endpoints.

Fields are optional at the schema level so that a missing field produces the
gateway's own ``{error, msg}`` reply instead of a framework error; handlers
call ``require_fields`` before touching credentials or the network.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ewelink_gateway.core.errors import RequestValidationFailure


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def require_fields(self, *names: str) -> None:
        missing = [
            type(self).model_fields[name].alias or name
            for name in names
            if getattr(self, name) in (None, "")
        ]
        if missing:
            raise RequestValidationFailure(f"Missing {' or '.join(missing)}")


class ControlRequest(_CamelModel):
    device_id: Optional[str] = Field(None, alias="deviceId")
    switch: Optional[Literal["on", "off"]] = None
    outlet: Optional[int] = Field(None, ge=0)


# Longest accepted delay: one year.
MAX_DELAY_MINUTES = 525_600


class TimerRequest(_CamelModel):
    device_id: Optional[str] = Field(None, alias="deviceId")
    minutes: Optional[float] = Field(None, allow_inf_nan=False, le=MAX_DELAY_MINUTES)
    channel_count: Optional[int] = Field(None, alias="channelCount", ge=1)
    outlet: Optional[int] = Field(None, ge=0)

    def require_positive_delay(self) -> float:
        if self.minutes is None or self.minutes <= 0:
            raise RequestValidationFailure("minutes must be a positive number")
        return self.minutes


class VerifyTimerRequest(_CamelModel):
    device_id: Optional[str] = Field(None, alias="deviceId")
    timer_id: Optional[str] = Field(None, alias="timerId")


__all__ = ["MAX_DELAY_MINUTES", "ControlRequest", "TimerRequest", "VerifyTimerRequest"]
