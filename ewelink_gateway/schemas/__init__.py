"""Public schema exports."""

from .device import ControlRequest, TimerRequest, VerifyTimerRequest

__all__ = [
    "ControlRequest",
    "TimerRequest",
    "VerifyTimerRequest",
]
