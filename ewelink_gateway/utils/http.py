"""HTTP helpers for decoding eWeLink platform responses."""

from __future__ import annotations

from typing import Any, Dict

import httpx

from ewelink_gateway.core.errors import RemoteGatewayError


def decode_platform_payload(response: httpx.Response) -> Dict[str, Any]:
    """Return the JSON body of a successful platform call.

    The platform answers HTTP 200 for most application errors and reports
    them in the ``error`` field, so both the status code and that field are
    checked.
    """
    if response.is_error:
        raise RemoteGatewayError(
            f"eWeLink responded with HTTP {response.status_code}"
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise RemoteGatewayError("eWeLink returned a non-JSON response") from exc
    if not isinstance(payload, dict):
        raise RemoteGatewayError("eWeLink returned an unexpected payload")

    code = payload.get("error", 0)
    if code not in (0, None):
        msg = payload.get("msg") or f"eWeLink error {code}"
        raise RemoteGatewayError(str(msg), remote_code=code)
    return payload


__all__ = ["decode_platform_payload"]
