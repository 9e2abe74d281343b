"""
eWeLink open-platform client.

The client is stateless with respect to users: the application id and
secret are fixed at construction, while the access token and region of the
calling user are passed to every method. Nothing is cached and nothing is
retried; each method is one request/response against the platform.
"""

from __future__ import annotations

import base64
import hmac
import json
import logging
import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlencode

import httpx

from ewelink_gateway.core.config import SUPPORTED_REGIONS, EWeLinkSettings
from ewelink_gateway.core.errors import RemoteGatewayError
from ewelink_gateway.models.credentials import TokenGrant
from ewelink_gateway.utils.http import decode_platform_payload

logger = logging.getLogger(__name__)

_NONCE_ALPHABET = string.ascii_letters + string.digits


def _nonce(length: int = 8) -> str:
    return "".join(secrets.choice(_NONCE_ALPHABET) for _ in range(length))


def _from_epoch_ms(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class EWeLinkClient:
    """Typed wrapper over the eWeLink v2 HTTP API."""

    OAUTH_PAGE_URL = "https://c2ccdn.coolkit.cc/oauth/index.html"
    DEVICE_THING_STATUS = "/v2/device/thing/status"
    DEVICE_THING_LIST = "/v2/device/thing"
    OAUTH_TOKEN = "/v2/user/oauth/token"
    USER_REFRESH = "/v2/user/refresh"
    THING_TYPE_DEVICE = 1
    PAGE_SIZE = 30

    def __init__(
        self,
        settings: EWeLinkSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @staticmethod
    def api_base_url(region: str) -> str:
        """Return the API host serving ``region``."""
        if region not in SUPPORTED_REGIONS:
            raise RemoteGatewayError(f"Unknown eWeLink region: {region}")
        if region == "cn":
            return "https://cn-apia.coolkit.cn"
        return f"https://{region}-apia.coolkit.cc"

    def _sign(self, message: str) -> str:
        digest = hmac.new(
            self._settings.app_secret.encode("utf-8"),
            message.encode("utf-8"),
            sha256,
        ).digest()
        return base64.b64encode(digest).decode("utf-8")

    def _bearer_headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "X-CK-Appid": self._settings.app_id,
            "Content-Type": "application/json",
        }

    def build_login_url(self, state: str) -> str:
        """Construct the eWeLink OAuth consent page URL."""
        seq = str(int(time.time() * 1000))
        params = {
            "clientId": self._settings.app_id,
            "seq": seq,
            "authorization": self._sign(f"{self._settings.app_id}_{seq}"),
            "redirectUrl": self._settings.redirect_url,
            "grantType": "authorization_code",
            "state": state,
            "nonce": _nonce(),
            "showQRCode": "false",
        }
        return f"{self.OAUTH_PAGE_URL}?{urlencode(params)}"

    async def _request(
        self,
        method: str,
        region: str,
        path: str,
        *,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]] = None,
        content: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = f"{self.api_base_url(region)}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, url, headers=headers, params=params, content=content
                )
        except httpx.HTTPError as exc:
            logger.warning("eWeLink %s %s transport error: %s", method, path, exc)
            raise RemoteGatewayError(f"Unable to reach eWeLink: {exc}") from exc
        return decode_platform_payload(response)

    async def exchange_authorization_code(self, code: str, region: str) -> TokenGrant:
        """Exchange an OAuth authorization code for a token pair."""
        body = json.dumps(
            {
                "code": code,
                "redirectUrl": self._settings.redirect_url,
                "grantType": "authorization_code",
            },
            separators=(",", ":"),
        )
        headers = {
            "Authorization": f"Sign {self._sign(body)}",
            "X-CK-Appid": self._settings.app_id,
            "X-CK-Nonce": _nonce(),
            "Content-Type": "application/json",
        }
        payload = await self._request(
            "POST", region, self.OAUTH_TOKEN, headers=headers, content=body
        )
        data = payload.get("data") or {}
        try:
            return TokenGrant(
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                access_token_expires_at=_from_epoch_ms(data["atExpiredTime"]),
                refresh_token_expires_at=_from_epoch_ms(data["rtExpiredTime"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteGatewayError("Incomplete token payload returned from eWeLink.") from exc

    async def refresh_token(
        self, refresh_token: str, *, access_token: str, region: str
    ) -> TokenGrant:
        """Trade a refresh token for a new token pair.

        The platform does not report expiries on refresh, so they are
        derived from the configured token lifetimes.
        """
        refreshed_at = datetime.now(timezone.utc)
        body = json.dumps({"rt": refresh_token}, separators=(",", ":"))
        payload = await self._request(
            "POST",
            region,
            self.USER_REFRESH,
            headers=self._bearer_headers(access_token),
            content=body,
        )
        data = payload.get("data") or {}
        new_access = data.get("at")
        new_refresh = data.get("rt") or refresh_token
        if not new_access:
            raise RemoteGatewayError("Incomplete refresh payload returned from eWeLink.")
        return TokenGrant(
            access_token=new_access,
            refresh_token=new_refresh,
            access_token_expires_at=refreshed_at
            + timedelta(days=self._settings.access_token_ttl_days),
            refresh_token_expires_at=refreshed_at
            + timedelta(days=self._settings.refresh_token_ttl_days),
        )

    async def update_status(
        self,
        access_token: str,
        region: str,
        device_id: str,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Write ``params`` to a device's thing status."""
        body = json.dumps(
            {"type": self.THING_TYPE_DEVICE, "id": device_id, "params": params}
        )
        return await self._request(
            "POST",
            region,
            self.DEVICE_THING_STATUS,
            headers=self._bearer_headers(access_token),
            content=body,
        )

    async def set_switch(
        self,
        access_token: str,
        region: str,
        device_id: str,
        state: str,
        outlet: int | None = None,
    ) -> Dict[str, Any]:
        """Turn a device, or one outlet of a multi-channel device, on or off."""
        if outlet is None:
            params: Dict[str, Any] = {"switch": state}
        else:
            params = {"switches": [{"switch": state, "outlet": outlet}]}
        return await self.update_status(access_token, region, device_id, params)

    async def get_status(
        self,
        access_token: str,
        region: str,
        device_id: str,
        fields: Iterable[str],
    ) -> Dict[str, Any]:
        """Fetch selected status fields of a device; returns the ``params`` map."""
        payload = await self._request(
            "GET",
            region,
            self.DEVICE_THING_STATUS,
            headers=self._bearer_headers(access_token),
            params={
                "type": self.THING_TYPE_DEVICE,
                "id": device_id,
                "params": "|".join(fields),
            },
        )
        data = payload.get("data") or {}
        status_params = data.get("params")
        if not isinstance(status_params, dict):
            raise RemoteGatewayError("Malformed status payload returned from eWeLink.")
        return status_params

    async def list_things(self, access_token: str, region: str) -> List[Dict[str, Any]]:
        """Return every thing on the account, following pagination."""
        things: List[Dict[str, Any]] = []
        while True:
            payload = await self._request(
                "GET",
                region,
                self.DEVICE_THING_LIST,
                headers=self._bearer_headers(access_token),
                params={"num": self.PAGE_SIZE, "beginIndex": len(things)},
            )
            data = payload.get("data") or {}
            page = data.get("thingList") or []
            things.extend(page)
            total = int(data.get("total") or 0)
            if not page or len(things) >= total:
                return things


__all__ = ["EWeLinkClient"]
