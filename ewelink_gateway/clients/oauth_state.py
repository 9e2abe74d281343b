"""
Tamper-proof OAuth ``state`` values.

The state sent to the consent page is bound to the browser session that
started the login, so a callback can only complete the flow it belongs to.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import secrets
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict

from ewelink_gateway.core.errors import InvalidOAuthStateError


def session_fingerprint(session_id: str) -> str:
    """Short digest of a session id; the raw id never leaves the cookie."""
    return sha256(session_id.encode("utf-8")).hexdigest()[:16]


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str, *, ttl_seconds: int = 900) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl = timedelta(seconds=ttl_seconds)

    def _signature(self, serialized: bytes) -> bytes:
        return hmac.new(self._secret_key, serialized, sha256).digest()

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
        return base64.urlsafe_b64encode(self._signature(serialized) + serialized).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidOAuthStateError("Malformed OAuth state.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        if not hmac.compare_digest(signature, self._signature(serialized)):
            raise InvalidOAuthStateError("Invalid OAuth state signature.")
        return json.loads(serialized)

    def issue(self, session_id: str) -> str:
        """Build a state value for the login started by ``session_id``."""
        return self.encode(
            {
                "nonce": secrets.token_hex(8),
                "sid": session_fingerprint(session_id),
                "issued_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    def verify(self, token: str, session_id: str | None) -> Dict[str, Any]:
        """Check signature, age and session binding of a returned state."""
        payload = self.decode(token)

        try:
            issued_at = datetime.fromisoformat(payload["issued_at"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidOAuthStateError("Missing issued_at in OAuth state.") from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - issued_at > self._ttl:
            raise InvalidOAuthStateError("OAuth state has expired, please login again.")

        if not session_id or not hmac.compare_digest(
            str(payload.get("sid", "")), session_fingerprint(session_id)
        ):
            raise InvalidOAuthStateError("OAuth state does not belong to this session.")
        return payload


__all__ = ["OAuthStateEncoder", "session_fingerprint"]
