"""
Browser session to user id bindings.

Sessions are kept separate from credentials: revoking a session leaves the
user's stored credential untouched, and a fresh login binds a fresh user id.
"""

from __future__ import annotations

import abc
import base64
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timezone
from hashlib import sha256

from ewelink_gateway.clients.sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)

_SORT_KEY = "binding"


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


class SessionCookieSigner:
    """Sign session ids for the cookie; unsigned or altered values are rejected."""

    def __init__(self, secret: str) -> None:
        self._secret = secret.encode("utf-8")

    def _signature(self, session_id: str) -> str:
        digest = hmac.new(self._secret, session_id.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")

    def sign(self, session_id: str) -> str:
        return f"{session_id}.{self._signature(session_id)}"

    def unsign(self, value: str | None) -> str | None:
        if not value:
            return None
        session_id, sep, signature = value.rpartition(".")
        if not sep or not session_id:
            return None
        if not hmac.compare_digest(signature, self._signature(session_id)):
            return None
        return session_id


class SessionBinder(abc.ABC):
    """Maps a session id to the user id bound at OAuth callback time."""

    @abc.abstractmethod
    def bind(self, session_id: str) -> str:
        """Generate a fresh user id and associate it with ``session_id``."""

    @abc.abstractmethod
    def resolve(self, session_id: str) -> str | None:
        """Return the bound user id, if any."""

    @abc.abstractmethod
    def unbind(self, session_id: str) -> None:
        """Forget the session; the user's credential is kept."""


class SQLiteSessionBinder(SessionBinder):
    """Server-side bindings stored next to the credentials."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    @staticmethod
    def _partition_key(session_id: str) -> str:
        return f"session#{session_id}"

    def bind(self, session_id: str) -> str:
        user_id = uuid.uuid4().hex
        self._store.put_item(
            {
                "pk": self._partition_key(session_id),
                "sk": _SORT_KEY,
                "user_id": user_id,
                "bound_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        logger.info("Bound new user %s to session", user_id)
        return user_id

    def resolve(self, session_id: str) -> str | None:
        item = self._store.get_item(
            partition_key=self._partition_key(session_id), sort_key=_SORT_KEY
        )
        if not item:
            return None
        return item.get("user_id")

    def unbind(self, session_id: str) -> None:
        self._store.delete_item(
            partition_key=self._partition_key(session_id), sort_key=_SORT_KEY
        )


__all__ = [
    "SQLiteSessionBinder",
    "SessionBinder",
    "SessionCookieSigner",
    "new_session_id",
]
