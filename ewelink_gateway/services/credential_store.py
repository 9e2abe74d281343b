"""
Durable per-user credential records.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import ValidationError

from ewelink_gateway.clients.sqlite_store import SQLiteStore
from ewelink_gateway.core.errors import CredentialStoreError
from ewelink_gateway.models.credentials import CredentialRecord
from ewelink_gateway.services.token_cipher import TokenCipherService

_SORT_KEY = "credential#ewelink"


class CredentialStore:
    """Stores one :class:`CredentialRecord` per user id, tokens encrypted.

    ``put`` always writes the complete record in a single upsert, so readers
    observe either the previous record or the new one, never a mix.
    """

    def __init__(self, store: SQLiteStore, cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = cipher

    @staticmethod
    def _partition_key(user_id: str) -> str:
        return f"user#{user_id}"

    def get(self, user_id: str) -> CredentialRecord | None:
        item = self._store.get_item(
            partition_key=self._partition_key(user_id), sort_key=_SORT_KEY
        )
        if not item:
            return None
        try:
            return CredentialRecord(
                user_id=item["user_id"],
                region=item["region"],
                access_token=self._cipher.decrypt(item["access_token_encrypted"]),
                refresh_token=self._cipher.decrypt(item["refresh_token_encrypted"]),
                access_token_expires_at=item["access_token_expires_at"],
                refresh_token_expires_at=item["refresh_token_expires_at"],
                created_at=item["created_at"],
                updated_at=item["updated_at"],
            )
        except (KeyError, ValidationError) as exc:
            raise CredentialStoreError(
                f"Stored credential for user {user_id} is malformed."
            ) from exc

    def put(self, user_id: str, record: CredentialRecord) -> None:
        if record.user_id != user_id:
            raise ValueError("Record user_id does not match the storage key.")
        self._store.put_item(
            {
                "pk": self._partition_key(user_id),
                "sk": _SORT_KEY,
                "user_id": user_id,
                "region": record.region,
                "access_token_encrypted": self._cipher.encrypt(record.access_token),
                "refresh_token_encrypted": self._cipher.encrypt(record.refresh_token),
                "access_token_expires_at": record.access_token_expires_at.isoformat(),
                "refresh_token_expires_at": record.refresh_token_expires_at.isoformat(),
                "created_at": record.created_at.isoformat(),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        )


__all__ = ["CredentialStore"]
