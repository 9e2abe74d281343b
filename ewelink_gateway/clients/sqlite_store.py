"""SQLite-backed key-value storage for credentials and session bindings."""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from ewelink_gateway.core.errors import CredentialStoreError


class SQLiteStore:
    """Key-value store keyed by (pk, sk); every write replaces one whole row.

    Writers are serialized by a store-wide lock so concurrent upserts to the
    same or different keys are applied one at a time.
    """

    def __init__(self, db_path: str, *, timeout: float = 5.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = timeout
        self._write_lock = threading.Lock()
        try:
            if self._db_path.parent and not self._db_path.parent.exists():
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as exc:
            raise CredentialStoreError(
                f"Unable to open credential store at {self._db_path}"
            ) from exc

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path, timeout=self._timeout, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise CredentialStoreError() from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise CredentialStoreError() from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def put_item(self, item: Dict[str, Any]) -> None:
        pk = item.get("pk")
        sk = item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")

        data_json = json.dumps(item)
        with self._write_lock, self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO kv_records (pk, sk, data)
                VALUES (?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                """,
                (pk, sk, data_json),
            )

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        try:
            return json.loads(row["data"])
        except ValueError as exc:
            raise CredentialStoreError(
                f"Corrupt record stored under {partition_key}/{sort_key}"
            ) from exc

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        with self._write_lock, self._transaction() as conn:
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )


__all__ = ["SQLiteStore"]
