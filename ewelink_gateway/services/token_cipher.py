"""Symmetric encryption of OAuth tokens at rest."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from ewelink_gateway.core.errors import CredentialStoreError

_KEY_CONTEXT = b"ewelink-gateway/token-store/v1:"


class TokenCipherService:
    """Encrypt and decrypt stored tokens with a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(_KEY_CONTEXT + secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a stored token.

        A failure means the store was written under a different secret or
        was corrupted, so it is reported as a storage error.
        """
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise CredentialStoreError(
                "Stored token could not be decrypted; was the encryption secret changed?"
            ) from exc
        return plaintext.decode("utf-8")


__all__ = ["TokenCipherService"]
