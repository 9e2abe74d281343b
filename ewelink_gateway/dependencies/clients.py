"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from ewelink_gateway.clients import EWeLinkClient, OAuthStateEncoder, SQLiteStore
from ewelink_gateway.core.config import get_settings
from ewelink_gateway.services import (
    CredentialStore,
    SessionBinder,
    SessionCookieSigner,
    SQLiteSessionBinder,
    TimerOrchestrator,
    TokenCipherService,
    TokenLifecycleManager,
)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared SQLite record store."""
    return SQLiteStore(get_settings().storage.db_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = get_settings()
    secret = settings.storage.token_encryption_secret or settings.session.secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_sqlite_store(), get_token_cipher_service())


@lru_cache()
def get_session_binder() -> SessionBinder:
    return SQLiteSessionBinder(get_sqlite_store())


@lru_cache()
def get_session_cookie_signer() -> SessionCookieSigner:
    return SessionCookieSigner(get_settings().session.secret)


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the session secret."""
    settings = get_settings()
    return OAuthStateEncoder(
        secret_key=settings.session.secret,
        ttl_seconds=settings.session.state_ttl_seconds,
    )


@lru_cache()
def get_ewelink_client() -> EWeLinkClient:
    """Create the singleton eWeLink client."""
    return EWeLinkClient(get_settings().ewelink)


@lru_cache()
def get_token_manager() -> TokenLifecycleManager:
    """Provide the access token resolver."""
    return TokenLifecycleManager(get_credential_store(), get_ewelink_client())


@lru_cache()
def get_timer_orchestrator() -> TimerOrchestrator:
    return TimerOrchestrator(get_ewelink_client())


__all__ = [
    "get_credential_store",
    "get_ewelink_client",
    "get_oauth_state_encoder",
    "get_session_binder",
    "get_session_cookie_signer",
    "get_sqlite_store",
    "get_timer_orchestrator",
    "get_token_cipher_service",
    "get_token_manager",
]
