"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_store,
    get_ewelink_client,
    get_oauth_state_encoder,
    get_session_binder,
    get_session_cookie_signer,
    get_sqlite_store,
    get_timer_orchestrator,
    get_token_cipher_service,
    get_token_manager,
)
from .config import get_app_settings
from .session import SessionAuth, get_session_auth, get_session_id

__all__ = [
    "SessionAuth",
    "get_app_settings",
    "get_credential_store",
    "get_ewelink_client",
    "get_oauth_state_encoder",
    "get_session_auth",
    "get_session_binder",
    "get_session_cookie_signer",
    "get_session_id",
    "get_sqlite_store",
    "get_timer_orchestrator",
    "get_token_cipher_service",
    "get_token_manager",
]
