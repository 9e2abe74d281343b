"""Service layer exports."""

from .credential_store import CredentialStore
from .session_binder import SessionBinder, SessionCookieSigner, SQLiteSessionBinder
from .timers import TimerDescriptor, TimerOrchestrator, TimerVerification
from .token_cipher import TokenCipherService
from .token_lifecycle import AccessToken, TokenLifecycleManager

__all__ = [
    "AccessToken",
    "CredentialStore",
    "SQLiteSessionBinder",
    "SessionBinder",
    "SessionCookieSigner",
    "TimerDescriptor",
    "TimerOrchestrator",
    "TimerVerification",
    "TokenCipherService",
    "TokenLifecycleManager",
]
