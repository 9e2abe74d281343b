"""Expose constructed client wrappers."""

from .ewelink import EWeLinkClient
from .oauth_state import OAuthStateEncoder
from .sqlite_store import SQLiteStore

__all__ = [
    "EWeLinkClient",
    "OAuthStateEncoder",
    "SQLiteStore",
]
