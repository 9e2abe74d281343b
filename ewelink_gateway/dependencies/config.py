"""
FastAPI dependency exposing the gateway settings.
"""

from ewelink_gateway.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """Settings for route handlers; overridable through ``dependency_overrides``."""
    return get_settings()


__all__ = ["get_app_settings"]
