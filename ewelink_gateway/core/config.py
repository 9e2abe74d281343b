"""
Application configuration models and helpers.

Settings are read from the process environment (optionally seeded from a
``.env`` file) and shared by the HTTP layer and the credential services.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_REGIONS: tuple[str, ...] = ("cn", "as", "us", "eu")


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


class EWeLinkSettings(BaseSettings):
    """Credentials and endpoints for the eWeLink open platform."""

    model_config = SettingsConfigDict(extra="ignore")

    app_id: str = Field(..., validation_alias=AliasChoices("EWELINK_APP_ID", "APP_ID"))
    app_secret: str = Field(
        ..., validation_alias=AliasChoices("EWELINK_APP_SECRET", "APP_SECRET")
    )
    region: str = Field(
        "us",
        validation_alias=AliasChoices("EWELINK_REGION", "REGION"),
        description="Region used when the OAuth callback does not report one.",
    )
    redirect_url: str = Field(
        "http://127.0.0.1:4001/redirectUrl",
        validation_alias="EWELINK_REDIRECT_URL",
        description="Callback URL registered with the eWeLink developer console.",
    )
    access_token_ttl_days: int = Field(
        30, validation_alias="EWELINK_ACCESS_TOKEN_TTL_DAYS"
    )
    refresh_token_ttl_days: int = Field(
        60, validation_alias="EWELINK_REFRESH_TOKEN_TTL_DAYS"
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="EWELINK_HTTP_TIMEOUT")

    @field_validator("region")
    @classmethod
    def _check_region(cls, value: str) -> str:
        region = value.strip().lower()
        if region not in SUPPORTED_REGIONS:
            raise ValueError(
                f"Unsupported eWeLink region {value!r}; expected one of {SUPPORTED_REGIONS}."
            )
        return region

    @model_validator(mode="after")
    def _check_token_lifetimes(self) -> "EWeLinkSettings":
        if self.access_token_ttl_days > self.refresh_token_ttl_days:
            raise ValueError("Access token lifetime cannot exceed the refresh token lifetime.")
        return self


class SessionSettings(BaseSettings):
    """Browser session and OAuth state configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    secret: str = Field(..., validation_alias="SESSION_SECRET")
    cookie_name: str = Field("ewelink_session", validation_alias="SESSION_COOKIE_NAME")
    max_age_seconds: int = Field(
        60 * 60 * 24 * 30, validation_alias="SESSION_MAX_AGE"
    )
    cookie_secure: bool = Field(False, validation_alias="SESSION_COOKIE_SECURE")
    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")


class StorageSettings(BaseSettings):
    """Local persistence configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    db_path: str = Field("data/gateway.db", validation_alias="GATEWAY_DB_PATH")
    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the key encrypting stored tokens. "
            "Falls back to the session secret."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the gateway."""

    model_config = SettingsConfigDict(extra="ignore")

    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    post_login_redirect: str = Field(
        "/devices",
        validation_alias="POST_LOGIN_REDIRECT",
        description="Where the browser lands after a successful OAuth callback.",
    )
    ewelink: EWeLinkSettings = Field(default_factory=EWeLinkSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "EWeLinkSettings",
    "SUPPORTED_REGIONS",
    "SessionSettings",
    "StorageSettings",
    "get_settings",
]
