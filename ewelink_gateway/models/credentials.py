"""
Domain models for OAuth credential persistence.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenGrant(BaseModel):
    """Tokens and expiries returned by a code exchange or a refresh."""

    access_token: str
    refresh_token: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime

    @model_validator(mode="after")
    def _check_expiry_order(self) -> "TokenGrant":
        if self.access_token_expires_at > self.refresh_token_expires_at:
            raise ValueError("Access token cannot outlive its refresh token.")
        return self


class CredentialRecord(BaseModel):
    """Represents the stored eWeLink credential of one user."""

    user_id: str = Field(..., description="Opaque identifier issued at first login.")
    access_token: str
    refresh_token: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime
    region: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator(
        "access_token_expires_at",
        "refresh_token_expires_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_expiry_order(self) -> "CredentialRecord":
        if self.access_token_expires_at > self.refresh_token_expires_at:
            raise ValueError("Access token cannot outlive its refresh token.")
        return self

    @classmethod
    def from_grant(cls, *, user_id: str, region: str, grant: TokenGrant) -> "CredentialRecord":
        return cls(
            user_id=user_id,
            region=region,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            access_token_expires_at=grant.access_token_expires_at,
            refresh_token_expires_at=grant.refresh_token_expires_at,
        )

    def refreshed(self, grant: TokenGrant) -> "CredentialRecord":
        """Return a copy carrying the refreshed tokens; identity and region stay."""
        return CredentialRecord(
            user_id=self.user_id,
            region=self.region,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            access_token_expires_at=grant.access_token_expires_at,
            refresh_token_expires_at=grant.refresh_token_expires_at,
            created_at=self.created_at,
        )


__all__ = ["CredentialRecord", "TokenGrant"]
