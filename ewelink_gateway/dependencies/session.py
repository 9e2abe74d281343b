"""
Per-request session resolution.

Resolution is lazy: handlers validate their input first and only then ask
for the caller's access token, so invalid requests never reach the
credential store or the network.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from ewelink_gateway.core.config import AppSettings
from ewelink_gateway.core.errors import UnauthenticatedError
from ewelink_gateway.dependencies.clients import (
    get_session_binder,
    get_session_cookie_signer,
    get_token_manager,
)
from ewelink_gateway.dependencies.config import get_app_settings
from ewelink_gateway.services import (
    AccessToken,
    SessionBinder,
    SessionCookieSigner,
    TokenLifecycleManager,
)


class SessionAuth:
    """Resolves the session cookie to a user id and a usable access token."""

    def __init__(
        self,
        session_id: str | None,
        binder: SessionBinder,
        token_manager: TokenLifecycleManager,
    ) -> None:
        self.session_id = session_id
        self._binder = binder
        self._tokens = token_manager

    def user_id(self) -> str:
        if not self.session_id:
            raise UnauthenticatedError()
        user_id = self._binder.resolve(self.session_id)
        if not user_id:
            raise UnauthenticatedError()
        return user_id

    async def access_token(self) -> AccessToken:
        # A bound user without a stored credential is reported exactly like
        # an unbound session.
        return await self._tokens.resolve_access_token(self.user_id())


def get_session_id(
    request: Request,
    signer: Annotated[SessionCookieSigner, Depends(get_session_cookie_signer)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> str | None:
    """Return the verified session id carried by the request cookie, if any."""
    return signer.unsign(request.cookies.get(settings.session.cookie_name))


def get_session_auth(
    session_id: Annotated[str | None, Depends(get_session_id)],
    binder: Annotated[SessionBinder, Depends(get_session_binder)],
    token_manager: Annotated[TokenLifecycleManager, Depends(get_token_manager)],
) -> SessionAuth:
    return SessionAuth(session_id, binder, token_manager)


__all__ = ["SessionAuth", "get_session_auth", "get_session_id"]
