"""
FastAPI routes for the eWeLink gateway.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse, Response

from ewelink_gateway.core.config import SUPPORTED_REGIONS, AppSettings
from ewelink_gateway.core.errors import (
    InvalidOAuthStateError,
    RequestValidationFailure,
)
from ewelink_gateway.dependencies import (
    SessionAuth,
    get_app_settings,
    get_credential_store,
    get_ewelink_client,
    get_oauth_state_encoder,
    get_session_auth,
    get_session_binder,
    get_session_cookie_signer,
    get_session_id,
    get_timer_orchestrator,
)
from ewelink_gateway.models.credentials import CredentialRecord
from ewelink_gateway.schemas import ControlRequest, TimerRequest, VerifyTimerRequest
from ewelink_gateway.services.session_binder import new_session_id
from ewelink_gateway.services.timers import format_timer_instant

router = APIRouter()
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, value: str, settings: AppSettings) -> None:
    response.set_cookie(
        key=settings.session.cookie_name,
        value=value,
        httponly=True,
        secure=settings.session.cookie_secure,
        samesite="lax",
        max_age=settings.session.max_age_seconds,
        path="/",
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"error": 0, "status": "ok"}


@router.get("/login")
async def start_login(
    session_id: Annotated[str | None, Depends(get_session_id)],
    ewelink_client: Annotated[Any, Depends(get_ewelink_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    signer: Annotated[Any, Depends(get_session_cookie_signer)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Response:
    """Redirect the browser to the eWeLink consent page."""
    if not session_id:
        session_id = new_session_id()
    state = state_encoder.issue(session_id)
    response = RedirectResponse(
        url=ewelink_client.build_login_url(state), status_code=HTTPStatus.FOUND
    )
    _set_session_cookie(response, signer.sign(session_id), settings)
    return response


@router.get("/redirectUrl")
async def complete_login(
    session_id: Annotated[str | None, Depends(get_session_id)],
    ewelink_client: Annotated[Any, Depends(get_ewelink_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    binder: Annotated[Any, Depends(get_session_binder)],
    credential_store: Annotated[Any, Depends(get_credential_store)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    code: str | None = Query(None, description="Authorization code from eWeLink."),
    region: str | None = Query(None, description="Region the account lives in."),
    state: str | None = Query(None, description="State issued by /login."),
) -> Response:
    """OAuth callback: exchange the code, bind the session and store tokens."""
    if not code:
        raise RequestValidationFailure("Missing authorization code")
    if not state:
        raise InvalidOAuthStateError("Missing OAuth state.")
    state_encoder.verify(state, session_id)

    account_region = (region or settings.ewelink.region).strip().lower()
    if account_region not in SUPPORTED_REGIONS:
        raise RequestValidationFailure(f"Unsupported region: {region}")

    grant = await ewelink_client.exchange_authorization_code(code, account_region)
    user_id = binder.bind(session_id)
    credential_store.put(
        user_id,
        CredentialRecord.from_grant(user_id=user_id, region=account_region, grant=grant),
    )
    logger.info("Stored eWeLink credential for user %s (region %s)", user_id, account_region)

    return RedirectResponse(url=settings.post_login_redirect, status_code=HTTPStatus.FOUND)


@router.post("/logout")
async def logout(
    session_id: Annotated[str | None, Depends(get_session_id)],
    binder: Annotated[Any, Depends(get_session_binder)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Response:
    """Revoke the session; the stored credential is left in place."""
    if session_id:
        binder.unbind(session_id)
    response = JSONResponse(content={"error": 0})
    response.delete_cookie(settings.session.cookie_name, path="/")
    return response


@router.post("/control")
async def control_device(
    payload: ControlRequest,
    auth: Annotated[SessionAuth, Depends(get_session_auth)],
    ewelink_client: Annotated[Any, Depends(get_ewelink_client)],
) -> dict:
    """Switch a device (or one of its outlets) on or off."""
    payload.require_fields("device_id", "switch")
    token = await auth.access_token()
    return await ewelink_client.set_switch(
        token.value, token.region, payload.device_id, payload.switch, payload.outlet
    )


@router.post("/set-timer")
async def set_timer(
    payload: TimerRequest,
    auth: Annotated[SessionAuth, Depends(get_session_auth)],
    orchestrator: Annotated[Any, Depends(get_timer_orchestrator)],
) -> dict:
    """Schedule a delayed switch-off on a device."""
    payload.require_fields("device_id", "minutes")
    delay = payload.require_positive_delay()
    token = await auth.access_token()

    descriptor = orchestrator.create_timer(
        payload.device_id,
        delay,
        channel_count=payload.channel_count,
        outlet=payload.outlet,
    )
    result = await orchestrator.submit_timer(
        token.value, token.region, payload.device_id, descriptor
    )
    logger.info(
        "Timer %s accepted for device %s, fires at %s",
        descriptor.timer_id,
        descriptor.device_id,
        descriptor.execute_at.isoformat(),
    )
    return {
        "error": 0,
        "timerId": descriptor.timer_id,
        "executeAt": format_timer_instant(descriptor.execute_at),
        "data": result.get("data") or {},
    }


@router.post("/verify-timer")
async def verify_timer(
    payload: VerifyTimerRequest,
    auth: Annotated[SessionAuth, Depends(get_session_auth)],
    orchestrator: Annotated[Any, Depends(get_timer_orchestrator)],
) -> dict:
    """Report whether a previously submitted timer is live on the device."""
    payload.require_fields("device_id", "timer_id")
    token = await auth.access_token()
    verification = await orchestrator.verify_timer(
        token.value, token.region, payload.device_id, payload.timer_id
    )
    return {
        "error": 0,
        "present": verification.present,
        "timers": verification.timers,
    }


@router.get("/devices")
async def list_devices(
    auth: Annotated[SessionAuth, Depends(get_session_auth)],
    ewelink_client: Annotated[Any, Depends(get_ewelink_client)],
) -> dict:
    """List every device on the caller's eWeLink account."""
    token = await auth.access_token()
    things = await ewelink_client.list_things(token.value, token.region)
    return {"error": 0, "devices": things}
