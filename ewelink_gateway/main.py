"""
FastAPI application entrypoint for the eWeLink gateway.
"""

from __future__ import annotations

from fastapi import FastAPI

from ewelink_gateway.api.routes import router as api_router
from ewelink_gateway.core.config import get_settings
from ewelink_gateway.core.errors import register_exception_handlers
from ewelink_gateway.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="eWeLink Timer Gateway",
        version="0.1.0",
        description="Local OAuth gateway for eWeLink device control and delayed timers.",
    )
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
