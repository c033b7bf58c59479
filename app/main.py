"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import Settings, get_settings
from app.core.database import close_engine
from app.core.health import router as health_router
from app.core.logs import configure_logging
from app.core.metrics import instrument_http_request
from app.modules.audit.router import router as audit_router
from app.modules.booking.router import router as booking_router
from app.modules.catalog.router import router as catalog_router
from app.modules.notifications.router import router as notifications_router
from app.modules.policies.router import router as policies_router
from app.modules.scheduling.router import router as scheduling_router
from app.shared.exceptions import register_exception_handlers

logger = logging.getLogger(__name__)

API_ROUTERS = (
    scheduling_router,
    booking_router,
    policies_router,
    catalog_router,
    notifications_router,
    audit_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    logger.info(
        "Starting %s (env=%s, salon_timezone=%s, payment_gateway=%s)",
        settings.app_name,
        settings.app_env,
        settings.salon_timezone,
        settings.payment_gateway_backend,
    )
    yield
    logger.info("Shutting down %s", settings.app_name)
    await close_engine()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the booking API with every module router mounted under the API prefix."""
    settings = settings or get_settings()
    application = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    application.state.settings = settings
    application.middleware("http")(instrument_http_request)
    register_exception_handlers(application)

    application.include_router(health_router)
    for router in API_ROUTERS:
        application.include_router(router, prefix=settings.api_prefix)
    return application


app = create_app()
