"""Liveness, readiness and Prometheus scrape endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, Response, status
from sqlalchemy import text

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.metrics import build_metrics_response
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ops"])


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    """Process is up; does not touch the database."""
    return {"status": "ok"}


async def _is_database_ready() -> bool:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database readiness check failed")
        return False
    return True


@router.get("/ready")
async def readiness_check() -> dict[str, str]:
    """Ready to take bookings: the database answers queries."""
    if not await _is_database_ready():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database is not ready")
    return {
        "status": "ready",
        "database": "ok",
        "payment_gateway": get_settings().payment_gateway_backend,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    return build_metrics_response()
