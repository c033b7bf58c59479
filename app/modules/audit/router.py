"""Audit API router."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.security import require_admin
from app.modules.audit.schemas import AuditLogRead, OutboxEventRead
from app.modules.audit.service import AuditService, get_audit_service
from app.shared.pagination import Page, PageRequest, page_request, paginate

router = APIRouter(prefix="/audit", tags=["audit"], dependencies=[Depends(require_admin)])


@router.get("/logs", response_model=Page[AuditLogRead])
async def list_logs(
    action: str | None = Query(default=None, max_length=128),
    entity_type: str | None = Query(default=None, max_length=128),
    since: datetime | None = Query(default=None),
    page: PageRequest = Depends(page_request),
    service: AuditService = Depends(get_audit_service),
) -> Page[AuditLogRead]:
    """Audit entries, newest first."""
    items, total = await service.list_logs(
        page.limit,
        page.offset,
        action=action,
        entity_type=entity_type,
        since=since,
    )
    return paginate([AuditLogRead.model_validate(item) for item in items], total, page)


@router.get("/bookings/{booking_id}", response_model=Page[AuditLogRead])
async def booking_history(
    booking_id: UUID,
    page: PageRequest = Depends(page_request),
    service: AuditService = Depends(get_audit_service),
) -> Page[AuditLogRead]:
    """Everything recorded about one booking: creation, transitions, cancellation, refund failures."""
    items, total = await service.booking_history(booking_id, page.limit, page.offset)
    return paginate([AuditLogRead.model_validate(item) for item in items], total, page)


@router.get("/outbox/pending", response_model=list[OutboxEventRead])
async def list_pending_outbox(
    limit: int = Query(default=100, ge=1, le=500),
    service: AuditService = Depends(get_audit_service),
) -> list[OutboxEventRead]:
    items = await service.list_pending_outbox(limit=limit)
    return [OutboxEventRead.model_validate(item) for item in items]
