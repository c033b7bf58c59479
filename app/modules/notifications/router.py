"""Notifications API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.security import require_admin
from app.modules.notifications.schemas import DeliveryMetricsRead, NotificationRead, NotificationStatusUpdate
from app.modules.notifications.service import NotificationsService, get_notifications_service
from app.shared.pagination import Page, PageRequest, page_request, paginate

router = APIRouter(prefix="/notifications", tags=["notifications"], dependencies=[Depends(require_admin)])


@router.get("/recipients/{recipient_id}", response_model=Page[NotificationRead])
async def list_recipient_notifications(
    recipient_id: UUID,
    template_key: str | None = Query(default=None, max_length=64),
    page: PageRequest = Depends(page_request),
    service: NotificationsService = Depends(get_notifications_service),
) -> Page[NotificationRead]:
    """Messages sent to one client, newest first."""
    items, total = await service.list_for_recipient(recipient_id, page.limit, page.offset, template_key)
    return paginate([NotificationRead.model_validate(item) for item in items], total, page)


@router.patch("/{notification_id}/status", response_model=NotificationRead)
async def update_notification_status(
    notification_id: UUID,
    payload: NotificationStatusUpdate,
    service: NotificationsService = Depends(get_notifications_service),
) -> NotificationRead:
    notification = await service.update_status(notification_id, payload.status)
    return NotificationRead.model_validate(notification)


@router.get("/delivery", response_model=DeliveryMetricsRead)
async def delivery_metrics(
    max_retries: int = Query(default=5, ge=1, le=100),
    service: NotificationsService = Depends(get_notifications_service),
) -> DeliveryMetricsRead:
    """Delivery pipeline health by status."""
    return await service.get_delivery_metrics(max_retries=max_retries)
