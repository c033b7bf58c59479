"""Notifications business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import NotificationStatusEnum, OutboxStatusEnum
from app.modules.audit.repository import AuditRepository
from app.modules.notifications.models import Notification
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.schemas import DeliveryMetricsRead, NotificationCounts, OutboxCounts
from app.shared.exceptions import NotFoundException
from app.shared.utils import utc_now


class NotificationsService:
    """Client notification history and delivery pipeline health."""

    def __init__(
        self,
        repository: NotificationsRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.repository = repository
        self.audit_repository = audit_repository

    async def update_status(self, notification_id: UUID, status: NotificationStatusEnum) -> Notification:
        notification = await self.repository.get_notification_by_id(notification_id)
        if notification is None:
            raise NotFoundException("Notification not found")
        sent_at = utc_now() if status == NotificationStatusEnum.SENT else None
        return await self.repository.set_status(notification, status, sent_at)

    async def list_for_recipient(
        self,
        recipient_id: UUID,
        limit: int,
        offset: int,
        template_key: str | None = None,
    ) -> tuple[list[Notification], int]:
        return await self.repository.list_for_recipient(recipient_id, limit, offset, template_key)

    async def get_delivery_metrics(self, max_retries: int) -> DeliveryMetricsRead:
        """Counts by status; failed outbox events split by whether retries remain."""
        by_status = await self.repository.count_by_status()
        outbox_by_status = await self.audit_repository.count_outbox_by_status()
        retryable, dead_letter = await self.audit_repository.count_failed_outbox(max_retries)

        notifications = NotificationCounts(
            total=sum(by_status.values()),
            pending=by_status.get(NotificationStatusEnum.PENDING, 0),
            sent=by_status.get(NotificationStatusEnum.SENT, 0),
            failed=by_status.get(NotificationStatusEnum.FAILED, 0),
        )
        outbox = OutboxCounts(
            total=sum(outbox_by_status.values()),
            pending=outbox_by_status.get(OutboxStatusEnum.PENDING, 0),
            processed=outbox_by_status.get(OutboxStatusEnum.PROCESSED, 0),
            failed=outbox_by_status.get(OutboxStatusEnum.FAILED, 0),
            retryable=retryable,
            dead_letter=dead_letter,
        )
        return DeliveryMetricsRead(notifications=notifications, outbox=outbox, max_retries=max_retries)


async def get_notifications_service(session: AsyncSession = Depends(get_db_session)) -> NotificationsService:
    return NotificationsService(
        repository=NotificationsRepository(session),
        audit_repository=AuditRepository(session),
    )
