"""Notifications repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import NotificationStatusEnum
from app.modules.notifications.models import Notification


class NotificationsRepository:
    """DB operations for client notifications."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_notification(
        self,
        recipient_id: UUID,
        template_key: str,
        title: str,
        body: str,
        context: dict,
        channel: str = "email",
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            template_key=template_key,
            channel=channel,
            title=title,
            body=body,
            context=context,
            status=NotificationStatusEnum.PENDING,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_notification_by_id(self, notification_id: UUID) -> Notification | None:
        return await self.session.get(Notification, notification_id)

    async def list_for_recipient(
        self,
        recipient_id: UUID,
        limit: int,
        offset: int,
        template_key: str | None = None,
    ) -> tuple[list[Notification], int]:
        conditions = [Notification.recipient_id == recipient_id]
        if template_key is not None:
            conditions.append(Notification.template_key == template_key)

        total = int((await self.session.scalar(select(func.count(Notification.id)).where(*conditions))) or 0)
        stmt = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list((await self.session.scalars(stmt)).all()), total

    async def mark_sent(self, notification: Notification, sent_at: datetime) -> Notification:
        return await self.set_status(notification, NotificationStatusEnum.SENT, sent_at)

    async def set_status(
        self,
        notification: Notification,
        status: NotificationStatusEnum,
        sent_at: datetime | None = None,
    ) -> Notification:
        notification.status = status
        notification.sent_at = sent_at
        await self.session.flush()
        return notification

    async def count_by_status(self) -> dict[NotificationStatusEnum, int]:
        stmt = select(Notification.status, func.count()).group_by(Notification.status)
        return {status: int(count) for status, count in (await self.session.execute(stmt)).all()}
