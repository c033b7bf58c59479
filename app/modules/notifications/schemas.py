"""Notifications schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import NotificationStatusEnum


class NotificationStatusUpdate(BaseModel):
    """Delivery outcome reported back by the transport."""

    status: NotificationStatusEnum


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    recipient_id: UUID
    template_key: str
    channel: str
    status: NotificationStatusEnum
    title: str
    body: str
    created_at: datetime
    sent_at: datetime | None


class NotificationCounts(BaseModel):
    total: int
    pending: int
    sent: int
    failed: int


class OutboxCounts(BaseModel):
    total: int
    pending: int
    processed: int
    failed: int
    retryable: int
    dead_letter: int


class DeliveryMetricsRead(BaseModel):
    """Snapshot of the notification pipeline, from outbox to sent message."""

    notifications: NotificationCounts
    outbox: OutboxCounts
    max_retries: int
