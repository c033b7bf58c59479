"""Audit schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import OutboxStatusEnum


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    actor: str | None
    action: str
    entity_type: str
    entity_id: str | None
    payload: dict


class OutboxEventRead(BaseModel):
    """Queued notification request as seen by the outbox worker."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type: str
    aggregate_type: str
    aggregate_id: str
    status: OutboxStatusEnum
    retries: int
    error_message: str | None
    occurred_at: datetime
    processed_at: datetime | None
    payload: dict
