"""Audit business logic layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.audit.models import AuditLog, OutboxEvent
from app.modules.audit.repository import AuditRepository


class AuditService:
    """Read access to the audit trail and the notification outbox."""

    def __init__(self, repository: AuditRepository) -> None:
        self.repository = repository

    async def list_logs(
        self,
        limit: int,
        offset: int,
        *,
        action: str | None = None,
        entity_type: str | None = None,
        since: datetime | None = None,
    ) -> tuple[list[AuditLog], int]:
        """Newest entries first, e.g. only ``refund.failed`` since last week."""
        return await self.repository.list_audit_logs(
            limit,
            offset,
            action=action,
            entity_type=entity_type,
            since=since,
        )

    async def booking_history(self, booking_id: UUID, limit: int, offset: int) -> tuple[list[AuditLog], int]:
        return await self.repository.list_audit_logs(
            limit,
            offset,
            entity_type="booking",
            entity_id=str(booking_id),
        )

    async def list_pending_outbox(self, limit: int) -> list[OutboxEvent]:
        return await self.repository.list_pending_outbox(limit)


async def get_audit_service(session: AsyncSession = Depends(get_db_session)) -> AuditService:
    return AuditService(AuditRepository(session))
