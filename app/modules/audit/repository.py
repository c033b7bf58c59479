"""Audit repository layer."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import savepoint
from app.core.enums import OutboxStatusEnum
from app.modules.audit.models import AuditLog, OutboxEvent


class AuditRepository:
    """Audit trail writes and the notification outbox queue."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def isolated(self) -> AsyncIterator[None]:
        async with savepoint(self.session):
            yield

    async def create_audit_log(
        self,
        actor: str | None,
        action: str,
        entity_type: str,
        entity_id: str | None,
        payload: dict | None,
    ) -> AuditLog:
        log = AuditLog(
            actor=actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=payload or {},
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def list_audit_logs(
        self,
        limit: int,
        offset: int,
        *,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        since: datetime | None = None,
    ) -> tuple[list[AuditLog], int]:
        conditions = []
        if action is not None:
            conditions.append(AuditLog.action == action)
        if entity_type is not None:
            conditions.append(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            conditions.append(AuditLog.entity_id == entity_id)
        if since is not None:
            conditions.append(AuditLog.created_at >= since)

        total = int((await self.session.scalar(select(func.count(AuditLog.id)).where(*conditions))) or 0)
        stmt = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc(), AuditLog.id)
            .limit(limit)
            .offset(offset)
        )
        return list((await self.session.scalars(stmt)).all()), total

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
    ) -> OutboxEvent:
        event = OutboxEvent(
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=payload,
            status=OutboxStatusEnum.PENDING,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_pending_outbox(self, limit: int) -> list[OutboxEvent]:
        stmt = self._pending_stmt(limit)
        return list((await self.session.scalars(stmt)).all())

    async def claim_pending_outbox(self, limit: int) -> list[OutboxEvent]:
        """Oldest pending events, skipping rows another worker has locked."""
        stmt = self._pending_stmt(limit).with_for_update(skip_locked=True)
        return list((await self.session.scalars(stmt)).all())

    async def list_failed_outbox(self, limit: int, max_retries: int) -> list[OutboxEvent]:
        """Failed events that still have retries left."""
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatusEnum.FAILED, OutboxEvent.retries < max_retries)
            .order_by(OutboxEvent.updated_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list((await self.session.scalars(stmt)).all())

    async def mark_outbox_pending(self, event: OutboxEvent) -> OutboxEvent:
        return await self._transition(event, OutboxStatusEnum.PENDING)

    async def mark_outbox_processed(self, event: OutboxEvent, processed_at: datetime) -> OutboxEvent:
        return await self._transition(event, OutboxStatusEnum.PROCESSED, processed_at=processed_at)

    async def mark_outbox_failed(self, event: OutboxEvent, error_message: str) -> OutboxEvent:
        event.retries += 1
        return await self._transition(event, OutboxStatusEnum.FAILED, error_message=error_message)

    async def count_outbox_by_status(self) -> dict[OutboxStatusEnum, int]:
        stmt = select(OutboxEvent.status, func.count()).group_by(OutboxEvent.status)
        return {status: int(count) for status, count in (await self.session.execute(stmt)).all()}

    async def count_failed_outbox(self, max_retries: int) -> tuple[int, int]:
        """``(retryable, dead_letter)`` counts of failed events."""
        failed = OutboxEvent.status == OutboxStatusEnum.FAILED
        stmt = select(
            func.count().filter(failed, OutboxEvent.retries < max_retries),
            func.count().filter(failed, OutboxEvent.retries >= max_retries),
        )
        retryable, dead_letter = (await self.session.execute(stmt)).one()
        return int(retryable or 0), int(dead_letter or 0)

    @staticmethod
    def _pending_stmt(limit: int):
        return (
            select(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatusEnum.PENDING)
            .order_by(OutboxEvent.occurred_at)
            .limit(limit)
        )

    async def _transition(
        self,
        event: OutboxEvent,
        status: OutboxStatusEnum,
        *,
        processed_at: datetime | None = None,
        error_message: str | None = None,
    ) -> OutboxEvent:
        event.status = status
        event.processed_at = processed_at
        event.error_message = error_message
        await self.session.flush()
        return event
