"""Scheduling repository layer."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from datetime import date, time
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import savepoint
from app.core.enums import BookingStatusEnum
from app.modules.booking.models import Booking
from app.modules.scheduling.models import AvailabilitySlot, RecurringPattern
from app.shared.utils import utc_now

OPEN_BOOKING_STATUSES = (BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED)


class SchedulingRepository:
    """DB access for slots and recurring patterns."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def isolated(self) -> AbstractAsyncContextManager[AsyncSession]:
        return savepoint(self.session)

    async def create_slot(
        self,
        *,
        slot_date: date,
        start_time: time,
        end_time: time,
        capacity: int,
        created_by: UUID,
        recurring_pattern_id: UUID | None = None,
    ) -> AvailabilitySlot:
        slot = AvailabilitySlot(
            slot_date=slot_date,
            start_time=start_time,
            end_time=end_time,
            capacity=capacity,
            is_available=True,
            created_by=created_by,
            recurring_pattern_id=recurring_pattern_id,
        )
        self.session.add(slot)
        await self.session.flush()
        return slot

    async def get_slot_by_id(self, slot_id: UUID) -> AvailabilitySlot | None:
        stmt = select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id)
        return await self.session.scalar(stmt)

    async def find_slot_by_date_time_range(
        self,
        slot_date: date,
        start_time: time,
        end_time: time,
    ) -> AvailabilitySlot | None:
        stmt = select(AvailabilitySlot).where(
            AvailabilitySlot.slot_date == slot_date,
            AvailabilitySlot.start_time == start_time,
            AvailabilitySlot.end_time == end_time,
        )
        return await self.session.scalar(stmt)

    async def list_existing_slot_dates(
        self,
        dates: Iterable[date],
        start_time: time,
        end_time: time,
    ) -> set[date]:
        """Return which of ``dates`` already hold a slot with this exact window."""
        candidates = list(dates)
        if not candidates:
            return set()
        stmt = select(AvailabilitySlot.slot_date).where(
            AvailabilitySlot.slot_date.in_(candidates),
            AvailabilitySlot.start_time == start_time,
            AvailabilitySlot.end_time == end_time,
        )
        return set((await self.session.scalars(stmt)).all())

    async def batch_insert_slots(self, rows: list[dict[str, Any]]) -> int:
        """Insert slots in one statement, skipping rows whose key already exists.

        Returns the number of rows actually inserted.
        """
        if not rows:
            return 0
        now = utc_now()
        values = [
            {
                "id": uuid4(),
                "created_at": now,
                "updated_at": now,
                "is_available": True,
                **row,
            }
            for row in rows
        ]
        stmt = (
            pg_insert(AvailabilitySlot)
            .values(values)
            .on_conflict_do_nothing(index_elements=["slot_date", "start_time", "end_time"])
            .returning(AvailabilitySlot.id)
        )
        result = await self.session.execute(stmt)
        return len(result.scalars().all())

    async def list_slots(
        self,
        *,
        date_from: date | None,
        date_to: date | None,
        only_available: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[AvailabilitySlot], int]:
        base_stmt: Select[tuple[AvailabilitySlot]] = select(AvailabilitySlot)
        if date_from is not None:
            base_stmt = base_stmt.where(AvailabilitySlot.slot_date >= date_from)
        if date_to is not None:
            base_stmt = base_stmt.where(AvailabilitySlot.slot_date <= date_to)
        if only_available:
            base_stmt = base_stmt.where(AvailabilitySlot.is_available.is_(True))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.order_by(AvailabilitySlot.slot_date.asc(), AvailabilitySlot.start_time.asc())
            .limit(limit)
            .offset(offset)
        )
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def count_active_bookings_by_slot(self, slot_ids: list[UUID]) -> dict[UUID, int]:
        if not slot_ids:
            return {}
        stmt = (
            select(Booking.slot_id, func.count(Booking.id))
            .where(
                Booking.slot_id.in_(slot_ids),
                Booking.status != BookingStatusEnum.CANCELLED,
            )
            .group_by(Booking.slot_id)
        )
        rows = (await self.session.execute(stmt)).all()
        return {slot_id: int(count) for slot_id, count in rows}

    async def list_active_bookings(self, slot_id: UUID) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.slot_id == slot_id, Booking.status.in_(OPEN_BOOKING_STATUSES))
            .order_by(Booking.created_at.asc())
            .with_for_update()
        )
        return list((await self.session.scalars(stmt)).all())

    async def has_any_bookings(self, slot_id: UUID) -> bool:
        stmt = select(func.count(Booking.id)).where(Booking.slot_id == slot_id)
        return int((await self.session.scalar(stmt)) or 0) > 0

    async def save_slot(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        await self.session.flush()
        return slot

    async def delete_slot(self, slot: AvailabilitySlot) -> None:
        await self.session.execute(delete(AvailabilitySlot).where(AvailabilitySlot.id == slot.id))
        await self.session.flush()

    async def create_pattern(
        self,
        *,
        name: str,
        days_of_week: list[str],
        start_time: time,
        end_time: time,
        capacity: int,
        weeks_ahead: int,
        created_by: UUID,
    ) -> RecurringPattern:
        pattern = RecurringPattern(
            name=name,
            days_of_week=days_of_week,
            start_time=start_time,
            end_time=end_time,
            capacity=capacity,
            weeks_ahead=weeks_ahead,
            is_active=True,
            created_by=created_by,
        )
        self.session.add(pattern)
        await self.session.flush()
        return pattern

    async def get_pattern_by_id(self, pattern_id: UUID) -> RecurringPattern | None:
        stmt = select(RecurringPattern).where(RecurringPattern.id == pattern_id)
        return await self.session.scalar(stmt)

    async def list_patterns(self) -> list[RecurringPattern]:
        stmt = select(RecurringPattern).order_by(RecurringPattern.created_at.asc())
        return list((await self.session.scalars(stmt)).all())

    async def list_active_patterns(self) -> list[RecurringPattern]:
        stmt = (
            select(RecurringPattern)
            .where(RecurringPattern.is_active.is_(True))
            .order_by(RecurringPattern.created_at.asc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def save_pattern(self, pattern: RecurringPattern) -> RecurringPattern:
        await self.session.flush()
        return pattern

    async def delete_pattern(self, pattern: RecurringPattern) -> None:
        """Generated slots stay; their pattern link is cleared by the FK."""
        await self.session.delete(pattern)
        await self.session.flush()
