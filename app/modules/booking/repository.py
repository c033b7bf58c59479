"""Booking repository layer."""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import BookingStatusEnum, RefundStatusEnum, ReservationRejectionEnum
from app.modules.booking.models import Booking
from app.modules.scheduling.models import AvailabilitySlot

BookingFactory = Callable[[AvailabilitySlot], Booking]

FOLLOW_UP_REFUND_STATUSES = (RefundStatusEnum.FAILED, RefundStatusEnum.MANUAL_REVIEW)


class BookingRepository:
    """DB operations for booking domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_slot_by_id(self, slot_id: UUID) -> AvailabilitySlot | None:
        stmt = select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id)
        return await self.session.scalar(stmt)

    async def count_active_bookings(self, slot_id: UUID) -> int:
        stmt = select(func.count(Booking.id)).where(
            Booking.slot_id == slot_id,
            Booking.status != BookingStatusEnum.CANCELLED,
        )
        return int((await self.session.scalar(stmt)) or 0)

    async def insert_booking_if_capacity_available(
        self,
        slot_id: UUID,
        booking_factory: BookingFactory,
    ) -> tuple[ReservationRejectionEnum | None, Booking | None]:
        """Lock the slot row, re-count active bookings and insert while holding the lock.

        Concurrent reservations of the same slot serialise on the row lock
        until the surrounding transaction ends.
        """
        stmt = select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id).with_for_update()
        slot = await self.session.scalar(stmt)
        if slot is None:
            return ReservationRejectionEnum.SLOT_NOT_FOUND, None
        if not slot.is_available:
            return ReservationRejectionEnum.SLOT_UNAVAILABLE, None

        active = await self.count_active_bookings(slot.id)
        if active >= slot.capacity:
            return ReservationRejectionEnum.SLOT_FULL, None

        booking = booking_factory(slot)
        booking.slot = slot
        self.session.add(booking)
        await self.session.flush()
        return None, booking

    async def get_booking_by_id(self, booking_id: UUID, *, for_update: bool = False) -> Booking | None:
        stmt = (
            select(Booking)
            .options(selectinload(Booking.slot), selectinload(Booking.service))
            .where(Booking.id == booking_id)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Booking)
        return await self.session.scalar(stmt)

    async def list_bookings(
        self,
        *,
        client_id: UUID | None,
        slot_id: UUID | None,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking).options(selectinload(Booking.slot))
        if client_id is not None:
            base_stmt = base_stmt.where(Booking.client_id == client_id)
        if slot_id is not None:
            base_stmt = base_stmt.where(Booking.slot_id == slot_id)
        if status is not None:
            base_stmt = base_stmt.where(Booking.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Booking.created_at.desc()).limit(limit).offset(offset)
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def list_failed_refunds(self, limit: int, offset: int) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = (
            select(Booking)
            .options(selectinload(Booking.slot))
            .where(Booking.refund_status.in_(FOLLOW_UP_REFUND_STATUSES))
        )
        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Booking.cancelled_at.desc()).limit(limit).offset(offset)
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def save(self, booking: Booking) -> Booking:
        await self.session.flush()
        return booking
