"""Scheduling ORM models."""

from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin

if TYPE_CHECKING:
    from app.modules.booking.models import Booking


class AvailabilitySlot(BaseModelMixin, Base):
    """Bookable time window on one calendar date with finite capacity."""

    __tablename__ = "availability_slots"
    __table_args__ = (
        UniqueConstraint("slot_date", "start_time", "end_time", name="uq_availability_slots_slot_key"),
        CheckConstraint("capacity > 0 AND capacity <= 50", name="capacity_range"),
        CheckConstraint("start_time < end_time", name="time_window"),
    )

    slot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    recurring_pattern_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("recurring_patterns.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    bookings: Mapped[list[Booking]] = relationship(back_populates="slot")


class RecurringPattern(BaseModelMixin, Base):
    """Weekly template that generates slots over a future horizon."""

    __tablename__ = "recurring_patterns"
    __table_args__ = (
        CheckConstraint("capacity > 0 AND capacity <= 50", name="capacity_range"),
        CheckConstraint("start_time < end_time", name="time_window"),
        CheckConstraint("weeks_ahead >= 1", name="weeks_ahead_positive"),
    )

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    days_of_week: Mapped[list[str]] = mapped_column(JSONB, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    weeks_ahead: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_by: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False)
