"""Booking ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Enum as SAEnum, Float, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import BookingStatusEnum, PaymentStatusEnum, RefundStatusEnum

if TYPE_CHECKING:
    from app.modules.catalog.models import SalonService
    from app.modules.scheduling.models import AvailabilitySlot

REASON_MAX_LENGTH = 512


class Booking(BaseModelMixin, Base):
    """Client appointment occupying one seat of a slot."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("price_charged >= 0", name="price_charged_non_negative"),
        CheckConstraint(
            "refund_percentage IS NULL OR (refund_percentage >= 0 AND refund_percentage <= 100)",
            name="refund_percentage_range",
        ),
    )

    slot_id: Mapped[UUID] = mapped_column(
        ForeignKey("availability_slots.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    service_id: Mapped[UUID] = mapped_column(
        ForeignKey("salon_services.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    payment_status: Mapped[PaymentStatusEnum] = mapped_column(
        SAEnum(PaymentStatusEnum, name="payment_status_enum", native_enum=False),
        default=PaymentStatusEnum.UNPAID,
        nullable=False,
    )
    payment_reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    price_charged: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    refund_status: Mapped[RefundStatusEnum] = mapped_column(
        SAEnum(RefundStatusEnum, name="refund_status_enum", native_enum=False),
        default=RefundStatusEnum.NONE,
        nullable=False,
        index=True,
    )
    refund_percentage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    refund_reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    refund_failure_reason: Mapped[str | None] = mapped_column(String(REASON_MAX_LENGTH), nullable=True)
    hours_notice: Mapped[float | None] = mapped_column(Float, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(REASON_MAX_LENGTH), nullable=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    slot: Mapped["AvailabilitySlot"] = relationship(back_populates="bookings")
    service: Mapped["SalonService"] = relationship()

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatusEnum.CANCELLED
