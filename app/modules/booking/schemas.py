"""Booking schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import BookingStatusEnum, PaymentStatusEnum, RefundStatusEnum
from app.modules.booking.models import REASON_MAX_LENGTH


class BookingCreateRequest(BaseModel):
    """Book appointment request."""

    client_id: UUID
    slot_id: UUID
    service_id: UUID


class BookingCancelRequest(BaseModel):
    """Cancel booking request."""

    reason: str | None = Field(default=None, max_length=REASON_MAX_LENGTH)


class BookingPaymentRequest(BaseModel):
    """Payment captured by the processor for a booking."""

    payment_reference: str = Field(min_length=1, max_length=128)


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slot_id: UUID
    client_id: UUID
    service_id: UUID
    status: BookingStatusEnum
    payment_status: PaymentStatusEnum
    payment_reference: str | None
    price_charged: Decimal
    refund_status: RefundStatusEnum
    refund_percentage: int | None
    refund_amount: Decimal | None
    refund_reference: str | None
    refund_failure_reason: str | None
    hours_notice: float | None
    cancellation_reason: str | None
    confirmed_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    refunded_at: datetime | None
    created_at: datetime
    updated_at: datetime


class CancellationRead(BaseModel):
    """Cancelled booking with the refund decision applied to it."""

    booking: BookingRead
    refund_percentage: int
    refund_amount: Decimal
    hours_notice: float
    refund_status: RefundStatusEnum
