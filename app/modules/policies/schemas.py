"""Cancellation policy schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PolicyTierCreate(BaseModel):
    """Create refund tier request."""

    hours_before: int = Field(ge=0)
    refund_percentage: int = Field(ge=0, le=100)
    is_active: bool = True


class PolicyTierUpdate(BaseModel):
    """Partial update of a refund tier."""

    hours_before: int | None = Field(default=None, ge=0)
    refund_percentage: int | None = Field(default=None, ge=0, le=100)
    is_active: bool | None = None
    display_order: int | None = Field(default=None, ge=0)


class PolicyTierRead(BaseModel):
    """Refund tier response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    hours_before: int
    refund_percentage: int
    is_active: bool
    display_order: int
    label: str
    created_at: datetime
    updated_at: datetime


class PolicyRangeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hours_from: int
    hours_to: int | None
    refund_percentage: int
    description: str


class RefundQuoteRead(BaseModel):
    """Refund a client would receive if cancelling now."""

    booking_id: UUID
    refund_percentage: int
    refund_amount: Decimal
    hours_notice: float
    payment_collected: bool
