"""Catalog schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SalonServiceCreate(BaseModel):
    """Create salon service request."""

    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    duration_minutes: int = Field(default=60, ge=5, le=24 * 60)


class SalonServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    duration_minutes: int | None = Field(default=None, ge=5, le=24 * 60)
    is_active: bool | None = None


class SalonServiceRead(BaseModel):
    """Salon service response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    price: Decimal
    duration_minutes: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
