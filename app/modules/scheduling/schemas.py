"""Scheduling schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.enums import WeekdayEnum

MAX_SLOT_CAPACITY = 50


class SlotCreate(BaseModel):
    """Create availability slot request."""

    slot_date: date
    start_time: time
    end_time: time
    capacity: int = Field(default=1, ge=1, le=MAX_SLOT_CAPACITY)
    created_by: UUID

    @model_validator(mode="after")
    def validate_window(self) -> "SlotCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotUpdate(BaseModel):
    """Admin edit of an existing slot."""

    slot_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    capacity: int | None = Field(default=None, ge=1, le=MAX_SLOT_CAPACITY)


class SlotDuplicateRequest(BaseModel):
    target_date: date


class SlotAvailabilityUpdate(BaseModel):
    is_available: bool


class SlotRead(BaseModel):
    """Availability slot response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slot_date: date
    start_time: time
    end_time: time
    capacity: int
    is_available: bool
    created_by: UUID
    recurring_pattern_id: UUID | None
    created_at: datetime
    updated_at: datetime


class SlotAvailabilityRead(SlotRead):
    """Slot with current active-booking count."""

    active_bookings: int
    remaining_capacity: int


class SlotDeletionRead(BaseModel):
    slot_id: UUID
    deleted: bool
    cancelled_bookings: int


class RecurringPatternCreate(BaseModel):
    """Create recurring pattern request."""

    name: str = Field(min_length=1, max_length=128)
    days_of_week: list[WeekdayEnum] = Field(min_length=1)
    start_time: time
    end_time: time
    capacity: int = Field(default=1, ge=1, le=MAX_SLOT_CAPACITY)
    weeks_ahead: int = Field(default=4, ge=1)
    created_by: UUID

    @field_validator("days_of_week")
    @classmethod
    def dedupe_days(cls, value: list[WeekdayEnum]) -> list[WeekdayEnum]:
        return [day for day in WeekdayEnum if day in set(value)]

    @model_validator(mode="after")
    def validate_window(self) -> "RecurringPatternCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class RecurringPatternUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    days_of_week: list[WeekdayEnum] | None = Field(default=None, min_length=1)
    start_time: time | None = None
    end_time: time | None = None
    capacity: int | None = Field(default=None, ge=1, le=MAX_SLOT_CAPACITY)
    weeks_ahead: int | None = Field(default=None, ge=1)


class RecurringPatternActiveUpdate(BaseModel):
    is_active: bool


class RecurringPatternRead(BaseModel):
    """Recurring pattern response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    days_of_week: list[WeekdayEnum]
    start_time: time
    end_time: time
    capacity: int
    weeks_ahead: int
    is_active: bool
    created_by: UUID
    created_at: datetime
    updated_at: datetime


class SweepSummaryRead(BaseModel):
    """Result of one expansion sweep over all active patterns."""

    patterns_processed: int
    slots_created: int
    failed_patterns: list[UUID] = Field(default_factory=list)
