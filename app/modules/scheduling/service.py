"""Scheduling business logic layer."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import BookingStatusEnum, NotificationTemplateEnum, PaymentStatusEnum, RefundStatusEnum
from app.modules.audit.repository import AuditRepository
from app.modules.notifications.notifier import Notifier, OutboxNotifier, notify_safely
from app.modules.scheduling.expander import RecurringScheduleExpander, SweepSummary
from app.modules.scheduling.models import AvailabilitySlot, RecurringPattern
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.schemas import (
    RecurringPatternCreate,
    RecurringPatternUpdate,
    SlotCreate,
    SlotUpdate,
)
from app.shared.exceptions import BusinessRuleException, ConflictException, NotFoundException
from app.shared.utils import combine_local, utc_now

logger = logging.getLogger(__name__)

SLOT_REMOVED_REASON = "Slot removed by salon"


def slot_context(slot: AvailabilitySlot, prefix: str = "") -> dict[str, str]:
    """Slot fields as notification template variables."""
    return {
        f"{prefix}date": slot.slot_date.isoformat(),
        f"{prefix}start_time": slot.start_time.strftime("%H:%M"),
        f"{prefix}end_time": slot.end_time.strftime("%H:%M"),
    }


def available_capacity(slot: AvailabilitySlot, active_bookings: int) -> int:
    """Seats left on a slot, never negative."""
    if not slot.is_available:
        return 0
    return max(0, slot.capacity - active_bookings)


class SchedulingService:
    """Slot and recurring pattern management."""

    def __init__(
        self,
        repository: SchedulingRepository,
        notifier: Notifier,
        audit_repository: AuditRepository | None = None,
        expander: RecurringScheduleExpander | None = None,
    ) -> None:
        self.settings = get_settings()
        self.repository = repository
        self.notifier = notifier
        self.audit_repository = audit_repository
        self.expander = expander or RecurringScheduleExpander(repository)

    async def create_slot(self, payload: SlotCreate) -> AvailabilitySlot:
        """Create a single slot; the date/time key must be unused."""
        self._validate_capacity(payload.capacity)
        self._ensure_future(payload.slot_date, payload.start_time)
        await self._ensure_key_free(payload.slot_date, payload.start_time, payload.end_time)
        slot = await self.repository.create_slot(
            slot_date=payload.slot_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            capacity=payload.capacity,
            created_by=payload.created_by,
        )
        await self._audit("scheduling.slot.create", slot.id, slot_context(slot))
        return slot

    async def duplicate_slot(self, slot_id: UUID, target_date: date) -> AvailabilitySlot:
        """Copy window and capacity of an existing slot onto another date."""
        source = await self._get_slot(slot_id)
        self._ensure_future(target_date, source.start_time)
        await self._ensure_key_free(target_date, source.start_time, source.end_time)
        slot = await self.repository.create_slot(
            slot_date=target_date,
            start_time=source.start_time,
            end_time=source.end_time,
            capacity=source.capacity,
            created_by=source.created_by,
        )
        await self._audit("scheduling.slot.duplicate", slot.id, {"source_slot_id": str(source.id)})
        return slot

    async def update_slot(self, slot_id: UUID, payload: SlotUpdate) -> AvailabilitySlot:
        """Edit date, window or capacity; clients of moved slots are notified."""
        slot = await self._get_slot(slot_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        new_date = changes.get("slot_date", slot.slot_date)
        new_start = changes.get("start_time", slot.start_time)
        new_end = changes.get("end_time", slot.end_time)
        new_capacity = changes.get("capacity", slot.capacity)

        if new_end <= new_start:
            raise BusinessRuleException("Slot end_time must be after start_time")
        self._validate_capacity(new_capacity)

        active = await self.repository.list_active_bookings(slot.id)
        if new_capacity < len(active):
            raise BusinessRuleException(
                f"Capacity cannot be reduced below the {len(active)} active bookings",
            )

        moved = (new_date, new_start, new_end) != (slot.slot_date, slot.start_time, slot.end_time)
        if moved:
            await self._ensure_key_free(new_date, new_start, new_end, ignore_slot_id=slot.id)

        previous = slot_context(slot)
        slot.slot_date = new_date
        slot.start_time = new_start
        slot.end_time = new_end
        slot.capacity = new_capacity
        await self.repository.save_slot(slot)
        await self._audit("scheduling.slot.update", slot.id, {**previous, **slot_context(slot, "new_")})

        if moved:
            for booking in active:
                await notify_safely(
                    self.notifier,
                    NotificationTemplateEnum.SLOT_CHANGED,
                    booking.client_id,
                    {
                        "booking_id": str(booking.id),
                        "change_type": "rescheduled",
                        **previous,
                        **slot_context(slot, "new_"),
                    },
                )
        return slot

    async def set_availability(self, slot_id: UUID, is_available: bool) -> AvailabilitySlot:
        """Open or close a slot for new bookings; existing bookings are kept."""
        slot = await self._get_slot(slot_id)
        slot.is_available = is_available
        await self.repository.save_slot(slot)
        await self._audit("scheduling.slot.availability", slot.id, {"is_available": is_available})
        return slot

    async def delete_slot(self, slot_id: UUID, force: bool = False) -> tuple[bool, int]:
        """Delete a slot, returning ``(deleted, cancelled_bookings)``.

        Active bookings block deletion unless ``force`` is set, in which case
        they are cancelled without a refund calculation. Paid ones are flagged
        for manual refund review. A slot that still has booking rows is
        retired instead of deleted.
        """
        slot = await self._get_slot(slot_id)
        active = await self.repository.list_active_bookings(slot.id)
        if active and not force:
            raise ConflictException(
                f"Slot has {len(active)} active bookings; pass force=true to cancel them",
            )

        now = utc_now()
        context = slot_context(slot)
        for booking in active:
            booking.status = BookingStatusEnum.CANCELLED
            booking.cancelled_at = now
            booking.cancellation_reason = SLOT_REMOVED_REASON
            if booking.payment_status == PaymentStatusEnum.PAID:
                booking.refund_status = RefundStatusEnum.MANUAL_REVIEW
            else:
                booking.refund_status = RefundStatusEnum.NOT_REQUIRED

        if await self.repository.has_any_bookings(slot.id):
            slot.is_available = False
            await self.repository.save_slot(slot)
            deleted = False
        else:
            await self.repository.delete_slot(slot)
            deleted = True

        await self._audit(
            "scheduling.slot.delete",
            slot_id,
            {**context, "deleted": deleted, "cancelled_bookings": len(active)},
        )
        logger.info("Slot %s removed (deleted=%s, cancelled_bookings=%s)", slot_id, deleted, len(active))

        for booking in active:
            await notify_safely(
                self.notifier,
                NotificationTemplateEnum.SLOT_CHANGED,
                booking.client_id,
                {
                    "booking_id": str(booking.id),
                    "change_type": "cancelled",
                    "refund_status": str(booking.refund_status),
                    **context,
                },
            )
        return deleted, len(active)

    async def list_slots(
        self,
        *,
        date_from: date | None = None,
        date_to: date | None = None,
        only_available: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[tuple[AvailabilitySlot, int]], int]:
        """Slots paired with their active-booking counts."""
        slots, total = await self.repository.list_slots(
            date_from=date_from,
            date_to=date_to,
            only_available=only_available,
            limit=limit,
            offset=offset,
        )
        counts = await self.repository.count_active_bookings_by_slot([slot.id for slot in slots])
        return [(slot, counts.get(slot.id, 0)) for slot in slots], total

    async def create_pattern(self, payload: RecurringPatternCreate) -> RecurringPattern:
        self._validate_capacity(payload.capacity)
        self._validate_weeks_ahead(payload.weeks_ahead)
        pattern = await self.repository.create_pattern(
            name=payload.name,
            days_of_week=[str(day) for day in payload.days_of_week],
            start_time=payload.start_time,
            end_time=payload.end_time,
            capacity=payload.capacity,
            weeks_ahead=payload.weeks_ahead,
            created_by=payload.created_by,
        )
        await self._audit("scheduling.pattern.create", pattern.id, {"name": pattern.name})
        return pattern

    async def update_pattern(self, pattern_id: UUID, payload: RecurringPatternUpdate) -> RecurringPattern:
        """Edit a pattern; already generated slots are left as they are."""
        pattern = await self._get_pattern(pattern_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        start_time = changes.get("start_time", pattern.start_time)
        end_time = changes.get("end_time", pattern.end_time)
        if end_time <= start_time:
            raise BusinessRuleException("Pattern end_time must be after start_time")
        if "capacity" in changes:
            self._validate_capacity(changes["capacity"])
        if "weeks_ahead" in changes:
            self._validate_weeks_ahead(changes["weeks_ahead"])
        if "days_of_week" in changes:
            changes["days_of_week"] = [str(day) for day in changes["days_of_week"]]

        for field, value in changes.items():
            setattr(pattern, field, value)
        await self.repository.save_pattern(pattern)
        await self._audit("scheduling.pattern.update", pattern.id, {"fields": sorted(changes)})
        return pattern

    async def set_pattern_active(self, pattern_id: UUID, is_active: bool) -> RecurringPattern:
        pattern = await self._get_pattern(pattern_id)
        pattern.is_active = is_active
        await self.repository.save_pattern(pattern)
        await self._audit("scheduling.pattern.active", pattern.id, {"is_active": is_active})
        return pattern

    async def delete_pattern(self, pattern_id: UUID) -> None:
        pattern = await self._get_pattern(pattern_id)
        await self._audit("scheduling.pattern.delete", pattern.id, {"name": pattern.name})
        await self.repository.delete_pattern(pattern)

    async def list_patterns(self) -> list[RecurringPattern]:
        return await self.repository.list_patterns()

    async def run_sweep(self, as_of: date | None = None) -> SweepSummary:
        """Expand all active patterns now."""
        return await self.expander.sweep(as_of)

    async def _get_slot(self, slot_id: UUID) -> AvailabilitySlot:
        slot = await self.repository.get_slot_by_id(slot_id)
        if slot is None:
            raise NotFoundException("Slot not found")
        return slot

    async def _get_pattern(self, pattern_id: UUID) -> RecurringPattern:
        pattern = await self.repository.get_pattern_by_id(pattern_id)
        if pattern is None:
            raise NotFoundException("Recurring pattern not found")
        return pattern

    async def _ensure_key_free(
        self,
        slot_date: date,
        start_time,
        end_time,
        ignore_slot_id: UUID | None = None,
    ) -> None:
        existing = await self.repository.find_slot_by_date_time_range(slot_date, start_time, end_time)
        if existing is not None and existing.id != ignore_slot_id:
            raise ConflictException("A slot with the same date and time already exists")

    def _ensure_future(self, slot_date: date, start_time) -> None:
        if combine_local(slot_date, start_time, self.settings.salon_zone) <= utc_now():
            raise BusinessRuleException("Slot start must be in the future")

    def _validate_capacity(self, capacity: int) -> None:
        if not 1 <= capacity <= self.settings.slot_max_capacity:
            raise BusinessRuleException(
                f"Slot capacity must be between 1 and {self.settings.slot_max_capacity}",
            )

    def _validate_weeks_ahead(self, weeks_ahead: int) -> None:
        if not 1 <= weeks_ahead <= self.settings.recurring_max_weeks_ahead:
            raise BusinessRuleException(
                f"weeks_ahead must be between 1 and {self.settings.recurring_max_weeks_ahead}",
            )

    async def _audit(self, action: str, entity_id: UUID, payload: dict[str, Any]) -> None:
        if self.audit_repository is None:
            return
        await self.audit_repository.create_audit_log(
            actor="admin",
            action=action,
            entity_type="availability_slot" if ".slot." in action else "recurring_pattern",
            entity_id=str(entity_id),
            payload=payload,
        )


async def get_scheduling_service(session: AsyncSession = Depends(get_db_session)) -> SchedulingService:
    """Dependency provider for scheduling service."""
    audit_repository = AuditRepository(session)
    return SchedulingService(
        repository=SchedulingRepository(session),
        notifier=OutboxNotifier(audit_repository),
        audit_repository=audit_repository,
    )
