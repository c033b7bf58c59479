from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from uuid import UUID, uuid4

import pytest

import app.modules.scheduling.service as scheduling_service_module
from app.core.config import Settings
from app.core.enums import BookingStatusEnum, NotificationTemplateEnum, PaymentStatusEnum, RefundStatusEnum
from app.modules.booking.models import Booking
from app.modules.scheduling.models import AvailabilitySlot, RecurringPattern
from app.modules.scheduling.schemas import (
    RecurringPatternCreate,
    RecurringPatternUpdate,
    SlotCreate,
    SlotUpdate,
)
from app.modules.scheduling.service import SchedulingService
from app.shared.exceptions import BusinessRuleException, ConflictException

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
ADMIN_ID = UUID("00000000-0000-0000-0000-00000000a001")


class FakeSchedulingRepository:
    def __init__(self) -> None:
        self.slots: dict[UUID, AvailabilitySlot] = {}
        self.bookings: list[Booking] = []
        self.patterns: dict[UUID, RecurringPattern] = {}
        self.deleted_slots: list[UUID] = []

    async def create_slot(self, **values) -> AvailabilitySlot:
        slot = AvailabilitySlot(id=uuid4(), is_available=True, **values)
        self.slots[slot.id] = slot
        return slot

    async def get_slot_by_id(self, slot_id: UUID) -> AvailabilitySlot | None:
        return self.slots.get(slot_id)

    async def find_slot_by_date_time_range(self, slot_date, start_time, end_time) -> AvailabilitySlot | None:
        for slot in self.slots.values():
            if (slot.slot_date, slot.start_time, slot.end_time) == (slot_date, start_time, end_time):
                return slot
        return None

    async def list_active_bookings(self, slot_id: UUID) -> list[Booking]:
        return [
            booking
            for booking in self.bookings
            if booking.slot_id == slot_id
            and booking.status in (BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED)
        ]

    async def has_any_bookings(self, slot_id: UUID) -> bool:
        return any(booking.slot_id == slot_id for booking in self.bookings)

    async def save_slot(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        self.slots[slot.id] = slot
        return slot

    async def delete_slot(self, slot: AvailabilitySlot) -> None:
        self.slots.pop(slot.id, None)
        self.deleted_slots.append(slot.id)

    async def create_pattern(self, **values) -> RecurringPattern:
        pattern = RecurringPattern(id=uuid4(), is_active=True, **values)
        self.patterns[pattern.id] = pattern
        return pattern

    async def get_pattern_by_id(self, pattern_id: UUID) -> RecurringPattern | None:
        return self.patterns.get(pattern_id)

    async def save_pattern(self, pattern: RecurringPattern) -> RecurringPattern:
        self.patterns[pattern.id] = pattern
        return pattern


@dataclass
class FakeNotifier:
    sent: list[tuple[NotificationTemplateEnum, UUID, dict]] = field(default_factory=list)

    async def notify(self, template_key, recipient, context) -> None:
        self.sent.append((template_key, recipient, context))


class FakeAuditRepository:
    def __init__(self) -> None:
        self.actions: list[str] = []

    async def create_audit_log(self, actor, action, entity_type, entity_id, payload) -> None:
        self.actions.append(action)


def make_service(monkeypatch: pytest.MonkeyPatch) -> tuple[SchedulingService, FakeSchedulingRepository, FakeNotifier]:
    monkeypatch.setattr(scheduling_service_module, "utc_now", lambda: NOW)
    repository = FakeSchedulingRepository()
    notifier = FakeNotifier()
    service = SchedulingService(
        repository=repository,  # type: ignore[arg-type]
        notifier=notifier,
        audit_repository=FakeAuditRepository(),  # type: ignore[arg-type]
    )
    service.settings = Settings(_env_file=None, salon_timezone="UTC")
    return service, repository, notifier


def slot_payload(day: date = date(2026, 3, 5), capacity: int = 2) -> SlotCreate:
    return SlotCreate(
        slot_date=day,
        start_time=time(10, 0),
        end_time=time(11, 0),
        capacity=capacity,
        created_by=ADMIN_ID,
    )


def add_booking(
    repository: FakeSchedulingRepository,
    slot: AvailabilitySlot,
    *,
    paid: bool = False,
    status: BookingStatusEnum = BookingStatusEnum.CONFIRMED,
) -> Booking:
    booking = Booking(
        id=uuid4(),
        slot_id=slot.id,
        client_id=uuid4(),
        service_id=uuid4(),
        status=status,
        payment_status=PaymentStatusEnum.PAID if paid else PaymentStatusEnum.UNPAID,
        refund_status=RefundStatusEnum.NONE,
    )
    repository.bookings.append(booking)
    return booking


@pytest.mark.asyncio
async def test_create_slot_rejects_duplicate_key(monkeypatch: pytest.MonkeyPatch) -> None:
    service, _, _ = make_service(monkeypatch)
    await service.create_slot(slot_payload())

    with pytest.raises(ConflictException):
        await service.create_slot(slot_payload())


@pytest.mark.asyncio
async def test_create_slot_rejects_past_start(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, _ = make_service(monkeypatch)

    with pytest.raises(BusinessRuleException):
        await service.create_slot(slot_payload(day=date(2026, 3, 1)))
    assert repository.slots == {}


@pytest.mark.asyncio
async def test_duplicate_slot_copies_window_and_capacity(monkeypatch: pytest.MonkeyPatch) -> None:
    service, _, _ = make_service(monkeypatch)
    source = await service.create_slot(slot_payload(capacity=3))

    copy = await service.duplicate_slot(source.id, date(2026, 3, 12))

    assert copy.id != source.id
    assert copy.slot_date == date(2026, 3, 12)
    assert (copy.start_time, copy.end_time, copy.capacity) == (time(10, 0), time(11, 0), 3)
    with pytest.raises(ConflictException):
        await service.duplicate_slot(source.id, date(2026, 3, 12))


@pytest.mark.asyncio
async def test_capacity_cannot_drop_below_active_bookings(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, _ = make_service(monkeypatch)
    slot = await service.create_slot(slot_payload(capacity=3))
    add_booking(repository, slot)
    add_booking(repository, slot)
    add_booking(repository, slot, status=BookingStatusEnum.CANCELLED)

    with pytest.raises(BusinessRuleException):
        await service.update_slot(slot.id, SlotUpdate(capacity=1))

    updated = await service.update_slot(slot.id, SlotUpdate(capacity=2))
    assert updated.capacity == 2


@pytest.mark.asyncio
async def test_moving_slot_notifies_active_clients(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, notifier = make_service(monkeypatch)
    slot = await service.create_slot(slot_payload())
    booking = add_booking(repository, slot)
    add_booking(repository, slot, status=BookingStatusEnum.CANCELLED)

    await service.update_slot(slot.id, SlotUpdate(start_time=time(14, 0), end_time=time(15, 0)))

    assert len(notifier.sent) == 1
    template_key, recipient, context = notifier.sent[0]
    assert template_key == NotificationTemplateEnum.SLOT_CHANGED
    assert recipient == booking.client_id
    assert context["change_type"] == "rescheduled"
    assert context["start_time"] == "10:00"
    assert context["new_start_time"] == "14:00"


@pytest.mark.asyncio
async def test_capacity_only_edit_does_not_notify(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, notifier = make_service(monkeypatch)
    slot = await service.create_slot(slot_payload())
    add_booking(repository, slot)

    await service.update_slot(slot.id, SlotUpdate(capacity=4))

    assert notifier.sent == []


@pytest.mark.asyncio
async def test_moving_onto_existing_slot_conflicts(monkeypatch: pytest.MonkeyPatch) -> None:
    service, _, _ = make_service(monkeypatch)
    await service.create_slot(slot_payload(day=date(2026, 3, 6)))
    slot = await service.create_slot(slot_payload())

    with pytest.raises(ConflictException):
        await service.update_slot(slot.id, SlotUpdate(slot_date=date(2026, 3, 6)))


@pytest.mark.asyncio
async def test_delete_slot_with_active_bookings_requires_force(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, _ = make_service(monkeypatch)
    slot = await service.create_slot(slot_payload())
    booking = add_booking(repository, slot)

    with pytest.raises(ConflictException):
        await service.delete_slot(slot.id)
    assert booking.status == BookingStatusEnum.CONFIRMED
    assert slot.id in repository.slots


@pytest.mark.asyncio
async def test_forced_delete_cancels_and_flags_paid_bookings(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, notifier = make_service(monkeypatch)
    slot = await service.create_slot(slot_payload())
    paid = add_booking(repository, slot, paid=True)
    unpaid = add_booking(repository, slot, status=BookingStatusEnum.PENDING)

    deleted, cancelled = await service.delete_slot(slot.id, force=True)

    assert (deleted, cancelled) == (False, 2)
    assert slot.is_available is False
    assert repository.deleted_slots == []
    assert paid.status == BookingStatusEnum.CANCELLED
    assert paid.refund_status == RefundStatusEnum.MANUAL_REVIEW
    assert unpaid.refund_status == RefundStatusEnum.NOT_REQUIRED
    assert paid.cancelled_at == NOW
    assert {context["change_type"] for _, _, context in notifier.sent} == {"cancelled"}
    assert len(notifier.sent) == 2


@pytest.mark.asyncio
async def test_unbooked_slot_is_deleted(monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository, _ = make_service(monkeypatch)
    slot = await service.create_slot(slot_payload())

    deleted, cancelled = await service.delete_slot(slot.id)

    assert (deleted, cancelled) == (True, 0)
    assert repository.deleted_slots == [slot.id]


@pytest.mark.asyncio
async def test_pattern_weeks_ahead_is_capped(monkeypatch: pytest.MonkeyPatch) -> None:
    service, _, _ = make_service(monkeypatch)
    payload = RecurringPatternCreate(
        name="Late opening",
        days_of_week=["thursday", "monday", "thursday"],
        start_time=time(18, 0),
        end_time=time(19, 0),
        capacity=2,
        weeks_ahead=60,
        created_by=ADMIN_ID,
    )

    with pytest.raises(BusinessRuleException):
        await service.create_pattern(payload)

    pattern = await service.create_pattern(payload.model_copy(update={"weeks_ahead": 8}))
    assert pattern.days_of_week == ["monday", "thursday"]

    with pytest.raises(BusinessRuleException):
        await service.update_pattern(pattern.id, RecurringPatternUpdate(start_time=time(20, 0)))
