from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from uuid import uuid4

import pytest

from app.core.enums import NotificationStatusEnum, NotificationTemplateEnum, OutboxStatusEnum
from app.modules.notifications.notifier import OutboxNotifier, notify_safely
from app.modules.notifications.service import NotificationsService


@dataclass
class FakeNotificationsRepository:
    notification_counts: dict[NotificationStatusEnum, int]

    async def count_by_status(self) -> dict[NotificationStatusEnum, int]:
        return self.notification_counts


@dataclass
class FakeAuditRepository:
    outbox_counts: dict[OutboxStatusEnum, int]
    retryable_failed: int = 0
    dead_letter: int = 0

    async def count_outbox_by_status(self) -> dict[OutboxStatusEnum, int]:
        return self.outbox_counts

    async def count_failed_outbox(self, max_retries: int) -> tuple[int, int]:
        return self.retryable_failed, self.dead_letter


def make_service(
    notification_counts: dict[NotificationStatusEnum, int],
    audit_repository: FakeAuditRepository,
) -> NotificationsService:
    return NotificationsService(
        repository=FakeNotificationsRepository(notification_counts),  # type: ignore[arg-type]
        audit_repository=audit_repository,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_delivery_metrics_aggregates_notifications_and_outbox_counts() -> None:
    service = make_service(
        {
            NotificationStatusEnum.PENDING: 3,
            NotificationStatusEnum.SENT: 7,
            NotificationStatusEnum.FAILED: 2,
        },
        FakeAuditRepository(
            outbox_counts={
                OutboxStatusEnum.PENDING: 4,
                OutboxStatusEnum.PROCESSED: 10,
                OutboxStatusEnum.FAILED: 5,
            },
            retryable_failed=3,
            dead_letter=2,
        ),
    )

    metrics = await service.get_delivery_metrics(max_retries=5)

    assert metrics.notifications.total == 12
    assert metrics.notifications.sent == 7
    assert metrics.notifications.failed == 2
    assert metrics.outbox.total == 19
    assert metrics.outbox.processed == 10
    assert metrics.outbox.retryable == 3
    assert metrics.outbox.dead_letter == 2
    assert metrics.max_retries == 5


@pytest.mark.asyncio
async def test_delivery_metrics_defaults_missing_statuses_to_zero() -> None:
    service = make_service({}, FakeAuditRepository(outbox_counts={OutboxStatusEnum.PENDING: 1}))

    metrics = await service.get_delivery_metrics(max_retries=3)

    assert metrics.notifications.total == 0
    assert metrics.notifications.pending == 0
    assert metrics.outbox.total == 1
    assert metrics.outbox.pending == 1
    assert metrics.outbox.failed == 0


class FakeSession:
    def __init__(self) -> None:
        self.savepoints = 0

    @asynccontextmanager
    async def begin_nested(self):
        self.savepoints += 1
        yield self


@dataclass
class FakeOutboxRepository:
    session: FakeSession = field(default_factory=FakeSession)
    fail: bool = False
    events: list[dict] = field(default_factory=list)

    async def create_outbox_event(self, aggregate_type, aggregate_id, event_type, payload) -> None:
        if self.fail:
            raise RuntimeError("outbox insert failed")
        self.events.append({"aggregate_id": aggregate_id, "event_type": event_type, "payload": payload})


@pytest.mark.asyncio
async def test_outbox_notifier_queues_event_in_savepoint() -> None:
    repository = FakeOutboxRepository()
    recipient = uuid4()

    await OutboxNotifier(repository).notify(  # type: ignore[arg-type]
        NotificationTemplateEnum.BOOKING_CREATED,
        recipient,
        {"date": "2026-03-05"},
    )

    assert repository.session.savepoints == 1
    event = repository.events[0]
    assert event["event_type"] == "booking-created"
    assert event["aggregate_id"] == str(recipient)
    assert event["payload"] == {"recipient_id": str(recipient), "date": "2026-03-05"}


@pytest.mark.asyncio
async def test_notify_safely_swallows_notifier_failure() -> None:
    notifier = OutboxNotifier(FakeOutboxRepository(fail=True))  # type: ignore[arg-type]

    delivered = await notify_safely(notifier, NotificationTemplateEnum.APPOINTMENT_CANCELLED, uuid4(), {})

    assert delivered is False
