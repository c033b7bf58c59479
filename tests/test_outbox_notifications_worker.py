from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from app.core.enums import NotificationStatusEnum, OutboxStatusEnum
from app.modules.notifications.outbox_worker import NotificationsOutboxWorker, retry_delay


@dataclass
class FakeOutboxEvent:
    id: UUID
    event_type: str
    payload: dict
    status: OutboxStatusEnum = OutboxStatusEnum.PENDING
    retries: int = 0
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None
    error_message: str | None = None


@dataclass
class FakeNotification:
    id: UUID
    recipient_id: UUID
    template_key: str
    channel: str
    title: str
    body: str
    context: dict
    status: NotificationStatusEnum = NotificationStatusEnum.PENDING
    sent_at: datetime | None = None


class FakeAuditRepository:
    def __init__(self, events: list[FakeOutboxEvent]) -> None:
        self.events = events

    @asynccontextmanager
    async def isolated(self):
        yield

    async def claim_pending_outbox(self, limit: int) -> list[FakeOutboxEvent]:
        return [event for event in self.events if event.status == OutboxStatusEnum.PENDING][:limit]

    async def list_failed_outbox(self, limit: int, max_retries: int) -> list[FakeOutboxEvent]:
        return [
            event
            for event in self.events
            if event.status == OutboxStatusEnum.FAILED and event.retries < max_retries
        ][:limit]

    async def mark_outbox_pending(self, event: FakeOutboxEvent) -> FakeOutboxEvent:
        event.status = OutboxStatusEnum.PENDING
        event.error_message = None
        event.updated_at = datetime.now(UTC)
        return event

    async def mark_outbox_processed(
        self,
        event: FakeOutboxEvent,
        processed_at: datetime,
    ) -> FakeOutboxEvent:
        event.status = OutboxStatusEnum.PROCESSED
        event.processed_at = processed_at
        event.error_message = None
        event.updated_at = processed_at
        return event

    async def mark_outbox_failed(
        self,
        event: FakeOutboxEvent,
        error_message: str,
    ) -> FakeOutboxEvent:
        event.status = OutboxStatusEnum.FAILED
        event.retries += 1
        event.error_message = error_message
        event.updated_at = datetime.now(UTC)
        return event


class FakeNotificationsRepository:
    def __init__(self) -> None:
        self.notifications: list[FakeNotification] = []

    async def create_notification(
        self,
        recipient_id: UUID,
        template_key: str,
        title: str,
        body: str,
        context: dict,
        channel: str = "email",
    ) -> FakeNotification:
        notification = FakeNotification(
            id=uuid4(),
            recipient_id=recipient_id,
            template_key=template_key,
            channel=channel,
            title=title,
            body=body,
            context=context,
        )
        self.notifications.append(notification)
        return notification

    async def mark_sent(self, notification: FakeNotification, sent_at: datetime) -> FakeNotification:
        notification.status = NotificationStatusEnum.SENT
        notification.sent_at = sent_at
        return notification


def make_worker(
    events: list[FakeOutboxEvent],
    *,
    now: datetime | None = None,
    base_backoff_seconds: int = 30,
) -> tuple[NotificationsOutboxWorker, FakeAuditRepository, FakeNotificationsRepository]:
    now_point = now or datetime.now(UTC)
    audit_repo = FakeAuditRepository(events)
    notifications_repo = FakeNotificationsRepository()
    worker = NotificationsOutboxWorker(
        audit_repository=audit_repo,  # type: ignore[arg-type]
        notifications_repository=notifications_repo,  # type: ignore[arg-type]
        now_provider=lambda: now_point,
        base_backoff_seconds=base_backoff_seconds,
    )
    return worker, audit_repo, notifications_repo


def slot_payload(client_id: UUID, **extra: object) -> dict:
    return {
        "recipient_id": str(client_id),
        "booking_id": str(uuid4()),
        "date": "2026-03-05",
        "start_time": "10:00",
        "end_time": "11:00",
        **extra,
    }


@pytest.mark.asyncio
async def test_worker_turns_booking_created_into_notification() -> None:
    client_id = uuid4()
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="booking-created",
        payload=slot_payload(client_id, service_name="Haircut"),
    )
    worker, _, notifications_repo = make_worker(
        [event],
        now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC),
    )

    stats = await worker.run_once()

    assert stats == {"requeued": 0, "processed": 1, "failed": 0, "dispatched": 1}
    assert event.status == OutboxStatusEnum.PROCESSED
    notification = notifications_repo.notifications[0]
    assert notification.recipient_id == client_id
    assert notification.template_key == "booking-created"
    assert notification.status == NotificationStatusEnum.SENT
    assert "2026-03-05 10:00-11:00" in notification.body


@pytest.mark.asyncio
async def test_cancellation_message_mentions_successful_refund() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="appointment-cancelled",
        payload=slot_payload(uuid4(), refund_status="succeeded", refund_amount="40.00", refund_percentage=50),
    )
    worker, _, notifications_repo = make_worker([event], now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC))

    await worker.run_once()

    body = notifications_repo.notifications[0].body
    assert "has been cancelled" in body
    assert "$40.00 (50%)" in body


@pytest.mark.asyncio
async def test_cancellation_message_flags_refund_under_review() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="appointment-cancelled",
        payload=slot_payload(uuid4(), refund_status="failed", refund_amount="40.00", refund_percentage=50),
    )
    worker, _, notifications_repo = make_worker([event], now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC))

    await worker.run_once()

    assert "being reviewed" in notifications_repo.notifications[0].body


@pytest.mark.asyncio
async def test_slot_changed_message_describes_new_time() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="slot-changed",
        payload=slot_payload(
            uuid4(),
            change_type="rescheduled",
            new_date="2026-03-06",
            new_start_time="12:00",
            new_end_time="13:00",
        ),
    )
    worker, _, notifications_repo = make_worker([event], now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC))

    await worker.run_once()

    assert notifications_repo.notifications[0].body.endswith("moved to 2026-03-06 12:00-13:00.")


@pytest.mark.asyncio
async def test_worker_processes_unknown_event_without_dispatch() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="unknown.event",
        payload={},
    )
    worker, _, notifications_repo = make_worker(
        [event],
        now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC),
    )

    stats = await worker.run_once()

    assert stats == {"requeued": 0, "processed": 1, "failed": 0, "dispatched": 0}
    assert event.status == OutboxStatusEnum.PROCESSED
    assert notifications_repo.notifications == []


@pytest.mark.asyncio
async def test_worker_requeues_failed_event_after_backoff() -> None:
    now_point = datetime(2026, 2, 23, 12, 0, tzinfo=UTC)
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="appointment-cancelled",
        payload=slot_payload(uuid4(), refund_status="not_required"),
        status=OutboxStatusEnum.FAILED,
        retries=1,
        occurred_at=now_point - timedelta(minutes=10),
        updated_at=now_point - timedelta(minutes=2),
    )
    worker, _, notifications_repo = make_worker(
        [event],
        now=now_point,
        base_backoff_seconds=30,
    )

    stats = await worker.run_once()

    assert stats["requeued"] == 1
    assert stats["processed"] == 1
    assert event.status == OutboxStatusEnum.PROCESSED
    assert len(notifications_repo.notifications) == 1


@pytest.mark.asyncio
async def test_worker_keeps_failed_event_until_backoff_elapses() -> None:
    now_point = datetime(2026, 2, 23, 12, 0, tzinfo=UTC)
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="booking-created",
        payload=slot_payload(uuid4()),
        status=OutboxStatusEnum.FAILED,
        retries=2,
        updated_at=now_point - timedelta(seconds=10),
    )
    worker, _, notifications_repo = make_worker([event], now=now_point, base_backoff_seconds=30)

    stats = await worker.run_once()

    assert stats["requeued"] == 0
    assert event.status == OutboxStatusEnum.FAILED
    assert notifications_repo.notifications == []


@pytest.mark.asyncio
async def test_worker_marks_event_failed_when_recipient_missing() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="booking-created",
        payload={},
    )
    worker, _, notifications_repo = make_worker(
        [event],
        now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC),
    )

    stats = await worker.run_once()

    assert stats["processed"] == 0
    assert stats["failed"] == 1
    assert event.status == OutboxStatusEnum.FAILED
    assert event.retries == 1
    assert notifications_repo.notifications == []


@pytest.mark.asyncio
async def test_bad_event_does_not_block_rest_of_batch() -> None:
    client_id = uuid4()
    broken = FakeOutboxEvent(id=uuid4(), event_type="slot-changed", payload={"date": "2026-03-05"})
    healthy = FakeOutboxEvent(id=uuid4(), event_type="booking-created", payload=slot_payload(client_id))
    worker, _, notifications_repo = make_worker([broken, healthy], now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC))

    stats = await worker.run_once()

    assert stats == {"requeued": 0, "processed": 1, "failed": 1, "dispatched": 1}
    assert broken.status == OutboxStatusEnum.FAILED
    assert healthy.status == OutboxStatusEnum.PROCESSED
    assert [n.recipient_id for n in notifications_repo.notifications] == [client_id]


@pytest.mark.asyncio
async def test_salon_cancellation_message_flags_manual_refund() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="slot-changed",
        payload=slot_payload(uuid4(), change_type="cancelled", refund_status="manual_review"),
    )
    worker, _, notifications_repo = make_worker([event], now=datetime(2026, 2, 23, 12, 0, tzinfo=UTC))

    await worker.run_once()

    notification = notifications_repo.notifications[0]
    assert notification.title == "Appointment cancelled"
    assert "cancelled by the salon" in notification.body
    assert "being reviewed" in notification.body


def test_retry_delay_doubles_until_cap() -> None:
    assert retry_delay(0, 30, 300) == timedelta(seconds=30)
    assert retry_delay(1, 30, 300) == timedelta(seconds=30)
    assert retry_delay(3, 30, 300) == timedelta(seconds=120)
    assert retry_delay(10, 30, 300) == timedelta(seconds=300)
