"""Outbox consumer that materializes notification requests into notifications."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from app.modules.audit.models import OutboxEvent
from app.modules.audit.repository import AuditRepository
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.templates import render
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchStats:
    requeued: int = 0
    processed: int = 0
    failed: int = 0
    dispatched: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def retry_delay(retries: int, base_seconds: int, cap_seconds: int) -> timedelta:
    """Exponential backoff after the ``retries``-th failure, capped."""
    exponent = max(retries, 1) - 1
    return timedelta(seconds=min(cap_seconds, base_seconds * 2**exponent))


class NotificationsOutboxWorker:
    """Drain pending outbox events into sent client notifications.

    Each event is handled in its own savepoint: a failing event is marked
    failed and retried on a later cycle once its backoff has elapsed, while
    the rest of the batch goes through.
    """

    def __init__(
        self,
        audit_repository: AuditRepository,
        notifications_repository: NotificationsRepository,
        *,
        batch_size: int = 100,
        max_retries: int = 5,
        base_backoff_seconds: int = 30,
        max_backoff_seconds: int = 300,
        now_provider=utc_now,
    ) -> None:
        self.audit_repository = audit_repository
        self.notifications_repository = notifications_repository
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.now_provider = now_provider

    async def run_once(self) -> dict[str, int]:
        """Requeue due retries, then dispatch one batch of pending events."""
        stats = DispatchStats()
        stats.requeued = await self._requeue_due_retries()

        for event in await self.audit_repository.claim_pending_outbox(limit=self.batch_size):
            try:
                async with self.audit_repository.isolated():
                    stats.dispatched += await self._dispatch(event)
            except Exception as exc:
                logger.warning("Outbox event %s (%s) failed: %s", event.id, event.event_type, exc)
                await self.audit_repository.mark_outbox_failed(event, str(exc))
                stats.failed += 1
            else:
                await self.audit_repository.mark_outbox_processed(event, self.now_provider())
                stats.processed += 1
        return stats.as_dict()

    async def _dispatch(self, event: OutboxEvent) -> int:
        message = render(event.event_type, event.payload or {})
        if message is None:
            logger.debug("Outbox event %s has no notification template", event.event_type)
            return 0
        notification = await self.notifications_repository.create_notification(
            recipient_id=message.recipient_id,
            template_key=message.template_key,
            channel=message.channel,
            title=message.title,
            body=message.body,
            context=message.context,
        )
        await self.notifications_repository.mark_sent(notification, self.now_provider())
        return 1

    async def _requeue_due_retries(self) -> int:
        now = self.now_provider()
        failed = await self.audit_repository.list_failed_outbox(
            limit=self.batch_size,
            max_retries=self.max_retries,
        )
        due = [event for event in failed if now >= self._next_attempt_at(event)]
        for event in due:
            await self.audit_repository.mark_outbox_pending(event)
        return len(due)

    def _next_attempt_at(self, event: OutboxEvent) -> datetime:
        last_attempt_at = event.updated_at or event.occurred_at
        return last_attempt_at + retry_delay(event.retries, self.base_backoff_seconds, self.max_backoff_seconds)
