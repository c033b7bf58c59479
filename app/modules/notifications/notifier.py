"""Notifier contract and its transactional-outbox implementation."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from uuid import UUID

from app.core.database import savepoint
from app.core.enums import NotificationTemplateEnum
from app.modules.audit.repository import AuditRepository

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Send a message given a template key and recipient."""

    async def notify(
        self,
        template_key: NotificationTemplateEnum,
        recipient: UUID,
        context: dict[str, Any],
    ) -> None:
        """Request delivery; callers treat this as fire-and-forget."""


class OutboxNotifier:
    """Queue notification requests as outbox events for the notifications worker.

    Each event is written in its own savepoint so a failed write never poisons
    the surrounding booking transaction.
    """

    def __init__(self, audit_repository: AuditRepository) -> None:
        self.audit_repository = audit_repository

    async def notify(
        self,
        template_key: NotificationTemplateEnum,
        recipient: UUID,
        context: dict[str, Any],
    ) -> None:
        async with savepoint(self.audit_repository.session):
            await self.audit_repository.create_outbox_event(
                aggregate_type="notification",
                aggregate_id=str(recipient),
                event_type=str(template_key),
                payload={"recipient_id": str(recipient), **context},
            )
        logger.debug("Queued %s notification for %s", template_key, recipient)


async def notify_safely(
    notifier: Notifier,
    template_key: NotificationTemplateEnum,
    recipient: UUID,
    context: dict[str, Any],
) -> bool:
    """Call ``notifier`` without letting its failure reach the caller."""
    try:
        await notifier.notify(template_key, recipient, context)
    except Exception:
        logger.exception("Failed to queue %s notification for %s", template_key, recipient)
        return False
    return True
