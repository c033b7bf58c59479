"""Executable worker turning outbox events into client notifications."""

from __future__ import annotations

import asyncio

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.modules.audit.repository import AuditRepository
from app.modules.notifications.outbox_worker import NotificationsOutboxWorker
from app.modules.notifications.repository import NotificationsRepository
from app.workers.runner import WorkerOptions, run_worker


async def run_cycle() -> dict[str, int]:
    """Dispatch one outbox batch in one DB transaction."""
    settings = get_settings()
    async with SessionLocal() as session:
        worker = NotificationsOutboxWorker(
            audit_repository=AuditRepository(session),
            notifications_repository=NotificationsRepository(session),
            batch_size=settings.outbox_batch_size,
            max_retries=settings.outbox_max_retries,
            base_backoff_seconds=settings.outbox_base_backoff_seconds,
            max_backoff_seconds=settings.outbox_max_backoff_seconds,
        )
        stats = await worker.run_once()
        await session.commit()
        return stats


async def main() -> None:
    settings = get_settings()
    options = WorkerOptions.from_env(
        "OUTBOX_WORKER",
        name="Outbox notifications worker",
        poll_seconds=settings.outbox_poll_seconds,
        log_level=settings.log_level,
    )
    await run_worker(run_cycle, options)


if __name__ == "__main__":
    asyncio.run(main())
