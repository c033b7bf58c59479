"""Executable worker expanding recurring patterns into availability slots."""

from __future__ import annotations

import asyncio

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.modules.scheduling.expander import RecurringScheduleExpander
from app.modules.scheduling.repository import SchedulingRepository
from app.workers.runner import WorkerOptions, run_worker


async def run_cycle() -> dict[str, int]:
    """Sweep all active patterns in one DB transaction.

    Each pattern runs in its own savepoint, so one broken pattern does not
    undo the slots generated for the others.
    """
    async with SessionLocal() as session:
        summary = await RecurringScheduleExpander(SchedulingRepository(session)).sweep()
        await session.commit()
    return {
        "patterns_processed": summary.patterns_processed,
        "slots_created": summary.slots_created,
        "failures": len(summary.failures),
    }


async def main() -> None:
    settings = get_settings()
    options = WorkerOptions.from_env(
        "RECURRING_WORKER",
        name="Recurring slots worker",
        poll_seconds=settings.recurring_sweep_poll_seconds,
        log_level=settings.log_level,
    )
    await run_worker(run_cycle, options)


if __name__ == "__main__":
    asyncio.run(main())
