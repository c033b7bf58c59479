"""Once/poll driver shared by the background workers."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.logs import configure_logging

logger = logging.getLogger(__name__)

WorkerCycle = Callable[[], Awaitable[dict[str, int]]]
WORKER_MODES = ("once", "poll")


@dataclass(frozen=True, slots=True)
class WorkerOptions:
    name: str
    mode: str
    poll_seconds: int
    log_level: str

    @classmethod
    def from_env(cls, prefix: str, *, name: str, poll_seconds: int, log_level: str) -> WorkerOptions:
        """Read ``<PREFIX>_MODE``, ``<PREFIX>_POLL_SECONDS`` and ``<PREFIX>_LOG_LEVEL``."""
        mode = os.getenv(f"{prefix}_MODE", "once").strip().lower()
        if mode not in WORKER_MODES:
            raise ValueError(f"{prefix}_MODE must be one of {', '.join(WORKER_MODES)}, got {mode!r}")
        return cls(
            name=name,
            mode=mode,
            poll_seconds=int(os.getenv(f"{prefix}_POLL_SECONDS", str(poll_seconds))),
            log_level=os.getenv(f"{prefix}_LOG_LEVEL", log_level),
        )


async def run_worker(cycle: WorkerCycle, options: WorkerOptions) -> None:
    """Run ``cycle`` once, or forever with a pause between cycles.

    In poll mode a failed cycle is logged and the loop carries on.
    """
    configure_logging(options.log_level)

    if options.mode == "once":
        stats = await cycle()
        logger.info("%s stats: %s", options.name, stats)
        return

    logger.info("%s polling every %ss", options.name, options.poll_seconds)
    while True:
        try:
            stats = await cycle()
            logger.info("%s stats: %s", options.name, stats)
        except Exception:
            logger.exception("%s cycle failed", options.name)
        await asyncio.sleep(options.poll_seconds)
