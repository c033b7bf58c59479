"""Recurring pattern expansion into concrete availability slots."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Protocol
from uuid import UUID

from app.core.config import get_settings
from app.core.enums import WeekdayEnum
from app.core.metrics import SLOTS_GENERATED_TOTAL
from app.modules.scheduling.models import RecurringPattern
from app.shared.utils import local_today

logger = logging.getLogger(__name__)


class ExpansionStore(Protocol):
    def isolated(self) -> Any: ...

    async def list_existing_slot_dates(self, dates, start_time, end_time) -> set[date]: ...

    async def batch_insert_slots(self, rows: list[dict[str, Any]]) -> int: ...

    async def list_active_patterns(self) -> list[RecurringPattern]: ...


@dataclass(slots=True)
class ExpansionResult:
    pattern_id: UUID
    slots_created: int
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class SweepSummary:
    patterns_processed: int = 0
    slots_created: int = 0
    failures: list[ExpansionResult] = field(default_factory=list)


def candidate_dates(days_of_week: list[str], as_of: date, weeks_ahead: int) -> list[date]:
    """Dates in ``[as_of, as_of + weeks_ahead weeks]`` falling on the given weekdays."""
    wanted = {WeekdayEnum(day) for day in days_of_week}
    horizon = as_of + timedelta(weeks=weeks_ahead)
    dates: list[date] = []
    current = as_of
    while current <= horizon:
        if WeekdayEnum.from_index(current.weekday()) in wanted:
            dates.append(current)
        current += timedelta(days=1)
    return dates


class RecurringScheduleExpander:
    """Generate missing slots for recurring patterns.

    Expansion is idempotent: dates that already hold a slot with the pattern's
    exact window are skipped, and the insert itself ignores key conflicts so a
    concurrent sweep cannot create duplicates. Each pattern runs in its own
    savepoint; a failed pattern reports zero slots and the sweep moves on.
    """

    def __init__(
        self,
        repository: ExpansionStore,
        *,
        max_weeks_ahead: int | None = None,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        settings = get_settings()
        self.repository = repository
        self.max_weeks_ahead = max_weeks_ahead or settings.recurring_max_weeks_ahead
        self._today_provider = today_provider or (lambda: local_today(settings.salon_zone))

    async def expand(self, pattern: RecurringPattern, as_of: date | None = None) -> ExpansionResult:
        start = as_of or self._today_provider()
        weeks_ahead = min(pattern.weeks_ahead, self.max_weeks_ahead)
        dates = candidate_dates(pattern.days_of_week, start, weeks_ahead)

        try:
            async with self.repository.isolated():
                existing = await self.repository.list_existing_slot_dates(
                    dates,
                    pattern.start_time,
                    pattern.end_time,
                )
                rows = [
                    {
                        "slot_date": day,
                        "start_time": pattern.start_time,
                        "end_time": pattern.end_time,
                        "capacity": pattern.capacity,
                        "created_by": pattern.created_by,
                        "recurring_pattern_id": pattern.id,
                    }
                    for day in dates
                    if day not in existing
                ]
                created = await self.repository.batch_insert_slots(rows)
        except Exception as exc:
            logger.exception("Slot generation failed for recurring pattern %s", pattern.id)
            return ExpansionResult(pattern_id=pattern.id, slots_created=0, error=str(exc))

        if created:
            SLOTS_GENERATED_TOTAL.inc(created)
        logger.info(
            "Recurring pattern %s expanded: %s new slots over %s candidate dates",
            pattern.id,
            created,
            len(dates),
        )
        return ExpansionResult(pattern_id=pattern.id, slots_created=created)

    async def sweep(self, as_of: date | None = None) -> SweepSummary:
        """Expand every active pattern once."""
        start = as_of or self._today_provider()
        summary = SweepSummary()
        for pattern in await self.repository.list_active_patterns():
            result = await self.expand(pattern, start)
            summary.patterns_processed += 1
            summary.slots_created += result.slots_created
            if result.failed:
                summary.failures.append(result)

        logger.info(
            "Recurring sweep finished: patterns=%s slots_created=%s failures=%s",
            summary.patterns_processed,
            summary.slots_created,
            len(summary.failures),
        )
        return summary
