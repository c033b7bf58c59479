"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from datetime import time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.enums import WeekdayEnum
from app.modules.audit.repository import AuditRepository
from app.modules.catalog.models import SalonService
from app.modules.catalog.repository import CatalogRepository
from app.modules.notifications.notifier import OutboxNotifier
from app.modules.policies.models import PolicyTier
from app.modules.policies.repository import PoliciesRepository
from app.modules.policies.schemas import PolicyTierCreate
from app.modules.policies.service import PoliciesService
from app.modules.scheduling.models import RecurringPattern
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.schemas import RecurringPatternCreate
from app.modules.scheduling.service import SchedulingService

DEMO_OWNER_ID = UUID("00000000-0000-4000-8000-000000000001")

DEMO_SERVICES = (
    ("Haircut", Decimal("45.00"), 60),
    ("Colour", Decimal("120.00"), 120),
    ("Beard trim", Decimal("20.00"), 30),
)

DEMO_POLICY_TIERS = (
    (48, 100),
    (24, 50),
    (0, 0),
)

DEMO_PATTERN_NAME = "Weekday mornings"
DEMO_PATTERN_DAYS = (
    WeekdayEnum.MONDAY,
    WeekdayEnum.TUESDAY,
    WeekdayEnum.WEDNESDAY,
    WeekdayEnum.THURSDAY,
    WeekdayEnum.FRIDAY,
)


@dataclass(slots=True)
class SeedStats:
    services_created: int = 0
    tiers_created: int = 0
    pattern_created: bool = False
    slots_created: int = 0


async def _ensure_services(session: AsyncSession) -> int:
    repository = CatalogRepository(session)
    created = 0
    for name, price, duration_minutes in DEMO_SERVICES:
        existing = await session.scalar(select(SalonService).where(SalonService.name == name))
        if existing is not None:
            continue
        await repository.create_service(name, price, duration_minutes)
        created += 1
    return created


async def _ensure_policy_tiers(session: AsyncSession) -> int:
    existing = await session.scalar(select(PolicyTier.id).limit(1))
    if existing is not None:
        return 0

    service = PoliciesService(PoliciesRepository(session), AuditRepository(session))
    for hours_before, refund_percentage in DEMO_POLICY_TIERS:
        await service.create_tier(
            PolicyTierCreate(hours_before=hours_before, refund_percentage=refund_percentage),
        )
    return len(DEMO_POLICY_TIERS)


async def _ensure_pattern_and_slots(session: AsyncSession) -> tuple[bool, int]:
    audit_repository = AuditRepository(session)
    service = SchedulingService(
        repository=SchedulingRepository(session),
        notifier=OutboxNotifier(audit_repository),
        audit_repository=audit_repository,
    )

    pattern_created = False
    existing = await session.scalar(
        select(RecurringPattern).where(RecurringPattern.name == DEMO_PATTERN_NAME),
    )
    if existing is None:
        await service.create_pattern(
            RecurringPatternCreate(
                name=DEMO_PATTERN_NAME,
                days_of_week=list(DEMO_PATTERN_DAYS),
                start_time=time(9, 0),
                end_time=time(10, 0),
                capacity=2,
                weeks_ahead=4,
                created_by=DEMO_OWNER_ID,
            ),
        )
        pattern_created = True

    summary = await service.run_sweep()
    return pattern_created, summary.slots_created


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()
    try:
        async with SessionLocal() as session:
            try:
                stats.services_created = await _ensure_services(session)
                stats.tiers_created = await _ensure_policy_tiers(session)
                stats.pattern_created, stats.slots_created = await _ensure_pattern_and_slots(session)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    finally:
        await close_engine()
    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seed idempotent demo data for the salon booking engine (services, "
            "cancellation policy tiers, a recurring pattern and its slots)."
        ),
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Services created: {stats.services_created}")
    print(f"- Policy tiers created: {stats.tiers_created}")
    print(f"- Recurring pattern created: {stats.pattern_created}")
    print(f"- Slots created: {stats.slots_created}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
