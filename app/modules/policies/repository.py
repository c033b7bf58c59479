"""Cancellation policy repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.policies.models import PolicyTier


class PoliciesRepository:
    """DB operations for refund tiers."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_tier(
        self,
        hours_before: int,
        refund_percentage: int,
        is_active: bool,
        display_order: int,
    ) -> PolicyTier:
        tier = PolicyTier(
            hours_before=hours_before,
            refund_percentage=refund_percentage,
            is_active=is_active,
            display_order=display_order,
        )
        self.session.add(tier)
        await self.session.flush()
        return tier

    async def get_tier_by_id(self, tier_id: UUID) -> PolicyTier | None:
        stmt = select(PolicyTier).where(PolicyTier.id == tier_id)
        return await self.session.scalar(stmt)

    async def list_tiers(self) -> list[PolicyTier]:
        stmt = select(PolicyTier).order_by(PolicyTier.display_order.asc(), PolicyTier.created_at.asc())
        return list((await self.session.scalars(stmt)).all())

    async def list_active_policy_tiers(self) -> list[PolicyTier]:
        stmt = (
            select(PolicyTier)
            .where(PolicyTier.is_active.is_(True))
            .order_by(PolicyTier.hours_before.desc(), PolicyTier.refund_percentage.desc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def next_display_order(self) -> int:
        current = await self.session.scalar(select(func.max(PolicyTier.display_order)))
        return 0 if current is None else int(current) + 1

    async def save(self, tier: PolicyTier) -> PolicyTier:
        await self.session.flush()
        return tier

    async def delete_tier(self, tier: PolicyTier) -> None:
        await self.session.delete(tier)
        await self.session.flush()
