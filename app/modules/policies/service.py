"""Cancellation policy business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.audit.repository import AuditRepository
from app.modules.policies.models import PolicyTier
from app.modules.policies.refunds import PolicyRange, PolicyTable
from app.modules.policies.repository import PoliciesRepository
from app.modules.policies.schemas import PolicyTierCreate, PolicyTierUpdate
from app.shared.exceptions import NotFoundException


class PoliciesService:
    """Admin management of refund tiers and the client-facing preview."""

    def __init__(
        self,
        repository: PoliciesRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.repository = repository
        self.audit_repository = audit_repository

    async def create_tier(self, payload: PolicyTierCreate) -> PolicyTier:
        """Append a tier at the end of the display order."""
        display_order = await self.repository.next_display_order()
        tier = await self.repository.create_tier(
            hours_before=payload.hours_before,
            refund_percentage=payload.refund_percentage,
            is_active=payload.is_active,
            display_order=display_order,
        )
        await self._audit(tier, "policies.tier.create")
        return tier

    async def update_tier(self, tier_id: UUID, payload: PolicyTierUpdate) -> PolicyTier:
        tier = await self._get_tier(tier_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(tier, field, value)
        await self.repository.save(tier)
        await self._audit(tier, "policies.tier.update")
        return tier

    async def delete_tier(self, tier_id: UUID) -> None:
        tier = await self._get_tier(tier_id)
        await self._audit(tier, "policies.tier.delete")
        await self.repository.delete_tier(tier)

    async def list_tiers(self) -> list[PolicyTier]:
        """All tiers, active or not, in display order."""
        return await self.repository.list_tiers()

    async def active_table(self) -> PolicyTable:
        """Active tiers read fresh from the store."""
        return PolicyTable.from_tiers(await self.repository.list_active_policy_tiers())

    async def preview(self) -> list[PolicyRange]:
        """Policy ranges exactly as the refund calculator evaluates them."""
        return (await self.active_table()).describe()

    async def _get_tier(self, tier_id: UUID) -> PolicyTier:
        tier = await self.repository.get_tier_by_id(tier_id)
        if tier is None:
            raise NotFoundException("Policy tier not found")
        return tier

    async def _audit(self, tier: PolicyTier, action: str) -> None:
        await self.audit_repository.create_audit_log(
            actor="admin",
            action=action,
            entity_type="policy_tier",
            entity_id=str(tier.id),
            payload={
                "hours_before": tier.hours_before,
                "refund_percentage": tier.refund_percentage,
                "is_active": tier.is_active,
            },
        )


async def get_policies_service(session: AsyncSession = Depends(get_db_session)) -> PoliciesService:
    """Dependency provider for policies service."""
    return PoliciesService(
        repository=PoliciesRepository(session),
        audit_repository=AuditRepository(session),
    )
