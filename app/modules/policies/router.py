"""Cancellation policy API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.security import require_admin
from app.modules.policies.models import PolicyTier
from app.modules.policies.refunds import format_hours_label
from app.modules.policies.schemas import (
    PolicyRangeRead,
    PolicyTierCreate,
    PolicyTierRead,
    PolicyTierUpdate,
)
from app.modules.policies.service import PoliciesService, get_policies_service

router = APIRouter(prefix="/policies", tags=["policies"])


def _serialize_tier(tier: PolicyTier) -> PolicyTierRead:
    return PolicyTierRead(
        id=tier.id,
        hours_before=tier.hours_before,
        refund_percentage=tier.refund_percentage,
        is_active=tier.is_active,
        display_order=tier.display_order,
        label=format_hours_label(tier.hours_before),
        created_at=tier.created_at,
        updated_at=tier.updated_at,
    )


@router.post(
    "/tiers",
    response_model=PolicyTierRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_tier(
    payload: PolicyTierCreate,
    service: PoliciesService = Depends(get_policies_service),
) -> PolicyTierRead:
    """Create refund tier."""
    return _serialize_tier(await service.create_tier(payload))


@router.get("/tiers", response_model=list[PolicyTierRead], dependencies=[Depends(require_admin)])
async def list_tiers(service: PoliciesService = Depends(get_policies_service)) -> list[PolicyTierRead]:
    """List all tiers in display order."""
    return [_serialize_tier(tier) for tier in await service.list_tiers()]


@router.patch("/tiers/{tier_id}", response_model=PolicyTierRead, dependencies=[Depends(require_admin)])
async def update_tier(
    tier_id: UUID,
    payload: PolicyTierUpdate,
    service: PoliciesService = Depends(get_policies_service),
) -> PolicyTierRead:
    """Update refund tier."""
    return _serialize_tier(await service.update_tier(tier_id, payload))


@router.delete(
    "/tiers/{tier_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_tier(
    tier_id: UUID,
    service: PoliciesService = Depends(get_policies_service),
) -> Response:
    """Delete refund tier."""
    await service.delete_tier(tier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/preview", response_model=list[PolicyRangeRead])
async def preview_policy(service: PoliciesService = Depends(get_policies_service)) -> list[PolicyRangeRead]:
    """Client-facing refund policy."""
    return [PolicyRangeRead.model_validate(item) for item in await service.preview()]
