"""Catalog API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.security import require_admin
from app.modules.catalog.schemas import SalonServiceCreate, SalonServiceRead, SalonServiceUpdate
from app.modules.catalog.service import CatalogService, get_catalog_service

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.post(
    "/services",
    response_model=SalonServiceRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_service(
    payload: SalonServiceCreate,
    service: CatalogService = Depends(get_catalog_service),
) -> SalonServiceRead:
    """Create salon service."""
    return SalonServiceRead.model_validate(await service.create_service(payload))


@router.patch(
    "/services/{service_id}",
    response_model=SalonServiceRead,
    dependencies=[Depends(require_admin)],
)
async def update_service(
    service_id: UUID,
    payload: SalonServiceUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> SalonServiceRead:
    """Update salon service."""
    return SalonServiceRead.model_validate(await service.update_service(service_id, payload))


@router.get("/services", response_model=list[SalonServiceRead])
async def list_services(
    include_inactive: bool = Query(default=False),
    service: CatalogService = Depends(get_catalog_service),
) -> list[SalonServiceRead]:
    """List salon services."""
    items = await service.list_services(only_active=not include_inactive)
    return [SalonServiceRead.model_validate(item) for item in items]
