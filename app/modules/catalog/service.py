"""Catalog business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.catalog.models import SalonService
from app.modules.catalog.repository import CatalogRepository
from app.modules.catalog.schemas import SalonServiceCreate, SalonServiceUpdate
from app.shared.exceptions import NotFoundException


class CatalogService:
    """Salon service catalog."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    async def create_service(self, payload: SalonServiceCreate) -> SalonService:
        return await self.repository.create_service(payload.name, payload.price, payload.duration_minutes)

    async def update_service(self, service_id: UUID, payload: SalonServiceUpdate) -> SalonService:
        """Price changes never touch existing bookings, which keep their snapshot."""
        service = await self.repository.get_service_by_id(service_id)
        if service is None:
            raise NotFoundException("Service not found")
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(service, field, value)
        return await self.repository.save(service)

    async def list_services(self, only_active: bool = True) -> list[SalonService]:
        return await self.repository.list_services(only_active)


async def get_catalog_service(session: AsyncSession = Depends(get_db_session)) -> CatalogService:
    """Dependency provider for catalog service."""
    return CatalogService(CatalogRepository(session))
