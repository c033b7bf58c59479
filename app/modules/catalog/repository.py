"""Catalog repository layer."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.catalog.models import SalonService


class CatalogRepository:
    """DB operations for salon services."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_service(self, name: str, price: Decimal, duration_minutes: int) -> SalonService:
        service = SalonService(name=name, price=price, duration_minutes=duration_minutes, is_active=True)
        self.session.add(service)
        await self.session.flush()
        return service

    async def get_service_by_id(self, service_id: UUID) -> SalonService | None:
        stmt = select(SalonService).where(SalonService.id == service_id)
        return await self.session.scalar(stmt)

    async def list_services(self, only_active: bool) -> list[SalonService]:
        stmt = select(SalonService)
        if only_active:
            stmt = stmt.where(SalonService.is_active.is_(True))
        stmt = stmt.order_by(SalonService.name.asc())
        return list((await self.session.scalars(stmt)).all())

    async def save(self, service: SalonService) -> SalonService:
        await self.session.flush()
        return service
