"""Catalog ORM models."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin


class SalonService(BaseModelMixin, Base):
    """Bookable salon service; its price is snapshotted onto each booking."""

    __tablename__ = "salon_services"
    __table_args__ = (CheckConstraint("price >= 0", name="price_non_negative"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
