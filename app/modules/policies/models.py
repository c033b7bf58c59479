"""Cancellation policy ORM models."""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin


class PolicyTier(BaseModelMixin, Base):
    """One rung of the cancellation refund ladder."""

    __tablename__ = "cancellation_policies"
    __table_args__ = (
        CheckConstraint("hours_before >= 0", name="hours_before_non_negative"),
        CheckConstraint(
            "refund_percentage >= 0 AND refund_percentage <= 100",
            name="refund_percentage_range",
        ),
    )

    hours_before: Mapped[int] = mapped_column(Integer, nullable=False)
    refund_percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
