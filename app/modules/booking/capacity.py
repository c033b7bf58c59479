"""Capacity-checked slot reservation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from app.core.enums import ReservationRejectionEnum
from app.core.metrics import RESERVATIONS_TOTAL
from app.modules.booking.models import Booking
from app.modules.booking.repository import BookingFactory

logger = logging.getLogger(__name__)


class CapacityStore(Protocol):
    async def insert_booking_if_capacity_available(
        self,
        slot_id: UUID,
        booking_factory: BookingFactory,
    ) -> tuple[ReservationRejectionEnum | None, Booking | None]: ...


@dataclass(slots=True)
class ReservationResult:
    accepted: bool
    reason: ReservationRejectionEnum | None = None
    booking: Booking | None = None

    @classmethod
    def rejected(cls, reason: ReservationRejectionEnum) -> ReservationResult:
        return cls(accepted=False, reason=reason)


class SlotCapacityGuard:
    """Admit a booking only while the slot has a free seat.

    The count-and-insert runs as one store operation under a row lock, so
    concurrent callers can never push the active count past capacity.
    Rejections are returned as values.
    """

    def __init__(self, store: CapacityStore) -> None:
        self.store = store

    async def try_reserve(self, slot_id: UUID, booking_factory: BookingFactory) -> ReservationResult:
        reason, booking = await self.store.insert_booking_if_capacity_available(slot_id, booking_factory)
        if reason is not None:
            RESERVATIONS_TOTAL.labels(outcome=str(reason)).inc()
            logger.info("Reservation on slot %s rejected: %s", slot_id, reason)
            return ReservationResult.rejected(reason)

        RESERVATIONS_TOTAL.labels(outcome="accepted").inc()
        return ReservationResult(accepted=True, booking=booking)
