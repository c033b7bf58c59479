"""Booking business logic layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import (
    BookingStatusEnum,
    NotificationTemplateEnum,
    PaymentStatusEnum,
    RefundStatusEnum,
)
from app.core.metrics import REFUNDS_TOTAL
from app.modules.audit.repository import AuditRepository
from app.modules.billing.gateway import PaymentGateway, RefundFailed, RefundOutcome, get_payment_gateway
from app.modules.booking.capacity import ReservationResult, SlotCapacityGuard
from app.modules.booking.models import REASON_MAX_LENGTH, Booking
from app.modules.booking.repository import BookingRepository
from app.modules.catalog.repository import CatalogRepository
from app.modules.notifications.notifier import Notifier, OutboxNotifier, notify_safely
from app.modules.policies.refunds import RefundDecision, amount_cents, calculate_refund
from app.modules.policies.repository import PoliciesRepository
from app.modules.scheduling.models import AvailabilitySlot
from app.modules.scheduling.service import slot_context
from app.shared.exceptions import (
    AlreadyCancelledException,
    BusinessRuleException,
    NotFoundException,
)
from app.shared.utils import combine_local, ensure_utc, utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

ZERO = Decimal("0.00")


@dataclass(slots=True)
class RefundQuote:
    booking: Booking
    decision: RefundDecision


@dataclass(slots=True)
class CancellationResult:
    booking: Booking
    decision: RefundDecision
    refund_status: RefundStatusEnum


def slot_start(slot: AvailabilitySlot) -> datetime:
    """Slot start as an aware UTC datetime."""
    return combine_local(slot.slot_date, slot.start_time, settings.salon_zone)


class BookingOrchestrator:
    """Book, transition and cancel appointments, refunding per cancellation policy."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        catalog_repository: CatalogRepository,
        policies_repository: PoliciesRepository,
        audit_repository: AuditRepository,
        notifier: Notifier,
        payment_gateway: PaymentGateway,
    ) -> None:
        self.booking_repository = booking_repository
        self.catalog_repository = catalog_repository
        self.policies_repository = policies_repository
        self.audit_repository = audit_repository
        self.notifier = notifier
        self.payment_gateway = payment_gateway
        self.capacity_guard = SlotCapacityGuard(booking_repository)

    async def book_appointment(self, client_id: UUID, slot_id: UUID, service_id: UUID) -> ReservationResult:
        """Reserve a seat in a slot; rejections come back on the result."""
        service = await self.catalog_repository.get_service_by_id(service_id)
        if service is None or not service.is_active:
            raise NotFoundException("Service not found")

        slot = await self.booking_repository.get_slot_by_id(slot_id)
        if slot is not None and slot_start(slot) <= utc_now():
            raise BusinessRuleException("Cannot book a slot in the past")

        def build_booking(locked_slot: AvailabilitySlot) -> Booking:
            return Booking(
                slot_id=locked_slot.id,
                client_id=client_id,
                service_id=service.id,
                status=BookingStatusEnum.PENDING,
                payment_status=PaymentStatusEnum.UNPAID,
                price_charged=service.price,
                refund_status=RefundStatusEnum.NONE,
            )

        result = await self.capacity_guard.try_reserve(slot_id, build_booking)
        if not result.accepted or result.booking is None:
            return result

        booking = result.booking
        await self.audit_repository.create_audit_log(
            actor=str(client_id),
            action="booking.created",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={
                "slot_id": str(slot_id),
                "service_id": str(service.id),
                "price_charged": str(booking.price_charged),
            },
        )
        await self._notify(
            NotificationTemplateEnum.BOOKING_CREATED,
            booking,
            {"service_name": service.name, "price_charged": str(booking.price_charged)},
        )
        logger.info("Booking %s created on slot %s for client %s", booking.id, slot_id, client_id)
        return result

    async def confirm_booking(self, booking_id: UUID) -> Booking:
        """Move a pending booking to confirmed."""
        booking = await self._get_booking(booking_id)
        if booking.status != BookingStatusEnum.PENDING:
            raise BusinessRuleException(f"Only pending bookings can be confirmed, booking is {booking.status}")
        booking.status = BookingStatusEnum.CONFIRMED
        booking.confirmed_at = utc_now()
        await self.booking_repository.save(booking)
        await self._audit(booking, "booking.confirmed")
        return booking

    async def complete_booking(self, booking_id: UUID) -> Booking:
        """Move a confirmed booking to completed."""
        booking = await self._get_booking(booking_id)
        if booking.status != BookingStatusEnum.CONFIRMED:
            raise BusinessRuleException(f"Only confirmed bookings can be completed, booking is {booking.status}")
        booking.status = BookingStatusEnum.COMPLETED
        booking.completed_at = utc_now()
        await self.booking_repository.save(booking)
        await self._audit(booking, "booking.completed")
        return booking

    async def record_payment(self, booking_id: UUID, payment_reference: str) -> Booking:
        """Mark a booking paid with the processor's payment reference."""
        booking = await self._get_booking(booking_id)
        if booking.status == BookingStatusEnum.CANCELLED:
            raise BusinessRuleException("Cannot record a payment for a cancelled booking")
        if booking.payment_status == PaymentStatusEnum.PAID:
            raise BusinessRuleException("Booking is already paid")
        booking.payment_status = PaymentStatusEnum.PAID
        booking.payment_reference = payment_reference
        await self.booking_repository.save(booking)
        await self._audit(booking, "booking.paid", {"payment_reference": payment_reference})
        return booking

    async def quote_refund(self, booking_id: UUID, now: datetime | None = None) -> RefundQuote:
        """Refund the client would get by cancelling at ``now``; nothing is written."""
        booking = await self._get_booking(booking_id)
        tiers = await self.policies_repository.list_active_policy_tiers()
        decision = calculate_refund(booking.price_charged, slot_start(booking.slot), now or utc_now(), tiers)
        return RefundQuote(booking=booking, decision=decision)

    async def cancel_appointment(
        self,
        booking_id: UUID,
        now: datetime | None = None,
        reason: str | None = None,
    ) -> CancellationResult:
        """Cancel a booking, refunding the policy share of what was paid.

        A failed refund never blocks the cancellation; it is recorded on the
        booking and in the audit log for manual follow-up.
        """
        now = ensure_utc(now) if now is not None else utc_now()
        booking = await self._get_booking(booking_id, for_update=True)

        if booking.status == BookingStatusEnum.CANCELLED:
            raise AlreadyCancelledException("Booking is already cancelled")
        if booking.status == BookingStatusEnum.COMPLETED:
            raise BusinessRuleException("Completed bookings cannot be cancelled")

        tiers = await self.policies_repository.list_active_policy_tiers()
        decision = calculate_refund(booking.price_charged, slot_start(booking.slot), now, tiers)
        booking.refund_percentage = decision.percentage
        booking.hours_notice = decision.hours_notice

        if booking.payment_status != PaymentStatusEnum.PAID or decision.amount <= ZERO:
            booking.refund_amount = ZERO
            booking.refund_status = RefundStatusEnum.NOT_REQUIRED
        else:
            booking.refund_amount = decision.amount
            outcome = await self._request_refund(booking, decision.amount)
            if isinstance(outcome, RefundFailed):
                booking.refund_status = RefundStatusEnum.FAILED
                booking.refund_failure_reason = outcome.reason[:REASON_MAX_LENGTH]
            else:
                booking.refund_status = RefundStatusEnum.SUCCEEDED
                booking.refund_reference = outcome.refund_id
                booking.refunded_at = now

        booking.status = BookingStatusEnum.CANCELLED
        booking.cancelled_at = now
        booking.cancellation_reason = reason
        await self.booking_repository.save(booking)
        REFUNDS_TOTAL.labels(outcome=str(booking.refund_status)).inc()

        await self._audit(
            booking,
            "booking.cancelled",
            {
                "hours_notice": decision.hours_notice,
                "refund_percentage": decision.percentage,
                "refund_amount": str(booking.refund_amount),
                "refund_status": str(booking.refund_status),
                "reason": reason,
            },
        )
        if booking.refund_status == RefundStatusEnum.FAILED:
            await self._audit(
                booking,
                "refund.failed",
                {
                    "payment_reference": booking.payment_reference,
                    "refund_amount": str(booking.refund_amount),
                    "failure_reason": booking.refund_failure_reason,
                },
            )
            logger.warning(
                "Refund for booking %s failed and needs manual attention: %s",
                booking.id,
                booking.refund_failure_reason,
            )

        await self._notify(
            NotificationTemplateEnum.APPOINTMENT_CANCELLED,
            booking,
            {
                "refund_status": str(booking.refund_status),
                "refund_amount": str(booking.refund_amount),
                "refund_percentage": decision.percentage,
            },
        )
        return CancellationResult(booking=booking, decision=decision, refund_status=booking.refund_status)

    async def get_booking(self, booking_id: UUID) -> Booking:
        return await self._get_booking(booking_id)

    async def list_bookings(
        self,
        *,
        client_id: UUID | None = None,
        slot_id: UUID | None = None,
        status: BookingStatusEnum | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Booking], int]:
        return await self.booking_repository.list_bookings(
            client_id=client_id,
            slot_id=slot_id,
            status=status,
            limit=limit,
            offset=offset,
        )

    async def list_failed_refunds(self, limit: int = 20, offset: int = 0) -> tuple[list[Booking], int]:
        """Cancelled bookings whose refund needs manual attention."""
        return await self.booking_repository.list_failed_refunds(limit, offset)

    async def _request_refund(self, booking: Booking, amount: Decimal) -> RefundOutcome:
        if not booking.payment_reference:
            return RefundFailed(reason="Booking has no payment reference")
        try:
            return await self.payment_gateway.refund(
                booking.payment_reference,
                amount_cents(amount),
                idempotency_key=f"booking-{booking.id}-refund",
            )
        except Exception as exc:
            logger.exception("Payment gateway raised while refunding booking %s", booking.id)
            return RefundFailed(reason=f"Payment gateway error: {exc}")

    async def _get_booking(self, booking_id: UUID, *, for_update: bool = False) -> Booking:
        booking = await self.booking_repository.get_booking_by_id(booking_id, for_update=for_update)
        if booking is None:
            raise NotFoundException("Booking not found")
        return booking

    async def _audit(self, booking: Booking, action: str, payload: dict[str, Any] | None = None) -> None:
        await self.audit_repository.create_audit_log(
            actor=None,
            action=action,
            entity_type="booking",
            entity_id=str(booking.id),
            payload={"slot_id": str(booking.slot_id), "client_id": str(booking.client_id), **(payload or {})},
        )

    async def _notify(
        self,
        template_key: NotificationTemplateEnum,
        booking: Booking,
        extra: dict[str, Any],
    ) -> None:
        await notify_safely(
            self.notifier,
            template_key,
            booking.client_id,
            {"booking_id": str(booking.id), **slot_context(booking.slot), **extra},
        )


async def get_booking_orchestrator(session: AsyncSession = Depends(get_db_session)) -> BookingOrchestrator:
    """Dependency provider for booking orchestrator."""
    audit_repository = AuditRepository(session)
    return BookingOrchestrator(
        booking_repository=BookingRepository(session),
        catalog_repository=CatalogRepository(session),
        policies_repository=PoliciesRepository(session),
        audit_repository=audit_repository,
        notifier=OutboxNotifier(audit_repository),
        payment_gateway=get_payment_gateway(),
    )
