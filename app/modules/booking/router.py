"""Booking API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.enums import BookingStatusEnum, PaymentStatusEnum
from app.core.security import require_admin
from app.modules.booking.schemas import (
    BookingCancelRequest,
    BookingCreateRequest,
    BookingPaymentRequest,
    BookingRead,
    CancellationRead,
)
from app.modules.booking.service import BookingOrchestrator, get_booking_orchestrator
from app.modules.policies.schemas import RefundQuoteRead
from app.shared.exceptions import SlotReservationRejected
from app.shared.pagination import Page, PageRequest, page_request, paginate

router = APIRouter(prefix="/booking", tags=["booking"])

REJECTION_MESSAGES = {
    "slot_not_found": "Slot not found",
    "slot_unavailable": "Slot is not available for booking",
    "slot_full": "Slot is fully booked",
}


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    payload: BookingCreateRequest,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingRead:
    """Reserve a seat in a slot."""
    result = await service.book_appointment(payload.client_id, payload.slot_id, payload.service_id)
    if not result.accepted or result.booking is None:
        reason = str(result.reason)
        raise SlotReservationRejected(reason, REJECTION_MESSAGES.get(reason, "Reservation rejected"))
    return BookingRead.model_validate(result.booking)


@router.get("", response_model=Page[BookingRead], dependencies=[Depends(require_admin)])
async def list_bookings(
    client_id: UUID | None = Query(default=None),
    slot_id: UUID | None = Query(default=None),
    booking_status: BookingStatusEnum | None = Query(default=None, alias="status"),
    page: PageRequest = Depends(page_request),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> Page[BookingRead]:
    """List bookings."""
    items, total = await service.list_bookings(
        client_id=client_id,
        slot_id=slot_id,
        status=booking_status,
        limit=page.limit,
        offset=page.offset,
    )
    serialized = [BookingRead.model_validate(item) for item in items]
    return paginate(serialized, total, page)


@router.get("/refunds/failed", response_model=Page[BookingRead], dependencies=[Depends(require_admin)])
async def list_failed_refunds(
    page: PageRequest = Depends(page_request),
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> Page[BookingRead]:
    """Cancelled bookings whose refund needs manual follow-up."""
    items, total = await service.list_failed_refunds(page.limit, page.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return paginate(serialized, total, page)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: UUID,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingRead:
    """Get booking."""
    return BookingRead.model_validate(await service.get_booking(booking_id))


@router.get("/{booking_id}/refund-quote", response_model=RefundQuoteRead)
async def quote_refund(
    booking_id: UUID,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> RefundQuoteRead:
    """Refund the client would receive if cancelling now."""
    quote = await service.quote_refund(booking_id)
    return RefundQuoteRead(
        booking_id=booking_id,
        refund_percentage=quote.decision.percentage,
        refund_amount=quote.decision.amount,
        hours_notice=quote.decision.hours_notice,
        payment_collected=quote.booking.payment_status == PaymentStatusEnum.PAID,
    )


@router.post("/{booking_id}/confirm", response_model=BookingRead, dependencies=[Depends(require_admin)])
async def confirm_booking(
    booking_id: UUID,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingRead:
    """Confirm pending booking."""
    return BookingRead.model_validate(await service.confirm_booking(booking_id))


@router.post("/{booking_id}/complete", response_model=BookingRead, dependencies=[Depends(require_admin)])
async def complete_booking(
    booking_id: UUID,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingRead:
    """Mark confirmed booking as completed."""
    return BookingRead.model_validate(await service.complete_booking(booking_id))


@router.post("/{booking_id}/payment", response_model=BookingRead, dependencies=[Depends(require_admin)])
async def record_payment(
    booking_id: UUID,
    payload: BookingPaymentRequest,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingRead:
    """Record captured payment for booking."""
    return BookingRead.model_validate(await service.record_payment(booking_id, payload.payment_reference))


@router.post("/{booking_id}/cancel", response_model=CancellationRead)
async def cancel_booking(
    booking_id: UUID,
    payload: BookingCancelRequest,
    service: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> CancellationRead:
    """Cancel booking and refund according to cancellation policy."""
    result = await service.cancel_appointment(booking_id, reason=payload.reason)
    return CancellationRead(
        booking=BookingRead.model_validate(result.booking),
        refund_percentage=result.decision.percentage,
        refund_amount=result.booking.refund_amount,
        hours_notice=result.decision.hours_notice,
        refund_status=result.refund_status,
    )
