"""Rendering of outbox notification requests into client-facing messages."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from app.core.enums import NotificationTemplateEnum

UNDER_REVIEW_REFUND_STATUSES = {"failed", "manual_review"}


@dataclass(slots=True)
class RenderedMessage:
    recipient_id: UUID
    template_key: str
    title: str
    body: str
    context: dict = field(default_factory=dict)
    channel: str = "email"


def slot_label(payload: dict, prefix: str = "") -> str:
    """``2026-03-05 10:00-11:00`` from the slot keys of a payload."""
    day = payload.get(f"{prefix}date", "unknown date")
    start = payload.get(f"{prefix}start_time")
    end = payload.get(f"{prefix}end_time")
    if start and end:
        return f"{day} {start}-{end}"
    return str(day)


def recipient_of(payload: dict) -> UUID:
    value = payload.get("recipient_id")
    if value is None:
        raise ValueError("Missing required key: recipient_id")
    return UUID(str(value))


def _booking_created(payload: dict) -> tuple[str, str]:
    service_name = payload.get("service_name")
    what = f"Your {service_name} appointment" if service_name else "Your appointment"
    return "Booking received", f"{what} on {slot_label(payload)} has been booked and is pending confirmation."


def _appointment_cancelled(payload: dict) -> tuple[str, str]:
    refund_status = payload.get("refund_status")
    refund_amount = payload.get("refund_amount")
    if refund_status == "succeeded" and refund_amount is not None:
        percentage = payload.get("refund_percentage", 0)
        refund_line = f" A refund of ${refund_amount} ({percentage}%) has been processed."
    elif refund_status in UNDER_REVIEW_REFUND_STATUSES:
        refund_line = " Your refund is being reviewed by our team."
    else:
        refund_line = ""
    return "Appointment cancelled", f"Your appointment on {slot_label(payload)} has been cancelled.{refund_line}"


def _slot_changed(payload: dict) -> tuple[str, str]:
    when = slot_label(payload)
    if payload.get("change_type") == "cancelled":
        body = f"Your appointment on {when} was cancelled by the salon."
        if payload.get("refund_status") in UNDER_REVIEW_REFUND_STATUSES:
            body += " Your refund is being reviewed by our team."
        return "Appointment cancelled", body
    return "Appointment changed", f"Your appointment on {when} was moved to {slot_label(payload, prefix='new_')}."


RENDERERS: dict[str, Callable[[dict], tuple[str, str]]] = {
    NotificationTemplateEnum.BOOKING_CREATED: _booking_created,
    NotificationTemplateEnum.APPOINTMENT_CANCELLED: _appointment_cancelled,
    NotificationTemplateEnum.SLOT_CHANGED: _slot_changed,
}


def render(event_type: str, payload: dict) -> RenderedMessage | None:
    """Render an outbox event; ``None`` for event types that notify nobody."""
    renderer = RENDERERS.get(event_type)
    if renderer is None:
        return None
    recipient_id = recipient_of(payload)
    title, body = renderer(payload)
    return RenderedMessage(
        recipient_id=recipient_id,
        template_key=event_type,
        title=title,
        body=body,
        context=payload,
    )
