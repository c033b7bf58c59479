"""Core enums used across modules."""

from enum import StrEnum


class WeekdayEnum(StrEnum):
    """Days of week in ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_index(cls, index: int) -> "WeekdayEnum":
        return list(cls)[index]


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatusEnum(StrEnum):
    """Whether money was collected for a booking."""

    UNPAID = "unpaid"
    PAID = "paid"


class RefundStatusEnum(StrEnum):
    """Outcome of the refund step of a cancellation."""

    NONE = "none"
    NOT_REQUIRED = "not_required"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    MANUAL_REVIEW = "manual_review"


class ReservationRejectionEnum(StrEnum):
    """Reasons a reservation attempt can be turned down."""

    SLOT_NOT_FOUND = "slot_not_found"
    SLOT_UNAVAILABLE = "slot_unavailable"
    SLOT_FULL = "slot_full"


class NotificationTemplateEnum(StrEnum):
    """Notification templates emitted by the booking engine."""

    BOOKING_CREATED = "booking-created"
    APPOINTMENT_CANCELLED = "appointment-cancelled"
    SLOT_CHANGED = "slot-changed"


class NotificationStatusEnum(StrEnum):
    """Notification delivery status."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class OutboxStatusEnum(StrEnum):
    """Outbox event status for integration publishing."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
