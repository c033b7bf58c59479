"""Initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


booking_status_enum = sa.Enum(
    "pending", "confirmed", "completed", "cancelled", name="booking_status_enum", native_enum=False
)
payment_status_enum = sa.Enum("unpaid", "paid", name="payment_status_enum", native_enum=False)
refund_status_enum = sa.Enum(
    "none", "not_required", "succeeded", "failed", "manual_review", name="refund_status_enum", native_enum=False
)
notification_status_enum = sa.Enum("pending", "sent", "failed", name="notification_status_enum", native_enum=False)
outbox_status_enum = sa.Enum("pending", "processed", "failed", name="outbox_status_enum", native_enum=False)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "salon_services",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_salon_services_price_non_negative"),
    )
    op.create_index("ix_salon_services_is_active", "salon_services", ["is_active"], unique=False)

    op.create_table(
        "cancellation_policies",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("hours_before", sa.Integer(), nullable=False),
        sa.Column("refund_percentage", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.CheckConstraint("hours_before >= 0", name="ck_cancellation_policies_hours_before_non_negative"),
        sa.CheckConstraint(
            "refund_percentage >= 0 AND refund_percentage <= 100",
            name="ck_cancellation_policies_refund_percentage_range",
        ),
    )
    op.create_index("ix_cancellation_policies_is_active", "cancellation_policies", ["is_active"], unique=False)

    op.create_table(
        "recurring_patterns",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("days_of_week", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("weeks_ahead", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.CheckConstraint("capacity > 0 AND capacity <= 50", name="ck_recurring_patterns_capacity_range"),
        sa.CheckConstraint("start_time < end_time", name="ck_recurring_patterns_time_window"),
        sa.CheckConstraint("weeks_ahead >= 1", name="ck_recurring_patterns_weeks_ahead_positive"),
    )
    op.create_index("ix_recurring_patterns_is_active", "recurring_patterns", ["is_active"], unique=False)

    op.create_table(
        "availability_slots",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("recurring_pattern_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["recurring_pattern_id"],
            ["recurring_patterns.id"],
            name="fk_availability_slots_recurring_pattern_id_recurring_patterns",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("slot_date", "start_time", "end_time", name="uq_availability_slots_slot_key"),
        sa.CheckConstraint("capacity > 0 AND capacity <= 50", name="ck_availability_slots_capacity_range"),
        sa.CheckConstraint("start_time < end_time", name="ck_availability_slots_time_window"),
    )
    op.create_index("ix_availability_slots_slot_date", "availability_slots", ["slot_date"], unique=False)
    op.create_index("ix_availability_slots_created_by", "availability_slots", ["created_by"], unique=False)
    op.create_index(
        "ix_availability_slots_recurring_pattern_id",
        "availability_slots",
        ["recurring_pattern_id"],
        unique=False,
    )

    op.create_table(
        "bookings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("slot_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("payment_status", payment_status_enum, nullable=False),
        sa.Column("payment_reference", sa.String(length=128), nullable=True),
        sa.Column("price_charged", sa.Numeric(10, 2), nullable=False),
        sa.Column("refund_status", refund_status_enum, nullable=False),
        sa.Column("refund_percentage", sa.Integer(), nullable=True),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("refund_reference", sa.String(length=128), nullable=True),
        sa.Column("refund_failure_reason", sa.String(length=512), nullable=True),
        sa.Column("hours_notice", sa.Float(), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=512), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["slot_id"],
            ["availability_slots.id"],
            name="fk_bookings_slot_id_availability_slots",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["salon_services.id"],
            name="fk_bookings_service_id_salon_services",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint("price_charged >= 0", name="ck_bookings_price_charged_non_negative"),
        sa.CheckConstraint(
            "refund_percentage IS NULL OR (refund_percentage >= 0 AND refund_percentage <= 100)",
            name="ck_bookings_refund_percentage_range",
        ),
    )
    op.create_index("ix_bookings_slot_id", "bookings", ["slot_id"], unique=False)
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_refund_status", "bookings", ["refund_status"], unique=False)

    op.create_table(
        "notifications",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("template_key", sa.String(length=64), nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("context", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", notification_status_enum, nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_notifications_template_key", "notifications", ["template_key"], unique=False)
    op.create_index("ix_notifications_status", "notifications", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)

    op.create_table(
        "outbox_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("aggregate_type", sa.String(length=64), nullable=False),
        sa.Column("aggregate_id", sa.String(length=64), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", outbox_status_enum, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retries", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"], unique=False)
    op.create_index(
        "ix_outbox_events_status_occurred_at",
        "outbox_events",
        ["status", "occurred_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status_occurred_at", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_notifications_status", table_name="notifications")
    op.drop_index("ix_notifications_template_key", table_name="notifications")
    op.drop_index("ix_notifications_recipient_created", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_bookings_refund_status", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_client_id", table_name="bookings")
    op.drop_index("ix_bookings_slot_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_availability_slots_recurring_pattern_id", table_name="availability_slots")
    op.drop_index("ix_availability_slots_created_by", table_name="availability_slots")
    op.drop_index("ix_availability_slots_slot_date", table_name="availability_slots")
    op.drop_table("availability_slots")

    op.drop_index("ix_recurring_patterns_is_active", table_name="recurring_patterns")
    op.drop_table("recurring_patterns")

    op.drop_index("ix_cancellation_policies_is_active", table_name="cancellation_policies")
    op.drop_table("cancellation_policies")

    op.drop_index("ix_salon_services_is_active", table_name="salon_services")
    op.drop_table("salon_services")
