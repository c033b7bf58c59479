"""Cancellation refund policy table and refund calculator.

Tiers are evaluated in one canonical order: descending by ``hours_before``
(ties broken by the larger refund percentage). Both the calculator and the
client-facing policy description walk the tiers in that order, so the shown
policy and the refund actually issued cannot disagree.

An empty policy (no active tiers) yields no refund. This is the intended
conservative default when nothing has been configured.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from app.shared.utils import ensure_utc

CENT = Decimal("0.01")
SECONDS_PER_HOUR = 3600


class PolicyTierLike(Protocol):
    hours_before: int
    refund_percentage: int
    is_active: bool


@dataclass(frozen=True, slots=True)
class PolicyRange:
    """One line of the client-facing policy: ``[hours_from, hours_to)``."""

    hours_from: int
    hours_to: int | None
    refund_percentage: int
    description: str


@dataclass(frozen=True, slots=True)
class RefundDecision:
    percentage: int
    amount: Decimal
    hours_notice: float
    hours_before: int | None = None


def canonical_sort_key(tier: PolicyTierLike) -> tuple[int, int]:
    return (-tier.hours_before, -tier.refund_percentage)


class PolicyTable:
    """Active refund tiers in canonical evaluation order."""

    def __init__(self, tiers: Iterable[PolicyTierLike]) -> None:
        self.tiers: tuple[PolicyTierLike, ...] = tuple(sorted(tiers, key=canonical_sort_key))

    @classmethod
    def from_tiers(cls, tiers: Iterable[PolicyTierLike]) -> PolicyTable:
        """Build a table from any tiers, ignoring inactive ones."""
        return cls(tier for tier in tiers if getattr(tier, "is_active", True))

    def __len__(self) -> int:
        return len(self.tiers)

    def select_tier(self, hours_notice: float) -> PolicyTierLike | None:
        """Return the tier with the largest threshold still satisfied by ``hours_notice``."""
        for tier in self.tiers:
            if tier.hours_before <= hours_notice:
                return tier
        return None

    def describe(self) -> list[PolicyRange]:
        """Derive client-facing ranges from the canonical order."""
        ranges: list[PolicyRange] = []
        upper: int | None = None
        for tier in self.tiers:
            if upper is not None and tier.hours_before == upper:
                # Shadowed by a more generous tier with the same threshold.
                continue
            ranges.append(
                PolicyRange(
                    hours_from=tier.hours_before,
                    hours_to=upper,
                    refund_percentage=tier.refund_percentage,
                    description=_describe_range(tier.hours_before, upper, tier.refund_percentage),
                ),
            )
            upper = tier.hours_before

        if upper is not None and upper > 0:
            ranges.append(
                PolicyRange(
                    hours_from=0,
                    hours_to=upper,
                    refund_percentage=0,
                    description=_describe_range(0, upper, 0),
                ),
            )
        return ranges


def _describe_range(hours_from: int, hours_to: int | None, percentage: int) -> str:
    if hours_to is None:
        if hours_from == 0:
            return f"{percentage}% refund for any cancellation"
        return f"{percentage}% refund if cancelled {hours_from}+ hours before"
    if hours_from == 0:
        if percentage == 0:
            return f"No refund if cancelled less than {hours_to} hours before"
        return f"{percentage}% refund if cancelled less than {hours_to} hours before"
    return f"{percentage}% refund if cancelled {hours_from}-{hours_to} hours before"


def format_hours_label(hours_before: int) -> str:
    """Short admin label for a tier threshold."""
    if hours_before == 0:
        return "Less than minimum notice"
    if hours_before < 24:
        return f"{hours_before}+ hours before"
    days, hours = divmod(hours_before, 24)
    if hours == 0:
        return f"{days}+ day{'s' if days > 1 else ''} before"
    return f"{days}d {hours}h+ before"


def hours_until(scheduled_at: datetime, now: datetime) -> float:
    """Hours of notice, never negative."""
    delta = ensure_utc(scheduled_at) - ensure_utc(now)
    return max(0.0, delta.total_seconds() / SECONDS_PER_HOUR)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def amount_cents(amount: Decimal) -> int:
    """Convert a money amount to integer minor units."""
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def calculate_refund(
    price_charged: Decimal | int | float | str,
    scheduled_at: datetime,
    now: datetime,
    active_tiers: PolicyTable | Sequence[PolicyTierLike],
) -> RefundDecision:
    """Compute refund percentage and amount for a cancellation at ``now``."""
    table = active_tiers if isinstance(active_tiers, PolicyTable) else PolicyTable.from_tiers(active_tiers)
    notice = hours_until(scheduled_at, now)
    tier = table.select_tier(notice)
    if tier is None:
        return RefundDecision(percentage=0, amount=round_money(Decimal(0)), hours_notice=notice)

    price = price_charged if isinstance(price_charged, Decimal) else Decimal(str(price_charged))
    amount = round_money(price * tier.refund_percentage / 100)
    return RefundDecision(
        percentage=tier.refund_percentage,
        amount=amount,
        hours_notice=notice,
        hours_before=tier.hours_before,
    )
