"""Payment processor boundary used for cancellation refunds."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Protocol

import stripe

from app.core.config import Settings, get_settings
from app.core.metrics import REFUND_GATEWAY_DURATION_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RefundSucceeded:
    refund_id: str


@dataclass(frozen=True, slots=True)
class RefundFailed:
    reason: str


RefundOutcome = RefundSucceeded | RefundFailed

FAILED_REFUND_STATUSES = {"failed", "canceled"}


def format_minor_units(amount_cents: int) -> str:
    return f"{amount_cents // 100}.{amount_cents % 100:02d}"


class PaymentGateway(Protocol):
    """Refund part of a captured payment.

    Implementations never raise for processor-side problems; they return
    ``RefundFailed`` with a human readable reason instead.
    """

    async def refund(
        self,
        payment_reference: str,
        amount_cents: int,
        *,
        idempotency_key: str | None = None,
    ) -> RefundOutcome: ...


class StripePaymentGateway:
    """Refunds against Stripe payment intents."""

    def __init__(self, api_key: str, timeout_seconds: float, currency: str = "USD") -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.currency = currency.lower()

    async def refund(
        self,
        payment_reference: str,
        amount_cents: int,
        *,
        idempotency_key: str | None = None,
    ) -> RefundOutcome:
        if amount_cents <= 0:
            return RefundFailed(reason="Refund amount must be positive")

        params: dict[str, Any] = {
            "api_key": self.api_key,
            "payment_intent": payment_reference,
            "amount": amount_cents,
            "metadata": {"source": "salon_booking_cancellation"},
        }
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        logger.info(
            "Requesting Stripe refund of %s %s for %s",
            format_minor_units(amount_cents),
            self.currency.upper(),
            payment_reference,
        )
        started_at = perf_counter()
        try:
            refund = await asyncio.wait_for(
                asyncio.to_thread(stripe.Refund.create, **params),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            REFUND_GATEWAY_DURATION_SECONDS.labels(outcome="timeout").observe(perf_counter() - started_at)
            logger.error("Stripe refund for %s timed out after %ss", payment_reference, self.timeout_seconds)
            return RefundFailed(reason=f"Payment processor timed out after {self.timeout_seconds}s")
        except stripe.StripeError as exc:
            REFUND_GATEWAY_DURATION_SECONDS.labels(outcome="error").observe(perf_counter() - started_at)
            logger.error("Stripe API error refunding %s: %s", payment_reference, exc)
            message = getattr(exc, "user_message", None) or str(exc)
            return RefundFailed(reason=f"Payment processor error: {message}")

        REFUND_GATEWAY_DURATION_SECONDS.labels(outcome=str(refund.status)).observe(perf_counter() - started_at)
        if refund.status in FAILED_REFUND_STATUSES:
            reason = getattr(refund, "failure_reason", None) or refund.status
            logger.error("Stripe refund %s for %s ended as %s", refund.id, payment_reference, reason)
            return RefundFailed(reason=f"Refund {refund.id} {reason}")

        logger.info("Stripe refund %s created for %s (status=%s)", refund.id, payment_reference, refund.status)
        return RefundSucceeded(refund_id=refund.id)


class DisabledPaymentGateway:
    """Gateway used when no processor is configured; every refund needs manual handling."""

    async def refund(
        self,
        payment_reference: str,
        amount_cents: int,
        *,
        idempotency_key: str | None = None,
    ) -> RefundOutcome:
        logger.warning(
            "Payment gateway disabled; refund of %s cents for %s needs manual processing",
            amount_cents,
            payment_reference,
        )
        return RefundFailed(reason="Payment gateway is disabled")


def build_payment_gateway(settings: Settings | None = None) -> PaymentGateway:
    """Gateway selected by ``PAYMENT_GATEWAY_BACKEND``."""
    settings = settings or get_settings()
    if settings.payment_gateway_backend == "stripe":
        return StripePaymentGateway(
            api_key=settings.stripe_secret_key or "",
            timeout_seconds=settings.payment_gateway_timeout_seconds,
            currency=settings.refund_currency,
        )
    return DisabledPaymentGateway()


def get_payment_gateway() -> PaymentGateway:
    """Dependency provider for the payment gateway."""
    return build_payment_gateway()
