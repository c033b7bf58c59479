from __future__ import annotations

import time
from types import SimpleNamespace

import pytest
import stripe

from app.core.config import Settings
from app.modules.billing.gateway import (
    DisabledPaymentGateway,
    RefundFailed,
    RefundSucceeded,
    StripePaymentGateway,
    build_payment_gateway,
    format_minor_units,
)


def make_gateway(timeout_seconds: float = 5.0) -> StripePaymentGateway:
    return StripePaymentGateway(api_key="sk_test_123", timeout_seconds=timeout_seconds, currency="USD")


@pytest.mark.asyncio
async def test_successful_refund_returns_processor_id(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def _create(**params):
        calls.append(params)
        return SimpleNamespace(id="re_1", status="succeeded")

    monkeypatch.setattr(stripe.Refund, "create", _create)

    outcome = await make_gateway().refund("pi_1", 4000, idempotency_key="booking-1-refund")

    assert outcome == RefundSucceeded(refund_id="re_1")
    assert calls[0]["payment_intent"] == "pi_1"
    assert calls[0]["amount"] == 4000
    assert calls[0]["idempotency_key"] == "booking-1-refund"


@pytest.mark.asyncio
async def test_refund_without_idempotency_key_omits_it(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def _create(**params):
        calls.append(params)
        return SimpleNamespace(id="re_2", status="pending")

    monkeypatch.setattr(stripe.Refund, "create", _create)

    outcome = await make_gateway().refund("pi_2", 1500)

    assert isinstance(outcome, RefundSucceeded)
    assert "idempotency_key" not in calls[0]


@pytest.mark.asyncio
async def test_stripe_error_becomes_failed_outcome(monkeypatch: pytest.MonkeyPatch) -> None:
    def _create(**params):
        raise stripe.StripeError("charge already refunded")

    monkeypatch.setattr(stripe.Refund, "create", _create)

    outcome = await make_gateway().refund("pi_3", 1000)

    assert isinstance(outcome, RefundFailed)
    assert "charge already refunded" in outcome.reason


@pytest.mark.asyncio
async def test_slow_processor_times_out(monkeypatch: pytest.MonkeyPatch) -> None:
    def _create(**params):
        time.sleep(0.3)
        return SimpleNamespace(id="re_late", status="succeeded")

    monkeypatch.setattr(stripe.Refund, "create", _create)

    outcome = await make_gateway(timeout_seconds=0.05).refund("pi_4", 1000)

    assert isinstance(outcome, RefundFailed)
    assert "timed out" in outcome.reason


@pytest.mark.asyncio
async def test_failed_refund_status_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        stripe.Refund,
        "create",
        lambda **params: SimpleNamespace(id="re_5", status="failed", failure_reason="expired_or_canceled_card"),
    )

    outcome = await make_gateway().refund("pi_5", 1000)

    assert outcome == RefundFailed(reason="Refund re_5 expired_or_canceled_card")


@pytest.mark.asyncio
async def test_non_positive_amount_never_reaches_processor(monkeypatch: pytest.MonkeyPatch) -> None:
    def _create(**params):
        raise AssertionError("processor must not be called")

    monkeypatch.setattr(stripe.Refund, "create", _create)

    outcome = await make_gateway().refund("pi_6", 0)

    assert isinstance(outcome, RefundFailed)


@pytest.mark.asyncio
async def test_disabled_gateway_always_fails() -> None:
    outcome = await DisabledPaymentGateway().refund("pi_7", 1000)

    assert outcome == RefundFailed(reason="Payment gateway is disabled")


def test_backend_selection_follows_settings() -> None:
    disabled = build_payment_gateway(Settings(_env_file=None, payment_gateway_backend="disabled"))
    enabled = build_payment_gateway(
        Settings(_env_file=None, payment_gateway_backend="STRIPE", stripe_secret_key="sk_test_abc"),
    )

    assert isinstance(disabled, DisabledPaymentGateway)
    assert isinstance(enabled, StripePaymentGateway)
    assert enabled.api_key == "sk_test_abc"


def test_minor_units_format() -> None:
    assert format_minor_units(4000) == "40.00"
    assert format_minor_units(1505) == "15.05"
