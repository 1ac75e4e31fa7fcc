"""Unit tests for the payment processor client."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from throne.config import PaymentsConfig
from throne.exceptions import PaymentGatewayError
from throne.services.payment_gateway import StripePaymentGateway

CONFIG = PaymentsConfig(secret_key="sk_test_123", max_retries=1)


async def _no_sleep(seconds):
    return None


def _intent_response(request: httpx.Request) -> httpx.Response:
    form = parse_qs(request.content.decode())
    return httpx.Response(
        200,
        json={
            "id": "pi_abc",
            "object": "payment_intent",
            "client_secret": "pi_abc_secret_xyz",
            "amount": int(form["amount"][0]),
            "currency": form["currency"][0],
            "status": "requires_payment_method",
            "metadata": {
                key[len("metadata["):-1]: values[0]
                for key, values in form.items()
                if key.startswith("metadata[")
            },
        },
    )


def test_create_payment_intent_sends_form_and_metadata():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _intent_response(request)

    async def run():
        async with StripePaymentGateway(CONFIG, transport=httpx.MockTransport(handler)) as gateway:
            return await gateway.create_payment_intent(
                amount_minor=1001,
                currency="usd",
                metadata={"bidder_id": "alice", "predicted_will_become_king": "true"},
                description="Bid by Alice - $10.01",
            )

    intent = asyncio.run(run())

    assert intent.id == "pi_abc"
    assert intent.client_secret == "pi_abc_secret_xyz"
    assert intent.amount == 1001
    assert intent.metadata == {"bidder_id": "alice", "predicted_will_become_king": "true"}

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/payment_intents"
    assert request.headers["Authorization"] == "Bearer sk_test_123"
    assert request.headers["Idempotency-Key"]


def test_server_errors_are_retried_with_same_idempotency_key(monkeypatch):
    monkeypatch.setattr("throne.services.payment_gateway.asyncio.sleep", _no_sleep)
    keys = []

    def handler(request: httpx.Request) -> httpx.Response:
        keys.append(request.headers["Idempotency-Key"])
        if len(keys) == 1:
            return httpx.Response(503, json={"error": {"message": "try again"}})
        return _intent_response(request)

    async def run():
        async with StripePaymentGateway(CONFIG, transport=httpx.MockTransport(handler)) as gateway:
            return await gateway.create_payment_intent(50, "usd", {}, "Bid")

    intent = asyncio.run(run())

    assert intent.amount == 50
    assert len(keys) == 2
    assert keys[0] == keys[1]


def test_client_errors_raise_gateway_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(402, json={"error": {"message": "Your card was declined."}})

    async def run():
        async with StripePaymentGateway(CONFIG, transport=httpx.MockTransport(handler)) as gateway:
            await gateway.create_payment_intent(50, "usd", {}, "Bid")

    with pytest.raises(PaymentGatewayError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.status_code == 402
    assert "declined" in str(exc_info.value)


def test_retries_exhausted(monkeypatch):
    monkeypatch.setattr("throne.services.payment_gateway.asyncio.sleep", _no_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async def run():
        async with StripePaymentGateway(CONFIG, transport=httpx.MockTransport(handler)) as gateway:
            await gateway.create_payment_intent(50, "usd", {}, "Bid")

    with pytest.raises(PaymentGatewayError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 500


def test_gateway_requires_context_manager():
    gateway = StripePaymentGateway(CONFIG)
    with pytest.raises(RuntimeError):
        gateway.client
