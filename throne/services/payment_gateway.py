"""Payment processor client used to open payment requests for quoted bids."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol
from uuid import uuid4

import httpx

from throne.config import PaymentsConfig
from throne.exceptions import PaymentGatewayError
from throne.schemas.payment import PaymentIntent

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    async def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        description: str,
    ) -> PaymentIntent: ...


class StripePaymentGateway:
    """Creates Stripe payment intents over the REST API."""

    def __init__(
        self,
        config: PaymentsConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or PaymentsConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> StripePaymentGateway:
        self._client = httpx.AsyncClient(
            base_url=self.config.api_base,
            timeout=self.config.timeout_seconds,
            headers={"Authorization": f"Bearer {self.config.secret_key}"},
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "StripePaymentGateway must be used as async context manager"
            )
        return self._client

    async def _post(self, endpoint: str, data: dict[str, str]) -> dict[str, Any]:
        # Same key on every retry so the processor never creates two intents
        headers = {"Idempotency-Key": str(uuid4())}
        retry_count = 0

        while True:
            try:
                response = await self.client.post(endpoint, data=data, headers=headers)
            except httpx.TransportError as e:
                if retry_count >= self.config.max_retries:
                    raise PaymentGatewayError(f"Payment processor unreachable: {e}") from e
                wait_time = 2 ** retry_count
                logger.warning(f"Payment processor transport error, retrying in {wait_time}s: {e}")
                await asyncio.sleep(wait_time)
                retry_count += 1
                continue

            if response.status_code == 429 or response.status_code >= 500:
                if retry_count >= self.config.max_retries:
                    raise PaymentGatewayError(
                        f"Payment processor error {response.status_code}",
                        status_code=response.status_code,
                    )
                wait_time = 2 ** retry_count
                logger.warning(
                    f"Payment processor returned {response.status_code}, "
                    f"retrying in {wait_time}s..."
                )
                await asyncio.sleep(wait_time)
                retry_count += 1
                continue

            if response.status_code >= 400:
                try:
                    message = response.json().get("error", {}).get("message", response.text)
                except ValueError:
                    message = response.text
                raise PaymentGatewayError(
                    f"Payment processor rejected request: {message}",
                    status_code=response.status_code,
                )

            return response.json()

    async def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        description: str,
    ) -> PaymentIntent:
        data = {
            "amount": str(amount_minor),
            "currency": currency,
            "description": description,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = value

        payload = await self._post("/payment_intents", data)
        intent = PaymentIntent.model_validate(payload)
        logger.info(f"Created payment intent {intent.id} for {amount_minor} {currency}")
        return intent
