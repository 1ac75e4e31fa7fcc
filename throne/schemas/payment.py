"""Confirmed payment and settlement Pydantic schemas."""

import logging
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import Field, ValidationError, field_validator, model_validator

from throne.exceptions import MalformedEventError
from throne.schemas.common import BaseSchema
from throne.utils.money import from_minor_units, to_money

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"


class PaymentIntent(BaseSchema):
    """Payment request created at the processor."""

    id: str
    client_secret: Optional[str] = None
    amount: int
    currency: str
    status: str = "requires_payment_method"
    metadata: dict[str, str] = Field(default_factory=dict)


class ConfirmedPayment(BaseSchema):
    """Payment the processor reports as captured."""

    payment_reference: str = Field(min_length=1)
    bidder_id: str = Field(min_length=1)
    amount_paid: Decimal = Field(gt=0)
    bidder_name: Optional[str] = None

    # Echoed quote metadata, audit only
    predicted_new_total: Optional[Decimal] = None
    predicted_will_become_king: Optional[bool] = None
    quoted_throne_amount: Optional[Decimal] = None

    @field_validator(
        "amount_paid", "predicted_new_total", "quoted_throne_amount", mode="after"
    )
    @classmethod
    def quantize_money(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return None if v is None else to_money(v)

    @model_validator(mode="after")
    def amount_survives_rounding(self) -> "ConfirmedPayment":
        # gt=0 is checked before rounding to cents
        if self.amount_paid <= 0:
            raise ValueError(f"amount_paid rounds to ${self.amount_paid}")
        return self

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "ConfirmedPayment":
        """Validate a stored or queued payload."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedEventError(f"Invalid confirmed payment: {e}") from e

    @classmethod
    def from_processor_event(cls, event: dict[str, Any]) -> "ConfirmedPayment":
        """
        Build from a payment_intent.succeeded event.

        The amount is the processor's captured amount in minor units; the
        amount echoed in metadata is only compared for logging.
        """
        intent = (event.get("data") or {}).get("object")
        if not isinstance(intent, dict):
            raise MalformedEventError("Event has no payment intent object")

        metadata = intent.get("metadata") or {}
        received = intent.get("amount_received", intent.get("amount"))
        if isinstance(received, bool) or not isinstance(received, int):
            raise MalformedEventError(
                f"Payment {intent.get('id')} has no integer amount"
            )

        payment = cls.parse(
            {
                "payment_reference": intent.get("id") or "",
                "bidder_id": metadata.get("bidder_id") or "",
                "amount_paid": from_minor_units(received),
                "bidder_name": metadata.get("display_name"),
                "predicted_new_total": metadata.get("predicted_new_total") or None,
                "predicted_will_become_king": metadata.get("predicted_will_become_king") or None,
                "quoted_throne_amount": metadata.get("quoted_throne_amount") or None,
            }
        )

        echoed = metadata.get("amount_paid")
        if echoed:
            try:
                if to_money(echoed) != payment.amount_paid:
                    logger.warning(
                        f"Payment {payment.payment_reference}: captured "
                        f"${payment.amount_paid} differs from quoted ${echoed}"
                    )
            except ValueError:
                logger.warning(
                    f"Payment {payment.payment_reference}: unreadable quoted amount {echoed!r}"
                )

        return payment


class SettlementOutcome(BaseSchema):
    """Result of applying one confirmed payment."""

    payment_reference: str
    status: Literal["settled", "duplicate"]
    kind: str
    bidder_id: str
    amount_paid: Decimal
    total_after: Decimal
    throne_amount: Decimal
    crowned: bool
    lost_race: bool = False
    dethroned_bidder_id: Optional[str] = None
    attempts: int = 1


class WebhookAck(BaseSchema):
    """Response to the payment processor."""

    received: bool = True
    status: Literal["settled", "duplicate", "queued", "ignored", "unprocessable"]
    reason: Optional[str] = None
    outcome: Optional[SettlementOutcome] = None
