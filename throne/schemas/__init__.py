"""Pydantic schemas."""

from throne.schemas.bid import BidQuote, BidRequest, BidResponse, QuoteResponse
from throne.schemas.bidder import (
    BidderRegistration,
    BidderResponse,
    HistoryEventResponse,
    ThroneResponse,
)
from throne.schemas.common import BaseSchema
from throne.schemas.payment import (
    PAYMENT_SUCCEEDED,
    ConfirmedPayment,
    PaymentIntent,
    SettlementOutcome,
    WebhookAck,
)

__all__ = [
    "BaseSchema",
    "BidQuote",
    "BidRequest",
    "BidResponse",
    "QuoteResponse",
    "BidderRegistration",
    "BidderResponse",
    "HistoryEventResponse",
    "ThroneResponse",
    "PAYMENT_SUCCEEDED",
    "ConfirmedPayment",
    "PaymentIntent",
    "SettlementOutcome",
    "WebhookAck",
]
