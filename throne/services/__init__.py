"""Services module."""

from throne.services.bidder_service import bidder_service
from throne.services.quote_service import (
    compute_required_payment,
    quote_bid,
    quote_service,
)
from throne.services.settlement_service import settlement_service

__all__ = [
    "bidder_service",
    "compute_required_payment",
    "quote_bid",
    "quote_service",
    "settlement_service",
]
