"""Bid quoting Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from throne.schemas.common import BaseSchema


class BidRequest(BaseSchema):
    """Contribution proposed by a bidder. Amount checks happen in the quoter."""

    amount: Optional[Decimal] = None


class BidQuote(BaseSchema):
    """
    Pending bid attached to a payment request.

    The prediction is advisory: settlement recomputes the outcome against
    live state.
    """

    bidder_id: str
    display_name: str
    amount_paid: Decimal
    required_payment: Decimal
    previous_investment: Decimal
    predicted_new_total: Decimal
    predicted_will_become_king: bool
    quoted_throne_amount: Decimal
    quoted_at: datetime

    def to_metadata(self) -> dict[str, str]:
        """Flatten to processor metadata; every value must be a string."""
        return {
            "bidder_id": self.bidder_id,
            "display_name": self.display_name,
            "amount_paid": str(self.amount_paid),
            "previous_investment": str(self.previous_investment),
            "predicted_new_total": str(self.predicted_new_total),
            "predicted_will_become_king": str(self.predicted_will_become_king).lower(),
            "quoted_throne_amount": str(self.quoted_throne_amount),
            "quoted_at": self.quoted_at.isoformat(),
        }


class QuoteResponse(BaseSchema):
    """Minimum payment needed to take the throne right now."""

    bidder_id: str
    total_invested: Decimal
    throne_amount: Decimal
    required_payment: Decimal


class BidResponse(BaseSchema):
    """Payment handle plus the quote's prediction."""

    payment_reference: str
    client_secret: Optional[str] = None
    amount: Decimal = Field(gt=0)
    required_payment: Decimal
    predicted_new_total: Decimal
    predicted_will_become_king: bool
    quoted_throne_amount: Decimal
