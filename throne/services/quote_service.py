"""Bid quoting: minimum payment to take the throne and the predicted outcome."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from throne.config import Settings, get_settings
from throne.exceptions import BidderNotFoundError, BidValidationError
from throne.models import THRONE_ID, Bidder, Throne
from throne.schemas.bid import BidQuote, BidResponse, QuoteResponse
from throne.services.payment_gateway import PaymentGateway
from throne.utils.money import ZERO, to_minor_units, to_money
from throne.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def compute_required_payment(
    bidder_total: Decimal,
    throne_amount: Decimal,
    epsilon: Decimal,
    min_payment: Decimal,
) -> Decimal:
    """
    Smallest payment that puts the bidder on the throne.

        required = max(min_payment, throne_amount + epsilon - bidder_total)

    The processor floor applies even when the bidder already exceeds the
    throne amount.
    """
    shortfall = to_money(throne_amount) + epsilon - to_money(bidder_total)
    return to_money(max(min_payment, shortfall, ZERO))


def quote_bid(
    bidder_id: str,
    display_name: str,
    bidder_total: Decimal,
    throne_amount: Decimal,
    amount: Optional[Decimal],
    epsilon: Decimal,
    min_payment: Decimal,
    quoted_at: datetime,
) -> BidQuote:
    """
    Validate a proposed contribution and predict its outcome.

    Raises BidValidationError (carrying the required payment) when the
    amount is missing, non-positive or below the minimum.
    """
    required = compute_required_payment(bidder_total, throne_amount, epsilon, min_payment)

    if amount is None:
        raise BidValidationError("Amount is required", required)
    try:
        amount = to_money(amount)
    except ValueError:
        raise BidValidationError(f"Invalid amount: {amount!r}", required)
    if amount <= 0:
        raise BidValidationError("Amount must be positive", required)
    if amount < required:
        raise BidValidationError(
            f"Insufficient amount. You need at least ${required}", required
        )

    previous = to_money(bidder_total)
    throne_amount = to_money(throne_amount)
    predicted_new_total = previous + amount

    return BidQuote(
        bidder_id=bidder_id,
        display_name=display_name,
        amount_paid=amount,
        required_payment=required,
        previous_investment=previous,
        predicted_new_total=predicted_new_total,
        predicted_will_become_king=predicted_new_total > throne_amount,
        quoted_throne_amount=throne_amount,
        quoted_at=quoted_at,
    )


class QuoteService:
    """
    Reads live bidder and throne state and produces quotes and payment requests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._settings = settings
        self.clock = clock

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    async def _load_state(self, db: AsyncSession, bidder_id: str) -> tuple[Bidder, Decimal]:
        bidder = await db.get(Bidder, bidder_id)
        if bidder is None:
            raise BidderNotFoundError(bidder_id)
        throne = await db.get(Throne, THRONE_ID)
        throne_amount = to_money(throne.amount) if throne else ZERO
        return bidder, throne_amount

    async def get_quote(self, db: AsyncSession, bidder_id: str) -> QuoteResponse:
        """Current minimum payment for a bidder, without creating a payment."""
        bidder, throne_amount = await self._load_state(db, bidder_id)
        auction = self.settings.auction
        return QuoteResponse(
            bidder_id=bidder.id,
            total_invested=to_money(bidder.total_invested),
            throne_amount=throne_amount,
            required_payment=compute_required_payment(
                bidder.total_invested, throne_amount, auction.epsilon, auction.min_payment
            ),
        )

    async def create_bid(
        self,
        db: AsyncSession,
        bidder_id: str,
        amount: Optional[Decimal],
        gateway: PaymentGateway,
    ) -> BidResponse:
        """
        Quote a contribution and open a payment request for it.

        Process:
        1. Read bidder total and throne amount
        2. Validate amount against the required payment
        3. Create the payment intent with the prediction as metadata
        """
        bidder, throne_amount = await self._load_state(db, bidder_id)
        auction = self.settings.auction

        quote = quote_bid(
            bidder_id=bidder.id,
            display_name=bidder.display_name,
            bidder_total=bidder.total_invested,
            throne_amount=throne_amount,
            amount=amount,
            epsilon=auction.epsilon,
            min_payment=auction.min_payment,
            quoted_at=self.clock(),
        )

        intent = await gateway.create_payment_intent(
            amount_minor=to_minor_units(quote.amount_paid),
            currency=auction.currency,
            metadata=quote.to_metadata(),
            description=f"Bid by {bidder.display_name} - ${quote.amount_paid}",
        )

        logger.info(
            f"Quoted bid {intent.id}: {bidder.display_name} pays ${quote.amount_paid} "
            f"(total ${quote.predicted_new_total} vs throne ${throne_amount}, "
            f"predicted king={quote.predicted_will_become_king})"
        )

        return BidResponse(
            payment_reference=intent.id,
            client_secret=intent.client_secret,
            amount=quote.amount_paid,
            required_payment=quote.required_payment,
            predicted_new_total=quote.predicted_new_total,
            predicted_will_become_king=quote.predicted_will_become_king,
            quoted_throne_amount=quote.quoted_throne_amount,
        )


# Singleton instance
quote_service = QuoteService()
