"""
Throne Exception Hierarchy

Exception Classes:
- ThroneError: Base exception (retryable=False)
- BidValidationError: Bid amount missing, non-positive or below the minimum
- BidderNotFoundError: Referenced bidder does not exist (non-retryable)
- MalformedEventError: Confirmed-payment event is unprocessable (non-retryable)
- SettlementConflictError: Store write conflict survived all retries (retryable=True)
- AuthenticityError: Webhook signature verification failed
- PaymentGatewayError: Payment processor API error

Retry Logic:
- Retryable errors ask the event source to redeliver (HTTP 503 / Celery retry)
- Non-retryable errors are reported once and the event is dropped
"""

from decimal import Decimal
from typing import Optional


class ThroneError(Exception):
    """Base exception for ledger errors."""

    retryable = False


class BidValidationError(ThroneError):
    """Proposed contribution cannot take the throne."""

    def __init__(self, message: str, required_payment: Decimal):
        super().__init__(message)
        self.required_payment = required_payment


class BidderNotFoundError(ThroneError):
    """Bidder record is missing."""

    def __init__(self, bidder_id: str):
        super().__init__(f"Bidder {bidder_id} not found")
        self.bidder_id = bidder_id


class MalformedEventError(ThroneError):
    """Confirmed-payment event is missing required fields."""

    pass


class SettlementConflictError(ThroneError):
    """Concurrent writers kept aborting the settlement transaction."""

    retryable = True

    def __init__(self, payment_reference: str, attempts: int):
        super().__init__(
            f"Settlement of {payment_reference} conflicted {attempts} times"
        )
        self.payment_reference = payment_reference
        self.attempts = attempts


class AuthenticityError(ThroneError):
    """Event signature did not verify."""

    pass


class PaymentGatewayError(ThroneError):
    """Payment processor rejected or failed a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
