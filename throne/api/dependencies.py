"""FastAPI dependencies for identity and the payment gateway."""

from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException

from throne.config import get_settings
from throne.services.payment_gateway import PaymentGateway, StripePaymentGateway

BIDDER_HEADER = "X-Bidder-Id"


async def get_bidder_id(
    x_bidder_id: Optional[str] = Header(default=None, alias=BIDDER_HEADER),
) -> str:
    """
    Verified bidder identifier.

    The identity provider's proxy validates the caller's token and forwards
    the subject in this header.
    """
    if not x_bidder_id or not x_bidder_id.strip():
        raise HTTPException(status_code=401, detail="Authenticated bidder required")
    return x_bidder_id.strip()


async def get_payment_gateway() -> AsyncGenerator[PaymentGateway, None]:
    async with StripePaymentGateway(get_settings().payments) as gateway:
        yield gateway
