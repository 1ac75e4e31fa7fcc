"""Bid initiation API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from throne.api.dependencies import get_bidder_id, get_payment_gateway
from throne.database.dependencies import get_db
from throne.exceptions import BidderNotFoundError, BidValidationError, PaymentGatewayError
from throne.schemas import BidRequest, BidResponse, QuoteResponse
from throne.services import quote_service
from throne.services.payment_gateway import PaymentGateway

router = APIRouter(prefix="/bids", tags=["Bids"])


@router.get("/quote", response_model=QuoteResponse)
async def get_quote(
    bidder_id: str = Depends(get_bidder_id),
    db: AsyncSession = Depends(get_db),
):
    """Minimum payment the caller needs to take the throne."""
    try:
        return await quote_service.get_quote(db, bidder_id)
    except BidderNotFoundError:
        raise HTTPException(status_code=404, detail="Bidder not found")


@router.post("", response_model=BidResponse)
async def create_bid(
    request: BidRequest,
    bidder_id: str = Depends(get_bidder_id),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Quote a contribution and open a payment request for it."""
    try:
        return await quote_service.create_bid(db, bidder_id, request.amount, gateway)
    except BidderNotFoundError:
        raise HTTPException(status_code=404, detail="Bidder not found")
    except BidValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": str(e), "required_payment": str(e.required_payment)},
        )
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
