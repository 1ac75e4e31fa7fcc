"""Bidder, throne and history API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from throne.api.dependencies import get_bidder_id
from throne.database.dependencies import get_db
from throne.schemas import (
    BidderRegistration,
    BidderResponse,
    HistoryEventResponse,
    ThroneResponse,
)
from throne.services import bidder_service

router = APIRouter(tags=["Throne"])


@router.get("/throne", response_model=ThroneResponse)
async def get_throne(db: AsyncSession = Depends(get_db)):
    """Current throne holder."""
    return await bidder_service.get_throne(db)


@router.get("/history", response_model=list[HistoryEventResponse])
async def get_history(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Most recent coronations and contributions."""
    events = await bidder_service.get_history(db, limit=limit)
    return [HistoryEventResponse.model_validate(e) for e in events]


@router.put("/bidders/me", response_model=BidderResponse)
async def register_me(
    registration: BidderRegistration,
    bidder_id: str = Depends(get_bidder_id),
    db: AsyncSession = Depends(get_db),
):
    """Create or update the caller's bidder profile."""
    bidder = await bidder_service.register_bidder(
        db, bidder_id, registration.display_name, registration.email
    )
    return BidderResponse.model_validate(bidder)


@router.get("/bidders/{bidder_id}", response_model=BidderResponse)
async def get_bidder(bidder_id: str, db: AsyncSession = Depends(get_db)):
    """Bidder totals and reign statistics."""
    bidder = await bidder_service.get_bidder(db, bidder_id)
    if not bidder:
        raise HTTPException(status_code=404, detail="Bidder not found")
    return BidderResponse.model_validate(bidder)


@router.get("/bidders/{bidder_id}/history", response_model=list[HistoryEventResponse])
async def get_bidder_history(
    bidder_id: str,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """History events for one bidder."""
    events = await bidder_service.get_bidder_history(db, bidder_id, limit=limit)
    return [HistoryEventResponse.model_validate(e) for e in events]
