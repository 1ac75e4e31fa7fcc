"""Bidder registration and read models for the throne and its history."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from throne.config import Settings, get_settings
from throne.models import THRONE_ID, Bidder, HistoryEvent, Throne
from throne.schemas.bidder import ThroneResponse
from throne.utils.money import ZERO, to_money

logger = logging.getLogger(__name__)


class BidderService:
    """
    Bidder records are created on first interaction; everything else about
    them is written by settlement only.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    async def get_bidder(self, db: AsyncSession, bidder_id: str) -> Optional[Bidder]:
        """Fetch single bidder by ID."""
        return await db.get(Bidder, bidder_id)

    async def register_bidder(
        self,
        db: AsyncSession,
        bidder_id: str,
        display_name: str,
        email: Optional[str] = None,
    ) -> Bidder:
        """Create the bidder or refresh its profile fields (not totals or stats)."""
        bidder = await self.get_bidder(db, bidder_id)
        if bidder is None:
            bidder = Bidder(
                id=bidder_id,
                display_name=display_name,
                email=email,
                total_invested=ZERO,
                times_as_king=0,
                total_time_as_king_seconds=0.0,
                longest_reign_seconds=0.0,
            )
            db.add(bidder)
            try:
                await db.commit()
                logger.info(f"Registered bidder {bidder_id} ({display_name})")
            except IntegrityError:
                # Another request registered the same id first
                await db.rollback()
                bidder = await db.get(Bidder, bidder_id, populate_existing=True)
                if bidder is None:
                    raise
                logger.info(f"Bidder {bidder_id} registered concurrently, updating profile")
                self._update_profile(bidder, display_name, email)
                await db.commit()
        else:
            self._update_profile(bidder, display_name, email)
            await db.commit()

        await db.refresh(bidder)
        return bidder

    def _update_profile(self, bidder: Bidder, display_name: str, email: Optional[str]) -> None:
        bidder.display_name = display_name
        if email is not None:
            bidder.email = email

    async def get_throne(self, db: AsyncSession) -> ThroneResponse:
        """Current holder, or the bootstrap holder with amount 0."""
        throne = await db.get(Throne, THRONE_ID)
        if throne is None:
            return ThroneResponse(
                holder_id=None,
                holder_name=self.settings.auction.initial_holder_name,
                amount=ZERO,
                crowned_at=None,
                payment_reference=None,
            )
        return ThroneResponse(
            holder_id=throne.holder_id,
            holder_name=throne.holder_name,
            amount=to_money(throne.amount),
            crowned_at=throne.crowned_at,
            payment_reference=throne.payment_reference,
        )

    async def get_history(self, db: AsyncSession, limit: int = 20) -> list[HistoryEvent]:
        """Most recent history events, newest first."""
        result = await db.execute(
            select(HistoryEvent)
            .order_by(HistoryEvent.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_bidder_history(
        self, db: AsyncSession, bidder_id: str, limit: int = 20
    ) -> list[HistoryEvent]:
        result = await db.execute(
            select(HistoryEvent)
            .where(HistoryEvent.bidder_id == bidder_id)
            .order_by(HistoryEvent.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


# Singleton instance
bidder_service = BidderService()
