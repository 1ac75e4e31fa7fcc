"""Bidder, throne and history Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from throne.schemas.common import BaseSchema


class BidderRegistration(BaseSchema):
    display_name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)


class BidderResponse(BaseSchema):
    id: str
    display_name: str
    total_invested: Decimal
    times_as_king: int
    total_time_as_king_seconds: float
    longest_reign_seconds: float
    last_crowned_at: Optional[datetime]
    created_at: datetime


class ThroneResponse(BaseSchema):
    holder_id: Optional[str]
    holder_name: str
    amount: Decimal
    crowned_at: Optional[datetime]
    payment_reference: Optional[str]


class HistoryEventResponse(BaseSchema):
    id: UUID
    payment_reference: str
    kind: str
    bidder_id: str
    bidder_name: str
    amount_paid: Decimal
    total_after: Decimal
    throne_amount_before: Decimal
    dethroned_bidder_id: Optional[str]
    dethroned_bidder_name: Optional[str]
    message: str
    created_at: datetime
