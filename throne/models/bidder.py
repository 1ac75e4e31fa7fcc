"""Bidder database model."""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, Numeric, String

from throne.database.base import Base
from throne.models.base import TimestampMixin


class Bidder(Base, TimestampMixin):
    """Contributor with cumulative investment and reign statistics."""

    __tablename__ = "bidders"

    # Issued by the identity provider
    id = Column(String(128), primary_key=True)
    display_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)

    # Financial tracking
    total_invested = Column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # Reign statistics
    times_as_king = Column(Integer, nullable=False, default=0)
    total_time_as_king_seconds = Column(Float, nullable=False, default=0.0)
    longest_reign_seconds = Column(Float, nullable=False, default=0.0)
    last_crowned_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("total_invested >= 0", name="total_invested_non_negative"),
    )

    @property
    def total_time_as_king(self) -> timedelta:
        return timedelta(seconds=self.total_time_as_king_seconds or 0.0)

    @property
    def longest_reign(self) -> timedelta:
        return timedelta(seconds=self.longest_reign_seconds or 0.0)

    def __repr__(self) -> str:
        return f"<Bidder {self.display_name} (${self.total_invested})>"
