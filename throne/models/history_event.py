"""History event database model."""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)

from throne.database.base import Base
from throne.models.base import UUIDMixin
from throne.utils.time_utils import utc_now


class HistoryEventKind(str, Enum):
    CORONATION = "coronation"
    CONTRIBUTION = "contribution"


class HistoryEvent(Base, UUIDMixin):
    """Append-only record of one settled payment."""

    __tablename__ = "history_events"

    # One row per payment; the unique index is the idempotency guard
    payment_reference = Column(String(255), nullable=False, unique=True)
    kind = Column(String(20), nullable=False)

    bidder_id = Column(
        String(128),
        ForeignKey("bidders.id"),
        nullable=False,
        index=True,
    )
    bidder_name = Column(String(100), nullable=False)
    amount_paid = Column(Numeric(15, 2), nullable=False)
    total_after = Column(Numeric(15, 2), nullable=False)
    throne_amount_before = Column(Numeric(15, 2), nullable=False)

    # Coronation only
    dethroned_bidder_id = Column(String(128), nullable=True)
    dethroned_bidder_name = Column(String(100), nullable=True)

    # Quote-time prediction, kept for auditing
    predicted_new_total = Column(Numeric(15, 2), nullable=True)
    predicted_will_become_king = Column(Boolean, nullable=True)

    message = Column(Text, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    __table_args__ = (
        CheckConstraint(
            "kind IN ('coronation', 'contribution')",
            name="valid_history_kind",
        ),
        CheckConstraint("amount_paid > 0", name="positive_amount_paid"),
        Index("idx_history_events_created_at", "created_at"),
    )

    @property
    def is_coronation(self) -> bool:
        return self.kind == HistoryEventKind.CORONATION.value

    def __repr__(self) -> str:
        return f"<HistoryEvent {self.kind} {self.payment_reference}>"
