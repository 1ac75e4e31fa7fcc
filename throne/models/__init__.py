"""Database models module."""

from throne.models.bidder import Bidder
from throne.models.history_event import HistoryEvent, HistoryEventKind
from throne.models.throne import THRONE_ID, Throne

__all__ = [
    "Bidder",
    "HistoryEvent",
    "HistoryEventKind",
    "THRONE_ID",
    "Throne",
]
