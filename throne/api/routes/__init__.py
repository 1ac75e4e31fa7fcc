"""API routes module."""

from throne.api.routes.bidders import router as bidders_router
from throne.api.routes.bids import router as bids_router
from throne.api.routes.webhooks import router as webhooks_router

__all__ = [
    "bidders_router",
    "bids_router",
    "webhooks_router",
]
