"""
Main FastAPI application entry point for Throne.

- Initializes FastAPI with lifespan management
- Configures CORS for the bidding frontend
- Sets up Logfire observability
- Mounts bid, webhook and read routers
"""

from contextlib import asynccontextmanager
from typing import Dict

import logfire
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from throne import __version__
from throne.api.routes import bidders_router, bids_router, webhooks_router
from throne.config import get_settings
from throne.database import check_db_connection, close_db, get_db_info, init_db
from throne.observability import initialize_logfire

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    initialize_logfire(get_settings(), app)

    logfire.info(
        "Starting Throne API Server",
        environment=get_settings().environment,
    )

    await init_db()

    db_info = get_db_info()
    if await check_db_connection():
        logfire.info("Database connection successful", url=db_info["url"])
    else:
        logfire.error("Database connection failed", url=db_info["url"])

    yield

    logfire.info("Shutting down Throne API Server")
    await close_db()


app = FastAPI(
    title="Throne API",
    description="King of the hill bidding ledger",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Stripe-Signature", "X-Bidder-Id"],
)

app.include_router(bids_router)
app.include_router(webhooks_router)
app.include_router(bidders_router)


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, str]:
    """Health check endpoint for load balancers and monitoring."""
    db_connected = await check_db_connection()

    return {
        "status": "healthy" if db_connected else "degraded",
        "service": "throne-api",
        "version": __version__,
        "database": "connected" if db_connected else "disconnected",
        "environment": get_settings().environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "throne.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
