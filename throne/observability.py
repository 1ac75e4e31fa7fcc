"""Logfire observability initialization and instrumentation."""

import logging
from typing import Optional

import logfire
from fastapi import FastAPI

from throne import __version__
from throne.config import Settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def initialize_logfire(settings: Settings, app: Optional[FastAPI] = None) -> bool:
    """
    Initialize Logfire once at startup.

    Instruments:
    - FastAPI request handling (when an app is given)
    - SQLAlchemy engines (settlement transactions)
    - HTTPX clients (payment processor API)
    - Python logging (bridged to Logfire)

    Returns True when Logfire is active.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        logfire.configure(send_to_logfire=False, console=False)
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="throne",
            service_version=__version__,
            environment=settings.environment,
        )

        if app is not None:
            logfire.instrument_fastapi(app)
        logfire.instrument_sqlalchemy()
        logfire.instrument_httpx()

        logging.getLogger().addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire tracking initialized")
        return True

    except Exception as e:
        # Observability is optional
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False
