"""Shared fixtures: throwaway SQLite databases, a controllable clock, settings."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from throne.config import Settings, SettlementConfig, get_settings
from throne.database import create_engine, create_session_factory, create_tables
from throne.schemas import ConfirmedPayment


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_payment(reference: str, bidder_id: str, amount: str, **extra) -> ConfirmedPayment:
    return ConfirmedPayment(
        payment_reference=reference,
        bidder_id=bidder_id,
        amount_paid=Decimal(amount),
        **extra,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(settlement=SettlementConfig(retry_backoff_seconds=0))


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'throne.db'}"


@pytest.fixture
def run_db(database_url):
    """Run an async scenario against a fresh database; it receives a session factory."""

    def runner(scenario):
        async def main():
            engine = create_engine(database_url)
            await create_tables(engine)
            try:
                return await scenario(create_session_factory(engine))
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner


@pytest.fixture
def app_env(monkeypatch, database_url):
    """Point the global settings and engine at the test database."""
    import throne.database.session as session_module

    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("PAYMENTS__WEBHOOK_SECRET", "whsec_test")
    monkeypatch.setenv("SETTLEMENT__RETRY_BACKOFF_SECONDS", "0")
    monkeypatch.setattr(session_module, "_async_engine", None)
    monkeypatch.setattr(session_module, "_async_session_factory", None)
    get_settings.cache_clear()
    yield database_url
    get_settings.cache_clear()
