"""
Integration Tests: Celery settlement task

Runs tasks.settle_payment eagerly (no broker) against a SQLite database.
"""

import asyncio
from decimal import Decimal

import pytest

from throne.database import create_engine, create_session_factory, create_tables
from throne.models import THRONE_ID, Bidder, Throne
from throne.services.bidder_service import BidderService
from throne.tasks.settlement_tasks import settle_payment


@pytest.fixture
def seeded_db(app_env):
    async def seed():
        engine = create_engine(app_env)
        await create_tables(engine)
        try:
            async with create_session_factory(engine)() as db:
                await BidderService().register_bidder(db, "alice", "Alice")
        finally:
            await engine.dispose()

    asyncio.run(seed())
    return app_env


def _read_state(database_url):
    async def read():
        engine = create_engine(database_url)
        try:
            async with create_session_factory(engine)() as db:
                return await db.get(Bidder, "alice"), await db.get(Throne, THRONE_ID)
        finally:
            await engine.dispose()

    return asyncio.run(read())


def _payload(reference="pi_task_1", bidder_id="alice", amount="2.50"):
    return {
        "payment_reference": reference,
        "bidder_id": bidder_id,
        "amount_paid": amount,
        "predicted_will_become_king": True,
    }


def test_task_settles_payment(seeded_db):
    result = settle_payment.apply(args=[_payload()]).get()

    assert result["status"] == "settled"
    assert result["crowned"] is True

    alice, throne = _read_state(seeded_db)
    assert alice.total_invested == Decimal("2.50")
    assert throne.holder_id == "alice"


def test_task_redelivery_is_duplicate(seeded_db):
    settle_payment.apply(args=[_payload()]).get()
    result = settle_payment.apply(args=[_payload()]).get()

    assert result["status"] == "duplicate"
    alice, _ = _read_state(seeded_db)
    assert alice.total_invested == Decimal("2.50")


def test_task_skips_unknown_bidder(seeded_db):
    result = settle_payment.apply(args=[_payload(bidder_id="ghost")]).get()

    assert result["payment_reference"] == "pi_task_1"
    assert result["skipped"] is True
    assert result["reason"] == "Bidder ghost not found"
    _, throne = _read_state(seeded_db)
    assert throne is None


def test_task_skips_malformed_payload(seeded_db):
    result = settle_payment.apply(args=[_payload(amount="-1")]).get()

    assert result["skipped"] is True


def test_task_skips_amount_rounding_to_zero(seeded_db):
    result = settle_payment.apply(args=[_payload(reference="pi_dust", amount="0.004")]).get()

    assert result["payment_reference"] == "pi_dust"
    assert result["skipped"] is True
    alice, _ = _read_state(seeded_db)
    assert alice.total_invested == Decimal("0.00")
