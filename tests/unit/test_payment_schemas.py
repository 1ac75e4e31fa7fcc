"""Unit tests for confirmed-payment parsing."""

from decimal import Decimal

import pytest

from throne.exceptions import MalformedEventError
from throne.schemas import ConfirmedPayment


def _event(**intent_overrides):
    intent = {
        "id": "pi_123",
        "object": "payment_intent",
        "amount": 1001,
        "amount_received": 1001,
        "currency": "usd",
        "metadata": {
            "bidder_id": "alice",
            "display_name": "Alice",
            "amount_paid": "10.01",
            "previous_investment": "0.00",
            "predicted_new_total": "10.01",
            "predicted_will_become_king": "true",
            "quoted_throne_amount": "10.00",
        },
    }
    intent.update(intent_overrides)
    return {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": intent}}


def test_from_processor_event():
    payment = ConfirmedPayment.from_processor_event(_event())

    assert payment.payment_reference == "pi_123"
    assert payment.bidder_id == "alice"
    assert payment.amount_paid == Decimal("10.01")
    assert payment.predicted_new_total == Decimal("10.01")
    assert payment.predicted_will_become_king is True
    assert payment.quoted_throne_amount == Decimal("10.00")


def test_captured_amount_wins_over_metadata():
    payment = ConfirmedPayment.from_processor_event(_event(amount=2000, amount_received=2000))
    assert payment.amount_paid == Decimal("20.00")


def test_prediction_fields_are_optional():
    payment = ConfirmedPayment.from_processor_event(_event(metadata={"bidder_id": "bob"}))

    assert payment.bidder_id == "bob"
    assert payment.predicted_new_total is None
    assert payment.predicted_will_become_king is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"metadata": {}},
        {"id": ""},
        {"amount": None, "amount_received": None},
        {"amount": "1001", "amount_received": "1001"},
        {"amount": 0, "amount_received": 0},
    ],
)
def test_malformed_events(overrides):
    with pytest.raises(MalformedEventError):
        ConfirmedPayment.from_processor_event(_event(**overrides))


def test_event_without_intent_object():
    with pytest.raises(MalformedEventError):
        ConfirmedPayment.from_processor_event({"type": "payment_intent.succeeded", "data": {}})


def test_parse_round_trips_queued_payload():
    payment = ConfirmedPayment.from_processor_event(_event())
    assert ConfirmedPayment.parse(payment.model_dump(mode="json")) == payment


@pytest.mark.parametrize("amount", ["0.004", "0.001", "0.00"])
def test_amount_rounding_to_zero_is_malformed(amount):
    with pytest.raises(MalformedEventError) as exc_info:
        ConfirmedPayment.parse(
            {"payment_reference": "pi_dust", "bidder_id": "alice", "amount_paid": amount}
        )

    assert exc_info.value.retryable is False


def test_sub_cent_amount_rounds_half_up():
    payment = ConfirmedPayment.parse(
        {"payment_reference": "pi_half", "bidder_id": "alice", "amount_paid": "0.005"}
    )
    assert payment.amount_paid == Decimal("0.01")
