"""Unit tests for classifying store errors as retryable write conflicts."""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm.exc import StaleDataError

from throne.services.settlement_service import is_write_conflict


class PgError(Exception):
    def __init__(self, message, sqlstate):
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity(orig) -> IntegrityError:
    return IntegrityError("INSERT INTO history_events ...", {}, orig)


def test_version_mismatch_is_conflict():
    assert is_write_conflict(StaleDataError("version mismatch"))


@pytest.mark.parametrize(
    "orig",
    [
        sqlite3.IntegrityError("UNIQUE constraint failed: history_events.payment_reference"),
        sqlite3.IntegrityError("UNIQUE constraint failed: throne.id"),
        PgError("duplicate key value violates unique constraint", "23505"),
    ],
)
def test_unique_violations_are_conflicts(orig):
    assert is_write_conflict(_integrity(orig))


@pytest.mark.parametrize(
    "orig",
    [
        sqlite3.IntegrityError("CHECK constraint failed: positive_amount_paid"),
        sqlite3.IntegrityError("NOT NULL constraint failed: history_events.message"),
        sqlite3.IntegrityError("FOREIGN KEY constraint failed"),
        PgError("new row violates check constraint", "23514"),
        PgError("insert violates foreign key constraint", "23503"),
    ],
)
def test_other_integrity_errors_are_not_conflicts(orig):
    assert not is_write_conflict(_integrity(orig))


def test_serialization_failure_and_busy_lock_are_conflicts():
    assert is_write_conflict(
        OperationalError("UPDATE throne ...", {}, PgError("could not serialize", "40001"))
    )
    assert is_write_conflict(
        OperationalError("UPDATE throne ...", {}, sqlite3.OperationalError("database is locked"))
    )


def test_unrelated_errors_are_not_conflicts():
    assert not is_write_conflict(
        ProgrammingError("SELECT ...", {}, PgError("syntax error", "42601"))
    )
    assert not is_write_conflict(ValueError("boom"))
