"""Confirmed-payment settlement: investment update, coronation and history."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from throne.config import Settings, get_settings
from throne.exceptions import BidderNotFoundError, SettlementConflictError
from throne.models import THRONE_ID, Bidder, HistoryEvent, HistoryEventKind, Throne
from throne.schemas.payment import ConfirmedPayment, SettlementOutcome
from throne.utils.money import ZERO, to_money
from throne.utils.time_utils import ensure_utc, reign_seconds, utc_now

logger = logging.getLogger(__name__)

# SQLSTATE serialization_failure, deadlock_detected
SERIALIZATION_FAILURES = {"40001", "40P01"}
UNIQUE_VIOLATION = "23505"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_write_conflict(exc: BaseException) -> bool:
    """
    True when the store aborted the transaction because of a concurrent writer.

    - StaleDataError: version check on Bidder/Throne found the row changed
    - unique violation: duplicate payment reference or concurrent first throne
    - serialization failure / deadlock reported by the database
    - SQLite busy lock

    Other integrity errors (CHECK, NOT NULL, foreign key) fail the same way
    on every attempt and are not conflicts.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, IntegrityError):
        return (
            _sqlstate(exc) == UNIQUE_VIOLATION
            or "UNIQUE constraint failed" in str(exc.orig)
        )
    if isinstance(exc, OperationalError) and "database is locked" in str(exc.orig):
        return True
    if isinstance(exc, DBAPIError):
        return _sqlstate(exc) in SERIALIZATION_FAILURES
    return False


@dataclass
class _ThroneState:
    holder_id: Optional[str]
    holder_name: str
    amount: Decimal
    crowned_at: Optional[datetime]


class SettlementService:
    """
    Applies confirmed payments exactly once.

    Each payment runs as one transaction:
    1. Idempotency check on the payment reference
    2. Read bidder, throne and the current holder
    3. Recompute the new total and the coronation decision from stored state
    4. Write bidder, history event and (on coronation) throne and reign stats
    5. Commit; on a write conflict roll back and start again at step 1
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._settings = settings
        self.clock = clock

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    async def settle_payment(
        self,
        db: AsyncSession,
        payment: ConfirmedPayment,
    ) -> SettlementOutcome:
        """
        Settle one confirmed payment; safe to call again for the same reference.

        Raises:
            BidderNotFoundError: payment names an unknown bidder (fatal)
            SettlementConflictError: conflicts outlasted settlement.max_attempts
        """
        config = self.settings.settlement

        for attempt in range(1, config.max_attempts + 1):
            try:
                outcome = await self._apply(db, payment)
                await db.commit()
            except Exception as e:
                await db.rollback()
                if not is_write_conflict(e):
                    raise
                logger.warning(
                    f"Write conflict settling {payment.payment_reference} "
                    f"(attempt {attempt}/{config.max_attempts}): {type(e).__name__}"
                )
                if attempt < config.max_attempts:
                    await asyncio.sleep(config.retry_backoff_seconds * attempt)
                continue

            outcome.attempts = attempt
            self._log_outcome(outcome)
            return outcome

        raise SettlementConflictError(payment.payment_reference, config.max_attempts)

    async def _apply(self, db: AsyncSession, payment: ConfirmedPayment) -> SettlementOutcome:
        # 1. Idempotency
        existing = await self.get_event(db, payment.payment_reference)
        if existing is not None:
            return self._replay_outcome(existing)

        # 2. Reads, all before any write
        bidder = await self._load_bidder(db, payment.bidder_id)
        if bidder is None:
            raise BidderNotFoundError(payment.bidder_id)

        throne = await self._load_throne(db)
        previous_holder: Optional[Bidder] = None
        if throne is not None and throne.holder_id != bidder.id:
            previous_holder = await self._load_bidder(db, throne.holder_id)
            if previous_holder is None:
                logger.warning(f"Throne holder {throne.holder_id} has no bidder record")

        before = self._snapshot(throne)

        # 3. Authoritative recomputation
        epsilon = self.settings.auction.epsilon
        new_total = to_money(bidder.total_invested) + payment.amount_paid
        will_become_king = new_total >= before.amount + epsilon
        now = self.clock()

        # 4. Writes
        bidder.total_invested = new_total

        dethroned_id = None
        dethroned_name = None
        if will_become_king:
            # A holder raising their own amount closes their reign and starts a new one
            if before.holder_id == bidder.id:
                reigning = bidder
            else:
                reigning = previous_holder
                dethroned_id = before.holder_id
                dethroned_name = before.holder_name
            if reigning is not None and before.crowned_at is not None:
                self._close_reign(reigning, before.crowned_at, now)
            throne = self._install_throne(db, throne, bidder, new_total, now, payment)
            bidder.times_as_king = (bidder.times_as_king or 0) + 1
            bidder.last_crowned_at = now

        kind = HistoryEventKind.CORONATION if will_become_king else HistoryEventKind.CONTRIBUTION
        event = HistoryEvent(
            payment_reference=payment.payment_reference,
            kind=kind.value,
            bidder_id=bidder.id,
            bidder_name=bidder.display_name,
            amount_paid=payment.amount_paid,
            total_after=new_total,
            throne_amount_before=before.amount,
            dethroned_bidder_id=dethroned_id,
            dethroned_bidder_name=dethroned_name,
            predicted_new_total=payment.predicted_new_total,
            predicted_will_become_king=payment.predicted_will_become_king,
            message=self._message(bidder, payment, new_total, will_become_king, before, dethroned_name),
            created_at=now,
        )
        db.add(event)
        await db.flush()

        if payment.predicted_new_total is not None and payment.predicted_new_total != new_total:
            logger.info(
                f"Payment {payment.payment_reference}: predicted total "
                f"${payment.predicted_new_total}, settled total ${new_total}"
            )

        return SettlementOutcome(
            payment_reference=payment.payment_reference,
            status="settled",
            kind=kind.value,
            bidder_id=bidder.id,
            amount_paid=payment.amount_paid,
            total_after=new_total,
            throne_amount=to_money(throne.amount) if will_become_king else before.amount,
            crowned=will_become_king,
            lost_race=bool(payment.predicted_will_become_king) and not will_become_king,
            dethroned_bidder_id=dethroned_id,
        )

    async def _load_bidder(self, db: AsyncSession, bidder_id: str) -> Optional[Bidder]:
        result = await db.execute(
            select(Bidder)
            .where(Bidder.id == bidder_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_throne(self, db: AsyncSession) -> Optional[Throne]:
        # Row lock where supported; the version column catches the rest
        result = await db.execute(
            select(Throne)
            .where(Throne.id == THRONE_ID)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def _snapshot(self, throne: Optional[Throne]) -> _ThroneState:
        if throne is None:
            return _ThroneState(
                holder_id=None,
                holder_name=self.settings.auction.initial_holder_name,
                amount=ZERO,
                crowned_at=None,
            )
        return _ThroneState(
            holder_id=throne.holder_id,
            holder_name=throne.holder_name,
            amount=to_money(throne.amount),
            crowned_at=ensure_utc(throne.crowned_at),
        )

    def _close_reign(self, holder: Bidder, crowned_at: datetime, now: datetime) -> None:
        reign = reign_seconds(crowned_at, now)
        holder.total_time_as_king_seconds = (holder.total_time_as_king_seconds or 0.0) + reign
        holder.longest_reign_seconds = max(holder.longest_reign_seconds or 0.0, reign)

    def _install_throne(
        self,
        db: AsyncSession,
        throne: Optional[Throne],
        bidder: Bidder,
        amount: Decimal,
        now: datetime,
        payment: ConfirmedPayment,
    ) -> Throne:
        """Replace every throne field; the first coronation inserts the row."""
        if throne is None:
            throne = Throne(id=THRONE_ID)
            db.add(throne)
        throne.holder_id = bidder.id
        throne.holder_name = bidder.display_name
        throne.amount = amount
        throne.crowned_at = now
        throne.payment_reference = payment.payment_reference
        return throne

    def _message(
        self,
        bidder: Bidder,
        payment: ConfirmedPayment,
        new_total: Decimal,
        crowned: bool,
        before: _ThroneState,
        dethroned_name: Optional[str],
    ) -> str:
        if not crowned:
            return (
                f"{bidder.display_name} contributed ${payment.amount_paid} "
                f"(total ${new_total}, throne holds at ${before.amount})"
            )
        if dethroned_name is None:
            return f"{bidder.display_name} raised the throne to ${new_total}"
        return f"{bidder.display_name} dethroned {dethroned_name} with ${new_total}"

    def _replay_outcome(self, event: HistoryEvent) -> SettlementOutcome:
        return SettlementOutcome(
            payment_reference=event.payment_reference,
            status="duplicate",
            kind=event.kind,
            bidder_id=event.bidder_id,
            amount_paid=to_money(event.amount_paid),
            total_after=to_money(event.total_after),
            throne_amount=(
                to_money(event.total_after)
                if event.is_coronation
                else to_money(event.throne_amount_before)
            ),
            crowned=event.is_coronation,
            dethroned_bidder_id=event.dethroned_bidder_id,
        )

    def _log_outcome(self, outcome: SettlementOutcome) -> None:
        if outcome.status == "duplicate":
            logger.info(f"Payment {outcome.payment_reference} already settled, skipping")
        elif outcome.lost_race:
            logger.warning(
                f"Payment {outcome.payment_reference}: {outcome.bidder_id} predicted a "
                f"coronation but the throne moved to ${outcome.throne_amount}; "
                f"recorded as contribution (total ${outcome.total_after})"
            )
        elif outcome.crowned:
            logger.info(
                f"Payment {outcome.payment_reference}: {outcome.bidder_id} crowned "
                f"at ${outcome.total_after}"
            )
        else:
            logger.info(
                f"Payment {outcome.payment_reference}: {outcome.bidder_id} contributed "
                f"${outcome.amount_paid} (total ${outcome.total_after})"
            )

    async def get_event(
        self, db: AsyncSession, payment_reference: str
    ) -> Optional[HistoryEvent]:
        """History event recorded for a payment, if settled."""
        result = await db.execute(
            select(HistoryEvent).where(HistoryEvent.payment_reference == payment_reference)
        )
        return result.scalar_one_or_none()


# Singleton instance
settlement_service = SettlementService()
