"""Settlement-related Celery tasks."""

import asyncio
import logging

from throne.celery_config import celery_app
from throne.config import get_settings
from throne.database.session import close_db, get_db_session
from throne.exceptions import SettlementConflictError, ThroneError
from throne.schemas.payment import ConfirmedPayment

logger = logging.getLogger(__name__)

_settings = get_settings()


@celery_app.task(
    name="tasks.settle_payment",
    queue="settlements",
    bind=True,
    max_retries=_settings.settlement.task_max_retries,
    default_retry_delay=_settings.settlement.task_retry_delay_seconds,
)
def settle_payment(self, payload: dict):
    """
    Settles one confirmed payment handed over by the webhook.

    Redelivered payloads are no-ops. Conflicts are retried, fatal events
    are reported and dropped.
    """
    from throne.services.settlement_service import settlement_service

    async def _settle():
        try:
            payment = ConfirmedPayment.parse(payload)
            async with get_db_session() as db:
                outcome = await settlement_service.settle_payment(db, payment)
            return outcome.model_dump(mode="json")
        finally:
            # Engine connections belong to this event loop
            await close_db()

    try:
        return asyncio.run(_settle())
    except SettlementConflictError as e:
        logger.warning(f"Settlement conflict, retrying: {e}")
        raise self.retry(exc=e)
    except ThroneError as e:
        reference = payload.get("payment_reference") if isinstance(payload, dict) else None
        logger.error(f"Settlement skipped for {reference}: {e}")
        return {"payment_reference": reference, "skipped": True, "reason": str(e)}
