"""Payment processor webhook routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from throne.config import get_settings
from throne.database.dependencies import get_db
from throne.exceptions import (
    AuthenticityError,
    BidderNotFoundError,
    MalformedEventError,
    SettlementConflictError,
)
from throne.schemas import PAYMENT_SUCCEEDED, ConfirmedPayment, WebhookAck
from throne.services import settlement_service
from throne.services.webhook_verifier import construct_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/payments", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
):
    """
    Receive payment processor events.

    Unprocessable events are acknowledged with 200 so the processor stops
    redelivering them; conflicts answer 503 so it tries again.
    """
    settings = get_settings()
    payload = await request.body()

    try:
        event = construct_event(
            payload,
            stripe_signature,
            settings.payments.webhook_secret,
            settings.payments.signature_tolerance_seconds,
        )
    except AuthenticityError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")
    except MalformedEventError as e:
        logger.error(f"Unreadable webhook body: {e}")
        return WebhookAck(status="unprocessable", reason=str(e))

    if event.get("type") != PAYMENT_SUCCEEDED:
        logger.debug(f"Ignoring webhook event {event.get('type')}")
        return WebhookAck(status="ignored", reason=f"Unhandled event type {event.get('type')}")

    try:
        payment = ConfirmedPayment.from_processor_event(event)
    except MalformedEventError as e:
        logger.error(f"Unprocessable payment event {event.get('id')}: {e}")
        return WebhookAck(status="unprocessable", reason=str(e))

    if settings.settlement.use_task_queue:
        from throne.tasks.settlement_tasks import settle_payment

        settle_payment.delay(payment.model_dump(mode="json"))
        logger.info(f"Queued settlement of {payment.payment_reference}")
        return WebhookAck(status="queued")

    try:
        outcome = await settlement_service.settle_payment(db, payment)
    except BidderNotFoundError as e:
        logger.error(f"Unprocessable payment {payment.payment_reference}: {e}")
        return WebhookAck(status="unprocessable", reason=str(e))
    except SettlementConflictError as e:
        logger.error(str(e))
        raise HTTPException(status_code=503, detail="Settlement conflict, retry later")

    return WebhookAck(status=outcome.status, outcome=outcome)
