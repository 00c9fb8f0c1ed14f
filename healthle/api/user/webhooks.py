"""
Payment processor webhook endpoint.

Every verified delivery gets a ``webhook_logs`` row. The row is committed
as ``processing`` before the event is applied, so a failed event still
leaves a ``failed`` row with its error after the changes are rolled back.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header, HTTPException, Request, status

from healthle.api.dependencies import DatabaseSession, PaymentGateway
from healthle.core.config import settings
from healthle.core.errors import error_detail
from healthle.repositories.content import WebhookLogRepository
from healthle.services.interfaces.payment_gateway import WebhookSignatureError
from healthle.services.payment_events import PaymentEventProcessor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/api/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    db: DatabaseSession,
    payments: PaymentGateway,
    stripe_signature: Annotated[Optional[str], Header()] = None,
):
    """
    Apply a signed payment event.

    Raises:
        HTTPException 400: Missing or invalid signature
        HTTPException 500: The event could not be applied (logged as failed)
    """
    if not stripe_signature or not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature or webhook secret",
        )

    payload = await request.body()
    try:
        event = payments.construct_event(payload, stripe_signature)
    except WebhookSignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {e.message}",
        ) from e

    logs = WebhookLogRepository(db)
    log = await logs.start(event.get("id") or "", event.get("type") or "")
    log_id = log.id
    await db.commit()

    try:
        processed = await PaymentEventProcessor(db).process(event)
        await logs.mark_success(log, processed)
        await db.commit()
    except Exception as e:
        logger.error(
            f"Webhook processing failed: {e}",
            exc_info=True,
            extra={"event_id": event.get("id"), "event_type": event.get("type")},
        )
        await db.rollback()
        failed_log = await logs.get(log_id)
        if failed_log is not None:
            await logs.mark_failed(failed_log, str(e))
            await db.commit()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("Webhook処理に失敗しました", e),
        ) from e

    logger.info("Webhook processed", extra={"event_id": event.get("id"), "event_type": event.get("type")})
    return {"message": "Processed successfully"}
