import logging

from fastapi import APIRouter, Depends, Header, Request

from intavia.core.errors import AppError, InternalError, ValidationError
from intavia.core.service_dependency import get_stripe_gateway, get_webhook_handler
from intavia.services.billing_service import BillingWebhookHandler
from intavia.services.stripe_service import StripeGateway, WebhookVerificationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing Webhook"])


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    handler: BillingWebhookHandler = Depends(get_webhook_handler),
):
    """
    Stripe webhook. The signature is verified against the raw body before anything
    else; unverifiable requests get a 400.

    Unexpected failures answer 500 so Stripe redelivers the event.
    """
    payload = await request.body()

    try:
        event = gateway.construct_webhook_event(payload, stripe_signature)
    except WebhookVerificationError as e:
        raise ValidationError(str(e))

    try:
        return handler.handle(event)
    except AppError:
        raise
    except Exception as e:
        handler.db.rollback()
        logger.error(f"Webhook handling failed type={event.get('type')} id={event.get('id')}: {e}", exc_info=True)
        raise InternalError("Webhook handler failed")
