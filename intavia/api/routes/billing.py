"""
Billing endpoints: current subscription, customer portal and payment retry.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intavia.api.responses import dump, success
from intavia.core.auth_dependency import get_db, require_company_profile
from intavia.core.errors import AppError, ForbiddenError, InternalError, NotFoundError, ValidationError
from intavia.core.service_dependency import get_payment_retry_coordinator, get_stripe_gateway
from intavia.db.models.profile import Profile
from intavia.db.models.subscription import Subscription
from intavia.schemas.billing import (
    CreatePortalSessionRequest,
    CreatePortalSessionResponse,
    RetryPaymentRequest,
    SubscriptionResponse,
)
from intavia.services import billing_service
from intavia.services.payment_retry_service import PaymentRetryCoordinator
from intavia.services.stripe_service import StripeGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.get("/subscription")
def get_subscription(
    profile: Profile = Depends(require_company_profile),
    db: Session = Depends(get_db),
):
    subscription = billing_service.get_company_subscription(db, profile.company_id)
    if not subscription:
        raise NotFoundError("No subscription found for this company")
    return success(dump(SubscriptionResponse, subscription))


@router.post("/portal-session", response_model=CreatePortalSessionResponse)
def create_portal_session(
    request: CreatePortalSessionRequest,
    profile: Profile = Depends(require_company_profile),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    """
    Create a Stripe Customer Portal session for managing the subscription.

    Requires authentication. The company must already have a Stripe customer.
    """
    url = billing_service.create_portal_session(db, gateway, profile.company_id, request.return_url)
    logger.info(f"Portal session created for company_id={profile.company_id}")
    return CreatePortalSessionResponse(url=url)


@router.post("/retry-payment")
def retry_payment(
    request: RetryPaymentRequest,
    profile: Profile = Depends(require_company_profile),
    db: Session = Depends(get_db),
    coordinator: PaymentRetryCoordinator = Depends(get_payment_retry_coordinator),
):
    """
    Attach a new payment method and retry every open invoice of the subscription.

    Answers 200 even when some or all invoice payments fail; inspect `retryResults`.
    """
    if not request.subscription_id or not request.payment_method_id:
        raise ValidationError("Missing paymentMethodId or subscriptionId")

    local = db.query(Subscription).filter(Subscription.stripe_subscription_id == request.subscription_id).first()
    if not local:
        raise NotFoundError("Subscription not found")
    if local.company_id != profile.company_id:
        raise ForbiddenError("Subscription belongs to another company")

    try:
        result = coordinator.retry_payment(request.subscription_id, request.payment_method_id)
        logger.info(
            f"Payment retry finished subscription={request.subscription_id} "
            f"invoices={len(result.retry_results)} all_paid={result.all_paid}"
        )
        return success(result.to_dict())
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Payment retry crashed subscription={request.subscription_id}: {e}", exc_info=True)
        raise InternalError("Failed to retry payment")
