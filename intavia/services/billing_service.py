"""
Billing service: subscription lookups, portal sessions and Stripe webhook reconciliation.

Local subscription status only moves along SUBSCRIPTION_TRANSITIONS. A provider
event asking for any other move is logged and skipped.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from intavia.core.errors import NotFoundError, UpstreamError, ValidationError
from intavia.core.timeutils import from_timestamp, utcnow
from intavia.db.models.profile import Profile
from intavia.db.models.subscription import (
    Subscription,
    can_transition,
    normalize_provider_status,
)
from intavia.services.stripe_service import PaymentProviderError, subscription_to_dict

logger = logging.getLogger(__name__)


def get_company_subscription(db: Session, company_id: str) -> Optional[Subscription]:
    """Most recent subscription enrollment for a company."""
    return (
        db.query(Subscription)
        .filter(Subscription.company_id == company_id)
        .order_by(Subscription.created_at.desc())
        .first()
    )


def create_portal_session(db: Session, gateway, company_id: str, return_url: str) -> str:
    subscription = get_company_subscription(db, company_id)
    if not subscription or not subscription.stripe_customer_id:
        raise NotFoundError("Company does not have a Stripe customer")
    try:
        return gateway.create_billing_portal_session(subscription.stripe_customer_id, return_url)
    except PaymentProviderError as e:
        raise UpstreamError(f"Failed to create portal session: {e}") from e


def transition_subscription(db: Session, subscription: Subscription, new_status: str, source: str) -> bool:
    """
    Move a local subscription to `new_status` if the move is legal.

    The write is conditional on the status that was read. past_due_since is set when
    entering past_due and cleared when leaving it. Returns True when a row changed.
    """
    current = subscription.status
    if new_status == current:
        return False
    if not can_transition(current, new_status):
        logger.warning(
            f"Ignoring illegal subscription transition subscription_id={subscription.id} "
            f"{current}->{new_status} source={source}"
        )
        return False

    now = utcnow()
    values: Dict[Any, Any] = {Subscription.status: new_status, Subscription.updated_at: now}
    if new_status == "past_due":
        values[Subscription.past_due_since] = now
    elif current == "past_due":
        values[Subscription.past_due_since] = None

    updated = (
        db.query(Subscription)
        .filter(Subscription.id == subscription.id, Subscription.status == current)
        .update(values, synchronize_session=False)
    )
    db.commit()
    db.refresh(subscription)
    if updated:
        logger.info(f"Subscription status subscription_id={subscription.id} {current}->{new_status} source={source}")
    return bool(updated)


def apply_provider_fields(subscription: Subscription, provider: Dict[str, Any]) -> None:
    """Copy period, trial and cancellation fields from a provider subscription dict."""
    if provider.get("customer"):
        subscription.stripe_customer_id = provider["customer"]
    if provider.get("current_period_start"):
        subscription.current_period_start = from_timestamp(provider["current_period_start"])
    if provider.get("current_period_end"):
        subscription.current_period_end = from_timestamp(provider["current_period_end"])
    subscription.trial_start = from_timestamp(provider.get("trial_start"))
    subscription.trial_end = from_timestamp(provider.get("trial_end"))
    subscription.cancel_at_period_end = bool(provider.get("cancel_at_period_end"))
    subscription.updated_at = utcnow()


def sync_from_provider(db: Session, subscription: Subscription, provider: Dict[str, Any], source: str) -> bool:
    """Apply a provider snapshot: fields always, status only along legal transitions."""
    apply_provider_fields(subscription, provider)
    db.commit()
    new_status = normalize_provider_status(provider.get("status"))
    if not new_status:
        return False
    return transition_subscription(db, subscription, new_status, source)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    if invoice.get("subscription"):
        sub = invoice["subscription"]
        return sub if isinstance(sub, str) else sub.get("id")
    # newer API versions nest it under parent.subscription_details
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


class BillingWebhookHandler:
    def __init__(self, db: Session, gateway, payment_retry=None):
        self.db = db
        self.gateway = gateway
        self.payment_retry = payment_retry

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get("type")
        event_data = event.get("data", {})
        handlers = {
            "checkout.session.completed": self.handle_checkout_session_completed,
            "customer.subscription.created": self.handle_subscription_updated,
            "customer.subscription.updated": self.handle_subscription_updated,
            "customer.subscription.deleted": self.handle_subscription_deleted,
            "invoice.payment_failed": self.handle_invoice_payment_failed,
            "invoice.payment_succeeded": self.handle_invoice_payment_succeeded,
            "invoice.paid": self.handle_invoice_payment_succeeded,
            "payment_method.attached": self.handle_payment_method_attached,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled webhook event type: {event_type}")
            return {"received": True, "handled": False}
        action = handler(event_data)
        return {"received": True, "handled": True, "action": action}

    def _by_stripe_id(self, stripe_subscription_id: Optional[str]) -> Optional[Subscription]:
        if not stripe_subscription_id:
            return None
        return (
            self.db.query(Subscription)
            .filter(Subscription.stripe_subscription_id == stripe_subscription_id)
            .first()
        )

    def handle_checkout_session_completed(self, event_data: Dict) -> str:
        """
        Handle checkout.session.completed webhook event.

        Creates the local enrollment for a new Stripe subscription, or refreshes it
        when the event is replayed.

        Args:
            event_data: Stripe event data object

        Returns:
            Short description of what changed
        """
        session = event_data.get("object", {})
        if session.get("mode") != "subscription" or not session.get("subscription"):
            return "ignored: not a subscription checkout"

        metadata = session.get("metadata") or {}
        plan_id = metadata.get("planId") or metadata.get("plan")
        if not plan_id:
            raise ValidationError("No plan name in metadata")

        user_id = metadata.get("userId") or metadata.get("user_id")
        profile = self.db.query(Profile).filter(Profile.id == user_id).first() if user_id else None
        if not profile and session.get("customer_email"):
            profile = self.db.query(Profile).filter(Profile.email == session["customer_email"]).first()
        if not profile or not profile.company_id:
            raise ValidationError("Cannot identify company from checkout session")

        try:
            provider = self.gateway.retrieve_subscription(session["subscription"])
        except PaymentProviderError as e:
            raise UpstreamError(f"Failed to retrieve subscription: {e}") from e

        subscription = self._by_stripe_id(provider["id"])
        created = subscription is None
        if created:
            subscription = Subscription(
                company_id=profile.company_id,
                user_id=profile.id,
                plan_id=plan_id,
                status=normalize_provider_status(provider.get("status")) or "active",
                stripe_subscription_id=provider["id"],
            )
            self.db.add(subscription)
        subscription.plan_id = plan_id
        apply_provider_fields(subscription, provider)
        self.db.commit()
        self.db.refresh(subscription)

        if not created:
            new_status = normalize_provider_status(provider.get("status"))
            if new_status:
                transition_subscription(self.db, subscription, new_status, "checkout.session.completed")

        logger.info(
            f"Checkout completed: company_id={subscription.company_id}, plan={plan_id}, "
            f"subscription_id={provider['id']}, status={subscription.status}"
        )
        return "created" if created else "updated"

    def handle_subscription_updated(self, event_data: Dict) -> str:
        provider_object = event_data.get("object", {})
        subscription = self._by_stripe_id(provider_object.get("id"))
        if not subscription:
            logger.warning(f"Subscription not found for subscription_id={provider_object.get('id')}")
            return "ignored: unknown subscription"

        changed = sync_from_provider(self.db, subscription, subscription_to_dict(provider_object), "subscription.updated")
        return f"status {subscription.status}" if changed else "fields updated"

    def handle_subscription_deleted(self, event_data: Dict) -> str:
        provider_object = event_data.get("object", {})
        subscription = self._by_stripe_id(provider_object.get("id"))
        if not subscription:
            return "ignored: unknown subscription"
        changed = transition_subscription(self.db, subscription, "canceled", "subscription.deleted")
        return "canceled" if changed else "unchanged"

    def handle_invoice_payment_failed(self, event_data: Dict) -> str:
        subscription = self._by_stripe_id(_invoice_subscription_id(event_data.get("object", {})))
        if not subscription:
            return "ignored: unknown subscription"
        changed = transition_subscription(self.db, subscription, "past_due", "invoice.payment_failed")
        return "past_due" if changed else "unchanged"

    def handle_invoice_payment_succeeded(self, event_data: Dict) -> str:
        subscription = self._by_stripe_id(_invoice_subscription_id(event_data.get("object", {})))
        if not subscription:
            return "ignored: unknown subscription"
        changed = transition_subscription(self.db, subscription, "active", "invoice.payment_succeeded")
        return "active" if changed else "unchanged"

    def handle_payment_method_attached(self, event_data: Dict) -> str:
        """A new card on a past-due customer triggers the payment retry."""
        payment_method = event_data.get("object", {})
        customer_id = payment_method.get("customer")
        if not customer_id or self.payment_retry is None:
            return "ignored"
        subscription = (
            self.db.query(Subscription)
            .filter(Subscription.stripe_customer_id == customer_id, Subscription.status == "past_due")
            .order_by(Subscription.created_at.desc())
            .first()
        )
        if not subscription or not subscription.stripe_subscription_id:
            return "ignored: no past_due subscription"
        try:
            result = self.payment_retry.retry_payment(subscription.stripe_subscription_id, payment_method.get("id"))
        except Exception as e:
            # Stripe retries the webhook on non-2xx; a failed retry is not worth replaying
            logger.error(f"Reactive payment retry failed subscription_id={subscription.id}: {e}")
            return "retry failed"
        paid = sum(1 for r in result.retry_results if r.success)
        return f"retried {len(result.retry_results)} invoice(s), {paid} succeeded"
