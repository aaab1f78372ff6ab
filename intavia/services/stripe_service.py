"""
Stripe gateway: the payments-provider calls the billing flows depend on.

Every call passes the API key explicitly and returns plain dicts, so services and
tests never touch StripeObject internals.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from intavia.core.config import Settings

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    pass


class WebhookVerificationError(Exception):
    pass


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def _id(value: Any) -> Optional[str]:
    """Expandable fields come back either as an id or as an object."""
    if value is None or isinstance(value, str):
        return value
    return _get(value, "id")


def subscription_to_dict(sub: Any) -> Dict[str, Any]:
    items = _get(_get(sub, "items", {}), "data", []) or []
    first_item = items[0] if items else {}
    # newer API versions moved the billing period onto subscription items
    period_start = _get(sub, "current_period_start") or _get(first_item, "current_period_start")
    period_end = _get(sub, "current_period_end") or _get(first_item, "current_period_end")
    price_id = _id(_get(first_item, "price"))
    return {
        "id": _get(sub, "id"),
        "customer": _id(_get(sub, "customer")),
        "status": _get(sub, "status"),
        "cancel_at_period_end": bool(_get(sub, "cancel_at_period_end", False)),
        "current_period_start": period_start,
        "current_period_end": period_end,
        "trial_start": _get(sub, "trial_start"),
        "trial_end": _get(sub, "trial_end"),
        "price_id": price_id,
        "metadata": dict(_get(sub, "metadata", {}) or {}),
    }


def invoice_to_dict(invoice: Any) -> Dict[str, Any]:
    return {
        "id": _get(invoice, "id"),
        "status": _get(invoice, "status"),
        "amount_due": _get(invoice, "amount_due", 0),
        "currency": _get(invoice, "currency", "usd"),
        "hosted_invoice_url": _get(invoice, "hosted_invoice_url"),
        "created": _get(invoice, "created"),
    }


class StripeGateway:
    def __init__(self, settings: Settings):
        self.settings = settings
        stripe.max_network_retries = settings.stripe_max_network_retries
        if not settings.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY not configured - Stripe features disabled")

    @property
    def _key(self) -> str:
        if not self.settings.stripe_secret_key:
            raise PaymentProviderError("Stripe not configured - STRIPE_SECRET_KEY required")
        return self.settings.stripe_secret_key

    def _call(self, description: str, fn, *args, **kwargs):
        try:
            return fn(*args, api_key=self._key, **kwargs)
        except stripe.StripeError as e:
            logger.error(f"Stripe error during {description}: {e}")
            raise PaymentProviderError(getattr(e, "user_message", None) or str(e)) from e

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        sub = self._call("subscription retrieve", stripe.Subscription.retrieve, subscription_id)
        return subscription_to_dict(sub)

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> None:
        self._call("payment method attach", stripe.PaymentMethod.attach, payment_method_id, customer=customer_id)

    def set_customer_default_payment_method(self, customer_id: str, payment_method_id: str) -> None:
        self._call(
            "customer update",
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )

    def set_subscription_default_payment_method(self, subscription_id: str, payment_method_id: str) -> None:
        self._call(
            "subscription update",
            stripe.Subscription.modify,
            subscription_id,
            default_payment_method=payment_method_id,
        )

    def list_open_invoices(self, subscription_id: str, limit: int) -> List[Dict[str, Any]]:
        page = self._call(
            "invoice list", stripe.Invoice.list, subscription=subscription_id, status="open", limit=limit
        )
        return [invoice_to_dict(invoice) for invoice in (_get(page, "data", []) or [])]

    def pay_invoice(self, invoice_id: str, payment_method_id: str) -> Dict[str, Any]:
        invoice = self._call("invoice pay", stripe.Invoice.pay, invoice_id, payment_method=payment_method_id)
        return invoice_to_dict(invoice)

    def create_billing_portal_session(self, customer_id: str, return_url: str) -> str:
        session = self._call(
            "billing portal session",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        logger.info(f"Created billing portal session for customer_id={customer_id}")
        return _get(session, "url")

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and return the event as a plain dict."""
        if not self.settings.stripe_webhook_secret:
            raise WebhookVerificationError("STRIPE_WEBHOOK_SECRET not configured")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(payload, signature, self.settings.stripe_webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {e}")
            raise WebhookVerificationError(f"Invalid webhook payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise WebhookVerificationError(f"Invalid signature: {e}") from e
        event = json.loads(payload)
        logger.info(f"Verified webhook event: {event.get('type')}, id={event.get('id')}")
        return event
