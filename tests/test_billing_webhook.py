"""
Tests for Stripe webhook reconciliation of local subscriptions.
"""
import json
from datetime import timedelta

import pytest

from intavia.core.errors import ValidationError
from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models import Subscription
from intavia.services.billing_service import BillingWebhookHandler
from intavia.services.payment_retry_service import PaymentRetryCoordinator

PERIOD_START = 1790000000
PERIOD_END = 1792592000


def event(event_type, obj):
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


@pytest.fixture
def handler(db, settings, gateway):
    return BillingWebhookHandler(db, gateway, PaymentRetryCoordinator(db, settings, gateway))


def reload(db, sub):
    db.expire_all()
    return db.get(Subscription, sub.id)


# ----- HTTP -----

def test_webhook_rejects_bad_signature(client):
    response = client.post(
        "/billing/webhook",
        content=json.dumps(event("invoice.paid", {})),
        headers={"Stripe-Signature": "forged"},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_webhook_acknowledges_unhandled_event(client):
    response = client.post(
        "/billing/webhook",
        content=json.dumps(event("customer.created", {"id": "cus_1"})),
        headers={"Stripe-Signature": "valid-signature"},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "handled": False}


def test_webhook_missing_plan_is_400(client, owner):
    session = {"mode": "subscription", "subscription": "sub_new", "metadata": {"userId": owner.id}}

    response = client.post(
        "/billing/webhook",
        content=json.dumps(event("checkout.session.completed", session)),
        headers={"Stripe-Signature": "valid-signature"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "No plan name in metadata"


# ----- checkout -----

def test_checkout_creates_local_subscription(db, handler, gateway, owner):
    gateway.subscriptions["sub_new"] = {
        "id": "sub_new",
        "customer": "cus_new",
        "status": "trialing",
        "current_period_start": PERIOD_START,
        "current_period_end": PERIOD_END,
        "trial_end": PERIOD_END,
    }
    session = {
        "mode": "subscription",
        "subscription": "sub_new",
        "metadata": {"planId": "growth", "userId": owner.id},
    }

    result = handler.handle(event("checkout.session.completed", session))

    assert result == {"received": True, "handled": True, "action": "created"}
    sub = db.query(Subscription).filter(Subscription.stripe_subscription_id == "sub_new").one()
    assert sub.company_id == owner.company_id
    assert sub.plan_id == "growth"
    assert sub.status == "trialing"
    assert sub.stripe_customer_id == "cus_new"
    assert int(as_utc(sub.current_period_end).timestamp()) == PERIOD_END


def test_checkout_falls_back_to_customer_email(db, handler, gateway, owner):
    gateway.subscriptions["sub_new"] = {"id": "sub_new", "customer": "cus_new", "status": "active"}
    session = {
        "mode": "subscription",
        "subscription": "sub_new",
        "customer_email": owner.email,
        "metadata": {"planId": "starter"},
    }

    handler.handle(event("checkout.session.completed", session))

    assert db.query(Subscription).one().user_id == owner.id


def test_checkout_replay_updates_existing_row(db, handler, gateway, factory, company, owner):
    existing = factory.subscription(company, owner, status="trialing", stripe_id="sub_new")
    gateway.subscriptions["sub_new"] = {"id": "sub_new", "customer": "cus_123", "status": "active"}
    session = {"mode": "subscription", "subscription": "sub_new", "metadata": {"planId": "scale", "userId": owner.id}}

    result = handler.handle(event("checkout.session.completed", session))

    assert result["action"] == "updated"
    stored = reload(db, existing)
    assert stored.status == "active"
    assert stored.plan_id == "scale"
    assert db.query(Subscription).count() == 1


def test_checkout_without_plan_raises(handler, owner):
    session = {"mode": "subscription", "subscription": "sub_new", "metadata": {"userId": owner.id}}

    with pytest.raises(ValidationError):
        handler.handle(event("checkout.session.completed", session))


def test_payment_mode_checkout_is_ignored(db, handler):
    result = handler.handle(event("checkout.session.completed", {"mode": "payment"}))

    assert result["action"].startswith("ignored")
    assert db.query(Subscription).count() == 0


# ----- subscription lifecycle -----

def test_subscription_updated_syncs_fields_and_status(db, handler, factory, company, owner):
    sub = factory.subscription(company, owner, status="trialing")
    provider = {
        "id": "sub_123",
        "customer": "cus_123",
        "status": "active",
        "cancel_at_period_end": True,
        "items": {"data": [{"current_period_start": PERIOD_START, "current_period_end": PERIOD_END}]},
    }

    result = handler.handle(event("customer.subscription.updated", provider))

    assert result["action"] == "status active"
    stored = reload(db, sub)
    assert stored.status == "active"
    assert stored.cancel_at_period_end is True
    assert int(as_utc(stored.current_period_end).timestamp()) == PERIOD_END


def test_illegal_transition_is_ignored(db, handler, factory, company, owner):
    sub = factory.subscription(company, owner, status="canceled")

    result = handler.handle(event("customer.subscription.updated", {"id": "sub_123", "status": "active"}))

    assert result["action"] == "fields updated"
    assert reload(db, sub).status == "canceled"


def test_unknown_subscription_is_ignored(handler):
    result = handler.handle(event("customer.subscription.updated", {"id": "sub_ghost", "status": "active"}))

    assert result["action"] == "ignored: unknown subscription"


def test_subscription_deleted_cancels(db, handler, factory, company, owner):
    sub = factory.subscription(company, owner, status="active")

    result = handler.handle(event("customer.subscription.deleted", {"id": "sub_123"}))

    assert result["action"] == "canceled"
    assert reload(db, sub).status == "canceled"


def test_invoice_failed_then_paid_tracks_past_due_since(db, handler, factory, company, owner):
    sub = factory.subscription(company, owner, status="active")

    handler.handle(event("invoice.payment_failed", {"id": "in_1", "subscription": "sub_123"}))
    failed = reload(db, sub)
    assert failed.status == "past_due"
    assert failed.past_due_since is not None

    handler.handle(event("invoice.payment_succeeded", {"id": "in_1", "subscription": "sub_123"}))
    recovered = reload(db, sub)
    assert recovered.status == "active"
    assert recovered.past_due_since is None


def test_invoice_subscription_read_from_parent_details(db, handler, factory, company, owner):
    sub = factory.subscription(company, owner, status="active")
    invoice = {"id": "in_1", "parent": {"subscription_details": {"subscription": "sub_123"}}}

    handler.handle(event("invoice.payment_failed", invoice))

    assert reload(db, sub).status == "past_due"


def test_repeated_payment_failure_keeps_original_past_due_since(db, handler, factory, company, owner):
    since = utcnow() - timedelta(days=5)
    sub = factory.subscription(company, owner, status="past_due", past_due_since=since)

    result = handler.handle(event("invoice.payment_failed", {"id": "in_2", "subscription": "sub_123"}))

    assert result["action"] == "unchanged"
    assert abs((as_utc(reload(db, sub).past_due_since) - since).total_seconds()) < 1


# ----- reactive retry -----

def test_payment_method_attached_retries_past_due_subscription(db, handler, gateway, factory, company, owner):
    sub = factory.subscription(company, owner, status="past_due", past_due_since=utcnow())
    gateway.subscriptions["sub_123"] = {"id": "sub_123", "customer": "cus_123", "status": "past_due"}
    gateway.open_invoices["sub_123"] = [{"id": "in_1"}]

    result = handler.handle(event("payment_method.attached", {"id": "pm_new", "customer": "cus_123"}))

    assert result["action"] == "retried 1 invoice(s), 1 succeeded"
    assert ("pay_invoice", "in_1", "pm_new") in gateway.calls
    assert reload(db, sub).status == "active"


def test_payment_method_attached_retry_failure_is_acknowledged(handler, gateway, factory, company, owner):
    factory.subscription(company, owner, status="past_due", past_due_since=utcnow())
    gateway.subscriptions["sub_123"] = {"id": "sub_123", "customer": "cus_123", "status": "past_due"}
    gateway.fail_on.add("attach_payment_method")

    result = handler.handle(event("payment_method.attached", {"id": "pm_new", "customer": "cus_123"}))

    assert result["action"] == "retry failed"


def test_payment_method_attached_without_past_due_is_ignored(handler, gateway, factory, company, owner):
    factory.subscription(company, owner, status="active")

    result = handler.handle(event("payment_method.attached", {"id": "pm_new", "customer": "cus_123"}))

    assert result["action"] == "ignored: no past_due subscription"
    assert gateway.calls == []
