"""
Tests for the Stripe gateway's pure parts: object conversion and webhook verification.
"""
import hashlib
import hmac
import json
import time

import pytest

from intavia.services.stripe_service import (
    PaymentProviderError,
    StripeGateway,
    WebhookVerificationError,
    invoice_to_dict,
    subscription_to_dict,
)


def sign(payload: bytes, secret: str, timestamp=None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def test_subscription_to_dict_reads_period_from_first_item():
    raw = {
        "id": "sub_1",
        "customer": {"id": "cus_1", "object": "customer"},
        "status": "active",
        "cancel_at_period_end": None,
        "items": {"data": [{"current_period_start": 100, "current_period_end": 200, "price": {"id": "price_1"}}]},
        "metadata": {"planId": "growth"},
    }

    converted = subscription_to_dict(raw)

    assert converted["customer"] == "cus_1"
    assert converted["current_period_start"] == 100
    assert converted["current_period_end"] == 200
    assert converted["price_id"] == "price_1"
    assert converted["cancel_at_period_end"] is False
    assert converted["metadata"] == {"planId": "growth"}


def test_subscription_to_dict_prefers_top_level_period():
    raw = {
        "id": "sub_1",
        "customer": "cus_1",
        "status": "trialing",
        "current_period_end": 999,
        "items": {"data": [{"current_period_end": 200}]},
    }

    assert subscription_to_dict(raw)["current_period_end"] == 999


def test_invoice_to_dict_defaults():
    assert invoice_to_dict({"id": "in_1", "status": "open"}) == {
        "id": "in_1",
        "status": "open",
        "amount_due": 0,
        "currency": "usd",
        "hosted_invoice_url": None,
        "created": None,
    }


def test_construct_webhook_event_accepts_valid_signature(settings):
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "invoice.paid", "data": {"object": {}}}).encode()

    event = StripeGateway(settings).construct_webhook_event(payload, sign(payload, settings.stripe_webhook_secret))

    assert event["type"] == "invoice.paid"
    assert isinstance(event, dict)


def test_construct_webhook_event_rejects_wrong_secret(settings):
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "invoice.paid"}).encode()

    with pytest.raises(WebhookVerificationError):
        StripeGateway(settings).construct_webhook_event(payload, sign(payload, "whsec_other"))


def test_construct_webhook_event_rejects_stale_timestamp(settings):
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "invoice.paid"}).encode()
    stale = sign(payload, settings.stripe_webhook_secret, timestamp=int(time.time()) - 3600)

    with pytest.raises(WebhookVerificationError):
        StripeGateway(settings).construct_webhook_event(payload, stale)


def test_construct_webhook_event_requires_header(settings):
    with pytest.raises(WebhookVerificationError, match="Missing"):
        StripeGateway(settings).construct_webhook_event(b"{}", None)


def test_calls_without_secret_key_fail_fast(settings):
    settings.stripe_secret_key = None

    with pytest.raises(PaymentProviderError, match="not configured"):
        StripeGateway(settings).retrieve_subscription("sub_1")
