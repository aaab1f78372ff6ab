"""
Unit tests for Google access token refresh, using httpx.MockTransport in place of
Google's token endpoint.
"""
from datetime import timedelta

import httpx
import pytest
from tenacity import wait_none

from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models import Integration
from intavia.services.token_refresher import GOOGLE_TOKEN_URL, TokenRefresher


class TokenEndpoint:
    """Scripted token endpoint; each request pops the next response (or exception)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert str(request.url) == GOOGLE_TOKEN_URL
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_refresher(db, settings, endpoint):
    client = httpx.Client(transport=httpx.MockTransport(endpoint))
    return TokenRefresher(db, settings, http_client=client, retry_wait=wait_none())


def ok(token="new-token", expires_in=3600, **extra):
    return httpx.Response(200, json={"access_token": token, "expires_in": expires_in, **extra})


def test_missing_integration_returns_none(db, settings, owner):
    endpoint = TokenEndpoint()
    assert make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id) is None
    assert endpoint.requests == []


def test_unexpired_token_is_returned_without_refresh(db, settings, factory, owner):
    factory.integration(owner, access_token="still-good", expires_at=utcnow() + timedelta(minutes=30))
    endpoint = TokenEndpoint()
    refresher = make_refresher(db, settings, endpoint)

    first = refresher.get_valid_access_token(owner.id, owner.company_id)
    second = refresher.get_valid_access_token(owner.id, owner.company_id)

    assert first == second == "still-good"
    assert endpoint.requests == []


def test_token_without_expiry_is_returned_as_is(db, settings, factory, owner):
    factory.integration(owner, access_token="no-expiry", expires_at=None)
    endpoint = TokenEndpoint()

    assert make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id) == "no-expiry"
    assert endpoint.requests == []


def test_expired_token_is_refreshed_and_persisted(db, settings, factory, owner):
    integration = factory.integration(owner, expires_at=utcnow() - timedelta(minutes=5))
    endpoint = TokenEndpoint(ok(token="fresh-token", expires_in=3600, refresh_token="rotated-refresh"))

    token = make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id)

    assert token == "fresh-token"
    assert len(endpoint.requests) == 1
    body = endpoint.requests[0].content.decode()
    assert "grant_type=refresh_token" in body
    assert "refresh_token=refresh-token" in body

    db.expire_all()
    stored = db.get(Integration, integration.id)
    assert stored.access_token == "fresh-token"
    assert stored.refresh_token == "rotated-refresh"
    assert as_utc(stored.expires_at) > utcnow() + timedelta(minutes=55)


def test_provider_error_returns_none_and_keeps_stored_token(db, settings, factory, owner):
    integration = factory.integration(owner, expires_at=utcnow() - timedelta(minutes=5))
    endpoint = TokenEndpoint(httpx.Response(500, json={"error": "backend_error"}))

    assert make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id) is None

    db.expire_all()
    stored = db.get(Integration, integration.id)
    assert stored.access_token == "old-token"
    assert stored.status == "connected"
    assert len(endpoint.requests) == 1


def test_invalid_grant_disconnects_the_integration(db, settings, factory, owner):
    integration = factory.integration(owner, expires_at=utcnow() - timedelta(minutes=5))
    endpoint = TokenEndpoint(httpx.Response(400, json={"error": "invalid_grant"}))
    refresher = make_refresher(db, settings, endpoint)

    assert refresher.get_valid_access_token(owner.id, owner.company_id) is None

    db.expire_all()
    stored = db.get(Integration, integration.id)
    assert stored.status == "disconnected"
    assert stored.refresh_token is None
    assert not refresher.is_connected(owner.id, owner.company_id)


def test_transport_errors_are_retried_up_to_attempt_limit(db, settings, factory, owner):
    factory.integration(owner, expires_at=utcnow() - timedelta(minutes=5))
    endpoint = TokenEndpoint(httpx.ConnectError("reset"), httpx.ConnectError("reset"), ok(token="third-time"))

    token = make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id)

    assert token == "third-time"
    assert len(endpoint.requests) == 3


def test_transport_errors_past_attempt_limit_return_none(db, settings, factory, owner):
    factory.integration(owner, expires_at=utcnow() - timedelta(minutes=5))
    endpoint = TokenEndpoint(*[httpx.ConnectError("down")] * settings.token_refresh_attempts)

    assert make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id) is None
    assert len(endpoint.requests) == settings.token_refresh_attempts


def test_expired_token_without_refresh_token_returns_none(db, settings, factory, owner):
    factory.integration(owner, refresh_token=None, expires_at=utcnow() - timedelta(minutes=5))
    endpoint = TokenEndpoint()

    assert make_refresher(db, settings, endpoint).get_valid_access_token(owner.id, owner.company_id) is None
    assert endpoint.requests == []


def test_refresh_expiring_tokens_isolates_failures(db, settings, factory, company, owner):
    colleague = factory.profile(company, email="colleague@example.com")
    idle = factory.profile(company, email="idle@example.com")
    factory.integration(owner, expires_at=utcnow() + timedelta(hours=2))
    factory.integration(colleague, expires_at=utcnow() + timedelta(hours=3))
    factory.integration(idle, expires_at=utcnow() + timedelta(days=10))
    endpoint = TokenEndpoint(ok(token="a"), httpx.Response(500, text="boom"))

    result = make_refresher(db, settings, endpoint).refresh_expiring_tokens()

    assert result["processed"] == 2
    assert result["refreshed"] == 1
    assert len(result["errors"]) == 1
