"""
Shared fixtures: an in-memory SQLite database, test settings, fakes for the
outbound integrations and small row factories.
"""
import json
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from intavia.core import service_dependency as deps
from intavia.core.auth_dependency import get_db
from intavia.core.config import Settings, get_settings
from intavia.core.security import create_access_token, hash_password
from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models import (
    Candidate,
    Company,
    Contract,
    ContractOffer,
    Integration,
    Interview,
    Invite,
    Job,
    Profile,
    Subscription,
)
from intavia.llm.provider import LLMProvider, LLMResponse
from intavia.services.email_service import EmailResult
from intavia.services.google_calendar_service import CalendarError, CalendarEventResult
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.storage_service import LocalBlobStore
from intavia.services.stripe_service import PaymentProviderError, WebhookVerificationError

TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=TEST_DATABASE_URL,
        secret_key="test-secret",
        monitoring_api_key="monitor-key",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test_secret",
        google_client_id="google-client",
        google_client_secret="google-secret",
        resend_api_key=None,
        openai_api_key="sk-test",
        app_base_url="https://app.example.com",
        storage_root=str(tmp_path / "storage"),
    )


# ----- fakes -----

class FakeEmailClient:
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, to, subject, html, text=None, reply_to=None):
        if self.fail_with:
            return EmailResult(success=False, error=self.fail_with)
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text, "reply_to": reply_to})
        return EmailResult(success=True, message_id=f"msg_{len(self.sent)}")


class FakeGateway:
    """In-memory stand-in for StripeGateway with the same dict-shaped results."""

    def __init__(self):
        self.subscriptions = {}
        self.open_invoices = {}
        self.failing_invoices = {}
        self.fail_on = set()
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise PaymentProviderError(f"{name} failed")

    def retrieve_subscription(self, subscription_id):
        self._record("retrieve_subscription", subscription_id)
        if subscription_id not in self.subscriptions:
            raise PaymentProviderError(f"No such subscription: {subscription_id}")
        return dict(self.subscriptions[subscription_id])

    def attach_payment_method(self, payment_method_id, customer_id):
        self._record("attach_payment_method", payment_method_id, customer_id)

    def set_customer_default_payment_method(self, customer_id, payment_method_id):
        self._record("set_customer_default_payment_method", customer_id, payment_method_id)

    def set_subscription_default_payment_method(self, subscription_id, payment_method_id):
        self._record("set_subscription_default_payment_method", subscription_id, payment_method_id)

    def list_open_invoices(self, subscription_id, limit):
        self._record("list_open_invoices", subscription_id, limit)
        return [dict(i) for i in self.open_invoices.get(subscription_id, [])][:limit]

    def pay_invoice(self, invoice_id, payment_method_id):
        self._record("pay_invoice", invoice_id, payment_method_id)
        if invoice_id in self.failing_invoices:
            raise PaymentProviderError(self.failing_invoices[invoice_id])
        return {"id": invoice_id, "status": "paid"}

    def create_billing_portal_session(self, customer_id, return_url):
        self._record("create_billing_portal_session", customer_id, return_url)
        return f"https://billing.stripe.test/session/{customer_id}"

    def construct_webhook_event(self, payload, signature):
        if signature != "valid-signature":
            raise WebhookVerificationError("Invalid signature")
        return json.loads(payload)


class FakeLLMProvider(LLMProvider):
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = 0

    def chat(self, messages, model, temperature=0.3, max_tokens=None, json_mode=False):
        self.calls += 1
        if self.error:
            raise self.error
        return LLMResponse(content=self.content, model="gpt-test")


class FakeTokenRefresher:
    def __init__(self, token="google-access-token"):
        self.token = token
        self.calls = []
        self.sweeps = 0

    def get_valid_access_token(self, user_id, company_id):
        self.calls.append((user_id, company_id))
        return self.token

    def refresh_expiring_tokens(self, within=None):
        self.sweeps += 1
        return {"processed": 0, "refreshed": 0, "errors": []}


class FakeCalendar:
    def __init__(self):
        self.created = []
        self.deleted = []
        self.updated = []
        self.fail_with = None

    def create_event(self, access_token, event):
        if self.fail_with:
            raise CalendarError(self.fail_with)
        self.created.append(event)
        return CalendarEventResult(event_id=f"evt_{len(self.created)}", meet_link="https://meet.google.com/abc-defg-hij")

    def update_event(self, access_token, event_id, event):
        if self.fail_with:
            raise CalendarError(self.fail_with)
        self.updated.append((event_id, event))
        return CalendarEventResult(event_id=event_id, meet_link="https://meet.google.com/abc-defg-hij")

    def delete_event(self, access_token, event_id):
        if self.fail_with:
            raise CalendarError(self.fail_with)
        self.deleted.append(event_id)


EVALUATION_JSON = json.dumps({
    "overall_score": 82,
    "overall_status": "good",
    "recommendation": "yes",
    "evaluation_summary": "Solid candidate.",
    "evaluation_explanation": "Clear answers with relevant experience.",
    "radar_metrics": {"skills": 85, "growth_mindset": 80, "team_work": 75, "culture": 70, "communication": 90},
    "category_scores": {"technical": {"score": 84, "explanation": "Good depth", "strengths": ["APIs"], "areas_for_improvement": []}},
    "key_strengths": ["Communication"],
    "areas_for_improvement": ["Testing"],
    "red_flags": [],
})


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def dispatcher(settings, email_client):
    return NotificationDispatcher(settings, email_client)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def llm():
    return FakeLLMProvider(content=EVALUATION_JSON)


@pytest.fixture
def token_refresher():
    return FakeTokenRefresher()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def blob_store(settings):
    return LocalBlobStore(settings)


# ----- factories -----

class Factory:
    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def company(self, name="Acme"):
        return self._save(Company(name=name))

    def profile(self, company=None, email="owner@example.com", role="admin", password="SecurePass123", first_name="Olive"):
        return self._save(Profile(
            company_id=company.id if company else None,
            email=email,
            first_name=first_name,
            last_name="Owner",
            role=role,
            password_hash=hash_password(password),
        ))

    def job(self, company, owner, title="Backend Engineer"):
        return self._save(Job(
            company_id=company.id,
            profile_id=owner.id,
            title=title,
            description="Build APIs",
            fields={"skills": ["Python", "SQL"], "experienceLevel": "senior"},
        ))

    def candidate(self, job, status="under_review", is_completed=True, email="cand@example.com"):
        return self._save(Candidate(
            job_id=job.id,
            first_name="Casey",
            last_name="Candidate",
            email=email,
            status=status,
            is_completed=is_completed,
            current_step=5 if is_completed else 2,
            total_steps=5,
        ))

    def offer(self, candidate, company, sent_by=None, status="sent", token="sign-token", expires_in=timedelta(days=7)):
        contract = self._save(Contract(company_id=company.id, title="Employment Agreement"))
        return self._save(ContractOffer(
            candidate_id=candidate.id,
            contract_id=contract.id,
            company_id=company.id,
            sent_by=sent_by.id if sent_by else None,
            status=status,
            salary_amount=Decimal("95000.00"),
            salary_currency="USD",
            expires_at=utcnow() + expires_in if expires_in is not None else None,
            signing_token=token,
        ))

    def interview(self, candidate, job, start, status="scheduled", calendar_event_id=None, created_by=None):
        """`start` is an aware datetime; stored as UTC wall-clock."""
        return self._save(Interview(
            application_id=candidate.id,
            job_id=job.id,
            date=start.strftime("%Y-%m-%d"),
            time=start.strftime("%H:%M"),
            timezone_id="UTC",
            duration=45,
            status=status,
            calendar_event_id=calendar_event_id,
            created_by=created_by.id if created_by else None,
        ))

    def integration(self, profile, access_token="old-token", refresh_token="refresh-token", expires_at=None, status="connected"):
        return self._save(Integration(
            company_id=profile.company_id,
            user_id=profile.id,
            provider="google",
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            status=status,
        ))

    def invite(self, company, inviter=None, email="new.member@example.com", status="pending", expires_in=timedelta(days=30), role="member"):
        return self._save(Invite(
            email=email,
            first_name="Sam",
            last_name="Lee",
            company_id=company.id,
            role=role,
            status=status,
            invited_by=inviter.id if inviter else None,
            expires_at=utcnow() + expires_in,
        ))

    def subscription(self, company, owner, status="active", stripe_id="sub_123", customer="cus_123", **fields):
        return self._save(Subscription(
            company_id=company.id,
            user_id=owner.id,
            plan_id=fields.pop("plan_id", "growth"),
            status=status,
            stripe_subscription_id=stripe_id,
            stripe_customer_id=customer,
            **fields,
        ))


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def company(factory):
    return factory.company()


@pytest.fixture
def owner(factory, company):
    return factory.profile(company)


@pytest.fixture
def job(factory, company, owner):
    return factory.job(company, owner)


# ----- HTTP -----

@pytest.fixture
def auth_headers(settings):
    def make(profile):
        token = create_access_token({"sub": profile.id}, settings=settings)
        return {"Authorization": f"Bearer {token}"}
    return make


@pytest.fixture
def client(db, settings, gateway, email_client, llm, token_refresher, calendar, blob_store):
    from intavia.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[deps.get_stripe_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_dispatcher] = lambda: NotificationDispatcher(settings, email_client)
    app.dependency_overrides[deps.get_llm_provider] = lambda: llm
    app.dependency_overrides[deps.get_token_refresher] = lambda: token_refresher
    app.dependency_overrides[deps.get_calendar_client] = lambda: calendar
    app.dependency_overrides[deps.get_blob_store] = lambda: blob_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
