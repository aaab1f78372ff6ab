"""
FastAPI dependencies that build services with their collaborators.

Outbound clients (httpx, Stripe, LLM, storage) each have their own provider so tests
can swap one through app.dependency_overrides and keep the rest real.
"""
import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from intavia.core.auth_dependency import get_db
from intavia.core.config import Settings, get_settings
from intavia.core.errors import InternalError
from intavia.llm.openai_provider import OpenAIProvider
from intavia.services.billing_service import BillingWebhookHandler
from intavia.services.candidate_service import CandidateStateMachine
from intavia.services.contract_offer_service import ContractOfferStateMachine
from intavia.services.email_service import EmailClient
from intavia.services.evaluation_service import CandidateEvaluator
from intavia.services.google_calendar_service import GoogleCalendarClient
from intavia.services.interview_service import InterviewService
from intavia.services.invite_service import InviteService
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.notification_preferences_service import NotificationPreferencesService
from intavia.services.payment_retry_service import PaymentRetryCoordinator
from intavia.services.storage_service import LocalBlobStore
from intavia.services.stripe_service import StripeGateway
from intavia.services.subscription_monitor import SubscriptionMonitor
from intavia.services.token_refresher import TokenRefresher


def get_http_client(settings: Settings = Depends(get_settings)):
    """One pooled httpx client per request, shared by every outbound integration."""
    client = httpx.Client(timeout=settings.http_timeout_seconds)
    try:
        yield client
    finally:
        client.close()


def get_stripe_gateway(settings: Settings = Depends(get_settings)) -> StripeGateway:
    return StripeGateway(settings)


def get_blob_store(settings: Settings = Depends(get_settings)) -> LocalBlobStore:
    return LocalBlobStore(settings)


def get_llm_provider(settings: Settings = Depends(get_settings)):
    if not settings.openai_api_key:
        raise InternalError("AI provider not configured")
    return OpenAIProvider(settings)


def get_dispatcher(
    settings: Settings = Depends(get_settings),
    http_client: httpx.Client = Depends(get_http_client),
) -> NotificationDispatcher:
    return NotificationDispatcher(settings, EmailClient(settings, http_client=http_client))


def get_preferences_service(db: Session = Depends(get_db)) -> NotificationPreferencesService:
    return NotificationPreferencesService(db)


def get_token_refresher(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    http_client: httpx.Client = Depends(get_http_client),
) -> TokenRefresher:
    return TokenRefresher(db, settings, http_client=http_client)


def get_calendar_client(
    settings: Settings = Depends(get_settings),
    http_client: httpx.Client = Depends(get_http_client),
) -> GoogleCalendarClient:
    return GoogleCalendarClient(settings, http_client=http_client)


def get_candidate_state_machine(db: Session = Depends(get_db)) -> CandidateStateMachine:
    return CandidateStateMachine(db)


def get_candidate_evaluator(db: Session = Depends(get_db), provider=Depends(get_llm_provider)) -> CandidateEvaluator:
    return CandidateEvaluator(db, provider)


def get_evaluating_state_machine(
    db: Session = Depends(get_db),
    evaluator: CandidateEvaluator = Depends(get_candidate_evaluator),
) -> CandidateStateMachine:
    return CandidateStateMachine(db, evaluator=evaluator)


def get_contract_offer_state_machine(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ContractOfferStateMachine:
    return ContractOfferStateMachine(db, settings, blob_store, dispatcher)


def get_interview_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token_refresher: TokenRefresher = Depends(get_token_refresher),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> InterviewService:
    return InterviewService(db, settings, token_refresher, calendar, dispatcher)


def get_invite_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> InviteService:
    return InviteService(db, settings, dispatcher)


def get_payment_retry_coordinator(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> PaymentRetryCoordinator:
    return PaymentRetryCoordinator(db, settings, gateway)


def get_webhook_handler(
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    payment_retry: PaymentRetryCoordinator = Depends(get_payment_retry_coordinator),
) -> BillingWebhookHandler:
    return BillingWebhookHandler(db, gateway, payment_retry)


def get_subscription_monitor(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    preferences: NotificationPreferencesService = Depends(get_preferences_service),
) -> SubscriptionMonitor:
    return SubscriptionMonitor(db, settings, gateway, dispatcher, preferences)
