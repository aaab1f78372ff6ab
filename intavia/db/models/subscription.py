from typing import Optional

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id

SUBSCRIPTION_STATUSES = ("trialing", "active", "past_due", "canceled", "expired")

# Legal local status moves. Anything else coming from a webhook or a sync is skipped.
SUBSCRIPTION_TRANSITIONS = {
    "trialing": {"active", "past_due", "canceled", "expired"},
    "active": {"past_due", "canceled", "expired"},
    "past_due": {"active", "canceled", "expired"},
    "canceled": {"expired"},
    "expired": set(),
}

# Stripe statuses outside the local vocabulary
_PROVIDER_STATUS_MAP = {
    "unpaid": "past_due",
    "incomplete": "past_due",
    "incomplete_expired": "expired",
    "paused": "canceled",
}


def normalize_provider_status(provider_status: Optional[str]) -> Optional[str]:
    """Map a Stripe subscription status onto the local status vocabulary."""
    if not provider_status:
        return None
    status = _PROVIDER_STATUS_MAP.get(provider_status, provider_status)
    return status if status in SUBSCRIPTION_STATUSES else None


def can_transition(current: str, new: str) -> bool:
    return new in SUBSCRIPTION_TRANSITIONS.get(current, set())


class Subscription(Base):
    """A company's billing plan enrollment. Never hard-deleted; status carries the lifecycle."""
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    plan_id = Column(String, nullable=False, default="starter")

    status = Column(String, nullable=False, default="trialing", index=True)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    trial_start = Column(DateTime(timezone=True), nullable=True)
    trial_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    past_due_since = Column(DateTime(timezone=True), nullable=True)

    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True, unique=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
