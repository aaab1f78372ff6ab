"""
Pydantic schemas for billing endpoints.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CreatePortalSessionRequest(BaseModel):
    """Request schema for creating portal session."""
    return_url: str = Field(..., alias="returnUrl", description="URL to return to after portal session")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "returnUrl": "https://app.intavia.app/settings/billing"
            }
        }


class CreatePortalSessionResponse(BaseModel):
    """Response schema for portal session creation."""
    url: str = Field(..., description="Stripe customer portal URL")


class RetryPaymentRequest(BaseModel):
    """Request schema for retrying open invoices with a new payment method."""
    subscription_id: str = Field("", alias="subscriptionId")
    payment_method_id: str = Field("", alias="paymentMethodId")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "subscriptionId": "sub_1P...",
                "paymentMethodId": "pm_1P..."
            }
        }


class SubscriptionResponse(BaseModel):
    id: str
    company_id: str
    plan_id: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    past_due_since: Optional[datetime] = None

    class Config:
        from_attributes = True
