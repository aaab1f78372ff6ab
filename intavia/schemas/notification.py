"""
Pydantic schemas for notification endpoints and preferences.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class NotificationPreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    email_enabled: Optional[bool] = None
    push_enabled: Optional[bool] = None
    in_app_enabled: Optional[bool] = None
    email_job_applications: Optional[bool] = None
    email_interview_scheduled: Optional[bool] = None
    email_interview_reminders: Optional[bool] = None
    email_candidate_updates: Optional[bool] = None
    email_system_updates: Optional[bool] = None
    email_marketing: Optional[bool] = None
    email_digest_frequency: Optional[str] = Field(None, description="immediate | daily | weekly | never")
    push_job_applications: Optional[bool] = None
    push_interview_scheduled: Optional[bool] = None
    push_interview_reminders: Optional[bool] = None
    push_candidate_updates: Optional[bool] = None
    push_system_updates: Optional[bool] = None
    in_app_job_applications: Optional[bool] = None
    in_app_interview_scheduled: Optional[bool] = None
    in_app_interview_reminders: Optional[bool] = None
    in_app_candidate_updates: Optional[bool] = None
    in_app_system_updates: Optional[bool] = None
    quiet_hours_start: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    quiet_hours_end: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")

    class Config:
        extra = "forbid"
        json_schema_extra = {"example": {"email_system_updates": False, "email_digest_frequency": "weekly"}}


class JobPermissionGrantedRequest(BaseModel):
    recipient_email: EmailStr = Field(..., alias="recipientEmail")
    recipient_name: Optional[str] = Field(None, alias="recipientName")
    granter_name: Optional[str] = Field(None, alias="granterName")
    job_title: str = Field(..., alias="jobTitle")
    job_id: Optional[str] = Field(None, alias="jobId")
    company_name: Optional[str] = Field(None, alias="companyName")
    permission_level: str = Field("view", alias="permissionLevel")

    class Config:
        populate_by_name = True


class DemoRequest(BaseModel):
    """Public 'request a demo' form."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    company: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    team_size: Optional[str] = Field(None, alias="teamSize")
    message: Optional[str] = Field(None, max_length=5000)

    class Config:
        populate_by_name = True
