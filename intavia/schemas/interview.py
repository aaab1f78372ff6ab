"""
Pydantic schemas for interview scheduling endpoints.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class InterviewCreate(BaseModel):
    """Request schema for scheduling an interview."""
    candidate_id: str = Field(..., alias="applicationId")
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Local date, YYYY-MM-DD")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}(:\d{2})?$", description="Local time, HH:MM")
    timezone_id: str = Field(..., alias="timezoneId", description="IANA timezone, e.g. Europe/Berlin")
    duration: int = Field(60, gt=0, le=480, description="Minutes")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "applicationId": "5b1d...",
                "date": "2026-11-03",
                "time": "14:30",
                "timezoneId": "America/New_York",
                "duration": 45
            }
        }


class InterviewCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class InterviewResponse(BaseModel):
    id: str
    application_id: str
    job_id: str
    date: str
    time: str
    timezone_id: str
    duration: int
    status: str
    calendar_event_id: Optional[str] = None
    meet_link: Optional[str] = None
    notes: Optional[str] = None
    reminder_sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InterviewRescheduleRequest(BaseModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    timezone_id: Optional[str] = Field(None, alias="timezoneId")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True
