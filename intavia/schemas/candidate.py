"""
Pydantic schemas for candidate lifecycle endpoints.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class CandidateStatusUpdate(BaseModel):
    status: str = Field(..., description="Target candidate status")

    class Config:
        json_schema_extra = {"example": {"status": "shortlisted"}}


class BulkActionRequest(BaseModel):
    """Request schema for applying one action to many candidates."""
    candidate_ids: List[str] = Field(default_factory=list, alias="candidateIds")
    action: str = Field(..., description="shortlist | reject | archive | unarchive")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "candidateIds": ["5b1d...", "a7e2..."],
                "action": "shortlist"
            }
        }


class BulkActionResponse(BaseModel):
    action: str
    status: str
    updated_count: int
    candidate_ids: List[str]


class CandidateResponse(BaseModel):
    id: str
    job_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    status: str
    is_completed: bool
    current_step: Optional[int] = None
    total_steps: Optional[int] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
