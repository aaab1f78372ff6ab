"""
Pydantic schemas for team invitations.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class InviteCreate(BaseModel):
    email: EmailStr
    first_name: str = Field("", max_length=100, alias="firstName")
    last_name: str = Field("", max_length=100, alias="lastName")
    role: str = Field("member", pattern="^(admin|member)$")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "email": "new.member@example.com",
                "firstName": "Sam",
                "lastName": "Lee",
                "role": "member"
            }
        }


class InviteResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_id: str
    role: str
    status: str
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True
