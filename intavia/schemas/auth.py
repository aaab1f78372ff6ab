"""
Pydantic schemas for authentication endpoints.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


def _check_password(v: str) -> str:
    password_bytes = v.encode("utf-8")
    if len(password_bytes) > 72:
        raise ValueError("Password too long (bcrypt limit 72 bytes)")
    if len(password_bytes) < 8:
        raise ValueError("Password must be at least 8 characters")
    return v


class SigninRequest(BaseModel):
    """Request schema for password sign-in."""
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane.doe@example.com",
                "password": "SecurePass123"
            }
        }


class SignupInviteRequest(BaseModel):
    """Request schema for joining a company through an invitation."""
    email: EmailStr = Field(..., description="Invited email address")
    password: str = Field(..., description="New password (8-72 bytes)")
    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    invite_id: str = Field(..., alias="inviteId")

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        """Validate password length in bytes (bcrypt limit is 72 bytes)."""
        return _check_password(v)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "email": "new.member@example.com",
                "password": "SecurePass123",
                "firstName": "Sam",
                "lastName": "Lee",
                "inviteId": "9f0c1c4e-..."
            }
        }


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    company_id: Optional[str] = None

    class Config:
        from_attributes = True
