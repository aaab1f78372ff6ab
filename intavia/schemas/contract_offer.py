"""
Pydantic schemas for contract offer endpoints.

Sign and reject are called by the external signer, authenticated only by the
signing token carried in the body.
"""
import base64
import binascii
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class SignContractRequest(BaseModel):
    signing_token: str = Field(..., alias="signingToken")
    signature: Optional[Dict[str, Any]] = Field(None, description="Signature payload, e.g. typed name or image data")
    signed_document: Optional[str] = Field(None, alias="signedDocument", description="Base64-encoded signed PDF")

    @field_validator("signed_document")
    @classmethod
    def validate_base64(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("signedDocument must be base64 encoded")
        return v

    def document_bytes(self) -> Optional[bytes]:
        return base64.b64decode(self.signed_document) if self.signed_document else None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "signingToken": "c3f6...",
                "signature": {"name": "Alex Candidate", "type": "typed"}
            }
        }


class RejectContractRequest(BaseModel):
    signing_token: str = Field(..., alias="signingToken")
    reason: Optional[str] = Field(None, max_length=2000)

    class Config:
        populate_by_name = True


class ContractOfferResponse(BaseModel):
    id: str
    candidate_id: str
    contract_id: Optional[str] = None
    status: str
    salary_amount: Optional[Decimal] = None
    salary_currency: Optional[str] = None
    expires_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    class Config:
        from_attributes = True


class SignedDocumentResponse(BaseModel):
    url: str
