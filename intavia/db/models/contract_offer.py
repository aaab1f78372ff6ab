from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey, JSON

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id

CONTRACT_OFFER_STATUSES = ("sent", "signed", "rejected", "expired")


class Contract(Base):
    """Contract template an offer is generated from."""
    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ContractOffer(Base):
    __tablename__ = "contract_offers"

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), ForeignKey("candidates.id"), nullable=False, index=True)
    contract_id = Column(String(36), ForeignKey("contracts.id"), nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    sent_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    status = Column(String, nullable=False, default="sent", index=True)
    salary_amount = Column(Numeric(12, 2), nullable=True)
    salary_currency = Column(String(3), nullable=True, default="USD")
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), default=utcnow, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)  # manual cancel; status stays "expired"
    rejection_reason = Column(Text, nullable=True)
    signing_token = Column(String, nullable=False, unique=True, index=True)
    signature = Column(JSON, nullable=True)
    signed_document_path = Column(String, nullable=True)  # path inside the signed-contracts bucket
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
