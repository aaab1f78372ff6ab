from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class Integration(Base):
    """Stored OAuth credential for a third-party provider (currently Google Calendar)."""
    __tablename__ = "integrations"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    provider = Column(String, nullable=False, default="google")
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    scope = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="connected")  # connected | disconnected
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),
    )
