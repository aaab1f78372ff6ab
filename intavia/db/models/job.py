from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    profile_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    fields = Column(JSON, nullable=True)  # skills, traits, experienceLevel
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
