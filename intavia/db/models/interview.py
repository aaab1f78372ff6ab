from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id

INTERVIEW_STATUSES = ("scheduled", "confirmed", "completed", "cancelled", "rescheduled")


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(String(36), primary_key=True, default=new_id)
    application_id = Column(String(36), ForeignKey("candidates.id"), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    time = Column(String(8), nullable=False)  # HH:MM[:SS]
    timezone_id = Column(String, nullable=False, default="UTC")  # IANA zone name
    duration = Column(Integer, nullable=False, default=30)  # minutes
    status = Column(String, nullable=False, default="scheduled", index=True)
    calendar_event_id = Column(String, nullable=True)
    meet_link = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
