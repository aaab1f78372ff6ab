from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id

CANDIDATE_STATUSES = (
    "under_review",
    "active",
    "shortlisted",
    "rejected",
    "archived",
    "interview_scheduled",
    "reference_check",
    "offer_extended",
    "offer_accepted",
    "hired",
    "withdrawn",
)


class Candidate(Base):
    """An applicant's interview record for one job."""
    __tablename__ = "candidates"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="under_review", index=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    current_step = Column(Integer, nullable=False, default=0)
    total_steps = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CandidateResponse(Base):
    """One answered interview question."""
    __tablename__ = "candidate_responses"

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), ForeignKey("candidates.id"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class CandidateResume(Base):
    __tablename__ = "candidate_resumes"

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), ForeignKey("candidates.id"), nullable=False, unique=True)
    original_filename = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    word_count = Column(Integer, nullable=True)
    parsing_status = Column(String, nullable=True)
    storage_path = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
