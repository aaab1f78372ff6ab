from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class Evaluation(Base):
    """
    AI evaluation of a completed candidate.

    At most one row per candidate (unique candidate_id); a forced re-evaluation
    deletes the previous row first.
    """
    __tablename__ = "evaluations"

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), ForeignKey("candidates.id"), nullable=False, unique=True)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    overall_score = Column(Float, nullable=False)
    overall_status = Column(String, nullable=False)  # excellent | good | average | poor | very_poor
    recommendation = Column(String, nullable=False)  # strong_yes | yes | maybe | no | strong_no
    summary = Column(Text, nullable=True)
    explanation = Column(Text, nullable=True)
    radar_metrics = Column(JSON, nullable=True)
    category_scores = Column(JSON, nullable=True)
    key_strengths = Column(JSON, nullable=True)
    areas_for_improvement = Column(JSON, nullable=True)
    red_flags = Column(JSON, nullable=True)
    model = Column(String, nullable=True)
    processing_duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
