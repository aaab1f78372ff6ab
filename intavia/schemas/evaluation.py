"""
Pydantic schemas for candidate evaluations.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

OVERALL_STATUSES = ("excellent", "good", "average", "poor", "very_poor")
RECOMMENDATIONS = ("strong_yes", "yes", "maybe", "no", "strong_no")


def _clamp(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(0.0, min(100.0, number))


class RadarMetrics(BaseModel):
    skills: float = 50
    growth_mindset: float = 50
    team_work: float = 50
    culture: float = 50
    communication: float = 50

    @field_validator("*", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> float:
        return _clamp(v, 50.0)


class CategoryScore(BaseModel):
    score: float = 0
    explanation: str = ""
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> float:
        return _clamp(v, 0.0)


class EvaluationResult(BaseModel):
    """Structured scoring returned by the LLM; scores are clamped to 0-100."""
    overall_score: float = 0
    overall_status: str = "average"
    recommendation: str = "maybe"
    evaluation_summary: str = "No summary provided"
    evaluation_explanation: str = "No explanation provided"
    radar_metrics: RadarMetrics = Field(default_factory=RadarMetrics)
    category_scores: Dict[str, CategoryScore] = Field(default_factory=dict)
    key_strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_overall(cls, v: Any) -> float:
        return _clamp(v, 0.0)

    @field_validator("overall_status", mode="before")
    @classmethod
    def known_status(cls, v: Any) -> str:
        return v if v in OVERALL_STATUSES else "average"

    @field_validator("recommendation", mode="before")
    @classmethod
    def known_recommendation(cls, v: Any) -> str:
        return v if v in RECOMMENDATIONS else "maybe"


class EvaluateRequest(BaseModel):
    force: bool = Field(default=False, description="Delete the existing evaluation and re-run")

    class Config:
        json_schema_extra = {"example": {"force": False}}


class EvaluationResponse(BaseModel):
    id: str
    candidate_id: str
    job_id: str
    overall_score: float
    overall_status: str
    recommendation: str
    summary: Optional[str] = None
    explanation: Optional[str] = None
    radar_metrics: Optional[Dict[str, Any]] = None
    category_scores: Optional[Dict[str, Any]] = None
    key_strengths: Optional[List[str]] = None
    areas_for_improvement: Optional[List[str]] = None
    red_flags: Optional[List[str]] = None
    model: Optional[str] = None
    processing_duration_ms: Optional[int] = None

    class Config:
        from_attributes = True
