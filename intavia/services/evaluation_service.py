"""
Candidate evaluation worker.

Builds a prompt from the job requirements, the candidate's interview responses and
resume metadata, asks the LLM for a JSON assessment and stores it.
"""
import json
import logging
import re
import time
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from intavia.core.errors import AlreadyExistsError, NotFoundError, UpstreamError
from intavia.db.models.candidate import Candidate, CandidateResponse, CandidateResume
from intavia.db.models.evaluation import Evaluation
from intavia.db.models.job import Job
from intavia.llm.provider import LLMProvider
from intavia.schemas.evaluation import EvaluationResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert HR professional and technical recruiter. "
    "Evaluate candidates objectively and respond with valid JSON only."
)

PROMPT_TEMPLATE = """Evaluate this candidate for the {job_title} position and provide a comprehensive assessment.

Job Information:
- Position: {job_title}
- Experience Level: {experience_level}
- Required Skills: {skills}
- Required Traits: {traits}
- Job Description: {description}

Candidate Data:
{resume}

Interview Responses:
{responses}

Instructions:
1. Score each area from 0-100 based on job requirements
2. Be objective and evidence-based
3. Highlight specific strengths and areas for improvement
4. Note any red flags or concerning patterns

Return ONLY a JSON object with the keys overall_score, overall_status
(excellent|good|average|poor|very_poor), recommendation (strong_yes|yes|maybe|no|strong_no),
evaluation_summary, evaluation_explanation, radar_metrics (skills, growth_mindset, team_work,
culture, communication), category_scores (name -> score, explanation, strengths,
areas_for_improvement), key_strengths, areas_for_improvement, red_flags.
"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def parse_evaluation(content: str) -> EvaluationResult:
    match = _JSON_OBJECT.search(content or "")
    if not match:
        raise ValueError("No JSON found in AI response")
    try:
        return EvaluationResult.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ValueError(f"Failed to parse AI evaluation response: {e}") from e


def _join(value) -> str:
    if not value:
        return "Not specified"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


class CandidateEvaluator:
    def __init__(self, db: Session, provider: LLMProvider, model: Optional[str] = None):
        self.db = db
        self.provider = provider
        self.model = model

    def build_prompt(self, candidate: Candidate, job: Job) -> str:
        fields = job.fields or {}
        responses = (
            self.db.query(CandidateResponse)
            .filter(CandidateResponse.candidate_id == candidate.id)
            .order_by(CandidateResponse.created_at)
            .all()
        )
        response_text = "\n\n".join(
            f"Q{i}: {r.question}\nA{i}: {r.answer or 'No answer provided'}" for i, r in enumerate(responses, 1)
        ) or "No interview responses available"

        resume = self.db.query(CandidateResume).filter(CandidateResume.candidate_id == candidate.id).first()
        if resume:
            resume_text = (
                f"Resume: {resume.original_filename}\n"
                f"File Type: {resume.file_type or 'N/A'}\n"
                f"Word Count: {resume.word_count or 'N/A'}\n"
                f"Parsing Status: {resume.parsing_status or 'N/A'}"
            )
        else:
            resume_text = "No resume available"

        return PROMPT_TEMPLATE.format(
            job_title=job.title,
            experience_level=fields.get("experienceLevel") or "Not specified",
            skills=_join(fields.get("skills")),
            traits=_join(fields.get("traits")),
            description=job.description or "Not provided",
            resume=resume_text,
            responses=response_text,
        )

    def evaluate(self, candidate_id: str) -> Evaluation:
        row = (
            self.db.query(Candidate, Job)
            .join(Job, Candidate.job_id == Job.id)
            .filter(Candidate.id == candidate_id)
            .first()
        )
        if not row:
            raise NotFoundError("Candidate not found")
        candidate, job = row

        started = time.monotonic()
        prompt = self.build_prompt(candidate, job)
        try:
            response = self.provider.chat(
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                model=self.model,
                temperature=0.3,
                max_tokens=2000,
                json_mode=True,
            )
            result = parse_evaluation(response.content)
        except Exception as e:
            logger.error(f"AI evaluation failed candidate_id={candidate_id}: {e}", exc_info=True)
            raise UpstreamError("AI evaluation failed") from e

        duration_ms = int((time.monotonic() - started) * 1000)
        evaluation = Evaluation(
            candidate_id=candidate.id,
            job_id=job.id,
            overall_score=result.overall_score,
            overall_status=result.overall_status,
            recommendation=result.recommendation,
            summary=result.evaluation_summary,
            explanation=result.evaluation_explanation,
            radar_metrics=result.radar_metrics.model_dump(),
            category_scores={name: score.model_dump() for name, score in result.category_scores.items()},
            key_strengths=result.key_strengths,
            areas_for_improvement=result.areas_for_improvement,
            red_flags=result.red_flags,
            model=response.model or self.model,
            processing_duration_ms=duration_ms,
        )
        self.db.add(evaluation)
        try:
            self.db.commit()
        except IntegrityError:
            # another request stored an evaluation first
            self.db.rollback()
            raise AlreadyExistsError("Evaluation already exists for this candidate")
        self.db.refresh(evaluation)

        logger.info(
            f"Evaluation stored candidate_id={candidate_id} score={result.overall_score} "
            f"recommendation={result.recommendation} duration_ms={duration_ms}"
        )
        return evaluation
