"""
Candidate lifecycle endpoints: status changes, bulk actions and evaluations.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from intavia.api.responses import dump, success
from intavia.core.auth_dependency import get_current_profile
from intavia.core.errors import AppError, InternalError, NotFoundError
from intavia.core.service_dependency import get_candidate_state_machine, get_evaluating_state_machine
from intavia.db.models.profile import Profile
from intavia.schemas.candidate import BulkActionRequest, CandidateResponse, CandidateStatusUpdate
from intavia.schemas.evaluation import EvaluateRequest, EvaluationResponse
from intavia.services.candidate_service import CandidateStateMachine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/candidates", tags=["Candidates"])


@router.post("/bulk-actions")
def bulk_actions(
    request: BulkActionRequest,
    profile: Profile = Depends(get_current_profile),
    candidates: CandidateStateMachine = Depends(get_candidate_state_machine),
):
    """
    Apply shortlist / reject / archive / unarchive to many candidates at once.

    All or nothing: if any candidate is not accessible or cannot enter the target
    status, no candidate is changed.
    """
    try:
        result = candidates.bulk_transition(request.candidate_ids, request.action, profile)
        return success(result)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Bulk action failed action={request.action}: {e}", exc_info=True)
        raise InternalError("Failed to update candidates")


@router.patch("/{candidate_id}/status")
def update_status(
    candidate_id: str,
    request: CandidateStatusUpdate,
    profile: Profile = Depends(get_current_profile),
    candidates: CandidateStateMachine = Depends(get_candidate_state_machine),
):
    try:
        candidate = candidates.transition(candidate_id, request.status, profile)
        return success(dump(CandidateResponse, candidate))
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Status update failed candidate_id={candidate_id}: {e}", exc_info=True)
        raise InternalError("Failed to update candidate status")


@router.post("/{candidate_id}/evaluate")
def evaluate(
    candidate_id: str,
    request: Optional[EvaluateRequest] = None,
    profile: Profile = Depends(get_current_profile),
    candidates: CandidateStateMachine = Depends(get_evaluating_state_machine),
):
    """
    Generate the AI evaluation for a completed candidate.

    Without `force` an existing evaluation is a 409. With `force` the previous
    evaluation is deleted and a new one generated.
    """
    try:
        evaluation = candidates.request_evaluation(candidate_id, profile, force=bool(request and request.force))
        return success(dump(EvaluationResponse, evaluation))
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Evaluation failed candidate_id={candidate_id}: {e}", exc_info=True)
        raise InternalError("Failed to evaluate candidate")


@router.get("/{candidate_id}/evaluation")
def get_evaluation(
    candidate_id: str,
    profile: Profile = Depends(get_current_profile),
    candidates: CandidateStateMachine = Depends(get_candidate_state_machine),
):
    evaluation = candidates.get_evaluation(candidate_id, profile)
    if not evaluation:
        raise NotFoundError("Evaluation not found")
    return success(dump(EvaluationResponse, evaluation))
