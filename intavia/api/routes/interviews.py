"""
Interview scheduling endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from intavia.api.responses import dump, success
from intavia.core.auth_dependency import get_current_profile, require_monitoring_access
from intavia.core.errors import AppError, InternalError
from intavia.core.service_dependency import get_interview_service
from intavia.db.models.profile import Profile
from intavia.schemas.interview import (
    InterviewCancelRequest,
    InterviewCreate,
    InterviewRescheduleRequest,
    InterviewResponse,
)
from intavia.services.interview_service import InterviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["Interviews"])


@router.post("", status_code=status.HTTP_201_CREATED)
def schedule_interview(
    request: InterviewCreate,
    profile: Profile = Depends(get_current_profile),
    interviews: InterviewService = Depends(get_interview_service),
):
    """
    Schedule an interview for a candidate.

    A Google Calendar event with a Meet link is created when the scheduler has a
    connected calendar; otherwise the interview is saved without one.
    """
    try:
        outcome = interviews.schedule(
            candidate_id=request.candidate_id,
            date=request.date,
            time=request.time,
            timezone_id=request.timezone_id,
            duration=request.duration,
            actor=profile,
            notes=request.notes,
        )
        return success(dump(InterviewResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to schedule interview candidate_id={request.candidate_id}: {e}", exc_info=True)
        raise InternalError("Failed to schedule interview")


@router.post("/reminders/trigger")
def trigger_reminders(
    caller: str = Depends(require_monitoring_access),
    interviews: InterviewService = Depends(get_interview_service),
):
    logger.info(f"Interview reminders triggered by {caller}")
    return success(interviews.send_due_reminders())


@router.patch("/{interview_id}/cancel")
def cancel_interview(
    interview_id: str,
    request: Optional[InterviewCancelRequest] = None,
    profile: Profile = Depends(get_current_profile),
    interviews: InterviewService = Depends(get_interview_service),
):
    try:
        outcome = interviews.cancel(interview_id, profile, reason=request.reason if request else None)
        return success(dump(InterviewResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to cancel interview interview_id={interview_id}: {e}", exc_info=True)
        raise InternalError("Failed to cancel interview")


@router.put("/{interview_id}/reschedule")
def reschedule_interview(
    interview_id: str,
    request: InterviewRescheduleRequest,
    profile: Profile = Depends(get_current_profile),
    interviews: InterviewService = Depends(get_interview_service),
):
    """Move an interview to a new slot. Overlaps with the candidate's or job's other interviews are a 409."""
    try:
        outcome = interviews.reschedule(
            interview_id,
            date=request.date,
            time=request.time,
            actor=profile,
            timezone_id=request.timezone_id,
            notes=request.notes,
        )
        return success(dump(InterviewResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to reschedule interview interview_id={interview_id}: {e}", exc_info=True)
        raise InternalError("Failed to reschedule interview")
