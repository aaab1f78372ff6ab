"""
Team invitation endpoints.
"""
import logging

from fastapi import APIRouter, Depends, status

from intavia.api.responses import dump, success
from intavia.core.auth_dependency import require_company_profile
from intavia.core.errors import AppError, InternalError
from intavia.core.service_dependency import get_invite_service
from intavia.db.models.profile import Profile
from intavia.schemas.invite import InviteCreate, InviteResponse
from intavia.services.invite_service import InviteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams", tags=["Teams"])


@router.post("/invite", status_code=status.HTTP_201_CREATED)
def create_invite(
    request: InviteCreate,
    profile: Profile = Depends(require_company_profile),
    invites: InviteService = Depends(get_invite_service),
):
    """Invite someone to the caller's company. The email is sent best-effort."""
    try:
        outcome = invites.create_invite(
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            role=request.role,
            actor=profile,
        )
        return success(dump(InviteResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to create invite: {e}", exc_info=True)
        raise InternalError("Failed to create invite")


@router.post("/invite/{invite_id}/resend")
def resend_invite(
    invite_id: str,
    profile: Profile = Depends(require_company_profile),
    invites: InviteService = Depends(get_invite_service),
):
    """Email a pending invite again, renewing it when it has expired or is about to."""
    try:
        outcome = invites.resend(invite_id, profile)
        return success(dump(InviteResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to resend invite invite_id={invite_id}: {e}", exc_info=True)
        raise InternalError("Failed to resend invite")


@router.post("/invite/{invite_id}/reject")
def reject_invite(
    invite_id: str,
    invites: InviteService = Depends(get_invite_service),
):
    """Decline an invitation. Called from the invite link, so no session is required."""
    try:
        outcome = invites.reject(invite_id)
        return success(dump(InviteResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to reject invite invite_id={invite_id}: {e}", exc_info=True)
        raise InternalError("Failed to reject invite")


@router.post("/invite/{invite_id}/revoke")
def revoke_invite(
    invite_id: str,
    profile: Profile = Depends(require_company_profile),
    invites: InviteService = Depends(get_invite_service),
):
    invite = invites.revoke(invite_id, profile)
    return success(dump(InviteResponse, invite))
