"""
Authentication endpoints.

Local profiles with bcrypt hashes and HS256 bearer tokens stand in for the external
identity provider.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from intavia.api.responses import dump, success
from intavia.core.auth_dependency import get_current_profile, get_db
from intavia.core.config import Settings, get_settings
from intavia.core.errors import AppError, AuthError, InternalError
from intavia.core.security import create_access_token, verify_password
from intavia.core.service_dependency import get_invite_service
from intavia.db.models.profile import Profile
from intavia.schemas.auth import ProfileResponse, SigninRequest, SignupInviteRequest, TokenResponse
from intavia.services.invite_service import InviteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signin", response_model=TokenResponse)
def signin(
    credentials: SigninRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    profile = db.query(Profile).filter(Profile.email == credentials.email.lower()).first()
    if not profile or not profile.password_hash or not verify_password(credentials.password, profile.password_hash):
        logger.warning(f"Failed sign-in for email={credentials.email}")
        raise AuthError("Invalid credentials")

    token = create_access_token({"sub": profile.id}, settings=settings)
    logger.info(f"Signed in profile_id={profile.id}")
    return TokenResponse(access_token=token)


@router.post("/signup-invite", status_code=status.HTTP_201_CREATED)
def signup_invite(
    request: SignupInviteRequest,
    invites: InviteService = Depends(get_invite_service),
    settings: Settings = Depends(get_settings),
):
    """
    Create an account from a pending invitation.

    The invite must belong to the given email, still be pending and not be past
    its expiry.
    """
    try:
        outcome = invites.signup_with_invite(
            email=request.email,
            password=request.password,
            first_name=request.first_name,
            last_name=request.last_name,
            invite_id=request.invite_id,
        )
        profile = outcome.value
        token = create_access_token({"sub": profile.id}, settings=settings)
        return success(
            {"profile": dump(ProfileResponse, profile), "access_token": token, "token_type": "bearer"},
            outcome.warnings,
        )
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Invite signup failed: {e}", exc_info=True)
        raise InternalError("Failed to complete signup")


@router.get("/me", response_model=ProfileResponse)
def me(profile: Profile = Depends(get_current_profile)):
    return ProfileResponse.model_validate(profile)
