from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordBearer
from sqlalchemy.orm import Session

from intavia.core.config import Settings, get_settings
from intavia.core.errors import AuthError, ForbiddenError
from intavia.core.security import decode_access_token, verify_monitoring_key
from intavia.db.models.profile import Profile
from intavia.db.session import SessionLocal

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/signin", auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _profile_from_token(token: Optional[str], db: Session, settings: Settings) -> Optional[Profile]:
    if not token:
        return None
    payload = decode_access_token(token, settings=settings)
    if not payload or not payload.get("sub"):
        return None
    return db.query(Profile).filter(Profile.id == payload["sub"]).first()


def get_current_profile(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Profile:
    """Get the signed-in Profile from the bearer JWT."""
    if not token:
        raise AuthError("Not authenticated")
    profile = _profile_from_token(token, db, settings)
    if not profile:
        raise AuthError("Invalid token")
    return profile


def require_company_profile(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not profile.company_id:
        raise ForbiddenError("User is not a member of a company")
    return profile


def require_monitoring_access(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Allow the cron caller (pre-shared monitoring key) or a signed-in admin.

    Returns a short description of the caller for logging.
    """
    token = credentials.credentials if credentials else None
    if verify_monitoring_key(token, settings=settings):
        return "monitoring-key"
    profile = _profile_from_token(token, db, settings)
    if profile and profile.is_admin:
        return f"admin:{profile.id}"
    raise AuthError("Unauthorized")
