"""
Team invites: create, resend, reject, revoke and signup through an invite.

Only pending invites move. An invite past expires_at is refused on use even though
its status is never flipped automatically.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from intavia.core.config import Settings
from intavia.core.errors import (
    AlreadyExistsError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    InviteExpiredError,
    NotFoundError,
    ValidationError,
)
from intavia.core.security import hash_password
from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models.company import Company
from intavia.db.models.invite import Invite
from intavia.db.models.profile import Profile
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.outcome import Outcome

logger = logging.getLogger(__name__)

INVITE_ROLES = ("admin", "member")
RESEND_EXTEND_WITHIN = timedelta(hours=24)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class InviteService:
    def __init__(self, db: Session, settings: Settings, dispatcher: NotificationDispatcher):
        self.db = db
        self.settings = settings
        self.dispatcher = dispatcher

    def _company_name(self, company_id: str) -> str:
        company = self.db.query(Company).filter(Company.id == company_id).first()
        return company.name if company else "Your Company"

    def _notify(self, outcome: Outcome, kind: str, recipient: Optional[str], data: Dict[str, Any]) -> None:
        if not recipient:
            return
        try:
            result = self.dispatcher.send(kind, recipient, data)
        except Exception as e:
            logger.error(f"Failed to send {kind}: {e}", exc_info=True)
            outcome.warn(f"{kind} email failed: {e}")
            return
        if not result.success:
            outcome.warn(f"{kind} email failed: {result.error}")

    def _transition(self, invite: Invite, new_status: str) -> None:
        updated = (
            self.db.query(Invite)
            .filter(Invite.id == invite.id, Invite.status == "pending")
            .update({Invite.status: new_status, Invite.updated_at: utcnow()}, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise InvalidTransitionError("Invite has already been processed")

    # ----- operations -----

    def create_invite(
        self,
        email: str,
        first_name: str,
        last_name: str,
        role: str,
        actor: Profile,
    ) -> Outcome:
        email = _normalize_email(email)
        if role not in INVITE_ROLES:
            raise ValidationError(f"Role must be one of {', '.join(INVITE_ROLES)}")
        if not actor.company_id:
            raise ForbiddenError("You must belong to a company to invite members")
        company_id = actor.company_id

        existing_user = self.db.query(Profile).filter(Profile.email == email).first()
        if existing_user and existing_user.company_id != company_id:
            raise ConflictError("This user is already registered with a different company.")
        if existing_user:
            raise ConflictError("This user is already a member of your company.")

        existing_invite = (
            self.db.query(Invite).filter(Invite.email == email, Invite.company_id == company_id).first()
        )
        if existing_invite:
            raise ConflictError("An invitation already exists for this user.")

        invite = Invite(
            email=email,
            first_name=first_name,
            last_name=last_name,
            company_id=company_id,
            role=role,
            status="pending",
            invited_by=actor.id,
            expires_at=utcnow() + timedelta(days=self.settings.invite_lifetime_days),
        )
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"Invite created invite_id={invite.id} company_id={company_id} actor={actor.id}")

        outcome = Outcome(invite)
        self._notify(outcome, "invite-sent", email, self._invite_email_data(invite, actor))
        return outcome

    def resend(self, invite_id: str, actor: Profile) -> Outcome:
        """
        Send a pending invite again. An invite that has expired or expires within a
        day gets a fresh lifetime first.
        """
        invite = self.db.query(Invite).filter(Invite.id == invite_id).first()
        if not invite:
            raise NotFoundError("Invite not found")
        if not actor.company_id or invite.company_id != actor.company_id:
            raise ForbiddenError("You can only resend invitations for your company")
        if invite.status != "pending":
            raise InvalidTransitionError("Can only resend pending invitations")

        now = utcnow()
        changes = {Invite.updated_at: now}
        expires_at = as_utc(invite.expires_at)
        extend = expires_at is None or expires_at - now < RESEND_EXTEND_WITHIN
        if extend:
            changes[Invite.expires_at] = now + timedelta(days=self.settings.invite_lifetime_days)
        updated = (
            self.db.query(Invite)
            .filter(Invite.id == invite.id, Invite.status == "pending")
            .update(changes, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise InvalidTransitionError("Invite has already been processed")
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"Invite resent invite_id={invite_id} extended={extend} actor={actor.id}")

        outcome = Outcome(invite)
        self._notify(outcome, "invite-sent", invite.email, self._invite_email_data(invite, actor))
        return outcome

    def _invite_email_data(self, invite: Invite, actor: Profile) -> Dict[str, Any]:
        return {
            "invitee_name": invite.first_name,
            "inviter_name": actor.full_name or actor.email,
            "company_name": self._company_name(invite.company_id),
            "role": invite.role,
            "expires_at": as_utc(invite.expires_at).strftime("%Y-%m-%d"),
            "action_url": f"{self.settings.app_base_url.rstrip('/')}/onboard/invite/{invite.id}",
        }

    def reject(self, invite_id: str) -> Outcome:
        invite = self.db.query(Invite).filter(Invite.id == invite_id).first()
        if not invite:
            raise NotFoundError("Invite not found")
        if invite.status != "pending":
            raise InvalidTransitionError("Invite has already been processed")
        self._transition(invite, "rejected")
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"Invite rejected invite_id={invite_id}")

        outcome = Outcome(invite)
        inviter = self.db.query(Profile).filter(Profile.id == invite.invited_by).first() if invite.invited_by else None
        if inviter:
            self._notify(
                outcome,
                "invite-rejected",
                inviter.email,
                {
                    "inviter_name": inviter.first_name or inviter.email,
                    "invitee_name": f"{invite.first_name} {invite.last_name}".strip() or invite.email,
                    "role": invite.role,
                    "company_name": self._company_name(invite.company_id),
                },
            )
        return outcome

    def revoke(self, invite_id: str, actor: Profile) -> Invite:
        invite = self.db.query(Invite).filter(Invite.id == invite_id).first()
        if not invite:
            raise NotFoundError("Invite not found")
        if invite.company_id != actor.company_id:
            raise ForbiddenError("You can only revoke invitations for your company")
        if invite.status != "pending":
            raise InvalidTransitionError("Can only revoke pending invitations")
        # revoked invites share the rejected status
        self._transition(invite, "rejected")
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"Invite revoked invite_id={invite_id} actor={actor.id}")
        return invite

    def signup_with_invite(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        invite_id: str,
    ) -> Outcome:
        email = _normalize_email(email)
        invite = (
            self.db.query(Invite)
            .filter(Invite.id == invite_id, Invite.email == email, Invite.status == "pending")
            .first()
        )
        if not invite:
            raise ValidationError("Invalid or expired invite")
        expires_at = as_utc(invite.expires_at)
        if expires_at is None or expires_at < utcnow():
            raise InviteExpiredError("Invite has expired")
        if not self.db.query(Company).filter(Company.id == invite.company_id).first():
            raise ValidationError("Company not found")
        if self.db.query(Profile).filter(Profile.email == email).first():
            raise AlreadyExistsError("An account with this email already exists")

        profile = Profile(
            company_id=invite.company_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(password),
            role=invite.role,
        )
        try:
            self.db.add(profile)
            self.db.flush()
            self._transition(invite, "accepted")
            self.db.commit()
        except InvalidTransitionError:
            raise
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(profile)
        logger.info(f"Profile created from invite profile_id={profile.id} invite_id={invite_id}")

        outcome = Outcome(profile)
        inviter = self.db.query(Profile).filter(Profile.id == invite.invited_by).first() if invite.invited_by else None
        if inviter:
            self._notify(
                outcome,
                "invite-accepted",
                inviter.email,
                {
                    "inviter_name": inviter.first_name or inviter.email,
                    "invitee_name": profile.full_name or profile.email,
                    "role": invite.role,
                    "company_name": self._company_name(invite.company_id),
                    "action_url": f"{self.settings.app_base_url.rstrip('/')}/dashboard/teams",
                },
            )
        return outcome
