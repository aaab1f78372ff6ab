"""
Candidate status transitions, bulk actions and evaluation gating.

Every status write is conditional on the status that was read, so two concurrent
requests cannot both move the same candidate.
"""
import logging
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy.orm import Session

from intavia.core.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidTransitionError,
    NotCompletedError,
    NotFoundError,
    ValidationError,
)
from intavia.core.timeutils import utcnow
from intavia.db.models.candidate import CANDIDATE_STATUSES, Candidate
from intavia.db.models.evaluation import Evaluation
from intavia.db.models.job import Job
from intavia.db.models.profile import Profile

logger = logging.getLogger(__name__)

CANDIDATE_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "under_review": frozenset({"shortlisted", "rejected", "archived"}),
    "active": frozenset({"under_review", "shortlisted", "rejected", "archived"}),
    "shortlisted": frozenset({"interview_scheduled", "rejected", "archived"}),
    "interview_scheduled": frozenset({"reference_check", "offer_extended", "withdrawn", "rejected", "archived"}),
    "reference_check": frozenset({"offer_extended", "withdrawn", "rejected", "archived"}),
    "offer_extended": frozenset({"offer_accepted", "withdrawn", "rejected", "archived"}),
    "offer_accepted": frozenset({"hired", "rejected", "archived"}),
    "rejected": frozenset({"archived"}),
    "archived": frozenset({"active", "rejected"}),
    "hired": frozenset(),
    "withdrawn": frozenset(),
}

BULK_ACTIONS = {
    "shortlist": "shortlisted",
    "reject": "rejected",
    "archive": "archived",
    "unarchive": "active",
}


def allowed_next(status: str) -> FrozenSet[str]:
    return CANDIDATE_TRANSITIONS.get(status, frozenset())


def can_transition(current: str, new: str) -> bool:
    return new in allowed_next(current)


def sources_for(target: str) -> List[str]:
    """Statuses from which `target` may be entered."""
    return [status for status, nexts in CANDIDATE_TRANSITIONS.items() if target in nexts]


class CandidateStateMachine:
    def __init__(self, db: Session, evaluator=None):
        self.db = db
        self.evaluator = evaluator

    # ----- access -----

    def _load_with_job(self, candidate_id: str) -> Tuple[Candidate, Job]:
        row = (
            self.db.query(Candidate, Job)
            .join(Job, Candidate.job_id == Job.id)
            .filter(Candidate.id == candidate_id)
            .first()
        )
        if not row:
            raise NotFoundError("Candidate not found")
        return row

    @staticmethod
    def can_manage(actor: Profile, job: Job) -> bool:
        """The job owner, or an admin of the job's company."""
        if job.profile_id == actor.id:
            return True
        return actor.is_admin and actor.company_id is not None and actor.company_id == job.company_id

    def get_for_actor(self, candidate_id: str, actor: Profile) -> Tuple[Candidate, Job]:
        candidate, job = self._load_with_job(candidate_id)
        if not self.can_manage(actor, job):
            raise ForbiddenError("You do not have access to this candidate")
        return candidate, job

    # ----- transitions -----

    def transition(self, candidate_id: str, new_status: str, actor: Profile) -> Candidate:
        if new_status not in CANDIDATE_STATUSES:
            raise ValidationError(f"Unknown candidate status: {new_status}")

        candidate, _ = self.get_for_actor(candidate_id, actor)
        current = candidate.status
        if not can_transition(current, new_status):
            raise InvalidTransitionError(
                f"Cannot move candidate from {current} to {new_status}",
                details={"current_status": current, "allowed": sorted(allowed_next(current))},
            )

        updated = (
            self.db.query(Candidate)
            .filter(Candidate.id == candidate_id, Candidate.status == current)
            .update({Candidate.status: new_status, Candidate.updated_at: utcnow()}, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise InvalidTransitionError("Candidate status changed concurrently, reload and retry")
        self.db.commit()
        self.db.refresh(candidate)

        logger.info(f"Candidate transitioned candidate_id={candidate_id} {current}->{new_status} actor={actor.id}")
        return candidate

    def bulk_transition(self, candidate_ids: List[str], action: str, actor: Profile) -> Dict[str, object]:
        """
        Apply one action to a batch. Authorization and transition legality are checked
        for every candidate before a single conditional batch write; any failure leaves
        every candidate untouched.
        """
        if not candidate_ids:
            raise ValidationError("Candidate IDs are required")
        if action not in BULK_ACTIONS:
            raise ValidationError("Invalid action", details={"allowed": sorted(BULK_ACTIONS)})

        target = BULK_ACTIONS[action]
        ids = list(dict.fromkeys(candidate_ids))

        rows = (
            self.db.query(Candidate, Job)
            .join(Job, Candidate.job_id == Job.id)
            .filter(Candidate.id.in_(ids))
            .all()
        )
        if len(rows) != len(ids) or not all(self.can_manage(actor, job) for _, job in rows):
            raise ForbiddenError("Some candidates not found or access denied")

        blocked = [c.id for c, _ in rows if not can_transition(c.status, target)]
        if blocked:
            raise InvalidTransitionError(
                f"{len(blocked)} candidate(s) cannot be moved to {target}",
                details={"candidate_ids": blocked},
            )

        updated = (
            self.db.query(Candidate)
            .filter(Candidate.id.in_(ids), Candidate.status.in_(sources_for(target)))
            .update({Candidate.status: target, Candidate.updated_at: utcnow()}, synchronize_session=False)
        )
        if updated != len(ids):
            self.db.rollback()
            logger.warning(f"Bulk {action} lost a race expected={len(ids)} updated={updated}")
            raise InvalidTransitionError("Some candidates changed concurrently, no candidate was updated")
        self.db.commit()

        logger.info(f"Bulk {action} applied count={len(ids)} actor={actor.id}")
        return {"action": action, "status": target, "updated_count": len(ids), "candidate_ids": ids}

    # ----- evaluation -----

    def request_evaluation(self, candidate_id: str, actor: Profile, force: bool = False) -> Evaluation:
        """
        Gate and dispatch an evaluation.

        Without force an existing evaluation is a conflict and stays untouched. With
        force the previous row is deleted first; there is no history of past evaluations.
        """
        candidate, _ = self.get_for_actor(candidate_id, actor)
        if not candidate.is_completed:
            raise NotCompletedError("Candidate has not completed the interview")

        existing = self.db.query(Evaluation).filter(Evaluation.candidate_id == candidate_id).first()
        if existing and not force:
            raise AlreadyExistsError("Evaluation already exists for this candidate, use force to re-evaluate")
        if existing:
            self.db.query(Evaluation).filter(Evaluation.candidate_id == candidate_id).delete(
                synchronize_session=False
            )
            self.db.commit()
            logger.info(f"Deleted previous evaluation candidate_id={candidate_id} for forced re-evaluation")

        if self.evaluator is None:
            raise RuntimeError("No evaluation worker configured")
        return self.evaluator.evaluate(candidate_id)

    def get_evaluation(self, candidate_id: str, actor: Profile) -> Optional[Evaluation]:
        self.get_for_actor(candidate_id, actor)
        return self.db.query(Evaluation).filter(Evaluation.candidate_id == candidate_id).first()
