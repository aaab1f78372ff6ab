"""
Unit tests for candidate status transitions, bulk actions and evaluation gating.
"""
import pytest

from intavia.core.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidTransitionError,
    NotCompletedError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from intavia.db.models import Candidate, Evaluation
from intavia.db.models.candidate import CANDIDATE_STATUSES
from intavia.services.candidate_service import (
    CANDIDATE_TRANSITIONS,
    CandidateStateMachine,
    allowed_next,
    can_transition,
    sources_for,
)
from intavia.services.evaluation_service import CandidateEvaluator


@pytest.fixture
def machine(db, llm):
    return CandidateStateMachine(db, evaluator=CandidateEvaluator(db, llm))


def test_transition_table_terminal_states():
    assert allowed_next("hired") == frozenset()
    assert allowed_next("withdrawn") == frozenset()
    assert can_transition("archived", "active")
    assert not can_transition("rejected", "shortlisted")
    assert "archived" in sources_for("active")
    assert set(sources_for("archived")) == {s for s, nxt in CANDIDATE_TRANSITIONS.items() if "archived" in nxt}


OPEN_EXITS = [
    (status, target)
    for status in CANDIDATE_STATUSES
    if status not in ("hired", "withdrawn")
    for target in ("rejected", "archived")
    if status != target
]


@pytest.mark.parametrize("status, target", OPEN_EXITS)
def test_every_open_status_can_be_rejected_or_archived(machine, factory, job, owner, status, target):
    candidate = factory.candidate(job, status=status)

    assert machine.transition(candidate.id, target, owner).status == target


def test_bulk_reject_from_archived(machine, factory, job, owner, db):
    archived = factory.candidate(job, status="archived")

    result = machine.bulk_transition([archived.id], "reject", owner)

    assert result["updated_count"] == 1
    db.expire_all()
    assert db.get(Candidate, archived.id).status == "rejected"


def test_legal_transition_updates_status(machine, factory, job, owner, db):
    candidate = factory.candidate(job, status="under_review")

    updated = machine.transition(candidate.id, "shortlisted", owner)

    assert updated.status == "shortlisted"
    db.expire_all()
    assert db.get(Candidate, candidate.id).status == "shortlisted"


def test_illegal_transition_is_rejected_with_allowed_list(machine, factory, job, owner, db):
    candidate = factory.candidate(job, status="rejected")

    with pytest.raises(InvalidTransitionError) as exc:
        machine.transition(candidate.id, "shortlisted", owner)

    assert exc.value.status_code == 409
    assert exc.value.details["allowed"] == ["archived"]
    db.expire_all()
    assert db.get(Candidate, candidate.id).status == "rejected"


def test_unknown_status_is_validation_error(machine, factory, job, owner):
    candidate = factory.candidate(job)
    with pytest.raises(ValidationError):
        machine.transition(candidate.id, "promoted", owner)


def test_missing_candidate_is_not_found(machine, owner):
    with pytest.raises(NotFoundError):
        machine.transition("missing", "shortlisted", owner)


def test_member_of_other_company_is_forbidden(machine, factory, job):
    other_company = factory.company("Other")
    outsider = factory.profile(other_company, email="outsider@example.com", role="admin")
    candidate = factory.candidate(job)

    with pytest.raises(ForbiddenError):
        machine.transition(candidate.id, "shortlisted", outsider)


def test_admin_of_same_company_may_manage_colleagues_jobs(machine, factory, company, job):
    admin = factory.profile(company, email="admin2@example.com", role="admin")
    member = factory.profile(company, email="member@example.com", role="member")
    candidate = factory.candidate(job)

    assert machine.transition(candidate.id, "shortlisted", admin).status == "shortlisted"
    with pytest.raises(ForbiddenError):
        machine.transition(candidate.id, "rejected", member)


# ----- bulk -----

def test_bulk_shortlist_updates_every_candidate(machine, factory, job, owner, db):
    a = factory.candidate(job, email="a@example.com")
    b = factory.candidate(job, status="active", email="b@example.com")

    result = machine.bulk_transition([a.id, b.id, a.id], "shortlist", owner)

    assert result["updated_count"] == 2
    assert result["status"] == "shortlisted"
    db.expire_all()
    assert {c.status for c in db.query(Candidate).all()} == {"shortlisted"}


def test_bulk_is_all_or_nothing_on_ownership(machine, factory, job, owner, db):
    other_company = factory.company("Other")
    other_owner = factory.profile(other_company, email="other@example.com")
    other_job = factory.job(other_company, other_owner)
    mine = factory.candidate(job, email="mine@example.com")
    theirs = factory.candidate(other_job, email="theirs@example.com")

    with pytest.raises(ForbiddenError):
        machine.bulk_transition([mine.id, theirs.id], "reject", owner)

    db.expire_all()
    assert db.get(Candidate, mine.id).status == "under_review"
    assert db.get(Candidate, theirs.id).status == "under_review"


def test_bulk_rejects_batch_when_any_transition_is_illegal(machine, factory, job, owner, db):
    ok = factory.candidate(job, email="ok@example.com")
    hired = factory.candidate(job, status="hired", email="hired@example.com")

    with pytest.raises(InvalidTransitionError) as exc:
        machine.bulk_transition([ok.id, hired.id], "reject", owner)

    assert exc.value.details["candidate_ids"] == [hired.id]
    db.expire_all()
    assert db.get(Candidate, ok.id).status == "under_review"


def test_bulk_unarchive_moves_to_active(machine, factory, job, owner):
    archived = factory.candidate(job, status="archived")
    result = machine.bulk_transition([archived.id], "unarchive", owner)
    assert result["status"] == "active"


@pytest.mark.parametrize("ids, action", [([], "shortlist"), (["x"], "promote")])
def test_bulk_validation(machine, owner, ids, action):
    with pytest.raises(ValidationError):
        machine.bulk_transition(ids, action, owner)


# ----- evaluation -----

def test_evaluation_requires_completed_interview(machine, factory, job, owner, llm):
    candidate = factory.candidate(job, is_completed=False)

    with pytest.raises(NotCompletedError):
        machine.request_evaluation(candidate.id, owner)
    assert llm.calls == 0


def test_evaluation_is_stored(machine, factory, job, owner, db):
    candidate = factory.candidate(job)

    evaluation = machine.request_evaluation(candidate.id, owner)

    assert evaluation.overall_score == 82
    assert evaluation.recommendation == "yes"
    assert evaluation.radar_metrics["communication"] == 90
    assert db.query(Evaluation).count() == 1


def test_existing_evaluation_conflicts_without_force(machine, factory, job, owner, db, llm):
    candidate = factory.candidate(job)
    first = machine.request_evaluation(candidate.id, owner)

    with pytest.raises(AlreadyExistsError):
        machine.request_evaluation(candidate.id, owner)

    assert llm.calls == 1
    assert db.query(Evaluation).one().id == first.id


def test_forced_evaluation_replaces_the_previous_row(machine, factory, job, owner, db):
    candidate = factory.candidate(job)
    first_id = machine.request_evaluation(candidate.id, owner).id

    second = machine.request_evaluation(candidate.id, owner, force=True)

    rows = db.query(Evaluation).filter(Evaluation.candidate_id == candidate.id).all()
    assert len(rows) == 1
    assert rows[0].id == second.id != first_id


def test_llm_failure_is_upstream_error(machine, factory, job, owner, db, llm):
    candidate = factory.candidate(job)
    llm.error = RuntimeError("model overloaded")

    with pytest.raises(UpstreamError):
        machine.request_evaluation(candidate.id, owner)
    assert db.query(Evaluation).count() == 0


def test_unparseable_llm_output_is_upstream_error(machine, factory, job, owner, llm):
    candidate = factory.candidate(job)
    llm.content = "I cannot evaluate this candidate."

    with pytest.raises(UpstreamError):
        machine.request_evaluation(candidate.id, owner)
