"""
Tests for team invitations, resends and invite-based signup.
"""
from datetime import timedelta

import pytest

from intavia.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    InviteExpiredError,
    ValidationError,
)
from intavia.core.security import verify_password
from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models import Invite, Profile
from intavia.services.invite_service import InviteService


@pytest.fixture
def service(db, settings, dispatcher):
    return InviteService(db, settings, dispatcher)


def reload(db, model, obj_id):
    db.expire_all()
    return db.get(model, obj_id)


# ----- create -----

def test_create_invite_sends_email(service, owner, email_client):
    outcome = service.create_invite("New.Member@Example.com ", "Sam", "Lee", "member", owner)

    invite = outcome.value
    assert invite.email == "new.member@example.com"
    assert invite.status == "pending"
    assert invite.company_id == owner.company_id
    assert outcome.warnings == []
    mail = email_client.sent[0]
    assert mail["to"] == "new.member@example.com"
    assert f"/onboard/invite/{invite.id}" in mail["html"]


def test_create_invite_email_failure_is_a_warning(db, service, owner, email_client):
    email_client.fail_with = "bounced"

    outcome = service.create_invite("new.member@example.com", "Sam", "Lee", "member", owner)

    assert outcome.warnings == ["invite-sent email failed: bounced"]
    assert db.query(Invite).count() == 1


def test_create_invite_for_existing_member_conflicts(service, factory, company, owner):
    factory.profile(company, email="teammate@example.com")

    with pytest.raises(ConflictError, match="already a member"):
        service.create_invite("teammate@example.com", "T", "M", "member", owner)


def test_create_invite_for_user_of_other_company_conflicts(service, factory, owner):
    factory.profile(factory.company(name="Globex"), email="taken@globex.com")

    with pytest.raises(ConflictError, match="different company"):
        service.create_invite("taken@globex.com", "T", "M", "member", owner)


def test_duplicate_invite_conflicts(service, factory, company, owner):
    factory.invite(company, owner)

    with pytest.raises(ConflictError, match="already exists"):
        service.create_invite("new.member@example.com", "Sam", "Lee", "member", owner)


def test_create_invite_without_company_is_forbidden(service, factory):
    loner = factory.profile(None, email="loner@example.com")

    with pytest.raises(ForbiddenError):
        service.create_invite("friend@example.com", "F", "R", "member", loner)


# ----- signup -----

def test_signup_with_pending_invite(db, service, factory, company, owner, email_client):
    invite = factory.invite(company, owner, role="admin")

    outcome = service.signup_with_invite("new.member@example.com", "SecurePass123", "Sam", "Lee", invite.id)

    profile = outcome.value
    assert profile.company_id == company.id
    assert profile.role == "admin"
    assert verify_password("SecurePass123", profile.password_hash)
    assert reload(db, Invite, invite.id).status == "accepted"
    assert email_client.sent[0]["to"] == owner.email


def test_signup_with_expired_invite(db, service, factory, company, owner):
    invite = factory.invite(company, owner, expires_in=timedelta(days=-1))

    with pytest.raises(InviteExpiredError):
        service.signup_with_invite("new.member@example.com", "SecurePass123", "Sam", "Lee", invite.id)

    assert db.query(Profile).filter(Profile.email == "new.member@example.com").first() is None
    assert reload(db, Invite, invite.id).status == "pending"


def test_signup_with_accepted_invite_is_rejected(service, factory, company, owner):
    invite = factory.invite(company, owner, status="accepted")

    with pytest.raises(ValidationError) as exc_info:
        service.signup_with_invite("new.member@example.com", "SecurePass123", "Sam", "Lee", invite.id)
    assert exc_info.value.code == "validation_error"


def test_signup_email_must_match_invite(service, factory, company, owner):
    invite = factory.invite(company, owner)

    with pytest.raises(ValidationError) as exc_info:
        service.signup_with_invite("someone.else@example.com", "SecurePass123", "Sam", "Lee", invite.id)
    assert exc_info.value.code == "validation_error"


# ----- resend -----

def test_resend_renews_expired_invite_and_emails_again(db, service, factory, company, owner, email_client):
    invite = factory.invite(company, owner, expires_in=timedelta(days=-2))

    outcome = service.resend(invite.id, owner)

    assert outcome.warnings == []
    stored = reload(db, Invite, invite.id)
    assert stored.status == "pending"
    assert as_utc(stored.expires_at) > utcnow() + timedelta(days=29)
    assert email_client.sent[0]["to"] == "new.member@example.com"
    assert f"/onboard/invite/{invite.id}" in email_client.sent[0]["text"]


def test_resend_renews_invite_expiring_within_a_day(db, service, factory, company, owner):
    invite = factory.invite(company, owner, expires_in=timedelta(hours=3))

    service.resend(invite.id, owner)

    assert as_utc(reload(db, Invite, invite.id).expires_at) > utcnow() + timedelta(days=29)


def test_resend_keeps_expiry_of_fresh_invite(db, service, factory, company, owner):
    invite = factory.invite(company, owner, expires_in=timedelta(days=10))
    before = as_utc(reload(db, Invite, invite.id).expires_at)

    service.resend(invite.id, owner)

    assert as_utc(reload(db, Invite, invite.id).expires_at) == before


def test_resent_invite_can_be_used_for_signup(service, factory, company, owner):
    invite = factory.invite(company, owner, expires_in=timedelta(days=-2))
    service.resend(invite.id, owner)

    outcome = service.signup_with_invite("new.member@example.com", "SecurePass123", "Sam", "Lee", invite.id)

    assert outcome.value.company_id == company.id


def test_resend_only_from_pending(service, factory, company, owner, email_client):
    invite = factory.invite(company, owner, status="accepted")

    with pytest.raises(InvalidTransitionError):
        service.resend(invite.id, owner)
    assert email_client.sent == []


def test_resend_other_company_invite_is_forbidden(service, factory, company, owner):
    invite = factory.invite(factory.company(name="Globex"))

    with pytest.raises(ForbiddenError):
        service.resend(invite.id, owner)


def test_resend_email_failure_is_a_warning(db, service, factory, company, owner, email_client):
    invite = factory.invite(company, owner, expires_in=timedelta(days=-2))
    email_client.fail_with = "mailbox full"

    outcome = service.resend(invite.id, owner)

    assert any("mailbox full" in w for w in outcome.warnings)
    assert as_utc(reload(db, Invite, invite.id).expires_at) > utcnow()


# ----- reject / revoke -----

def test_reject_pending_invite_notifies_inviter(db, service, factory, company, owner, email_client):
    invite = factory.invite(company, owner)

    outcome = service.reject(invite.id)

    assert outcome.value.status == "rejected"
    assert email_client.sent[0]["to"] == owner.email
    assert email_client.sent[0]["subject"] == "Sam Lee declined your invitation"


def test_reject_only_from_pending(service, factory, company, owner):
    invite = factory.invite(company, owner, status="accepted")

    with pytest.raises(InvalidTransitionError):
        service.reject(invite.id)


def test_revoke_pending_invite(service, factory, company, owner):
    invite = factory.invite(company, owner)

    assert service.revoke(invite.id, owner).status == "rejected"

    with pytest.raises(InvalidTransitionError):
        service.revoke(invite.id, owner)


def test_revoke_other_company_invite_is_forbidden(service, factory, company, owner):
    other = factory.company(name="Globex")
    invite = factory.invite(other)

    with pytest.raises(ForbiddenError):
        service.revoke(invite.id, owner)


# ----- HTTP -----

def test_invite_endpoint(client, auth_headers, owner):
    response = client.post(
        "/teams/invite",
        json={"email": "new.member@example.com", "firstName": "Sam", "lastName": "Lee", "role": "member"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    assert response.json()["data"]["status"] == "pending"


def test_invite_endpoint_rejects_unknown_role(client, auth_headers, owner):
    response = client.post(
        "/teams/invite",
        json={"email": "new.member@example.com", "role": "superuser"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400


def test_signup_invite_endpoint_expired(client, factory, company, owner):
    invite = factory.invite(company, owner, expires_in=timedelta(days=-3))

    response = client.post(
        "/auth/signup-invite",
        json={
            "email": "new.member@example.com",
            "password": "SecurePass123",
            "firstName": "Sam",
            "lastName": "Lee",
            "inviteId": invite.id,
        },
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invite_expired"


def test_signup_invite_endpoint_returns_token(client, factory, company, owner):
    invite = factory.invite(company, owner)

    response = client.post(
        "/auth/signup-invite",
        json={
            "email": "new.member@example.com",
            "password": "SecurePass123",
            "firstName": "Sam",
            "lastName": "Lee",
            "inviteId": invite.id,
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["profile"]["email"] == "new.member@example.com"
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["company_id"] == company.id


def test_reject_endpoint_needs_no_session(client, factory, company, owner):
    invite = factory.invite(company, owner)

    response = client.post(f"/teams/invite/{invite.id}/reject")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "rejected"


def test_resend_endpoint(client, auth_headers, factory, company, owner, email_client):
    invite = factory.invite(company, owner, expires_in=timedelta(days=-1))

    response = client.post(f"/teams/invite/{invite.id}/resend", headers=auth_headers(owner))

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"
    assert len(email_client.sent) == 1


def test_resend_endpoint_requires_session(client, factory, company, owner):
    invite = factory.invite(company, owner)

    assert client.post(f"/teams/invite/{invite.id}/resend").status_code == 401
