"""Tests for the role and review-authority checks."""

import uuid

import pytest
from fastapi import HTTPException

from app.core.permissions import (
    ensure_role, require_company, ensure_company_scope,
    can_review_submission, can_view_submission
)
from app.db.schema import Role
from app.models.auth import ActorContext


def _actor(user) -> ActorContext:
    return ActorContext(
        user_id=user.id, name=user.name, email=user.email,
        role=user.role, company_id=user.company_id
    )


class TestRoleChecks:

    def test_ensure_role_accepts_listed_role(self, admin):
        ensure_role(_actor(admin), Role.ADMINISTRATOR, Role.ROOT)

    def test_ensure_role_rejects_other_roles(self, technician):
        with pytest.raises(HTTPException) as exc:
            ensure_role(_actor(technician), Role.VALIDATOR, detail="Validators only")
        assert exc.value.status_code == 403
        assert exc.value.detail == "Validators only"

    def test_require_company_for_root(self, root_user):
        with pytest.raises(HTTPException) as exc:
            require_company(_actor(root_user))
        assert exc.value.status_code == 403

    def test_company_scope(self, admin, root_user):
        ensure_company_scope(_actor(admin), admin.company_id)
        ensure_company_scope(_actor(root_user), uuid.uuid4())
        with pytest.raises(HTTPException):
            ensure_company_scope(_actor(admin), uuid.uuid4())


class TestReviewAuthority:

    def test_paired_validator_can_review(
        self, session, template, technician, validator, make_submission, pair_validator
    ):
        pair_validator(template, validator, technician)
        submission = make_submission(template, technician)
        assert can_review_submission(session, _actor(validator), submission)

    def test_unpaired_validator_cannot_review(
        self, session, template, technician, validator, make_submission
    ):
        submission = make_submission(template, technician)
        assert not can_review_submission(session, _actor(validator), submission)

    def test_pairing_is_per_template(
        self, session, company, admin, template, technician, validator,
        make_template, make_submission, pair_validator
    ):
        other = make_template(company, admin, title="Other")
        pair_validator(other, validator, technician)
        submission = make_submission(template, technician)
        assert not can_review_submission(session, _actor(validator), submission)

    def test_validator_can_review_own_submission(
        self, session, template, validator, make_submission
    ):
        submission = make_submission(template, validator)
        assert can_review_submission(session, _actor(validator), submission)

    def test_technician_never_reviews(self, session, template, technician, make_submission):
        submission = make_submission(template, technician)
        assert not can_review_submission(session, _actor(technician), submission)


class TestViewAuthority:

    def test_owner_and_company_admin_can_view(
        self, session, template, admin, technician, make_submission
    ):
        submission = make_submission(template, technician)
        assert can_view_submission(session, _actor(technician), submission)
        assert can_view_submission(session, _actor(admin), submission)

    def test_admin_of_another_company_cannot_view(
        self, session, template, technician, make_company, make_user, make_submission
    ):
        other_company = make_company(name="Other", email="other@corp.com")
        other_admin = make_user("admin@other.com", Role.ADMINISTRATOR, other_company)
        submission = make_submission(template, technician)
        assert not can_view_submission(session, _actor(other_admin), submission)

    def test_other_technician_cannot_view(
        self, session, company, template, technician, make_user, make_submission
    ):
        colleague = make_user("colleague@acme.com", Role.TECHNICIAN, company)
        submission = make_submission(template, technician)
        assert not can_view_submission(session, _actor(colleague), submission)
