"""Tests for the administrator and collaborator KPI endpoints."""

from app.db.schema import Role, SubmissionStatus


class TestAdminDashboard:

    def test_counts(
        self, client, session, admin, company, technician, validator, template,
        make_user, make_submission, headers_for
    ):
        make_user("sleeping@acme.com", Role.TECHNICIAN, company, is_active=False)
        make_submission(template, technician, status=SubmissionStatus.DRAFT)
        make_submission(template, technician, status=SubmissionStatus.SUBMITTED)
        make_submission(template, validator, status=SubmissionStatus.VALIDATED)

        response = client.get("/api/v1/admin/dashboard", headers=headers_for(admin))
        assert response.status_code == 200
        body = response.json()
        assert body["total_collaborators"] == 3
        assert body["active_collaborators"] == 2
        assert body["total_forms"] == 1
        assert body["forms_to_create"] == 2
        assert body["total_submissions"] == 3
        assert body["submissions_by_status"] == {
            "draft": 1, "submitted": 1, "validated": 1, "refused": 0
        }

    def test_other_companies_are_not_counted(
        self, client, admin, make_company, make_user, make_template, make_submission, headers_for
    ):
        other = make_company(name="Other", email="other@corp.com")
        other_admin = make_user("admin@other.com", Role.ADMINISTRATOR, other)
        outsider = make_user("outsider@other.com", Role.TECHNICIAN, other)
        make_submission(make_template(other, other_admin, title="Theirs"), outsider)

        body = client.get("/api/v1/admin/dashboard", headers=headers_for(admin)).json()
        assert body["total_collaborators"] == 0
        assert body["total_submissions"] == 0

    def test_technician_forbidden(self, client, technician, headers_for):
        response = client.get("/api/v1/admin/dashboard", headers=headers_for(technician))
        assert response.status_code == 403


class TestCollaboratorDashboard:

    def test_technician(
        self, client, admin, company, technician, template, make_template,
        make_assignment, make_submission, headers_for
    ):
        second = make_template(company, admin, title="Second")
        make_assignment(template, technician, admin)
        make_assignment(second, technician, admin, is_completed=True)
        make_submission(second, technician, status=SubmissionStatus.REFUSED)

        response = client.get("/api/v1/collaborator/dashboard", headers=headers_for(technician))
        assert response.status_code == 200
        body = response.json()
        assert body["assigned_forms"] == 1
        assert body["completed_forms"] == 1
        assert body["submissions_by_status"]["refused"] == 1
        assert body["pending_validation"] is None
        assert body["validated_forms"] is None

    def test_validator_counts_its_queue(
        self, client, session, company, technician, validator, template,
        make_user, make_submission, pair_validator, headers_for
    ):
        stranger = make_user("stranger@acme.com", Role.TECHNICIAN, company)
        pair_validator(template, validator, technician)
        make_submission(template, technician)
        make_submission(template, stranger)

        reviewed = make_submission(template, technician, status=SubmissionStatus.VALIDATED)
        reviewed.validated_by = validator.id
        session.add(reviewed)
        session.commit()

        response = client.get("/api/v1/collaborator/dashboard", headers=headers_for(validator))
        body = response.json()
        assert body["pending_validation"] == 1
        assert body["validated_forms"] == 1

    def test_administrator_forbidden(self, client, admin, headers_for):
        response = client.get("/api/v1/collaborator/dashboard", headers=headers_for(admin))
        assert response.status_code == 403
