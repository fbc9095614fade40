"""Tests for administrator management of technicians and validators."""

from sqlmodel import select

from app.db.schema import User, Role, FormSubmission, FormAssignment, ValidatorTechnicianAssignment


class TestCreateCollaborator:

    def test_create_technician(self, client, session, admin, headers_for):
        response = client.post("/api/v1/collaborators", headers=headers_for(admin),
                               json={"name": "Tom", "email": "tom@acme.com", "role": "technician"})
        assert response.status_code == 201
        body = response.json()
        assert body["role"] == "technician"
        assert body["company_id"] == str(admin.company_id)

        created = session.exec(select(User).where(User.email == "tom@acme.com")).one()
        assert created.is_active is True

    def test_administrator_role_refused(self, client, admin, headers_for):
        response = client.post("/api/v1/collaborators", headers=headers_for(admin),
                               json={"name": "Eve", "email": "eve@acme.com", "role": "administrator"})
        assert response.status_code == 422

    def test_duplicate_email(self, client, admin, technician, headers_for):
        response = client.post("/api/v1/collaborators", headers=headers_for(admin),
                               json={"name": "Tom", "email": "tech@acme.com", "role": "technician"})
        assert response.status_code == 409

    def test_max_users_counts_the_administrator(
        self, client, make_company, make_user, headers_for
    ):
        small = make_company(name="Tiny", email="tiny@corp.com", max_users=2)
        tiny_admin = make_user("admin@tiny.com", Role.ADMINISTRATOR, small)
        make_user("first@tiny.com", Role.TECHNICIAN, small)

        response = client.post("/api/v1/collaborators", headers=headers_for(tiny_admin),
                               json={"name": "Extra", "email": "extra@tiny.com", "role": "validator"})
        assert response.status_code == 403

    def test_technician_cannot_create(self, client, technician, headers_for):
        response = client.post("/api/v1/collaborators", headers=headers_for(technician),
                               json={"name": "Tom", "email": "tom@acme.com", "role": "technician"})
        assert response.status_code == 403


class TestScopedLookups:

    def test_list_excludes_administrators(self, client, admin, technician, validator, headers_for):
        response = client.get("/api/v1/collaborators", headers=headers_for(admin))
        assert response.status_code == 200
        emails = {u["email"] for u in response.json()}
        assert emails == {"tech@acme.com", "validator@acme.com"}

    def test_other_company_collaborator_is_not_found(
        self, client, admin, make_company, make_user, headers_for
    ):
        other = make_company(name="Other", email="other@corp.com")
        outsider = make_user("outsider@other.com", Role.TECHNICIAN, other)
        response = client.get(f"/api/v1/collaborators/{outsider.id}", headers=headers_for(admin))
        assert response.status_code == 404

    def test_administrator_is_not_a_collaborator(self, client, admin, headers_for):
        response = client.get(f"/api/v1/collaborators/{admin.id}", headers=headers_for(admin))
        assert response.status_code == 404


class TestUpdateCollaborator:

    def test_update_role(self, client, admin, technician, headers_for):
        response = client.put(f"/api/v1/collaborators/{technician.id}", headers=headers_for(admin),
                              json={"role": "validator", "name": "Tech Promoted"})
        assert response.status_code == 200
        assert response.json()["role"] == "validator"
        assert response.json()["name"] == "Tech Promoted"

    def test_email_clash(self, client, admin, technician, validator, headers_for):
        response = client.put(f"/api/v1/collaborators/{technician.id}", headers=headers_for(admin),
                              json={"email": "validator@acme.com"})
        assert response.status_code == 409

    def test_deactivate_and_activate(self, client, session, admin, technician, headers_for):
        response = client.patch(f"/api/v1/collaborators/{technician.id}/deactivate",
                                headers=headers_for(admin))
        assert response.status_code == 200
        session.refresh(technician)
        assert technician.is_active is False

        response = client.put(f"/api/v1/collaborators/{technician.id}/activate",
                              headers=headers_for(admin))
        assert response.status_code == 200
        session.refresh(technician)
        assert technician.is_active is True


class TestDeleteCollaborator:

    def test_cascades_own_data(
        self, client, session, admin, technician, validator, template,
        make_assignment, make_submission, pair_validator, headers_for
    ):
        make_assignment(template, technician, admin)
        make_submission(template, technician)
        pair_validator(template, validator, technician)
        technician_id = technician.id

        response = client.delete(f"/api/v1/collaborators/{technician_id}", headers=headers_for(admin))
        assert response.status_code == 200

        session.expire_all()
        assert session.exec(select(User).where(User.id == technician_id)).first() is None
        assert session.exec(select(FormSubmission)).all() == []
        assert session.exec(select(FormAssignment)).all() == []
        assert session.exec(select(ValidatorTechnicianAssignment)).all() == []

    def test_reviews_by_deleted_validator_are_kept(
        self, client, session, admin, technician, validator, template,
        make_submission, headers_for
    ):
        submission = make_submission(template, technician)
        submission.validated_by = validator.id
        session.add(submission)
        session.commit()
        submission_id = submission.id

        response = client.delete(f"/api/v1/collaborators/{validator.id}", headers=headers_for(admin))
        assert response.status_code == 200

        session.expire_all()
        kept = session.exec(select(FormSubmission).where(
            FormSubmission.id == submission_id)).one()
        assert kept.validated_by is None
