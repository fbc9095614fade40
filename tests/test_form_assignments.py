"""Tests for assignments, validator pairings and the collaborator workspace."""

from datetime import datetime, timedelta

from sqlmodel import select

from app.db.schema import Role, ValidatorTechnicianAssignment


class TestAssignForm:

    def test_assign_to_technician(self, client, session, admin, technician, template, headers_for):
        due = (datetime.utcnow() + timedelta(days=7)).isoformat()
        response = client.post("/api/v1/form-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "assignee_email": "tech@acme.com",
            "due_date": due
        })
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == str(technician.id)
        assert body["assigned_by"] == str(admin.id)
        assert body["is_completed"] is False

    def test_due_date_must_be_in_the_future(self, client, admin, technician, template, headers_for):
        past = (datetime.utcnow() - timedelta(days=1)).isoformat()
        response = client.post("/api/v1/form-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "assignee_email": "tech@acme.com",
            "due_date": past
        })
        assert response.status_code == 422

    def test_assignee_must_be_in_the_company(
        self, client, admin, template, make_company, make_user, headers_for
    ):
        other = make_company(name="Other", email="other@corp.com")
        make_user("outsider@other.com", Role.TECHNICIAN, other)
        response = client.post("/api/v1/form-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "assignee_email": "outsider@other.com"
        })
        assert response.status_code == 404

    def test_template_must_be_in_the_company(
        self, client, technician, template, make_company, make_user, headers_for
    ):
        other = make_company(name="Other", email="other@corp.com")
        other_admin = make_user("admin@other.com", Role.ADMINISTRATOR, other)
        response = client.post("/api/v1/form-assignments", headers=headers_for(other_admin), json={
            "form_template_id": str(template.id),
            "assignee_email": "tech@acme.com"
        })
        assert response.status_code == 404

    def test_list_assignments_made_by_admin(
        self, client, admin, technician, template, make_assignment, headers_for
    ):
        make_assignment(template, technician, admin)
        response = client.get("/api/v1/form-assignments", headers=headers_for(admin))
        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["form_template"]["title"] == "Boiler inspection"
        assert body[0]["user"]["email"] == "tech@acme.com"


class TestValidatorAssignments:

    def test_pair_validator_with_technicians(
        self, client, session, admin, company, technician, validator, template,
        make_user, headers_for
    ):
        second = make_user("tech2@acme.com", Role.TECHNICIAN, company)
        response = client.post("/api/v1/validator-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "validator_id": str(validator.id),
            "technician_ids": [str(technician.id), str(second.id)]
        })
        assert response.status_code == 201
        assert set(response.json()["technician_ids"]) == {str(technician.id), str(second.id)}

        rows = session.exec(select(ValidatorTechnicianAssignment)).all()
        assert len(rows) == 2

    def test_repairing_replaces_previous_validator(
        self, client, session, admin, company, technician, validator, template,
        make_user, pair_validator, headers_for
    ):
        pair_validator(template, validator, technician)
        other_validator = make_user("validator2@acme.com", Role.VALIDATOR, company)

        response = client.post("/api/v1/validator-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "validator_id": str(other_validator.id),
            "technician_ids": [str(technician.id)]
        })
        assert response.status_code == 201

        session.expire_all()
        rows = session.exec(select(ValidatorTechnicianAssignment)).all()
        assert [r.validator_id for r in rows] == [other_validator.id]

    def test_non_technician_ids_rejected(
        self, client, admin, validator, template, headers_for
    ):
        response = client.post("/api/v1/validator-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "validator_id": str(validator.id),
            "technician_ids": [str(validator.id)]
        })
        assert response.status_code == 400

    def test_validator_must_have_validator_role(
        self, client, admin, technician, template, headers_for
    ):
        response = client.post("/api/v1/validator-assignments", headers=headers_for(admin), json={
            "form_template_id": str(template.id),
            "validator_id": str(technician.id),
            "technician_ids": [str(technician.id)]
        })
        assert response.status_code == 404

    def test_list_filtered_by_template(
        self, client, admin, company, technician, validator, template,
        make_template, pair_validator, headers_for
    ):
        other = make_template(company, admin, title="Other")
        pair_validator(template, validator, technician)
        pair_validator(other, validator, technician)

        everything = client.get("/api/v1/validator-assignments", headers=headers_for(admin))
        assert len(everything.json()) == 2

        filtered = client.get("/api/v1/validator-assignments", headers=headers_for(admin),
                              params={"form_template_id": str(template.id)})
        assert [r["form_template_id"] for r in filtered.json()] == [str(template.id)]


class TestWorkspace:

    def test_open_assignments_only(
        self, client, admin, company, technician, template, make_template,
        make_assignment, headers_for
    ):
        done = make_template(company, admin, title="Done already")
        make_assignment(template, technician, admin)
        make_assignment(done, technician, admin, is_completed=True)

        response = client.get("/api/v1/assigned-forms", headers=headers_for(technician))
        assert response.status_code == 200
        assert [a["form_template"]["title"] for a in response.json()] == ["Boiler inspection"]

    def test_assigned_template(self, client, admin, technician, template, make_assignment, headers_for):
        make_assignment(template, technician, admin)
        response = client.get(f"/api/v1/assigned-forms/{template.id}", headers=headers_for(technician))
        assert response.status_code == 200
        assert response.json()["fields"][0]["name"] == "q1"

    def test_unassigned_template_is_not_found(self, client, technician, template, headers_for):
        response = client.get(f"/api/v1/assigned-forms/{template.id}", headers=headers_for(technician))
        assert response.status_code == 404

    def test_administrators_have_no_workspace(self, client, admin, headers_for):
        assert client.get("/api/v1/assigned-forms", headers=headers_for(admin)).status_code == 403
