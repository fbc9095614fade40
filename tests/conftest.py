import os
import tempfile
from datetime import date, timedelta

# Configure the application before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-suite"
os.environ["STATIC_DIR"] = tempfile.mkdtemp(prefix="dynamic-forms-static-")
os.environ["LOG_FILE"] = os.path.join(
    tempfile.gettempdir(), "dynamic-forms-tests.log")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.db.core import engine
from app.db.schema import (
    Company, Abonnement, User, Role, FormTemplate, FormAssignment,
    FormSubmission, SubmissionStatus, ValidatorTechnicianAssignment
)
from app.main import app
from app.services.password import get_password_hash
from app.services.user import UserService


PASSWORD = "correct-horse-battery"

TEMPLATE_FIELDS = [
    {
        "name": "q1",
        "type": "radio",
        "label": "Is the boiler compliant?",
        "required": True,
        "options": [{"value": "a", "label": "Yes"}, {"value": "b", "label": "No"}]
    },
    {
        "name": "notes",
        "type": "textarea",
        "label": "Notes",
        "required": False
    },
]


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
def database():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def headers_for(session):
    """Bearer headers for a user."""
    def _headers(user: User) -> dict:
        token = UserService(session).generate_access_token(user)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ==============================================================================
# FACTORIES
# ==============================================================================


@pytest.fixture
def make_company(session):
    def _make(
        name="Acme Maintenance",
        email="contact@acme.com",
        max_users=5,
        forms_to_create=2,
        available_forms=0,
        is_active=True
    ) -> Company:
        company = Company(name=name, email=email,
                          max_users=max_users, is_active=is_active)
        session.add(company)
        session.flush()
        session.add(Abonnement(
            company_id=company.id,
            available_forms=available_forms,
            forms_to_create=forms_to_create,
            start_date=date.today(),
            end_date=date.today() + timedelta(days=365)
        ))
        session.commit()
        session.refresh(company)
        return company
    return _make


@pytest.fixture
def make_user(session, password_hash):
    def _make(email, role, company=None, name=None, is_active=True) -> User:
        user = User(
            name=name or email.split("@")[0],
            email=email,
            hashed_password=password_hash,
            company_id=company.id if company else None,
            role=role,
            is_active=is_active
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_template(session):
    def _make(company, author, title="Boiler inspection", fields=None) -> FormTemplate:
        template = FormTemplate(
            company_id=company.id if company else None,
            created_by=author.id,
            title=title,
            fields=fields if fields is not None else TEMPLATE_FIELDS,
        )
        session.add(template)
        session.commit()
        session.refresh(template)
        return template
    return _make


@pytest.fixture
def make_assignment(session):
    def _make(template, user, assigned_by, is_completed=False) -> FormAssignment:
        assignment = FormAssignment(
            form_template_id=template.id,
            user_id=user.id,
            assigned_by=assigned_by.id,
            is_completed=is_completed
        )
        session.add(assignment)
        session.commit()
        session.refresh(assignment)
        return assignment
    return _make


@pytest.fixture
def make_submission(session):
    def _make(template, user, status=SubmissionStatus.SUBMITTED, form_data=None) -> FormSubmission:
        submission = FormSubmission(
            form_template_id=template.id,
            user_id=user.id,
            form_data=form_data if form_data is not None else {"q1": "a"},
            status=status
        )
        session.add(submission)
        session.commit()
        session.refresh(submission)
        return submission
    return _make


@pytest.fixture
def pair_validator(session):
    def _pair(template, validator, technician) -> ValidatorTechnicianAssignment:
        pairing = ValidatorTechnicianAssignment(
            form_template_id=template.id,
            validator_id=validator.id,
            technician_id=technician.id
        )
        session.add(pairing)
        session.commit()
        return pairing
    return _pair


# ==============================================================================
# A STANDARD TENANT
# ==============================================================================


@pytest.fixture
def root_user(make_user):
    return make_user("root@example.com", Role.ROOT)


@pytest.fixture
def company(make_company):
    return make_company()


@pytest.fixture
def admin(make_user, company):
    return make_user("admin@acme.com", Role.ADMINISTRATOR, company)


@pytest.fixture
def technician(make_user, company):
    return make_user("tech@acme.com", Role.TECHNICIAN, company)


@pytest.fixture
def validator(make_user, company):
    return make_user("validator@acme.com", Role.VALIDATOR, company)


@pytest.fixture
def template(make_template, company, admin):
    return make_template(company, admin)
