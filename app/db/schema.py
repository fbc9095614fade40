from typing import Optional, List, Dict, Any
from datetime import datetime, date
import uuid
from sqlmodel import SQLModel, Field, Relationship, JSON, UniqueConstraint
from enum import Enum


class Role(str, Enum):
    ROOT = "root"                    # Platform super-admin, no company
    ADMINISTRATOR = "administrator"  # Manages one company
    TECHNICIAN = "technician"        # Fills in forms
    VALIDATOR = "validator"          # Reviews forms (and may fill them in)


COLLABORATOR_ROLES = (Role.TECHNICIAN, Role.VALIDATOR)


class SubmissionStatus(str, Enum):
    DRAFT = "draft"            # Editable by its owner
    SUBMITTED = "submitted"    # Locked, waiting for a validator
    VALIDATED = "validated"    # Terminal
    REFUSED = "refused"        # Terminal


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    DATETIME = "datetime"
    FILE = "file"
    IMAGE = "image"


OPTION_FIELD_TYPES = (FieldType.SELECT, FieldType.CHECKBOX, FieldType.RADIO)


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SUBMIT = "submit"
    VALIDATE = "validate"
    REFUSE = "refuse"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    ASSIGN = "assign"


class TimestampMixin(SQLModel):
    """
    A foundational mixin that provides standard audit timestamps for database records.
    Every entity inheriting from this mixin tracks when it was originally
    created and when it was last modified.
    """
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="The exact UTC timestamp when this record was first persisted in the database. Example: '2025-03-16 14:30:00'"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow},
        description="The exact UTC timestamp when this record was last modified. Updates automatically. Example: '2025-03-17 09:15:00'"
    )


class Company(TimestampMixin, SQLModel, table=True):
    """
    Represents a customer organization (the tenant).
    Every administrator, collaborator and form template belongs to exactly
    one Company. Deactivating a company deactivates all of its users.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for the company."
    )
    name: str = Field(
        index=True,
        description="The legal or display name of the company. Example: 'Acme Maintenance'"
    )
    email: str = Field(
        unique=True,
        index=True,
        description="Contact address of the company, also used by the root user to target it. Example: 'contact@acme.com'"
    )
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=255)
    max_users: int = Field(
        default=1,
        description="Upper bound on the number of user accounts (administrator included). Example: 25"
    )
    is_active: bool = Field(
        default=True,
        description="If False, no user of the company can log in."
    )

    users: List["User"] = Relationship(back_populates="company")
    abonnement: Optional["Abonnement"] = Relationship(
        back_populates="company",
        sa_relationship_kwargs={"uselist": False}
    )
    form_templates: List["FormTemplate"] = Relationship(
        back_populates="company")


class Abonnement(TimestampMixin, SQLModel, table=True):
    """
    The subscription quota of a Company.
    'forms_to_create' is the number of templates the company may still add;
    'available_forms' counts the templates it already holds. Creating or
    receiving a template moves one unit from the former to the latter.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    company_id: uuid.UUID = Field(
        foreign_key="company.id",
        unique=True,
        index=True,
        description="The company this subscription belongs to."
    )
    available_forms: int = Field(
        default=0,
        description="Templates currently available to the company. Example: 3"
    )
    forms_to_create: int = Field(
        default=0,
        description="Remaining template creation credits. Example: 7"
    )
    start_date: date = Field(description="First day of the subscription.")
    end_date: date = Field(description="Last day of the subscription.")

    company: Company = Relationship(back_populates="abonnement")


class User(TimestampMixin, SQLModel, table=True):
    """
    A human account. The root user has no company; every other role is
    bound to exactly one Company.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for the user."
    )
    name: str = Field(description="Display name. Example: 'Jane Doe'")
    email: str = Field(
        unique=True,
        index=True,
        description="The login email address. Example: 'jane.doe@acme.com'"
    )
    hashed_password: str = Field(
        description="The salted bcrypt hash of the password. Never store plain text."
    )
    company_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="company.id",
        index=True,
        description="Owning company. NULL for the root user."
    )
    role: Role = Field(
        default=Role.TECHNICIAN,
        description="Closed set of platform roles. Example: 'validator'"
    )
    is_active: bool = Field(
        default=True,
        description="Soft disable flag. If False, user cannot log in."
    )

    company: Optional[Company] = Relationship(back_populates="users")


class FormTemplate(TimestampMixin, SQLModel, table=True):
    """
    A dynamic form definition: an ordered list of field definitions.
    Root library templates have no company until they are assigned to one.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    company_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="company.id",
        index=True,
        description="Owning company. NULL for an unassigned root library template."
    )
    created_by: uuid.UUID = Field(
        foreign_key="user.id",
        description="The administrator or root user who authored the template."
    )
    title: str = Field(max_length=255, description="Example: 'Monthly boiler inspection'")
    description: Optional[str] = Field(default=None)
    fields: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_type=JSON,
        description="Ordered field definitions: {name, type, label, required, options?}."
    )
    is_active: bool = Field(default=True)

    company: Optional[Company] = Relationship(back_populates="form_templates")


class FormAssignment(TimestampMixin, SQLModel, table=True):
    """
    'This collaborator must fill in this template.'
    A collaborator may hold several assignments for the same template.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    form_template_id: uuid.UUID = Field(
        foreign_key="formtemplate.id", index=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id",
        index=True,
        description="The technician (or validator) who must fill in the form."
    )
    assigned_by: uuid.UUID = Field(
        foreign_key="user.id",
        description="The administrator who created the assignment."
    )
    due_date: Optional[datetime] = Field(default=None)
    is_completed: bool = Field(default=False)

    form_template: FormTemplate = Relationship()
    user: User = Relationship(
        sa_relationship_kwargs={"foreign_keys": "FormAssignment.user_id"}
    )


class ValidatorTechnicianAssignment(TimestampMixin, SQLModel, table=True):
    """
    Grants a validator authority over one technician's submissions for one
    template.
    """
    __table_args__ = (
        UniqueConstraint("form_template_id", "validator_id", "technician_id",
                         name="validator_technician_unique"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    form_template_id: uuid.UUID = Field(
        foreign_key="formtemplate.id", index=True)
    validator_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    technician_id: uuid.UUID = Field(foreign_key="user.id", index=True)


class FormSubmission(TimestampMixin, SQLModel, table=True):
    """
    A filled-in form. The only stateful entity of the workflow:
    draft -> submitted -> validated | refused.
    'validated_by' / 'validated_at' record the reviewer of either outcome.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    form_template_id: uuid.UUID = Field(
        foreign_key="formtemplate.id", index=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id",
        index=True,
        description="The submitter."
    )
    form_data: Dict[str, Any] = Field(
        default_factory=dict,
        sa_type=JSON,
        description="Field name -> submitted value. Uploaded files are stored as public URLs."
    )
    location_data: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_type=JSON,
        description="Optional geolocation captured by the client. Example: {'lat': 48.85, 'lng': 2.35}"
    )
    status: SubmissionStatus = Field(default=SubmissionStatus.DRAFT, index=True)
    validated_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="user.id")
    validated_at: Optional[datetime] = Field(default=None)

    form_template: FormTemplate = Relationship()
    user: User = Relationship(
        sa_relationship_kwargs={"foreign_keys": "FormSubmission.user_id"}
    )


class Discussion(TimestampMixin, SQLModel, table=True):
    """
    A direct message between two users. A NULL recipient is a message to
    nobody in particular (visible to its sender only).
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    sender_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    recipient_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="user.id", index=True)
    content: str
    read_at: Optional[datetime] = Field(default=None)

    sender: User = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Discussion.sender_id"}
    )
    recipient: Optional[User] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "Discussion.recipient_id"}
    )


class SystemAuditLog(SQLModel, table=True):
    """
    Append-only trail of state-changing operations.
    Written after the response by a background task.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True
    )
    company_id: Optional[uuid.UUID] = Field(default=None, index=True)
    actor_user_id: uuid.UUID = Field(index=True)
    entity_type: str = Field(description="Example: 'FormSubmission'")
    entity_id: uuid.UUID = Field(index=True)
    action: AuditAction
    changes: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    ip_address: Optional[str] = Field(default=None)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
