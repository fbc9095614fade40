from typing import Optional, List
from uuid import UUID
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints, field_validator
from typing_extensions import Annotated

from app.models.form_template import FormTemplateRead
from app.models.user import UserRead


class AssignmentCreate(SQLModel):
    """
    Payload to assign a template to a collaborator of the same company.
    """
    form_template_id: UUID
    assignee_email: Annotated[EmailStr, StringConstraints(to_lower=True)]
    due_date: Optional[datetime] = Field(
        default=None, description="Must be in the future when provided.")

    @field_validator("due_date")
    @classmethod
    def due_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        # Stored naive, in UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        if value <= datetime.utcnow():
            raise ValueError("The due date must be in the future.")
        return value


class AssignmentRead(SQLModel):
    id: UUID
    form_template_id: UUID
    user_id: UUID
    assigned_by: UUID
    due_date: Optional[datetime] = None
    is_completed: bool
    created_at: datetime


class AssignmentDetailRead(AssignmentRead):
    form_template: FormTemplateRead
    user: Optional[UserRead] = None


class ValidatorAssignmentCreate(SQLModel):
    """
    Pairs one validator with a set of technicians for one template.
    Replaces any existing pairing of those technicians on that template.
    """
    form_template_id: UUID
    validator_id: UUID
    technician_ids: List[UUID] = Field(min_length=1)


class ValidatorAssignmentResult(SQLModel):
    message: str
    form_template_id: UUID
    validator_id: UUID
    technician_ids: List[UUID]


class ValidatorAssignmentRead(SQLModel):
    id: UUID
    form_template_id: UUID
    validator_id: UUID
    technician_id: UUID
    created_at: datetime
