from typing import Optional, Dict, Any, List
from uuid import UUID
from datetime import datetime
from sqlmodel import SQLModel

from app.db.schema import SubmissionStatus
from app.models.user import UserRead
from app.models.form_template import FormTemplateRead


class SubmissionCreate(SQLModel):
    """
    Parsed multipart payload. The route decodes the JSON form fields
    before building it.
    """
    form_template_id: UUID
    form_data: Dict[str, Any]
    status: SubmissionStatus
    location_data: Optional[Dict[str, Any]] = None


class SubmissionUpdate(SQLModel):
    form_data: Optional[Dict[str, Any]] = None
    status: Optional[SubmissionStatus] = None
    location_data: Optional[Dict[str, Any]] = None


class SubmissionRead(SQLModel):
    id: UUID
    form_template_id: UUID
    user_id: UUID
    form_data: Dict[str, Any]
    location_data: Optional[Dict[str, Any]] = None
    status: SubmissionStatus
    validated_by: Optional[UUID] = None
    validated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SubmissionListItem(SubmissionRead):
    form_template_title: Optional[str] = None


class SubmissionDetailRead(SubmissionRead):
    user: Optional[UserRead] = None
    form_template: Optional[FormTemplateRead] = None


class SubmissionContentRead(SQLModel):
    """Review view: template fields merged with human-readable values."""
    submission_id: UUID
    form_template_id: UUID
    user_id: UUID
    status: SubmissionStatus
    validated_by: Optional[UUID] = None
    validated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    form_template_title: str
    content: List[Dict[str, Any]]


class SubmissionMessage(SQLModel):
    message: str
    submission: SubmissionRead
