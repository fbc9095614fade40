from typing import Optional, List, Dict, Any, Union
from uuid import UUID
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints, model_validator, field_validator
from typing_extensions import Annotated

from app.db.schema import FieldType, OPTION_FIELD_TYPES


class FieldOption(SQLModel):
    value: str
    label: str


class FormField(SQLModel):
    """
    One field definition of a template.
    Options may be given as {value, label} pairs or as bare strings.
    """
    name: str = Field(min_length=1, max_length=255)
    type: FieldType
    label: str = Field(min_length=1)
    required: bool
    options: Optional[List[Union[FieldOption, str]]] = None

    @model_validator(mode='after')
    def validate_options(self) -> 'FormField':
        if self.type in OPTION_FIELD_TYPES and not self.options:
            raise ValueError(
                f"Field '{self.name}' of type '{self.type.value}' requires options.")
        return self


def _check_unique_names(fields: Optional[List[FormField]]) -> Optional[List[FormField]]:
    if fields is None:
        return fields
    seen = set()
    for f in fields:
        if f.name in seen:
            raise ValueError(f"Duplicate field name '{f.name}'.")
        seen.add(f.name)
    return fields


class FormTemplateCreate(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    fields: List[FormField] = Field(min_length=1)

    @field_validator("fields")
    @classmethod
    def unique_names(cls, value: List[FormField]) -> List[FormField]:
        return _check_unique_names(value)


class FormTemplateUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    fields: Optional[List[FormField]] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None

    @field_validator("fields")
    @classmethod
    def unique_names(cls, value: Optional[List[FormField]]) -> Optional[List[FormField]]:
        return _check_unique_names(value)


class FormTemplateRead(SQLModel):
    id: UUID
    company_id: Optional[UUID] = None
    created_by: UUID
    title: str
    description: Optional[str] = None
    fields: List[Dict[str, Any]]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TemplateCompanyAssign(SQLModel):
    """Root hands a library template to a company, identified by its e-mail."""
    company_email: Annotated[EmailStr, StringConstraints(to_lower=True)]


def serialize_fields(fields: List[FormField]) -> List[Dict[str, Any]]:
    """Shape stored in the JSON column."""
    return [f.model_dump(mode="json", exclude_none=True) for f in fields]
