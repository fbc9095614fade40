from typing import Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints, field_validator
from typing_extensions import Annotated
from app.db.schema import Role, COLLABORATOR_ROLES


class UserRead(SQLModel):
    id: UUID
    name: str
    email: str
    role: Role
    company_id: Optional[UUID] = None
    is_active: bool


class UserSignin(SQLModel):
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Registered email address of the user.",
        max_length=255
    )
    password: str = Field(
        min_length=1,
        max_length=128,
        description="Plain text password."
    )


class CollaboratorCreate(SQLModel):
    """
    Payload for an administrator adding a technician or validator.
    The password is generated and mailed, never supplied by the admin.
    """
    name: str = Field(min_length=1, max_length=255)
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        max_length=255)
    role: Role = Field(description="'technician' or 'validator'.")

    @field_validator("role")
    @classmethod
    def collaborator_role(cls, value: Role) -> Role:
        if value not in COLLABORATOR_ROLES:
            raise ValueError("Role must be 'technician' or 'validator'.")
        return value


class CollaboratorUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[Annotated[EmailStr, StringConstraints(to_lower=True)]] = Field(
        default=None, max_length=255)
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def collaborator_role(cls, value: Optional[Role]) -> Optional[Role]:
        if value is not None and value not in COLLABORATOR_ROLES:
            raise ValueError("Role must be 'technician' or 'validator'.")
        return value


class RecipientRead(SQLModel):
    id: UUID
    name: str
    role: Role
