from typing import Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from app.db.schema import Role


class Token(SQLModel):
    access_token: str
    refresh_token: str
    token_type: str


class TokenAccess(SQLModel):
    access_token: str


class TokenRefresh(SQLModel):
    refresh_token: str


class TokenData(SQLModel):
    user_id: UUID


class ActorContext(SQLModel):
    """
    The authenticated caller, resolved once per request from the bearer token
    and handed explicitly to every service method.
    """
    user_id: UUID
    name: str
    email: str
    role: Role
    company_id: Optional[UUID] = None
    is_active: bool = True


class PasswordChange(SQLModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=128)
    new_password_confirmation: str
