from typing import Optional
from uuid import UUID
from datetime import date, datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints, model_validator
from typing_extensions import Annotated

from app.models.user import UserRead


class CompanyCreate(SQLModel):
    """
    Input for onboarding a company: the company itself, its subscription
    quota and its first administrator account.
    """
    name: str = Field(min_length=1, max_length=255)
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=255)

    available_forms: int = Field(ge=0)
    forms_to_create: int = Field(ge=0)
    max_users: int = Field(ge=1)

    admin_name: str = Field(min_length=1, max_length=255)
    admin_email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        max_length=255)

    start_date: date
    end_date: date

    @model_validator(mode='after')
    def validate_period(self) -> 'CompanyCreate':
        if self.end_date <= self.start_date:
            raise ValueError("'end_date' must be after 'start_date'.")
        return self


class CompanyUpdate(SQLModel):
    """
    Partial update. Quota counters are forwarded to the Abonnement.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[Annotated[EmailStr, StringConstraints(to_lower=True)]] = Field(
        default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=255)
    available_forms: Optional[int] = Field(default=None, ge=0)
    forms_to_create: Optional[int] = Field(default=None, ge=0)
    max_users: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class AbonnementRead(SQLModel):
    id: UUID
    company_id: UUID
    available_forms: int
    forms_to_create: int
    start_date: date
    end_date: date


class CompanyRead(SQLModel):
    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    max_users: int
    is_active: bool
    created_at: datetime
    abonnement: Optional[AbonnementRead] = None


class CompanyCreated(SQLModel):
    message: str
    company: CompanyRead
    admin: UserRead
    abonnement: AbonnementRead
