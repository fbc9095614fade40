from typing import Optional
from sqlmodel import SQLModel


class SubmissionsByStatus(SQLModel):
    draft: int = 0
    submitted: int = 0
    validated: int = 0
    refused: int = 0


class AdminDashboardStats(SQLModel):
    """KPIs for the company administrator"""
    total_collaborators: int
    active_collaborators: int
    total_forms: int
    available_forms: int
    forms_to_create: int
    total_submissions: int
    submissions_by_status: SubmissionsByStatus


class CollaboratorDashboardStats(SQLModel):
    """KPIs for technicians and validators"""
    assigned_forms: int
    completed_forms: int
    submissions_by_status: SubmissionsByStatus
    # Validators only
    pending_validation: Optional[int] = None
    validated_forms: Optional[int] = None


class RootDashboardStats(SQLModel):
    total_companies: int
    active_companies: int
    library_templates: int
    total_available_forms: int
    total_forms_to_create: int
