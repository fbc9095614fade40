from typing import List, Optional
from fastapi import APIRouter, Depends

from app.core.dependencies import (
    get_dashboard_service, get_form_submission_service, require_roles
)
from app.db.schema import Role, SubmissionStatus
from app.models.auth import ActorContext
from app.models.dashboard import AdminDashboardStats
from app.models.form_submission import SubmissionDetailRead
from app.services.dashboard import DashboardService
from app.services.form_submission import FormSubmissionService


router = APIRouter()

admin_only = require_roles(Role.ADMINISTRATOR)


@router.get(
    "/dashboard",
    response_model=AdminDashboardStats,
    summary="Company KPIs",
    description="Collaborator counts, template count, quota counters and submissions by status."
)
def get_admin_dashboard(
    actor: ActorContext = Depends(admin_only),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.get_admin_stats(actor)


@router.get(
    "/submissions",
    response_model=List[SubmissionDetailRead],
    summary="Company Submissions",
    description="Every submission on the company's templates, optionally filtered by status."
)
def list_company_submissions(
    status: Optional[SubmissionStatus] = None,
    actor: ActorContext = Depends(admin_only),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.list_company_submissions(actor, status)
