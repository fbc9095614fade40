import uuid
from typing import List
from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_company_service, require_roles
from app.db.schema import Role
from app.models.auth import ActorContext
from app.models.company import CompanyCreate, CompanyUpdate, CompanyRead, CompanyCreated
from app.models.dashboard import RootDashboardStats
from app.services.company import CompanyService


router = APIRouter()

root_only = require_roles(Role.ROOT)


@router.get(
    "/root/dashboard",
    response_model=RootDashboardStats,
    summary="Platform KPIs",
    description="Company counts and subscription quota totals."
)
def get_root_dashboard(
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.get_dashboard_stats()


@router.post(
    "/companies",
    response_model=CompanyCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a Company",
    description=(
        "Creates the company, its subscription and its administrator account. "
        "The administrator receives a generated password by e-mail."
    )
)
def create_company(
    data: CompanyCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.create_company(actor, data, background_tasks)


@router.get(
    "/companies",
    response_model=List[CompanyRead],
    summary="List Companies"
)
def list_companies(
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.list_companies()


@router.get(
    "/companies/{company_id}",
    response_model=CompanyRead,
    summary="Get Company",
    description="Company details with its subscription."
)
def get_company(
    company_id: uuid.UUID,
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.get_company(company_id)


@router.put(
    "/companies/{company_id}",
    response_model=CompanyRead,
    summary="Update Company",
    description="Partial update. Quota counters are written to the subscription."
)
def update_company(
    company_id: uuid.UUID,
    data: CompanyUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.update_company(actor, company_id, data, background_tasks)


@router.patch(
    "/companies/{company_id}/deactivate",
    summary="Deactivate Company",
    description="Deactivates the company and all of its users."
)
def deactivate_company(
    company_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.set_active(actor, company_id, False, background_tasks)


@router.put(
    "/companies/{company_id}/activate",
    summary="Activate Company",
    description="Reactivates the company and all of its users."
)
def activate_company(
    company_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.set_active(actor, company_id, True, background_tasks)


@router.delete(
    "/companies/{company_id}",
    summary="Delete Company",
    description="Deletes the company with its users, templates, assignments, submissions and discussions."
)
def delete_company(
    company_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: CompanyService = Depends(get_company_service)
):
    return service.delete_company(actor, company_id, background_tasks)
