import uuid
from typing import List
from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_form_template_service, require_roles
from app.db.schema import Role
from app.models.auth import ActorContext
from app.models.form_template import (
    FormTemplateCreate, FormTemplateUpdate, FormTemplateRead, TemplateCompanyAssign
)
from app.services.form_template import FormTemplateService


router = APIRouter()

root_only = require_roles(Role.ROOT)


@router.post(
    "",
    response_model=FormTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Library Template",
    description="Adds a template to the root library. It belongs to no company until assigned."
)
def create_library_template(
    data: FormTemplateCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.create_library_template(actor, data, background_tasks)


@router.get(
    "",
    response_model=List[FormTemplateRead],
    summary="List Library Templates"
)
def list_library_templates(
    actor: ActorContext = Depends(root_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.list_library_templates(actor)


@router.get(
    "/{template_id}",
    response_model=FormTemplateRead,
    summary="Get Library Template"
)
def get_library_template(
    template_id: uuid.UUID,
    actor: ActorContext = Depends(root_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.get_library_template(actor, template_id)


@router.put(
    "/{template_id}",
    response_model=FormTemplateRead,
    summary="Update Library Template"
)
def update_library_template(
    template_id: uuid.UUID,
    data: FormTemplateUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.update_library_template(actor, template_id, data, background_tasks)


@router.delete(
    "/{template_id}",
    summary="Delete Library Template"
)
def delete_library_template(
    template_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.delete_library_template(actor, template_id, background_tasks)


@router.post(
    "/{template_id}/assign",
    response_model=FormTemplateRead,
    summary="Assign Template to a Company",
    description=(
        "Hands an unassigned library template to the company identified by its e-mail. "
        "Consumes one of the company's template creation credits."
    )
)
def assign_library_template(
    template_id: uuid.UUID,
    data: TemplateCompanyAssign,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(root_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.assign_to_company(actor, template_id, data, background_tasks)
