import uuid
from typing import List
from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_form_template_service, require_roles
from app.db.schema import Role
from app.models.auth import ActorContext
from app.models.form_template import FormTemplateCreate, FormTemplateUpdate, FormTemplateRead
from app.services.form_template import FormTemplateService


router = APIRouter()

admin_only = require_roles(Role.ADMINISTRATOR)


@router.post(
    "",
    response_model=FormTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Form Template",
    description="Creates a company template. Fails with 403 when the subscription has no creation credit left."
)
def create_template(
    data: FormTemplateCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.create_template(actor, data, background_tasks)


@router.get(
    "",
    response_model=List[FormTemplateRead],
    summary="List Form Templates"
)
def list_templates(
    actor: ActorContext = Depends(admin_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.list_templates(actor)


@router.get(
    "/{template_id}",
    response_model=FormTemplateRead,
    summary="Get Form Template"
)
def get_template(
    template_id: uuid.UUID,
    actor: ActorContext = Depends(admin_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.get_template(actor, template_id)


@router.put(
    "/{template_id}",
    response_model=FormTemplateRead,
    summary="Update Form Template"
)
def update_template(
    template_id: uuid.UUID,
    data: FormTemplateUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.update_template(actor, template_id, data, background_tasks)


@router.delete(
    "/{template_id}",
    summary="Delete Form Template",
    description="Deletes the template with its submissions, assignments and validator pairings."
)
def delete_template(
    template_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: FormTemplateService = Depends(get_form_template_service)
):
    return service.delete_template(actor, template_id, background_tasks)
