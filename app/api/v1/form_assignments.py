import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_form_assignment_service, require_roles
from app.db.schema import Role
from app.models.auth import ActorContext
from app.models.form_assignment import (
    AssignmentCreate, AssignmentRead, AssignmentDetailRead,
    ValidatorAssignmentCreate, ValidatorAssignmentResult, ValidatorAssignmentRead
)
from app.models.form_template import FormTemplateRead
from app.services.form_assignment import FormAssignmentService


router = APIRouter()

admin_only = require_roles(Role.ADMINISTRATOR)
collaborators_only = require_roles(Role.TECHNICIAN, Role.VALIDATOR)


# ==============================================================================
# ADMINISTRATOR
# ==============================================================================


@router.post(
    "/form-assignments",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a Form",
    description="Asks a collaborator of the company to fill in a template, optionally before a due date."
)
def assign_form(
    data: AssignmentCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: FormAssignmentService = Depends(get_form_assignment_service)
):
    return service.assign_form(actor, data, background_tasks)


@router.get(
    "/form-assignments",
    response_model=List[AssignmentDetailRead],
    summary="List Assignments",
    description="Assignments made by the current administrator."
)
def list_assignments(
    actor: ActorContext = Depends(admin_only),
    service: FormAssignmentService = Depends(get_form_assignment_service)
):
    return service.list_assignments(actor)


@router.post(
    "/validator-assignments",
    response_model=ValidatorAssignmentResult,
    status_code=status.HTTP_201_CREATED,
    summary="Pair a Validator with Technicians",
    description="Gives a validator authority over the listed technicians' submissions for one template."
)
def assign_validator(
    data: ValidatorAssignmentCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: FormAssignmentService = Depends(get_form_assignment_service)
):
    return service.assign_validator(actor, data, background_tasks)


@router.get(
    "/validator-assignments",
    response_model=List[ValidatorAssignmentRead],
    summary="List Validator Pairings"
)
def list_validator_assignments(
    form_template_id: Optional[uuid.UUID] = None,
    actor: ActorContext = Depends(admin_only),
    service: FormAssignmentService = Depends(get_form_assignment_service)
):
    return service.list_validator_assignments(actor, form_template_id)


# ==============================================================================
# COLLABORATOR WORKSPACE
# ==============================================================================


@router.get(
    "/assigned-forms",
    response_model=List[AssignmentDetailRead],
    summary="My Assigned Forms",
    description="Open assignments of the current collaborator, with their templates."
)
def list_assigned_forms(
    actor: ActorContext = Depends(collaborators_only),
    service: FormAssignmentService = Depends(get_form_assignment_service)
):
    return service.list_assigned_forms(actor)


@router.get(
    "/assigned-forms/{template_id}",
    response_model=FormTemplateRead,
    summary="Get an Assigned Template"
)
def get_assigned_template(
    template_id: uuid.UUID,
    actor: ActorContext = Depends(collaborators_only),
    service: FormAssignmentService = Depends(get_form_assignment_service)
):
    return service.get_assigned_template(actor, template_id)
