import uuid
from typing import List
from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_collaborator_service, require_roles
from app.db.schema import Role
from app.models.auth import ActorContext
from app.models.user import CollaboratorCreate, CollaboratorUpdate, UserRead
from app.services.collaborator import CollaboratorService


router = APIRouter()

admin_only = require_roles(Role.ADMINISTRATOR)


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a Collaborator",
    description="Creates a technician or validator with a generated password sent by e-mail."
)
def create_collaborator(
    data: CollaboratorCreate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.create_collaborator(actor, data, background_tasks)


@router.get(
    "",
    response_model=List[UserRead],
    summary="List Collaborators"
)
def list_collaborators(
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.list_collaborators(actor)


@router.get(
    "/{collaborator_id}",
    response_model=UserRead,
    summary="Get Collaborator"
)
def get_collaborator(
    collaborator_id: uuid.UUID,
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.get_collaborator(actor, collaborator_id)


@router.put(
    "/{collaborator_id}",
    response_model=UserRead,
    summary="Update Collaborator"
)
def update_collaborator(
    collaborator_id: uuid.UUID,
    data: CollaboratorUpdate,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.update_collaborator(actor, collaborator_id, data, background_tasks)


@router.patch(
    "/{collaborator_id}/deactivate",
    summary="Deactivate Collaborator"
)
def deactivate_collaborator(
    collaborator_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.set_active(actor, collaborator_id, False, background_tasks)


@router.put(
    "/{collaborator_id}/activate",
    summary="Activate Collaborator"
)
def activate_collaborator(
    collaborator_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.set_active(actor, collaborator_id, True, background_tasks)


@router.delete(
    "/{collaborator_id}",
    summary="Delete Collaborator",
    description="Deletes the collaborator with their submissions, assignments and validator pairings."
)
def delete_collaborator(
    collaborator_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(admin_only),
    service: CollaboratorService = Depends(get_collaborator_service)
):
    return service.delete_collaborator(actor, collaborator_id, background_tasks)
