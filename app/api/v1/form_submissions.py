import json
import uuid
from typing import List, Optional, Any
from fastapi import (
    APIRouter, Depends, status, BackgroundTasks, Form, File, UploadFile, HTTPException
)
from pydantic import ValidationError

from app.core.dependencies import (
    get_form_submission_service, get_dashboard_service, get_actor, require_roles
)
from app.db.schema import Role, SubmissionStatus
from app.models.auth import ActorContext
from app.models.dashboard import CollaboratorDashboardStats
from app.models.form_submission import (
    SubmissionCreate, SubmissionUpdate, SubmissionListItem,
    SubmissionDetailRead, SubmissionContentRead, SubmissionMessage
)
from app.services.dashboard import DashboardService
from app.services.form_submission import FormSubmissionService


router = APIRouter()

collaborators_only = require_roles(Role.TECHNICIAN, Role.VALIDATOR)


def _parse_json_field(name: str, raw: Optional[str]) -> Any:
    """Multipart fields carry JSON as strings."""
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise HTTPException(
            status_code=422, detail=f"Invalid JSON in '{name}': {str(e)}")


# ==============================================================================
# SUBMITTER
# ==============================================================================


@router.post(
    "/form-submissions",
    response_model=SubmissionMessage,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a Form",
    description=(
        "Multipart/Form-Data: 'form_data' and 'location_data' are JSON strings. "
        "An uploaded file whose filename equals a form_data value replaces that value with its public URL."
    )
)
def create_submission(
    background_tasks: BackgroundTasks,
    form_template_id: uuid.UUID = Form(...),
    form_data: str = Form(..., description="JSON object: field name -> value."),
    submission_status: str = Form(
        SubmissionStatus.DRAFT.value, alias="status",
        description="'draft' or 'submitted'."),
    location_data: Optional[str] = Form(
        None, description="Optional JSON object with the capture location."),
    files: List[UploadFile] = File(
        default=[], description="Files referenced from form_data by filename."),
    actor: ActorContext = Depends(collaborators_only),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    parsed_form_data = _parse_json_field("form_data", form_data)
    try:
        data = SubmissionCreate(
            form_template_id=form_template_id,
            form_data={} if parsed_form_data is None else parsed_form_data,
            status=submission_status,
            location_data=_parse_json_field("location_data", location_data)
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=422, detail=f"Invalid submission payload: {str(e)}")

    return service.create_submission(actor, data, files, background_tasks)


@router.put(
    "/form-submissions/{submission_id}",
    response_model=SubmissionMessage,
    summary="Update a Draft Submission",
    description="Only drafts can be edited. Setting status to 'submitted' locks the submission."
)
def update_submission(
    submission_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    form_data: Optional[str] = Form(None),
    submission_status: Optional[str] = Form(None, alias="status"),
    location_data: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    actor: ActorContext = Depends(collaborators_only),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    try:
        data = SubmissionUpdate(
            form_data=_parse_json_field("form_data", form_data),
            status=submission_status or None,
            location_data=_parse_json_field("location_data", location_data)
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=422, detail=f"Invalid submission payload: {str(e)}")

    return service.update_submission(actor, submission_id, data, files, background_tasks)


@router.get(
    "/form-submissions",
    response_model=List[SubmissionListItem],
    summary="My Submissions"
)
def list_own_submissions(
    actor: ActorContext = Depends(collaborators_only),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.list_own_submissions(actor)


@router.get(
    "/form-submissions/{submission_id}",
    response_model=SubmissionDetailRead,
    summary="Get My Submission"
)
def get_own_submission(
    submission_id: uuid.UUID,
    actor: ActorContext = Depends(collaborators_only),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.get_own_submission(actor, submission_id)


@router.get(
    "/form-submissions/{submission_id}/content",
    response_model=SubmissionContentRead,
    summary="Readable Submission Content",
    description="Template fields merged with the submitted values; option values are shown by label."
)
def get_submission_content(
    submission_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.get_content(actor, submission_id)


@router.get(
    "/collaborator/dashboard",
    response_model=CollaboratorDashboardStats,
    summary="Collaborator KPIs"
)
def get_collaborator_dashboard(
    actor: ActorContext = Depends(collaborators_only),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.get_collaborator_stats(actor)


# ==============================================================================
# REVIEW
# ==============================================================================


@router.patch(
    "/form-submissions/{submission_id}/validate",
    response_model=SubmissionMessage,
    summary="Validate a Submission"
)
def validate_submission(
    submission_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(get_actor),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.review_submission(
        actor, submission_id, SubmissionStatus.VALIDATED, background_tasks)


@router.patch(
    "/form-submissions/{submission_id}/refuse",
    response_model=SubmissionMessage,
    summary="Refuse a Submission"
)
def refuse_submission(
    submission_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(get_actor),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.review_submission(
        actor, submission_id, SubmissionStatus.REFUSED, background_tasks)


@router.get(
    "/validator/submissions-for-validation",
    response_model=List[SubmissionDetailRead],
    summary="Review Queue",
    description="Submitted forms of the paired technicians, plus the validator's own."
)
def list_for_validation(
    actor: ActorContext = Depends(require_roles(Role.VALIDATOR)),
    service: FormSubmissionService = Depends(get_form_submission_service)
):
    return service.list_for_validation(actor)
