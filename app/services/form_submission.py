from typing import List, Optional
import uuid
from datetime import datetime
from loguru import logger
from sqlmodel import Session, select, or_
from fastapi import HTTPException, BackgroundTasks, UploadFile

from app.core.audit import _perform_audit_log
from app.core.permissions import (
    ensure_role, require_company, can_review_submission, can_view_submission
)
from app.db.schema import (
    Role, AuditAction, SubmissionStatus,
    FormTemplate, FormAssignment, FormSubmission, ValidatorTechnicianAssignment
)
from app.models.auth import ActorContext
from app.models.form_submission import (
    SubmissionCreate, SubmissionUpdate, SubmissionRead, SubmissionListItem,
    SubmissionDetailRead, SubmissionContentRead, SubmissionMessage
)
from app.models.form_template import FormTemplateRead
from app.models.user import UserRead
from app.utils.file_storage import attach_uploaded_files, delete_stored_files
from app.utils.form_content import merge_form_data, missing_required_fields


# Statuses a submitter may choose; the others are reached through review only
SUBMITTER_STATUSES = (SubmissionStatus.DRAFT, SubmissionStatus.SUBMITTED)


class FormSubmissionService:
    """
    The submission workflow:

        draft --(owner)--> submitted --(validator)--> validated | refused

    Owners edit freely while in draft. Once submitted, only an authorized
    validator may move the submission, and only once.
    """

    def __init__(self, session: Session):
        self.session = session

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    def _get_submission(self, submission_id: uuid.UUID) -> FormSubmission:
        submission = self.session.get(FormSubmission, submission_id)
        if not submission:
            raise HTTPException(404, "Form submission not found.")
        return submission

    def _get_own_submission(self, actor: ActorContext, submission_id: uuid.UUID) -> FormSubmission:
        submission = self.session.exec(
            select(FormSubmission)
            .where(FormSubmission.id == submission_id)
            .where(FormSubmission.user_id == actor.user_id)
        ).first()
        if not submission:
            raise HTTPException(404, "Form submission not found.")
        return submission

    def _check_submitter_status(self, status: SubmissionStatus) -> None:
        if status not in SUBMITTER_STATUSES:
            raise HTTPException(
                422, "Status must be 'draft' or 'submitted'.")

    def _check_required(self, template: FormTemplate, form_data: dict) -> None:
        missing = missing_required_fields(template.fields, form_data)
        if missing:
            raise HTTPException(
                status_code=422,
                detail={
                    "message": "Required fields are missing.",
                    "missing_fields": missing
                }
            )

    def _complete_assignment(self, actor: ActorContext, template_id: uuid.UUID) -> None:
        """Closes the collaborator's oldest open assignment for the template."""
        assignment = self.session.exec(
            select(FormAssignment)
            .where(FormAssignment.form_template_id == template_id)
            .where(FormAssignment.user_id == actor.user_id)
            .where(FormAssignment.is_completed == False)
            .order_by(FormAssignment.created_at)
        ).first()
        if assignment:
            assignment.is_completed = True
            self.session.add(assignment)

    def _to_detail(self, submission: FormSubmission) -> SubmissionDetailRead:
        return SubmissionDetailRead(
            **SubmissionRead.model_validate(submission).model_dump(),
            user=UserRead.model_validate(submission.user),
            form_template=FormTemplateRead.model_validate(
                submission.form_template)
        )

    # ==========================================================================
    # SUBMITTER
    # ==========================================================================

    def create_submission(
        self,
        actor: ActorContext,
        data: SubmissionCreate,
        files: List[UploadFile],
        background_tasks: BackgroundTasks
    ) -> SubmissionMessage:
        template = self.session.get(FormTemplate, data.form_template_id)
        if not template:
            raise HTTPException(404, "Form template not found.")

        assignment = self.session.exec(
            select(FormAssignment)
            .where(FormAssignment.form_template_id == template.id)
            .where(FormAssignment.user_id == actor.user_id)
        ).first()
        if not assignment:
            raise HTTPException(
                404, "No assignment found for this form template.")

        self._check_submitter_status(data.status)

        # A value naming an uploaded file counts as filled in
        if data.status == SubmissionStatus.SUBMITTED:
            self._check_required(template, data.form_data)
        form_data, stored = attach_uploaded_files(data.form_data, files)

        submission = FormSubmission(
            form_template_id=template.id,
            user_id=actor.user_id,
            form_data=form_data,
            location_data=data.location_data,
            status=data.status
        )

        try:
            self.session.add(submission)
            if data.status == SubmissionStatus.SUBMITTED:
                self._complete_assignment(actor, template.id)
            self.session.commit()
            self.session.refresh(submission)
        except Exception as e:
            self.session.rollback()
            delete_stored_files(stored)
            logger.error(f"Form submission creation failed: {e}")
            raise HTTPException(500, "Could not save form submission.")

        logger.info(
            f"Submission {submission.id} created by {actor.user_id} ({submission.status.value})")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=template.company_id,
            user_id=actor.user_id,
            entity_type="FormSubmission",
            entity_id=submission.id,
            action=AuditAction.SUBMIT if data.status == SubmissionStatus.SUBMITTED else AuditAction.CREATE,
            changes={"status": submission.status.value},
        )
        return SubmissionMessage(
            message="Form submission created successfully",
            submission=SubmissionRead.model_validate(submission)
        )

    def update_submission(
        self,
        actor: ActorContext,
        submission_id: uuid.UUID,
        data: SubmissionUpdate,
        files: List[UploadFile],
        background_tasks: BackgroundTasks
    ) -> SubmissionMessage:
        submission = self._get_own_submission(actor, submission_id)

        if submission.status != SubmissionStatus.DRAFT:
            raise HTTPException(
                400, "Only draft submissions can be edited.")

        new_status = data.status or submission.status
        self._check_submitter_status(new_status)

        form_data = data.form_data if data.form_data is not None else dict(
            submission.form_data or {})
        template = self.session.get(FormTemplate, submission.form_template_id)
        if new_status == SubmissionStatus.SUBMITTED:
            self._check_required(template, form_data)
        form_data, stored = attach_uploaded_files(form_data, files)

        submission.form_data = form_data
        submission.status = new_status
        if data.location_data is not None:
            submission.location_data = data.location_data

        try:
            self.session.add(submission)
            if new_status == SubmissionStatus.SUBMITTED:
                self._complete_assignment(actor, submission.form_template_id)
            self.session.commit()
            self.session.refresh(submission)
        except Exception as e:
            self.session.rollback()
            delete_stored_files(stored)
            logger.error(f"Form submission update failed: {e}")
            raise HTTPException(500, "Could not save form submission.")

        logger.info(
            f"Submission {submission.id} updated by {actor.user_id} ({submission.status.value})")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=template.company_id if template else None,
            user_id=actor.user_id,
            entity_type="FormSubmission",
            entity_id=submission.id,
            action=AuditAction.SUBMIT if new_status == SubmissionStatus.SUBMITTED else AuditAction.UPDATE,
            changes={"status": submission.status.value},
        )
        return SubmissionMessage(
            message="Form submission updated successfully",
            submission=SubmissionRead.model_validate(submission)
        )

    def list_own_submissions(self, actor: ActorContext) -> List[SubmissionListItem]:
        submissions = self.session.exec(
            select(FormSubmission)
            .where(FormSubmission.user_id == actor.user_id)
            .order_by(FormSubmission.created_at)
        ).all()
        return [
            SubmissionListItem(
                **SubmissionRead.model_validate(s).model_dump(),
                form_template_title=s.form_template.title if s.form_template else None
            )
            for s in submissions
        ]

    def get_own_submission(self, actor: ActorContext, submission_id: uuid.UUID) -> SubmissionDetailRead:
        return self._to_detail(self._get_own_submission(actor, submission_id))

    # ==========================================================================
    # REVIEW
    # ==========================================================================

    def review_submission(
        self,
        actor: ActorContext,
        submission_id: uuid.UUID,
        outcome: SubmissionStatus,
        background_tasks: BackgroundTasks
    ) -> SubmissionMessage:
        """
        Moves a submitted form to 'validated' or 'refused'.
        validated_by / validated_at record the reviewer for both outcomes.
        """
        if outcome not in (SubmissionStatus.VALIDATED, SubmissionStatus.REFUSED):
            raise HTTPException(400, "Unsupported review outcome.")

        ensure_role(
            actor, Role.VALIDATOR,
            detail=f"Only validators can change submission status to {outcome.value}"
        )

        submission = self._get_submission(submission_id)

        if submission.status != SubmissionStatus.SUBMITTED:
            raise HTTPException(
                400, f"Form submission status can only be changed from submitted to {outcome.value}.")

        if not can_review_submission(self.session, actor, submission):
            logger.warning(
                f"Validator {actor.user_id} denied review of submission {submission.id}")
            raise HTTPException(
                403, "You are not authorized to review this submission.")

        try:
            submission.status = outcome
            submission.validated_by = actor.user_id
            submission.validated_at = datetime.utcnow()
            self.session.add(submission)
            self.session.commit()
            self.session.refresh(submission)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Review of submission {submission_id} failed: {e}")
            raise HTTPException(500, "Could not update form submission.")

        logger.info(
            f"Submission {submission.id} {outcome.value} by {actor.user_id}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=actor.company_id,
            user_id=actor.user_id,
            entity_type="FormSubmission",
            entity_id=submission.id,
            action=AuditAction.VALIDATE if outcome == SubmissionStatus.VALIDATED else AuditAction.REFUSE,
            changes={"previous_status": SubmissionStatus.SUBMITTED.value,
                     "status": outcome.value},
        )
        return SubmissionMessage(
            message=f"Form submission status updated successfully to {outcome.value}",
            submission=SubmissionRead.model_validate(submission)
        )

    def list_for_validation(self, actor: ActorContext) -> List[SubmissionDetailRead]:
        """
        Submitted forms awaiting this validator: those of paired technicians
        on the paired templates, plus the validator's own.
        """
        ensure_role(actor, Role.VALIDATOR)

        paired = (
            select(ValidatorTechnicianAssignment.id)
            .where(ValidatorTechnicianAssignment.validator_id == actor.user_id)
            .where(ValidatorTechnicianAssignment.form_template_id == FormSubmission.form_template_id)
            .where(ValidatorTechnicianAssignment.technician_id == FormSubmission.user_id)
            .exists()
        )
        submissions = self.session.exec(
            select(FormSubmission)
            .where(FormSubmission.status == SubmissionStatus.SUBMITTED)
            .where(or_(paired, FormSubmission.user_id == actor.user_id))
            .order_by(FormSubmission.created_at)
        ).all()

        logger.debug(
            f"Validator {actor.user_id}: {len(submissions)} submission(s) pending")
        return [self._to_detail(s) for s in submissions]

    def list_company_submissions(
        self,
        actor: ActorContext,
        status: Optional[SubmissionStatus] = None
    ) -> List[SubmissionDetailRead]:
        """Administrator view over every submission on the company's templates."""
        company_id = require_company(actor)
        statement = (
            select(FormSubmission)
            .join(FormTemplate, FormTemplate.id == FormSubmission.form_template_id)
            .where(FormTemplate.company_id == company_id)
        )
        if status:
            statement = statement.where(FormSubmission.status == status)
        submissions = self.session.exec(
            statement.order_by(FormSubmission.created_at)).all()
        return [self._to_detail(s) for s in submissions]

    def get_content(self, actor: ActorContext, submission_id: uuid.UUID) -> SubmissionContentRead:
        """Template fields merged with the submitted values, labels resolved."""
        submission = self._get_submission(submission_id)

        if not can_view_submission(self.session, actor, submission):
            raise HTTPException(
                403, "You are not authorized to view this submission.")

        template = submission.form_template
        return SubmissionContentRead(
            submission_id=submission.id,
            form_template_id=submission.form_template_id,
            user_id=submission.user_id,
            status=submission.status,
            validated_by=submission.validated_by,
            validated_at=submission.validated_at,
            created_at=submission.created_at,
            updated_at=submission.updated_at,
            form_template_title=template.title,
            content=merge_form_data(template.fields, submission.form_data)
        )
