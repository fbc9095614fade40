from typing import List, Optional
import uuid
from loguru import logger
from sqlmodel import Session, select
from fastapi import HTTPException, BackgroundTasks

from app.core.audit import _perform_audit_log
from app.core.permissions import require_company, ensure_company_scope
from app.db.schema import (
    User, Role, AuditAction, COLLABORATOR_ROLES,
    FormTemplate, FormAssignment, ValidatorTechnicianAssignment
)
from app.models.auth import ActorContext
from app.models.form_assignment import (
    AssignmentCreate, AssignmentRead, AssignmentDetailRead,
    ValidatorAssignmentCreate, ValidatorAssignmentResult, ValidatorAssignmentRead
)
from app.models.form_template import FormTemplateRead
from app.models.user import UserRead


class FormAssignmentService:
    """
    'Who must act on what': templates handed to collaborators, and
    validators paired with technicians.
    """

    def __init__(self, session: Session):
        self.session = session

    def _get_company_template(self, company_id: uuid.UUID, template_id: uuid.UUID) -> FormTemplate:
        template = self.session.exec(
            select(FormTemplate)
            .where(FormTemplate.id == template_id)
            .where(FormTemplate.company_id == company_id)
        ).first()
        if not template:
            raise HTTPException(404, "Form template not found.")
        return template

    def _to_detail(self, assignment: FormAssignment, with_user: bool = True) -> AssignmentDetailRead:
        return AssignmentDetailRead(
            id=assignment.id,
            form_template_id=assignment.form_template_id,
            user_id=assignment.user_id,
            assigned_by=assignment.assigned_by,
            due_date=assignment.due_date,
            is_completed=assignment.is_completed,
            created_at=assignment.created_at,
            form_template=FormTemplateRead.model_validate(
                assignment.form_template),
            user=UserRead.model_validate(
                assignment.user) if with_user else None
        )

    # ==========================================================================
    # ADMINISTRATOR
    # ==========================================================================

    def assign_form(
        self,
        actor: ActorContext,
        data: AssignmentCreate,
        background_tasks: BackgroundTasks
    ) -> AssignmentRead:
        company_id = require_company(actor)

        template = self._get_company_template(company_id, data.form_template_id)

        collaborator = self.session.exec(
            select(User)
            .where(User.email == data.assignee_email)
            .where(User.company_id == company_id)
            .where(User.role.in_(COLLABORATOR_ROLES))
        ).first()
        if not collaborator:
            raise HTTPException(404, "Collaborator not found.")

        assignment = FormAssignment(
            form_template_id=template.id,
            user_id=collaborator.id,
            assigned_by=actor.user_id,
            due_date=data.due_date,
            is_completed=False
        )
        try:
            self.session.add(assignment)
            self.session.commit()
            self.session.refresh(assignment)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Form assignment failed: {e}")
            raise HTTPException(500, "Could not assign form template.")

        logger.info(
            f"Template {template.id} assigned to {collaborator.id} by {actor.user_id}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company_id,
            user_id=actor.user_id,
            entity_type="FormAssignment",
            entity_id=assignment.id,
            action=AuditAction.ASSIGN,
            changes=data.model_dump(mode='json'),
        )
        return AssignmentRead.model_validate(assignment)

    def list_assignments(self, actor: ActorContext) -> List[AssignmentDetailRead]:
        """Assignments made by this administrator within their company."""
        company_id = require_company(actor)
        assignments = self.session.exec(
            select(FormAssignment)
            .join(FormTemplate, FormTemplate.id == FormAssignment.form_template_id)
            .where(FormAssignment.assigned_by == actor.user_id)
            .where(FormTemplate.company_id == company_id)
            .order_by(FormAssignment.created_at)
        ).all()
        return [self._to_detail(a) for a in assignments]

    def assign_validator(
        self,
        actor: ActorContext,
        data: ValidatorAssignmentCreate,
        background_tasks: BackgroundTasks
    ) -> ValidatorAssignmentResult:
        """
        Pairs a validator with technicians on one template. Existing pairings
        of those technicians on the template are replaced.
        """
        company_id = require_company(actor)
        template = self._get_company_template(company_id, data.form_template_id)

        validator = self.session.exec(
            select(User)
            .where(User.id == data.validator_id)
            .where(User.company_id == company_id)
            .where(User.role == Role.VALIDATOR)
        ).first()
        if not validator:
            raise HTTPException(404, "Validator not found.")

        requested_ids = set(data.technician_ids)
        technicians = self.session.exec(
            select(User)
            .where(User.id.in_(requested_ids))
            .where(User.company_id == company_id)
            .where(User.role == Role.TECHNICIAN)
        ).all()

        if len(technicians) != len(requested_ids):
            raise HTTPException(
                400, "One or more technician IDs are invalid or do not belong to your company/role.")

        technician_ids = [t.id for t in technicians]

        try:
            stale = self.session.exec(
                select(ValidatorTechnicianAssignment)
                .where(ValidatorTechnicianAssignment.form_template_id == template.id)
                .where(ValidatorTechnicianAssignment.technician_id.in_(technician_ids))
            ).all()
            for row in stale:
                self.session.delete(row)
            self.session.flush()

            for technician_id in technician_ids:
                self.session.add(ValidatorTechnicianAssignment(
                    form_template_id=template.id,
                    validator_id=validator.id,
                    technician_id=technician_id
                ))
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Validator assignment failed: {e}")
            raise HTTPException(500, "Could not assign validator.")

        logger.info(
            f"Validator {validator.id} paired with {len(technician_ids)} technician(s) on {template.id}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company_id,
            user_id=actor.user_id,
            entity_type="ValidatorTechnicianAssignment",
            entity_id=template.id,
            action=AuditAction.ASSIGN,
            changes=data.model_dump(mode='json'),
        )
        return ValidatorAssignmentResult(
            message="Validator assigned to technicians successfully.",
            form_template_id=template.id,
            validator_id=validator.id,
            technician_ids=technician_ids
        )

    def list_validator_assignments(
        self,
        actor: ActorContext,
        form_template_id: Optional[uuid.UUID] = None
    ) -> List[ValidatorAssignmentRead]:
        company_id = require_company(actor)
        statement = (
            select(ValidatorTechnicianAssignment)
            .join(FormTemplate, FormTemplate.id == ValidatorTechnicianAssignment.form_template_id)
            .where(FormTemplate.company_id == company_id)
        )
        if form_template_id:
            statement = statement.where(
                ValidatorTechnicianAssignment.form_template_id == form_template_id)
        rows = self.session.exec(statement).all()
        return [ValidatorAssignmentRead.model_validate(r) for r in rows]

    # ==========================================================================
    # COLLABORATOR WORKSPACE
    # ==========================================================================

    def list_assigned_forms(self, actor: ActorContext) -> List[AssignmentDetailRead]:
        assignments = self.session.exec(
            select(FormAssignment)
            .where(FormAssignment.user_id == actor.user_id)
            .where(FormAssignment.is_completed == False)
            .order_by(FormAssignment.created_at)
        ).all()
        return [self._to_detail(a, with_user=False) for a in assignments]

    def get_assigned_template(self, actor: ActorContext, template_id: uuid.UUID) -> FormTemplateRead:
        assignment = self.session.exec(
            select(FormAssignment)
            .where(FormAssignment.form_template_id == template_id)
            .where(FormAssignment.user_id == actor.user_id)
        ).first()
        if not assignment:
            raise HTTPException(404, "Form template not found.")
        ensure_company_scope(actor, assignment.form_template.company_id)
        return FormTemplateRead.model_validate(assignment.form_template)
