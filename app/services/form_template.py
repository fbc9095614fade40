from typing import List, Optional
import uuid
from loguru import logger
from sqlmodel import Session, select
from fastapi import HTTPException, BackgroundTasks

from app.core.audit import _perform_audit_log
from app.core.permissions import require_company
from app.db.schema import (
    FormTemplate, Abonnement, Company, AuditAction,
    FormAssignment, FormSubmission, ValidatorTechnicianAssignment
)
from app.models.auth import ActorContext
from app.models.form_template import (
    FormTemplateCreate, FormTemplateUpdate, FormTemplateRead,
    TemplateCompanyAssign, serialize_fields
)


class FormTemplateService:
    """
    Company templates (administrators) and the root template library.
    Both paths enforce the Abonnement quota when a company gains a template.
    """

    def __init__(self, session: Session):
        self.session = session

    # ==========================================================================
    # LOOKUPS
    # ==========================================================================

    def _get_company_template(self, actor: ActorContext, template_id: uuid.UUID) -> FormTemplate:
        company_id = require_company(actor)
        template = self.session.exec(
            select(FormTemplate)
            .where(FormTemplate.id == template_id)
            .where(FormTemplate.company_id == company_id)
        ).first()
        if not template:
            raise HTTPException(404, "Form template not found.")
        return template

    def _get_library_template(self, actor: ActorContext, template_id: uuid.UUID) -> FormTemplate:
        template = self.session.exec(
            select(FormTemplate)
            .where(FormTemplate.id == template_id)
            .where(FormTemplate.created_by == actor.user_id)
        ).first()
        if not template:
            raise HTTPException(404, "Form template not found.")
        return template

    def _get_abonnement(self, company_id: uuid.UUID) -> Optional[Abonnement]:
        return self.session.exec(
            select(Abonnement).where(Abonnement.company_id == company_id)
        ).first()

    # ==========================================================================
    # ADMINISTRATOR
    # ==========================================================================

    def list_templates(self, actor: ActorContext) -> List[FormTemplateRead]:
        company_id = require_company(actor)
        templates = self.session.exec(
            select(FormTemplate)
            .where(FormTemplate.company_id == company_id)
            .order_by(FormTemplate.created_at)
        ).all()
        return [FormTemplateRead.model_validate(t) for t in templates]

    def get_template(self, actor: ActorContext, template_id: uuid.UUID) -> FormTemplateRead:
        return FormTemplateRead.model_validate(self._get_company_template(actor, template_id))

    def create_template(
        self,
        actor: ActorContext,
        data: FormTemplateCreate,
        background_tasks: BackgroundTasks
    ) -> FormTemplateRead:
        """
        Creates a template and consumes one creation credit in the same
        transaction.
        """
        company_id = require_company(actor)

        abonnement = self._get_abonnement(company_id)
        if not abonnement or abonnement.forms_to_create <= 0:
            logger.warning(f"Template quota exhausted for company {company_id}")
            raise HTTPException(
                403, "Your company has reached the limit of forms to create.")

        template = FormTemplate(
            company_id=company_id,
            created_by=actor.user_id,
            title=data.title,
            description=data.description,
            fields=serialize_fields(data.fields),
            is_active=True
        )

        try:
            self.session.add(template)
            abonnement.forms_to_create -= 1
            abonnement.available_forms += 1
            self.session.add(abonnement)
            self.session.commit()
            self.session.refresh(template)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Form template creation failed: {e}")
            raise HTTPException(500, "Could not create form template.")

        logger.info(
            f"Form template {template.id} created in company {company_id}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company_id,
            user_id=actor.user_id,
            entity_type="FormTemplate",
            entity_id=template.id,
            action=AuditAction.CREATE,
            changes={"title": data.title, "fields": len(data.fields)},
        )
        return FormTemplateRead.model_validate(template)

    def update_template(
        self,
        actor: ActorContext,
        template_id: uuid.UUID,
        data: FormTemplateUpdate,
        background_tasks: BackgroundTasks
    ) -> FormTemplateRead:
        template = self._get_company_template(actor, template_id)
        return self._apply_update(actor, template, data, background_tasks)

    def delete_template(
        self,
        actor: ActorContext,
        template_id: uuid.UUID,
        background_tasks: BackgroundTasks
    ) -> dict:
        template = self._get_company_template(actor, template_id)
        return self._delete(actor, template, background_tasks)

    # ==========================================================================
    # ROOT LIBRARY
    # ==========================================================================

    def list_library_templates(self, actor: ActorContext) -> List[FormTemplateRead]:
        templates = self.session.exec(
            select(FormTemplate)
            .where(FormTemplate.created_by == actor.user_id)
            .order_by(FormTemplate.created_at)
        ).all()
        return [FormTemplateRead.model_validate(t) for t in templates]

    def get_library_template(self, actor: ActorContext, template_id: uuid.UUID) -> FormTemplateRead:
        return FormTemplateRead.model_validate(self._get_library_template(actor, template_id))

    def create_library_template(
        self,
        actor: ActorContext,
        data: FormTemplateCreate,
        background_tasks: BackgroundTasks
    ) -> FormTemplateRead:
        template = FormTemplate(
            company_id=None,
            created_by=actor.user_id,
            title=data.title,
            description=data.description,
            fields=serialize_fields(data.fields),
            is_active=True
        )
        try:
            self.session.add(template)
            self.session.commit()
            self.session.refresh(template)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Library template creation failed: {e}")
            raise HTTPException(500, "Could not create form template.")

        logger.info(f"Library template {template.id} created")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=None,
            user_id=actor.user_id,
            entity_type="FormTemplate",
            entity_id=template.id,
            action=AuditAction.CREATE,
            changes={"title": data.title, "fields": len(data.fields)},
        )
        return FormTemplateRead.model_validate(template)

    def update_library_template(
        self,
        actor: ActorContext,
        template_id: uuid.UUID,
        data: FormTemplateUpdate,
        background_tasks: BackgroundTasks
    ) -> FormTemplateRead:
        template = self._get_library_template(actor, template_id)
        return self._apply_update(actor, template, data, background_tasks)

    def delete_library_template(
        self,
        actor: ActorContext,
        template_id: uuid.UUID,
        background_tasks: BackgroundTasks
    ) -> dict:
        template = self._get_library_template(actor, template_id)
        return self._delete(actor, template, background_tasks)

    def assign_to_company(
        self,
        actor: ActorContext,
        template_id: uuid.UUID,
        data: TemplateCompanyAssign,
        background_tasks: BackgroundTasks
    ) -> FormTemplateRead:
        """
        Hands an unassigned library template to a company, consuming one of
        its creation credits.
        """
        template = self._get_library_template(actor, template_id)
        if template.company_id is not None:
            raise HTTPException(
                409, "Form template is already assigned to a company.")

        company = self.session.exec(
            select(Company).where(Company.email == data.company_email)
        ).first()
        if not company:
            raise HTTPException(404, "Company not found.")

        abonnement = self._get_abonnement(company.id)
        if not abonnement or abonnement.forms_to_create <= 0:
            raise HTTPException(
                400, "Company has no forms available to assign.")

        try:
            template.company_id = company.id
            abonnement.available_forms += 1
            abonnement.forms_to_create -= 1
            self.session.add(template)
            self.session.add(abonnement)
            self.session.commit()
            self.session.refresh(template)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Library template assignment failed: {e}")
            raise HTTPException(500, "Could not assign form template.")

        logger.info(
            f"Library template {template.id} assigned to company {company.id}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company.id,
            user_id=actor.user_id,
            entity_type="FormTemplate",
            entity_id=template.id,
            action=AuditAction.ASSIGN,
            changes={"company_id": str(company.id)},
        )
        return FormTemplateRead.model_validate(template)

    # ==========================================================================
    # SHARED
    # ==========================================================================

    def _apply_update(
        self,
        actor: ActorContext,
        template: FormTemplate,
        data: FormTemplateUpdate,
        background_tasks: BackgroundTasks
    ) -> FormTemplateRead:
        changes = data.model_dump(exclude_unset=True, exclude={"fields"})
        for key, value in changes.items():
            setattr(template, key, value)
        if data.fields is not None:
            template.fields = serialize_fields(data.fields)

        try:
            self.session.add(template)
            self.session.commit()
            self.session.refresh(template)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Form template update failed: {e}")
            raise HTTPException(500, "Could not update form template.")

        background_tasks.add_task(
            _perform_audit_log,
            company_id=template.company_id,
            user_id=actor.user_id,
            entity_type="FormTemplate",
            entity_id=template.id,
            action=AuditAction.UPDATE,
            changes=data.model_dump(mode='json', exclude_unset=True),
        )
        return FormTemplateRead.model_validate(template)

    def _delete(
        self,
        actor: ActorContext,
        template: FormTemplate,
        background_tasks: BackgroundTasks
    ) -> dict:
        """Deletes the template with its submissions, assignments and pairings."""
        template_id = template.id
        company_id = template.company_id

        try:
            rows = []
            for model in (FormSubmission, FormAssignment, ValidatorTechnicianAssignment):
                rows += self.session.exec(
                    select(model).where(model.form_template_id == template_id)
                ).all()
            for row in rows:
                self.session.delete(row)
            self.session.flush()

            self.session.delete(template)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Form template deletion failed: {e}")
            raise HTTPException(500, "Could not delete form template.")

        logger.info(f"Form template {template_id} deleted")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company_id,
            user_id=actor.user_id,
            entity_type="FormTemplate",
            entity_id=template_id,
            action=AuditAction.DELETE,
            changes={},
        )
        return {"message": "Form template and associated data deleted successfully"}
