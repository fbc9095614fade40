from typing import List
import uuid
from loguru import logger
from sqlmodel import Session, select, func
from fastapi import HTTPException, BackgroundTasks

from app.core.audit import _perform_audit_log
from app.core.mail import send_account_created
from app.core.permissions import require_company
from app.db.schema import (
    User, Company, AuditAction, COLLABORATOR_ROLES,
    FormAssignment, FormSubmission, ValidatorTechnicianAssignment, Discussion
)
from app.models.auth import ActorContext
from app.models.user import CollaboratorCreate, CollaboratorUpdate, UserRead
from .password import get_password_hash, generate_password


class CollaboratorService:
    """Administrator management of the technicians and validators of a company."""

    def __init__(self, session: Session):
        self.session = session

    def _get_collaborator(self, actor: ActorContext, collaborator_id: uuid.UUID) -> User:
        """Lookup scoped to the admin's company, administrators excluded."""
        company_id = require_company(actor)
        collaborator = self.session.exec(
            select(User)
            .where(User.id == collaborator_id)
            .where(User.company_id == company_id)
            .where(User.role.in_(COLLABORATOR_ROLES))
        ).first()
        if not collaborator:
            raise HTTPException(404, "Collaborator not found.")
        return collaborator

    def list_collaborators(self, actor: ActorContext) -> List[UserRead]:
        company_id = require_company(actor)
        users = self.session.exec(
            select(User)
            .where(User.company_id == company_id)
            .where(User.role.in_(COLLABORATOR_ROLES))
            .order_by(User.name)
        ).all()
        return [UserRead.model_validate(u) for u in users]

    def get_collaborator(self, actor: ActorContext, collaborator_id: uuid.UUID) -> UserRead:
        return UserRead.model_validate(self._get_collaborator(actor, collaborator_id))

    def create_collaborator(
        self,
        actor: ActorContext,
        data: CollaboratorCreate,
        background_tasks: BackgroundTasks
    ) -> UserRead:
        company_id = require_company(actor)
        company = self.session.get(Company, company_id)

        # max_users counts every account of the company, administrator included
        user_count = self.session.exec(
            select(func.count(User.id)).where(User.company_id == company_id)
        ).one()
        if user_count >= company.max_users:
            logger.warning(
                f"Company {company_id} reached its user limit ({company.max_users})")
            raise HTTPException(
                403, "Maximum user limit reached for your company.")

        if self.session.exec(select(User).where(User.email == data.email)).first():
            raise HTTPException(409, "A user with this email already exists.")

        password = generate_password()
        collaborator = User(
            name=data.name,
            email=data.email,
            hashed_password=get_password_hash(password),
            company_id=company_id,
            role=data.role,
            is_active=True
        )

        try:
            self.session.add(collaborator)
            self.session.commit()
            self.session.refresh(collaborator)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Collaborator creation failed: {e}")
            raise HTTPException(500, "Could not create collaborator.")

        logger.info(
            f"Collaborator {collaborator.id} ({collaborator.role.value}) created in company {company_id}")

        try:
            send_account_created(collaborator.name, collaborator.email,
                                 password, collaborator.role)
        except Exception as e:
            logger.error(
                f"Account e-mail failed for {collaborator.email}: {e}")

        background_tasks.add_task(
            _perform_audit_log,
            company_id=company_id,
            user_id=actor.user_id,
            entity_type="User",
            entity_id=collaborator.id,
            action=AuditAction.CREATE,
            changes=data.model_dump(mode='json'),
        )
        return UserRead.model_validate(collaborator)

    def update_collaborator(
        self,
        actor: ActorContext,
        collaborator_id: uuid.UUID,
        data: CollaboratorUpdate,
        background_tasks: BackgroundTasks
    ) -> UserRead:
        collaborator = self._get_collaborator(actor, collaborator_id)
        changes = data.model_dump(exclude_unset=True)

        if "email" in changes and changes["email"] != collaborator.email:
            if self.session.exec(select(User).where(User.email == changes["email"])).first():
                raise HTTPException(
                    409, "A user with this email already exists.")

        for key, value in changes.items():
            setattr(collaborator, key, value)

        try:
            self.session.add(collaborator)
            self.session.commit()
            self.session.refresh(collaborator)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Collaborator update failed: {e}")
            raise HTTPException(500, "Could not update collaborator.")

        background_tasks.add_task(
            _perform_audit_log,
            company_id=actor.company_id,
            user_id=actor.user_id,
            entity_type="User",
            entity_id=collaborator.id,
            action=AuditAction.UPDATE,
            changes=data.model_dump(mode='json', exclude_unset=True),
        )
        return UserRead.model_validate(collaborator)

    def set_active(
        self,
        actor: ActorContext,
        collaborator_id: uuid.UUID,
        active: bool,
        background_tasks: BackgroundTasks
    ) -> dict:
        collaborator = self._get_collaborator(actor, collaborator_id)
        collaborator.is_active = active
        self.session.add(collaborator)
        self.session.commit()

        verb = "activated" if active else "deactivated"
        logger.info(f"Collaborator {collaborator.id} {verb}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=actor.company_id,
            user_id=actor.user_id,
            entity_type="User",
            entity_id=collaborator.id,
            action=AuditAction.ACTIVATE if active else AuditAction.DEACTIVATE,
            changes={"is_active": active},
        )
        return {"message": f"Collaborator {verb} successfully"}

    def delete_collaborator(
        self,
        actor: ActorContext,
        collaborator_id: uuid.UUID,
        background_tasks: BackgroundTasks
    ) -> dict:
        """Deletes the collaborator with their submissions, assignments and pairings."""
        collaborator = self._get_collaborator(actor, collaborator_id)

        try:
            rows = []
            rows += self.session.exec(select(FormSubmission).where(
                FormSubmission.user_id == collaborator.id)).all()
            rows += self.session.exec(select(FormAssignment).where(
                FormAssignment.user_id == collaborator.id)).all()
            rows += self.session.exec(select(ValidatorTechnicianAssignment).where(
                (ValidatorTechnicianAssignment.validator_id == collaborator.id)
                | (ValidatorTechnicianAssignment.technician_id == collaborator.id)
            )).all()
            rows += self.session.exec(select(Discussion).where(
                (Discussion.sender_id == collaborator.id)
                | (Discussion.recipient_id == collaborator.id)
            )).all()
            for row in rows:
                self.session.delete(row)
            self.session.flush()

            # Reviews made by this validator on other people's forms are kept
            reviewed = self.session.exec(select(FormSubmission).where(
                FormSubmission.validated_by == collaborator.id)).all()
            for submission in reviewed:
                submission.validated_by = None
                self.session.add(submission)

            self.session.delete(collaborator)
            self.session.commit()

        except Exception as e:
            self.session.rollback()
            logger.error(f"Collaborator deletion failed: {e}")
            raise HTTPException(500, "Could not delete collaborator.")

        logger.info(f"Collaborator {collaborator_id} deleted")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=actor.company_id,
            user_id=actor.user_id,
            entity_type="User",
            entity_id=collaborator_id,
            action=AuditAction.DELETE,
            changes={},
        )
        return {"message": "Collaborator and associated data deleted successfully"}
