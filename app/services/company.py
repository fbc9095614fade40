from typing import List
import uuid
from loguru import logger
from sqlmodel import Session, select, func
from fastapi import HTTPException, BackgroundTasks

from app.core.audit import _perform_audit_log
from app.core.mail import send_account_created
from app.db.schema import (
    Company, Abonnement, User, Role, AuditAction,
    FormTemplate, FormAssignment, FormSubmission,
    ValidatorTechnicianAssignment, Discussion
)
from app.models.auth import ActorContext
from app.models.company import (
    CompanyCreate, CompanyUpdate, CompanyRead, AbonnementRead, CompanyCreated
)
from app.models.dashboard import RootDashboardStats
from app.models.user import UserRead
from .password import get_password_hash, generate_password


class CompanyService:
    """Root-only management of tenant companies and their quota."""

    def __init__(self, session: Session):
        self.session = session

    def _get_company(self, company_id: uuid.UUID) -> Company:
        company = self.session.get(Company, company_id)
        if not company:
            raise HTTPException(404, "Company not found.")
        return company

    def _to_read(self, company: Company) -> CompanyRead:
        abonnement = company.abonnement
        return CompanyRead(
            id=company.id,
            name=company.name,
            email=company.email,
            phone=company.phone,
            address=company.address,
            max_users=company.max_users,
            is_active=company.is_active,
            created_at=company.created_at,
            abonnement=AbonnementRead.model_validate(
                abonnement) if abonnement else None
        )

    # ==========================================================================
    # READ OPERATIONS
    # ==========================================================================

    def list_companies(self) -> List[CompanyRead]:
        companies = self.session.exec(
            select(Company).order_by(Company.created_at)).all()
        return [self._to_read(c) for c in companies]

    def get_company(self, company_id: uuid.UUID) -> CompanyRead:
        return self._to_read(self._get_company(company_id))

    def get_dashboard_stats(self) -> RootDashboardStats:
        total = self.session.exec(select(func.count(Company.id))).one()
        active = self.session.exec(
            select(func.count(Company.id)).where(Company.is_active == True)
        ).one()
        library = self.session.exec(
            select(func.count(FormTemplate.id)).where(
                FormTemplate.company_id == None)
        ).one()
        available, to_create = self.session.exec(
            select(
                func.coalesce(func.sum(Abonnement.available_forms), 0),
                func.coalesce(func.sum(Abonnement.forms_to_create), 0)
            )
        ).one()

        return RootDashboardStats(
            total_companies=total,
            active_companies=active,
            library_templates=library,
            total_available_forms=available,
            total_forms_to_create=to_create
        )

    # ==========================================================================
    # WRITE OPERATIONS
    # ==========================================================================

    def create_company(
        self,
        actor: ActorContext,
        data: CompanyCreate,
        background_tasks: BackgroundTasks
    ) -> CompanyCreated:
        """
        Creates Company + Abonnement + Administrator in one transaction,
        then mails the administrator their generated password.
        """
        if self.session.exec(select(Company).where(Company.email == data.email)).first():
            raise HTTPException(
                409, "A company with this email already exists.")
        if self.session.exec(select(User).where(User.email == data.admin_email)).first():
            raise HTTPException(409, "A user with this email already exists.")

        password = generate_password()

        try:
            company = Company(
                name=data.name,
                email=data.email,
                phone=data.phone,
                address=data.address,
                max_users=data.max_users,
                is_active=True
            )
            self.session.add(company)
            self.session.flush()  # Need ID for linking

            abonnement = Abonnement(
                company_id=company.id,
                available_forms=data.available_forms,
                forms_to_create=data.forms_to_create,
                start_date=data.start_date,
                end_date=data.end_date
            )
            self.session.add(abonnement)

            admin = User(
                name=data.admin_name,
                email=data.admin_email,
                hashed_password=get_password_hash(password),
                company_id=company.id,
                role=Role.ADMINISTRATOR,
                is_active=True
            )
            self.session.add(admin)

            self.session.commit()
            self.session.refresh(company)
            self.session.refresh(abonnement)
            self.session.refresh(admin)

        except Exception as e:
            self.session.rollback()
            logger.error(f"Company creation failed: {e}")
            raise HTTPException(500, "Could not create company.")

        logger.info(f"Company created: {company.id} ({company.name})")

        try:
            send_account_created(admin.name, admin.email,
                                 password, admin.role)
        except Exception as e:
            # The account stays; no retry
            logger.error(f"Admin account e-mail failed for {admin.email}: {e}")

        background_tasks.add_task(
            _perform_audit_log,
            company_id=company.id,
            user_id=actor.user_id,
            entity_type="Company",
            entity_id=company.id,
            action=AuditAction.CREATE,
            changes=data.model_dump(mode='json'),
        )

        return CompanyCreated(
            message="Company and admin account created successfully",
            company=self._to_read(company),
            admin=UserRead.model_validate(admin),
            abonnement=AbonnementRead.model_validate(abonnement)
        )

    def update_company(
        self,
        actor: ActorContext,
        company_id: uuid.UUID,
        data: CompanyUpdate,
        background_tasks: BackgroundTasks
    ) -> CompanyRead:
        company = self._get_company(company_id)
        changes = data.model_dump(exclude_unset=True)

        if "email" in changes and changes["email"] != company.email:
            clash = self.session.exec(
                select(Company).where(Company.email == changes["email"])
            ).first()
            if clash:
                raise HTTPException(
                    409, "A company with this email already exists.")

        quota_fields = {"available_forms", "forms_to_create"}
        for key, value in changes.items():
            if key not in quota_fields:
                setattr(company, key, value)
        self.session.add(company)

        abonnement = company.abonnement
        if abonnement:
            for key in quota_fields & changes.keys():
                setattr(abonnement, key, changes[key])
            self.session.add(abonnement)

        try:
            self.session.commit()
            self.session.refresh(company)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Company update failed: {e}")
            raise HTTPException(500, "Could not update company.")

        logger.info(f"Company updated: {company.id} -> {list(changes)}")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company.id,
            user_id=actor.user_id,
            entity_type="Company",
            entity_id=company.id,
            action=AuditAction.UPDATE,
            changes=data.model_dump(mode='json', exclude_unset=True),
        )
        return self._to_read(company)

    def set_active(
        self,
        actor: ActorContext,
        company_id: uuid.UUID,
        active: bool,
        background_tasks: BackgroundTasks
    ) -> dict:
        """Toggles the company and every one of its users."""
        company = self._get_company(company_id)
        company.is_active = active
        self.session.add(company)

        users = self.session.exec(
            select(User).where(User.company_id == company.id)).all()
        for user in users:
            user.is_active = active
            self.session.add(user)

        try:
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Company status change failed: {e}")
            raise HTTPException(500, "Could not update company status.")

        verb = "activated" if active else "deactivated"
        logger.info(f"Company {company.id} {verb} with {len(users)} user(s)")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=company.id,
            user_id=actor.user_id,
            entity_type="Company",
            entity_id=company.id,
            action=AuditAction.ACTIVATE if active else AuditAction.DEACTIVATE,
            changes={"is_active": active, "users": len(users)},
        )
        return {"message": f"Company and its users {verb} successfully"}

    def delete_company(
        self,
        actor: ActorContext,
        company_id: uuid.UUID,
        background_tasks: BackgroundTasks
    ) -> dict:
        """
        Removes the company and everything hanging off it: submissions,
        assignments, validator pairings, templates, discussions, users.
        """
        company = self._get_company(company_id)

        user_ids = list(self.session.exec(
            select(User.id).where(User.company_id == company.id)).all())
        template_ids = list(self.session.exec(
            select(FormTemplate.id).where(FormTemplate.company_id == company.id)).all())

        try:
            self._delete_rows(select(FormSubmission).where(
                FormSubmission.form_template_id.in_(template_ids)
                | FormSubmission.user_id.in_(user_ids)
            ))
            self._delete_rows(select(FormAssignment).where(
                FormAssignment.form_template_id.in_(template_ids)
                | FormAssignment.user_id.in_(user_ids)
            ))
            self._delete_rows(select(ValidatorTechnicianAssignment).where(
                ValidatorTechnicianAssignment.form_template_id.in_(
                    template_ids)
                | ValidatorTechnicianAssignment.validator_id.in_(user_ids)
                | ValidatorTechnicianAssignment.technician_id.in_(user_ids)
            ))
            self._delete_rows(select(FormTemplate).where(
                FormTemplate.company_id == company.id))
            self._delete_rows(select(Discussion).where(
                Discussion.sender_id.in_(user_ids)
                | Discussion.recipient_id.in_(user_ids)
            ))
            self._delete_rows(select(Abonnement).where(
                Abonnement.company_id == company.id))
            self._delete_rows(select(User).where(
                User.company_id == company.id))

            self.session.delete(company)
            self.session.commit()

        except Exception as e:
            self.session.rollback()
            logger.error(f"Company deletion failed: {e}")
            raise HTTPException(500, "Could not delete company.")

        logger.info(
            f"Company deleted: {company_id} ({len(user_ids)} users, {len(template_ids)} templates)")
        background_tasks.add_task(
            _perform_audit_log,
            company_id=None,
            user_id=actor.user_id,
            entity_type="Company",
            entity_id=company_id,
            action=AuditAction.DELETE,
            changes={"users": len(user_ids), "templates": len(template_ids)},
        )
        return {"message": "Company and associated data deleted successfully"}

    def _delete_rows(self, statement) -> None:
        for row in self.session.exec(statement).all():
            self.session.delete(row)
        self.session.flush()
