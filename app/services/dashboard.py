import uuid
from sqlmodel import Session, select, func, or_

from app.core.permissions import require_company
from app.db.schema import (
    User, Role, COLLABORATOR_ROLES, Abonnement, SubmissionStatus,
    FormTemplate, FormAssignment, FormSubmission, ValidatorTechnicianAssignment
)
from app.models.auth import ActorContext
from app.models.dashboard import (
    AdminDashboardStats, CollaboratorDashboardStats, SubmissionsByStatus
)


class DashboardService:
    def __init__(self, session: Session):
        self.session = session

    def _count_by_status(self, statement) -> SubmissionsByStatus:
        """Folds a (status, count) grouping into the four workflow buckets."""
        rows = self.session.exec(statement).all()
        counts = {status.value: 0 for status in SubmissionStatus}
        for status, count in rows:
            counts[SubmissionStatus(status).value] = count
        return SubmissionsByStatus(**counts)

    # ==========================================================================
    # ADMINISTRATOR
    # ==========================================================================

    def get_admin_stats(self, actor: ActorContext) -> AdminDashboardStats:
        company_id = require_company(actor)

        total_collaborators = self.session.exec(
            select(func.count(User.id))
            .where(User.company_id == company_id)
            .where(User.role.in_(COLLABORATOR_ROLES))
        ).one()

        active_collaborators = self.session.exec(
            select(func.count(User.id))
            .where(User.company_id == company_id)
            .where(User.role.in_(COLLABORATOR_ROLES))
            .where(User.is_active == True)
        ).one()

        total_forms = self.session.exec(
            select(func.count(FormTemplate.id))
            .where(FormTemplate.company_id == company_id)
        ).one()

        abonnement = self.session.exec(
            select(Abonnement).where(Abonnement.company_id == company_id)
        ).first()

        by_status = self._count_by_status(
            select(FormSubmission.status, func.count(FormSubmission.id))
            .join(FormTemplate, FormTemplate.id == FormSubmission.form_template_id)
            .where(FormTemplate.company_id == company_id)
            .group_by(FormSubmission.status)
        )

        return AdminDashboardStats(
            total_collaborators=total_collaborators,
            active_collaborators=active_collaborators,
            total_forms=total_forms,
            available_forms=abonnement.available_forms if abonnement else 0,
            forms_to_create=abonnement.forms_to_create if abonnement else 0,
            total_submissions=sum(by_status.model_dump().values()),
            submissions_by_status=by_status
        )

    # ==========================================================================
    # COLLABORATOR
    # ==========================================================================

    def get_collaborator_stats(self, actor: ActorContext) -> CollaboratorDashboardStats:
        assigned = self.session.exec(
            select(func.count(FormAssignment.id))
            .where(FormAssignment.user_id == actor.user_id)
            .where(FormAssignment.is_completed == False)
        ).one()

        completed = self.session.exec(
            select(func.count(FormAssignment.id))
            .where(FormAssignment.user_id == actor.user_id)
            .where(FormAssignment.is_completed == True)
        ).one()

        stats = CollaboratorDashboardStats(
            assigned_forms=assigned,
            completed_forms=completed,
            submissions_by_status=self._count_by_status(
                select(FormSubmission.status, func.count(FormSubmission.id))
                .where(FormSubmission.user_id == actor.user_id)
                .group_by(FormSubmission.status)
            )
        )

        if actor.role == Role.VALIDATOR:
            stats.pending_validation = self._count_pending_validation(
                actor.user_id)
            stats.validated_forms = self.session.exec(
                select(func.count(FormSubmission.id))
                .where(FormSubmission.validated_by == actor.user_id)
                .where(FormSubmission.status == SubmissionStatus.VALIDATED)
            ).one()

        return stats

    def _count_pending_validation(self, validator_id: uuid.UUID) -> int:
        # Same scope as the validator's review queue
        paired = (
            select(ValidatorTechnicianAssignment.id)
            .where(ValidatorTechnicianAssignment.validator_id == validator_id)
            .where(ValidatorTechnicianAssignment.form_template_id == FormSubmission.form_template_id)
            .where(ValidatorTechnicianAssignment.technician_id == FormSubmission.user_id)
            .exists()
        )
        return self.session.exec(
            select(func.count(FormSubmission.id))
            .where(FormSubmission.status == SubmissionStatus.SUBMITTED)
            .where(or_(paired, FormSubmission.user_id == validator_id))
        ).one()
