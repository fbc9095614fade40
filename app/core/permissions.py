"""
Role capability checks shared by every service.

Route-level role gating lives in `app.core.dependencies.require_roles`;
the helpers here answer the finer, data-dependent questions (which company,
which submission).
"""
import uuid
from typing import Optional

from fastapi import HTTPException, status
from loguru import logger
from sqlmodel import Session, select

from app.db.schema import (
    Role, FormSubmission, FormTemplate, ValidatorTechnicianAssignment
)
from app.models.auth import ActorContext


def ensure_role(actor: ActorContext, *roles: Role, detail: Optional[str] = None) -> None:
    if actor.role not in roles:
        logger.warning(
            f"Role check failed: user {actor.user_id} ({actor.role.value}) needs one of {[r.value for r in roles]}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail or "Unauthorized. You do not have the required role."
        )


def require_company(actor: ActorContext) -> uuid.UUID:
    """Returns the actor's company id, or 403 for company-less accounts (root)."""
    if not actor.company_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No active company."
        )
    return actor.company_id


def ensure_company_scope(actor: ActorContext, company_id: Optional[uuid.UUID]) -> None:
    if actor.role == Role.ROOT:
        return
    if company_id is None or company_id != actor.company_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This resource belongs to another company."
        )


def is_assigned_validator(
    session: Session,
    validator_id: uuid.UUID,
    form_template_id: uuid.UUID,
    technician_id: uuid.UUID
) -> bool:
    pairing = session.exec(
        select(ValidatorTechnicianAssignment)
        .where(ValidatorTechnicianAssignment.form_template_id == form_template_id)
        .where(ValidatorTechnicianAssignment.validator_id == validator_id)
        .where(ValidatorTechnicianAssignment.technician_id == technician_id)
    ).first()
    return pairing is not None


def can_review_submission(session: Session, actor: ActorContext, submission: FormSubmission) -> bool:
    """
    A validator may validate/refuse a submission when paired with its owner
    for that template, or when the submission is their own.
    """
    if actor.role != Role.VALIDATOR:
        return False
    if submission.user_id == actor.user_id:
        return True
    return is_assigned_validator(
        session, actor.user_id, submission.form_template_id, submission.user_id)


def can_view_submission(session: Session, actor: ActorContext, submission: FormSubmission) -> bool:
    if submission.user_id == actor.user_id:
        return True
    if actor.role == Role.ADMINISTRATOR:
        template = session.get(FormTemplate, submission.form_template_id)
        return template is not None and template.company_id == actor.company_id
    return can_review_submission(session, actor, submission)
