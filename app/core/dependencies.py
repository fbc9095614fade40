from typing import Callable
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from sqlmodel import Session
from pydantic import ValidationError
from loguru import logger

from app.core.broadcast import Broadcaster, get_broadcaster
from app.db.core import get_session
from app.db.schema import User, Role
from app.models.auth import ActorContext
from app.services.user import UserService
from app.services.company import CompanyService
from app.services.collaborator import CollaboratorService
from app.services.form_template import FormTemplateService
from app.services.form_assignment import FormAssignmentService
from app.services.form_submission import FormSubmissionService
from app.services.dashboard import DashboardService
from app.services.discussion import DiscussionService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    """Creates a UserService instance using the active DB session."""
    return UserService(session)


def get_company_service(session: Session = Depends(get_session)) -> CompanyService:
    return CompanyService(session=session)


def get_collaborator_service(session: Session = Depends(get_session)) -> CollaboratorService:
    return CollaboratorService(session=session)


def get_form_template_service(session: Session = Depends(get_session)) -> FormTemplateService:
    return FormTemplateService(session=session)


def get_form_assignment_service(session: Session = Depends(get_session)) -> FormAssignmentService:
    return FormAssignmentService(session=session)


def get_form_submission_service(session: Session = Depends(get_session)) -> FormSubmissionService:
    return FormSubmissionService(session=session)


def get_dashboard_service(session: Session = Depends(get_session)) -> DashboardService:
    return DashboardService(session=session)


def get_discussion_service(
    session: Session = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster)
) -> DiscussionService:
    return DiscussionService(session=session, broadcaster=broadcaster)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: UserService = Depends(get_user_service)
) -> User:
    """
    Validates the JWT token and retrieves the user.
    This is the gatekeeper for protected routes.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        token_data = service.verify_access_token(token)

        if not token_data:
            raise credentials_exception

    except (InvalidTokenError, ValidationError):
        raise credentials_exception

    user = service.get_user_by_id(token_data.user_id)

    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated."
        )

    return user


def get_actor(
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
) -> ActorContext:
    """The explicit caller identity handed to services."""
    return service.build_actor(user)


def require_roles(*roles: Role) -> Callable[..., ActorContext]:
    """
    Route-level role gate:

        actor: ActorContext = Depends(require_roles(Role.ADMINISTRATOR))
    """
    def dependency(actor: ActorContext = Depends(get_actor)) -> ActorContext:
        if actor.role not in roles:
            logger.warning(
                f"User {actor.user_id} ({actor.role.value}) refused on a {[r.value for r in roles]} route")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized. You do not have the required role."
            )
        return actor

    return dependency
