from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from app.core.dependencies import get_user_service, get_actor
from app.services.user import UserService
from app.models.auth import Token, TokenAccess, TokenRefresh, ActorContext, PasswordChange
from app.models.user import UserSignin, UserRead


router = APIRouter()


@router.post(
    "/token",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="Signin to get tokens",
    description="Returns an Access Token (short-lived) and Refresh Token (long-lived)."
)
def token(
    signin_data: UserSignin,
    service: UserService = Depends(get_user_service)
):
    """
    1. Verifies password.
    2. Checks that the user and their company are active.
    3. Issues JWTs.
    """
    user = service.authenticate_user(signin_data.email, signin_data.password)

    if not user:
        # Generic error to prevent user enumeration
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated."
        )

    # Refuses users of a deactivated company
    service.build_actor(user)

    tokens = service.generate_tokens(user)

    logger.info(f"User logged in: {user.id}")

    return tokens


@router.post(
    "/refresh",
    response_model=TokenAccess,
    status_code=status.HTTP_200_OK,
    summary="Refresh Session",
    description="Exchanges a valid Refresh Token for a new Access Token."
)
def refresh_token(
    refresh_data: TokenRefresh,
    service: UserService = Depends(get_user_service)
):
    return TokenAccess(access_token=service.refresh_session(refresh_data.refresh_token))


@router.get(
    "/me",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Returns the profile information of the currently authenticated user."
)
def get_me(
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    return service.get_user_by_id(actor.user_id)


@router.put(
    "/change-password",
    status_code=status.HTTP_200_OK,
    summary="Change own password"
)
def change_password(
    data: PasswordChange,
    actor: ActorContext = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    return service.change_password(actor, data)
