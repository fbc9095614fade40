from typing import Optional
import uuid
from datetime import datetime, timedelta

import jwt
from loguru import logger
from sqlmodel import Session, select
from fastapi import HTTPException, status

from app.core.config import settings
from app.db.schema import User, Company
from app.models.auth import Token, TokenData, ActorContext, PasswordChange
from .password import get_password_hash, verify_password


class UserService:
    ALGORITHM = "HS256"

    def __init__(self, session: Session):
        self.session = session

    def _create_jwt(self, subject: str, expires_delta: timedelta, type: str) -> str:
        """Helper to sign JWTs with specific types."""
        to_encode = {
            "sub": str(subject),
            "exp": datetime.utcnow() + expires_delta,
            "type": type
        }
        return jwt.encode(to_encode, settings.secret_key, algorithm=self.ALGORITHM)

    def _decode(self, token: str, expected_type: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key,
                                 algorithms=[self.ALGORITHM])
            user_id = payload.get("sub")
            token_type = payload.get("type")

            if not user_id or token_type != expected_type:
                return None

            return TokenData(user_id=uuid.UUID(user_id))
        except (jwt.PyJWTError, ValueError):
            return None

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return self.session.exec(statement).first()

    def build_actor(self, user: User) -> ActorContext:
        """
        Resolves the request-scoped identity of an authenticated user.
        Users of a deactivated company are refused even if their own flag
        was left on.
        """
        if user.company_id:
            company = self.session.get(Company, user.company_id)
            if not company or not company.is_active:
                logger.warning(
                    f"Access denied: company of user {user.id} is inactive.")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Your company has been deactivated."
                )

        return ActorContext(
            user_id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            company_id=user.company_id,
            is_active=user.is_active
        )

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Verify email and password hash."""
        user = self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def generate_access_token(self, user: User) -> str:
        return self._create_jwt(
            subject=user.id,
            expires_delta=timedelta(
                minutes=settings.access_token_expire_minutes),
            type="access"
        )

    def generate_refresh_token(self, user: User) -> str:
        return self._create_jwt(
            subject=user.id,
            expires_delta=timedelta(
                minutes=settings.refresh_token_expire_minutes),
            type="refresh"
        )

    def generate_tokens(self, user: User) -> Token:
        return Token(
            access_token=self.generate_access_token(user),
            refresh_token=self.generate_refresh_token(user),
            token_type="bearer"
        )

    def verify_access_token(self, token: str) -> Optional[TokenData]:
        return self._decode(token, "access")

    def verify_refresh_token(self, token: str) -> Optional[TokenData]:
        return self._decode(token, "refresh")

    def validate_user(self, user_id: uuid.UUID) -> Optional[User]:
        """Retrieves user and checks is_active flag."""
        user = self.get_user_by_id(user_id)
        if not user or not user.is_active:
            return None
        return user

    def refresh_session(self, refresh_token: str) -> str:
        """
        Exchange a valid refresh token for a new access token.
        Strictly validates the user state before issuing.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        token_data = self.verify_refresh_token(refresh_token)
        if not token_data:
            raise credentials_exception

        user = self.validate_user(token_data.user_id)
        if not user:
            raise credentials_exception

        return self.generate_access_token(user)

    def change_password(self, actor: ActorContext, data: PasswordChange) -> dict:
        if data.new_password != data.new_password_confirmation:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"new_password": [
                    "The new password confirmation does not match."]}
            )

        user = self.get_user_by_id(actor.user_id)
        if not verify_password(data.current_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"current_password": [
                    "The provided password does not match your current password."]}
            )

        user.hashed_password = get_password_hash(data.new_password)
        self.session.add(user)
        self.session.commit()

        logger.info(f"Password changed for user {user.id}")
        return {"message": "Password changed successfully"}
