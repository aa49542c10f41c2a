import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import gate, sessions
from backend.auth.errors import (
    AuthError,
    DuplicateIdentityError,
    FieldValidationError,
    ForbiddenError,
    InvalidCredentialsError,
    ServerError,
    UnauthenticatedError,
    UserNotFoundError,
)
from backend.auth.service import AuthService
from backend.auth.user_store import UserStore
from backend.core import config
from backend.database import get_db
from backend.models.user import User, UserRole

logger = logging.getLogger(__name__)

GENERIC_LOGIN_FAILURE = "Invalid email or password"

_STATUS_CODES = {
    FieldValidationError: status.HTTP_400_BAD_REQUEST,
    DuplicateIdentityError: status.HTTP_409_CONFLICT,
    UserNotFoundError: status.HTTP_401_UNAUTHORIZED,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


def http_error(exc: AuthError) -> HTTPException:
    if isinstance(exc, (UserNotFoundError, InvalidCredentialsError)) and not config.LOGIN_REVEAL_UNKNOWN_EMAIL:
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=GENERIC_LOGIN_FAILURE)

    status_code = _STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = exc.message if status_code < 500 else ServerError.default_message
    return HTTPException(status_code=status_code, detail=detail)


def get_session_manager() -> sessions.SessionManager:
    return sessions.session_manager


def get_session_token(request: Request) -> str | None:
    return request.cookies.get(config.SESSION_COOKIE_NAME) or None


def get_auth_service(
    db: Session = Depends(get_db),
    manager: sessions.SessionManager = Depends(get_session_manager),
) -> AuthService:
    return AuthService(db, manager)


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def require_role(role: UserRole):
    """Build a dependency that admits only sessions whose user holds ``role``."""

    def dependency(
        token: str | None = Depends(get_session_token),
        db: Session = Depends(get_db),
        manager: sessions.SessionManager = Depends(get_session_manager),
    ) -> User:
        try:
            return gate.authorize(token, role, manager, UserStore(db))
        except AuthError as exc:
            raise http_error(exc) from exc
        except SQLAlchemyError as exc:
            logger.exception("Authorization check failed")
            raise http_error(ServerError()) from exc

    dependency.__name__ = f"require_{role.value}"
    return dependency


require_admin = require_role(UserRole.ADMIN)
