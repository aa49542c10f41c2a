"""
Signup, login and session lookup.

All outcomes a caller can cause (missing fields, duplicate email, bad
credentials) are raised as ``AuthError`` subclasses. Storage faults are
logged here and re-raised as a bare ``ServerError``.
"""

from __future__ import annotations

import logging
from dataclasses import astuple, dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import passwords
from backend.auth.errors import (
    FieldValidationError,
    InvalidCredentialsError,
    ServerError,
    UserNotFoundError,
)
from backend.auth.sessions import SessionManager
from backend.auth.user_store import UserProfile, UserStore
from backend.models.user import User, normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSummary:
    fullname: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(fullname=user.fullname, email=user.email)


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: UserSummary

    def __repr__(self) -> str:
        return f"LoginResult(user={self.user!r})"


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _is_text(value: str) -> bool:
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class AuthService:
    def __init__(self, db: Session, sessions: SessionManager) -> None:
        self._db = db
        self.users = UserStore(db)
        self.sessions = sessions

    def _server_error(self, operation: str, exc: Exception) -> ServerError:
        logger.exception("%s failed", operation, exc_info=exc)
        self._db.rollback()
        return ServerError()

    def signup(self, profile: UserProfile, password: str | None) -> UserSummary:
        cleaned = UserProfile(
            fullname=_clean(profile.fullname),
            email=_clean(profile.email),
            phone=_clean(profile.phone),
            cet_roll_number=_clean(profile.cet_roll_number),
            category=_clean(profile.category),
        )
        if not all(astuple(cleaned)) or not _clean(password):
            raise FieldValidationError("All fields are required")
        if not all(_is_text(value) for value in (*astuple(cleaned), password)):
            raise FieldValidationError("Fields must be valid text")
        if len(password.encode("utf-8")) > passwords.MAX_PASSWORD_BYTES:
            raise FieldValidationError(
                f"Password must be at most {passwords.MAX_PASSWORD_BYTES} bytes"
            )

        password_hash = passwords.hash_password(password)
        try:
            self.users.create(cleaned, password_hash)
        except SQLAlchemyError as exc:
            raise self._server_error("Signup", exc) from exc

        return UserSummary(fullname=cleaned.fullname, email=normalize_email(cleaned.email))

    def login(
        self,
        email: str | None,
        password: str | None,
        previous_token: str | None = None,
    ) -> LoginResult:
        if not _clean(email) or not password:
            raise FieldValidationError("Email and password required")
        if not _is_text(email):
            passwords.burn_verification(password)
            raise UserNotFoundError()

        try:
            user = self.users.find_by_email(email)
        except SQLAlchemyError as exc:
            raise self._server_error("Login", exc) from exc

        if user is None:
            passwords.burn_verification(password)
            raise UserNotFoundError()

        if not passwords.verify_password(password, user.password_hash):
            logger.info("Rejected password for user %s", user.id)
            raise InvalidCredentialsError()

        # Never reuse a token the caller arrived with.
        self.sessions.destroy(previous_token)
        token = self.sessions.issue(user.id)
        return LoginResult(token=token, user=UserSummary.from_user(user))

    def logout(self, token: str | None) -> None:
        self.sessions.destroy(token)

    def current_user(self, token: str | None) -> Optional[User]:
        user_id = self.sessions.resolve(token)
        if user_id is None:
            return None

        try:
            user = self.users.find_by_id(user_id)
        except SQLAlchemyError as exc:
            raise self._server_error("Session lookup", exc) from exc

        if user is None:
            # The account behind this session no longer exists.
            self.sessions.destroy(token)
        return user

    def current_subject(self, token: str | None) -> Optional[UserSummary]:
        user = self.current_user(token)
        if user is None:
            return None
        return UserSummary.from_user(user)
