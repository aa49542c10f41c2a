from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.auth.errors import DuplicateIdentityError
from backend.models.user import User, UserRole, normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    fullname: str
    email: str
    phone: str
    cet_roll_number: str
    category: str


class UserStore:
    """
    Credential storage on top of a SQLAlchemy session.

    Uniqueness of the normalized email is enforced by the database index,
    never by a lookup before insert.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, profile: UserProfile, password_hash: str, role: UserRole = UserRole.USER) -> int:
        """
        Insert a new user.

        Raises:
            DuplicateIdentityError: If the normalized email is already registered
        """
        if not password_hash:
            raise ValueError("password_hash cannot be empty")

        user = User(
            fullname=profile.fullname,
            email=profile.email,
            phone=profile.phone,
            cet_roll_number=profile.cet_roll_number,
            category=profile.category,
            password_hash=password_hash,
            role=role,
        )
        self._db.add(user)
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            raise DuplicateIdentityError() from exc
        self._db.refresh(user)
        logger.info("Created user %s", user.id)
        return user.id

    def find_by_email(self, email: str | None) -> Optional[User]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return self._db.query(User).filter(User.email == normalized).first()

    def find_by_id(self, user_id: int | None) -> Optional[User]:
        if user_id is None:
            return None
        return self._db.get(User, user_id)

    def list_all(self) -> list[User]:
        return self._db.query(User).order_by(User.created_at.asc(), User.id.asc()).all()
