"""User model definitions."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, String
from sqlalchemy.orm import validates

from backend.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


class UserRole(str, enum.Enum):
    """Closed set of roles a user account can hold."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """A registered portal account.

    ``password_hash`` is a bcrypt digest and must never leave the backend.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    fullname = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=False)
    cet_roll_number = Column(String, nullable=False)
    category = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(
        Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=UserRole.USER,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return normalize_email(value)

    @validates("fullname")
    def _trim_fullname(self, _key: str, value: str) -> str:
        return (value or "").strip()

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r}, role={self.role!r})"
