"""
Server-side session state.

Sessions live in a process-wide keyed store. The raw token only ever exists
on the caller's side; the store is keyed by its SHA-256 digest.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Optional, Protocol

from backend.core import config

logger = logging.getLogger(__name__)

SESSION_TOKEN_BYTES = 32
MAX_ISSUE_ATTEMPTS = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Session:
    key: str
    user_id: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def __repr__(self) -> str:
        return f"Session(user_id={self.user_id!r}, expires_at={self.expires_at.isoformat()})"


class SessionStore(Protocol):
    """Backing store for sessions. Each method must be atomic."""

    def add(self, session: Session) -> bool:
        """Insert unless the key exists. Returns False on collision."""

    def get_live(self, key: str, now: datetime) -> Optional[Session]:
        """Return the session if unexpired, deleting it if expired."""

    def remove(self, key: str) -> None:
        ...

    def remove_where(self, predicate: Callable[[Session], bool]) -> int:
        ...


class InMemorySessionStore:
    """Dict-backed store for single-process deployments."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def add(self, session: Session) -> bool:
        with self._lock:
            if session.key in self._sessions:
                return False
            self._sessions[session.key] = session
            return True

    def get_live(self, key: str, now: datetime) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return None
            if session.is_expired(now):
                del self._sessions[key]
                return None
            return session

    def remove(self, key: str) -> None:
        with self._lock:
            self._sessions.pop(key, None)

    def remove_where(self, predicate: Callable[[Session], bool]) -> int:
        with self._lock:
            doomed = [key for key, session in self._sessions.items() if predicate(session)]
            for key in doomed:
                del self._sessions[key]
            return len(doomed)


class SessionManager:
    """
    Issues, resolves and destroys opaque session tokens.

    Sessions have an absolute expiry of ``ttl_seconds`` from issue time and
    are never extended. Expired sessions are dropped lazily on ``resolve``
    and in bulk by ``purge_expired``, which ``issue`` also runs at most once
    per purge interval.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        ttl_seconds: int = config.SESSION_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        purge_interval_seconds: int = config.SESSION_PURGE_INTERVAL_SECONDS,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if purge_interval_seconds <= 0:
            raise ValueError("purge_interval_seconds must be positive")
        self._store = store if store is not None else InMemorySessionStore()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._purge_interval = timedelta(seconds=purge_interval_seconds)
        self._next_purge: Optional[datetime] = None
        self._purge_lock = Lock()

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    @staticmethod
    def _key(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def issue(self, user_id: int) -> str:
        self._purge_if_due()
        for _ in range(MAX_ISSUE_ATTEMPTS):
            token = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
            now = self._clock()
            session = Session(
                key=self._key(token),
                user_id=user_id,
                created_at=now,
                expires_at=now + self._ttl,
            )
            if self._store.add(session):
                logger.debug("Issued session for user %s", user_id)
                return token
        raise RuntimeError("Could not allocate a unique session token")

    def resolve(self, token: str | None) -> Optional[int]:
        if not token:
            return None
        session = self._store.get_live(self._key(token), self._clock())
        if session is None:
            return None
        return session.user_id

    def destroy(self, token: str | None) -> None:
        if not token:
            return
        self._store.remove(self._key(token))

    def purge_expired(self) -> int:
        now = self._clock()
        purged = self._store.remove_where(lambda session: session.is_expired(now))
        if purged:
            logger.info("Purged %d expired sessions", purged)
        return purged

    def _purge_if_due(self) -> None:
        now = self._clock()
        with self._purge_lock:
            if self._next_purge is not None and now < self._next_purge:
                return
            self._next_purge = now + self._purge_interval
        self.purge_expired()


session_manager = SessionManager()


def session_cookie_kwargs(token: str, max_age: int | None = None) -> dict:
    # HttpOnly keeps the token away from page scripts.
    return {
        "key": config.SESSION_COOKIE_NAME,
        "value": token,
        "max_age": max_age if max_age is not None else config.SESSION_TTL_SECONDS,
        "httponly": True,
        "secure": config.SESSION_COOKIE_SECURE,
        "samesite": config.SESSION_COOKIE_SAMESITE,
        "path": "/",
    }


def clear_session_cookie_kwargs() -> dict:
    return session_cookie_kwargs("", max_age=0)
