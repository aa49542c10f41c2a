from backend.auth.errors import ForbiddenError, UnauthenticatedError
from backend.auth.sessions import SessionManager
from backend.auth.user_store import UserStore
from backend.models.user import User, UserRole


def resolve_subject(token: str | None, sessions: SessionManager, users: UserStore) -> User:
    user_id = sessions.resolve(token)
    user = users.find_by_id(user_id)
    if user is None:
        raise UnauthenticatedError()
    return user


def authorize(
    token: str | None,
    required_role: UserRole,
    sessions: SessionManager,
    users: UserStore,
) -> User:
    """Return the session's user if it currently holds ``required_role``.

    The role is read from the credential store on every call, so a revoked
    role stops working on the very next request.
    """
    user = resolve_subject(token, sessions, users)
    if user.role != required_role:
        raise ForbiddenError()
    return user
