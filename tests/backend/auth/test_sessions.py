import threading
from datetime import timedelta

import pytest

from backend.auth.sessions import (
    InMemorySessionStore,
    SessionManager,
    clear_session_cookie_kwargs,
    session_cookie_kwargs,
)
from backend.core import config


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def manager(store, fake_clock) -> SessionManager:
    return SessionManager(store, ttl_seconds=24 * 60 * 60, clock=fake_clock)


def test_issue_returns_resolvable_unique_tokens(manager: SessionManager) -> None:
    first = manager.issue(1)
    second = manager.issue(1)

    assert first != second
    assert len(first) >= 43
    assert manager.resolve(first) == 1
    assert manager.resolve(second) == 1


def test_store_never_holds_the_raw_token(manager: SessionManager, store: InMemorySessionStore) -> None:
    token = manager.issue(7)

    assert token not in store._sessions
    assert all(token not in repr(session) for session in store._sessions.values())


@pytest.mark.parametrize('token', [None, '', 'unknown-token'])
def test_resolve_returns_none_for_unknown_tokens(manager: SessionManager, token) -> None:
    assert manager.resolve(token) is None


def test_destroy_is_idempotent(manager: SessionManager) -> None:
    token = manager.issue(3)

    manager.destroy(token)
    manager.destroy(token)
    manager.destroy('never-issued')
    manager.destroy(None)

    assert manager.resolve(token) is None


def test_session_expires_after_ttl_without_logout(manager: SessionManager, store, fake_clock) -> None:
    token = manager.issue(5)

    fake_clock.now += timedelta(hours=23, minutes=59)
    assert manager.resolve(token) == 5

    fake_clock.now += timedelta(minutes=1)
    assert manager.resolve(token) is None
    assert len(store) == 0


def test_resolve_does_not_extend_expiry(manager: SessionManager, fake_clock) -> None:
    token = manager.issue(5)

    for _ in range(4):
        fake_clock.now += timedelta(hours=6)
        manager.resolve(token)

    assert manager.resolve(token) is None


def test_purge_expired_removes_only_expired_sessions(manager: SessionManager, store, fake_clock) -> None:
    old_token = manager.issue(1)
    fake_clock.now += timedelta(hours=12)
    fresh_token = manager.issue(2)
    fake_clock.now += timedelta(hours=12)

    assert manager.purge_expired() == 1
    assert len(store) == 1
    assert manager.resolve(old_token) is None
    assert manager.resolve(fresh_token) == 2


def test_issue_sweeps_abandoned_sessions_after_ttl(store, fake_clock) -> None:
    manager = SessionManager(store, ttl_seconds=60, clock=fake_clock)
    for user_id in range(1000):
        manager.issue(user_id)

    fake_clock.now += timedelta(days=30)
    for user_id in range(10):
        manager.issue(user_id)

    assert len(store) == 10


def test_issue_sweeps_at_most_once_per_interval(monkeypatch: pytest.MonkeyPatch, store, fake_clock) -> None:
    manager = SessionManager(store, ttl_seconds=60, clock=fake_clock, purge_interval_seconds=300)
    sweeps = []
    monkeypatch.setattr(manager, 'purge_expired', lambda: sweeps.append(fake_clock.now) or 0)

    manager.issue(1)
    fake_clock.now += timedelta(seconds=299)
    manager.issue(2)
    fake_clock.now += timedelta(seconds=1)
    manager.issue(3)

    assert len(sweeps) == 2


def test_rejects_non_positive_purge_interval() -> None:
    with pytest.raises(ValueError):
        SessionManager(purge_interval_seconds=0)


def test_issue_retries_on_key_collision(monkeypatch: pytest.MonkeyPatch, manager: SessionManager) -> None:
    tokens = iter(['same', 'same', 'different'])
    monkeypatch.setattr('backend.auth.sessions.secrets.token_urlsafe', lambda _n: next(tokens))

    assert manager.issue(1) == 'same'
    assert manager.issue(2) == 'different'


def test_rejects_non_positive_ttl() -> None:
    with pytest.raises(ValueError):
        SessionManager(ttl_seconds=0)


def test_concurrent_issue_resolve_destroy_is_consistent() -> None:
    manager = SessionManager(InMemorySessionStore())
    errors: list[str] = []
    barrier = threading.Barrier(16)

    def worker(user_id: int) -> None:
        barrier.wait()
        for _ in range(200):
            token = manager.issue(user_id)
            if manager.resolve(token) != user_id:
                errors.append(f'wrong subject for {user_id}')
            manager.destroy(token)
            if manager.resolve(token) is not None:
                errors.append(f'destroyed token resolved for {user_id}')

    threads = [threading.Thread(target=worker, args=(user_id,)) for user_id in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(manager._store) == 0


def test_session_cookie_is_http_only_with_ttl() -> None:
    kwargs = session_cookie_kwargs('token-value')

    assert kwargs['key'] == config.SESSION_COOKIE_NAME
    assert kwargs['value'] == 'token-value'
    assert kwargs['httponly'] is True
    assert kwargs['samesite'] == 'lax'
    assert kwargs['max_age'] == config.SESSION_TTL_SECONDS
    assert kwargs['path'] == '/'


def test_clear_session_cookie_expires_immediately() -> None:
    kwargs = clear_session_cookie_kwargs()

    assert kwargs['value'] == ''
    assert kwargs['max_age'] == 0
