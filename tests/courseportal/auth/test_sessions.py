from datetime import datetime, timedelta

import jwt
import pytest

from courseportal.auth import jwt_handler
from courseportal.auth.sessions import (
    DatabaseSessionStore,
    InMemorySessionStore,
    SessionUser,
    build_session_store,
)

SECRET = 'test-session-secret-with-at-least-32-bytes'


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 5, 12, 0))


@pytest.fixture(params=['memory', 'database'])
def store(request, clock, session_factory):
    if request.param == 'memory':
        return InMemorySessionStore(idle_minutes=30, clock=clock)
    return DatabaseSessionStore(session_factory, idle_minutes=30, clock=clock)


def _user(**overrides) -> SessionUser:
    fields = {'id': 7, 'username': 'ada', 'full_name': 'Ada Lovelace', 'email': 'ada@example.edu', 'role': 'student'}
    fields.update(overrides)
    return SessionUser(**fields)


def test_create_then_get_returns_same_profile(store) -> None:
    created = store.create(_user())

    fetched = store.get(created.session_id)

    assert fetched is not None
    assert fetched.user == _user()
    assert fetched.session_id == created.session_id


def test_session_ids_are_unique_and_opaque(store) -> None:
    first = store.create(_user())
    second = store.create(_user())

    assert first.session_id != second.session_id
    assert len(first.session_id) >= 32


def test_get_unknown_session_returns_none(store) -> None:
    assert store.get('no-such-session') is None


def test_destroy_is_idempotent(store) -> None:
    created = store.create(_user())

    store.destroy(created.session_id)
    store.destroy(created.session_id)

    assert store.get(created.session_id) is None


def test_idle_session_expires(store, clock) -> None:
    created = store.create(_user())

    clock.advance(minutes=31)

    assert store.get(created.session_id) is None


def test_lookup_slides_expiry_forward(store, clock) -> None:
    created = store.create(_user())

    clock.advance(minutes=20)
    assert store.get(created.session_id) is not None
    clock.advance(minutes=20)

    assert store.get(created.session_id) is not None


def test_purge_expired_removes_only_idle_sessions(store, clock) -> None:
    stale = store.create(_user())
    clock.advance(minutes=25)
    fresh = store.create(_user(id=8, username='grace', email='grace@example.edu'))
    clock.advance(minutes=10)

    removed = store.purge_expired()

    assert removed == 1
    assert store.get(stale.session_id) is None
    assert store.get(fresh.session_id) is not None


def test_update_user_does_not_change_earlier_snapshot(store) -> None:
    created = store.create(_user())
    snapshot = store.get(created.session_id)

    store.update_user(created.session_id, _user(role='teacher'))

    assert snapshot.user.role == 'student'
    assert store.get(created.session_id).user.role == 'teacher'


def test_build_session_store_picks_backend(session_factory) -> None:
    assert isinstance(build_session_store('memory', 10), InMemorySessionStore)
    assert isinstance(build_session_store('database', 10, session_factory), DatabaseSessionStore)


@pytest.mark.parametrize(('backend', 'factory'), [('database', None), ('redis', None)])
def test_build_session_store_rejects_bad_configuration(backend: str, factory) -> None:
    with pytest.raises(ValueError):
        build_session_store(backend, 10, factory)


def test_session_token_round_trips_session_id() -> None:
    token = jwt_handler.create_session_token('abc123', SECRET, expires_minutes=5)

    assert jwt_handler.decode_session_token(token, SECRET) == 'abc123'


def test_session_token_signed_with_other_secret_is_rejected() -> None:
    token = jwt_handler.create_session_token('abc123', 'another-session-secret-with-32-bytes-plus', expires_minutes=5)

    assert jwt_handler.decode_session_token(token, SECRET) is None


def test_expired_session_token_is_rejected() -> None:
    token = jwt_handler.create_session_token('abc123', SECRET, expires_minutes=-1)

    assert jwt_handler.decode_session_token(token, SECRET) is None


def test_expired_session_token_still_yields_session_id_when_expiry_is_ignored() -> None:
    token = jwt_handler.create_session_token('abc123', SECRET, expires_minutes=-1)

    assert jwt_handler.decode_session_token(token, SECRET, verify_exp=False) == 'abc123'


def test_ignoring_expiry_still_checks_the_signature() -> None:
    token = jwt_handler.create_session_token('abc123', 'another-session-secret-with-32-bytes-plus', expires_minutes=-1)

    assert jwt_handler.decode_session_token(token, SECRET, verify_exp=False) is None


@pytest.mark.parametrize('token', ['garbage', '', 'a.b.c'])
def test_malformed_session_token_is_rejected(token: str) -> None:
    assert jwt_handler.decode_session_token(token, SECRET) is None


def test_session_token_without_session_id_is_rejected() -> None:
    token = jwt.encode({'sub': 'ada'}, SECRET, algorithm='HS256')

    assert jwt_handler.decode_session_token(token, SECRET) is None
