"""Server-side login sessions.

A session maps an opaque, randomly generated id to a snapshot of the user's
public profile. The snapshot is copied at login and is not refreshed when the
underlying ``users`` row changes.

Two stores share one contract: ``InMemorySessionStore`` for a single process
and ``DatabaseSessionStore`` for deployments running several processes against
one database. Idle expiry is sliding: every successful lookup pushes
``expires_at`` forward by the idle window.
"""

import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import sessionmaker

from courseportal.database import utcnow
from courseportal.models.session import UserSession

logger = logging.getLogger(__name__)


class SessionUser(BaseModel):
    """Public profile kept in a session. Never includes the password hash."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    username: str
    full_name: str
    email: str
    role: str


@dataclass(frozen=True)
class SessionData:
    session_id: str
    user: SessionUser
    created_at: datetime
    expires_at: datetime


class SessionStore(ABC):
    def __init__(self, idle_minutes: int = 120, clock: Callable[[], datetime] = utcnow):
        self.idle_window = timedelta(minutes=idle_minutes)
        self.clock = clock

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    @abstractmethod
    def create(self, user: SessionUser) -> SessionData:
        ...

    @abstractmethod
    def get(self, session_id: str) -> SessionData | None:
        ...

    @abstractmethod
    def update_user(self, session_id: str, user: SessionUser) -> SessionData | None:
        ...

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        ...

    @abstractmethod
    def purge_expired(self) -> int:
        ...


class InMemorySessionStore(SessionStore):
    def __init__(self, idle_minutes: int = 120, clock: Callable[[], datetime] = utcnow):
        super().__init__(idle_minutes, clock)
        self._sessions: dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def create(self, user: SessionUser) -> SessionData:
        now = self.clock()
        data = SessionData(
            session_id=self.new_session_id(),
            user=user,
            created_at=now,
            expires_at=now + self.idle_window,
        )
        with self._lock:
            self._sessions[data.session_id] = data
        return data

    def get(self, session_id: str) -> SessionData | None:
        with self._lock:
            data = self._sessions.get(session_id)
            if data is None:
                return None

            now = self.clock()
            if data.expires_at <= now:
                del self._sessions[session_id]
                return None

            data = replace(data, expires_at=now + self.idle_window)
            self._sessions[session_id] = data
            return data

    def update_user(self, session_id: str, user: SessionUser) -> SessionData | None:
        with self._lock:
            data = self._sessions.get(session_id)
            if data is None:
                return None
            data = replace(data, user=user)
            self._sessions[session_id] = data
            return data

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [sid for sid, data in self._sessions.items() if data.expires_at <= now]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class DatabaseSessionStore(SessionStore):
    def __init__(
        self,
        session_factory: sessionmaker,
        idle_minutes: int = 120,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(idle_minutes, clock)
        self.session_factory = session_factory

    @staticmethod
    def _to_data(row: UserSession) -> SessionData:
        return SessionData(
            session_id=row.session_id,
            user=SessionUser(
                id=row.user_id,
                username=row.username,
                full_name=row.full_name,
                email=row.email,
                role=row.role,
            ),
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def create(self, user: SessionUser) -> SessionData:
        now = self.clock()
        row = UserSession(
            session_id=self.new_session_id(),
            user_id=user.id,
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            role=user.role,
            created_at=now,
            expires_at=now + self.idle_window,
        )
        db = self.session_factory()
        try:
            db.add(row)
            db.commit()
            return self._to_data(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, session_id: str) -> SessionData | None:
        db = self.session_factory()
        try:
            row = db.get(UserSession, session_id)
            if row is None:
                return None

            now = self.clock()
            if row.expires_at <= now:
                db.delete(row)
                db.commit()
                return None

            row.expires_at = now + self.idle_window
            db.commit()
            return self._to_data(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def update_user(self, session_id: str, user: SessionUser) -> SessionData | None:
        db = self.session_factory()
        try:
            row = db.get(UserSession, session_id)
            if row is None:
                return None
            row.username = user.username
            row.full_name = user.full_name
            row.email = user.email
            row.role = user.role
            db.commit()
            return self._to_data(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def destroy(self, session_id: str) -> None:
        db = self.session_factory()
        try:
            db.query(UserSession).filter(UserSession.session_id == session_id).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def purge_expired(self) -> int:
        db = self.session_factory()
        try:
            removed = db.query(UserSession).filter(UserSession.expires_at <= self.clock()).delete()
            db.commit()
            return removed
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def build_session_store(
    backend: str,
    idle_minutes: int,
    session_factory: sessionmaker | None = None,
) -> SessionStore:
    if backend == 'memory':
        return InMemorySessionStore(idle_minutes=idle_minutes)
    if backend == 'database':
        if session_factory is None:
            raise ValueError('The database session store needs a session factory.')
        logger.info('Using database-backed session store.')
        return DatabaseSessionStore(session_factory, idle_minutes=idle_minutes)
    raise ValueError(f'Unknown session backend: {backend!r}')
