from fastapi import Depends, Request
from sqlalchemy.orm import Session

from courseportal.auth import jwt_handler
from courseportal.auth.service import AuthService
from courseportal.auth.sessions import SessionData, SessionUser
from courseportal.core import config
from courseportal.core.errors import Unauthorized
from courseportal.database import SessionLocal


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_id(request: Request) -> str | None:
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not token:
        return None
    return jwt_handler.decode_session_token(token, config.SESSION_SECRET, config.SESSION_ALGORITHM)


def get_logout_session_id(request: Request) -> str | None:
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not token:
        return None
    return jwt_handler.decode_session_token(
        token,
        config.SESSION_SECRET,
        config.SESSION_ALGORITHM,
        verify_exp=False,
    )


def get_current_session(
    session_id: str | None = Depends(get_session_id),
    auth: AuthService = Depends(get_auth_service),
    db: Session = Depends(get_db),
) -> SessionData | None:
    return auth.resolve_session(session_id, db)


def get_optional_user(session: SessionData | None = Depends(get_current_session)) -> SessionUser | None:
    return session.user if session else None


def get_current_user(user: SessionUser | None = Depends(get_optional_user)) -> SessionUser:
    if user is None:
        raise Unauthorized()
    return user
