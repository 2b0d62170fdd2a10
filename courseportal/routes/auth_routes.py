import logging

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from courseportal.auth import jwt_handler
from courseportal.auth.dependencies import (
    get_auth_service,
    get_current_user,
    get_db,
    get_logout_session_id,
    get_optional_user,
)
from courseportal.auth.service import ALLOWED_ROLES, AuthService
from courseportal.auth.sessions import SessionUser
from courseportal.core import config
from courseportal.core.errors import ServiceUnavailable
from courseportal.database import ensure_user_schema

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

REGISTER_FIELDS = ['username', 'full_name', 'email', 'phone', 'age', 'password', 'role']
LOGIN_FIELDS = ['email', 'password']


def ensure_database_ready() -> None:
    try:
        ensure_user_schema()
    except SQLAlchemyError as exc:
        raise ServiceUnavailable() from exc


@router.get('/')
def home(user: SessionUser | None = Depends(get_optional_user)):
    return {'status': 'Course Portal API Running', 'user': user}


@router.get('/register')
def register_page():
    return {'form': 'register', 'fields': REGISTER_FIELDS, 'roles': list(ALLOWED_ROLES)}


@router.post('/register')
def register(
    username: str | None = Form(None),
    full_name: str | None = Form(None),
    email: str | None = Form(None),
    phone: str | None = Form(None),
    age: str | None = Form(None),
    password: str | None = Form(None),
    role: str | None = Form(None),
    auth: AuthService = Depends(get_auth_service),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        auth.register(
            db,
            username=username,
            full_name=full_name,
            email=email,
            phone=phone,
            age=age,
            password=password,
            role=role,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Registration failed')
        raise ServiceUnavailable() from exc

    return RedirectResponse(url='/login', status_code=status.HTTP_303_SEE_OTHER)


@router.get('/login')
def login_page():
    return {'form': 'login', 'fields': LOGIN_FIELDS}


@router.post('/login')
def login(
    email: str | None = Form(None),
    password: str | None = Form(None),
    auth: AuthService = Depends(get_auth_service),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        session = auth.login(db, email, password)
    except SQLAlchemyError as exc:
        logger.exception('Login lookup failed')
        raise ServiceUnavailable() from exc

    token = jwt_handler.create_session_token(
        session.session_id,
        config.SESSION_SECRET,
        config.SESSION_MAX_AGE_MINUTES,
        config.SESSION_ALGORITHM,
    )
    response = RedirectResponse(url='/', status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
    )
    return response


@router.get('/logout')
def logout(
    session_id: str | None = Depends(get_logout_session_id),
    auth: AuthService = Depends(get_auth_service),
):
    auth.logout(session_id)
    response = RedirectResponse(url='/login', status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(config.SESSION_COOKIE_NAME, httponly=True, samesite='lax')
    return response


@router.get('/me')
def me(current_user: SessionUser = Depends(get_current_user)):
    return current_user
