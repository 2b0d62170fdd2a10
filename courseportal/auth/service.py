import logging

from pydantic import BaseModel, EmailStr, Field, ValidationError as PydanticValidationError, ValidationInfo, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from courseportal.auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from courseportal.auth.sessions import SessionData, SessionStore, SessionUser
from courseportal.core.errors import ConflictError, InvalidCredentials, ValidationError
from courseportal.models.user import User

logger = logging.getLogger(__name__)

ALLOWED_ROLES = ('student', 'teacher', 'admin')
DEFAULT_ROLE = 'student'
MIN_PASSWORD_LENGTH = 6
REQUIRED_FIELD_LABELS = {
    'username': 'Username',
    'full_name': 'Full name',
    'password': 'Password',
}


class RegistrationRequest(BaseModel):
    username: str
    full_name: str
    email: EmailStr
    phone: str | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    password: str
    role: str = DEFAULT_ROLE

    @field_validator('username', 'full_name', 'password', mode='before')
    @classmethod
    def require_value(cls, value, info: ValidationInfo):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError(f'{REQUIRED_FIELD_LABELS[info.field_name]} is required.')
        return value

    @field_validator('username', 'full_name')
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError('Email is required.')
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator('phone', 'age', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes.')
        return value

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, value) -> str:
        normalized = (value or '').strip().lower() or DEFAULT_ROLE
        if normalized not in ALLOWED_ROLES:
            raise ValueError('Invalid role.')
        return normalized


def _validation_message(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    ctx_error = (error.get('ctx') or {}).get('error')
    if ctx_error is not None:
        return str(ctx_error)
    field = error['loc'][0] if error['loc'] else 'input'
    if field == 'email':
        return 'Email address is not valid.'
    return f'Invalid {str(field).replace("_", " ")}.'


class AuthService:
    """Registration, login and logout on top of the users table and a session store."""

    def __init__(self, sessions: SessionStore, bcrypt_rounds: int = 10, revalidate_user: bool = False):
        self.sessions = sessions
        self.bcrypt_rounds = bcrypt_rounds
        self.revalidate_user = revalidate_user
        self._dummy_hash: str | None = None

    def register(
        self,
        db: Session,
        *,
        username: str | None,
        full_name: str | None,
        email: str | None,
        password: str | None,
        phone: str | None = None,
        age: int | str | None = None,
        role: str | None = None,
    ) -> int:
        try:
            data = RegistrationRequest(
                username=username,
                full_name=full_name,
                email=email,
                phone=phone,
                age=age,
                password=password,
                role=role,
            )
        except PydanticValidationError as exc:
            raise ValidationError(_validation_message(exc)) from exc

        user = User(
            username=data.username,
            full_name=data.full_name,
            email=data.email,
            phone=data.phone,
            age=data.age,
            password_hash=hash_password(data.password, rounds=self.bcrypt_rounds),
            role=data.role,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.info('Registration rejected for duplicate username or email (%s)', data.email)
            raise ConflictError() from exc

        db.refresh(user)
        logger.info('Registered user %s (id=%s, role=%s)', user.username, user.id, user.role)
        return user.id

    def login(self, db: Session, email: str | None, password: str | None) -> SessionData:
        normalized_email = (email or '').strip().lower()
        user = None
        if normalized_email:
            user = db.query(User).filter(User.email == normalized_email).first()

        if user is None:
            # Spend the same hashing work so unknown emails are not faster to reject.
            verify_password(password or '', self._get_dummy_hash())
            raise InvalidCredentials()

        if not verify_password(password or '', user.password_hash):
            raise InvalidCredentials()

        session = self.sessions.create(SessionUser.model_validate(user))
        logger.info('User %s logged in', user.id)
        return session

    def logout(self, session_id: str | None) -> None:
        if session_id:
            self.sessions.destroy(session_id)

    def resolve_session(self, session_id: str | None, db: Session | None = None) -> SessionData | None:
        if not session_id:
            return None

        data = self.sessions.get(session_id)
        if data is None or not self.revalidate_user or db is None:
            return data

        user = db.get(User, data.user.id)
        if user is None:
            logger.info('Dropping session for deleted user %s', data.user.id)
            self.sessions.destroy(session_id)
            return None

        current = SessionUser.model_validate(user)
        if current != data.user:
            data = self.sessions.update_user(session_id, current) or data
        return data

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = hash_password('not-a-real-password', rounds=self.bcrypt_rounds)
        return self._dummy_hash
