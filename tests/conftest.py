import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('REMINDERS_ENABLED', 'false')
os.environ.setdefault('SESSION_BACKEND', 'memory')
os.environ.setdefault('SESSION_SECRET', 'test-session-secret-with-at-least-32-bytes')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from courseportal.auth.dependencies import get_db  # noqa: E402
from courseportal.auth.sessions import InMemorySessionStore  # noqa: E402
from courseportal.database import Base  # noqa: E402
from courseportal.main import create_app  # noqa: E402
from courseportal.models import assignment, course, enrollment, reminder_run, session, user  # noqa: E402,F401
from courseportal.services.storage import LocalFileStorage  # noqa: E402
from courseportal.services.tutor import AITutor, TutorSettings  # noqa: E402


class FakeCompletions:
    def __init__(self):
        self.calls = []
        self.answer = 'A list is mutable; a tuple is not.'
        self.error = None

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = type('Message', (), {'content': self.answer})()
        choice = type('Choice', (), {'message': message})()
        return type('Completion', (), {'choices': [choice]})()


class FakeOpenAIClient:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = type('Chat', (), {'completions': self.completions})()


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_openai():
    return FakeOpenAIClient()


@pytest.fixture
def app(session_factory, fake_openai, tmp_path):
    app = create_app(
        session_store=InMemorySessionStore(),
        tutor=AITutor(TutorSettings(api_key='test-key'), client=fake_openai),
        storage=LocalFileStorage(tmp_path / 'uploads'),
        enable_scheduler=False,
    )

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
