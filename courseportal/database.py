from datetime import datetime, timezone
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from courseportal.core import config


def build_engine(database_url: str, sslmode: str = ''):
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)

    connect_args = {}
    if database_url.startswith('sqlite'):
        connect_args['check_same_thread'] = False
    elif sslmode:
        connect_args['sslmode'] = sslmode

    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(config.DATABASE_URL, config.DATABASE_SSLMODE)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC so values round-trip through DateTime columns unchanged.
    return datetime.now(timezone.utc).replace(tzinfo=None)


_schema_lock = Lock()
_user_schema_checked = False
_reminder_schema_checked = False


def ensure_user_schema() -> None:
    global _user_schema_checked

    if _user_schema_checked:
        return

    with _schema_lock:
        if _user_schema_checked:
            return

        inspector = inspect(engine)

        if 'users' not in inspector.get_table_names():
            _user_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('users')}
        migration_steps = [
            ('username', 'ALTER TABLE users ADD COLUMN username VARCHAR'),
            ('full_name', 'ALTER TABLE users ADD COLUMN full_name VARCHAR'),
            ('phone', 'ALTER TABLE users ADD COLUMN phone VARCHAR'),
            ('age', 'ALTER TABLE users ADD COLUMN age INTEGER'),
            ('created_at', 'ALTER TABLE users ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE UNIQUE INDEX IF NOT EXISTS idx_users_username ON users(username)')
            )

        _user_schema_checked = True


def ensure_reminder_schema() -> None:
    global _reminder_schema_checked

    if _reminder_schema_checked:
        return

    with _schema_lock:
        if _reminder_schema_checked:
            return

        table_names = set(inspect(engine).get_table_names())

        with engine.begin() as connection:
            if 'assignments' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_assignments_due_date ON assignments(due_date)')
                )
            if 'enrollments' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_enrollments_course ON enrollments(course_id)')
                )

        _reminder_schema_checked = True
