import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from courseportal.auth.service import AuthService
from courseportal.auth.sessions import SessionStore, build_session_store
from courseportal.core import config
from courseportal.core.errors import AppError
from courseportal.core.settings import (
    build_mail_settings,
    build_reminder_settings,
    build_tutor_settings,
    configure_logging,
)
from courseportal.database import Base, SessionLocal, engine, ensure_reminder_schema, ensure_user_schema
from courseportal.models import assignment, course, enrollment, reminder_run, session, user  # noqa: F401
from courseportal.routes import auth_routes, tutor_routes, upload_routes, user_routes
from courseportal.scheduling.reminders import ReminderJob
from courseportal.scheduling.scheduler import Scheduler
from courseportal.services.notifications import MailDispatcher
from courseportal.services.storage import LocalFileStorage
from courseportal.services.tutor import AITutor

logger = logging.getLogger(__name__)

SESSION_PURGE_CRON = '17 * * * *'


def create_app(
    *,
    session_store: SessionStore | None = None,
    mailer: MailDispatcher | None = None,
    tutor: AITutor | None = None,
    storage: LocalFileStorage | None = None,
    enable_scheduler: bool | None = None,
) -> FastAPI:
    config.validate_runtime_config()

    app = FastAPI(title='Course Portal API')

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    sessions = session_store or build_session_store(
        config.SESSION_BACKEND,
        config.SESSION_IDLE_MINUTES,
        SessionLocal,
    )
    mailer = mailer or MailDispatcher(build_mail_settings())
    reminder_settings = build_reminder_settings()

    app.state.auth_service = AuthService(
        sessions,
        bcrypt_rounds=config.BCRYPT_ROUNDS,
        revalidate_user=config.SESSION_REVALIDATE_USER,
    )
    app.state.mailer = mailer
    app.state.tutor = tutor or AITutor(build_tutor_settings())
    app.state.storage = storage or LocalFileStorage(config.UPLOAD_DIR)
    app.state.reminder_job = ReminderJob(SessionLocal, mailer, reminder_settings)
    app.state.scheduler = Scheduler(reminder_settings.timezone)
    run_scheduler = config.REMINDERS_ENABLED if enable_scheduler is None else enable_scheduler

    @app.on_event('startup')
    def initialize_database() -> None:
        try:
            Base.metadata.create_all(bind=engine)
            ensure_user_schema()
            ensure_reminder_schema()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    @app.on_event('startup')
    def start_scheduler() -> None:
        if not run_scheduler:
            logger.info('Reminder scheduler disabled.')
            return
        scheduler = app.state.scheduler
        scheduler.register(reminder_settings.cron, app.state.reminder_job, name='assignment-reminders')
        scheduler.register(SESSION_PURGE_CRON, sessions.purge_expired, name='session-purge')
        scheduler.start()

    @app.on_event('shutdown')
    def stop_scheduler() -> None:
        app.state.scheduler.stop()

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={'error': exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        field = errors[0]['loc'][-1] if errors and errors[0].get('loc') else 'request'
        return JSONResponse(status_code=400, content={'error': f'Invalid {field}.'})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception('Unhandled error on %s %s', request.method, request.url.path)
        return JSONResponse(status_code=500, content={'error': 'Internal Server Error'})

    app.include_router(auth_routes.router)
    app.include_router(tutor_routes.router)
    app.include_router(upload_routes.router)
    app.include_router(user_routes.router)

    return app


configure_logging()
app = create_app()
