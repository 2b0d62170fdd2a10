import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip().rstrip("/") for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courseportal.db")
DATABASE_SSLMODE = os.getenv("DATABASE_SSLMODE", "")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS")) or ["http://localhost:4200"]


SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")
SESSION_ALGORITHM = "HS256"
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "courseportal_session")
SESSION_COOKIE_SECURE = _get_bool(os.getenv("SESSION_COOKIE_SECURE"), default=APP_ENV.lower() == "production")
SESSION_BACKEND = os.getenv("SESSION_BACKEND", "memory").strip().lower()
SESSION_IDLE_MINUTES = _get_int(os.getenv("SESSION_IDLE_MINUTES"), 120)
SESSION_MAX_AGE_MINUTES = _get_int(os.getenv("SESSION_MAX_AGE_MINUTES"), 60 * 24)
SESSION_REVALIDATE_USER = _get_bool(os.getenv("SESSION_REVALIDATE_USER"), default=False)

BCRYPT_ROUNDS = _get_int(os.getenv("BCRYPT_ROUNDS"), 10)

MAIL_API_URL = os.getenv("MAIL_API_URL", "https://api.resend.com/emails")
MAIL_API_KEY = os.getenv("MAIL_API_KEY", "")
MAIL_FROM = os.getenv("MAIL_FROM", "Course Portal <no-reply@courseportal.local>")
MAIL_TIMEOUT_SECONDS = float(os.getenv("MAIL_TIMEOUT_SECONDS", "10"))

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))

REMINDERS_ENABLED = _get_bool(os.getenv("REMINDERS_ENABLED"), default=True)
REMINDER_CRON = os.getenv("REMINDER_CRON", "0 9 * * *")
REMINDER_TIMEZONE = os.getenv("REMINDER_TIMEZONE", "America/New_York")
REMINDER_MAX_WORKERS = _get_int(os.getenv("REMINDER_MAX_WORKERS"), 8)
REMINDER_LEDGER_ENABLED = _get_bool(os.getenv("REMINDER_LEDGER_ENABLED"), default=True)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/tmp/uploads")

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and SESSION_SECRET == "change-me":
        raise RuntimeError("SESSION_SECRET must be set in production.")
    if SESSION_BACKEND not in {"memory", "database"}:
        raise RuntimeError(f"Unknown SESSION_BACKEND {SESSION_BACKEND!r}; use 'memory' or 'database'.")
