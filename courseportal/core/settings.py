"""Builds the settings objects services take, from ``core.config``.

Kept apart from ``main`` so scripts can configure services without building
the web app.
"""

import logging

from courseportal.core import config
from courseportal.scheduling.reminders import ReminderSettings
from courseportal.services.notifications import MailSettings
from courseportal.services.tutor import TutorSettings


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s',
    )


def build_mail_settings() -> MailSettings:
    return MailSettings(
        api_url=config.MAIL_API_URL,
        api_key=config.MAIL_API_KEY,
        sender=config.MAIL_FROM,
        timeout_seconds=config.MAIL_TIMEOUT_SECONDS,
    )


def build_tutor_settings() -> TutorSettings:
    return TutorSettings(
        api_key=config.OPENAI_API_KEY,
        model=config.AI_MODEL,
        timeout_seconds=config.AI_TIMEOUT_SECONDS,
    )


def build_reminder_settings() -> ReminderSettings:
    return ReminderSettings(
        cron=config.REMINDER_CRON,
        timezone=config.REMINDER_TIMEZONE,
        max_workers=config.REMINDER_MAX_WORKERS,
        ledger_enabled=config.REMINDER_LEDGER_ENABLED,
    )
