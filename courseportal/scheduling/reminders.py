"""Daily "assignment due tomorrow" emails.

One run looks up every assignment whose due date is tomorrow (in the reminder
timezone), pairs it with the email of each student enrolled in its course, and
sends one email per pair on a thread pool. Sends are independent: a failed
send is logged and counted, never retried, and never stops the others. A run
never raises; database trouble is logged and the run reports nothing sent.

With the ledger enabled each calendar day is claimed in ``reminder_runs``
before any email goes out, so a second fire on the same day (a restart right
at the scheduled time, or a second process) is skipped.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from courseportal.database import utcnow
from courseportal.models.assignment import Assignment
from courseportal.models.course import Course
from courseportal.models.enrollment import Enrollment
from courseportal.models.reminder_run import ReminderRun
from courseportal.models.user import User
from courseportal.services.notifications import MailDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderSettings:
    cron: str = '0 9 * * *'
    timezone: str = 'America/New_York'
    max_workers: int = 8
    ledger_enabled: bool = True


@dataclass(frozen=True)
class DueReminder:
    assignment_id: int
    title: str
    due_date: date
    course_name: str
    student_email: str
    student_name: str


@dataclass
class ReminderRunResult:
    run_date: date
    due_date: date
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    skipped: bool = False
    failures: list[tuple[str, str]] = field(default_factory=list)


def find_due_reminders(db: Session, due_date: date) -> list[DueReminder]:
    statement = (
        select(
            Assignment.id,
            Assignment.title,
            Assignment.due_date,
            Course.name,
            User.email,
            User.full_name,
        )
        .join(Course, Course.id == Assignment.course_id)
        .join(Enrollment, Enrollment.course_id == Assignment.course_id)
        .join(User, User.id == Enrollment.student_id)
        .where(Assignment.due_date == due_date)
        .order_by(Assignment.id, User.id)
    )
    return [DueReminder(*row) for row in db.execute(statement).all()]


def build_reminder_email(reminder: DueReminder) -> tuple[str, str]:
    subject = f'Reminder: "{reminder.title}" is due tomorrow'
    body = (
        f'Hi {reminder.student_name or "there"},\n\n'
        f'This is a reminder that "{reminder.title}" for {reminder.course_name} '
        f'is due tomorrow, {reminder.due_date:%A, %B %d, %Y}.\n\n'
        'Good luck!\n'
    )
    return subject, body


class ReminderJob:
    def __init__(
        self,
        session_factory: sessionmaker,
        mailer: MailDispatcher,
        settings: ReminderSettings,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_factory = session_factory
        self.mailer = mailer
        self.settings = settings
        self.tz = ZoneInfo(settings.timezone)
        self._clock = clock

    def today(self) -> date:
        now = self._clock() if self._clock is not None else datetime.now(self.tz)
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now.date()

    def __call__(self) -> ReminderRunResult:
        return self.run()

    def run(self, today: date | None = None, use_ledger: bool | None = None) -> ReminderRunResult:
        run_date = today or self.today()
        result = ReminderRunResult(run_date=run_date, due_date=run_date + timedelta(days=1))
        if use_ledger is None:
            use_ledger = self.settings.ledger_enabled

        if use_ledger and not self._claim_day(run_date):
            result.skipped = True
            logger.warning('Reminder run for %s already recorded; skipping duplicate run.', run_date)
            return result

        try:
            db = self.session_factory()
            try:
                reminders = find_due_reminders(db, result.due_date)
            finally:
                db.close()
        except SQLAlchemyError:
            logger.exception('Reminder query failed for assignments due %s', result.due_date)
            if use_ledger:
                self._release_day(run_date)
            return result

        self._dispatch(reminders, result)
        logger.info(
            'Reminder run for %s: %d sent, %d failed (assignments due %s).',
            run_date,
            result.sent,
            result.failed,
            result.due_date,
        )

        if use_ledger:
            self._record_counts(run_date, result)
        return result

    def _dispatch(self, reminders: list[DueReminder], result: ReminderRunResult) -> None:
        result.attempted = len(reminders)
        if not reminders:
            return

        workers = max(1, min(self.settings.max_workers, len(reminders)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='reminder-mail') as pool:
            futures = {pool.submit(self._send_one, reminder): reminder for reminder in reminders}
            for future in as_completed(futures):
                reminder = futures[future]
                try:
                    future.result()
                except Exception as exc:
                    result.failed += 1
                    result.failures.append((reminder.student_email, str(exc)))
                    logger.error(
                        'Reminder for assignment %s to %s failed: %s',
                        reminder.assignment_id,
                        reminder.student_email,
                        exc,
                    )
                else:
                    result.sent += 1

    def _send_one(self, reminder: DueReminder) -> None:
        subject, body = build_reminder_email(reminder)
        self.mailer.send(reminder.student_email, subject, body)

    def _claim_day(self, run_date: date) -> bool:
        db = self.session_factory()
        try:
            db.add(ReminderRun(run_date=run_date, started_at=utcnow()))
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            return False
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Could not record reminder run for %s; sending without the ledger.', run_date)
            return True
        finally:
            db.close()

    def _release_day(self, run_date: date) -> None:
        db = self.session_factory()
        try:
            db.query(ReminderRun).filter(ReminderRun.run_date == run_date).delete()
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Could not release reminder ledger entry for %s', run_date)
        finally:
            db.close()

    def _record_counts(self, run_date: date, result: ReminderRunResult) -> None:
        db = self.session_factory()
        try:
            run = db.query(ReminderRun).filter(ReminderRun.run_date == run_date).first()
            if run is not None:
                run.finished_at = utcnow()
                run.sent_count = result.sent
                run.failed_count = result.failed
                db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Could not update reminder ledger for %s', run_date)
        finally:
            db.close()
