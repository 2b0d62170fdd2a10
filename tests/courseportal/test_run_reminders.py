import os
import subprocess
import sys
from datetime import date
from pathlib import Path

from courseportal import run_reminders
from courseportal.models.assignment import Assignment
from courseportal.models.course import Course
from courseportal.models.enrollment import Enrollment
from courseportal.models.user import User


class RecordingMailer:
    sent = []

    def __init__(self, settings):
        self.settings = settings

    def send(self, to: str, subject: str, body: str) -> None:
        RecordingMailer.sent.append((to, subject))


def _seed(db) -> None:
    db.add(Course(id=1, name='CS 101'))
    db.add(
        User(
            id=10,
            username='ada',
            full_name='Ada Lovelace',
            email='ada@example.edu',
            password_hash='not-used',
            role='student',
        )
    )
    db.add(Enrollment(student_id=10, course_id=1))
    db.add(Assignment(id=100, title='Linked Lists', due_date=date(2026, 1, 6), course_id=1))
    db.commit()


def test_cli_sends_reminders_for_the_given_date(monkeypatch, session_factory, db, capsys) -> None:
    _seed(db)
    RecordingMailer.sent = []
    monkeypatch.setattr(run_reminders, 'SessionLocal', session_factory)
    monkeypatch.setattr(run_reminders, 'MailDispatcher', RecordingMailer)

    exit_code = run_reminders.main(['--date', '2026-01-05'])

    assert exit_code == 0
    assert RecordingMailer.sent == [('ada@example.edu', 'Reminder: "Linked Lists" is due tomorrow')]
    assert '1 sent, 0 failed' in capsys.readouterr().out


def test_cli_reports_a_second_run_as_skipped(monkeypatch, session_factory, db) -> None:
    _seed(db)
    RecordingMailer.sent = []
    monkeypatch.setattr(run_reminders, 'SessionLocal', session_factory)
    monkeypatch.setattr(run_reminders, 'MailDispatcher', RecordingMailer)

    assert run_reminders.main(['--date', '2026-01-05']) == 0
    assert run_reminders.main(['--date', '2026-01-05']) == 1
    assert run_reminders.main(['--date', '2026-01-05', '--ignore-ledger']) == 0
    assert len(RecordingMailer.sent) == 2


def test_cli_import_does_not_build_the_web_app() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    env = {**os.environ, 'PYTHONPATH': str(repo_root), 'APP_ENV': 'production', 'SESSION_SECRET': 'change-me'}

    completed = subprocess.run(
        [sys.executable, '-c', 'import sys, courseportal.run_reminders; print("courseportal.main" in sys.modules)'],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.strip() == 'False'
