"""Run one pass of the assignment reminder job immediately.

Usage:
    python -m courseportal.run_reminders [--date YYYY-MM-DD] [--ignore-ledger]
"""
import argparse
import sys
from datetime import date

from courseportal.core.settings import build_mail_settings, build_reminder_settings, configure_logging
from courseportal.database import SessionLocal
from courseportal.scheduling.reminders import ReminderJob
from courseportal.services.notifications import MailDispatcher


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Treat this date as today; reminders go out for assignments due the day after.",
    )
    parser.add_argument(
        "--ignore-ledger",
        action="store_true",
        help="Send even if a run for this date is already recorded.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    job = ReminderJob(SessionLocal, MailDispatcher(build_mail_settings()), build_reminder_settings())
    result = job.run(today=args.date, use_ledger=False if args.ignore_ledger else None)

    if result.skipped:
        print(f"Reminders for {result.run_date} were already sent; use --ignore-ledger to resend.", file=sys.stderr)
        return 1
    print(f"{result.sent} sent, {result.failed} failed for assignments due {result.due_date}.")
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
