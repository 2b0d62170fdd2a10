"""Cron-style recurring tasks on daemon threads.

Each registered task gets its own thread that computes the next fire time in
the scheduler's timezone, waits on a shared stop event until then, runs the
task and repeats. A task that raises is logged and scheduled again as usual.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# (name, lowest, highest) for the five cron fields; weekday 0 and 7 are both Sunday.
CRON_FIELDS = (
    ('minute', 0, 59),
    ('hour', 0, 23),
    ('day', 1, 31),
    ('month', 1, 12),
    ('weekday', 0, 7),
)
MAX_LOOKAHEAD_DAYS = 366 * 5


def _parse_field(expression: str, name: str, lowest: int, highest: int) -> frozenset[int]:
    values: set[int] = set()
    for part in expression.split(','):
        if not part:
            raise ValueError(f'Empty {name} entry in cron expression.')

        base, _, step_text = part.partition('/')
        step = int(step_text) if step_text else 1
        if step < 1:
            raise ValueError(f'Invalid step in {name} field: {part!r}')

        if base == '*':
            start, end = lowest, highest
        elif '-' in base:
            start_text, end_text = base.split('-', 1)
            start, end = int(start_text), int(end_text)
        else:
            start = int(base)
            end = highest if step_text else start

        if start < lowest or end > highest or start > end:
            raise ValueError(f'{name} value out of range in {part!r}')
        values.update(range(start, end + 1, step))
    return frozenset(values)


@dataclass(frozen=True)
class CronSchedule:
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    day_restricted: bool
    weekday_restricted: bool
    tz: ZoneInfo
    expression: str = ''

    @classmethod
    def parse(cls, expression: str, tz: ZoneInfo | str = 'UTC') -> 'CronSchedule':
        parts = expression.split()
        if len(parts) != len(CRON_FIELDS):
            raise ValueError(f'Cron expression needs five fields, got {expression!r}')

        parsed = [
            _parse_field(part, name, lowest, highest)
            for part, (name, lowest, highest) in zip(parts, CRON_FIELDS)
        ]
        return cls(
            minutes=parsed[0],
            hours=parsed[1],
            days=parsed[2],
            months=parsed[3],
            weekdays=frozenset(value % 7 for value in parsed[4]),
            day_restricted=parts[2] != '*',
            weekday_restricted=parts[4] != '*',
            tz=ZoneInfo(tz) if isinstance(tz, str) else tz,
            expression=expression,
        )

    def matches_day(self, day: date) -> bool:
        if day.month not in self.months:
            return False
        day_ok = day.day in self.days
        weekday_ok = (day.weekday() + 1) % 7 in self.weekdays
        # Standard cron: when both day fields are restricted either one may match.
        if self.day_restricted and self.weekday_restricted:
            return day_ok or weekday_ok
        return day_ok and weekday_ok

    def next_after(self, moment: datetime) -> datetime:
        """Next matching wall-clock minute strictly after ``moment``, in the schedule's timezone."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        local = moment.astimezone(self.tz)
        floor = local.replace(second=0, microsecond=0)

        day = floor.date()
        for _ in range(MAX_LOOKAHEAD_DAYS):
            if self.matches_day(day):
                for hour in sorted(self.hours):
                    for minute in sorted(self.minutes):
                        candidate = datetime(day.year, day.month, day.day, hour, minute, tzinfo=self.tz)
                        if candidate > floor:
                            return candidate
            day += timedelta(days=1)
        raise ValueError(f'Cron expression {self.expression!r} never fires.')


def seconds_until(target: datetime, now: datetime) -> float:
    # Compare in UTC; subtracting two datetimes that share a ZoneInfo ignores DST shifts.
    return (target.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds()


@dataclass
class ScheduledTask:
    name: str
    schedule: CronSchedule
    func: Callable[[], object]
    next_run: datetime | None = None
    last_run: datetime | None = None
    last_error: str | None = None
    run_count: int = 0
    thread: threading.Thread | None = field(default=None, repr=False)

    def run_once(self, now: datetime) -> None:
        self.last_run = now
        self.run_count += 1
        try:
            self.func()
            self.last_error = None
        except Exception as exc:
            self.last_error = repr(exc)
            logger.exception('Scheduled task %s failed', self.name)


class Scheduler:
    def __init__(self, tz: ZoneInfo | str = 'UTC', clock: Callable[[], datetime] | None = None):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._clock = clock
        self._tasks: list[ScheduledTask] = []
        self._stop = threading.Event()
        self._started = False

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self.tz)

    @property
    def tasks(self) -> list[ScheduledTask]:
        return list(self._tasks)

    @property
    def running(self) -> bool:
        return self._started and not self._stop.is_set()

    def register(self, expression: str, func: Callable[[], object], name: str | None = None) -> ScheduledTask:
        task = ScheduledTask(
            name=name or getattr(func, '__name__', 'task'),
            schedule=CronSchedule.parse(expression, self.tz),
            func=func,
        )
        task.next_run = task.schedule.next_after(self.now())
        self._tasks.append(task)
        if self._started:
            self._start_task(task)
        logger.info('Registered task %s (%s %s), next run %s', task.name, expression, self.tz.key, task.next_run)
        return task

    def start(self) -> None:
        if self._started:
            return
        self._stop.clear()
        self._started = True
        for task in self._tasks:
            self._start_task(task)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        for task in self._tasks:
            if task.thread is not None:
                task.thread.join(timeout)
                task.thread = None
        self._started = False

    def _start_task(self, task: ScheduledTask) -> None:
        task.thread = threading.Thread(target=self._run_loop, args=(task,), name=f'scheduler-{task.name}', daemon=True)
        task.thread.start()

    def _run_loop(self, task: ScheduledTask) -> None:
        while not self._stop.is_set():
            now = self.now()
            if task.next_run is None:
                task.next_run = task.schedule.next_after(now)

            delay = seconds_until(task.next_run, now)
            if delay > 0:
                if self._stop.wait(delay):
                    break
                continue

            task.run_once(now)
            # Skip fire times missed while the task ran or the host slept.
            task.next_run = task.schedule.next_after(max(task.next_run, self.now()))
