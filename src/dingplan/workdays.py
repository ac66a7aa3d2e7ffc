"""Business-day arithmetic with per-task weekend policies.

Every task carries its own working calendar: Monday to Friday always count,
Saturday and Sunday count only when the task opts in. There are no holiday
calendars.

End dates follow a "start is day 0" rule: ``add_business_days`` moves to the
next calendar day before counting, so a one-day task that starts on a Monday
ends on Tuesday and a one-day task that starts on a Friday ends on Monday.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Task

SATURDAY = 5  # date.weekday()
SUNDAY = 6
ONE_DAY = timedelta(days=1)


def is_non_working_day(
    day: date, work_on_saturday: bool = False, work_on_sunday: bool = False
) -> bool:
    """True iff ``day`` is a weekend day the calendar does not work."""
    weekday = day.weekday()
    return (weekday == SUNDAY and not work_on_sunday) or (
        weekday == SATURDAY and not work_on_saturday
    )


def add_business_days(
    start: date, days: int, work_on_saturday: bool = False, work_on_sunday: bool = False
) -> date:
    """Advance ``days`` working days from ``start``.

    The start date itself is day 0 whether or not it is a working day.
    """
    result = start
    added = 0
    while added < days:
        result += ONE_DAY
        if not is_non_working_day(result, work_on_saturday, work_on_sunday):
            added += 1
    return result


def next_working_day(
    day: date, work_on_saturday: bool = False, work_on_sunday: bool = False
) -> date:
    """Return the first working day on or after ``day``."""
    while is_non_working_day(day, work_on_saturday, work_on_sunday):
        day += ONE_DAY
    return day


def iter_working_days(
    start: date, end: date, work_on_saturday: bool = False, work_on_sunday: bool = False
) -> Iterator[date]:
    """Yield the working days in the half-open range ``[start, end)``."""
    current = start
    while current < end:
        if not is_non_working_day(current, work_on_saturday, work_on_sunday):
            yield current
        current += ONE_DAY


def count_business_days(
    start: date, end: date, work_on_saturday: bool = False, work_on_sunday: bool = False
) -> int:
    """Count working days in ``[start, end)``.

    For a working ``start`` this inverts ``add_business_days``:
    ``count_business_days(s, add_business_days(s, n)) == n``.
    """
    return sum(1 for _ in iter_working_days(start, end, work_on_saturday, work_on_sunday))


def normalize_start_date(task: Task) -> bool:
    """Move ``task.start_date`` forward onto its first working day.

    Returns:
        True if the start date changed
    """
    adjusted = next_working_day(task.start_date, task.work_on_saturday, task.work_on_sunday)
    if adjusted == task.start_date:
        return False
    task.start_date = adjusted
    return True


def end_date_for(task: Task) -> date:
    """End date of a task under its own calendar."""
    return add_business_days(
        task.start_date, task.duration, task.work_on_saturday, task.work_on_sunday
    )


def calendar_span(task: Task) -> int:
    """Calendar days between a task's start and end date."""
    return (end_date_for(task) - task.start_date).days


def last_working_day(task: Task) -> date:
    """Final working day a task occupies (the working day before its end date)."""
    day = end_date_for(task) - ONE_DAY
    while day > task.start_date and is_non_working_day(
        day, task.work_on_saturday, task.work_on_sunday
    ):
        day -= ONE_DAY
    return day
