"""Crew-size histograms per trade."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from typing import TYPE_CHECKING

from .workdays import iter_working_days

if TYPE_CHECKING:
    from .models import Task

DailyCrew = dict[date, dict[str, int]]


def daily_crew(
    tasks: Iterable[Task], start: date | None = None, end: date | None = None
) -> DailyCrew:
    """Crew on site per day and trade.

    A task contributes ``crew_size`` on each of its working days in
    ``[start_date, end_date)``. ``start``/``end`` clip the range (end exclusive).
    Days are returned in order; days with no crew are omitted.
    """
    totals: defaultdict[date, defaultdict[str, int]] = defaultdict(lambda: defaultdict(int))
    for task in tasks:
        first = max(task.start_date, start) if start else task.start_date
        last = min(task.end_date, end) if end else task.end_date
        for day in iter_working_days(first, last, task.work_on_saturday, task.work_on_sunday):
            totals[day][task.trade_id] += task.crew_size
    return {day: dict(totals[day]) for day in sorted(totals)}


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def weekly_crew(daily: Mapping[date, Mapping[str, int]]) -> DailyCrew:
    """Peak daily crew per trade within each week, keyed by Monday."""
    weeks: dict[date, dict[str, int]] = {}
    for day in sorted(daily):
        week = weeks.setdefault(week_start(day), {})
        for trade_id, crew in daily[day].items():
            week[trade_id] = max(week.get(trade_id, 0), crew)
    return weeks


def peak_crew(daily: Mapping[date, Mapping[str, int]]) -> int:
    """Largest total crew on any single day."""
    return max((sum(trades.values()) for trades in daily.values()), default=0)
