"""Tests for business-day arithmetic."""

from datetime import date, timedelta

import pytest

from dingplan.models import Task
from dingplan.workdays import (
    add_business_days,
    calendar_span,
    count_business_days,
    is_non_working_day,
    iter_working_days,
    last_working_day,
    next_working_day,
    normalize_start_date,
)

MONDAY = date(2025, 3, 3)
FRIDAY = date(2025, 3, 7)
SATURDAY = date(2025, 3, 8)
SUNDAY = date(2025, 3, 9)


class TestNonWorkingDays:
    """Test weekend detection under different policies."""

    def test_weekdays_always_work(self) -> None:
        """Monday to Friday are working days under every policy."""
        for offset in range(5):
            day = MONDAY + timedelta(days=offset)
            assert not is_non_working_day(day)
            assert not is_non_working_day(day, True, True)

    def test_weekend_off_by_default(self) -> None:
        """Saturday and Sunday are off unless opted in."""
        assert is_non_working_day(SATURDAY)
        assert is_non_working_day(SUNDAY)

    def test_saturday_opt_in(self) -> None:
        """Working Saturdays leaves Sunday off."""
        assert not is_non_working_day(SATURDAY, work_on_saturday=True)
        assert is_non_working_day(SUNDAY, work_on_saturday=True)

    def test_sunday_opt_in(self) -> None:
        """Working Sundays leaves Saturday off."""
        assert is_non_working_day(SATURDAY, work_on_sunday=True)
        assert not is_non_working_day(SUNDAY, work_on_sunday=True)


class TestAddBusinessDays:
    """Test end-date arithmetic (start date is day 0)."""

    def test_monday_plus_five_is_next_monday(self) -> None:
        """Five working days from Monday land on the following Monday."""
        assert add_business_days(MONDAY, 5) == date(2025, 3, 10)

    def test_friday_plus_one_skips_weekend(self) -> None:
        """One working day from Friday lands on Monday."""
        assert add_business_days(FRIDAY, 1) == date(2025, 3, 10)

    def test_friday_plus_one_with_saturday_work(self) -> None:
        """Working Saturdays make Saturday the next day."""
        assert add_business_days(FRIDAY, 1, work_on_saturday=True) == SATURDAY

    def test_seven_day_week(self) -> None:
        """With both weekend days on, business days equal calendar days."""
        assert add_business_days(MONDAY, 10, True, True) == MONDAY + timedelta(days=10)

    def test_zero_days_returns_start(self) -> None:
        """Zero or negative days leave the date unchanged."""
        assert add_business_days(SATURDAY, 0) == SATURDAY
        assert add_business_days(MONDAY, -3) == MONDAY

    def test_weekend_start_counts_from_next_day(self) -> None:
        """A Saturday start still steps before counting."""
        assert add_business_days(SATURDAY, 1) == date(2025, 3, 10)


class TestCountBusinessDays:
    """Test counting working days in a half-open range."""

    def test_full_week(self) -> None:
        """A Monday-to-Monday range holds five working days."""
        assert count_business_days(MONDAY, date(2025, 3, 10)) == 5

    def test_empty_and_reversed_ranges(self) -> None:
        """Empty or reversed ranges count zero."""
        assert count_business_days(MONDAY, MONDAY) == 0
        assert count_business_days(FRIDAY, MONDAY) == 0

    def test_weekend_only_range(self) -> None:
        """A range covering only the weekend has no working days."""
        assert count_business_days(SATURDAY, date(2025, 3, 10)) == 0
        assert count_business_days(SATURDAY, date(2025, 3, 10), True, True) == 2

    def test_iter_working_days(self) -> None:
        """Working days are yielded in order and skip the weekend."""
        days = list(iter_working_days(FRIDAY, date(2025, 3, 12)))
        assert days == [FRIDAY, date(2025, 3, 10), date(2025, 3, 11)]

    @pytest.mark.parametrize("saturday", [False, True])
    @pytest.mark.parametrize("sunday", [False, True])
    @pytest.mark.parametrize("duration", [1, 2, 5, 9, 23])
    def test_count_inverts_add(self, saturday: bool, sunday: bool, duration: int) -> None:
        """Counting up to the end date gives back the duration for working starts."""
        for offset in range(7):
            start = next_working_day(MONDAY + timedelta(days=offset), saturday, sunday)
            end = add_business_days(start, duration, saturday, sunday)
            assert count_business_days(start, end, saturday, sunday) == duration


class TestNormalizeStartDate:
    """Test moving start dates onto working days."""

    def test_next_working_day(self) -> None:
        """Weekend days roll forward to Monday; working days stay."""
        assert next_working_day(SATURDAY) == date(2025, 3, 10)
        assert next_working_day(SUNDAY) == date(2025, 3, 10)
        assert next_working_day(FRIDAY) == FRIDAY
        assert next_working_day(SUNDAY, work_on_sunday=True) == SUNDAY

    def test_normalize_moves_weekend_start(self) -> None:
        """A Saturday start becomes Monday and reports a change."""
        task = Task(id="t", name="T", start_date=SATURDAY)
        assert normalize_start_date(task) is True
        assert task.start_date == date(2025, 3, 10)
        assert normalize_start_date(task) is False

    def test_normalize_respects_task_calendar(self) -> None:
        """A Saturday-working task keeps its Saturday start."""
        task = Task(id="t", name="T", start_date=SATURDAY, work_on_saturday=True)
        assert normalize_start_date(task) is False
        assert task.start_date == SATURDAY

    @pytest.mark.parametrize("saturday", [False, True])
    @pytest.mark.parametrize("sunday", [False, True])
    def test_normalized_start_is_never_non_working(self, saturday: bool, sunday: bool) -> None:
        """After normalizing, the start date is a working day for the task."""
        for offset in range(14):
            task = Task(
                id="t",
                name="T",
                start_date=MONDAY + timedelta(days=offset),
                work_on_saturday=saturday,
                work_on_sunday=sunday,
            )
            normalize_start_date(task)
            assert not is_non_working_day(task.start_date, saturday, sunday)

    def test_calendar_span(self) -> None:
        """A one-day Friday task spans three calendar days."""
        task = Task(id="t", name="T", start_date=FRIDAY, duration=1)
        assert calendar_span(task) == 3


class TestLastWorkingDay:
    """Test the final working day a task occupies."""

    def test_five_day_task_from_monday(self) -> None:
        """A five-day Monday task ends next Monday and works through Friday."""
        task = Task(id="t", name="T", start_date=MONDAY, duration=5)
        assert task.end_date == date(2025, 3, 10)
        assert last_working_day(task) == FRIDAY
        assert task.last_working_day == FRIDAY

    def test_one_day_friday_task(self) -> None:
        """A one-day Friday task ends Monday but only works Friday."""
        task = Task(id="t", name="T", start_date=FRIDAY, duration=1)
        assert task.end_date == date(2025, 3, 10)
        assert task.last_working_day == FRIDAY

    def test_weekend_working_task(self) -> None:
        """A Saturday-working task can finish on Saturday."""
        task = Task(id="t", name="T", start_date=FRIDAY, duration=2, work_on_saturday=True)
        assert task.last_working_day == SATURDAY
