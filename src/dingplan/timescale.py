"""Mapping between calendar dates and horizontal world coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Task


@dataclass
class TimeScale:
    """Linear time axis: ``origin`` sits at x=0, each day is ``day_width`` wide."""

    origin: date
    day_width: float = 50.0

    def date_to_world(self, day: date) -> float:
        return (day - self.origin).days * self.day_width

    def world_to_date(self, x: float) -> date:
        """Date of the day cell containing ``x``."""
        return self.origin + timedelta(days=math.floor(x / self.day_width))

    def task_span(self, task: Task) -> tuple[float, float]:
        """Left and right edges of a task box."""
        return self.date_to_world(task.start_date), self.date_to_world(task.end_date)
