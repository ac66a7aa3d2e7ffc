"""Data models for dingplan."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from .workdays import end_date_for, is_non_working_day, last_working_day

MIN_DURATION = 1
# About 40 years of five-day weeks; end dates are walked day by day
MAX_DURATION = 10_000
MIN_CREW_SIZE = 1
MAX_PROGRESS = 100


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"

    @classmethod
    def parse(cls, value: Any) -> TaskStatus:
        """Parse a status value, falling back to NOT_STARTED."""
        if isinstance(value, TaskStatus):
            return value
        try:
            return cls(str(value).strip().lower().replace("_", "-"))
        except ValueError:
            return cls.NOT_STARTED


def _default_str_list() -> list[str]:
    return []


def _default_positions() -> dict[str, Position]:
    return {}


def clamp_int(value: Any, low: int, high: int | None = None, default: int | None = None) -> int:
    """Coerce ``value`` to an int in ``[low, high]``.

    Non-numeric values (and NaN) become ``default`` (or ``low``).
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if math.isnan(number):
        return default if default is not None else low
    if math.isinf(number):
        number = low if number < 0 else (high if high is not None else low)
    result = max(low, int(number))
    if high is not None:
        result = min(high, result)
    return result


@dataclass
class Task:
    """A schedulable unit of work.

    ``dependencies`` holds predecessor ids: every listed task must finish
    before this one starts. ``lane_id`` is a back-reference only; the owning
    lane's ``task_ids`` list is what places the task.
    """

    id: str
    name: str
    start_date: date
    duration: int = 1  # business days
    crew_size: int = 1
    trade_id: str = ""
    color: str = ""
    dependencies: list[str] = field(default_factory=_default_str_list)
    progress: int = 0  # percent
    status: TaskStatus = TaskStatus.NOT_STARTED
    work_on_saturday: bool = False
    work_on_sunday: bool = False
    lane_id: str = ""

    def __post_init__(self) -> None:
        self.duration = clamp_int(self.duration, MIN_DURATION, MAX_DURATION)
        self.crew_size = clamp_int(self.crew_size, MIN_CREW_SIZE)
        self.progress = clamp_int(self.progress, 0, MAX_PROGRESS, default=0)
        self.status = TaskStatus.parse(self.status)

    @property
    def end_date(self) -> date:
        """End date under this task's calendar (start date is day 0)."""
        return end_date_for(self)

    @property
    def last_working_day(self) -> date:
        """Last working day of the task (the end date is the day after the work)."""
        return last_working_day(self)

    def is_working_day(self, day: date) -> bool:
        """Whether ``day`` is a working day for this task."""
        return not is_non_working_day(day, self.work_on_saturday, self.work_on_sunday)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to plain values for snapshots."""
        return {
            "id": self.id,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "duration": self.duration,
            "crew_size": self.crew_size,
            "trade_id": self.trade_id,
            "color": self.color,
            "dependencies": list(self.dependencies),
            "progress": self.progress,
            "status": self.status.value,
            "work_on_saturday": self.work_on_saturday,
            "work_on_sunday": self.work_on_sunday,
            "lane_id": self.lane_id,
        }


@dataclass
class TaskConfig:
    """Request to create a task. Unset fields receive engine defaults."""

    name: str
    start_date: date | None = None
    duration: int = 1
    crew_size: int = 1
    trade_id: str = ""
    color: str = ""
    dependencies: list[str] = field(default_factory=_default_str_list)
    progress: int = 0
    status: TaskStatus = TaskStatus.NOT_STARTED
    work_on_saturday: bool = False
    work_on_sunday: bool = False
    id: str | None = None

    @classmethod
    def from_task(cls, task: Task) -> TaskConfig:
        """Deep copy of a task's user-editable fields (clipboard entry)."""
        return cls(
            name=task.name,
            start_date=task.start_date,
            duration=task.duration,
            crew_size=task.crew_size,
            trade_id=task.trade_id,
            color=task.color,
            dependencies=list(task.dependencies),
            progress=task.progress,
            status=task.status,
            work_on_saturday=task.work_on_saturday,
            work_on_sunday=task.work_on_sunday,
            id=task.id,
        )


@dataclass
class Position:
    """Top-left corner of a task box in world coordinates."""

    x: float = 0.0
    y: float = 0.0

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass
class Lane:
    """A horizontal track owning a subset of tasks and their positions."""

    id: str
    name: str
    color: str = ""
    offset: float = 0.0  # y origin
    height: float = 400.0
    task_ids: list[str] = field(default_factory=_default_str_list)
    positions: dict[str, Position] = field(default_factory=_default_positions)

    @property
    def bottom(self) -> float:
        return self.offset + self.height

    def contains_y(self, y: float) -> bool:
        """Whether ``y`` lies within ``[offset, offset + height)``."""
        return math.isfinite(y) and self.offset <= y < self.bottom

    def has_task(self, task_id: str) -> bool:
        return task_id in self.task_ids

    def to_dict(self) -> dict[str, Any]:
        """Flatten to plain values for snapshots."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "offset": self.offset,
            "height": self.height,
            "task_ids": list(self.task_ids),
            "positions": {
                task_id: {"x": pos.x, "y": pos.y} for task_id, pos in self.positions.items()
            },
        }


@dataclass(frozen=True)
class ChangeEvent:
    """Emitted by the engine after a committed mutation."""

    kind: str  # e.g. "task_added", "task_moved", "state_imported"
    task_ids: tuple[str, ...] = ()
    lane_ids: tuple[str, ...] = ()
