"""Pydantic schemas for reading snapshots leniently.

Snapshots come from disk, from older builds, and from hand edits. Every
field coerces bad values to a sensible default instead of failing, and the
camelCase layout written by older builds (``swimlanes``, ``swimlaneId``,
``taskPositions``, ``{"__type": "Date", "value": ...}`` dates) is accepted
next to the current snake_case one.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .models import (
    MAX_DURATION,
    MAX_PROGRESS,
    MIN_CREW_SIZE,
    MIN_DURATION,
    TaskStatus,
    clamp_int,
)

_TRUE_STRINGS = {"true", "yes", "1", "on"}


def parse_date_value(value: Any, default: date | None = None) -> date:
    """Parse any date-like value; unparseable values become ``default`` (today)."""
    fallback = default or date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        return parse_date_value(value.get("value"), fallback)  # type: ignore[union-attr]
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int | float):
        # epoch milliseconds
        if not math.isfinite(value):
            return fallback
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return fallback
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return fallback
    return fallback


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def coerce_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _pairs_to_dict(value: Any) -> dict[Any, Any]:
    """Accept a mapping or a list of ``[key, value]`` pairs (serialized Map)."""
    if isinstance(value, dict):
        return dict(value)  # type: ignore[arg-type]
    result: dict[Any, Any] = {}
    if isinstance(value, list | tuple):
        for item in value:  # type: ignore[union-attr]
            if isinstance(item, list | tuple) and len(item) == 2:  # type: ignore[arg-type]
                key, val = item  # type: ignore[misc]
                result[key] = val
    return result


class PositionRecord(BaseModel):
    """A stored task position."""

    model_config = ConfigDict(extra="ignore")

    x: float = 0.0
    y: float = math.nan  # missing y is repaired by the validator

    @field_validator("x", mode="before")
    @classmethod
    def coerce_x(cls, v: Any) -> float:
        return coerce_float(v, 0.0)

    @field_validator("y", mode="before")
    @classmethod
    def coerce_y(cls, v: Any) -> float:
        return coerce_float(v, math.nan)


def _position_map(value: Any) -> dict[str, dict[str, Any]]:
    return {
        str(task_id): pos
        for task_id, pos in _pairs_to_dict(value).items()
        if task_id is not None and isinstance(pos, dict)
    }


class TaskRecord(BaseModel):
    """A stored task."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = "Untitled task"
    start_date: date = Field(
        default_factory=date.today, validation_alias=AliasChoices("start_date", "startDate")
    )
    duration: int = MIN_DURATION
    crew_size: int = Field(
        default=MIN_CREW_SIZE, validation_alias=AliasChoices("crew_size", "crewSize")
    )
    trade_id: str = Field(default="", validation_alias=AliasChoices("trade_id", "tradeId", "trade"))
    color: str = ""
    dependencies: list[str] = Field(default_factory=list)
    progress: int = 0
    status: TaskStatus = TaskStatus.NOT_STARTED
    work_on_saturday: bool = Field(
        default=False, validation_alias=AliasChoices("work_on_saturday", "workOnSaturday")
    )
    work_on_sunday: bool = Field(
        default=False, validation_alias=AliasChoices("work_on_sunday", "workOnSunday")
    )
    lane_id: str = Field(
        default="", validation_alias=AliasChoices("lane_id", "laneId", "swimlaneId", "swimlane_id")
    )

    @field_validator("id", "trade_id", "color", "lane_id", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return coerce_str(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        text = coerce_str(v).strip()
        return text or "Untitled task"

    @field_validator("start_date", mode="before")
    @classmethod
    def coerce_start_date(cls, v: Any) -> date:
        return parse_date_value(v)

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, v: Any) -> int:
        return clamp_int(v, MIN_DURATION, MAX_DURATION)

    @field_validator("crew_size", mode="before")
    @classmethod
    def coerce_crew_size(cls, v: Any) -> int:
        return clamp_int(v, MIN_CREW_SIZE)

    @field_validator("progress", mode="before")
    @classmethod
    def coerce_progress(cls, v: Any) -> int:
        return clamp_int(v, 0, MAX_PROGRESS, default=0)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> TaskStatus:
        return TaskStatus.parse(v)

    @field_validator("work_on_saturday", "work_on_sunday", mode="before")
    @classmethod
    def coerce_flags(cls, v: Any) -> bool:
        return coerce_bool(v)

    @field_validator("dependencies", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Ensure value is a list of ids (None entries dropped)."""
        if v is None:
            return []
        if isinstance(v, list | tuple):
            return [str(item) for item in v if item is not None]  # type: ignore[union-attr]
        return [str(v)]


class LaneRecord(BaseModel):
    """A stored lane."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    color: str = ""
    offset: float | None = Field(
        default=None, validation_alias=AliasChoices("offset", "y", "verticalOffset")
    )
    height: float | None = None
    task_ids: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("task_ids", "taskIds", "tasks")
    )
    positions: dict[str, PositionRecord] = Field(
        default_factory=dict, validation_alias=AliasChoices("positions", "taskPositions")
    )

    @field_validator("id", "name", "color", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return coerce_str(v)

    @field_validator("offset", mode="before")
    @classmethod
    def coerce_offset(cls, v: Any) -> float | None:
        number = coerce_float(v, math.nan)
        return number if math.isfinite(number) else None

    @field_validator("height", mode="before")
    @classmethod
    def coerce_height(cls, v: Any) -> float | None:
        number = coerce_float(v, math.nan)
        return number if math.isfinite(number) and number > 0 else None

    @field_validator("task_ids", mode="before")
    @classmethod
    def coerce_task_ids(cls, v: Any) -> list[str]:
        """Accept ids or embedded task objects carrying an ``id``."""
        if not isinstance(v, list | tuple):
            return []
        ids: list[str] = []
        for item in v:  # type: ignore[union-attr]
            if isinstance(item, dict):
                item = item.get("id")  # type: ignore[union-attr]  # noqa: PLW2901
            if item is not None and item != "":
                ids.append(str(item))  # type: ignore[arg-type]
        return ids

    @field_validator("positions", mode="before")
    @classmethod
    def coerce_positions(cls, v: Any) -> dict[str, dict[str, Any]]:
        return _position_map(v)


class SnapshotSchema(BaseModel):
    """Schema for a whole engine snapshot."""

    model_config = ConfigDict(extra="ignore")

    tasks: list[TaskRecord] = Field(default_factory=list)
    lanes: list[LaneRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("lanes", "swimlanes")
    )
    trade_filters: dict[str, bool] = Field(
        default_factory=dict, validation_alias=AliasChoices("trade_filters", "tradeFilters")
    )
    # Global position map written by older builds; lane maps take precedence
    task_positions: dict[str, PositionRecord] = Field(
        default_factory=dict, validation_alias=AliasChoices("task_positions", "taskPositions")
    )

    @field_validator("tasks", "lanes", mode="before")
    @classmethod
    def keep_mappings(cls, v: Any) -> list[dict[str, Any]]:
        """Drop records that are not mappings."""
        if isinstance(v, dict):
            v = list(v.values())  # type: ignore[union-attr]
        if not isinstance(v, list | tuple):
            return []
        return [item for item in v if isinstance(item, dict)]  # type: ignore[union-attr]

    @field_validator("trade_filters", mode="before")
    @classmethod
    def coerce_filters(cls, v: Any) -> dict[str, bool]:
        return {
            str(key): coerce_bool(visible)
            for key, visible in _pairs_to_dict(v).items()
            if key is not None
        }

    @field_validator("task_positions", mode="before")
    @classmethod
    def coerce_positions(cls, v: Any) -> dict[str, dict[str, Any]]:
        return _position_map(v)
