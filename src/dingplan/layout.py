"""Vertical placement of tasks inside lanes, and pointer hit testing.

Lanes are stacked top to bottom. Each lane owns its tasks by id and keeps one
``Position`` per task; the horizontal extent of a task box is always derived
from its dates through a ``TimeScale``, so only ``y`` matters for placement.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .config import LayoutConfig
from .exceptions import (
    LaneError,
    LaneNotEmptyError,
    LaneNotFoundError,
    LastLaneError,
    NoLaneAvailableError,
    TaskNotFoundError,
)
from .logger import get_logger
from .models import Lane, Position

if TYPE_CHECKING:
    from .models import Task
    from .timescale import TimeScale

logger = get_logger()


class HitZone(str, Enum):
    """Part of a task box under the pointer."""

    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


@dataclass(frozen=True)
class Hit:
    """Result of a hit test."""

    task_id: str
    zone: HitZone


class LaneLayout:
    """Ordered lanes with per-lane task slots."""

    def __init__(self, config: LayoutConfig | None = None):
        self.config = config or LayoutConfig()
        self.lanes: list[Lane] = []

    # Lane collection

    def add_lane(
        self,
        lane_id: str,
        name: str,
        color: str = "",
        height: float | None = None,
        index: int | None = None,
    ) -> Lane:
        """Create a lane at ``index`` (default: bottom) and restack offsets.

        Raises:
            ValueError: The id is already used or the height is not positive
        """
        if self.get_lane(lane_id) is not None:
            raise ValueError(f"Lane '{lane_id}' already exists")
        lane_height = self.config.lane_height if height is None else float(height)
        if not math.isfinite(lane_height) or lane_height <= 0:
            raise ValueError(f"Lane '{lane_id}' height must be positive, got {height}")

        lane = Lane(id=lane_id, name=name, color=color, height=lane_height)
        if index is None:
            self.lanes.append(lane)
        else:
            self.lanes.insert(index, lane)
        self.restack()
        logger.changes(f"Added lane '{lane_id}' ({name})")
        return lane

    def remove_lane(self, lane_id: str) -> Lane:
        """Delete an empty lane.

        Raises:
            LaneNotFoundError: Unknown lane
            LaneNotEmptyError: The lane still owns tasks
            LastLaneError: It is the only lane
        """
        lane = self.require_lane(lane_id)
        if lane.task_ids:
            raise LaneNotEmptyError(
                f"Cannot delete lane '{lane.name}': it still contains "
                f"{len(lane.task_ids)} task(s). Move or delete them first."
            )
        if len(self.lanes) == 1:
            raise LastLaneError(f"Cannot delete lane '{lane.name}': it is the only lane")

        self.lanes.remove(lane)
        self.restack()
        logger.changes(f"Removed lane '{lane_id}'")
        return lane

    def move_lane(self, from_index: int, to_index: int) -> None:
        """Reorder lanes and restack every offset.

        Raises:
            LaneError: Either index is out of range
        """
        count = len(self.lanes)
        for index in (from_index, to_index):
            if not 0 <= index < count:
                raise LaneError(f"Lane index {index} out of range (0..{count - 1})")
        if from_index == to_index:
            return

        lane = self.lanes.pop(from_index)
        self.lanes.insert(to_index, lane)
        self.restack()
        logger.changes(f"Moved lane '{lane.id}' from position {from_index} to {to_index}")

    def restack(self) -> None:
        """Recompute offsets as a running sum of heights plus spacing.

        Task positions move with their lane so they stay inside it.
        """
        running = 0.0
        for lane in self.lanes:
            if lane.offset != running:
                delta = running - lane.offset if math.isfinite(lane.offset) else 0.0
                lane.offset = running
                for position in lane.positions.values():
                    if math.isfinite(position.y):
                        position.y += delta
            running += lane.height + self.config.lane_spacing

    def get_lane(self, lane_id: str) -> Lane | None:
        return next((lane for lane in self.lanes if lane.id == lane_id), None)

    def require_lane(self, lane_id: str) -> Lane:
        lane = self.get_lane(lane_id)
        if lane is None:
            raise LaneNotFoundError(lane_id)
        return lane

    def index_of(self, lane_id: str) -> int:
        for index, lane in enumerate(self.lanes):
            if lane.id == lane_id:
                return index
        raise LaneNotFoundError(lane_id)

    def lane_of(self, task_id: str) -> Lane | None:
        """The lane whose collection holds ``task_id``."""
        return next((lane for lane in self.lanes if task_id in lane.task_ids), None)

    def lane_at(self, world_y: float) -> Lane | None:
        return next((lane for lane in self.lanes if lane.contains_y(world_y)), None)

    def total_height(self) -> float:
        if not self.lanes:
            return 0.0
        last = self.lanes[-1]
        return last.bottom

    def resolve_lane(self, lane_id: str | None) -> Lane:
        """Return the requested lane, falling back to the first lane.

        Raises:
            NoLaneAvailableError: There are no lanes at all
        """
        if not self.lanes:
            raise NoLaneAvailableError("No lanes exist; create a lane before adding tasks")
        if lane_id:
            lane = self.get_lane(lane_id)
            if lane is not None:
                return lane
            logger.warning(f"Lane '{lane_id}' not found, using '{self.lanes[0].id}'")
        return self.lanes[0]

    # Slots

    def slot_bounds(self, lane: Lane) -> tuple[float, float]:
        """Lowest and highest allowed ``y`` for a task in ``lane``."""
        low = lane.offset + self.config.top_padding
        high = lane.offset + lane.height - self.config.row_height - self.config.bottom_padding
        return low, max(low, high)

    def clamp_y(self, lane: Lane, y: float) -> float:
        """Clamp ``y`` into the lane's slot range (NaN becomes the top slot)."""
        low, high = self.slot_bounds(lane)
        clamped = low if math.isnan(y) else min(max(y, low), high)
        if not lane.contains_y(clamped):
            return lane.offset
        return clamped

    def next_slot(self, lane: Lane, exclude: str | None = None) -> float:
        """Slot below the last placed task, or the top slot of an empty lane."""
        for task_id in reversed(lane.task_ids):
            if task_id == exclude:
                continue
            position = lane.positions.get(task_id)
            if position is not None and position.is_finite and lane.contains_y(position.y):
                step = self.config.row_height + self.config.task_spacing
                return self.clamp_y(lane, position.y + step)
        return self.clamp_y(lane, lane.offset + self.config.top_padding)

    def position_of(self, task_id: str) -> Position | None:
        lane = self.lane_of(task_id)
        return lane.positions.get(task_id) if lane else None

    # Task membership

    def place_task(self, task: Task, lane_id: str | None = None, y: float | None = None) -> Lane:
        """Add ``task`` to a lane (falling back to the first lane) at ``y`` or the next slot."""
        lane = self.resolve_lane(lane_id)
        slot = self.clamp_y(lane, y) if y is not None else self.next_slot(lane)
        lane.task_ids.append(task.id)
        lane.positions[task.id] = Position(y=slot)
        task.lane_id = lane.id
        return lane

    def remove_task(self, task_id: str) -> Lane | None:
        """Drop ``task_id`` from whichever lane holds it."""
        lane = self.lane_of(task_id)
        if lane is None:
            return None
        lane.task_ids = [t for t in lane.task_ids if t != task_id]
        lane.positions.pop(task_id, None)
        return lane

    def migrate_task(self, task: Task, target_lane_id: str, y: float | None = None) -> Lane:
        """Move ``task`` into another lane, or reposition it within its own.

        Raises:
            LaneNotFoundError: The target lane does not exist
        """
        target = self.require_lane(target_lane_id)
        source = self.lane_of(task.id)
        if source is target:
            if y is not None:
                target.positions[task.id] = Position(y=self.clamp_y(target, y))
            task.lane_id = target.id
            return target

        self.remove_task(task.id)
        slot = self.clamp_y(target, y) if y is not None else self.next_slot(target)
        target.task_ids.append(task.id)
        target.positions[task.id] = Position(y=slot)
        task.lane_id = target.id
        logger.changes(
            f"Moved task '{task.id}' from lane '{source.id if source else '?'}' to '{target.id}'"
        )
        return target

    def set_position(self, task_id: str, y: float) -> float:
        """Set a task's vertical position, clamped into its lane.

        Raises:
            TaskNotFoundError: The task is in no lane
        """
        lane = self.lane_of(task_id)
        if lane is None:
            raise TaskNotFoundError(task_id)
        clamped = self.clamp_y(lane, y)
        position = lane.positions.setdefault(task_id, Position())
        position.y = clamped
        return clamped

    def relayout_lane(self, lane_id: str, tasks: Mapping[str, Task]) -> None:
        """Sort a lane's tasks by start date and restack them from the top."""
        lane = self.require_lane(lane_id)
        known = [tasks[t] for t in lane.task_ids if t in tasks]
        ordered = sorted(known, key=lambda t: (t.start_date, t.name, t.id))

        step = self.config.row_height + self.config.task_spacing
        y = lane.offset + self.config.top_padding
        lane.task_ids = [t.id for t in ordered]
        for task in ordered:
            previous = lane.positions.get(task.id)
            lane.positions[task.id] = Position(
                x=previous.x if previous else 0.0, y=self.clamp_y(lane, y)
            )
            y += step
        logger.changes(f"Re-laid out lane '{lane_id}' ({len(ordered)} tasks)")

    # Pointer queries

    def task_box(self, task: Task, scale: TimeScale) -> tuple[float, float, float, float] | None:
        """World-space box (x1, y1, x2, y2) of a task, or None if unplaced."""
        position = self.position_of(task.id)
        if position is None or not position.is_finite:
            return None
        x1, x2 = scale.task_span(task)
        return x1, position.y, x2, position.y + self.config.task_height

    def hit_test(
        self,
        world_x: float,
        world_y: float,
        tasks: Iterable[Task],
        scale: TimeScale,
        zoom: float = 1.0,
    ) -> Hit | None:
        """Topmost task under the pointer and which part of it was hit.

        ``tasks`` is in draw order, so later tasks are on top. The resize band
        is ``edge_sensitivity / zoom`` world units wide at each end; when the
        bands overlap on a narrow task the nearer edge wins.
        """
        band = self.config.edge_sensitivity / zoom if zoom > 0 else self.config.edge_sensitivity
        for task in reversed(list(tasks)):
            box = self.task_box(task, scale)
            if box is None:
                continue
            x1, y1, x2, y2 = box
            if not (x1 <= world_x <= x2 and y1 <= world_y <= y2):
                continue
            to_start = world_x - x1
            to_end = x2 - world_x
            if min(to_start, to_end) <= band:
                zone = HitZone.RESIZE_START if to_start <= to_end else HitZone.RESIZE_END
            else:
                zone = HitZone.MOVE
            return Hit(task.id, zone)
        return None

    def tasks_in_box(  # noqa: PLR0913 - two corners plus context
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        tasks: Iterable[Task],
        scale: TimeScale,
    ) -> list[str]:
        """Ids of tasks whose boxes intersect the rectangle between two corners."""
        left, right = sorted((x1, x2))
        top, bottom = sorted((y1, y2))
        hits: list[str] = []
        for task in tasks:
            box = self.task_box(task, scale)
            if box is None:
                continue
            bx1, by1, bx2, by2 = box
            if bx1 <= right and bx2 >= left and by1 <= bottom and by2 >= top:
                hits.append(task.id)
        return hits
