"""Repair pass over engine state.

Runs after every import and periodically during editing. Each pass fixes one
category of inconsistency and counts what it touched; running the validator
twice in a row reports zero on the second run.
"""

from __future__ import annotations

import uuid
from collections.abc import MutableMapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from .graph import DependencyGraph
from .logger import get_logger
from .models import (
    MAX_DURATION,
    MAX_PROGRESS,
    MIN_CREW_SIZE,
    MIN_DURATION,
    Position,
    TaskStatus,
    clamp_int,
)
from .workdays import normalize_start_date

if TYPE_CHECKING:
    from .layout import LaneLayout
    from .models import Task
    from .trades import TradeRegistry

logger = get_logger()

DEFAULT_LANE_ID = "default"
DEFAULT_LANE_NAME = "Default"


@dataclass
class ValidationReport:
    """Number of repairs per category."""

    task_ids: int = 0  # missing or duplicate task ids regenerated on import
    lane_ids: int = 0
    lanes_created: int = 0
    lane_entries: int = 0  # unknown, duplicate, or stray ids and positions in lanes
    orphans: int = 0
    back_references: int = 0
    positions: int = 0
    dependencies: int = 0
    cycles_broken: int = 0
    task_fields: int = 0
    trade_filters: int = 0

    @property
    def total(self) -> int:
        return sum(getattr(self, f.name) for f in fields(self))

    def categories(self) -> dict[str, int]:
        """Non-zero categories in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}

    def summary(self) -> str:
        if not self.total:
            return "no repairs"
        return ", ".join(f"{name}={count}" for name, count in self.categories().items())


class StateValidator:
    """Checks and repairs the engine's tasks, lanes, and trade filters in place."""

    def __init__(
        self,
        tasks: MutableMapping[str, Task],
        layout: LaneLayout,
        trades: TradeRegistry,
        trade_filters: MutableMapping[str, bool],
    ):
        """Initialize with live references to engine state.

        Args:
            tasks: Owning task index
            layout: Lane layout holding membership and positions
            trades: Known trades (for filter completeness)
            trade_filters: Trade visibility map
        """
        self.tasks = tasks
        self.layout = layout
        self.trades = trades
        self.trade_filters = trade_filters

    def run(self) -> ValidationReport:
        """Run every repair pass in order."""
        report = ValidationReport()
        report.lane_ids = self.repair_lane_ids()
        report.lanes_created = self.ensure_lane_exists()
        report.lane_entries = self.repair_lane_collections()
        report.orphans = self.repair_orphans()
        report.back_references = self.repair_back_references()
        report.positions = self.repair_positions()
        report.dependencies = self.repair_dependencies()
        report.cycles_broken = self.break_cycles()
        report.task_fields = self.repair_task_fields()
        report.trade_filters = self.complete_trade_filters()
        logger.checks(f"Validation: {report.summary()}")
        return report

    def _fresh_lane_id(self, index: int, taken: set[str]) -> str:
        while True:
            candidate = f"lane-{index}-{uuid.uuid4().hex[:8]}"
            if candidate not in taken:
                return candidate

    def repair_lane_ids(self) -> int:
        """Give lanes with a missing or duplicate id a fresh one."""
        seen: set[str] = set()
        taken = {lane.id for lane in self.layout.lanes}
        repaired = 0
        for index, lane in enumerate(self.layout.lanes):
            if not lane.id or lane.id in seen:
                new_id = self._fresh_lane_id(index, taken | seen)
                logger.checks(f"Lane {index} id '{lane.id}' is missing or duplicated -> '{new_id}'")
                lane.id = new_id
                repaired += 1
            seen.add(lane.id)
        return repaired

    def ensure_lane_exists(self) -> int:
        """Create a default lane when tasks exist but no lanes do."""
        if not self.tasks or self.layout.lanes:
            return 0
        self.layout.add_lane(DEFAULT_LANE_ID, DEFAULT_LANE_NAME)
        logger.checks(f"No lanes for {len(self.tasks)} task(s); created '{DEFAULT_LANE_ID}'")
        return 1

    def repair_lane_collections(self) -> int:
        """Drop unknown and duplicate ids and positions of tasks a lane does not hold.

        A task listed in several lanes stays in the first one.
        """
        claimed: set[str] = set()
        repaired = 0
        for lane in self.layout.lanes:
            kept: list[str] = []
            for task_id in lane.task_ids:
                if task_id not in self.tasks or task_id in claimed:
                    logger.checks(f"Lane '{lane.id}': dropping entry '{task_id}'")
                    repaired += 1
                    continue
                claimed.add(task_id)
                kept.append(task_id)
            lane.task_ids = kept

            for task_id in list(lane.positions):
                if task_id not in kept:
                    del lane.positions[task_id]
                    repaired += 1
        return repaired

    def repair_orphans(self) -> int:
        """Put tasks that are in no lane into the first lane."""
        if not self.layout.lanes:
            return 0
        placed = {task_id for lane in self.layout.lanes for task_id in lane.task_ids}
        first = self.layout.lanes[0]
        repaired = 0
        for task in self.tasks.values():
            if task.id in placed:
                continue
            slot = self.layout.next_slot(first)
            first.task_ids.append(task.id)
            first.positions[task.id] = Position(y=slot)
            logger.checks(f"Task '{task.id}' was in no lane; placed in '{first.id}' at y={slot}")
            task.lane_id = first.id
            repaired += 1
        return repaired

    def repair_back_references(self) -> int:
        """Make every task's ``lane_id`` name the lane that holds it."""
        repaired = 0
        for lane in self.layout.lanes:
            for task_id in lane.task_ids:
                task = self.tasks[task_id]
                if task.lane_id != lane.id:
                    logger.checks(f"Task '{task_id}' lane_id '{task.lane_id}' -> '{lane.id}'")
                    task.lane_id = lane.id
                    repaired += 1
        return repaired

    def repair_positions(self) -> int:
        """Give missing, non-finite, or out-of-lane positions a fresh slot."""
        repaired = 0
        for lane in self.layout.lanes:
            for task_id in lane.task_ids:
                position = lane.positions.get(task_id)
                if position is not None and position.is_finite and lane.contains_y(position.y):
                    continue
                slot = self.layout.next_slot(lane, exclude=task_id)
                lane.positions[task_id] = Position(y=slot)
                logger.checks(f"Task '{task_id}' position {position} -> y={slot}")
                repaired += 1
        return repaired

    def repair_dependencies(self) -> int:
        """Drop self-edges, duplicate edges, and edges to unknown tasks."""
        repaired = 0
        for task in self.tasks.values():
            cleaned: list[str] = []
            for dep_id in task.dependencies:
                if dep_id == task.id or dep_id in cleaned or dep_id not in self.tasks:
                    logger.checks(f"Task '{task.id}': dropping dependency '{dep_id}'")
                    repaired += 1
                    continue
                cleaned.append(dep_id)
            if len(cleaned) != len(task.dependencies):
                task.dependencies = cleaned
        return repaired

    def break_cycles(self) -> int:
        """Remove the closing edge of each cycle until the graph is acyclic."""
        graph = DependencyGraph(self.tasks)
        repaired = 0
        while True:
            cycle = graph.find_cycle()
            if cycle is None:
                return repaired
            # cycle[i] depends on cycle[i + 1]; the last hop closes it
            successor_id, predecessor_id = cycle[-2], cycle[-1]
            graph.remove_dependency(successor_id, predecessor_id)
            logger.checks(
                f"Broke cycle {' -> '.join(cycle)} by removing {predecessor_id} -> {successor_id}"
            )
            repaired += 1

    def repair_task_fields(self) -> int:
        """Clamp numeric fields and move start dates onto working days."""
        repaired = 0
        for task in self.tasks.values():
            changed = False
            duration = clamp_int(task.duration, MIN_DURATION, MAX_DURATION)
            crew_size = clamp_int(task.crew_size, MIN_CREW_SIZE)
            progress = clamp_int(task.progress, 0, MAX_PROGRESS, default=0)
            status = TaskStatus.parse(task.status)
            if (duration, crew_size, progress, status) != (
                task.duration,
                task.crew_size,
                task.progress,
                task.status,
            ):
                task.duration, task.crew_size = duration, crew_size
                task.progress, task.status = progress, status
                changed = True
            if normalize_start_date(task):
                changed = True
            if changed:
                logger.checks(f"Task '{task.id}': normalized fields")
                repaired += 1
        return repaired

    def complete_trade_filters(self) -> int:
        """Add a visible entry for every known trade and every task's trade and color."""
        keys: list[str] = []
        for trade in self.trades.all():
            keys.extend((trade.id, trade.color))
        for task in self.tasks.values():
            keys.extend((task.trade_id, task.color))

        added = 0
        for key in keys:
            if key and key not in self.trade_filters:
                self.trade_filters[key] = True
                added += 1
        return added
