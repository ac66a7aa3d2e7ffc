"""Scheduling engine: the single owner of tasks, lanes, and dependencies.

All mutation goes through ``SchedulingEngine``. Each operation validates its
inputs first and raises a ``SchedulingError`` subclass without touching state,
or commits completely and notifies subscribers with a ``ChangeEvent``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .config import EngineConfig, PlannerConfig
from .exceptions import (
    CycleError,
    InvalidResizeError,
    ParseError,
    SchedulingError,
    TaskNotFoundError,
)
from .graph import DependencyGraph
from .histogram import DailyCrew, daily_crew
from .layout import Hit, LaneLayout
from .logger import get_logger
from .models import (
    MAX_DURATION,
    MAX_PROGRESS,
    MIN_CREW_SIZE,
    MIN_DURATION,
    ChangeEvent,
    Lane,
    Position,
    Task,
    TaskConfig,
    TaskStatus,
)
from .schemas import SnapshotSchema, TaskRecord
from .templates import TemplateLibrary
from .trades import TradeRegistry
from .validator import StateValidator, ValidationReport
from .workdays import count_business_days, next_working_day, normalize_start_date

if TYPE_CHECKING:
    from .timescale import TimeScale

logger = get_logger()

Listener = Callable[[ChangeEvent], None]

_UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "start_date",
        "duration",
        "crew_size",
        "status",
        "progress",
        "trade",
        "work_on_saturday",
        "work_on_sunday",
    }
)


class Edge(str, Enum):
    """Which boundary of a task a resize drags."""

    START = "start"
    END = "end"


class ValidationTicker:
    """Counts maintenance ticks and fires every ``interval`` ticks."""

    def __init__(self, interval: int = 10):
        if interval < 1:
            raise ValueError("interval must be at least 1")
        self.interval = interval
        self.count = 0

    def tick(self) -> bool:
        """Advance the counter; True when a sweep is due."""
        self.count += 1
        if self.count >= self.interval:
            self.count = 0
            return True
        return False

    def reset(self) -> None:
        self.count = 0


def _new_id() -> str:
    return str(uuid.uuid4())


def _config_from_mapping(data: Mapping[str, Any]) -> tuple[TaskConfig, str]:
    """Coerce a plain mapping (e.g. ``Task.to_dict()`` output) into a creation request.

    Values go through the same lenient coercion as snapshot records, so ISO
    date strings, numeric strings and camelCase keys are all accepted.

    Returns:
        The request and the mapping's lane id ("" when absent)

    Raises:
        ValueError: The mapping cannot be read as a task
    """
    record = TaskRecord.model_validate(dict(data))
    config = TaskConfig(
        name=record.name,
        start_date=record.start_date,
        duration=record.duration,
        crew_size=record.crew_size,
        trade_id=record.trade_id,
        color=record.color,
        dependencies=record.dependencies,
        progress=record.progress,
        status=record.status,
        work_on_saturday=record.work_on_saturday,
        work_on_sunday=record.work_on_sunday,
        id=record.id or None,
    )
    return config, record.lane_id


class SchedulingEngine:  # noqa: PLR0904 - the engine is the public API surface
    """Owns the task index, lane layout, dependency graph, and UI-facing state."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        trades: TradeRegistry | None = None,
        templates: TemplateLibrary | None = None,
    ):
        """Initialize an empty engine.

        Args:
            config: Engine configuration (defaults apply when omitted)
            trades: Known trades (the standard construction trades by default)
            templates: Insertable sequence templates (the standard ones by default)
        """
        self.config = config or EngineConfig()
        self.trades = trades if trades is not None else TradeRegistry()
        self.templates = templates if templates is not None else TemplateLibrary()
        self._tasks: dict[str, Task] = {}
        self._trade_filters: dict[str, bool] = {}
        self._selection: list[str] = []
        self._clipboard: list[TaskConfig] = []
        self._listeners: list[Listener] = []

        self.layout = LaneLayout(self.config.layout)
        self.graph = DependencyGraph(self._tasks)
        self.validator = StateValidator(self._tasks, self.layout, self.trades, self._trade_filters)
        self.ticker = ValidationTicker(self.config.validation_interval)

        for lane in self.config.default_lanes:
            self.layout.add_lane(lane.id, lane.name, lane.color, lane.height)
        self.validator.complete_trade_filters()

    @classmethod
    def from_config(cls, config: PlannerConfig) -> SchedulingEngine:
        """Build an engine from a full planner configuration."""
        return cls(
            config.engine, config.trades.build_registry(), config.templates.build_library()
        )

    # Change notification

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every committed mutation.

        Returns:
            A callable that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, task_ids: Iterable[str] = (), lane_ids: Iterable[str] = ()) -> None:
        event = ChangeEvent(kind, tuple(task_ids), tuple(lane_ids))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - a failing subscriber must not undo a commit
                logger.exception(f"Change listener failed for '{kind}' event")

    # Lanes

    @property
    def lanes(self) -> tuple[Lane, ...]:
        return tuple(self.layout.lanes)

    def get_lane(self, lane_id: str) -> Lane:
        return self.layout.require_lane(lane_id)

    def add_lane(
        self,
        name: str,
        lane_id: str | None = None,
        color: str = "",
        height: float | None = None,
        index: int | None = None,
    ) -> Lane:
        """Create a lane (appended at the bottom unless ``index`` is given)."""
        lane_id = lane_id or f"lane-{uuid.uuid4().hex[:8]}"
        lane = self.layout.add_lane(lane_id, name, color, height, index)
        self._emit("lane_added", lane_ids=(lane.id,))
        return lane

    def remove_lane(self, lane_id: str) -> None:
        """Delete an empty lane.

        Raises:
            LaneNotFoundError, LaneNotEmptyError, LastLaneError
        """
        try:
            self.layout.remove_lane(lane_id)
        except SchedulingError as e:
            logger.debug(f"Rejected lane removal: {e}")
            raise
        self._emit("lane_removed", lane_ids=(lane_id,))

    def move_lane(self, from_index: int, to_index: int) -> None:
        self.layout.move_lane(from_index, to_index)
        self._emit("lanes_reordered", lane_ids=(lane.id for lane in self.layout.lanes))

    def rename_lane(self, lane_id: str, name: str, color: str | None = None) -> Lane:
        lane = self.layout.require_lane(lane_id)
        lane.name = name
        if color is not None:
            lane.color = color
        logger.changes(f"Renamed lane '{lane_id}' to '{name}'")
        self._emit("lane_updated", lane_ids=(lane_id,))
        return lane

    def relayout_lane(self, lane_id: str) -> None:
        """Stack a lane's tasks top to bottom in start-date order."""
        self.layout.relayout_lane(lane_id, self._tasks)
        self._emit("lane_relayout", self.layout.require_lane(lane_id).task_ids, (lane_id,))

    # Tasks

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks.values())

    def get_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def position_of(self, task_id: str) -> Position | None:
        return self.layout.position_of(task_id)

    def visible_tasks(self) -> list[Task]:
        """Tasks whose trade id and color are both switched on in the filter."""
        return [
            t
            for t in self._tasks.values()
            if self._trade_filters.get(t.trade_id, True) and self._trade_filters.get(t.color, True)
        ]

    def _default_trade(self, trade_id: str, color: str) -> tuple[str, str]:
        if not trade_id and not color:
            first = self.trades.first()
            if first is not None:
                return first.id, first.color
            return self.config.fallback_trade_id, self.config.fallback_color
        trade_id, color = self.trades.reconcile(trade_id, color)
        return trade_id or self.config.fallback_trade_id, color or self.config.fallback_color

    def _build_task(self, config: TaskConfig, task_id: str) -> Task:
        trade_id, color = self._default_trade(config.trade_id, config.color)
        start_date = config.start_date or date.today()
        if isinstance(start_date, datetime):
            start_date = start_date.date()
        task = Task(
            id=task_id,
            name=config.name,
            start_date=start_date,
            duration=config.duration,
            crew_size=config.crew_size,
            trade_id=trade_id,
            color=color,
            progress=config.progress,
            status=config.status,
            work_on_saturday=config.work_on_saturday,
            work_on_sunday=config.work_on_sunday,
        )
        normalize_start_date(task)
        return task

    def add_task(
        self,
        config: TaskConfig | Mapping[str, Any],
        lane_id: str | None = None,
        y: float | None = None,
    ) -> Task:
        """Create a task and place it in a lane.

        An unknown or missing lane falls back to the first lane. Listed
        dependencies on unknown tasks are skipped with a warning.

        Raises:
            NoLaneAvailableError: There are no lanes
            ValueError: The requested id is already in use
        """
        if isinstance(config, Mapping):
            config, mapped_lane_id = _config_from_mapping(config)
            lane_id = lane_id or mapped_lane_id or None

        lane = self.layout.resolve_lane(lane_id)
        task_id = config.id or _new_id()
        if task_id in self._tasks:
            raise ValueError(f"Task id '{task_id}' is already in use")

        task = self._build_task(config, task_id)
        self._tasks[task.id] = task
        self.layout.place_task(task, lane.id, y)
        for dep_id in config.dependencies:
            try:
                self.graph.add_dependency(task.id, dep_id)
            except SchedulingError as e:
                logger.warning(f"Task '{task.name}': skipping dependency '{dep_id}': {e}")
        self.validator.complete_trade_filters()

        logger.changes(f"Added task '{task.name}' ({task.id}) to lane '{lane.id}'")
        self._emit("task_added", (task.id,), (lane.id,))
        return task

    def remove_task(self, task_id: str) -> Task:
        """Delete a task and every dependency edge that mentions it."""
        task = self.get_task(task_id)
        lane = self.layout.remove_task(task_id)
        del self._tasks[task_id]
        stripped = self.graph.strip_references(task_id)
        if task_id in self._selection:
            self._selection.remove(task_id)

        logger.changes(f"Removed task '{task.name}' ({task_id}), {stripped} edge(s) stripped")
        self._emit("task_removed", (task_id,), (lane.id,) if lane else ())
        return task

    def _validate_update(self, task: Task, changes: Mapping[str, Any]) -> dict[str, Any]:  # noqa: PLR0912 - one branch per field
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        updates: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "name":
                if not isinstance(value, str) or not value.strip():
                    raise ValueError("Task name cannot be empty")
                updates[name] = value.strip()
            elif name == "start_date":
                if isinstance(value, datetime):
                    value = value.date()
                if not isinstance(value, date):
                    raise ValueError(f"start_date must be a date, got {value!r}")
                updates[name] = value
            elif name in ("duration", "crew_size"):
                minimum = MIN_DURATION if name == "duration" else MIN_CREW_SIZE
                if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                    raise ValueError(f"{name} must be an integer >= {minimum}, got {value!r}")
                if name == "duration" and value > MAX_DURATION:
                    raise ValueError(f"duration cannot exceed {MAX_DURATION} working days")
                updates[name] = value
            elif name == "progress":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"progress must be an integer, got {value!r}")
                if not 0 <= value <= MAX_PROGRESS:
                    raise ValueError(f"progress must be between 0 and {MAX_PROGRESS}, got {value}")
                updates[name] = value
            elif name == "status":
                try:
                    updates[name] = TaskStatus(value)
                except ValueError:
                    valid = ", ".join(s.value for s in TaskStatus)
                    raise ValueError(f"Unknown status {value!r} (expected: {valid})") from None
            elif name == "trade":
                trade = self.trades.resolve(str(value))
                if trade is None:
                    raise ValueError(f"Unknown trade {value!r}")
                updates["trade_id"] = trade.id
                updates["color"] = trade.color
            else:
                updates[name] = bool(value)
        return updates

    def update_task(self, task_id: str, **changes: Any) -> Task:
        """Change user-editable fields of a task.

        All fields are validated before any is applied. Changing the start date
        or a weekend flag moves the start onto the task's next working day.

        Raises:
            TaskNotFoundError: Unknown task
            ValueError: A field is unknown or its value is invalid
        """
        task = self.get_task(task_id)
        updates = self._validate_update(task, changes)
        for name, value in updates.items():
            setattr(task, name, value)
        if {"start_date", "work_on_saturday", "work_on_sunday"} & updates.keys():
            normalize_start_date(task)
        if "trade_id" in updates:
            self.validator.complete_trade_filters()

        logger.changes(f"Updated task '{task.name}': {', '.join(sorted(changes))}")
        self._emit("task_updated", (task_id,))
        return task

    # Dependencies

    def add_dependency(self, task_id: str, predecessor_id: str) -> None:
        """Make ``task_id`` wait for ``predecessor_id``.

        Raises:
            CycleError, DuplicateDependencyError, TaskNotFoundError
        """
        try:
            self.graph.add_dependency(task_id, predecessor_id)
        except SchedulingError as e:
            logger.debug(f"Rejected dependency: {e}")
            raise
        self._emit("dependency_added", (predecessor_id, task_id))

    def remove_dependency(self, task_id: str, predecessor_id: str) -> bool:
        removed = self.graph.remove_dependency(task_id, predecessor_id)
        if removed:
            self._emit("dependency_removed", (predecessor_id, task_id))
        return removed

    def set_dependencies(self, task_id: str, predecessor_ids: Iterable[str]) -> None:
        """Replace all predecessors of a task, or change nothing.

        Raises:
            TaskNotFoundError: The task or a predecessor is unknown
            CycleError: A predecessor is the task itself or depends on it
        """
        task = self.get_task(task_id)
        wanted = list(dict.fromkeys(predecessor_ids))
        for predecessor_id in wanted:
            self.get_task(predecessor_id)
            if self.graph.would_create_cycle(task_id, predecessor_id):
                logger.debug(f"Rejected dependencies for '{task_id}': cycle via {predecessor_id}")
                raise CycleError(task_id, predecessor_id)

        task.dependencies = wanted
        logger.changes(f"Set dependencies of '{task.name}' to {wanted}")
        self._emit("dependencies_set", (task_id, *wanted))

    def link_in_sequence(self, task_ids: Iterable[str] | None = None) -> int:
        """Chain tasks (default: the selection, in selection order).

        Returns:
            Number of new edges

        Raises:
            CycleError: Some link would close a cycle; nothing was added
        """
        ids = list(task_ids) if task_ids is not None else list(self._selection)
        if len(ids) < 2:
            return 0
        try:
            added = self.graph.link_in_sequence(ids)
        except SchedulingError as e:
            logger.debug(f"Rejected chain {ids}: {e}")
            raise
        if added:
            self._emit("dependencies_linked", ids)
        return added

    def get_successors(self, task_id: str, transitive: bool = False) -> list[Task]:
        return self.graph.get_successors(task_id, transitive)

    def get_predecessors(self, task_id: str, transitive: bool = False) -> list[Task]:
        return self.graph.get_predecessors(task_id, transitive)

    def dependency_edges(self) -> list[tuple[str, str]]:
        """(predecessor_id, successor_id) pairs for arrow drawing."""
        return self.graph.edges()

    # Selection

    @property
    def selection(self) -> tuple[str, ...]:
        return tuple(self._selection)

    @property
    def selected_tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks[t] for t in self._selection)

    def select(self, task_id: str, additive: bool = False) -> None:
        self.get_task(task_id)
        if not additive:
            self._selection = [task_id]
        elif task_id not in self._selection:
            self._selection.append(task_id)

    def deselect(self, task_id: str) -> None:
        if task_id in self._selection:
            self._selection.remove(task_id)

    def clear_selection(self) -> None:
        self._selection = []

    def select_in_box(  # noqa: PLR0913 - two corners, scale, and mode
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        scale: TimeScale,
        additive: bool = False,
    ) -> list[str]:
        """Select visible tasks intersecting a rubber band."""
        hits = self.layout.tasks_in_box(x1, y1, x2, y2, self.visible_tasks(), scale)
        if not additive:
            self._selection = []
        for task_id in hits:
            if task_id not in self._selection:
                self._selection.append(task_id)
        return hits

    def delete_selection(self) -> int:
        ids = list(self._selection)
        for task_id in ids:
            self.remove_task(task_id)
        return len(ids)

    # Moves and resizes

    def _moving_set(self, task_id: str, cascade: bool) -> list[Task]:
        if task_id in self._selection and len(self._selection) > 1:
            members = list(self._selection)
        else:
            members = [task_id]
        moving = dict.fromkeys(members)
        if cascade:
            for member in members:
                for successor in self.graph.get_successors(member, transitive=True):
                    if successor.id not in moving:
                        logger.checks(f"Cascading move from '{member}' to '{successor.id}'")
                        moving[successor.id] = None
        return [self._tasks[t] for t in moving]

    def move_task(  # noqa: PLR0913 - drag carries date, lane, and y
        self,
        task_id: str,
        new_start_date: date,
        new_lane_id: str | None = None,
        y: float | None = None,
        cascade: bool | None = None,
    ) -> list[Task]:
        """Move a task (and the rest of a multi-selection) in time, and optionally across lanes.

        Every moving task shifts by the same number of calendar days and then
        lands on its own next working day. With cascading on, transitive
        successors move too. Only the dragged task changes lane.

        Returns:
            The tasks whose start dates were shifted

        Raises:
            TaskNotFoundError: Unknown task
            LaneNotFoundError: Unknown target lane
        """
        task = self.get_task(task_id)
        if new_lane_id is not None:
            self.layout.require_lane(new_lane_id)
        if cascade is None:
            cascade = self.config.cascade_dependencies

        delta = timedelta(days=(new_start_date - task.start_date).days)
        moved = self._moving_set(task_id, cascade) if delta else []
        for member in moved:
            member.start_date += delta
            normalize_start_date(member)

        if new_lane_id is not None:
            self.layout.migrate_task(task, new_lane_id, y)
        elif y is not None:
            self.layout.set_position(task_id, y)

        if not moved and new_lane_id is None and y is None:
            return []
        if moved:
            logger.changes(f"Moved {len(moved)} task(s) by {delta.days} day(s) from '{task.name}'")
        self._emit("tasks_moved", [t.id for t in moved] or [task_id], (task.lane_id,))
        return moved

    def move_selection_to(self, target_date: date) -> list[Task]:
        """Move the selection so its first task starts on ``target_date``.

        The first task lands on its first working day on or after the target;
        the others keep their offset from it.
        """
        if not self._selection:
            return []
        first = self._tasks[self._selection[0]]
        anchor = next_working_day(target_date, first.work_on_saturday, first.work_on_sunday)
        delta = anchor - first.start_date
        moved = list(self.selected_tasks)
        if delta:
            for task in moved:
                task.start_date += delta
                normalize_start_date(task)
            logger.changes(f"Moved {len(moved)} selected task(s) by {delta.days} day(s)")
        self._emit("tasks_moved", self._selection)
        return moved

    def resize_task_edge(self, task_id: str, edge: Edge | str, new_boundary: date) -> Task:
        """Drag one boundary of a task, keeping the other fixed.

        Raises:
            TaskNotFoundError: Unknown task
            InvalidResizeError: The new duration is under one working day or over the cap
        """
        task = self.get_task(task_id)
        edge = Edge(edge)
        sat, sun = task.work_on_saturday, task.work_on_sunday

        if edge is Edge.END:
            start = task.start_date
            end = new_boundary
        else:
            start = next_working_day(new_boundary, sat, sun)
            end = task.end_date
        duration = count_business_days(start, end, sat, sun)
        if duration < MIN_DURATION:
            logger.debug(f"Rejected resize of '{task_id}' ({edge.value} -> {new_boundary})")
            raise InvalidResizeError(
                f"Cannot resize '{task.name}': moving the {edge.value} to {new_boundary} "
                f"leaves no working day between {start} and {end}"
            )
        if duration > MAX_DURATION:
            logger.debug(f"Rejected resize of '{task_id}' ({edge.value} -> {new_boundary})")
            raise InvalidResizeError(
                f"Cannot resize '{task.name}': {duration} working days exceeds {MAX_DURATION}"
            )

        task.start_date = start
        task.duration = duration
        logger.changes(f"Resized '{task.name}': starts {start}, {duration} working day(s)")
        self._emit("task_resized", (task_id,))
        return task

    # Clipboard

    def copy_selection(self) -> int:
        """Copy the selected tasks; returns how many were copied."""
        self._clipboard = [TaskConfig.from_task(t) for t in self.selected_tasks]
        return len(self._clipboard)

    @property
    def clipboard(self) -> tuple[TaskConfig, ...]:
        return tuple(self._clipboard)

    def paste_at(
        self, anchor_date: date, anchor_lane_id: str | None = None, anchor_y: float | None = None
    ) -> list[Task]:
        """Paste copies of the clipboard tasks.

        Start dates keep their offsets from the first copied task, which lands
        on ``anchor_date``. Copies get new ids and no dependencies, stack down
        from the anchor, and become the selection.

        Raises:
            NoLaneAvailableError: There are no lanes
        """
        if not self._clipboard:
            return []
        lane = self.layout.resolve_lane(anchor_lane_id)
        reference = self._clipboard[0].start_date or anchor_date
        delta = anchor_date - reference

        top = lane.offset + self.config.layout.top_padding
        y = top if anchor_y is None else max(top, anchor_y)
        step = self.config.layout.task_height + self.config.layout.paste_spacing

        pasted: list[Task] = []
        for entry in self._clipboard:
            copy = replace(
                entry,
                id=None,
                dependencies=[],
                start_date=(entry.start_date or reference) + delta,
            )
            task = self._build_task(copy, _new_id())
            self._tasks[task.id] = task
            self.layout.place_task(task, lane.id, y)
            pasted.append(task)
            y += step

        self._selection = [t.id for t in pasted]
        self.validator.complete_trade_filters()
        logger.changes(f"Pasted {len(pasted)} task(s) into lane '{lane.id}'")
        self._emit("tasks_pasted", self._selection, (lane.id,))
        return pasted

    # Templates

    def insert_template(
        self,
        name: str,
        start_date: date | None = None,
        lane_id: str | None = None,
        location: str | None = None,
    ) -> list[Task]:
        """Create the tasks of a sequence template in one lane.

        The first task and every task not marked ``depends_on_previous`` start
        on ``start_date`` (default: today). A chained task starts on the end
        date of the task before it and depends on it.

        Args:
            name: Template key, display name or alias
            start_date: Start of the sequence
            lane_id: Target lane (unknown or missing falls back to the first lane)
            location: Appended to task names ("Formwork - Block B")

        Returns:
            The created tasks, in template order

        Raises:
            TemplateNotFoundError: No template matches ``name``
            NoLaneAvailableError: There are no lanes
        """
        template = self.templates.require(name)
        lane = self.layout.resolve_lane(lane_id)
        base = start_date or date.today()

        created: list[Task] = []
        chains: list[list[str]] = []
        for step in template.tasks:
            task_name = step.name
            if location and location not in task_name:
                task_name = f"{task_name} - {location}"
            chained = bool(created) and step.depends_on_previous
            task = self.add_task(
                TaskConfig(
                    name=task_name,
                    start_date=created[-1].end_date if chained else base,
                    duration=step.duration,
                    crew_size=step.crew_size,
                    trade_id=step.trade_id,
                ),
                lane.id,
            )
            if chained:
                chains[-1].append(task.id)
            else:
                chains.append([task.id])
            created.append(task)

        for chain in chains:
            self.link_in_sequence(chain)

        logger.changes(
            f"Inserted template '{template.key}': {len(created)} task(s) in lane '{lane.id}'"
        )
        self._emit("template_inserted", (t.id for t in created), (lane.id,))
        return created

    # Trade filter

    @property
    def trade_filters(self) -> dict[str, bool]:
        return dict(self._trade_filters)

    def set_trade_filter(self, key: str, visible: bool) -> None:
        """Show or hide tasks of a trade id or color."""
        self._trade_filters[key] = visible
        self._emit("filters_changed")

    def set_trade_filters(self, filters: Mapping[str, bool]) -> None:
        self._trade_filters.update({key: bool(v) for key, v in filters.items()})
        self.validator.complete_trade_filters()
        self._emit("filters_changed")

    # Pointer queries

    def hit_test(
        self, world_x: float, world_y: float, scale: TimeScale, zoom: float = 1.0
    ) -> Hit | None:
        return self.layout.hit_test(world_x, world_y, self.visible_tasks(), scale, zoom)

    def crew_histogram(
        self, start: date | None = None, end: date | None = None, visible_only: bool = False
    ) -> DailyCrew:
        """Daily crew per trade over all (or only visible) tasks."""
        return daily_crew(self.visible_tasks() if visible_only else self.tasks, start, end)

    # Persistence

    def export_state(self) -> dict[str, Any]:
        """Plain, JSON-compatible snapshot of tasks, lanes, and the trade filter."""
        return {
            "tasks": [task.to_dict() for task in self._tasks.values()],
            "lanes": [lane.to_dict() for lane in self.layout.lanes],
            "trade_filters": dict(self._trade_filters),
        }

    def import_state(self, snapshot: Mapping[str, Any]) -> ValidationReport:  # noqa: PLR0912 - membership rebuild has many sources
        """Replace all state with a snapshot, repairing whatever is malformed.

        Lane membership comes from each task's own ``lane_id`` first, then from
        lanes' task lists. The validator runs afterwards.

        Raises:
            ParseError: ``snapshot`` is not a mapping
        """
        if not isinstance(snapshot, Mapping):
            raise ParseError(f"Snapshot must be a mapping, got {type(snapshot).__name__}")
        try:
            schema = SnapshotSchema.model_validate(dict(snapshot))
        except ValidationError as e:
            raise ParseError(f"Unreadable snapshot: {e}") from e

        tasks: dict[str, Task] = {}
        id_repairs = 0
        for record in schema.tasks:
            task_id = record.id
            if not task_id or task_id in tasks:
                task_id = _new_id()
                logger.checks(f"Task '{record.name}' had id '{record.id}' -> '{task_id}'")
                id_repairs += 1
            trade_id, color = self._default_trade(record.trade_id, record.color)
            tasks[task_id] = Task(
                id=task_id,
                name=record.name,
                start_date=record.start_date,
                duration=record.duration,
                crew_size=record.crew_size,
                trade_id=trade_id,
                color=color,
                dependencies=list(record.dependencies),
                progress=record.progress,
                status=record.status,
                work_on_saturday=record.work_on_saturday,
                work_on_sunday=record.work_on_sunday,
                lane_id=record.lane_id,
            )

        lanes: list[Lane] = []
        by_id: dict[str, Lane] = {}
        for index, record in enumerate(schema.lanes):
            lane = Lane(
                id=record.id,
                name=record.name or f"Lane {index + 1}",
                color=record.color,
                offset=record.offset if record.offset is not None else float("nan"),
                height=record.height or self.config.layout.lane_height,
            )
            lanes.append(lane)
            if lane.id:
                by_id.setdefault(lane.id, lane)

        assigned: set[str] = set()
        for task in tasks.values():
            lane = by_id.get(task.lane_id)
            if lane is not None:
                lane.task_ids.append(task.id)
                assigned.add(task.id)
        for lane, record in zip(lanes, schema.lanes):
            for task_id in record.task_ids:
                if task_id in tasks and task_id not in assigned:
                    lane.task_ids.append(task_id)
                    assigned.add(task_id)

        for lane, record in zip(lanes, schema.lanes):
            for task_id in lane.task_ids:
                stored = record.positions.get(task_id)
                if stored is None:
                    stored = schema.task_positions.get(task_id)
                if stored is not None:
                    lane.positions[task_id] = Position(x=stored.x, y=stored.y)

        self._tasks.clear()
        self._tasks.update(tasks)
        self.layout.lanes = lanes
        self.layout.restack()
        self._trade_filters.clear()
        self._trade_filters.update(schema.trade_filters)
        self._selection = []
        self.ticker.reset()

        report = self.validator.run()
        report.task_ids = id_repairs
        if report.total:
            logger.warning(
                f"Repaired {report.total} problem(s) in imported snapshot: {report.summary()}"
            )
        logger.changes(f"Imported {len(tasks)} task(s) in {len(lanes)} lane(s)")
        self._emit("state_imported", self._tasks, (lane.id for lane in self.layout.lanes))
        return report

    # Maintenance

    def validate(self) -> ValidationReport:
        """Run the repair passes now."""
        report = self.validator.run()
        if report.total:
            logger.warning(f"Repaired {report.total} problem(s): {report.summary()}")
            self._emit("state_repaired", self._tasks)
        return report

    def maintenance_tick(self) -> ValidationReport | None:
        """Count one update cycle; every ``validation_interval`` ticks, validate."""
        if self.ticker.tick():
            return self.validate()
        return None
