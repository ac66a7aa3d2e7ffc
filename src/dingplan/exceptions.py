"""Custom exceptions for dingplan."""

from __future__ import annotations


class PlannerError(Exception):
    """Base exception for all dingplan errors."""

    pass


class SchedulingError(PlannerError):
    """Raised when a mutation is rejected and nothing was changed."""

    pass


class CycleError(SchedulingError):
    """Raised when a dependency edge would create a cycle or is a self-edge."""

    def __init__(self, task_id: str, predecessor_id: str, message: str | None = None):
        self.task_id = task_id
        self.predecessor_id = predecessor_id
        if message is None:
            if task_id == predecessor_id:
                message = f"Task '{task_id}' cannot depend on itself"
            else:
                message = (
                    f"Cannot make '{task_id}' depend on '{predecessor_id}': "
                    f"'{predecessor_id}' already depends on '{task_id}' (directly or indirectly)"
                )
        super().__init__(message)


class DuplicateDependencyError(SchedulingError):
    """Raised when a dependency edge already exists."""

    def __init__(self, task_id: str, predecessor_id: str):
        self.task_id = task_id
        self.predecessor_id = predecessor_id
        super().__init__(f"Task '{task_id}' already depends on '{predecessor_id}'")


class InvalidResizeError(SchedulingError):
    """Raised when a resize would leave a task shorter than one business day."""

    pass


class TaskNotFoundError(SchedulingError, KeyError):
    """Raised when a referenced task ID does not exist."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Unknown task: {task_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class TemplateNotFoundError(SchedulingError, KeyError):
    """Raised when no sequence template matches a name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown template: {name}")

    def __str__(self) -> str:
        return str(self.args[0])


class LaneError(SchedulingError):
    """Base exception for lane operations."""

    pass


class NoLaneAvailableError(LaneError):
    """Raised when a task is added while no lanes exist."""

    pass


class LaneNotEmptyError(LaneError):
    """Raised when deleting a lane that still owns tasks."""

    pass


class LastLaneError(LaneError):
    """Raised when deleting the only remaining lane."""

    pass


class LaneNotFoundError(LaneError, KeyError):
    """Raised when a referenced lane ID does not exist."""

    def __init__(self, lane_id: str):
        self.lane_id = lane_id
        super().__init__(f"Unknown lane: {lane_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class ParseError(PlannerError):
    """Raised when a snapshot or config file cannot be read."""

    pass
