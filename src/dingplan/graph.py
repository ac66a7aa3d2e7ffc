"""Dependency graph over the engine's task index.

Edges are not stored separately: a predecessor id inside
``Task.dependencies`` is the edge. The graph object only reads and mutates
those lists through the owning ``dict[str, Task]``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from .exceptions import CycleError, DuplicateDependencyError, TaskNotFoundError
from .logger import get_logger

if TYPE_CHECKING:
    from .models import Task

logger = get_logger()


class DependencyGraph:
    """Finish-to-start dependencies between tasks, kept acyclic."""

    def __init__(self, tasks: Mapping[str, Task]):
        """Initialize with the owning task index.

        Args:
            tasks: Live mapping of task id to task (not copied)
        """
        self.tasks = tasks

    def _require(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def would_create_cycle(self, task_id: str, candidate_predecessor_id: str) -> bool:
        """Check whether a new edge ``candidate_predecessor_id -> task_id`` closes a cycle.

        Walks predecessor edges from the candidate; reaching ``task_id`` means
        the candidate already (transitively) depends on it.
        """
        if task_id == candidate_predecessor_id:
            return True
        return task_id in self._reachable_predecessors(candidate_predecessor_id)

    def _reachable_predecessors(
        self, start_id: str, extra_edges: Mapping[str, Iterable[str]] | None = None
    ) -> set[str]:
        """All ids reachable from ``start_id`` by following predecessor edges."""
        seen: set[str] = set()
        to_process = [start_id]
        while to_process:
            current = to_process.pop()
            task = self.tasks.get(current)
            predecessors = list(task.dependencies) if task else []
            if extra_edges and current in extra_edges:
                predecessors.extend(extra_edges[current])
            for dep_id in predecessors:
                if dep_id not in seen:
                    seen.add(dep_id)
                    to_process.append(dep_id)
        return seen

    def add_dependency(self, task_id: str, predecessor_id: str) -> None:
        """Make ``predecessor_id`` a predecessor of ``task_id``.

        Raises:
            TaskNotFoundError: Either id is unknown
            CycleError: The edge is a self-edge or would close a cycle
            DuplicateDependencyError: The edge already exists
        """
        task = self._require(task_id)
        self._require(predecessor_id)

        if predecessor_id in task.dependencies:
            raise DuplicateDependencyError(task_id, predecessor_id)
        if self.would_create_cycle(task_id, predecessor_id):
            logger.debug(f"Rejected dependency {predecessor_id} -> {task_id}: cycle")
            raise CycleError(task_id, predecessor_id)

        task.dependencies.append(predecessor_id)
        logger.changes(f"Added dependency {predecessor_id} -> {task_id}")

    def remove_dependency(self, task_id: str, predecessor_id: str) -> bool:
        """Remove an edge if present.

        Returns:
            True if an edge was removed
        """
        task = self._require(task_id)
        if predecessor_id not in task.dependencies:
            return False
        task.dependencies = [d for d in task.dependencies if d != predecessor_id]
        logger.changes(f"Removed dependency {predecessor_id} -> {task_id}")
        return True

    def link_in_sequence(self, task_ids: list[str]) -> int:
        """Chain tasks so each one depends on the one before it.

        Existing edges are skipped. All pairs are checked before any edge is
        added, so a chain that would create a cycle changes nothing.

        Returns:
            Number of edges added
        """
        for task_id in task_ids:
            self._require(task_id)

        pending: dict[str, list[str]] = {}
        for predecessor_id, successor_id in zip(task_ids, task_ids[1:]):
            successor = self.tasks[successor_id]
            if predecessor_id in successor.dependencies or predecessor_id in pending.get(
                successor_id, []
            ):
                continue
            if successor_id == predecessor_id or successor_id in self._reachable_predecessors(
                predecessor_id, pending
            ):
                raise CycleError(successor_id, predecessor_id)
            pending.setdefault(successor_id, []).append(predecessor_id)

        added = 0
        for successor_id, predecessor_ids in pending.items():
            self.tasks[successor_id].dependencies.extend(predecessor_ids)
            added += len(predecessor_ids)
        if added:
            logger.changes(f"Linked {len(task_ids)} tasks in sequence ({added} new edges)")
        return added

    def get_successors(self, task_id: str, transitive: bool = False) -> list[Task]:
        """Tasks that depend on ``task_id``, directly or (optionally) transitively."""
        direct = [t for t in self.tasks.values() if task_id in t.dependencies]
        if not transitive:
            return direct

        successors: dict[str, Task] = {}
        to_process = list(direct)
        while to_process:
            current = to_process.pop()
            if current.id in successors or current.id == task_id:
                continue
            successors[current.id] = current
            to_process.extend(t for t in self.tasks.values() if current.id in t.dependencies)
        return list(successors.values())

    def get_predecessors(self, task_id: str, transitive: bool = False) -> list[Task]:
        """Tasks that ``task_id`` depends on, directly or (optionally) transitively."""
        task = self._require(task_id)
        ids = self._reachable_predecessors(task_id) if transitive else set(task.dependencies)
        return [t for t in self.tasks.values() if t.id in ids and t.id != task_id]

    def strip_references(self, task_id: str) -> int:
        """Remove ``task_id`` from every task's dependencies.

        Returns:
            Number of edges removed
        """
        removed = 0
        for task in self.tasks.values():
            if task_id in task.dependencies:
                task.dependencies = [d for d in task.dependencies if d != task_id]
                removed += 1
        return removed

    def edges(self) -> list[tuple[str, str]]:
        """All edges as (predecessor_id, successor_id) pairs."""
        return [(dep_id, task.id) for task in self.tasks.values() for dep_id in task.dependencies]

    def find_cycle(self) -> list[str] | None:
        """Return one cycle as a list of ids (first id repeated at the end), or None."""
        visited: set[str] = set()
        for task_id in self.tasks:
            path: list[str] = []
            if self._has_cycle(task_id, visited, path):
                return path
        return None

    def _has_cycle(self, task_id: str, visited: set[str], path: list[str]) -> bool:
        """Depth-first search along predecessor edges; leaves the cycle in ``path``."""
        if task_id in path:
            del path[: path.index(task_id)]
            path.append(task_id)
            return True
        if task_id in visited:
            return False

        visited.add(task_id)
        path.append(task_id)
        task = self.tasks.get(task_id)
        if task:
            for dep_id in task.dependencies:
                if self._has_cycle(dep_id, visited, path):
                    return True
        path.pop()
        return False

    def topological_order(self) -> list[str]:
        """Task ids ordered so every predecessor comes before its successors.

        Ties keep task index order. Unknown predecessor ids are ignored.

        Raises:
            CycleError: The graph contains a cycle
        """
        remaining = {
            task_id: {d for d in task.dependencies if d in self.tasks}
            for task_id, task in self.tasks.items()
        }
        order: list[str] = []
        while remaining:
            ready = [task_id for task_id, deps in remaining.items() if not deps]
            if not ready:
                cycle = self.find_cycle() or list(remaining)
                raise CycleError(
                    cycle[0],
                    cycle[1] if len(cycle) > 1 else cycle[0],
                    f"Circular dependency detected: {' -> '.join(cycle)}",
                )
            for task_id in ready:
                order.append(task_id)
                del remaining[task_id]
            for deps in remaining.values():
                deps.difference_update(ready)
        return order
