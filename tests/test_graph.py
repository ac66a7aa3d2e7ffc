"""Tests for the dependency graph."""

import random
from datetime import date

import pytest

from dingplan.exceptions import CycleError, DuplicateDependencyError, TaskNotFoundError
from dingplan.graph import DependencyGraph
from dingplan.models import Task


def _tasks(*ids: str) -> dict[str, Task]:
    return {
        task_id: Task(id=task_id, name=task_id.upper(), start_date=date(2025, 3, 3))
        for task_id in ids
    }


class TestAddDependency:
    """Test adding edges."""

    def test_add_edge(self) -> None:
        """An accepted edge lands in the successor's dependency list."""
        tasks = _tasks("a", "b")
        DependencyGraph(tasks).add_dependency("b", "a")
        assert tasks["b"].dependencies == ["a"]

    def test_reverse_edge_rejected(self) -> None:
        """The reverse of an existing edge is a cycle and changes nothing."""
        tasks = _tasks("a", "b")
        graph = DependencyGraph(tasks)
        graph.add_dependency("a", "b")
        with pytest.raises(CycleError) as exc_info:
            graph.add_dependency("b", "a")
        assert exc_info.value.task_id == "b"
        assert exc_info.value.predecessor_id == "a"
        assert graph.edges() == [("b", "a")]
        assert tasks["b"].dependencies == []

    def test_self_edge_rejected(self) -> None:
        """A task cannot depend on itself."""
        graph = DependencyGraph(_tasks("a"))
        with pytest.raises(CycleError, match="itself"):
            graph.add_dependency("a", "a")

    def test_transitive_cycle_rejected(self) -> None:
        """Closing a longer loop is rejected."""
        graph = DependencyGraph(_tasks("a", "b", "c"))
        graph.add_dependency("b", "a")
        graph.add_dependency("c", "b")
        assert graph.would_create_cycle("a", "c")
        with pytest.raises(CycleError):
            graph.add_dependency("a", "c")

    def test_duplicate_rejected(self) -> None:
        """Adding the same edge twice raises and keeps one copy."""
        tasks = _tasks("a", "b")
        graph = DependencyGraph(tasks)
        graph.add_dependency("b", "a")
        with pytest.raises(DuplicateDependencyError):
            graph.add_dependency("b", "a")
        assert tasks["b"].dependencies == ["a"]

    def test_unknown_task(self) -> None:
        """Unknown ids raise TaskNotFoundError, which is also a KeyError."""
        graph = DependencyGraph(_tasks("a"))
        with pytest.raises(TaskNotFoundError):
            graph.add_dependency("a", "ghost")
        with pytest.raises(KeyError):
            graph.add_dependency("ghost", "a")


class TestRemoveAndQuery:
    """Test removal and traversal."""

    @pytest.fixture
    def chain(self) -> DependencyGraph:
        """a -> b -> c, plus a -> d."""
        graph = DependencyGraph(_tasks("a", "b", "c", "d"))
        graph.add_dependency("b", "a")
        graph.add_dependency("c", "b")
        graph.add_dependency("d", "a")
        return graph

    def test_remove_is_idempotent(self, chain: DependencyGraph) -> None:
        """Removing twice reports False the second time."""
        assert chain.remove_dependency("c", "b") is True
        assert chain.remove_dependency("c", "b") is False

    def test_direct_successors(self, chain: DependencyGraph) -> None:
        """Direct successors are the tasks listing the id."""
        assert {t.id for t in chain.get_successors("a")} == {"b", "d"}

    def test_transitive_successors(self, chain: DependencyGraph) -> None:
        """Transitive successors follow the whole chain."""
        assert {t.id for t in chain.get_successors("a", transitive=True)} == {"b", "c", "d"}
        assert chain.get_successors("c", transitive=True) == []

    def test_predecessors(self, chain: DependencyGraph) -> None:
        """Predecessors walk the other way."""
        assert [t.id for t in chain.get_predecessors("c")] == ["b"]
        assert {t.id for t in chain.get_predecessors("c", transitive=True)} == {"a", "b"}

    def test_strip_references(self, chain: DependencyGraph) -> None:
        """Stripping an id removes it from every dependency list."""
        assert chain.strip_references("a") == 2
        assert ("a", "b") not in chain.edges()
        assert ("a", "d") not in chain.edges()

    def test_topological_order(self, chain: DependencyGraph) -> None:
        """Predecessors come before successors."""
        order = chain.topological_order()
        assert order.index("a") < order.index("b") < order.index("c")
        assert order.index("a") < order.index("d")

    def test_topological_order_rejects_cycle(self) -> None:
        """A cycle injected behind the graph's back is reported."""
        tasks = _tasks("a", "b")
        tasks["a"].dependencies = ["b"]
        tasks["b"].dependencies = ["a"]
        with pytest.raises(CycleError, match="Circular dependency"):
            DependencyGraph(tasks).topological_order()

    def test_find_cycle(self) -> None:
        """find_cycle returns the loop with its first id repeated."""
        tasks = _tasks("a", "b", "c")
        tasks["a"].dependencies = ["b"]
        tasks["b"].dependencies = ["c"]
        tasks["c"].dependencies = ["a"]
        cycle = DependencyGraph(tasks).find_cycle()
        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_no_cycle(self, chain: DependencyGraph) -> None:
        """An acyclic graph has no cycle."""
        assert chain.find_cycle() is None


class TestLinkInSequence:
    """Test chaining tasks."""

    def test_links_consecutive_pairs(self) -> None:
        """Each task depends on the one before it."""
        tasks = _tasks("a", "b", "c")
        added = DependencyGraph(tasks).link_in_sequence(["a", "b", "c"])
        assert added == 2
        assert tasks["b"].dependencies == ["a"]
        assert tasks["c"].dependencies == ["b"]

    def test_existing_edges_skipped(self) -> None:
        """Already-present links are not duplicated."""
        tasks = _tasks("a", "b", "c")
        graph = DependencyGraph(tasks)
        graph.add_dependency("b", "a")
        assert graph.link_in_sequence(["a", "b", "c"]) == 1
        assert tasks["b"].dependencies == ["a"]

    def test_cycle_leaves_graph_untouched(self) -> None:
        """A chain that would close a loop adds nothing at all."""
        tasks = _tasks("a", "b", "c")
        graph = DependencyGraph(tasks)
        graph.add_dependency("a", "c")
        with pytest.raises(CycleError):
            graph.link_in_sequence(["a", "b", "c"])
        assert graph.edges() == [("c", "a")]

    def test_cycle_within_chain(self) -> None:
        """Repeating a task in the chain is rejected before committing."""
        tasks = _tasks("a", "b")
        graph = DependencyGraph(tasks)
        with pytest.raises(CycleError):
            graph.link_in_sequence(["a", "b", "a"])
        assert graph.edges() == []


class TestDagInvariant:
    """Random edge insertions never produce a cycle."""

    @pytest.mark.parametrize("seed", range(10))
    def test_random_insertions_stay_acyclic(self, seed: int) -> None:
        """Accepted edges always leave an acyclic graph."""
        rng = random.Random(seed)
        ids = [f"t{i}" for i in range(12)]
        tasks = _tasks(*ids)
        graph = DependencyGraph(tasks)

        for _ in range(80):
            successor, predecessor = rng.choice(ids), rng.choice(ids)
            expect_cycle = graph.would_create_cycle(successor, predecessor)
            try:
                graph.add_dependency(successor, predecessor)
            except CycleError:
                assert expect_cycle
            except DuplicateDependencyError:
                assert predecessor in tasks[successor].dependencies
            else:
                assert not expect_cycle
            assert graph.find_cycle() is None

        order = graph.topological_order()
        for predecessor, successor in graph.edges():
            assert order.index(predecessor) < order.index(successor)
