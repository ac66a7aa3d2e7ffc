"""Tests for lane layout, time scale, and hit testing."""

import logging
from datetime import date, timedelta

import pytest

from dingplan.config import LayoutConfig
from dingplan.exceptions import (
    LaneError,
    LaneNotEmptyError,
    LaneNotFoundError,
    LastLaneError,
    NoLaneAvailableError,
)
from dingplan.layout import HitZone, LaneLayout
from dingplan.models import Task
from dingplan.timescale import TimeScale

MONDAY = date(2025, 3, 3)


def _task(task_id: str, start: date = MONDAY, duration: int = 1) -> Task:
    return Task(id=task_id, name=task_id, start_date=start, duration=duration)


@pytest.fixture
def layout() -> LaneLayout:
    """Two default-sized lanes: 'a' at 0, 'b' at 400."""
    lay = LaneLayout(LayoutConfig())
    lay.add_lane("a", "A")
    lay.add_lane("b", "B")
    return lay


class TestLaneCollection:
    """Test adding, removing, and ordering lanes."""

    def test_offsets_are_running_sum(self, layout: LaneLayout) -> None:
        """Lanes stack by height."""
        assert [lane.offset for lane in layout.lanes] == [0, 400]
        assert layout.total_height() == 800

    def test_lane_spacing(self) -> None:
        """Spacing is added between lanes."""
        lay = LaneLayout(LayoutConfig(lane_spacing=20))
        lay.add_lane("a", "A")
        lay.add_lane("b", "B", height=300)
        lay.add_lane("c", "C")
        assert [lane.offset for lane in lay.lanes] == [0, 420, 740]

    def test_insert_at_index_restacks(self, layout: LaneLayout) -> None:
        """Inserting at the top pushes the others (and their tasks) down."""
        layout.place_task(_task("t"), "a")
        layout.add_lane("top", "Top", index=0)
        assert [lane.id for lane in layout.lanes] == ["top", "a", "b"]
        assert layout.get_lane("a").offset == 400  # type: ignore[union-attr]
        assert layout.position_of("t").y == 440  # type: ignore[union-attr]

    def test_duplicate_lane_id(self, layout: LaneLayout) -> None:
        """Lane ids are unique."""
        with pytest.raises(ValueError, match="already exists"):
            layout.add_lane("a", "Again")

    def test_invalid_height(self, layout: LaneLayout) -> None:
        """Heights must be positive."""
        with pytest.raises(ValueError, match="positive"):
            layout.add_lane("c", "C", height=0)

    def test_remove_empty_lane(self, layout: LaneLayout) -> None:
        """Removing an empty lane restacks the rest."""
        layout.remove_lane("a")
        assert [lane.id for lane in layout.lanes] == ["b"]
        assert layout.lanes[0].offset == 0

    def test_remove_lane_with_tasks(self, layout: LaneLayout) -> None:
        """A lane that owns tasks cannot be removed."""
        layout.place_task(_task("t"), "a")
        with pytest.raises(LaneNotEmptyError, match="1 task"):
            layout.remove_lane("a")
        assert layout.get_lane("a") is not None

    def test_remove_last_lane(self) -> None:
        """The only lane cannot be removed."""
        lay = LaneLayout()
        lay.add_lane("only", "Only")
        with pytest.raises(LastLaneError):
            lay.remove_lane("only")

    def test_remove_unknown_lane(self, layout: LaneLayout) -> None:
        """Unknown lanes raise LaneNotFoundError."""
        with pytest.raises(LaneNotFoundError):
            layout.remove_lane("zzz")

    def test_move_lane_shifts_tasks(self, layout: LaneLayout) -> None:
        """Reordering lanes carries task positions along."""
        layout.place_task(_task("t1"), "a")
        layout.place_task(_task("t2"), "b")
        layout.move_lane(0, 1)
        assert [lane.id for lane in layout.lanes] == ["b", "a"]
        assert layout.position_of("t2").y == 40  # type: ignore[union-attr]
        assert layout.position_of("t1").y == 440  # type: ignore[union-attr]
        for lane in layout.lanes:
            for task_id in lane.task_ids:
                assert lane.contains_y(lane.positions[task_id].y)

    def test_move_lane_out_of_range(self, layout: LaneLayout) -> None:
        """Bad indices are rejected."""
        with pytest.raises(LaneError, match="out of range"):
            layout.move_lane(0, 5)

    def test_lane_lookups(self, layout: LaneLayout) -> None:
        """Lanes can be found by id, index, and y."""
        assert layout.index_of("b") == 1
        assert layout.lane_at(450).id == "b"  # type: ignore[union-attr]
        assert layout.lane_at(900) is None
        with pytest.raises(LaneNotFoundError):
            layout.index_of("zzz")


class TestSlots:
    """Test slot computation and task placement."""

    def test_next_slot_stacks_and_clamps(self, layout: LaneLayout) -> None:
        """Slots step by row height plus spacing, then stick at the bottom."""
        lane = layout.get_lane("a")
        assert lane is not None
        slots = []
        for i in range(6):
            layout.place_task(_task(f"t{i}"), "a")
            slots.append(lane.positions[f"t{i}"].y)
        assert slots == [40, 115, 190, 265, 310, 310]

    def test_next_slot_in_second_lane(self, layout: LaneLayout) -> None:
        """Slots are relative to the lane offset."""
        lane = layout.get_lane("b")
        assert lane is not None
        assert layout.next_slot(lane) == 440

    def test_unknown_lane_falls_back(
        self, layout: LaneLayout, caplog: pytest.LogCaptureFixture
    ) -> None:
        """An unknown lane id places the task in the first lane and logs it."""
        task = _task("t")
        with caplog.at_level(logging.WARNING, logger="dingplan"):
            lane = layout.place_task(task, "nowhere")
        assert lane.id == "a"
        assert task.lane_id == "a"
        assert "nowhere" in caplog.text

    def test_no_lanes(self) -> None:
        """Placing without lanes raises NoLaneAvailableError."""
        with pytest.raises(NoLaneAvailableError):
            LaneLayout().place_task(_task("t"))

    def test_explicit_y_is_clamped(self, layout: LaneLayout) -> None:
        """A requested y outside the lane is pulled back into it."""
        layout.place_task(_task("t"), "b", y=5)
        assert layout.position_of("t").y == 440  # type: ignore[union-attr]
        assert layout.set_position("t", 10_000) == 710

    def test_migrate_task(self, layout: LaneLayout) -> None:
        """Migrating moves membership, position, and back-reference."""
        task = _task("t")
        layout.place_task(task, "a")
        layout.migrate_task(task, "b")
        assert layout.lane_of("t").id == "b"  # type: ignore[union-attr]
        assert "t" not in layout.get_lane("a").positions  # type: ignore[union-attr]
        assert layout.position_of("t").y == 440  # type: ignore[union-attr]
        assert task.lane_id == "b"

    def test_migrate_to_unknown_lane(self, layout: LaneLayout) -> None:
        """Migrating to an unknown lane changes nothing."""
        task = _task("t")
        layout.place_task(task, "a")
        with pytest.raises(LaneNotFoundError):
            layout.migrate_task(task, "zzz")
        assert layout.lane_of("t").id == "a"  # type: ignore[union-attr]

    def test_remove_task(self, layout: LaneLayout) -> None:
        """Removing drops membership and position."""
        layout.place_task(_task("t"), "a")
        assert layout.remove_task("t").id == "a"  # type: ignore[union-attr]
        assert layout.lane_of("t") is None
        assert layout.remove_task("t") is None

    def test_relayout_sorts_by_start(self, layout: LaneLayout) -> None:
        """Relayout orders tasks by start date from the top slot."""
        tasks = {
            "late": _task("late", MONDAY + timedelta(days=3)),
            "early": _task("early", MONDAY),
            "mid": _task("mid", MONDAY + timedelta(days=1)),
        }
        for task in tasks.values():
            layout.place_task(task, "a", y=300)
        layout.relayout_lane("a", tasks)
        lane = layout.get_lane("a")
        assert lane is not None
        assert lane.task_ids == ["early", "mid", "late"]
        assert [lane.positions[t].y for t in lane.task_ids] == [40, 115, 190]


class TestTimeScale:
    """Test date/world conversion."""

    def test_round_trip(self) -> None:
        """Dates map to day cells and back."""
        scale = TimeScale(MONDAY, day_width=50)
        assert scale.date_to_world(MONDAY + timedelta(days=2)) == 100
        assert scale.world_to_date(125) == MONDAY + timedelta(days=2)
        assert scale.world_to_date(-1) == MONDAY - timedelta(days=1)

    def test_task_span(self) -> None:
        """A task spans from its start to its end date."""
        scale = TimeScale(MONDAY, day_width=50)
        assert scale.task_span(_task("t", MONDAY, 5)) == (0, 350)


class TestHitTest:
    """Test pointer hit testing."""

    @pytest.fixture
    def placed(self, layout: LaneLayout) -> list[Task]:
        """One five-day task at the top of lane 'a' (x 0..350, y 40..80)."""
        task = _task("t", MONDAY, 5)
        layout.place_task(task, "a")
        return [task]

    def test_zones(self, layout: LaneLayout, placed: list[Task]) -> None:
        """Edges within the band resize; the middle moves."""
        scale = TimeScale(MONDAY)
        assert layout.hit_test(175, 60, placed, scale).zone is HitZone.MOVE  # type: ignore[union-attr]
        assert layout.hit_test(5, 60, placed, scale).zone is HitZone.RESIZE_START  # type: ignore[union-attr]
        assert layout.hit_test(345, 60, placed, scale).zone is HitZone.RESIZE_END  # type: ignore[union-attr]

    def test_band_shrinks_with_zoom(self, layout: LaneLayout, placed: list[Task]) -> None:
        """Zooming in narrows the resize band in world units."""
        scale = TimeScale(MONDAY)
        assert layout.hit_test(8, 60, placed, scale).zone is HitZone.RESIZE_START  # type: ignore[union-attr]
        assert layout.hit_test(8, 60, placed, scale, zoom=2).zone is HitZone.MOVE  # type: ignore[union-attr]

    def test_miss(self, layout: LaneLayout, placed: list[Task]) -> None:
        """Points outside every box hit nothing."""
        scale = TimeScale(MONDAY)
        assert layout.hit_test(175, 100, placed, scale) is None
        assert layout.hit_test(400, 60, placed, scale) is None

    def test_topmost_wins(self, layout: LaneLayout) -> None:
        """Overlapping boxes resolve to the last drawn task."""
        first, second = _task("first", MONDAY, 5), _task("second", MONDAY, 5)
        layout.place_task(first, "a", y=40)
        layout.place_task(second, "a", y=40)
        hit = layout.hit_test(175, 60, [first, second], TimeScale(MONDAY))
        assert hit is not None
        assert hit.task_id == "second"

    def test_tasks_in_box(self, layout: LaneLayout) -> None:
        """Rubber-band selection finds intersecting boxes in either drag direction."""
        tasks = [_task("t1", MONDAY, 2), _task("t2", MONDAY + timedelta(days=7), 2)]
        for task in tasks:
            layout.place_task(task, "a")
        scale = TimeScale(MONDAY)
        assert layout.tasks_in_box(0, 0, 120, 200, tasks, scale) == ["t1"]
        assert layout.tasks_in_box(600, 200, 0, 0, tasks, scale) == ["t1", "t2"]
