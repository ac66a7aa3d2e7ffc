"""Pytest configuration and fixtures for dingplan tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date
from typing import Any

import pytest

from dingplan.config import set_config_path
from dingplan.engine import SchedulingEngine
from dingplan.logger import reset_logger
from dingplan.models import Task, TaskConfig
from dingplan.trades import STANDARD_TRADES

# 2025-03-03 is a Monday
MONDAY = date(2025, 3, 3)


@pytest.fixture(autouse=True)
def clean_global_state() -> Iterator[None]:
    """Keep logger and config-path settings from leaking between tests."""
    reset_logger()
    set_config_path(None)
    yield
    reset_logger()
    set_config_path(None)


@pytest.fixture
def monday() -> date:
    """A Monday to anchor schedules on."""
    return MONDAY


@pytest.fixture
def engine() -> SchedulingEngine:
    """Engine with two empty lanes, 'zone-a' above 'zone-b'."""
    eng = SchedulingEngine()
    eng.add_lane("Zone A", lane_id="zone-a")
    eng.add_lane("Zone B", lane_id="zone-b")
    return eng


@pytest.fixture
def make_task(engine: SchedulingEngine, monday: date) -> Callable[..., Task]:
    """Factory adding a task to the engine (default: Monday start, lane 'zone-a')."""

    def _make(name: str, lane_id: str = "zone-a", **kwargs: Any) -> Task:
        kwargs.setdefault("start_date", monday)
        return engine.add_task(TaskConfig(name=name, id=kwargs.pop("id", name), **kwargs), lane_id)

    return _make


def make_snapshot(**overrides: Any) -> dict[str, Any]:
    """A small valid snapshot: one lane, two linked tasks."""
    snapshot: dict[str, Any] = {
        "tasks": [
            {
                "id": "pour",
                "name": "Pour slab",
                "start_date": "2025-03-03",
                "duration": 2,
                "crew_size": 4,
                "trade_id": "concrete",
                "color": "#BDBDBD",
                "dependencies": [],
                "lane_id": "site",
            },
            {
                "id": "frame",
                "name": "Frame walls",
                "start_date": "2025-03-05",
                "duration": 3,
                "crew_size": 3,
                "trade_id": "framing",
                "color": "#FFB74D",
                "dependencies": ["pour"],
                "lane_id": "site",
            },
        ],
        "lanes": [
            {
                "id": "site",
                "name": "Site",
                "color": "#4f46e5",
                "offset": 0,
                "height": 400,
                "task_ids": ["pour", "frame"],
                "positions": {"pour": {"x": 0, "y": 40}, "frame": {"x": 0, "y": 115}},
            }
        ],
        "trade_filters": {key: True for t in STANDARD_TRADES for key in (t.id, t.color)},
    }
    snapshot.update(overrides)
    return snapshot


@pytest.fixture
def snapshot() -> dict[str, Any]:
    """A small valid snapshot."""
    return make_snapshot()
