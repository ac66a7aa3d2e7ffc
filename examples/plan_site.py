"""Build a small site schedule with the engine API and save it.

Usage:
    python examples/plan_site.py plan.yaml
    dingplan summary plan.yaml
    dingplan histogram plan.yaml --weekly
"""

import sys
from datetime import date, timedelta
from pathlib import Path

from dingplan.autosave import AutosaveWriter
from dingplan.engine import Edge, SchedulingEngine
from dingplan.logger import setup_logger
from dingplan.models import TaskConfig

MONDAY = date(2025, 3, 3)


def build(engine: SchedulingEngine) -> None:
    engine.add_lane("Foundation", lane_id="foundation")
    engine.add_lane("Structure", lane_id="structure")

    demo = engine.add_task(
        TaskConfig(name="Demolish shed", start_date=MONDAY, duration=2, trade_id="demolition"),
        "foundation",
    )
    pour = engine.add_task(
        TaskConfig(name="Pour footings", start_date=MONDAY, duration=3, trade_id="concrete"),
        "foundation",
    )
    frame = engine.add_task(
        TaskConfig(
            name="Frame walls", start_date=MONDAY, duration=5, crew_size=5, trade_id="framing"
        ),
        "structure",
    )
    engine.link_in_sequence([demo.id, pour.id, frame.id])

    # Push footings and everything after them to follow demolition
    engine.move_task(pour.id, demo.end_date)
    engine.move_task(frame.id, pour.end_date, cascade=False)
    # Framing crew asked for one more day
    engine.resize_task_edge(frame.id, Edge.END, frame.end_date + timedelta(days=1))
    engine.relayout_lane("foundation")

    # Services follow the frame
    engine.add_lane("Services", lane_id="services")
    engine.insert_template("mep", frame.end_date, "services", location="Level 1")


def main() -> None:
    setup_logger(1)
    path = Path(sys.argv[1] if len(sys.argv) > 1 else "plan.yaml")
    engine = SchedulingEngine()
    with AutosaveWriter(engine, path, quiet_period_seconds=60):
        build(engine)
    for day, trades in engine.crew_histogram().items():
        print(day, trades)


if __name__ == "__main__":
    main()
