"""Debounced snapshot writes driven by engine change events."""

from __future__ import annotations

import atexit
import threading
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any

from .logger import get_logger
from .storage import write_snapshot

if TYPE_CHECKING:
    from .config import AutosaveConfig
    from .engine import SchedulingEngine
    from .models import ChangeEvent

logger = get_logger()


class AutosaveWriter:
    """Writes the engine's snapshot once edits have been quiet for a while.

    The snapshot is captured on the thread that mutated the engine; the timer
    thread only writes the captured copy, so it never touches the engine.
    """

    def __init__(
        self,
        engine: SchedulingEngine,
        path: Path,
        quiet_period_seconds: float = 1.0,
        flush_at_exit: bool = False,
    ):
        """Subscribe to ``engine`` and save to ``path``.

        Args:
            engine: Engine to watch
            path: Snapshot file to write
            quiet_period_seconds: Delay after the last change before writing
            flush_at_exit: Also flush when the interpreter exits
        """
        self.engine = engine
        self.path = Path(path)
        self.quiet_period_seconds = quiet_period_seconds
        self.writes = 0
        self._lock = threading.Lock()
        self._pending: dict[str, Any] | None = None
        self._timer: threading.Timer | None = None
        self._unsubscribe = engine.subscribe(self._on_change)
        self._at_exit = flush_at_exit
        if flush_at_exit:
            atexit.register(self.close)

    @classmethod
    def from_config(
        cls, engine: SchedulingEngine, config: AutosaveConfig, path: Path | None = None
    ) -> AutosaveWriter:
        """Build a writer from config; ``path`` overrides ``config.path``.

        Raises:
            ValueError: Neither gives a path
        """
        target = path or config.path
        if target is None:
            raise ValueError("Autosave needs a path (autosave.path in config)")
        return cls(engine, target, config.quiet_period_seconds)

    @property
    def pending(self) -> bool:
        """True while a captured snapshot is waiting to be written."""
        with self._lock:
            return self._pending is not None

    def _on_change(self, event: ChangeEvent) -> None:
        snapshot = self.engine.export_state()
        with self._lock:
            self._pending = snapshot
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.quiet_period_seconds, self._flush_on_timer)
            self._timer.daemon = True
            self._timer.start()
        logger.debug(f"Autosave scheduled after '{event.kind}'")

    def _flush_on_timer(self) -> None:
        try:
            self.flush()
        except OSError as e:
            logger.error(f"Autosave to {self.path} failed: {e}")

    def flush(self) -> bool:
        """Write the pending snapshot now, if any.

        Returns:
            True if a snapshot was written
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            snapshot, self._pending = self._pending, None
            if snapshot is None:
                return False
            write_snapshot(self.path, snapshot)
            self.writes += 1
        logger.changes(f"Autosaved {len(snapshot.get('tasks', []))} task(s) to {self.path}")
        return True

    def close(self) -> None:
        """Stop listening and write anything still pending."""
        self._unsubscribe()
        if self._at_exit:
            atexit.unregister(self.close)
            self._at_exit = False
        self.flush()

    def __enter__(self) -> AutosaveWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
