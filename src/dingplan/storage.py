"""Snapshot files.

A snapshot file wraps ``SchedulingEngine.export_state()`` output with a format
version::

    version: 1
    state:
      tasks: [...]
      lanes: [...]
      trade_filters: {...}

Paths ending in ``.json`` are written as JSON, everything else as YAML.
Files without the wrapper (written by older builds) are read as bare state.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

import yaml

from .exceptions import ParseError

SNAPSHOT_VERSION = 1


def _is_json(path: Path) -> bool:
    return path.suffix.lower() == ".json"


def write_snapshot(path: Path, snapshot: Mapping[str, Any]) -> None:
    """Write a snapshot, replacing the file in one step.

    Args:
        path: Destination file
        snapshot: Engine state from ``export_state()``
    """
    output: dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "state": dict(snapshot),
    }

    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        if _is_json(path):
            json.dump(output, f, indent=2)
            f.write("\n")
        else:
            yaml.safe_dump(output, f, default_flow_style=False, sort_keys=False)
    tmp_path.replace(path)


def read_snapshot(path: Path) -> dict[str, Any]:
    """Load a snapshot's state.

    Args:
        path: Snapshot file

    Returns:
        The state mapping, ready for ``import_state()``

    Raises:
        ParseError: The file cannot be read or parsed, is not a mapping, or
            has an unsupported version
    """
    try:
        with path.open(encoding="utf-8") as f:
            raw_data: Any = json.load(f) if _is_json(path) else yaml.safe_load(f)
    except OSError as e:
        raise ParseError(f"Cannot read snapshot {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Invalid snapshot syntax in {path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise ParseError(
            f"Invalid snapshot format in {path}: expected mapping, got {type(raw_data).__name__}"
        )

    data = cast(dict[str, Any], raw_data)
    if "version" not in data:
        return data

    version = data["version"]
    if not isinstance(version, int) or isinstance(version, bool):
        raise ParseError(f"Snapshot version must be int, got {type(version).__name__}")
    if version != SNAPSHOT_VERSION:
        raise ParseError(f"Unsupported snapshot version {version}, expected {SNAPSHOT_VERSION}")

    state = data.get("state", {})
    if not isinstance(state, dict):
        raise ParseError(f"Snapshot 'state' in {path} must be a mapping")
    return cast(dict[str, Any], state)
