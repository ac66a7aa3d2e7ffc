"""Configuration for the planner engine, trades, templates and autosave.

A single optional file (``dingplan_config.yaml``) holds every section::

    engine:
      cascade_dependencies: true
      validation_interval: 10
      layout:
        lane_height: 400
      default_lanes:
        - {id: zone-a, name: Zone A, color: "#4f46e5"}
    trades:
      use_standard: true
      extra:
        - {id: landscaping, name: Landscaping, color: "#8BC34A"}
    templates:
      extra:
        - key: driveway
          name: Driveway
          aliases: [paving]
          tasks:
            - {name: Grade, duration: 1, trade_id: demolition, crew_size: 2}
            - {name: Pour, duration: 2, trade_id: concrete, crew_size: 4}
    autosave:
      quiet_period_seconds: 1.0
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .templates import STANDARD_TEMPLATES, SequenceTemplate, TemplateLibrary, TemplateTask
from .trades import STANDARD_TRADES, Trade, TradeRegistry

CONFIG_FILENAME = "dingplan_config.yaml"


class LayoutConfig(BaseModel):
    """Geometry of lanes and task slots, in world units."""

    lane_height: float = 400.0
    lane_spacing: float = 0.0  # gap between consecutive lanes
    top_padding: float = 40.0
    bottom_padding: float = 30.0
    row_height: float = 60.0
    task_spacing: float = 15.0
    task_height: float = 40.0
    paste_spacing: float = 10.0
    edge_sensitivity: float = 10.0  # resize band at zoom 1
    day_width: float = 50.0

    @model_validator(mode="after")
    def validate_lane_fits_a_row(self) -> LayoutConfig:
        """Ensure at least one row fits between the paddings."""
        usable = self.lane_height - self.top_padding - self.bottom_padding - self.row_height
        if usable < 0:
            raise ValueError(
                f"lane_height {self.lane_height} is too small for one row "
                f"(needs {self.top_padding + self.bottom_padding + self.row_height})"
            )
        if self.day_width <= 0:
            raise ValueError("day_width must be positive")
        return self


class TradeDefinition(BaseModel):
    """A trade declared in config."""

    id: str
    name: str
    color: str
    description: str = ""

    def to_trade(self) -> Trade:
        return Trade(id=self.id, name=self.name, color=self.color, description=self.description)


class TradesConfig(BaseModel):
    """Which trades the engine knows about."""

    use_standard: bool = True
    extra: list[TradeDefinition] = Field(default_factory=list[TradeDefinition])

    def build_registry(self) -> TradeRegistry:
        """Standard trades (optionally) followed by the extra ones."""
        registry = TradeRegistry(STANDARD_TRADES if self.use_standard else ())
        for definition in self.extra:
            registry.register(definition.to_trade())
        return registry


class TemplateTaskDefinition(BaseModel):
    """One task of a template declared in config."""

    name: str
    duration: int = Field(default=1, ge=1)
    trade_id: str = ""
    crew_size: int = Field(default=1, ge=1)
    depends_on_previous: bool = True


class TemplateDefinition(BaseModel):
    """A sequence template declared in config."""

    key: str
    name: str
    description: str = ""
    aliases: list[str] = Field(default_factory=list[str])
    tasks: list[TemplateTaskDefinition]

    @field_validator("tasks")
    @classmethod
    def validate_tasks(cls, v: list[TemplateTaskDefinition]) -> list[TemplateTaskDefinition]:
        """Ensure a template creates at least one task."""
        if not v:
            raise ValueError("a template needs at least one task")
        return v

    def to_template(self) -> SequenceTemplate:
        return SequenceTemplate(
            key=self.key,
            name=self.name,
            tasks=tuple(
                TemplateTask(t.name, t.duration, t.trade_id, t.crew_size, t.depends_on_previous)
                for t in self.tasks
            ),
            description=self.description,
            aliases=tuple(self.aliases),
        )


class TemplatesConfig(BaseModel):
    """Which sequence templates can be inserted."""

    use_standard: bool = True
    extra: list[TemplateDefinition] = Field(default_factory=list[TemplateDefinition])

    def build_library(self) -> TemplateLibrary:
        """Standard templates (optionally) followed by the extra ones."""
        library = TemplateLibrary(STANDARD_TEMPLATES if self.use_standard else ())
        for definition in self.extra:
            library.register(definition.to_template())
        return library


class LaneDefinition(BaseModel):
    """A lane created when an engine starts empty."""

    id: str
    name: str
    color: str = ""
    height: float | None = None


class EngineConfig(BaseModel):
    """Behaviour of the scheduling engine."""

    cascade_dependencies: bool = True  # moving a task drags its successors along
    validation_interval: int = 10  # maintenance ticks between validator sweeps
    fallback_trade_id: str = "default"
    fallback_color: str = "#3b82f6"
    layout: LayoutConfig = LayoutConfig()
    default_lanes: list[LaneDefinition] = Field(default_factory=list[LaneDefinition])

    @field_validator("validation_interval")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        """Ensure the sweep interval is at least one tick."""
        if v < 1:
            raise ValueError("validation_interval must be at least 1")
        return v


class AutosaveConfig(BaseModel):
    """Debounced snapshot writes."""

    quiet_period_seconds: float = 1.0
    path: Path | None = None

    @field_validator("quiet_period_seconds")
    @classmethod
    def validate_quiet_period(cls, v: float) -> float:
        """Ensure the quiet period is not negative."""
        if v < 0:
            raise ValueError("quiet_period_seconds cannot be negative")
        return v


class PlannerConfig(BaseModel):
    """Top-level configuration file."""

    engine: EngineConfig = EngineConfig()
    trades: TradesConfig = TradesConfig()
    templates: TemplatesConfig = TemplatesConfig()
    autosave: AutosaveConfig = AutosaveConfig()


class _Context:
    """Process-wide settings (the CLI's ``--config``)."""

    def __init__(self) -> None:
        self.config_path: Path | None = None


_context = _Context()


def get_config_path() -> Path | None:
    """Get the config path set on the command line, if any."""
    return _context.config_path


def set_config_path(path: Path | None) -> None:
    """Set the config path used by ``discover_config``."""
    _context.config_path = path


def load_config(config_path: Path | str) -> PlannerConfig:
    """Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or a section is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if not data:
        raise ValueError("Empty configuration file")
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping at the root level")

    unknown = set(data) - set(PlannerConfig.model_fields)
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    return PlannerConfig.model_validate(data)


def discover_config(
    snapshot_path: Path | None = None, config_path: Path | None = None
) -> PlannerConfig:
    """Find and load configuration, or return defaults.

    Search order:
    1. Explicit config_path argument
    2. Global context (set via CLI --config)
    3. Snapshot directory / dingplan_config.yaml
    4. Current directory / dingplan_config.yaml
    """
    if config_path and config_path.exists():
        return load_config(config_path)

    ctx_config = get_config_path()
    if ctx_config and ctx_config.exists():
        return load_config(ctx_config)

    if snapshot_path is not None:
        dir_config = Path(snapshot_path).parent / CONFIG_FILENAME
        if dir_config.exists():
            return load_config(dir_config)

    cwd_config = Path(CONFIG_FILENAME)
    if cwd_config.exists():
        return load_config(cwd_config)

    return PlannerConfig()
