"""Construction sequence templates.

A template is an ordered list of task blueprints. Inserting one creates the
tasks in a lane and chains each blueprint marked ``depends_on_previous`` to
the task before it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .exceptions import TemplateNotFoundError


@dataclass(frozen=True)
class TemplateTask:
    """Blueprint for one task in a sequence."""

    name: str
    duration: int  # business days
    trade_id: str
    crew_size: int = 1
    depends_on_previous: bool = True


@dataclass(frozen=True)
class SequenceTemplate:
    """A named construction sequence."""

    key: str
    name: str
    tasks: tuple[TemplateTask, ...]
    description: str = ""
    aliases: tuple[str, ...] = ()

    def labels(self) -> list[str]:
        """Key, display name and aliases, normalized for matching."""
        return [_normalize(label) for label in (self.key, self.name, *self.aliases)]

    def describe(self) -> str:
        """Key with its aliases, for listings."""
        if not self.aliases:
            return self.key
        return f"{self.key} ({', '.join(self.aliases)})"


def _normalize(text: str) -> str:
    return " ".join(text.lower().replace("_", " ").replace("-", " ").split())


_step = TemplateTask

STANDARD_TEMPLATES: tuple[SequenceTemplate, ...] = (
    SequenceTemplate(
        "foundation",
        "Foundation Sequence",
        (
            _step("Site Preparation", 2, "demolition", 4, False),
            _step("Excavation", 3, "concrete", 5),
            _step("Underground Utilities", 3, "plumbing", 4),
            _step("Formwork", 4, "concrete", 6),
            _step("Reinforcement", 3, "concrete", 5),
            _step("Concrete Pour", 2, "concrete", 8),
            _step("Curing", 7, "concrete", 1),
            _step("Waterproofing", 3, "concrete", 4),
        ),
        "Foundation work sequence for commercial construction",
        ("foundations", "footings", "concrete foundation", "commercial foundation", "slab"),
    ),
    SequenceTemplate(
        "steel_structure",
        "Steel Structure Sequence",
        (
            _step("Layout and Surveying", 2, "management", 3, False),
            _step("Column Installation", 5, "framing", 8),
            _step("Beam Installation", 4, "framing", 8),
            _step("Decking Installation", 3, "framing", 6),
            _step("Stair Installation", 2, "framing", 4, False),
            _step("Welding and Connections", 4, "framing", 6),
            _step("Fireproofing", 3, "fireproofing", 5),
            _step("Quality Inspection", 2, "management", 2),
        ),
        "Steel structural work sequence for commercial construction",
        ("steel", "structural steel", "structural framing", "steel frame", "commercial structure", "steelstructure"),
    ),
    SequenceTemplate(
        "mep_systems",
        "MEP Systems Sequence",
        (
            _step("Coordination Modeling", 5, "management", 3, False),
            _step("HVAC Ductwork", 7, "hvac", 6),
            _step("Piping Systems", 6, "plumbing", 5, False),
            _step("Equipment Setting", 3, "hvac", 4),
            _step("Electrical Conduit", 5, "electrical", 6, False),
            _step("Cable Trays", 4, "electrical", 4),
            _step("Fire Protection", 5, "fireproofing", 5, False),
            _step("Controls and BMS", 4, "electrical", 3),
            _step("Testing and Balancing", 3, "hvac", 2),
        ),
        "Mechanical, electrical and plumbing work sequence",
        ("mep", "mechanical electrical", "services", "building services", "commercial mep", "mepzone"),
    ),
    SequenceTemplate(
        "interior_fitout",
        "Interior Fitout Sequence",
        (
            _step("Framing", 4, "framing", 6, False),
            _step("In-Wall Utilities", 5, "electrical", 5),
            _step("Drywall Installation", 5, "drywall", 8),
            _step("Taping and Finishing", 4, "drywall", 6),
            _step("Ceiling Grid", 3, "carpentry", 4),
            _step("Flooring", 4, "flooring", 5, False),
            _step("Painting", 4, "painting", 6),
            _step("Doors and Hardware", 2, "carpentry", 3, False),
            _step("Fixtures and Trim", 3, "carpentry", 4),
        ),
        "Interior work sequence for commercial construction",
        ("interior", "fitout", "finish", "tenant improvement", "ti", "commercial interior", "interiorzone"),
    ),
    SequenceTemplate(
        "data_center",
        "Data Center Sequence",
        (
            _step("Raised Floor System", 4, "flooring", 5, False),
            _step("Power Distribution", 6, "electrical", 8),
            _step("Precision Cooling", 5, "hvac", 6, False),
            _step("Fire Suppression", 4, "fireproofing", 4, False),
            _step("Cable Management", 5, "electrical", 6),
            _step("Security Systems", 3, "electrical", 3, False),
            _step("Server Rack Installation", 4, "electrical", 5),
            _step("Testing and Commissioning", 5, "management", 4),
        ),
        "Specialized work sequence for data center construction",
        ("datacenter", "server room", "it room", "computer room", "data hall", "datacenterzone"),
    ),
    SequenceTemplate(
        "building_envelope",
        "Building Envelope Sequence",
        (
            _step("Anchor Layout", 3, "framing", 4, False),
            _step("Curtain Wall Framing", 5, "framing", 6),
            _step("Glazing Installation", 6, "glazing", 6),
            _step("Metal Panel Installation", 5, "framing", 5, False),
            _step("Sealants and Flashings", 4, "roofing", 4),
            _step("Entrance Systems", 3, "glazing", 4, False),
            _step("Weather Barrier", 2, "roofing", 3, False),
            _step("Testing and Inspection", 2, "management", 2),
        ),
        "Exterior envelope work sequence for a commercial building",
        ("facade", "exterior", "curtain wall", "envelope", "skin", "cladding", "facadezone"),
    ),
    SequenceTemplate(
        "institutional_building",
        "Institutional Building",
        (
            _step("Site Clearing & Mobilization", 5, "demolition", 6, False),
            _step("Structural Foundations & Slabs", 12, "concrete", 8),
            _step("Structural Framing", 15, "framing", 10),
            _step("Building Envelope", 18, "roofing", 8),
            _step("MEP Rough-in", 20, "electrical", 12),
            _step("Interior Framing & Wall Assemblies", 15, "drywall", 10),
            _step("Interior Finishes & Painting", 12, "painting", 8),
            _step("Specialty Installations", 10, "finishing", 6),
            _step("Exterior Improvements & Landscaping", 8, "finishing", 5, False),
        ),
        "Schools, healthcare facilities and government buildings",
        ("school", "hospital", "government building", "institutional", "healthcare", "education", "institutionalbuilding"),
    ),
    SequenceTemplate(
        "substation_build",
        "Substation Build-Out Sequence",
        (
            _step("Site Preparation & Grading", 5, "demolition", 4, False),
            _step("Foundation & Civil Works", 7, "concrete", 6),
            _step("Ground Grid & Conduit Installation", 6, "electrical", 5),
            _step("Structural Steel Erection", 4, "framing", 6),
            _step("Equipment Foundations", 5, "concrete", 5),
            _step("Major Equipment Installation", 8, "electrical", 8),
            _step("Control Building Construction", 10, "framing", 6, False),
            _step("Electrical Rough-In", 7, "electrical", 7),
            _step("Control & Protection Systems Installation", 6, "electrical", 5),
            _step("Electrical Wiring & Connections", 8, "electrical", 8),
            _step("Testing & Commissioning", 5, "electrical", 4),
            _step("Final Inspection & Punch List", 3, "management", 3),
        ),
        "Specialized work sequence for electrical substation construction",
        ("substation", "electrical substation", "power substation", "utility substation", "electricity substation", "substationsequence"),
    ),
)  # fmt: skip


class TemplateLibrary:
    """Ordered collection of sequence templates with name and alias lookup."""

    def __init__(self, templates: Iterable[SequenceTemplate] = STANDARD_TEMPLATES):
        self._templates: list[SequenceTemplate] = []
        for template in templates:
            self.register(template)

    def register(self, template: SequenceTemplate) -> None:
        """Add a template, replacing any existing template with the same key."""
        if not template.tasks:
            raise ValueError(f"Template '{template.key}' has no tasks")
        self._templates = [t for t in self._templates if t.key != template.key]
        self._templates.append(template)

    def all(self) -> list[SequenceTemplate]:
        return list(self._templates)

    def get(self, name: str) -> SequenceTemplate | None:
        """Find a template by key, display name or alias (case-insensitive).

        When nothing matches exactly, a name that contains a key or alias as
        whole words (``"foundation for block B"``) still finds it.
        """
        wanted = _normalize(name)
        if not wanted:
            return None
        for template in self._templates:
            if wanted in template.labels():
                return template
        padded = f" {wanted} "
        for template in self._templates:
            if any(f" {label} " in padded for label in template.labels()):
                return template
        return None

    def require(self, name: str) -> SequenceTemplate:
        template = self.get(name)
        if template is None:
            raise TemplateNotFoundError(name)
        return template

    def search(self, term: str) -> list[SequenceTemplate]:
        """Templates whose key, name or aliases contain ``term``, best match first."""
        wanted = _normalize(term)
        if not wanted:
            return []
        exact = self.get(term)
        if exact is not None and wanted in exact.labels():
            return [exact]

        scored: list[tuple[int, int, SequenceTemplate]] = []
        for index, template in enumerate(self._templates):
            key, name, *aliases = template.labels()
            score = 3 * (wanted in key) + 2 * (wanted in name)
            score += sum(wanted in alias for alias in aliases)
            if score:
                scored.append((-score, index, template))
        return [template for _, _, template in sorted(scored, key=lambda s: s[:2])]

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, key: object) -> bool:
        return any(t.key == key for t in self._templates)
