"""Trade classifications used to group and color tasks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Trade:
    """A trade (crew type) with its display color."""

    id: str
    name: str
    color: str
    description: str = ""


STANDARD_TRADES: tuple[Trade, ...] = (
    Trade("framing", "Framing", "#FFB74D", "Structural framing work including walls, floors, and roofs"),
    Trade("electrical", "Electrical", "#90CAF9", "All electrical installations and wiring"),
    Trade("plumbing", "Plumbing", "#A5D6A7", "Water supply, drainage, and fixture installation"),
    Trade("drywall", "Drywall", "#E8D0FF", "Installation and finishing of drywall/sheetrock"),
    Trade("hvac", "HVAC", "#FFCC80", "Heating, ventilation, and air conditioning systems"),
    Trade("finishing", "Finishing", "#B39DDB", "Final touches, trim work, and detailing"),
    Trade("concrete", "Concrete", "#BDBDBD", "Concrete pouring, forming, and finishing"),
    Trade("carpentry", "Carpentry", "#BCAAA4", "Finish carpentry and custom woodwork"),
    Trade("demolition", "Demolition", "#EF5350", "Demolition and removal of existing structures"),
    Trade("painting", "Painting", "#81D4FA", "Painting and wall coverings"),
    Trade("flooring", "Flooring", "#F48FB1", "Installation of all floor types"),
    Trade("roofing", "Roofing", "#78909C", "Roof installation and repairs"),
)  # fmt: skip


class TradeRegistry:
    """Ordered collection of known trades with id/color/name lookups."""

    def __init__(self, trades: Iterable[Trade] = STANDARD_TRADES):
        self._trades: list[Trade] = []
        for trade in trades:
            self.register(trade)

    def register(self, trade: Trade) -> None:
        """Add a trade, replacing any existing trade with the same id."""
        self._trades = [t for t in self._trades if t.id != trade.id]
        self._trades.append(trade)

    def all(self) -> list[Trade]:
        """All trades in registration order."""
        return list(self._trades)

    def first(self) -> Trade | None:
        return self._trades[0] if self._trades else None

    def by_id(self, trade_id: str) -> Trade | None:
        return next((t for t in self._trades if t.id == trade_id), None)

    def by_color(self, color: str) -> Trade | None:
        return next((t for t in self._trades if t.color.lower() == color.lower()), None)

    def by_name(self, name: str) -> Trade | None:
        return next((t for t in self._trades if t.name.lower() == name.lower()), None)

    def resolve(self, value: str) -> Trade | None:
        """Find a trade by id, then color, then name."""
        if not value:
            return None
        return self.by_id(value) or self.by_color(value) or self.by_name(value)

    def reconcile(self, trade_id: str, color: str) -> tuple[str, str]:
        """Make a task's trade id and color agree.

        An unknown trade with a known color takes that color's trade; a known
        trade always dictates the color. Unknown pairs are returned unchanged.
        """
        if not trade_id and color:
            trade = self.by_color(color)
            if trade:
                trade_id = trade.id
        if trade_id:
            trade = self.by_id(trade_id)
            if trade:
                color = trade.color
        return trade_id, color

    def __len__(self) -> int:
        return len(self._trades)

    def __contains__(self, trade_id: object) -> bool:
        return any(t.id == trade_id for t in self._trades)
