"""
Impact analysis — the numbers behind the threat/opportunity analysis charts.

For one row quadrant (threats or opportunities) two grids share the rows:

    threats        weakness side = problem grid,    strength side = defense grid
    opportunities  weakness side = constraint grid, strength side = leverage grid

Per row item:
    weakness_total = sum of its weakness-grid row
    strength_total = sum of its strength-grid row
    percentage     = (weakness_total + strength_total) / grand_total * 100

The percentage is published twice: at one decimal for the per-item table
and as an integer for chart labels. Both are part of the output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from swotplan.core.exceptions import ValidationError
from swotplan.core.grid import CrossImpactGrid, GridKind
from swotplan.core.quadrants import Quadrant

logger = logging.getLogger(__name__)

BUBBLE_MIN_RADIUS = 15
BUBBLE_SCALE = 0.8

ANALYSIS_GRIDS = {
    Quadrant.THREATS: (GridKind.PROBLEM, GridKind.DEFENSE),
    Quadrant.OPPORTUNITIES: (GridKind.CONSTRAINT, GridKind.LEVERAGE),
}


def round_half_up(value: float, digits: int = 0):
    """Round like a spreadsheet: 0.05 -> 0.1, 2.5 -> 3.

    Returns an int when ``digits`` is 0, otherwise a float.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def _share(part: int, whole: int, digits: int):
    if whole <= 0:
        return 0 if digits == 0 else 0.0
    return round_half_up(part / whole * 100, digits)


@dataclass
class ImpactItem:
    index: int
    text: str
    weakness_total: int
    strength_total: int
    percentage: float = 0.0
    label_percentage: int = 0
    weakness_share: float = 0.0
    strength_share: float = 0.0

    @property
    def total(self) -> int:
        return self.weakness_total + self.strength_total

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "text": self.text,
            "weakness_total": self.weakness_total,
            "strength_total": self.strength_total,
            "total": self.total,
            "percentage": self.percentage,
            "label_percentage": self.label_percentage,
            "weakness_share": self.weakness_share,
            "strength_share": self.strength_share,
        }


@dataclass
class Bubble:
    text: str
    x: int
    y: int
    r: float

    def to_dict(self) -> dict:
        return {"text": self.text, "x": self.x, "y": self.y, "r": self.r}


@dataclass
class ImpactAnalysis:
    """Read-only view over a row quadrant's two grids.

    Grids whose shape no longer matches ``items`` are reconciled on read.
    """

    quadrant: Quadrant
    items: list[str]
    weakness_grid: CrossImpactGrid
    strength_grid: CrossImpactGrid
    _rows: list[ImpactItem] = field(init=False, repr=False)

    def __post_init__(self):
        self.quadrant = Quadrant(self.quadrant)
        if self.quadrant not in ANALYSIS_GRIDS:
            raise ValidationError(
                f"Impact analysis is only defined for threats and opportunities, not {self.quadrant.value}",
                details={"quadrant": self.quadrant.value},
            )
        self.items = list(self.items)
        self.weakness_grid.ensure_shape(self.items, self.weakness_grid.cols)
        self.strength_grid.ensure_shape(self.items, self.strength_grid.cols)
        self._rows = [
            ImpactItem(
                index=i,
                text=text,
                weakness_total=self.weakness_grid.row_total(i),
                strength_total=self.strength_grid.row_total(i),
            )
            for i, text in enumerate(self.items)
        ]
        grand = self.grand_total
        weakness_sum = self.weakness_sum
        strength_sum = self.strength_sum
        for row in self._rows:
            row.percentage = _share(row.total, grand, 1)
            row.label_percentage = _share(row.total, grand, 0)
            row.weakness_share = _share(row.weakness_total, weakness_sum, 1)
            row.strength_share = _share(row.strength_total, strength_sum, 1)

    @classmethod
    def from_matrix(cls, matrix, quadrant: Quadrant) -> "ImpactAnalysis":
        quadrant = Quadrant(quadrant)
        if quadrant not in ANALYSIS_GRIDS:
            raise ValidationError(
                f"Impact analysis is only defined for threats and opportunities, not {quadrant.value}",
                details={"quadrant": quadrant.value},
            )
        weakness_kind, strength_kind = ANALYSIS_GRIDS[quadrant]
        return cls(
            quadrant=quadrant,
            items=matrix.items(quadrant),
            weakness_grid=matrix.grid(weakness_kind),
            strength_grid=matrix.grid(strength_kind),
        )

    # ── Totals ───────────────────────────────────────────────────────────

    def weakness_total(self, i: int) -> int:
        return self._rows[i].weakness_total

    def strength_total(self, i: int) -> int:
        return self._rows[i].strength_total

    @property
    def weakness_sum(self) -> int:
        return sum(r.weakness_total for r in self._rows)

    @property
    def strength_sum(self) -> int:
        return sum(r.strength_total for r in self._rows)

    @property
    def grand_total(self) -> int:
        return self.weakness_sum + self.strength_sum

    # ── Percentages ──────────────────────────────────────────────────────

    def percentage(self, i: int) -> float:
        """Share of the grand total, one decimal (per-item table)."""
        return self._rows[i].percentage

    def label_percentage(self, i: int) -> int:
        """Share of the grand total, whole number (chart overlay labels)."""
        return self._rows[i].label_percentage

    def rows(self) -> list[ImpactItem]:
        return list(self._rows)

    def ranked(self) -> list[ImpactItem]:
        """Rows ordered by combined total, largest first."""
        return sorted(self._rows, key=lambda r: r.total, reverse=True)

    # ── Chart feeds ──────────────────────────────────────────────────────

    def bubbles(self) -> list[Bubble]:
        return [
            Bubble(
                text=r.text,
                x=r.weakness_total,
                y=r.strength_total,
                r=max(BUBBLE_MIN_RADIUS, r.percentage * BUBBLE_SCALE),
            )
            for r in self._rows
        ]

    def breakdown(self, i: int) -> dict:
        """Individual scores of one row item against every column item."""
        if not 0 <= i < len(self._rows):
            raise ValidationError(
                f"Row {i} is outside the {self.quadrant.value} analysis",
                details={"row": i, "rows": len(self._rows)},
            )
        return {
            "text": self._rows[i].text,
            "weaknesses": [
                {"item": col, "score": self.weakness_grid.get_cell(i, j)}
                for j, col in enumerate(self.weakness_grid.cols)
            ],
            "strengths": [
                {"item": col, "score": self.strength_grid.get_cell(i, j)}
                for j, col in enumerate(self.strength_grid.cols)
            ],
        }

    def to_dict(self) -> dict:
        return {
            "quadrant": self.quadrant.value,
            "weakness_grid": self.weakness_grid.kind.value,
            "strength_grid": self.strength_grid.kind.value,
            "items": [r.to_dict() for r in self._rows],
            "weakness_sum": self.weakness_sum,
            "strength_sum": self.strength_sum,
            "grand_total": self.grand_total,
            "bubbles": [b.to_dict() for b in self.bubbles()],
        }
