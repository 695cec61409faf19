"""
Cross-impact scoring grids.

Four grid kinds exist per owner, each relating one quadrant's items (rows)
to another's (columns):

    leverage    opportunities × strengths
    defense     threats       × strengths
    constraint  opportunities × weaknesses
    problem     threats       × weaknesses

Cells hold quantized impact scores in {0, 10, 20, 30, 40, 50}.

Rows and columns are correlated to item lists purely by position. When a
list changes, ``reconcile()`` rebuilds the matrix at the new size and keeps
every cell that still has a value at the same (row, col) position; moving
an item therefore moves its scores to whatever now sits at that position.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

from swotplan.core.exceptions import InconsistentGridError, ValidationError
from swotplan.core.quadrants import Quadrant

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 50
SCORE_STEP = 10
SCORE_OPTIONS = tuple(range(MIN_SCORE, MAX_SCORE + 1, SCORE_STEP))


class GridKind(str, Enum):
    LEVERAGE = "leverage"
    DEFENSE = "defense"
    CONSTRAINT = "constraint"
    PROBLEM = "problem"

    @property
    def row_quadrant(self) -> Quadrant:
        return _GRID_AXES[self][0]

    @property
    def col_quadrant(self) -> Quadrant:
        return _GRID_AXES[self][1]

    @classmethod
    def parse(cls, raw) -> "GridKind":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown grid kind: {raw!r}",
                details={"kind": raw, "allowed": [k.value for k in cls]},
            ) from None

    @classmethod
    def referencing(cls, quadrant: Quadrant) -> list["GridKind"]:
        """Grid kinds that use ``quadrant`` as rows or columns."""
        return [k for k in cls if quadrant in _GRID_AXES[k]]


_GRID_AXES = {
    GridKind.LEVERAGE: (Quadrant.OPPORTUNITIES, Quadrant.STRENGTHS),
    GridKind.DEFENSE: (Quadrant.THREATS, Quadrant.STRENGTHS),
    GridKind.CONSTRAINT: (Quadrant.OPPORTUNITIES, Quadrant.WEAKNESSES),
    GridKind.PROBLEM: (Quadrant.THREATS, Quadrant.WEAKNESSES),
}


def quantize_score(value) -> int:
    """Clamp to [0, 50] and round to the nearest multiple of 10, ties up."""
    if isinstance(value, int):
        # Arbitrarily large ints do not fit in a float
        value = min(max(value, MIN_SCORE), MAX_SCORE)
    try:
        number = float(str(value).replace(",", ".")) if isinstance(value, str) else float(value)
    except OverflowError:
        number = MAX_SCORE if value > 0 else MIN_SCORE
    except (TypeError, ValueError):
        raise ValidationError(
            f"Score must be a number, got {value!r}", details={"value": value},
        ) from None
    if math.isnan(number):
        raise ValidationError("Score must be a number, got NaN", details={"value": value})
    number = min(max(number, MIN_SCORE), MAX_SCORE)
    return int(math.floor(number / SCORE_STEP + 0.5)) * SCORE_STEP


class CrossImpactGrid:
    """A rows × cols matrix of quantized scores for one grid kind."""

    def __init__(self, kind: GridKind, rows=None, cols=None, cells=None):
        self.kind = GridKind(kind)
        self.rows: list[str] = list(rows or [])
        self.cols: list[str] = list(cols or [])
        self.cells: list[list[int]] = _resize(cells or [], len(self.rows), len(self.cols))

    @classmethod
    def from_cells(cls, kind: GridKind, rows, cols, cells) -> "CrossImpactGrid":
        """Build a grid from stored cells without trusting their shape.

        Stored matrices come from an earlier item list and may be short,
        long or ragged; the result is shaped to ``rows`` × ``cols``.
        """
        grid = cls(kind)
        grid.rows = list(rows or [])
        grid.cols = list(cols or [])
        grid.cells = [list(r) for r in (cells or []) if isinstance(r, (list, tuple))]
        grid.ensure_shape(grid.rows, grid.cols)
        # Stored values may predate quantization
        grid.cells = _resize(grid.cells, len(grid.rows), len(grid.cols))
        return grid

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.rows), len(self.cols)

    def reconcile(self, new_rows, new_cols) -> "CrossImpactGrid":
        """Resize to the new item lists, carrying cells over by position."""
        self.rows = list(new_rows)
        self.cols = list(new_cols)
        self.cells = _resize(self.cells, len(self.rows), len(self.cols))
        return self

    def check_shape(self, rows=None, cols=None) -> None:
        """Raise InconsistentGridError if cells or items disagree."""
        rows = self.rows if rows is None else rows
        cols = self.cols if cols is None else cols
        expected = (len(rows), len(cols))
        consistent = (
            list(rows) == self.rows
            and list(cols) == self.cols
            and len(self.cells) == expected[0]
            and all(len(r) == expected[1] for r in self.cells)
        )
        if not consistent:
            actual = (len(self.cells),) + tuple(sorted({len(r) for r in self.cells}))
            raise InconsistentGridError(self.kind.value, expected, actual)

    def ensure_shape(self, rows=None, cols=None) -> bool:
        """Reconcile in place if inconsistent. Returns True when a repair happened."""
        rows = self.rows if rows is None else rows
        cols = self.cols if cols is None else cols
        try:
            self.check_shape(rows, cols)
        except InconsistentGridError as exc:
            logger.warning("Reconciling stale grid on read: %s", exc)
            self.reconcile(rows, cols)
            return True
        return False

    def set_cell(self, row: int, col: int, value) -> int:
        """Store a quantized score and return the stored value."""
        if not (0 <= row < len(self.rows) and 0 <= col < len(self.cols)):
            raise ValidationError(
                f"Cell ({row}, {col}) is outside the {self.kind.value} grid {self.shape}",
                details={"kind": self.kind.value, "row": row, "col": col},
            )
        stored = quantize_score(value)
        self.cells[row][col] = stored
        return stored

    def get_cell(self, row: int, col: int) -> int:
        return self.cells[row][col]

    def row_total(self, row: int) -> int:
        return sum(self.cells[row]) if 0 <= row < len(self.cells) else 0

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "row_quadrant": self.kind.row_quadrant.value,
            "col_quadrant": self.kind.col_quadrant.value,
            "rows": list(self.rows),
            "cols": list(self.cols),
            "cells": [list(r) for r in self.cells],
        }

    def __repr__(self):
        return f"<CrossImpactGrid {self.kind.value} {self.shape}>"


def _resize(cells, n_rows: int, n_cols: int) -> list[list[int]]:
    resized = []
    for i in range(n_rows):
        old_row = cells[i] if i < len(cells) else []
        row = []
        for j in range(n_cols):
            if j < len(old_row) and old_row[j] is not None:
                try:
                    row.append(quantize_score(old_row[j]))
                except ValidationError:
                    row.append(0)
            else:
                row.append(0)
        resized.append(row)
    return resized
