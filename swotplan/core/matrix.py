"""
SwotMatrix — one owner's four quadrant lists and four cross-impact grids.

The owner is either a group (uncapped lists) or the consolidated plan
(lists capped at 5). Every list mutation goes through this class so the
grids referencing the changed quadrant are reconciled immediately.
"""

from __future__ import annotations

import logging

from swotplan.core.grid import CrossImpactGrid, GridKind
from swotplan.core.quadrants import CONSOLIDATED_CAP, Quadrant, QuadrantItemList

logger = logging.getLogger(__name__)


class SwotMatrix:
    def __init__(self, quadrants: dict | None = None, grids: dict | None = None,
                 cap: int | None = None):
        quadrants = quadrants or {}
        grids = grids or {}
        self.cap = cap
        self.lists: dict[Quadrant, QuadrantItemList] = {
            q: QuadrantItemList(q, quadrants.get(q, quadrants.get(q.value)), cap=cap)
            for q in Quadrant
        }
        self.grids: dict[GridKind, CrossImpactGrid] = {}
        for kind in GridKind:
            stored = grids.get(kind, grids.get(kind.value))
            self.grids[kind] = CrossImpactGrid.from_cells(
                kind,
                self.lists[kind.row_quadrant].effective(),
                self.lists[kind.col_quadrant].effective(),
                stored,
            )

    @classmethod
    def for_group(cls, quadrants=None, grids=None) -> "SwotMatrix":
        return cls(quadrants, grids, cap=None)

    @classmethod
    def consolidated(cls, quadrants=None, grids=None) -> "SwotMatrix":
        return cls(quadrants, grids, cap=CONSOLIDATED_CAP)

    def items(self, quadrant: Quadrant) -> list[str]:
        return self.lists[Quadrant(quadrant)].effective()

    def grid(self, kind: GridKind) -> CrossImpactGrid:
        return self.grids[GridKind(kind)]

    # ── List mutations (each one reconciles) ────────────────────────────

    def add_item(self, quadrant: Quadrant) -> bool:
        added = self.lists[Quadrant(quadrant)].add()
        if added:
            self.reconcile(quadrant)
        return added

    def insert_item(self, quadrant: Quadrant, text: str):
        item = self.lists[Quadrant(quadrant)].insert(text)
        self.reconcile(quadrant)
        return item

    def update_item(self, quadrant: Quadrant, index: int, text: str):
        item = self.lists[Quadrant(quadrant)].update(index, text)
        self.reconcile(quadrant)
        return item

    def remove_item(self, quadrant: Quadrant, index: int):
        item = self.lists[Quadrant(quadrant)].remove(index)
        self.reconcile(quadrant)
        return item

    def reconcile(self, quadrant: Quadrant | None = None) -> None:
        """Re-fit the grids that reference ``quadrant`` (all grids when None)."""
        kinds = GridKind.referencing(Quadrant(quadrant)) if quadrant else list(GridKind)
        for kind in kinds:
            self.grids[kind].reconcile(
                self.lists[kind.row_quadrant].effective(),
                self.lists[kind.col_quadrant].effective(),
            )

    # ── Serialisation ────────────────────────────────────────────────────

    def to_lines(self) -> dict[str, str]:
        return {q.value: self.lists[q].to_lines() for q in Quadrant}

    def cells(self) -> dict[str, list[list[int]]]:
        return {k.value: [list(r) for r in self.grids[k].cells] for k in GridKind}

    def to_dict(self) -> dict:
        return {
            "quadrants": {q.value: self.lists[q].effective() for q in Quadrant},
            "grids": {k.value: self.grids[k].to_dict() for k in GridKind},
            "cap": self.cap,
        }
