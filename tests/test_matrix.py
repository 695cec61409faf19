"""
SWOT Planning Workshop Platform
Tests — SwotMatrix keeps grids in step with list mutations.
"""

import pytest

from swotplan.core.exceptions import CapacityError
from swotplan.core.grid import GridKind
from swotplan.core.matrix import SwotMatrix
from swotplan.core.quadrants import Quadrant


def _matrix():
    return SwotMatrix.for_group(
        quadrants={
            "strengths": ["Brand", "Team"],
            "weaknesses": ["Debt"],
            "opportunities": ["Export"],
            "threats": ["Rates", "Rival", "Tax"],
        },
        grids={
            "defense": [[10, 20], [30, 40], [50, 0]],
            "problem": [[20], [20], [20]],
        },
    )


class TestSwotMatrix:
    def test_grids_shaped_from_lists(self):
        m = _matrix()
        assert m.grid(GridKind.DEFENSE).shape == (3, 2)
        assert m.grid(GridKind.LEVERAGE).shape == (1, 2)
        assert m.grid(GridKind.CONSTRAINT).cells == [[0]]

    def test_insert_threat_grows_referencing_grids(self):
        m = _matrix()
        m.insert_item(Quadrant.THREATS, "Strike")
        defense = m.grid(GridKind.DEFENSE)
        assert defense.shape == (4, 2)
        assert defense.cells[:3] == [[10, 20], [30, 40], [50, 0]]
        assert defense.cells[3] == [0, 0]
        assert m.grid(GridKind.PROBLEM).shape == (4, 1)
        # Opportunity grids are untouched
        assert m.grid(GridKind.LEVERAGE).shape == (1, 2)

    def test_blank_add_does_not_change_grids(self):
        m = _matrix()
        assert m.add_item(Quadrant.THREATS) is True
        assert m.grid(GridKind.DEFENSE).shape == (3, 2)

    def test_remove_strength_shrinks_columns(self):
        m = _matrix()
        m.remove_item(Quadrant.STRENGTHS, 1)
        assert m.grid(GridKind.DEFENSE).cells == [[10], [30], [50]]
        assert m.grid(GridKind.LEVERAGE).shape == (1, 1)

    def test_update_to_blank_drops_row(self):
        m = _matrix()
        m.update_item(Quadrant.THREATS, 2, "  ")
        assert m.items(Quadrant.THREATS) == ["Rates", "Rival"]
        assert m.grid(GridKind.DEFENSE).cells == [[10, 20], [30, 40]]

    def test_consolidated_cap(self):
        m = SwotMatrix.consolidated(quadrants={"threats": ["a", "b", "c", "d", "e"]})
        assert m.add_item(Quadrant.THREATS) is False
        with pytest.raises(CapacityError):
            m.insert_item(Quadrant.THREATS, "f")
        assert m.grid(GridKind.PROBLEM).shape == (5, 0)

    def test_to_lines_and_cells(self):
        m = _matrix()
        assert m.to_lines()["threats"] == "Rates\nRival\nTax"
        assert m.cells()["problem"] == [[20], [20], [20]]
        assert m.to_dict()["cap"] is None
