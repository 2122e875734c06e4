"""
test_autofill.py — Fill planning (controller.autofill).

Covers:
  - Direction priority (right > down > left > up) and the no-op case
  - Per-row / per-column generation and the covered range
  - Reverse feeding when filling left or up
  - Target cells keep their formatting
"""
from __future__ import annotations

from aixcel.controller.autofill import FillDirection, fill_direction, plan_fill
from aixcel.model.cells import Cell, CellRange, Coordinate

C = Coordinate


def _lookup(*cells: Cell):
    index = {c.coordinate: c for c in cells}
    return index.get


def _values(plan) -> dict:
    return {(c.row, c.col): c.value for c in plan.cells}


class TestDirection:
    def test_right_wins_over_down(self):
        assert fill_direction(CellRange(0, 0, 1, 1), C(5, 5)) == FillDirection.RIGHT

    def test_down(self):
        assert fill_direction(CellRange(0, 0, 1, 1), C(5, 0)) == FillDirection.DOWN

    def test_left_and_up(self):
        assert fill_direction(CellRange(3, 3, 4, 4), C(4, 1)) == FillDirection.LEFT
        assert fill_direction(CellRange(3, 3, 4, 4), C(0, 3)) == FillDirection.UP

    def test_inside_range_is_noop(self):
        r = CellRange(0, 0, 2, 2)
        assert fill_direction(r, C(1, 1)) is None
        assert plan_fill(r, C(1, 1), _lookup()) is None


class TestPlan:
    def test_fill_down_per_column(self):
        lookup = _lookup(Cell(0, 0, "1"), Cell(1, 0, "2"), Cell(0, 1, "Mon"), Cell(1, 1, "Tue"))
        plan = plan_fill(CellRange(0, 0, 1, 1), C(3, 1), lookup)
        assert plan.direction == FillDirection.DOWN
        assert _values(plan) == {(2, 0): "3", (3, 0): "4", (2, 1): "Wed", (3, 1): "Thu"}
        assert plan.covered == CellRange(0, 0, 3, 1)

    def test_fill_right_per_row(self):
        lookup = _lookup(Cell(0, 0, "Item 1"), Cell(0, 1, "Item 2"))
        plan = plan_fill(CellRange(0, 0, 0, 1), C(0, 3), lookup)
        assert _values(plan) == {(0, 2): "Item 3", (0, 3): "Item 4"}
        assert plan.covered == CellRange(0, 0, 0, 3)

    def test_fill_up_continues_away_from_range(self):
        lookup = _lookup(Cell(5, 0, "10"), Cell(6, 0, "20"))
        plan = plan_fill(CellRange(5, 0, 6, 0), C(3, 0), lookup)
        assert plan.direction == FillDirection.UP
        assert _values(plan) == {(4, 0): "0", (3, 0): "-10"}
        assert plan.covered == CellRange(3, 0, 6, 0)

    def test_fill_left(self):
        lookup = _lookup(Cell(0, 4, "3"), Cell(0, 5, "4"))
        plan = plan_fill(CellRange(0, 4, 0, 5), C(0, 2), lookup)
        assert _values(plan) == {(0, 3): "2", (0, 2): "1"}

    def test_empty_source_fills_blanks(self):
        plan = plan_fill(CellRange(0, 0, 0, 0), C(2, 0), _lookup())
        assert _values(plan) == {(1, 0): "", (2, 0): ""}

    def test_target_formatting_is_kept(self):
        lookup = _lookup(Cell(0, 0, "a"), Cell(1, 0, "", font_weight="bold"))
        plan = plan_fill(CellRange(0, 0, 0, 0), C(1, 0), lookup)
        assert plan.cells == [Cell(1, 0, "a", font_weight="bold")]
