"""
test_grid_controller.py — GridController gestures against a fake backend.

Covers:
  - End-to-end autofill: seed, drag the fill handle, confirm, read back
  - Clicks with modifiers, Escape, Delete (bulk clear), select-all, copy
  - Editing: Enter / typed character, commit keeps formatting, cancel
  - Formatting toggles as one bulk write
  - Formula evaluation, optionally written into the primary cell
  - Viewport recomputation on geometry changes
"""
from __future__ import annotations

from aixcel.model.cells import Cell, CellRange, Coordinate
from aixcel.model.selection import Direction, SelectionState
from aixcel.model.viewport import Viewport

C = Coordinate


# ══════════════════════════════════════════════════════════════════════════════
# AUTOFILL END-TO-END
# ══════════════════════════════════════════════════════════════════════════════

class TestAutofill:
    def test_fill_down_numbers(self, controller, session, backend, seed):
        seed(Cell(0, 0, "1"), Cell(1, 0, "2"))

        controller.mouse_press(C(0, 0))
        controller.mouse_move(C(1, 0))
        controller.mouse_release()
        assert controller.begin_fill()
        controller.mouse_move(C(4, 0))
        call = controller.mouse_release()

        _, (_, cells), pending = backend.last("write_cells_bulk")
        assert pending is call
        assert [(c.row, c.col, c.value) for c in cells] == [(2, 0, "3"), (3, 0, "4"), (4, 0, "5")]

        # selection covers original + filled cells before the write is confirmed
        assert controller.selection.bounds() == CellRange(0, 0, 4, 0)

        call.succeed()
        assert [session.value(C(r, 0)) for r in range(5)] == ["1", "2", "3", "4", "5"]

    def test_failed_fill_leaves_cache(self, controller, session, backend, seed):
        seed(Cell(0, 0, "1"), Cell(1, 0, "2"))
        controller.mouse_press(C(0, 0))
        controller.mouse_move(C(1, 0))
        controller.mouse_release()
        controller.begin_fill()
        controller.mouse_move(C(3, 0))
        controller.mouse_release().fail("offline")
        assert session.cell(C(2, 0)) is None
        assert session.error

    def test_fill_preview_signal(self, controller, qtbot):
        controller.mouse_press(C(0, 0))
        controller.mouse_release()
        controller.begin_fill()
        with qtbot.waitSignal(controller.fill_preview_changed) as blocker:
            controller.mouse_move(C(0, 3))
        assert blocker.args == [CellRange(0, 0, 0, 3)]

    def test_release_inside_selection_writes_nothing(self, controller, backend):
        controller.mouse_press(C(0, 0))
        controller.mouse_release()
        controller.begin_fill()
        controller.mouse_move(C(0, 0))
        assert controller.mouse_release() is None
        assert not [c for c in backend.calls if c[0] == "write_cells_bulk"]


# ══════════════════════════════════════════════════════════════════════════════
# GESTURES
# ══════════════════════════════════════════════════════════════════════════════

class TestGestures:
    def test_modifier_clicks(self, controller):
        controller.mouse_press(C(0, 0))
        controller.mouse_release()
        controller.mouse_press(C(2, 2), shift=True)
        assert len(controller.selection) == 9
        controller.mouse_press(C(5, 5), ctrl=True)
        assert len(controller.selection) == 10
        assert controller.selection.primary == C(5, 5)

    def test_selection_signal(self, controller, qtbot):
        with qtbot.waitSignal(controller.selection_changed):
            controller.mouse_press(C(1, 1))

    def test_escape_clears(self, controller):
        controller.mouse_press(C(1, 1))
        controller.escape()
        assert controller.selection.state == SelectionState.EMPTY

    def test_delete_bulk_clears_selection(self, controller, session, backend, seed):
        seed(Cell(0, 0, "a"), Cell(0, 1, "b"))
        controller.mouse_press(C(0, 0))
        controller.mouse_move(C(0, 1))
        controller.mouse_release()
        controller.delete_selection().succeed()
        assert len(session) == 0

    def test_delete_with_empty_selection(self, controller):
        assert controller.delete_selection() is None

    def test_select_all_uses_viewport(self, controller):
        controller.set_geometry(800, 600, 0, 0)
        controller.select_all()
        assert controller.selection.bounds() == CellRange(0, 0, 99, 25)

    def test_copy_rectangle_as_tsv(self, controller, seed):
        seed(Cell(0, 0, "a"), Cell(1, 1, "d"))
        controller.mouse_press(C(0, 0))
        controller.mouse_move(C(1, 1))
        controller.mouse_release()
        assert controller.copy_text() == "a\t\n\td"

    def test_copy_single_cell(self, controller, seed):
        seed(Cell(3, 3, "only"))
        controller.mouse_press(C(3, 3))
        assert controller.copy_text() == "only"

    def test_arrow_moves(self, controller):
        controller.mouse_press(C(1, 1))
        controller.mouse_release()
        controller.move(Direction.RIGHT, extend=True)
        assert controller.selection.bounds() == CellRange(1, 1, 1, 2)


# ══════════════════════════════════════════════════════════════════════════════
# EDITING / FORMATTING / FORMULAS
# ══════════════════════════════════════════════════════════════════════════════

class TestEditing:
    def test_enter_edits_with_current_value(self, controller, seed, qtbot):
        seed(Cell(0, 0, "old"))
        controller.mouse_press(C(0, 0))
        with qtbot.waitSignal(controller.edit_requested) as blocker:
            controller.begin_edit()
        assert blocker.args == [C(0, 0), "old"]

    def test_typed_character_starts_edit(self, controller, qtbot):
        controller.mouse_press(C(0, 0))
        with qtbot.waitSignal(controller.edit_requested) as blocker:
            controller.begin_edit("7")
        assert blocker.args == [C(0, 0), "7"]

    def test_commit_keeps_formatting(self, controller, session, backend, seed):
        seed(Cell(0, 0, "old", font_style="italic"))
        controller.mouse_press(C(0, 0))
        controller.begin_edit()
        controller.commit_edit("new").succeed()
        assert session.cell(C(0, 0)) == Cell(0, 0, "new", font_style="italic")
        assert controller.editing is None

    def test_escape_cancels_edit_first(self, controller, backend):
        controller.mouse_press(C(0, 0))
        controller.begin_edit("x")
        controller.escape()
        assert controller.editing is None
        assert controller.selection.primary == C(0, 0)
        assert not [c for c in backend.calls if c[0] == "write_cell"]


class TestFormatting:
    def test_toggle_bold_per_cell(self, controller, session, backend, seed):
        seed(Cell(0, 0, "a", font_weight="bold"), Cell(0, 1, "b"))
        controller.mouse_press(C(0, 0))
        controller.mouse_move(C(0, 1))
        controller.mouse_release()
        controller.toggle_bold().succeed()
        assert session.cell(C(0, 0)).font_weight == "normal"
        assert session.cell(C(0, 1)).font_weight == "bold"

    def test_toggle_italic_single_bulk_write(self, controller, backend):
        controller.mouse_press(C(0, 0))
        controller.mouse_move(C(2, 0))
        controller.mouse_release()
        before = len(backend.calls)
        controller.toggle_italic()
        assert len(backend.calls) == before + 1
        _, (_, cells), _ = backend.last("write_cells_bulk")
        assert {c.font_style for c in cells} == {"italic"}

    def test_background(self, controller, session):
        controller.mouse_press(C(1, 1))
        controller.set_background("#ffeeaa").succeed()
        assert session.cell(C(1, 1)).background_color == "#ffeeaa"


class TestFormulas:
    def test_evaluate_only_reports(self, controller, backend, qtbot):
        controller.mouse_press(C(0, 0))
        call = controller.evaluate("1+1")
        with qtbot.waitSignal(controller.evaluation_finished) as blocker:
            call.succeed("2")
        assert blocker.args == ["2"]
        assert not [c for c in backend.calls if c[0] == "write_cell"]

    def test_evaluate_writes_into_primary(self, controller, session, backend):
        controller.mouse_press(C(2, 1))
        controller.evaluate("SUM(A1:A2)", write_result=True).succeed("42")
        _, (_, cell), write = backend.last("write_cell")
        assert (cell.row, cell.col, cell.value) == (2, 1, "42")
        write.succeed()
        assert session.value(C(2, 1)) == "42"

    def test_blank_expression_ignored(self, controller):
        assert controller.evaluate("   ") is None


class TestViewport:
    def test_set_geometry_recomputes(self, controller, qtbot):
        with qtbot.waitSignal(controller.viewport_changed) as blocker:
            controller.set_geometry(800, 600, 0, 0)
        assert blocker.args == [Viewport(0, 29, 0, 15)]
        controller.set_geometry(800, 600, 800, 2500)
        assert controller.viewport.start_row == 100
        assert controller.viewport.start_col == 10
