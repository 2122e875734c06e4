"""
Viewport Calculator
===================
Maps container size + scroll offset to the window of rows/columns that has to
be materialized, over a grid with no upper bound.

Note: Everything here is a pure function of its inputs. The GridController
recomputes the viewport on every resize/scroll; nothing is cached.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from aixcel.model.cells import Coordinate


@dataclass(frozen=True)
class Viewport:
    """Materialized window, inclusive on both ends. Always includes a buffer margin."""
    start_row: int
    end_row: int
    start_col: int
    end_col: int

    def padded(self, pad: int) -> Viewport:
        """The window actually rendered; the pad hides pop-in while scrolling."""
        return Viewport(
            start_row=max(0, self.start_row - pad),
            end_row=self.end_row + pad,
            start_col=max(0, self.start_col - pad),
            end_col=self.end_col + pad,
        )

    @property
    def rows(self) -> range:
        return range(self.start_row, self.end_row + 1)

    @property
    def cols(self) -> range:
        return range(self.start_col, self.end_col + 1)


def compute_viewport(
    container_width: float,
    container_height: float,
    scroll_left: float,
    scroll_top: float,
    row_height: float,
    col_width: float,
    buffer: int,
) -> Viewport:
    """
    Compute the visible cell window plus a fixed buffer.

    Args:
        container_width, container_height: Size of the scrolling area in px.
        scroll_left, scroll_top: Current scroll offsets in px.
        row_height, col_width: Uniform cell size in px (must be positive).
        buffer: Extra rows/columns materialized past the visible edge.

    Returns:
        Viewport with start = first (partially) visible index and
        end = start + number of cells that fit + buffer.
    """
    if row_height <= 0 or col_width <= 0:
        raise ValueError(f"Cell size must be positive, got {row_height}x{col_width}.")

    start_row = max(0, math.floor(scroll_top / row_height))
    end_row = start_row + math.ceil(max(0.0, container_height) / row_height) + max(0, buffer)
    start_col = max(0, math.floor(scroll_left / col_width))
    end_col = start_col + math.ceil(max(0.0, container_width) / col_width) + max(0, buffer)

    return Viewport(start_row=start_row, end_row=end_row, start_col=start_col, end_col=end_col)


def coordinate_at(
    x: float,
    y: float,
    scroll_left: float,
    scroll_top: float,
    row_height: float,
    col_width: float,
) -> Optional[Coordinate]:
    """
    Hit-test a point given in cell-area pixels (headers excluded).
    Returns None for points left of / above the first cell.
    """
    gx = x + scroll_left
    gy = y + scroll_top
    if gx < 0 or gy < 0:
        return None
    return Coordinate(int(gy // row_height), int(gx // col_width))


def cell_rect(
    coord: Coordinate,
    scroll_left: float,
    scroll_top: float,
    row_height: float,
    col_width: float,
) -> tuple[float, float, float, float]:
    """(x, y, width, height) of a cell in cell-area pixels."""
    return (
        coord.col * col_width - scroll_left,
        coord.row * row_height - scroll_top,
        col_width,
        row_height,
    )
