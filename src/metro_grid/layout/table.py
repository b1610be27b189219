"""Per-line weight aggregation and the merge candidate table.

Each weight interval is rasterised onto the grid cells its path crosses,
and every column and row remembers the heaviest weight that touched it.
A maximum rather than a sum means one busy crossing dominates a line
instead of being diluted by many light ones.
"""

from __future__ import annotations

__all__ = ["LineWeights", "build_table", "line_max_weights", "rasterize"]

import math
from collections.abc import Iterator
from dataclasses import dataclass, field

from metro_grid.parser.layout_json import ensure_layout
from metro_grid.parser.model import DataTableRow, Layout, LineType, Point, Segment


@dataclass
class LineWeights:
    """Maximum weight per occupied column and row, zero-filled."""

    cols: dict[int, float] = field(default_factory=dict)
    rows: dict[int, float] = field(default_factory=dict)


def rasterize(a: Point, b: Point) -> Iterator[tuple[int, int]]:
    """Yield the grid cells on the straight run from ``a`` to ``b``.

    Axis-aligned runs are walked directly; diagonals use Bresenham.
    """
    ax, ay, bx, by = a.x, a.y, b.x, b.y
    dx, dy = abs(bx - ax), abs(by - ay)
    if dy == 0:
        for x in range(min(ax, bx), max(ax, bx) + 1):
            yield (x, ay)
        return
    if dx == 0:
        for y in range(min(ay, by), max(ay, by) + 1):
            yield (ax, y)
        return

    x, y = ax, ay
    sx = 1 if ax < bx else -1
    sy = 1 if ay < by else -1
    err = dx - dy
    for _ in range(dx + dy + 1):
        yield (x, y)
        if x == bx and y == by:
            return
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x += sx
        if e2 < dx:
            err += dx
            y += sy


def _weighted_runs(seg: Segment) -> Iterator[tuple[int, float]]:
    """Yield (edge index, weight) for every weighted edge of a segment.

    Station weights take precedence; per-edge weights are the fallback.
    """
    n = len(seg.points)
    if seg.weights:
        for w in seg.weights:
            if not 0 <= w.start_idx < w.end_idx < n or not math.isfinite(w.weight):
                continue
            for i in range(w.start_idx, w.end_idx):
                yield i, w.weight
    elif seg.edge_weights:
        for i, weight in enumerate(seg.edge_weights[: n - 1]):
            if math.isfinite(weight):
                yield i, weight


def _cell_max_weights(layout: Layout) -> dict[tuple[int, int], float]:
    cells: dict[tuple[int, int], float] = {}
    for seg in layout.iter_segments():
        for i, weight in _weighted_runs(seg):
            for cell in rasterize(seg.points[i], seg.points[i + 1]):
                if weight > cells.get(cell, -math.inf):
                    cells[cell] = weight
    return cells


def line_max_weights(layout: Layout) -> LineWeights:
    """Aggregate the heaviest weight on every column and row.

    The result spans every occupied or weighted line between the extremes;
    lines nothing weighted crosses report 0.
    """
    current = ensure_layout(layout, "line_max_weights")
    if current is None:
        return LineWeights()

    cells = _cell_max_weights(current)
    xs = current.occupied_cols() | {x for x, _ in cells}
    ys = current.occupied_rows() | {y for _, y in cells}
    if not xs or not ys:
        return LineWeights()

    cols = {x: 0.0 for x in range(min(xs), max(xs) + 1)}
    rows = {y: 0.0 for y in range(min(ys), max(ys) + 1)}
    for (x, y), weight in cells.items():
        cols[x] = max(cols[x], weight)
        rows[y] = max(rows[y], weight)
    return LineWeights(cols=cols, rows=rows)


def _odd_pairs(
    line_type: LineType, weights: dict[int, float]
) -> Iterator[DataTableRow]:
    odd = sorted(c for c in weights if c % 2 != 0)
    for c1, c2 in zip(odd, odd[1:]):
        if c2 != c1 + 2:
            continue
        yield DataTableRow(
            number=0,
            type=line_type,
            idx1=c1,
            idx2=c2,
            idx1_max_weight=weights[c1],
            idx2_max_weight=weights[c2],
        )


def build_table(layout: Layout) -> list[DataTableRow]:
    """Pair consecutive odd columns and rows into merge candidate rows.

    Columns come before rows; within each type the lightest combined
    weight comes first so the least important lines are offered first.
    """
    current = ensure_layout(layout, "build_table")
    if current is None:
        return []

    lw = line_max_weights(current)
    rows = list(_odd_pairs(LineType.COL, lw.cols))
    rows += _odd_pairs(LineType.ROW, lw.rows)
    rows.sort(key=lambda r: (r.type is not LineType.COL, r.combined_weight))
    for number, row in enumerate(rows, start=1):
        row.number = number
    return rows
