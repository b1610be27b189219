"""Proportional grid sizing: busy lines get more pixels than empty ones.

Each line's share of the canvas is ``size_weight / sum(size_weights)``
where ``size_weight = multiplier * max(weight, eps) ** exponent``. Lines
that would end up narrower than a readable floor are hidden one at a time,
narrowest first, and the rest re-share the canvas.
"""

from __future__ import annotations

__all__ = [
    "CanvasDimensions",
    "CellDimensions",
    "GridMeasurement",
    "LineSizes",
    "SizingOptions",
    "compute_line_sizes",
    "focal_multiplier",
    "measure_layout",
]

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from metro_grid.layout.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_EXPONENT,
    DEFAULT_MULTIPLIER,
    FOCAL_FAR_MULTIPLIER,
    FOCAL_MULTIPLIERS,
    MIN_LINE_PX,
    PX_TO_PT,
    WEIGHT_EPSILON,
)
from metro_grid.layout.table import line_max_weights
from metro_grid.parser.layout_json import ensure_layout
from metro_grid.parser.model import Layout


@dataclass(frozen=True)
class SizingOptions:
    """Explicit sizing knobs.

    Args:
        enabled: Scale lines by weight; when off every line weighs 1.
        multiplier: Constant factor on the power law.
        exponent: Power applied to the weight (>1 widens heavy lines).
        focal: Line coordinate to emphasise; replaces the multiplier with
            a step function of the distance to it.
        min_line_px: Readability floor used when hiding lines.
    """

    enabled: bool = False
    multiplier: float = DEFAULT_MULTIPLIER
    exponent: float = DEFAULT_EXPONENT
    focal: int | None = None
    min_line_px: float = MIN_LINE_PX


@dataclass(frozen=True)
class LineSizes:
    """Pixel size per line; hidden lines have size 0."""

    sizes: list[float]
    hidden: frozenset[int] = frozenset()

    @property
    def visible(self) -> list[int]:
        return [i for i in range(len(self.sizes)) if i not in self.hidden]


@dataclass(frozen=True)
class CellDimensions:
    """Smallest visible cell, in points."""

    min_width: int = 0
    min_height: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"minWidth": self.min_width, "minHeight": self.min_height}


@dataclass(frozen=True)
class CanvasDimensions:
    """Overall drawn extent, in points."""

    width: int = 0
    height: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class GridMeasurement:
    cols: list[int] = field(default_factory=list)
    col_sizes: LineSizes = field(default_factory=lambda: LineSizes([]))
    rows: list[int] = field(default_factory=list)
    row_sizes: LineSizes = field(default_factory=lambda: LineSizes([]))
    min_cell: CellDimensions = field(default_factory=CellDimensions)
    current: CanvasDimensions = field(default_factory=CanvasDimensions)


def focal_multiplier(distance: int) -> float:
    """Emphasis for a line ``distance`` grid steps from the focal line."""
    distance = abs(distance)
    if distance < len(FOCAL_MULTIPLIERS):
        return FOCAL_MULTIPLIERS[distance]
    return FOCAL_FAR_MULTIPLIER


def _size_weights(
    weights: Sequence[float],
    options: SizingOptions,
    coords: Sequence[int] | None,
    pinned: frozenset[int],
) -> list[float]:
    focal_on = options.focal is not None and coords is not None
    out = []
    for i, weight in enumerate(weights):
        if i in pinned:
            out.append(1.0)
            continue
        if not math.isfinite(weight):
            weight = WEIGHT_EPSILON
        base = 1.0
        if options.enabled:
            base = max(weight, WEIGHT_EPSILON) ** options.exponent
        if focal_on:
            out.append(focal_multiplier(coords[i] - options.focal) * base)
        elif options.enabled:
            out.append(options.multiplier * base)
        else:
            out.append(1.0)
    return out


def compute_line_sizes(
    weights: Sequence[float],
    total_extent: float,
    options: SizingOptions = SizingOptions(),
    coords: Sequence[int] | None = None,
    pinned: frozenset[int] = frozenset(),
) -> LineSizes:
    """Share ``total_extent`` pixels between lines by weight.

    With scaling (or focal mode) on, the narrowest line under the floor is
    hidden and the rest recomputed until every visible line clears the
    floor or only one is left. Ties go to the lighter line, then the
    earlier one. ``pinned`` indices are fixed at weight 1 and never hidden.
    """
    n = len(weights)
    if n == 0:
        return LineSizes([])
    sw = _size_weights(weights, options, coords, pinned)
    refine = options.enabled or (options.focal is not None and coords is not None)

    hidden: set[int] = set()
    while True:
        visible = [i for i in range(n) if i not in hidden]
        total = sum(sw[i] for i in visible)
        sizes = [0.0] * n
        if total > 0 and total_extent > 0:
            for i in visible:
                sizes[i] = sw[i] / total * total_extent
        if not refine or len(visible) <= 1:
            break
        under = [
            i for i in visible if sizes[i] < options.min_line_px and i not in pinned
        ]
        if not under:
            break
        hidden.add(min(under, key=lambda i: (sizes[i], weights[i], i)))
    return LineSizes(sizes, frozenset(hidden))


def _to_points(px: float) -> float:
    # Strip float noise before any ceil.
    return round(px * PX_TO_PT, 9)


def _min_points(sizes: LineSizes) -> int:
    positive = [s for s in sizes.sizes if s > 0]
    if not positive:
        return 0
    return max(1, math.ceil(_to_points(min(positive))))


def measure_layout(
    layout: Layout,
    canvas_width: float = DEFAULT_CANVAS_WIDTH,
    canvas_height: float = DEFAULT_CANVAS_HEIGHT,
    options: SizingOptions = SizingOptions(),
    focus: tuple[int, int] | None = None,
) -> GridMeasurement:
    """Size every column and row of ``layout`` on the given canvas.

    ``focus`` is an (x, y) grid coordinate; it sets the focal line of each
    axis. Lines pinned in the grid metadata stay at minimum weight.
    """
    current = ensure_layout(layout, "measure_layout")
    if current is None:
        return GridMeasurement()

    lw = line_max_weights(current)
    cols, rows = sorted(lw.cols), sorted(lw.rows)
    col_opts = replace(options, focal=focus[0]) if focus else options
    row_opts = replace(options, focal=focus[1]) if focus else options
    meta = current.meta
    col_pinned = frozenset(i for i, c in enumerate(cols) if c in meta.fixed_cols)
    row_pinned = frozenset(i for i, r in enumerate(rows) if r in meta.fixed_rows)

    col_sizes = compute_line_sizes(
        [lw.cols[c] for c in cols], canvas_width, col_opts, cols, col_pinned
    )
    row_sizes = compute_line_sizes(
        [lw.rows[r] for r in rows], canvas_height, row_opts, rows, row_pinned
    )
    return GridMeasurement(
        cols=cols,
        col_sizes=col_sizes,
        rows=rows,
        row_sizes=row_sizes,
        min_cell=CellDimensions(_min_points(col_sizes), _min_points(row_sizes)),
        current=CanvasDimensions(
            round(_to_points(sum(col_sizes.sizes))),
            round(_to_points(sum(row_sizes.sizes))),
        ),
    )
