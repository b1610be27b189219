"""Station merging: collapse adjacent weight intervals of similar weight.

Two contiguous intervals ``w1`` and ``w2`` (``w1.end_idx == w2.start_idx``)
whose weights differ by at most the gap tolerance are fused into one that
keeps ``w1``'s weight. The station they shared is either deleted (straight
track) or demoted to a geometry point (bend), so the drawn shape never
changes. Scanning is first-match by route/segment/interval order.
"""

from __future__ import annotations

__all__ = [
    "GuidedMergeResult",
    "merge_all",
    "merge_by_table",
    "merge_by_table_row",
    "merge_horizontal",
    "merge_once",
    "merge_vertical",
]

import logging
import warnings
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace

from metro_grid.errors import MalformedInputWarning, SafetyCapWarning
from metro_grid.layout.constants import GAP_EPSILON, MAX_MERGE_PASSES
from metro_grid.layout.table import build_table
from metro_grid.layout.topology import (
    PointKind,
    classify,
    is_bend_point,
    lies_on_axis,
)
from metro_grid.parser.layout_json import ensure_layout
from metro_grid.parser.model import (
    NODE_TYPE_LINE,
    Axis,
    DataTableRow,
    Layout,
    LayoutResult,
    LineType,
    MergeStatus,
    Point,
    Segment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    route_idx: int
    segment_idx: int
    interval_idx: int  # index of w1 in segment.weights
    point_idx: int


@dataclass(frozen=True)
class GuidedMergeResult(LayoutResult):
    """Merge outcome plus the table with updated row flags."""

    table: list[DataTableRow] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Candidate search and the merge itself
# ---------------------------------------------------------------------------


def _iter_candidates(
    layout: Layout,
    gap: float,
    axis: Axis | None = None,
    accept: Callable[[Point], bool] | None = None,
) -> Iterator[_Candidate]:
    for ri, route in enumerate(layout.routes):
        for si, seg in enumerate(route.segments):
            for wi in range(len(seg.weights) - 1):
                w1, w2 = seg.weights[wi], seg.weights[wi + 1]
                if w1.end_idx != w2.start_idx:
                    continue
                if abs(w1.weight - w2.weight) > gap + GAP_EPSILON:
                    continue
                idx = w1.end_idx
                if seg.is_boundary(idx):
                    continue
                if classify(seg, idx) is not PointKind.STATION:
                    continue
                if axis is not None and not lies_on_axis(seg.points, idx, axis):
                    continue
                if accept is not None and not accept(seg.points[idx]):
                    continue
                yield _Candidate(ri, si, wi, idx)


def _apply_merge(seg: Segment, interval_idx: int) -> bool:
    """Fuse ``weights[interval_idx]`` with its successor in place.

    Returns True if the shared point was deleted, False if it was kept
    as a bend.
    """
    w1, w2 = seg.weights[interval_idx], seg.weights[interval_idx + 1]
    idx = w1.end_idx
    w1.end_idx = w2.end_idx
    del seg.weights[interval_idx + 1]

    if is_bend_point(seg.points, idx):
        point = seg.points[idx]
        point.properties = None
        point.node = {"node_type": NODE_TYPE_LINE} if seg.has_nodes else None
        return False

    del seg.points[idx]
    # Edge i joins points i and i+1; the left edge absorbs the right one.
    if seg.edge_weights is not None and idx < len(seg.edge_weights):
        del seg.edge_weights[idx]
    for w in seg.weights:
        if w.start_idx > idx:
            w.start_idx -= 1
        if w.end_idx > idx:
            w.end_idx -= 1
    return True


def _gap_is_valid(gap: object, operation: str) -> bool:
    if isinstance(gap, bool) or not isinstance(gap, (int, float)) or gap < 0:
        logger.warning("%s: invalid gap tolerance %r", operation, gap)
        warnings.warn(
            f"{operation}: gap tolerance must be a non-negative number, got {gap!r}",
            MalformedInputWarning,
            stacklevel=3,
        )
        return False
    return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def merge_once(
    layout: Layout, gap_tolerance: float = 0, axis: Axis | None = None
) -> LayoutResult:
    """Perform at most one station merge.

    Callers loop until ``modified`` is False for a full merge (or use
    :func:`merge_all`).
    """
    current = ensure_layout(layout, "merge_once")
    if current is None or not _gap_is_valid(gap_tolerance, "merge_once"):
        return LayoutResult(False, layout)

    work = current.clone()
    cand = next(_iter_candidates(work, gap_tolerance, axis), None)
    if cand is None:
        return LayoutResult(False, current)

    seg = work.routes[cand.route_idx].segments[cand.segment_idx]
    removed = _apply_merge(seg, cand.interval_idx)
    logger.debug(
        "merged station %d of %r segment %d (%s)",
        cand.point_idx,
        work.routes[cand.route_idx].name,
        cand.segment_idx,
        "removed" if removed else "kept as bend",
    )
    return LayoutResult(True, work.bumped())


def merge_all(
    layout: Layout,
    gap_tolerance: float = 0,
    axis: Axis | None = None,
    max_passes: int = MAX_MERGE_PASSES,
) -> LayoutResult:
    """Merge repeatedly until no candidate within ``gap_tolerance`` is left."""
    current = ensure_layout(layout, "merge_all")
    if current is None or not _gap_is_valid(gap_tolerance, "merge_all"):
        return LayoutResult(False, layout)

    work = current.clone()
    merged = 0
    for _ in range(max_passes):
        cand = next(_iter_candidates(work, gap_tolerance, axis), None)
        if cand is None:
            break
        seg = work.routes[cand.route_idx].segments[cand.segment_idx]
        _apply_merge(seg, cand.interval_idx)
        merged += 1
    else:
        warnings.warn(
            f"merge_all stopped after {max_passes} passes",
            SafetyCapWarning,
            stacklevel=2,
        )

    axis_name = axis.value if axis else "any axis"
    if not merged:
        logger.debug("no station within gap %s on %s", gap_tolerance, axis_name)
        return LayoutResult(False, current)
    logger.info(
        "merged %d station(s) at gap %s on %s", merged, gap_tolerance, axis_name
    )
    return LayoutResult(True, work.bumped())


def merge_horizontal(layout: Layout, gap_tolerance: float = 0) -> LayoutResult:
    """Merge stations lying on horizontal runs (shrinks the grid's width)."""
    return merge_all(layout, gap_tolerance, Axis.HORIZONTAL)


def merge_vertical(layout: Layout, gap_tolerance: float = 0) -> LayoutResult:
    """Merge stations lying on vertical runs (shrinks the grid's height)."""
    return merge_all(layout, gap_tolerance, Axis.VERTICAL)


# ---------------------------------------------------------------------------
# Table-guided merging
# ---------------------------------------------------------------------------


def _row_is_well_formed(row: DataTableRow) -> bool:
    return row.idx1 % 2 != 0 and row.idx2 == row.idx1 + 2


def _merge_line(work: Layout, row: DataTableRow, gap: float) -> int:
    """Merge every candidate on the even line between the row's pair."""
    line = row.between
    if row.type is LineType.ROW:
        def on_line(p: Point) -> bool:
            return p.y == line
    else:
        def on_line(p: Point) -> bool:
            return p.x == line

    merged = 0
    while True:
        cand = next(_iter_candidates(work, gap, row.type.axis, on_line), None)
        if cand is None:
            return merged
        seg = work.routes[cand.route_idx].segments[cand.segment_idx]
        _apply_merge(seg, cand.interval_idx)
        merged += 1


def merge_by_table_row(
    layout: Layout,
    table: list[DataTableRow],
    gap_tolerance: float = 0,
    axis: Axis | None = None,
) -> GuidedMergeResult:
    """Apply the first table row that maps onto a live merge.

    Rows are tried in table order. A row that cannot be matched back to
    the layout is flagged failed and skipped by later sweeps. The input
    table is left untouched; the returned one carries the new flags.
    """
    current = ensure_layout(layout, "merge_by_table_row")
    if current is None or not _gap_is_valid(gap_tolerance, "merge_by_table_row"):
        return GuidedMergeResult(False, layout, table)
    if not isinstance(table, list) or not all(
        isinstance(r, DataTableRow) for r in table
    ):
        warnings.warn(
            "merge_by_table_row: table must be a list of DataTableRow",
            MalformedInputWarning,
            stacklevel=2,
        )
        return GuidedMergeResult(False, current, table)

    rows = [replace(r) for r in table]
    work = current.clone()
    for row in rows:
        if row.status is not MergeStatus.UNMERGED:
            continue
        if axis is not None and row.type.axis is not axis:
            continue
        if row.weight_gap > gap_tolerance + GAP_EPSILON:
            continue
        if _row_is_well_formed(row) and _merge_line(work, row, gap_tolerance):
            row.status = MergeStatus.MERGED
            logger.debug(
                "row #%d merged %s %d/%d",
                row.number,
                row.type.value,
                row.idx1,
                row.idx2,
            )
            return GuidedMergeResult(True, work.bumped(), rows)
        row.status = MergeStatus.FAILED
        logger.info(
            "row #%d (%s %d/%d) has no live merge candidate",
            row.number,
            row.type.value,
            row.idx1,
            row.idx2,
        )
    return GuidedMergeResult(False, current, rows)


def merge_by_table(
    layout: Layout,
    gap_tolerance: float = 0,
    axis: Axis | None = None,
    max_passes: int = MAX_MERGE_PASSES,
) -> LayoutResult:
    """Sweep the weight table, rebuilding it after every successful row."""
    current = ensure_layout(layout, "merge_by_table")
    if current is None:
        return LayoutResult(False, layout)

    work = current
    for _ in range(max_passes):
        result = merge_by_table_row(work, build_table(work), gap_tolerance, axis)
        if not result.modified:
            break
        work = result.layout
    else:
        warnings.warn(
            f"merge_by_table stopped after {max_passes} passes",
            SafetyCapWarning,
            stacklevel=2,
        )
    return LayoutResult(work is not current, work)
