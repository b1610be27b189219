"""Grid compaction: drop empty columns/rows and remap coordinates.

A line is empty when no point of any route lies on it. Removing it shifts
every later line down, so the remap is monotonic and anchored at the
lowest occupied coordinate.
"""

from __future__ import annotations

__all__ = ["CoordRemap", "reduce_grid", "reduce_spacing"]

import logging
from typing import Any

from metro_grid.parser.layout_json import ensure_layout
from metro_grid.parser.model import Layout, LayoutResult

logger = logging.getLogger(__name__)


class CoordRemap:
    """Monotonic old -> new mapping for one axis.

    A removed line maps onto the next surviving one; anything past the
    last occupied line shifts down by the number of removed lines.
    """

    def __init__(self, occupied: set[int], removed: set[int]):
        self.removed = frozenset(removed)
        self._map: dict[int, int] = {}
        self._lo = min(occupied) if occupied else 0
        self._hi = max(occupied) if occupied else -1
        new = self._lo
        for c in range(self._lo, self._hi + 1):
            self._map[c] = new
            if c not in self.removed:
                new += 1

    def __call__(self, c: int) -> int:
        if c < self._lo:
            return c
        if c > self._hi:
            return c - len(self.removed)
        return self._map[c]

    def __bool__(self) -> bool:
        return bool(self.removed)


def _empty_lines(occupied: set[int]) -> set[int]:
    if not occupied:
        return set()
    return {c for c in range(min(occupied), max(occupied) + 1) if c not in occupied}


def _empty_spacing_bands(occupied: set[int], fixed: frozenset[int]) -> set[int]:
    """Empty even lines paired with the empty odd line above them.

    Dropping both shifts later lines by two, so odd lines stay odd. A band
    whose odd line is occupied or either line is pinned is kept, so no two
    occupied lines are ever folded together.
    """
    removed: set[int] = set()
    for c in _empty_lines(occupied):
        band = {c, c + 1}
        if c % 2 == 0 and c + 1 not in occupied and not band & fixed:
            removed |= band
    return removed


def _remap_grid_props(props: Any, cmap: CoordRemap, rmap: CoordRemap) -> None:
    if not isinstance(props, dict):
        return
    if isinstance(props.get("x_grid"), int):
        props["x_grid"] = cmap(props["x_grid"])
    if isinstance(props.get("y_grid"), int):
        props["y_grid"] = rmap(props["y_grid"])


def _remap_coord_pair(value: Any, cmap: CoordRemap, rmap: CoordRemap) -> Any:
    if isinstance(value, list) and len(value) >= 2:
        if isinstance(value[0], int) and isinstance(value[1], int):
            return [cmap(value[0]), rmap(value[1]), *value[2:]]
    return value


def _compact(layout: Layout, cmap: CoordRemap, rmap: CoordRemap) -> Layout:
    work = layout.clone()
    for seg in work.iter_segments():
        for p in seg.points:
            p.x, p.y = cmap(p.x), rmap(p.y)
            if p.node is not None:
                # Nodes mirror their point's grid position when they record it.
                if "x_grid" in p.node:
                    p.node["x_grid"] = p.x
                if "y_grid" in p.node:
                    p.node["y_grid"] = p.y
        for key in ("properties_start", "properties_end"):
            _remap_grid_props(seg.extra.get(key), cmap, rmap)
        for key in ("start_coord", "end_coord"):
            if key in seg.extra:
                seg.extra[key] = _remap_coord_pair(seg.extra[key], cmap, rmap)

    meta = work.meta
    cols, rows = work.occupied_cols(), work.occupied_rows()
    meta.grid_width = max(
        meta.grid_width - len(cmap.removed), max(cols) + 1 if cols else 0
    )
    meta.grid_height = max(
        meta.grid_height - len(rmap.removed), max(rows) + 1 if rows else 0
    )
    meta.fixed_cols = frozenset(
        cmap(c) for c in meta.fixed_cols if c not in cmap.removed
    )
    meta.fixed_rows = frozenset(
        rmap(r) for r in meta.fixed_rows if r not in rmap.removed
    )
    for key, value in (("width", meta.grid_width), ("height", meta.grid_height)):
        if isinstance(meta.extra.get(key), (int, float)):
            meta.extra[key] = value
    return work.bumped()


def _reduce(layout: Layout, operation: str, even_only: bool) -> LayoutResult:
    current = ensure_layout(layout, operation)
    if current is None:
        return LayoutResult(False, layout)

    cols, rows = current.occupied_cols(), current.occupied_rows()
    if even_only:
        meta = current.meta
        cmap = CoordRemap(cols, _empty_spacing_bands(cols, meta.fixed_cols))
        rmap = CoordRemap(rows, _empty_spacing_bands(rows, meta.fixed_rows))
    else:
        cmap = CoordRemap(cols, _empty_lines(cols))
        rmap = CoordRemap(rows, _empty_lines(rows))
    if not cmap and not rmap:
        logger.debug("%s: no empty lines to remove", operation)
        return LayoutResult(False, current)

    logger.info(
        "%s: removed %d column(s) and %d row(s)",
        operation,
        len(cmap.removed),
        len(rmap.removed),
    )
    return LayoutResult(True, _compact(current, cmap, rmap))


def reduce_grid(layout: Layout) -> LayoutResult:
    """Remove every empty column and row inside the occupied extent.

    Idempotent: a reduced grid has no empty line left to remove.
    """
    return _reduce(layout, "reduce_grid", even_only=False)


def reduce_spacing(layout: Layout) -> LayoutResult:
    """Remove empty spacing lines without breaking the odd/even encoding.

    Each removed even line takes the empty odd line above it along, so
    stations stay on odd coordinates. Pinned lines are never removed.
    Idempotent like :func:`reduce_grid`.
    """
    return _reduce(layout, "reduce_spacing", even_only=True)
