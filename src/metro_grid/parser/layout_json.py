"""Load and dump route layouts in their JSON shapes.

Two shapes are accepted: a bare list of routes, or a document
``{"routes": [...], "meta": {...}}``. Points may be ``[x, y]``,
``[x, y, properties]`` or ``{"x": .., "y": ..}``; each is written back in
the shape it was read in. Everything is resolved into the
:mod:`metro_grid.parser.model` types once, here, so the algorithms never
sniff shapes themselves.
"""

from __future__ import annotations

__all__ = [
    "dump_layout",
    "ensure_layout",
    "load_layout",
    "read_layout",
    "write_layout",
]

import json
import logging
import math
import warnings
from pathlib import Path
from typing import Any

from metro_grid.errors import MalformedInputWarning, MalformedLayoutError
from metro_grid.parser.model import (
    GridMeta,
    Layout,
    Point,
    Route,
    Segment,
    WeightInterval,
)

logger = logging.getLogger(__name__)

_ROUTE_KEYS = {"name", "color", "segments"}
_SEGMENT_KEYS = {"points", "station_weights", "nodes", "edge_weights"}
_META_KEYS = {"gridWidth", "gridHeight", "fixedCols", "fixedRows"}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_layout(data: Any) -> Layout:
    """Build a :class:`Layout` from either accepted JSON shape.

    Raises MalformedLayoutError when the data cannot be interpreted.
    """
    if isinstance(data, Layout):
        return data
    if isinstance(data, list):
        routes = [_load_route(r, i) for i, r in enumerate(data)]
        layout = Layout(routes=routes, bare=True)
        layout.meta = _default_meta(layout)
        return layout
    if isinstance(data, dict) and isinstance(data.get("routes"), list):
        routes = [_load_route(r, i) for i, r in enumerate(data["routes"])]
        layout = Layout(routes=routes)
        raw_meta = data.get("meta")
        if raw_meta is None:
            layout.meta = _default_meta(layout)
        else:
            layout.meta = _load_meta(raw_meta, layout)
        return layout
    raise MalformedLayoutError(
        "expected a list of routes or an object with a 'routes' list, "
        f"got {type(data).__name__}"
    )


def ensure_layout(data: Any, operation: str) -> Layout | None:
    """Coerce ``data`` for a public operation, or report and return None.

    Malformed input is never fatal: the caller is expected to hand the
    input back unmodified when this returns None.
    """
    try:
        return load_layout(data)
    except MalformedLayoutError as e:
        logger.warning("%s: malformed layout ignored: %s", operation, e)
        warnings.warn(
            f"{operation}: malformed layout ignored ({e})",
            MalformedInputWarning,
            stacklevel=3,
        )
        return None


def read_layout(path: str | Path) -> Layout:
    """Read a layout from a JSON file."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedLayoutError(f"{path}: invalid JSON ({e})") from e
    return load_layout(data)


def _load_route(raw: Any, route_idx: int) -> Route:
    if not isinstance(raw, dict):
        raise MalformedLayoutError(f"route {route_idx} is not an object")
    raw_segments = raw.get("segments") or []
    if not isinstance(raw_segments, list):
        raise MalformedLayoutError(f"route {route_idx}: 'segments' is not a list")
    segments = [
        _load_segment(s, f"route {route_idx} segment {i}")
        for i, s in enumerate(raw_segments)
    ]
    return Route(
        name=str(raw.get("name", "")),
        color=str(raw.get("color", "")),
        segments=segments,
        extra={k: v for k, v in raw.items() if k not in _ROUTE_KEYS},
    )


def _load_segment(raw: Any, where: str) -> Segment:
    if not isinstance(raw, dict):
        raise MalformedLayoutError(f"{where} is not an object")
    raw_points = raw.get("points")
    if not isinstance(raw_points, list) or len(raw_points) < 2:
        raise MalformedLayoutError(f"{where}: needs a 'points' list of at least 2")
    points = [_load_point(p, f"{where} point {i}") for i, p in enumerate(raw_points)]

    raw_nodes = raw.get("nodes")
    has_nodes = isinstance(raw_nodes, list)
    if has_nodes:
        for i, node in enumerate(raw_nodes[: len(points)]):
            if isinstance(node, dict):
                points[i].node = dict(node)

    weights = [
        _load_interval(w, len(points), f"{where} weight {i}")
        for i, w in enumerate(raw.get("station_weights") or [])
    ]
    _check_interval_order(weights, where)

    edge_weights = raw.get("edge_weights")
    if edge_weights is not None:
        if not isinstance(edge_weights, list) or not all(
            _is_number(w) for w in edge_weights
        ):
            raise MalformedLayoutError(f"{where}: 'edge_weights' must be numbers")
        edge_weights = list(edge_weights)

    return Segment(
        points=points,
        weights=weights,
        edge_weights=edge_weights,
        has_nodes=has_nodes,
        extra={k: v for k, v in raw.items() if k not in _SEGMENT_KEYS},
    )


def _load_point(raw: Any, where: str) -> Point:
    props = None
    keyed = isinstance(raw, dict)
    if isinstance(raw, (list, tuple)):
        if len(raw) < 2:
            raise MalformedLayoutError(f"{where}: expected [x, y]")
        x, y = raw[0], raw[1]
        if len(raw) > 2 and isinstance(raw[2], dict):
            props = dict(raw[2])
    elif keyed:
        x, y = raw.get("x"), raw.get("y")
        props = {k: v for k, v in raw.items() if k not in ("x", "y")} or None
    else:
        raise MalformedLayoutError(f"{where}: unsupported point {raw!r}")
    if not (_is_number(x) and _is_number(y)):
        raise MalformedLayoutError(f"{where}: non-numeric coordinate {raw!r}")
    return Point(x=round(x), y=round(y), properties=props, keyed=keyed)


def _load_interval(raw: Any, n_points: int, where: str) -> WeightInterval:
    if not isinstance(raw, dict):
        raise MalformedLayoutError(f"{where} is not an object")
    start, end, weight = raw.get("start_idx"), raw.get("end_idx"), raw.get("weight")
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in (start, end)):
        raise MalformedLayoutError(f"{where}: indices must be integers")
    if not _is_number(weight):
        raise MalformedLayoutError(f"{where}: weight must be a finite number")
    if not 0 <= start < end < n_points:
        raise MalformedLayoutError(
            f"{where}: interval [{start}, {end}] outside 0..{n_points - 1}"
        )
    return WeightInterval(start_idx=start, end_idx=end, weight=weight)


def _check_interval_order(weights: list[WeightInterval], where: str) -> None:
    for prev, cur in zip(weights, weights[1:]):
        if cur.start_idx < prev.end_idx:
            raise MalformedLayoutError(
                f"{where}: weight intervals overlap or are out of order"
            )


def _load_meta(raw: Any, layout: Layout) -> GridMeta:
    if not isinstance(raw, dict):
        raise MalformedLayoutError("'meta' is not an object")
    default = _default_meta(layout)
    try:
        fixed_cols = frozenset(int(c) for c in raw.get("fixedCols") or [])
        fixed_rows = frozenset(int(r) for r in raw.get("fixedRows") or [])
    except (TypeError, ValueError) as e:
        raise MalformedLayoutError(f"meta: fixed lines must be integers ({e})") from e
    width, height = raw.get("gridWidth"), raw.get("gridHeight")
    return GridMeta(
        grid_width=int(width) if _is_number(width) else default.grid_width,
        grid_height=int(height) if _is_number(height) else default.grid_height,
        fixed_cols=fixed_cols,
        fixed_rows=fixed_rows,
        extra={k: v for k, v in raw.items() if k not in _META_KEYS},
    )


def _default_meta(layout: Layout) -> GridMeta:
    cols, rows = layout.occupied_cols(), layout.occupied_rows()
    return GridMeta(
        grid_width=max(cols) + 1 if cols else 0,
        grid_height=max(rows) + 1 if rows else 0,
    )


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


# ---------------------------------------------------------------------------
# Dumping
# ---------------------------------------------------------------------------


def dump_layout(layout: Layout, bare: bool | None = None) -> list | dict:
    """Serialise a layout back to JSON-ready data.

    The source shape is kept unless ``bare`` says otherwise.
    """
    routes = [_dump_route(r) for r in layout.routes]
    if layout.bare if bare is None else bare:
        return routes
    meta = layout.meta
    return {
        "routes": routes,
        "meta": {
            "gridWidth": meta.grid_width,
            "gridHeight": meta.grid_height,
            "fixedCols": sorted(meta.fixed_cols),
            "fixedRows": sorted(meta.fixed_rows),
            **meta.extra,
        },
    }


def write_layout(layout: Layout, path: str | Path, bare: bool | None = None) -> None:
    Path(path).write_text(
        json.dumps(dump_layout(layout, bare=bare), indent=2, ensure_ascii=False)
        + "\n",
        encoding="utf-8",
    )


def _dump_route(route: Route) -> dict[str, Any]:
    return {
        "name": route.name,
        "color": route.color,
        **route.extra,
        "segments": [_dump_segment(s) for s in route.segments],
    }


def _dump_point(p: Point) -> Any:
    if p.keyed:
        return {"x": p.x, "y": p.y, **(p.properties or {})}
    return [p.x, p.y, p.properties] if p.properties else [p.x, p.y]


def _dump_segment(seg: Segment) -> dict[str, Any]:
    out: dict[str, Any] = {
        "points": [_dump_point(p) for p in seg.points],
        "station_weights": [
            {"start_idx": w.start_idx, "end_idx": w.end_idx, "weight": w.weight}
            for w in seg.weights
        ],
    }
    if seg.has_nodes:
        out["nodes"] = [p.node if p.node is not None else {} for p in seg.points]
    if seg.edge_weights is not None:
        out["edge_weights"] = list(seg.edge_weights)
    out.update(seg.extra)
    return out
