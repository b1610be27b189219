"""Point classification: stations, connectors and pure geometry.

Only real stations may be merged away. Connectors join routes and are
never touched. Bend detection decides whether a merged station's
coordinate must survive as shape-only geometry.
"""

from __future__ import annotations

__all__ = ["PointKind", "classify", "is_bend_point", "is_connector", "lies_on_axis"]

from enum import Enum

from metro_grid.layout.constants import BEND_EPSILON
from metro_grid.parser.model import (
    CONNECTOR_NODE_TYPES,
    NODE_TYPE_STATION,
    Axis,
    Point,
    Segment,
)


class PointKind(Enum):
    STATION = "station"
    CONNECTOR = "connector"
    GEOMETRY = "geometry"


def is_connector(point: Point) -> bool:
    if point.lookup("connect_number") is not None:
        return True
    return point.lookup("node_type") in CONNECTOR_NODE_TYPES


def classify(segment: Segment, idx: int) -> PointKind:
    """Classify ``segment.points[idx]``.

    A point with a connect number is always a connector, even when a
    weight interval ends on it.
    """
    point = segment.points[idx]
    if is_connector(point):
        return PointKind.CONNECTOR
    if idx in segment.interval_endpoints():
        return PointKind.STATION
    if point.lookup("station_name") or point.lookup("station_id"):
        return PointKind.STATION
    if point.lookup("node_type") == NODE_TYPE_STATION:
        return PointKind.STATION
    return PointKind.GEOMETRY


def is_bend_point(points: list[Point], idx: int) -> bool:
    """True if the track changes direction at ``points[idx]``."""
    if idx <= 0 or idx >= len(points) - 1:
        return False
    prev, cur, nxt = points[idx - 1], points[idx], points[idx + 1]
    dx1, dy1 = cur.x - prev.x, cur.y - prev.y
    dx2, dy2 = nxt.x - cur.x, nxt.y - cur.y
    return abs(dx1 * dy2 - dy1 * dx2) > BEND_EPSILON


def lies_on_axis(points: list[Point], idx: int, axis: Axis) -> bool:
    """True if ``points[idx]`` shares a straight run with a neighbour.

    Horizontal runs share y with the previous or next point, vertical
    runs share x.
    """
    cur = points[idx]
    for j in (idx - 1, idx + 1):
        if not 0 <= j < len(points):
            continue
        other = points[j]
        if axis is Axis.HORIZONTAL and other.y == cur.y and other.x != cur.x:
            return True
        if axis is Axis.VERTICAL and other.x == cur.x and other.y != cur.y:
            return True
    return False
