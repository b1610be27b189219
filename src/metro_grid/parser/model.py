"""Core data model for grid-laid-out metro routes.

Coordinates use a doubled-integer encoding: odd columns/rows hold stations,
even ones are spacing or connector lines. Every public operation works on a
deep copy of a :class:`Layout` and hands back a new one, so callers can tell
a change happened by comparing versions instead of watching for mutation.
"""

from __future__ import annotations

__all__ = [
    "Axis",
    "DataTableRow",
    "GridMeta",
    "Layout",
    "LayoutResult",
    "LineType",
    "MergeStatus",
    "Point",
    "Route",
    "Segment",
    "WeightInterval",
]

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

NODE_TYPE_STATION = "station"
NODE_TYPE_LINE = "line"
CONNECTOR_NODE_TYPES = frozenset({"connect", "connector"})


class Axis(Enum):
    """Orientation of a straight run of track."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class LineType(Enum):
    """Whether a table row describes a pair of columns or a pair of rows."""

    COL = "col"
    ROW = "row"

    @property
    def axis(self) -> Axis:
        # Stations between two odd rows sit on a horizontal run; columns
        # are crossed by vertical runs.
        return Axis.HORIZONTAL if self is LineType.ROW else Axis.VERTICAL


class MergeStatus(Enum):
    UNMERGED = "unmerged"
    MERGED = "merged"
    FAILED = "failed"


@dataclass
class Point:
    """A grid point, optionally carrying station/connector properties.

    ``properties`` is the third element of a ``[x, y, props]`` point and
    ``node`` the index-aligned entry of the segment's ``nodes`` list.
    ``keyed`` records that the point was read as an ``{"x", "y"}`` object so
    it is written back in that shape.
    """

    x: int
    y: int
    properties: dict[str, Any] | None = None
    node: dict[str, Any] | None = None
    keyed: bool = field(default=False, compare=False)

    def lookup(self, key: str) -> Any:
        """Return the first non-null value for ``key``.

        Checks the node entry, the point properties, then the ``tags``
        mapping nested in either.
        """
        sources: list[dict[str, Any]] = []
        for holder in (self.node, self.properties):
            if isinstance(holder, dict):
                sources.append(holder)
        for holder in list(sources):
            tags = holder.get("tags")
            if isinstance(tags, dict):
                sources.append(tags)
        for source in sources:
            value = source.get(key)
            if value is not None:
                return value
        return None

    @property
    def coord(self) -> tuple[int, int]:
        return (self.x, self.y)


@dataclass
class WeightInterval:
    """A load/importance annotation over ``points[start_idx:end_idx + 1]``."""

    start_idx: int
    end_idx: int
    weight: float


@dataclass
class Segment:
    """An ordered polyline of points plus its weight intervals."""

    points: list[Point]
    weights: list[WeightInterval] = field(default_factory=list)
    edge_weights: list[float] | None = None
    has_nodes: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def is_boundary(self, idx: int) -> bool:
        return idx <= 0 or idx >= len(self.points) - 1

    def interval_endpoints(self) -> set[int]:
        ends: set[int] = set()
        for w in self.weights:
            ends.add(w.start_idx)
            ends.add(w.end_idx)
        return ends


@dataclass
class Route:
    name: str
    color: str
    segments: list[Segment] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class GridMeta:
    """Grid extents and the lines pinned to minimum size."""

    grid_width: int = 0
    grid_height: int = 0
    fixed_cols: frozenset[int] = frozenset()
    fixed_rows: frozenset[int] = frozenset()
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class Layout:
    """A versioned route collection with its grid metadata.

    ``bare`` records that the source was a plain route list so it can be
    written back in the same shape.
    """

    routes: list[Route] = field(default_factory=list)
    meta: GridMeta = field(default_factory=GridMeta)
    version: int = 0
    bare: bool = False

    def clone(self) -> Layout:
        return copy.deepcopy(self)

    def bumped(self) -> Layout:
        """Return this layout tagged as the next version."""
        return replace(self, version=self.version + 1)

    def iter_segments(self) -> Iterator[Segment]:
        for route in self.routes:
            yield from route.segments

    def iter_points(self) -> Iterator[Point]:
        for seg in self.iter_segments():
            yield from seg.points

    def occupied_cols(self) -> set[int]:
        return {p.x for p in self.iter_points()}

    def occupied_rows(self) -> set[int]:
        return {p.y for p in self.iter_points()}

    @property
    def point_count(self) -> int:
        return sum(len(seg.points) for seg in self.iter_segments())


@dataclass
class DataTableRow:
    """Two consecutive odd grid lines and their maximum weights.

    Rows are a read-model over a layout; changing ``status`` never touches
    the layout itself.
    """

    number: int
    type: LineType
    idx1: int
    idx2: int
    idx1_max_weight: float
    idx2_max_weight: float
    status: MergeStatus = MergeStatus.UNMERGED

    @property
    def combined_weight(self) -> float:
        return self.idx1_max_weight + self.idx2_max_weight

    @property
    def weight_gap(self) -> float:
        return abs(self.idx1_max_weight - self.idx2_max_weight)

    @property
    def between(self) -> int:
        """The even spacing line separating the pair."""
        return (self.idx1 + self.idx2) // 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "#": self.number,
            "type": self.type.value,
            "idx1": self.idx1,
            "idx2": self.idx2,
            "idx1_max_weight": self.idx1_max_weight,
            "idx2_max_weight": self.idx2_max_weight,
            "mergedFlag": self.status.value,
        }


@dataclass(frozen=True)
class LayoutResult:
    """Outcome of a layout operation: a change flag and the new value."""

    modified: bool
    layout: Layout
