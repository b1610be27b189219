"""Programmatic layout checks.

Single-layout checks cover weight interval sanity and the odd/even station
encoding. Before/after checks confirm that a simplification kept every
connector and segment endpoint and did not change how routes connect.
"""

from __future__ import annotations

__all__ = [
    "Severity",
    "Violation",
    "check_boundaries_preserved",
    "check_connectivity_preserved",
    "check_connectors_preserved",
    "check_interval_bounds",
    "check_interval_order",
    "check_station_parity",
    "connector_graph",
    "validate_layout",
    "validate_transition",
]

from collections import Counter
from dataclasses import dataclass
from enum import Enum

import networkx as nx

from metro_grid.layout.topology import PointKind, classify, is_connector
from metro_grid.parser.model import Layout, Point


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Violation:
    check: str
    severity: Severity
    message: str


def _where(layout: Layout, ri: int, si: int) -> str:
    return f"route {layout.routes[ri].name!r} segment {si}"


# --- Single-layout checks ---


def check_interval_bounds(layout: Layout) -> list[Violation]:
    """Every interval must satisfy 0 <= start < end < len(points)."""
    violations = []
    for ri, route in enumerate(layout.routes):
        for si, seg in enumerate(route.segments):
            n = len(seg.points)
            for w in seg.weights:
                if not 0 <= w.start_idx < w.end_idx < n:
                    violations.append(
                        Violation(
                            "interval_bounds",
                            Severity.ERROR,
                            f"{_where(layout, ri, si)}: interval "
                            f"[{w.start_idx}, {w.end_idx}] outside 0..{n - 1}",
                        )
                    )
    return violations


def check_interval_order(layout: Layout) -> list[Violation]:
    """Intervals must increase and never overlap."""
    violations = []
    for ri, route in enumerate(layout.routes):
        for si, seg in enumerate(route.segments):
            for prev, cur in zip(seg.weights, seg.weights[1:]):
                if cur.start_idx < prev.end_idx:
                    violations.append(
                        Violation(
                            "interval_order",
                            Severity.ERROR,
                            f"{_where(layout, ri, si)}: interval starting at "
                            f"{cur.start_idx} overlaps one ending at {prev.end_idx}",
                        )
                    )
    return violations


def check_station_parity(layout: Layout) -> list[Violation]:
    """Stations are expected on odd coordinates (doubled-grid encoding)."""
    violations = []
    for ri, route in enumerate(layout.routes):
        for si, seg in enumerate(route.segments):
            for idx, p in enumerate(seg.points):
                if p.x % 2 and p.y % 2:
                    continue
                if classify(seg, idx) is PointKind.STATION:
                    violations.append(
                        Violation(
                            "station_parity",
                            Severity.WARNING,
                            f"{_where(layout, ri, si)}: station {idx} at "
                            f"({p.x}, {p.y}) is off the odd station grid",
                        )
                    )
    return violations


def validate_layout(layout: Layout) -> list[Violation]:
    return (
        check_interval_bounds(layout)
        + check_interval_order(layout)
        + check_station_parity(layout)
    )


# --- Before/after checks ---


def _connector_numbers(layout: Layout) -> Counter:
    counts: Counter = Counter()
    for ri, route in enumerate(layout.routes):
        for si, seg in enumerate(route.segments):
            for p in seg.points:
                if is_connector(p):
                    counts[(ri, si, str(p.lookup("connect_number")))] += 1
    return counts


def connector_graph(layout: Layout) -> nx.Graph:
    """Bipartite graph linking each route to the connectors it passes."""
    G = nx.Graph()
    for ri, route in enumerate(layout.routes):
        G.add_node(("route", ri), name=route.name)
        for seg in route.segments:
            for p in seg.points:
                number = p.lookup("connect_number")
                if number is not None:
                    G.add_edge(("route", ri), ("connector", str(number)))
    return G


def check_connectors_preserved(before: Layout, after: Layout) -> list[Violation]:
    """No connector may disappear from, or appear in, any segment."""
    lost = _connector_numbers(before) - _connector_numbers(after)
    gained = _connector_numbers(after) - _connector_numbers(before)
    violations = []
    for (ri, si, number), count in sorted(lost.items()):
        violations.append(
            Violation(
                "connectors_preserved",
                Severity.ERROR,
                f"{_where(before, ri, si)}: lost {count} connector(s) #{number}",
            )
        )
    for (ri, si, number), count in sorted(gained.items()):
        violations.append(
            Violation(
                "connectors_preserved",
                Severity.ERROR,
                f"{_where(after, ri, si)}: gained {count} connector(s) #{number}",
            )
        )
    return violations


def check_connectivity_preserved(before: Layout, after: Layout) -> list[Violation]:
    """Routes joined through connectors must stay joined."""
    def components(layout: Layout) -> set[frozenset]:
        return {frozenset(c) for c in nx.connected_components(connector_graph(layout))}

    if components(before) == components(after):
        return []
    return [
        Violation(
            "connectivity_preserved",
            Severity.ERROR,
            "route connectivity through connectors changed",
        )
    ]


def _identity(p: Point) -> tuple:
    node = p.node
    if node is not None:
        node = {k: v for k, v in node.items() if k not in ("x_grid", "y_grid")}
    return (p.properties, node)


def check_boundaries_preserved(before: Layout, after: Layout) -> list[Violation]:
    """Segment endpoints keep their properties (coordinates may be remapped)."""
    violations = []
    for ri, (rb, ra) in enumerate(zip(before.routes, after.routes)):
        if len(rb.segments) != len(ra.segments):
            violations.append(
                Violation(
                    "boundaries_preserved",
                    Severity.ERROR,
                    f"route {rb.name!r}: segment count changed",
                )
            )
            continue
        for si, (sb, sa) in enumerate(zip(rb.segments, ra.segments)):
            for end in (0, -1):
                pb, pa = sb.points[end], sa.points[end]
                if _identity(pb) != _identity(pa):
                    violations.append(
                        Violation(
                            "boundaries_preserved",
                            Severity.ERROR,
                            f"{_where(before, ri, si)}: endpoint {end} changed",
                        )
                    )
    return violations


def validate_transition(before: Layout, after: Layout) -> list[Violation]:
    return (
        check_connectors_preserved(before, after)
        + check_connectivity_preserved(before, after)
        + check_boundaries_preserved(before, after)
        + validate_layout(after)
    )
