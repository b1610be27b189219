"""Tests for the programmatic layout checks."""

import networkx as nx
from conftest import CONNECTOR_ROUTES, STRAIGHT_ROUTES, make_layout

from metro_grid.layout.compaction import reduce_grid
from metro_grid.layout.merge import merge_all
from metro_grid.layout.validation import (
    Severity,
    check_boundaries_preserved,
    check_connectivity_preserved,
    check_connectors_preserved,
    check_interval_bounds,
    check_interval_order,
    check_station_parity,
    connector_graph,
    validate_transition,
)
from metro_grid.parser.model import WeightInterval

# Two routes meeting at connector 7.
JOINED_ROUTES = CONNECTOR_ROUTES + [
    {
        "name": "Orange",
        "color": "#ff7f00",
        "segments": [
            {
                "points": [[3, 1, {"connect_number": 7}], [3, 5]],
                "station_weights": [{"start_idx": 0, "end_idx": 1, "weight": 2}],
            }
        ],
    }
]


def _errors(violations):
    return [v for v in violations if v.severity is Severity.ERROR]


class TestSingleLayoutChecks:
    def test_clean_layout(self):
        layout = make_layout(STRAIGHT_ROUTES)
        assert check_interval_bounds(layout) == []
        assert check_interval_order(layout) == []
        assert check_station_parity(layout) == []

    def test_out_of_range_interval(self):
        layout = make_layout(STRAIGHT_ROUTES)
        layout.routes[0].segments[0].weights.append(WeightInterval(3, 9, 1))
        violations = check_interval_bounds(layout)
        assert len(violations) == 1
        assert violations[0].severity is Severity.ERROR

    def test_overlapping_intervals(self):
        layout = make_layout(STRAIGHT_ROUTES)
        layout.routes[0].segments[0].weights[1].start_idx = 0
        assert len(check_interval_order(layout)) == 1

    def test_station_on_even_line_is_a_warning(self):
        layout = make_layout(STRAIGHT_ROUTES)
        layout.routes[0].segments[0].points[1].x = 2
        violations = check_station_parity(layout)
        assert [v.severity for v in violations] == [Severity.WARNING]


class TestConnectorGraph:
    def test_routes_joined_through_connector(self):
        G = connector_graph(make_layout(JOINED_ROUTES))
        assert nx.number_connected_components(G) == 1
        assert G.has_edge(("route", 0), ("connector", "7"))
        assert G.has_edge(("route", 1), ("connector", "7"))

    def test_unjoined_routes(self):
        G = connector_graph(make_layout(STRAIGHT_ROUTES + CONNECTOR_ROUTES))
        assert nx.number_connected_components(G) == 2


class TestTransitionChecks:
    def test_merge_and_reduce_preserve_structure(self):
        before = make_layout(JOINED_ROUTES + STRAIGHT_ROUTES)
        merged = merge_all(before, 10).layout
        after = reduce_grid(merged).layout
        assert _errors(validate_transition(before, after)) == []

    def test_lost_connector_is_reported(self):
        before = make_layout(JOINED_ROUTES)
        after = before.clone()
        after.routes[1].segments[0].points[0].properties = None
        assert len(check_connectors_preserved(before, after)) == 1
        assert len(check_connectivity_preserved(before, after)) == 1

    def test_changed_endpoint_is_reported(self):
        before = make_layout(STRAIGHT_ROUTES)
        after = before.clone()
        after.routes[0].segments[0].points[-1].properties = {"station_name": "New"}
        assert len(check_boundaries_preserved(before, after)) == 1
