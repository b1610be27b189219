"""Shared test fixtures and helpers for metro-grid test suite."""

from __future__ import annotations

import copy

import pytest

from metro_grid.parser.layout_json import load_layout
from metro_grid.parser.model import Layout

# --- Route data constants ---


def _intervals(*spans: tuple[int, int, float]) -> list[dict]:
    return [{"start_idx": s, "end_idx": e, "weight": w} for s, e, w in spans]


# Horizontal run with two equal-weight intervals and a heavier tail.
STRAIGHT_ROUTES = [
    {
        "name": "Red",
        "color": "#e41a1c",
        "segments": [
            {
                "points": [[1, 1], [3, 1], [5, 1], [7, 1]],
                "station_weights": _intervals((0, 1, 5), (1, 2, 5), (2, 3, 9)),
            }
        ],
    }
]

# Equal-weight intervals meeting on a right-angle bend at (3, 1).
BEND_ROUTES = [
    {
        "name": "Blue",
        "color": "#377eb8",
        "segments": [
            {
                "points": [[1, 1], [3, 1], [3, 3]],
                "station_weights": _intervals((0, 1, 5), (1, 2, 5)),
            }
        ],
    }
]

# Equal-weight intervals meeting on a connector.
CONNECTOR_ROUTES = [
    {
        "name": "Green",
        "color": "#4daf4a",
        "segments": [
            {
                "points": [[1, 1], [3, 1, {"connect_number": 7}], [5, 1]],
                "station_weights": _intervals((0, 1, 5), (1, 2, 5)),
            }
        ],
    }
]

# Two routes: a horizontal one on the even row 2, and a vertical one on
# column 1 giving the odd rows 1 and 3 something to pair with.
TABLE_ROUTES = [
    {
        "name": "A",
        "color": "#984ea3",
        "segments": [
            {
                "points": [[1, 2], [3, 2], [5, 2]],
                "station_weights": _intervals((0, 1, 3), (1, 2, 3)),
            }
        ],
    },
    {
        "name": "B",
        "color": "#ff7f00",
        "segments": [
            {
                "points": [[1, 1], [1, 3]],
                "station_weights": _intervals((0, 1, 3)),
            }
        ],
    },
]

# Weights stepping by 4, so no merge is possible at any gap up to 3.
STAIRCASE_ROUTES = [
    {
        "name": "Stairs",
        "color": "#a65628",
        "segments": [
            {
                "points": [[x, 1] for x in (1, 3, 5, 7, 9, 11)],
                "station_weights": _intervals(
                    (0, 1, 1), (1, 2, 5), (2, 3, 9), (3, 4, 13), (4, 5, 17)
                ),
            }
        ],
    }
]

# A long flat run that collapses to two points at gap 0.
FLAT_ROUTES = [
    {
        "name": "Flat",
        "color": "#f781bf",
        "segments": [
            {
                "points": [[x, 1] for x in (1, 3, 5, 7, 9)],
                "station_weights": _intervals(
                    (0, 1, 5), (1, 2, 5), (2, 3, 5), (3, 4, 5)
                ),
            }
        ],
    }
]


# --- Helpers ---


def make_layout(data) -> Layout:
    """Load a private copy of one of the data constants above."""
    return load_layout(copy.deepcopy(data))


def coords(layout: Layout, route: int = 0, segment: int = 0) -> list[tuple[int, int]]:
    return [p.coord for p in layout.routes[route].segments[segment].points]


def spans(layout: Layout, route: int = 0, segment: int = 0) -> list[tuple]:
    seg = layout.routes[route].segments[segment]
    return [(w.start_idx, w.end_idx, w.weight) for w in seg.weights]


# --- Fixtures ---


@pytest.fixture
def straight_layout():
    return make_layout(STRAIGHT_ROUTES)


@pytest.fixture
def bend_layout():
    return make_layout(BEND_ROUTES)


@pytest.fixture
def connector_layout():
    return make_layout(CONNECTOR_ROUTES)


@pytest.fixture
def table_layout():
    return make_layout(TABLE_ROUTES)


@pytest.fixture
def staircase_layout():
    return make_layout(STAIRCASE_ROUTES)


@pytest.fixture
def flat_layout():
    return make_layout(FLAT_ROUTES)
