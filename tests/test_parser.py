"""Tests for loading and dumping route layouts."""

import json

import pytest
from conftest import STRAIGHT_ROUTES, make_layout

from metro_grid.errors import MalformedInputWarning, MalformedLayoutError
from metro_grid.parser.layout_json import (
    dump_layout,
    ensure_layout,
    load_layout,
    read_layout,
    write_layout,
)
from metro_grid.parser.model import DataTableRow, LineType, MergeStatus, Point


def _segment(**kwargs):
    seg = {"points": [[1, 1], [3, 1], [5, 1]]}
    seg.update(kwargs)
    return [{"name": "R", "color": "#000", "segments": [seg]}]


# --- Accepted shapes ---


def test_bare_route_list():
    layout = make_layout(STRAIGHT_ROUTES)
    assert layout.bare
    assert len(layout.routes) == 1
    assert layout.routes[0].name == "Red"
    assert layout.point_count == 4


def test_bare_list_defaults_grid_extent():
    layout = make_layout(STRAIGHT_ROUTES)
    assert layout.meta.grid_width == 8
    assert layout.meta.grid_height == 2


def test_document_with_meta():
    layout = load_layout(
        {
            "routes": _segment(),
            "meta": {
                "gridWidth": 12,
                "gridHeight": 4,
                "fixedCols": [2, 4],
                "fixedRows": [],
                "title": "demo",
            },
        }
    )
    assert not layout.bare
    assert layout.meta.grid_width == 12
    assert layout.meta.grid_height == 4
    assert layout.meta.fixed_cols == frozenset({2, 4})
    assert layout.meta.extra == {"title": "demo"}


def test_point_shapes():
    layout = load_layout(
        _segment(points=[[1, 1], [3, 1, {"station_name": "X"}], {"x": 5, "y": 1}])
    )
    points = layout.routes[0].segments[0].points
    assert [p.coord for p in points] == [(1, 1), (3, 1), (5, 1)]
    assert points[1].properties == {"station_name": "X"}
    assert points[2].properties is None


def test_fractional_coordinates_are_rounded():
    layout = load_layout(_segment(points=[[1.2, 0.8], [2.9, 1.1]]))
    assert [p.coord for p in layout.routes[0].segments[0].points] == [(1, 1), (3, 1)]


def test_nodes_attach_to_points():
    layout = load_layout(
        _segment(nodes=[{}, {"station_name": "Mid", "node_type": "station"}, {}])
    )
    seg = layout.routes[0].segments[0]
    assert seg.has_nodes
    assert seg.points[1].lookup("station_name") == "Mid"


def test_lookup_searches_nested_tags():
    p = Point(1, 1, properties={"tags": {"connect_number": 3}})
    assert p.lookup("connect_number") == 3
    assert p.lookup("station_name") is None


# --- Malformed input ---


@pytest.mark.parametrize(
    "data",
    [
        42,
        {"no_routes": []},
        [{"segments": [{"points": [[1, 1]]}]}],
        [{"segments": [{"points": [[1, "a"], [3, 1]]}]}],
        _segment(station_weights=[{"start_idx": 0, "end_idx": 5, "weight": 1}]),
        _segment(station_weights=[{"start_idx": 1, "end_idx": 1, "weight": 1}]),
        _segment(station_weights=[{"start_idx": 0, "end_idx": 1, "weight": "x"}]),
        _segment(
            station_weights=[
                {"start_idx": 0, "end_idx": 2, "weight": 1},
                {"start_idx": 1, "end_idx": 2, "weight": 1},
            ]
        ),
        _segment(edge_weights=[1, "heavy"]),
    ],
)
def test_malformed_layouts_raise(data):
    with pytest.raises(MalformedLayoutError):
        load_layout(data)


def test_ensure_layout_warns_and_returns_none():
    with pytest.warns(MalformedInputWarning, match="merge_once"):
        assert ensure_layout("nope", "merge_once") is None


def test_read_layout_rejects_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(MalformedLayoutError, match="invalid JSON"):
        read_layout(path)


# --- Dumping ---


def test_dump_keeps_bare_shape():
    out = dump_layout(make_layout(STRAIGHT_ROUTES))
    assert isinstance(out, list)
    seg = out[0]["segments"][0]
    assert seg["points"] == [[1, 1], [3, 1], [5, 1], [7, 1]]
    assert seg["station_weights"][2] == {"start_idx": 2, "end_idx": 3, "weight": 9}
    assert "nodes" not in seg
    assert "edge_weights" not in seg


def test_dump_document_shape():
    layout = load_layout(
        {"routes": _segment(), "meta": {"gridWidth": 7, "fixedRows": [4, 2]}}
    )
    out = dump_layout(layout)
    assert out["meta"]["gridWidth"] == 7
    assert out["meta"]["fixedRows"] == [2, 4]


def test_dump_preserves_unknown_keys():
    data = _segment(start_coord=[1, 1])
    data[0]["dashed"] = True
    out = dump_layout(load_layout(data))
    assert out[0]["dashed"] is True
    assert out[0]["segments"][0]["start_coord"] == [1, 1]


def test_dump_keeps_object_points():
    raw = [{"x": 1, "y": 1, "station_name": "A"}, [3, 1], {"x": 5, "y": 1}]
    layout = load_layout(_segment(points=raw))
    assert layout.routes[0].segments[0].points[0].keyed
    assert dump_layout(layout.clone())[0]["segments"][0]["points"] == raw


def test_write_then_read(tmp_path):
    path = tmp_path / "layout.json"
    write_layout(make_layout(STRAIGHT_ROUTES), path)
    assert json.loads(path.read_text(encoding="utf-8"))[0]["name"] == "Red"
    assert read_layout(path).point_count == 4


def test_table_row_serialisation():
    row = DataTableRow(
        number=3,
        type=LineType.ROW,
        idx1=1,
        idx2=3,
        idx1_max_weight=2.0,
        idx2_max_weight=5.0,
        status=MergeStatus.FAILED,
    )
    assert row.between == 2
    assert row.combined_weight == 7.0
    assert row.weight_gap == 3.0
    assert row.to_dict() == {
        "#": 3,
        "type": "row",
        "idx1": 1,
        "idx2": 3,
        "idx1_max_weight": 2.0,
        "idx2_max_weight": 5.0,
        "mergedFlag": "failed",
    }
