"""Tests for the metro-grid command-line interface."""

import json

import pytest
from click.testing import CliRunner
from conftest import FLAT_ROUTES, STAIRCASE_ROUTES, STRAIGHT_ROUTES, TABLE_ROUTES

from metro_grid import __version__
from metro_grid.cli import cli


def _write(tmp_path, data, name="layout.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _run(*args):
    return CliRunner().invoke(cli, [str(a) for a in args])


@pytest.fixture
def straight_file(tmp_path):
    return _write(tmp_path, STRAIGHT_ROUTES)


def test_version():
    result = _run("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_table_json(tmp_path):
    result = _run("table", _write(tmp_path, TABLE_ROUTES), "--json")
    assert result.exit_code == 0, result.output
    rows = json.loads(result.output)
    assert [(r["#"], r["type"], r["idx1"]) for r in rows] == [
        (1, "col", 1),
        (2, "col", 3),
        (3, "row", 1),
    ]
    assert all(r["mergedFlag"] == "unmerged" for r in rows)


def test_table_text(tmp_path):
    result = _run("table", _write(tmp_path, TABLE_ROUTES))
    assert result.exit_code == 0, result.output
    assert "row" in result.output


class TestMergeCommand:
    def test_merge_all(self, tmp_path, straight_file):
        out = tmp_path / "out.json"
        result = _run("merge", straight_file, "-o", out, "--gap", 4)
        assert result.exit_code == 0, result.output
        assert "4 -> 2 points" in result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data[0]["segments"][0]["points"] == [[1, 1], [7, 1]]

    def test_merge_once(self, tmp_path, straight_file):
        out = tmp_path / "out.json"
        result = _run("merge", straight_file, "-o", out, "--once", "--gap", 4)
        assert result.exit_code == 0, result.output
        assert "4 -> 3 points" in result.output

    def test_merge_axis(self, tmp_path, straight_file):
        out = tmp_path / "out.json"
        result = _run("merge", straight_file, "-o", out, "--axis", "vertical")
        assert result.exit_code == 0, result.output
        assert "4 -> 4 points" in result.output

    def test_merge_by_table(self, tmp_path):
        out = tmp_path / "out.json"
        result = _run("merge", _write(tmp_path, TABLE_ROUTES), "-o", out, "--by-table")
        assert result.exit_code == 0, result.output
        assert "5 -> 4 points" in result.output

    def test_once_and_by_table_conflict(self, straight_file):
        result = _run("merge", straight_file, "--once", "--by-table")
        assert result.exit_code == 2
        assert "cannot be combined" in result.output

    def test_negative_gap_rejected(self, straight_file):
        result = _run("merge", straight_file, "--gap", -1)
        assert result.exit_code != 0


def test_reduce(tmp_path):
    out = tmp_path / "out.json"
    result = _run("reduce", _write(tmp_path, STAIRCASE_ROUTES), "-o", out)
    assert result.exit_code == 0, result.output
    assert "grid 7 x 2" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [p[0] for p in data[0]["segments"][0]["points"]] == [1, 2, 3, 4, 5, 6]


def test_measure(straight_file):
    result = _run("measure", straight_file, "--width", 700, "--height", 100)
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["minCellDimensions"] == {"minWidth": 75, "minHeight": 75}
    assert data["currentDimensions"] == {"width": 525, "height": 75}
    assert data["hiddenCols"] == []


def test_measure_with_scaling_hides_lines(straight_file):
    result = _run("measure", straight_file, "--width", 100, "--scaling")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["hiddenCols"]


def test_measure_bad_focus(straight_file):
    result = _run("measure", straight_file, "--focus", "middle")
    assert result.exit_code == 2


class TestAutoCommand:
    def test_converges(self, tmp_path):
        out = tmp_path / "out.json"
        result = _run(
            "auto",
            _write(tmp_path, FLAT_ROUTES),
            "-o",
            out,
            "--threshold",
            30,
            "--width",
            100,
            "--height",
            100,
        )
        assert result.exit_code == 0, result.output
        assert "converged after 1 cycle(s)" in result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data[0]["segments"][0]["points"] == [[1, 1], [2, 1]]

    def test_reports_ceiling(self, tmp_path):
        out = tmp_path / "out.json"
        result = _run(
            "auto",
            _write(tmp_path, STAIRCASE_ROUTES),
            "-o",
            out,
            "--threshold",
            30,
            "--width",
            60,
            "--height",
            100,
        )
        assert result.exit_code == 0, result.output
        assert "stopped (gap_ceiling) after 4 cycle(s)" in result.output
        assert out.exists()


class TestValidateCommand:
    def test_clean(self, straight_file):
        result = _run("validate", straight_file)
        assert result.exit_code == 0
        assert result.output.strip() == "OK"

    def test_warnings_only(self, tmp_path):
        result = _run("validate", _write(tmp_path, TABLE_ROUTES))
        assert result.exit_code == 0
        assert "station_parity" in result.output
        assert "OK (warnings only)" in result.output


def test_malformed_file_is_an_error(tmp_path):
    result = _run("validate", _write(tmp_path, {"routes": 3}))
    assert result.exit_code == 1
    assert "Error" in result.output


def test_sizing_flags_are_documented():
    result = _run("measure", "--help")
    assert result.exit_code == 0
    assert "Constant factor applied" in result.output
    assert "Power applied to line weights" in result.output
