"""Command-line interface for metro-grid."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from metro_grid import __version__
from metro_grid.errors import MalformedLayoutError
from metro_grid.layout.compaction import reduce_grid, reduce_spacing
from metro_grid.layout.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_EXPONENT,
    DEFAULT_MIN_CELL_PT,
    DEFAULT_MULTIPLIER,
    MAX_CYCLES,
    MAX_GAP,
)
from metro_grid.layout.engine import auto_merge_and_reduce
from metro_grid.layout.merge import merge_all, merge_by_table, merge_once
from metro_grid.layout.sizing import SizingOptions, measure_layout
from metro_grid.layout.table import build_table
from metro_grid.layout.validation import Severity, validate_layout
from metro_grid.parser.layout_json import dump_layout, read_layout, write_layout
from metro_grid.parser.model import Axis, Layout

AXIS_CHOICE = click.Choice([a.value for a in Axis])


def _load(path: Path) -> Layout:
    try:
        return read_layout(path)
    except MalformedLayoutError as e:
        raise click.ClickException(str(e)) from e


def _emit(layout: Layout, output: Path | None) -> None:
    if output is None:
        click.echo(json.dumps(dump_layout(layout), indent=2, ensure_ascii=False))
    else:
        write_layout(layout, output)
        click.echo(f"Wrote {output}", err=True)


def _parse_focus(value: str | None) -> tuple[int, int] | None:
    if not value:
        return None
    try:
        x, y = (int(v) for v in value.split(","))
    except ValueError as e:
        raise click.BadParameter("expected X,Y", param_hint="--focus") from e
    return (x, y)


def sizing_options(func):
    """Shared sizing flags for commands that measure the grid."""
    options = [
        click.option(
            "--width",
            type=float,
            default=DEFAULT_CANVAS_WIDTH,
            show_default=True,
            help="Canvas width in pixels.",
        ),
        click.option(
            "--height",
            type=float,
            default=DEFAULT_CANVAS_HEIGHT,
            show_default=True,
            help="Canvas height in pixels.",
        ),
        click.option(
            "--scaling/--no-scaling",
            default=False,
            show_default=True,
            help="Size lines by their maximum weight.",
        ),
        click.option(
            "--multiplier",
            type=float,
            default=DEFAULT_MULTIPLIER,
            show_default=True,
            help="Constant factor applied to each line's scaled weight.",
        ),
        click.option(
            "--exponent",
            type=float,
            default=DEFAULT_EXPONENT,
            show_default=True,
            help="Power applied to line weights; above 1 widens busy lines.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", count=True, help="-v for info, -vv for debug.")
def cli(verbose: int) -> None:
    """Simplify schematic metro maps laid out on an integer grid."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print rows as JSON.")
def table(input_file: Path, as_json: bool) -> None:
    """Print the odd-line weight table, lightest pairs first."""
    rows = build_table(_load(input_file))
    if as_json:
        click.echo(json.dumps([r.to_dict() for r in rows], indent=2))
        return
    click.echo(f"{'#':>4}  {'type':<4}  {'idx1':>5}  {'idx2':>5}  {'w1':>8}  {'w2':>8}")
    for r in rows:
        click.echo(
            f"{r.number:>4}  {r.type.value:<4}  {r.idx1:>5}  {r.idx2:>5}  "
            f"{r.idx1_max_weight:>8g}  {r.idx2_max_weight:>8g}"
        )


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
@click.option(
    "--gap",
    type=click.FloatRange(min=0),
    default=0,
    show_default=True,
    help="Maximum weight difference between merged intervals.",
)
@click.option(
    "--axis",
    type=AXIS_CHOICE,
    default=None,
    help="Only merge stations on runs of this orientation.",
)
@click.option("--once", is_flag=True, help="Perform a single merge.")
@click.option("--by-table", is_flag=True, help="Merge guided by the weight table.")
def merge(
    input_file: Path,
    output: Path | None,
    gap: float,
    axis: str | None,
    once: bool,
    by_table: bool,
) -> None:
    """Merge stations whose neighbouring weights differ by at most GAP."""
    if once and by_table:
        raise click.UsageError("--once and --by-table cannot be combined.")
    layout = _load(input_file)
    axis_value = Axis(axis) if axis else None
    if once:
        result = merge_once(layout, gap, axis_value)
    elif by_table:
        result = merge_by_table(layout, gap, axis_value)
    else:
        result = merge_all(layout, gap, axis_value)
    click.echo(f"{layout.point_count} -> {result.layout.point_count} points", err=True)
    _emit(result.layout, output)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
@click.option(
    "--spacing-only",
    is_flag=True,
    help="Only remove empty spacing bands, keeping odd/even parity and pins.",
)
def reduce(input_file: Path, output: Path | None, spacing_only: bool) -> None:
    """Remove empty grid columns and rows."""
    layout = _load(input_file)
    result = reduce_spacing(layout) if spacing_only else reduce_grid(layout)
    meta = result.layout.meta
    click.echo(f"grid {meta.grid_width} x {meta.grid_height}", err=True)
    _emit(result.layout, output)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@sizing_options
@click.option("--focus", default=None, help="Focal grid coordinate as X,Y.")
def measure(
    input_file: Path,
    width: float,
    height: float,
    scaling: bool,
    multiplier: float,
    exponent: float,
    focus: str | None,
) -> None:
    """Print minimum cell and overall dimensions in points."""
    options = SizingOptions(enabled=scaling, multiplier=multiplier, exponent=exponent)
    m = measure_layout(
        _load(input_file), width, height, options, focus=_parse_focus(focus)
    )
    click.echo(
        json.dumps(
            {
                "minCellDimensions": m.min_cell.to_dict(),
                "currentDimensions": m.current.to_dict(),
                "hiddenCols": sorted(m.cols[i] for i in m.col_sizes.hidden),
                "hiddenRows": sorted(m.rows[i] for i in m.row_sizes.hidden),
            },
            indent=2,
        )
    )


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
@click.option(
    "--threshold",
    type=float,
    default=DEFAULT_MIN_CELL_PT,
    show_default=True,
    help="Minimum cell size in points.",
)
@sizing_options
@click.option(
    "--max-cycles", type=click.IntRange(min=1), default=MAX_CYCLES, show_default=True
)
@click.option(
    "--max-gap", type=click.IntRange(min=0), default=MAX_GAP, show_default=True
)
def auto(
    input_file: Path,
    output: Path | None,
    threshold: float,
    width: float,
    height: float,
    scaling: bool,
    multiplier: float,
    exponent: float,
    max_cycles: int,
    max_gap: int,
) -> None:
    """Merge and reduce until every cell is at least THRESHOLD points."""
    options = SizingOptions(enabled=scaling, multiplier=multiplier, exponent=exponent)
    report = auto_merge_and_reduce(
        _load(input_file),
        threshold,
        canvas_width=width,
        canvas_height=height,
        options=options,
        max_cycles=max_cycles,
        max_gap=max_gap,
    )
    dims = report.dimensions
    status = "converged" if report.converged else f"stopped ({report.reason})"
    click.echo(
        f"{status} after {report.cycles} cycle(s): "
        f"min cell {dims.min_width}x{dims.min_height}pt",
        err=True,
    )
    _emit(report.layout, output)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
def validate(input_file: Path) -> None:
    """Check weight intervals and station placement."""
    violations = validate_layout(_load(input_file))
    for v in violations:
        click.echo(f"[{v.severity.value}] {v.check}: {v.message}")
    if any(v.severity is Severity.ERROR for v in violations):
        sys.exit(1)
    click.echo("OK" if not violations else "OK (warnings only)")
