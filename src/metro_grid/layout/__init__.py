"""Grid simplification subpackage.

Public API:
- merge_once / merge_all / merge_horizontal / merge_vertical: station merging
- merge_by_table_row / merge_by_table: table-guided merging
- reduce_grid / reduce_spacing: grid compaction
- build_table / line_max_weights: per-line weight aggregation
- compute_line_sizes / measure_layout: proportional sizing
- auto_merge_and_reduce / iter_auto_merge: convergence loop
"""

from metro_grid.layout.compaction import reduce_grid, reduce_spacing
from metro_grid.layout.engine import (
    ConvergenceOrchestrator,
    ConvergenceReport,
    auto_merge_and_reduce,
    iter_auto_merge,
)
from metro_grid.layout.merge import (
    merge_all,
    merge_by_table,
    merge_by_table_row,
    merge_horizontal,
    merge_once,
    merge_vertical,
)
from metro_grid.layout.sizing import SizingOptions, compute_line_sizes, measure_layout
from metro_grid.layout.table import build_table, line_max_weights
from metro_grid.layout.topology import PointKind, classify, is_bend_point

__all__ = [
    "ConvergenceOrchestrator",
    "ConvergenceReport",
    "PointKind",
    "SizingOptions",
    "auto_merge_and_reduce",
    "build_table",
    "classify",
    "compute_line_sizes",
    "is_bend_point",
    "iter_auto_merge",
    "line_max_weights",
    "measure_layout",
    "merge_all",
    "merge_by_table",
    "merge_by_table_row",
    "merge_horizontal",
    "merge_once",
    "merge_vertical",
    "reduce_grid",
    "reduce_spacing",
]
