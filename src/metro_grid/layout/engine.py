"""Auto merge/reduce: simplify a layout until its cells are big enough.

Each cycle merges stations on the axis whose smallest cell is under the
threshold (width before height), compacts the grid, and measures again.
An axis that is still too small retries at a larger weight gap. Cycles
and gaps are both capped, so the loop always stops; when it stops short
of the threshold the partially simplified layout is still returned.
"""

from __future__ import annotations

__all__ = [
    "AutoState",
    "ConvergenceOrchestrator",
    "ConvergenceReport",
    "ConvergenceStep",
    "auto_merge_and_reduce",
    "iter_auto_merge",
]

import logging
import warnings
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from metro_grid.errors import NonConvergenceWarning
from metro_grid.layout.compaction import reduce_grid
from metro_grid.layout.constants import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_MIN_CELL_PT,
    MAX_CYCLES,
    MAX_GAP,
)
from metro_grid.layout.merge import merge_all
from metro_grid.layout.sizing import CellDimensions, SizingOptions, measure_layout
from metro_grid.parser.layout_json import ensure_layout
from metro_grid.parser.model import Axis, Layout

logger = logging.getLogger(__name__)

Measure = Callable[[Layout], CellDimensions]

REASON_ITERATION_CEILING = "iteration_ceiling"
REASON_GAP_CEILING = "gap_ceiling"
REASON_MALFORMED_INPUT = "malformed_input"


class AutoState(Enum):
    IDLE = "idle"
    MERGING = "merging"
    REDUCING = "reducing"
    DONE = "done"


@dataclass(frozen=True)
class ConvergenceStep:
    """Snapshot taken after one merge/reduce cycle."""

    cycle: int
    axis: Axis
    gap: int
    merged: bool
    reduced: bool
    dimensions: CellDimensions
    layout: Layout


@dataclass(frozen=True)
class ConvergenceReport:
    layout: Layout
    modified: bool
    converged: bool
    cycles: int
    dimensions: CellDimensions
    reason: str | None = None
    steps: list[ConvergenceStep] = field(default_factory=list)


def _default_measure(
    canvas_width: float, canvas_height: float, options: SizingOptions
) -> Measure:
    def measure(layout: Layout) -> CellDimensions:
        return measure_layout(layout, canvas_width, canvas_height, options).min_cell

    return measure


class ConvergenceOrchestrator:
    """State machine driving merge -> reduce -> measure cycles.

    Iterate :meth:`steps` to run it one cycle at a time (the host can
    repaint between cycles), then read the outcome from :meth:`report`.
    """

    def __init__(
        self,
        layout: Layout,
        threshold: float = DEFAULT_MIN_CELL_PT,
        measure: Measure | None = None,
        max_cycles: int = MAX_CYCLES,
        max_gap: int = MAX_GAP,
    ):
        self.threshold = threshold
        self.measure = measure or _default_measure(
            DEFAULT_CANVAS_WIDTH, DEFAULT_CANVAS_HEIGHT, SizingOptions()
        )
        self.max_cycles = max_cycles
        self.max_gap = max_gap

        self.state = AutoState.IDLE
        self.gaps = {Axis.HORIZONTAL: 0, Axis.VERTICAL: 0}
        self.cycles = 0
        self.modified = False
        self.converged = False
        self.reason: str | None = None
        self.dimensions = CellDimensions()

        self._initial = layout
        self.layout = ensure_layout(layout, "auto_merge_and_reduce")
        if self.layout is None:
            self.state = AutoState.DONE
            self.reason = REASON_MALFORMED_INPUT

    def _short_axis(self, dims: CellDimensions) -> Axis | None:
        if dims.min_width < self.threshold:
            return Axis.HORIZONTAL
        if dims.min_height < self.threshold:
            return Axis.VERTICAL
        return None

    def _is_short(self, dims: CellDimensions, axis: Axis) -> bool:
        size = dims.min_width if axis is Axis.HORIZONTAL else dims.min_height
        return size < self.threshold

    def _abort(self, reason: str, axis: Axis) -> None:
        self.state = AutoState.DONE
        self.reason = reason
        message = (
            f"auto merge stopped at {reason.replace('_', ' ')} after "
            f"{self.cycles} cycle(s): {axis.value} minimum "
            f"{self.dimensions.min_width}x{self.dimensions.min_height}pt "
            f"is still below {self.threshold}pt"
        )
        logger.warning(message)
        warnings.warn(message, NonConvergenceWarning, stacklevel=3)

    def steps(self) -> Iterator[ConvergenceStep]:
        if self.state is AutoState.DONE:
            return
        if self.layout.point_count == 0:
            self.state = AutoState.DONE
            self.converged = True
            return

        self.dimensions = self.measure(self.layout)
        logger.info(
            "auto merge: min cell %dx%dpt, threshold %spt",
            self.dimensions.min_width,
            self.dimensions.min_height,
            self.threshold,
        )
        while True:
            axis = self._short_axis(self.dimensions)
            if axis is None:
                self.state = AutoState.DONE
                self.converged = True
                return
            if self.cycles >= self.max_cycles:
                self._abort(REASON_ITERATION_CEILING, axis)
                return
            gap = self.gaps[axis]
            if gap > self.max_gap:
                self._abort(REASON_GAP_CEILING, axis)
                return

            self.state = AutoState.MERGING
            merged = merge_all(self.layout, gap, axis)
            self.state = AutoState.REDUCING
            reduced = reduce_grid(merged.layout)
            self.layout = reduced.layout
            self.modified = self.modified or merged.modified or reduced.modified
            self.cycles += 1

            self.dimensions = self.measure(self.layout)
            if self._is_short(self.dimensions, axis):
                self.gaps[axis] += 1
            else:
                self.gaps[axis] = 0
            logger.debug(
                "cycle %d: %s gap %d -> min cell %dx%dpt",
                self.cycles,
                axis.value,
                gap,
                self.dimensions.min_width,
                self.dimensions.min_height,
            )
            self.state = AutoState.IDLE
            yield ConvergenceStep(
                cycle=self.cycles,
                axis=axis,
                gap=gap,
                merged=merged.modified,
                reduced=reduced.modified,
                dimensions=self.dimensions,
                layout=self.layout,
            )

    def report(self, steps: list[ConvergenceStep] | None = None) -> ConvergenceReport:
        return ConvergenceReport(
            layout=self.layout if self.layout is not None else self._initial,
            modified=self.modified,
            converged=self.converged,
            cycles=self.cycles,
            dimensions=self.dimensions,
            reason=self.reason,
            steps=steps or [],
        )


def iter_auto_merge(
    layout: Layout,
    threshold: float = DEFAULT_MIN_CELL_PT,
    measure: Measure | None = None,
    max_cycles: int = MAX_CYCLES,
    max_gap: int = MAX_GAP,
) -> Iterator[ConvergenceStep]:
    """Yield a snapshot after every merge/reduce cycle."""
    orchestrator = ConvergenceOrchestrator(
        layout, threshold, measure, max_cycles, max_gap
    )
    yield from orchestrator.steps()


def auto_merge_and_reduce(
    layout: Layout,
    threshold: float = DEFAULT_MIN_CELL_PT,
    measure: Measure | None = None,
    canvas_width: float = DEFAULT_CANVAS_WIDTH,
    canvas_height: float = DEFAULT_CANVAS_HEIGHT,
    options: SizingOptions = SizingOptions(),
    max_cycles: int = MAX_CYCLES,
    max_gap: int = MAX_GAP,
) -> ConvergenceReport:
    """Run merge/reduce cycles until the smallest cell meets ``threshold``.

    ``measure`` overrides the built-in canvas measurement; otherwise the
    layout is sized on a ``canvas_width`` x ``canvas_height`` pixel canvas
    with ``options``.
    """
    if measure is None:
        measure = _default_measure(canvas_width, canvas_height, options)
    orchestrator = ConvergenceOrchestrator(
        layout, threshold, measure, max_cycles, max_gap
    )
    steps = list(orchestrator.steps())
    return orchestrator.report(steps)
