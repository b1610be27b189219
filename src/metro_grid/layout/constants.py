"""Named tunables for merging, compaction, sizing and auto-convergence."""

# --- Topology ---

BEND_EPSILON = 0.001  # |cross product| above which a point is a bend

# --- Merging ---

GAP_EPSILON = 1e-9  # slack when comparing weight gaps to the tolerance
MAX_MERGE_PASSES = 10_000  # fixed-point cap for merge_all / merge_by_table

# --- Sizing ---

PX_TO_PT = 0.75
MIN_LINE_PX = 40.0  # lines narrower than this are hidden one at a time
WEIGHT_EPSILON = 1e-3  # floor applied to weights before the power law
DEFAULT_MULTIPLIER = 5.0
DEFAULT_EXPONENT = 2.0
# Multiplier by grid distance from the focal line; beyond the table -> 1.
FOCAL_MULTIPLIERS = (8.0, 6.0, 4.0, 3.0, 2.0)
FOCAL_FAR_MULTIPLIER = 1.0

DEFAULT_CANVAS_WIDTH = 1200.0
DEFAULT_CANVAS_HEIGHT = 800.0

# --- Auto merge/reduce ---

DEFAULT_MIN_CELL_PT = 5.0
MAX_CYCLES = 20
MAX_GAP = 3
