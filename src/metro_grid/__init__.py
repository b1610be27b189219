"""metro-grid: simplify schematic metro maps laid out on an integer grid."""

__version__ = "0.1.0"
