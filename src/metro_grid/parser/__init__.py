"""Route layout model and its JSON ingestion."""

from metro_grid.parser.layout_json import (
    dump_layout,
    ensure_layout,
    load_layout,
    read_layout,
    write_layout,
)
from metro_grid.parser.model import Layout

__all__ = [
    "Layout",
    "dump_layout",
    "ensure_layout",
    "load_layout",
    "read_layout",
    "write_layout",
]
