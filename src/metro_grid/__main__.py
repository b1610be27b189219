"""Allow ``python -m metro_grid``."""

from metro_grid.cli import cli

cli()
