"""sco2 command-line interface package.

Supports ``python -m sco2_cycle.cli`` as an alternative to the ``sco2`` entry point.
"""

from sco2_cycle.cli.main import cli, main

__all__ = ["cli", "main"]
