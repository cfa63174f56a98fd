"""sco2 command-line interface.

Entry point for the ``sco2`` CLI tool.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console

from sco2_cycle import __app_name__, __version__
from sco2_cycle.utils.logging_utils import configure_logging

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name=__app_name__)
@click.option("--verbose", "-v", is_flag=True, help="Show solver debug output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """sco2: supercritical CO2 recompression Brayton cycle simulator.

    Design-point sizing, off-design performance and cycle optimisation.
    """
    ctx.ensure_object(dict)
    ctx.obj["console"] = console
    configure_logging(logging.DEBUG if verbose else logging.INFO, force=True)


# Import and register sub-command groups
from sco2_cycle.cli.design_cmd import design  # noqa: E402
from sco2_cycle.cli.off_design_cmd import off_design  # noqa: E402
from sco2_cycle.cli.optimize_cmd import optimize  # noqa: E402
from sco2_cycle.cli.info_cmd import info  # noqa: E402

cli.add_command(design)
cli.add_command(off_design)
cli.add_command(optimize)
cli.add_command(info)


def main() -> None:
    """Convenience wrapper for entry-point scripts."""
    cli()
