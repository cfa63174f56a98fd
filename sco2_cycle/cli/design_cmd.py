"""CLI command for design-point solution and sizing."""

from __future__ import annotations

from typing import Any

import click
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape

from sco2_cycle.cli.display import print_design
from sco2_cycle.cli.options import cycle_inputs, cycle_options, ua_to_si
from sco2_cycle.core.config import CycleProject, ProjectMeta, load_design_project, save_project_json
from sco2_cycle.core.errors import CycleError
from sco2_cycle.core.fluids import Fluid
from sco2_cycle.cycle.design import DesignSolved
from sco2_cycle.cycle.parameters import DesignParameters
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.cycle.topology import TOPOLOGIES
from sco2_cycle.utils.units import pressure_to_si

topology_option = click.option(
    "--topology",
    type=click.Choice(list(TOPOLOGIES)),
    default="standard",
    show_default=True,
    help="Cycle topology.",
)


def project_from_design(solved: DesignSolved, name: str, fluid: str = "CO2") -> CycleProject:
    """Project holding a sized design and the parameters that reproduce it."""
    project = CycleProject(meta=ProjectMeta(name=name), topology=solved.point.topology, fluid=fluid)
    project.set_design_parameters(solved.parameters)
    project.design = solved.summary()
    return project


def cycle_for(ctx: click.Context, console: Console, topology: str, fluid: str = "CO2") -> RecompCycle:
    """Solver for a stored topology and working fluid; exits on unknown names."""
    try:
        return RecompCycle(Fluid(fluid), topology=topology)
    except CycleError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)


@click.command("design")
@cycle_options
@click.option("--p-mc-in", type=float, default=7.65, show_default=True, help="Compressor inlet pressure [MPa].")
@click.option("--p-mc-out", type=float, default=20.0, show_default=True, help="Compressor outlet pressure [MPa].")
@click.option("--ua-lt", type=float, default=500.0, show_default=True, help="LT recuperator conductance [kW/K].")
@click.option("--ua-ht", type=float, default=500.0, show_default=True, help="HT recuperator conductance [kW/K].")
@click.option("--recomp-frac", type=float, default=0.3, show_default=True, help="Recompression fraction.")
@topology_option
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Design parameters from a JSON file (project or flat); overrides the options. "
    "A project file also sets the topology unless --topology is given.",
)
@click.option("--name", default="Design", show_default=True, help="Project name.")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output project file (JSON).")
@click.pass_context
def design(
    ctx: click.Context,
    p_mc_in: float,
    p_mc_out: float,
    ua_lt: float,
    ua_ht: float,
    recomp_frac: float,
    topology: str,
    config_path: str | None,
    name: str,
    output: str | None,
    **inputs: Any,
) -> None:
    """Solve and size a recompression cycle design point."""
    console: Console = ctx.obj.get("console", Console())

    fluid = "CO2"
    if config_path:
        try:
            project = load_design_project(config_path)
            params = project.get_design_parameters()
        except (CycleError, ValueError, TypeError) as e:
            console.print(f"[red]Error:[/red] Cannot read design parameters from {config_path}: {e}")
            ctx.exit(1)
        if ctx.get_parameter_source("topology") is ParameterSource.DEFAULT:
            topology = project.topology
        fluid = project.fluid
    else:
        params = DesignParameters(
            **cycle_inputs(**inputs),
            P_mc_in=pressure_to_si(p_mc_in, "MPa"),
            P_mc_out=pressure_to_si(p_mc_out, "MPa"),
            UA_LT=ua_to_si(ua_lt),
            UA_HT=ua_to_si(ua_ht),
            recomp_frac=recomp_frac,
        )

    solved, code = cycle_for(ctx, console, topology, fluid).design(params)
    if solved is None:
        console.print(f"[red]Error:[/red] Design failed with code {code}.")
        ctx.exit(1)

    console.print(f"\n[bold]sco2 — Design Point ({topology})[/bold]\n")
    print_design(console, solved)

    if output:
        save_project_json(project_from_design(solved, name, fluid), output)
        console.print(f"\n[dim]Saved to {output}[/dim]")
