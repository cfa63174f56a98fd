"""CLI commands for inspecting project files, the working fluid and topologies."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from sco2_cycle.core.config import load_project_json
from sco2_cycle.core.errors import CycleError
from sco2_cycle.core.fluids import Fluid, co2_pseudocritical_pressure
from sco2_cycle.cycle.topology import describe_topologies
from sco2_cycle.utils.units import pressure_from_si, temperature_from_si

_SKIPPED_KEYS = ("T", "P", "h", "s", "rho")


@click.group("info")
@click.pass_context
def info(ctx: click.Context) -> None:
    """Inspect project files, the working fluid and topologies."""
    pass


@info.command("project")
@click.argument("path", type=click.Path(exists=True))
@click.pass_context
def info_project(ctx: click.Context, path: str) -> None:
    """Display summary of a project file."""
    console: Console = ctx.obj.get("console", Console())
    project = load_project_json(path)

    tree = Tree(f"[bold]{project.meta.name}[/bold]")
    meta = tree.add("[cyan]Metadata[/cyan]")
    meta.add(f"Author: {project.meta.author or '—'}")
    meta.add(f"Version: {project.meta.version}")
    meta.add(f"Modified: {project.meta.modified or '—'}")
    meta.add(f"Topology: {project.topology}")
    meta.add(f"Fluid: {project.fluid}")

    if project.design_parameters:
        params = tree.add("[cyan]Design Parameters[/cyan]")
        for k, v in project.design_parameters.items():
            params.add(f"{k}: {v}")

    if project.design:
        design = tree.add("[cyan]Design[/cyan]")
        for k, v in project.design.items():
            if k in _SKIPPED_KEYS or isinstance(v, dict):
                continue  # node arrays and component records
            design.add(f"{k}: {v}")

    for section, entries in (("Off-Design", project.off_design), ("Optimisation", project.optimization)):
        if entries:
            branch = tree.add(f"[cyan]{section}[/cyan]")
            for key, summary in entries.items():
                node = branch.add(key)
                for k, v in summary.items():
                    if k in _SKIPPED_KEYS or isinstance(v, dict):
                        continue
                    node.add(f"{k}: {v}")

    console.print(tree)


@info.command("fluid")
@click.option("--name", default="CO2", show_default=True, help="CoolProp fluid name.")
@click.option("--backend", default="HEOS", show_default=True, help="CoolProp backend.")
@click.pass_context
def info_fluid(ctx: click.Context, name: str, backend: str) -> None:
    """Critical point and validity limits of the working fluid."""
    console: Console = ctx.obj.get("console", Console())
    try:
        fluid = Fluid(name, backend)
    except CycleError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(1)

    table = Table(title=f"Working Fluid: {fluid.name} ({fluid.backend})")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_column("Unit", style="dim")
    table.add_row("Critical Temperature", f"{temperature_from_si(fluid.T_critical, 'degC'):.2f}", "°C")
    table.add_row("Critical Pressure", f"{pressure_from_si(fluid.P_critical, 'MPa'):.4f}", "MPa")
    table.add_row("Maximum Temperature", f"{temperature_from_si(fluid.T_max, 'degC'):.1f}", "°C")
    table.add_row("Maximum Pressure", f"{pressure_from_si(fluid.P_max, 'MPa'):.1f}", "MPa")
    table.add_row("Molar Mass", f"{fluid.molar_mass * 1e3:.3f}", "g/mol")
    if fluid.name.upper() == "CO2":
        P_pc = co2_pseudocritical_pressure(fluid.T_critical + 1.0)
        table.add_row("Pseudocritical Pressure (T_c + 1 K)", f"{pressure_from_si(P_pc, 'MPa'):.4f}", "MPa")
    console.print(table)


@info.command("topologies")
@click.pass_context
def info_topologies(ctx: click.Context) -> None:
    """List available cycle topologies."""
    console: Console = ctx.obj.get("console", Console())
    table = Table(title="Cycle Topologies")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="green")
    for entry in describe_topologies():
        table.add_row(entry["name"], entry["description"])
    console.print(table)
