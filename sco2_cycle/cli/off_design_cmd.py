"""CLI commands for off-design performance of a stored design."""

from __future__ import annotations

from dataclasses import replace

import click
from rich.console import Console

from sco2_cycle.cli.design_cmd import cycle_for
from sco2_cycle.cli.display import print_off_design
from sco2_cycle.core.config import CycleProject, load_project_json, save_project_json
from sco2_cycle.core.errors import CycleError
from sco2_cycle.cycle.design import DesignSolved, off_design_parameters_at_design
from sco2_cycle.cycle.off_design import OffDesignSolved
from sco2_cycle.cycle.parameters import MaxOutputParameters, OffDesignParameters, TargetOffDesignParameters
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.utils.units import power_to_si, pressure_to_si, temperature_to_si


@click.group("off-design")
@click.pass_context
def off_design(ctx: click.Context) -> None:
    """Off-design analysis of a sized design."""
    pass


def _solve_stored_design(ctx: click.Context, console: Console, path: str) -> tuple[RecompCycle, DesignSolved, CycleProject]:
    """Re-solve the design stored in a project file."""
    try:
        project = load_project_json(path)
        params = project.get_design_parameters()
    except (CycleError, ValueError, TypeError) as e:
        console.print(f"[red]Error:[/red] Cannot read design from {path}: {e}")
        ctx.exit(1)

    cycle = cycle_for(ctx, console, project.topology, project.fluid)
    solved, code = cycle.design(params)
    if solved is None:
        console.print(f"[red]Error:[/red] Stored design could not be re-solved (code {code}).")
        ctx.exit(1)
    return cycle, solved, project


def _operating_point(
    base: OffDesignParameters,
    t_mc_in: float | None,
    t_t_in: float | None,
    recomp_frac: float | None,
    n_mc: float | None,
    n_t: float | None,
) -> OffDesignParameters:
    """Design operating point with the given overrides (engineering units)."""
    changes: dict[str, float] = {}
    if t_mc_in is not None:
        changes["T_mc_in"] = temperature_to_si(t_mc_in, "degC")
    if t_t_in is not None:
        changes["T_t_in"] = temperature_to_si(t_t_in, "degC")
    if recomp_frac is not None:
        changes["recomp_frac"] = recomp_frac
    if n_mc is not None:
        changes["N_mc"] = n_mc
    if n_t is not None:
        changes["N_t"] = n_t
    return replace(base, **changes)


def _save(console: Console, project: CycleProject, key: str, solved: OffDesignSolved, output: str | None) -> None:
    if output:
        project.off_design[key] = solved.summary()
        save_project_json(project, output)
        console.print(f"\n[dim]Saved to {output}[/dim]")


design_option = click.option(
    "--design", "design_path", type=click.Path(exists=True), required=True, help="Project file with a design."
)
output_option = click.option("--output", "-o", type=click.Path(), default=None, help="Output project file (JSON).")
t_mc_in_option = click.option("--t-mc-in", type=float, default=None, help="Compressor inlet temperature [°C] (design value).")
t_t_in_option = click.option("--t-t-in", type=float, default=None, help="Turbine inlet temperature [°C] (design value).")


@off_design.command("run")
@design_option
@click.option("--p-mc-in", type=float, default=None, help="Compressor inlet pressure [MPa] (design value).")
@t_mc_in_option
@t_t_in_option
@click.option("--recomp-frac", type=float, default=None, help="Recompression fraction (design value).")
@click.option("--n-mc", type=float, default=None, help="Compressor speed [rpm] (design value).")
@click.option("--n-t", type=float, default=None, help="Turbine speed [rpm] (design value; <= 0 links to compressor).")
@output_option
@click.pass_context
def off_design_run(
    ctx: click.Context,
    design_path: str,
    p_mc_in: float | None,
    t_mc_in: float | None,
    t_t_in: float | None,
    recomp_frac: float | None,
    n_mc: float | None,
    n_t: float | None,
    output: str | None,
) -> None:
    """Solve one operating point of the stored design."""
    console: Console = ctx.obj.get("console", Console())
    cycle, solved, project = _solve_stored_design(ctx, console, design_path)

    params = _operating_point(off_design_parameters_at_design(solved), t_mc_in, t_t_in, recomp_frac, n_mc, n_t)
    if p_mc_in is not None:
        params = replace(params, P_mc_in=pressure_to_si(p_mc_in, "MPa"))

    od, code = cycle.off_design(params)
    if od is None:
        console.print(f"[red]Error:[/red] Off-design solution failed with code {code}.")
        ctx.exit(1)

    console.print("\n[bold]sco2 — Off-Design Operating Point[/bold]\n")
    print_off_design(console, od)
    _save(console, project, "run", od, output)


@off_design.command("target")
@design_option
@click.option("--target", type=float, required=True, help="Target net power (or heat input with --heat) [MW].")
@click.option("--heat", is_flag=True, help="Target the heat input instead of the net power.")
@click.option("--p-low", type=float, default=1.0, show_default=True, help="Lowest compressor inlet pressure [MPa].")
@click.option("--p-high", type=float, default=12.0, show_default=True, help="Highest compressor inlet pressure [MPa].")
@click.option("--fine", is_flag=True, help="Scan 50 pressure intervals instead of 20.")
@t_mc_in_option
@t_t_in_option
@click.option("--recomp-frac", type=float, default=None, help="Recompression fraction (design value).")
@click.option("--n-mc", type=float, default=None, help="Compressor speed [rpm] (design value).")
@click.option("--n-t", type=float, default=None, help="Turbine speed [rpm] (design value).")
@output_option
@click.pass_context
def off_design_target(
    ctx: click.Context,
    design_path: str,
    target: float,
    heat: bool,
    p_low: float,
    p_high: float,
    fine: bool,
    t_mc_in: float | None,
    t_t_in: float | None,
    recomp_frac: float | None,
    n_mc: float | None,
    n_t: float | None,
    output: str | None,
) -> None:
    """Find the compressor inlet pressure that meets a power or heat target."""
    console: Console = ctx.obj.get("console", Console())
    cycle, solved, project = _solve_stored_design(ctx, console, design_path)

    point = _operating_point(off_design_parameters_at_design(solved), t_mc_in, t_t_in, recomp_frac, n_mc, n_t)
    params = TargetOffDesignParameters(
        T_mc_in=point.T_mc_in,
        T_t_in=point.T_t_in,
        recomp_frac=point.recomp_frac,
        N_mc=point.N_mc,
        N_t=point.N_t,
        N_sub_hxrs=point.N_sub_hxrs,
        tol=point.tol,
        target=power_to_si(target, "MW"),
        is_target_Q=heat,
        lowest_pressure=pressure_to_si(p_low, "MPa"),
        highest_pressure=pressure_to_si(p_high, "MPa"),
        use_default_res=not fine,
    )
    od, code = cycle.target_off_design(params)
    if od is None:
        console.print(f"[red]Error:[/red] Target search failed with code {code}.")
        ctx.exit(1)

    console.print(f"\n[bold]sco2 — Off-Design Target ({target:.3f} MW {'heat' if heat else 'power'})[/bold]\n")
    print_off_design(console, od)
    _save(console, project, "target", od, output)


@off_design.command("max-output")
@design_option
@click.option("--heat", is_flag=True, help="Report the heat input instead of the net power.")
@click.option("--p-low", type=float, default=1.0, show_default=True, help="Lowest compressor inlet pressure [MPa].")
@click.option("--p-high", type=float, default=12.0, show_default=True, help="Highest compressor inlet pressure [MPa].")
@t_mc_in_option
@t_t_in_option
@click.option("--recomp-frac", type=float, default=None, help="Recompression fraction guess (design value).")
@click.option("--fix-recomp-frac", is_flag=True, help="Hold the recompression fraction.")
@click.option("--n-mc", type=float, default=None, help="Compressor speed guess [rpm] (design value).")
@click.option("--fix-n-mc", is_flag=True, help="Hold the compressor speed.")
@click.option("--n-t", type=float, default=None, help="Turbine speed [rpm] (design value).")
@click.option("--free-n-t", is_flag=True, help="Let the optimiser vary the turbine speed.")
@click.option("--max-evals", type=int, default=500, show_default=True, help="Evaluation budget per search.")
@output_option
@click.pass_context
def off_design_max_output(
    ctx: click.Context,
    design_path: str,
    heat: bool,
    p_low: float,
    p_high: float,
    t_mc_in: float | None,
    t_t_in: float | None,
    recomp_frac: float | None,
    fix_recomp_frac: bool,
    n_mc: float | None,
    fix_n_mc: bool,
    n_t: float | None,
    free_n_t: bool,
    max_evals: int,
    output: str | None,
) -> None:
    """Largest achievable net power (or heat input) of the stored design."""
    console: Console = ctx.obj.get("console", Console())
    cycle, solved, project = _solve_stored_design(ctx, console, design_path)

    point = _operating_point(off_design_parameters_at_design(solved), t_mc_in, t_t_in, recomp_frac, n_mc, n_t)
    params = MaxOutputParameters(
        T_mc_in=point.T_mc_in,
        T_t_in=point.T_t_in,
        N_sub_hxrs=point.N_sub_hxrs,
        tol=point.tol,
        is_target_Q=heat,
        lowest_pressure=pressure_to_si(p_low, "MPa"),
        highest_pressure=pressure_to_si(p_high, "MPa"),
        recomp_frac_guess=point.recomp_frac,
        fixed_recomp_frac=fix_recomp_frac,
        N_mc_guess=point.N_mc,
        fixed_N_mc=fix_n_mc,
        N_t_guess=point.N_t,
        fixed_N_t=not free_n_t,
        max_evaluations=max_evals,
    )
    result, code = cycle.max_output_off_design(params)
    if result is None:
        console.print(f"[red]Error:[/red] Maximum-output search failed with code {code}.")
        ctx.exit(1)

    value, od = result
    console.print(f"\n[bold]sco2 — Maximum {'Heat Input' if heat else 'Net Power'}: {value / 1e6:.3f} MW[/bold]\n")
    print_off_design(console, od)
    _save(console, project, "max_output", od, output)
