"""CLI commands for design optimisation."""

from __future__ import annotations

from typing import Any

import click
from rich.console import Console
from rich.table import Table

from sco2_cycle.cli.design_cmd import project_from_design, topology_option
from sco2_cycle.cli.display import print_design, print_validation
from sco2_cycle.cli.options import cycle_inputs, cycle_options, ua_to_si
from sco2_cycle.core.config import save_project_json
from sco2_cycle.cycle.design import DesignSolved
from sco2_cycle.cycle.parameters import (
    AutoOptimalDesignParameters,
    OptimalDesignParameters,
    TargetEfficiencyParameters,
)
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.utils.units import pressure_to_si


@click.group("optimize")
@click.pass_context
def optimize(ctx: click.Context) -> None:
    """Design optimisation commands."""
    pass


def optimizer_options(func: Any) -> Any:
    options = [
        click.option("--opt-tol", type=float, default=1.0e-3, show_default=True, help="Optimiser tolerance (in initial steps)."),
        click.option("--max-evals", type=int, default=500, show_default=True, help="Evaluation budget per search."),
        topology_option,
        click.option("--name", default="Optimised design", show_default=True, help="Project name."),
        click.option("--output", "-o", type=click.Path(), default=None, help="Output project file (JSON)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _optimum_table(solved: DesignSolved) -> Table:
    p = solved.parameters
    UA_total = p.UA_LT + p.UA_HT
    table = Table(title="Optimal Design Variables")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_column("Unit", style="dim")
    table.add_row("Compressor Outlet Pressure", f"{p.P_mc_out / 1e6:.3f}", "MPa")
    table.add_row("Pressure Ratio", f"{p.P_mc_out / p.P_mc_in:.3f}", "—")
    table.add_row("Recompression Fraction", f"{p.recomp_frac:.4f}", "—")
    table.add_row("UA Total", f"{UA_total / 1e3:.1f}", "kW/K")
    table.add_row("LT Share of UA", f"{p.UA_LT / UA_total:.4f}" if UA_total > 0.0 else "—", "—")
    table.add_row("[bold]Thermal Efficiency[/bold]", f"[bold]{solved.eta_thermal:.5f}[/bold]", "—")
    return table


def _report(
    ctx: click.Context,
    solved: DesignSolved | None,
    code: int,
    title: str,
    key: str,
    name: str,
    output: str | None,
    settings: dict[str, Any],
) -> None:
    console: Console = ctx.obj.get("console", Console())
    if solved is None:
        console.print(f"[red]Optimisation failed — no feasible design found (code {code})[/red]")
        ctx.exit(1)

    console.print(f"\n[bold]sco2 — {title}[/bold]\n")
    console.print(_optimum_table(solved))
    print_design(console, solved)

    if output:
        project = project_from_design(solved, name)
        project.optimization[key] = {**settings, "eta_thermal": solved.eta_thermal}
        save_project_json(project, output)
        console.print(f"\n[dim]Saved to {output}[/dim]")


@optimize.command("design")
@cycle_options
@click.option("--ua-total", type=float, default=1000.0, show_default=True, help="Total recuperator conductance [kW/K].")
@click.option("--p-mc-out", type=float, default=20.0, show_default=True, help="Compressor outlet pressure guess [MPa].")
@click.option("--fix-p-mc-out", is_flag=True, help="Hold the compressor outlet pressure.")
@click.option("--pr", type=float, default=2.6, show_default=True, help="Compressor pressure ratio guess.")
@click.option("--fix-pr", is_flag=True, help="Hold the pressure ratio.")
@click.option("--recomp-frac", type=float, default=0.3, show_default=True, help="Recompression fraction guess.")
@click.option("--fix-recomp-frac", is_flag=True, help="Hold the recompression fraction.")
@click.option("--lt-frac", type=float, default=0.5, show_default=True, help="LT share of the conductance guess.")
@click.option("--fix-lt-frac", is_flag=True, help="Hold the conductance split.")
@optimizer_options
@click.pass_context
def optimize_design_cmd(
    ctx: click.Context,
    ua_total: float,
    p_mc_out: float,
    fix_p_mc_out: bool,
    pr: float,
    fix_pr: bool,
    recomp_frac: float,
    fix_recomp_frac: bool,
    lt_frac: float,
    fix_lt_frac: bool,
    opt_tol: float,
    max_evals: int,
    topology: str,
    name: str,
    output: str | None,
    **inputs: Any,
) -> None:
    """Locally optimise pressures, recompression fraction and conductance split."""
    params = OptimalDesignParameters(
        **cycle_inputs(**inputs),
        UA_rec_total=ua_to_si(ua_total),
        opt_tol=opt_tol,
        max_evaluations=max_evals,
        P_mc_out_guess=pressure_to_si(p_mc_out, "MPa"),
        fixed_P_mc_out=fix_p_mc_out,
        PR_mc_guess=pr,
        fixed_PR_mc=fix_pr,
        recomp_frac_guess=recomp_frac,
        fixed_recomp_frac=fix_recomp_frac,
        LT_frac_guess=lt_frac,
        fixed_LT_frac=fix_lt_frac,
    )
    solved, code = RecompCycle(topology=topology).optimal_design(params)
    _report(ctx, solved, code, "Design Optimisation", "design", name, output, {"UA_rec_total": params.UA_rec_total})


@optimize.command("auto")
@cycle_options
@click.option("--ua-total", type=float, default=1000.0, show_default=True, help="Total recuperator conductance [kW/K].")
@optimizer_options
@click.pass_context
def optimize_auto_cmd(
    ctx: click.Context,
    ua_total: float,
    opt_tol: float,
    max_evals: int,
    topology: str,
    name: str,
    output: str | None,
    **inputs: Any,
) -> None:
    """Search the high pressure and pick the better of recompression and simple cycles."""
    params = AutoOptimalDesignParameters(
        **cycle_inputs(**inputs),
        UA_rec_total=ua_to_si(ua_total),
        opt_tol=opt_tol,
        max_evaluations=max_evals,
    )
    solved, code = RecompCycle(topology=topology).auto_optimal_design(params)
    _report(ctx, solved, code, "Auto-Optimised Design", "auto", name, output, {"UA_rec_total": params.UA_rec_total})


@optimize.command("target-eta")
@cycle_options
@click.option("--eta", type=float, required=True, help="Target thermal efficiency.")
@optimizer_options
@click.pass_context
def optimize_target_eta_cmd(
    ctx: click.Context,
    eta: float,
    opt_tol: float,
    max_evals: int,
    topology: str,
    name: str,
    output: str | None,
    **inputs: Any,
) -> None:
    """Size the recuperator conductance for a target thermal efficiency."""
    console: Console = ctx.obj.get("console", Console())
    params = TargetEfficiencyParameters(
        **cycle_inputs(**inputs),
        opt_tol=opt_tol,
        max_evaluations=max_evals,
        eta_thermal=eta,
    )
    solved, code, validation = RecompCycle(topology=topology).design_for_target_efficiency(params)
    print_validation(console, validation)
    _report(ctx, solved, code, f"Design for η = {eta:.4f}", "target_eta", name, output, {"eta_target": eta})
