"""Rich tables for solved designs and operating points."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from sco2_cycle.core.fluids import ThermoState
from sco2_cycle.cycle.design import DesignSolved
from sco2_cycle.cycle.off_design import OffDesignSolved
from sco2_cycle.utils.units import convert, power_from_si, pressure_from_si, temperature_from_si
from sco2_cycle.utils.validation import Severity, ValidationResult

NODE_NAMES = (
    "Compressor inlet",
    "Compressor outlet",
    "LT cold outlet",
    "Mixer outlet",
    "HT cold outlet",
    "Turbine inlet",
    "Turbine outlet",
    "HT hot outlet",
    "LT hot outlet",
    "Recompressor outlet",
)


def _value_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_column("Unit", style="dim")
    return table


def states_table(states: tuple[ThermoState, ...]) -> Table:
    table = Table(title="Node States")
    table.add_column("Node", style="cyan", justify="right")
    table.add_column("Location", style="cyan")
    table.add_column("T [°C]", justify="right")
    table.add_column("P [MPa]", justify="right")
    table.add_column("h [kJ/kg]", justify="right")
    table.add_column("s [kJ/kg·K]", justify="right")
    table.add_column("ρ [kg/m³]", justify="right")
    for i, (name, s) in enumerate(zip(NODE_NAMES, states), start=1):
        table.add_row(
            str(i),
            name,
            f"{temperature_from_si(s.temperature, 'degC'):.2f}",
            f"{pressure_from_si(s.pressure, 'MPa'):.3f}",
            f"{convert(s.enthalpy, 'J/kg', 'kJ/kg'):.2f}",
            f"{convert(s.entropy, 'J/kg/K', 'kJ/kg/K'):.4f}",
            f"{s.density:.2f}",
        )
    return table


def print_design(console: Console, solved: DesignSolved) -> None:
    """Performance, node-state and component tables of a sized design."""
    p = solved.point
    perf = _value_table(f"Design Performance ({p.topology})")
    perf.add_row("Net Power", f"{power_from_si(p.W_dot_net, 'MW'):.3f}", "MW")
    perf.add_row("Thermal Efficiency", f"{p.eta_thermal:.4f}", "—")
    perf.add_row("Heat Input", f"{power_from_si(p.Q_dot_PHX, 'MW'):.3f}", "MW")
    perf.add_row("Turbine Mass Flow", f"{p.m_dot_t:.3f}", "kg/s")
    perf.add_row("Recompression Fraction", f"{p.recomp_frac:.4f}", "—")
    perf.add_row("Pressure Ratio", f"{p.state(2).pressure / p.state(1).pressure:.3f}", "—")
    perf.add_row("UA LT Recuperator", f"{convert(p.LT.UA_design, 'W/K', 'kW/K'):.1f}", "kW/K")
    perf.add_row("UA HT Recuperator", f"{convert(p.HT.UA_design, 'W/K', 'kW/K'):.1f}", "kW/K")
    perf.add_row("Min ΔT LT", f"{p.LT.min_dT:.2f}", "K")
    perf.add_row("Min ΔT HT", f"{p.HT.min_dT:.2f}", "K")
    for key, value in p.extras.items():
        perf.add_row(key, f"{value:.5g}", "")
    console.print(perf)
    console.print(states_table(p.states))

    comp = _value_table("Turbomachinery")
    comp.add_row("Compressor Diameter", f"{convert(solved.compressor.D_rotor, 'm', 'mm'):.1f}", "mm")
    comp.add_row("Compressor Speed", f"{solved.compressor.N_design:.0f}", "rpm")
    comp.add_row("Compressor Efficiency", f"{solved.compressor.eta_design:.4f}", "—")
    comp.add_row("Turbine Diameter", f"{convert(solved.turbine.D_rotor, 'm', 'mm'):.1f}", "mm")
    comp.add_row("Turbine Speed", f"{solved.turbine.N_design:.0f}", "rpm")
    comp.add_row("Turbine Nozzle Area", f"{convert(solved.turbine.A_nozzle, 'm**2', 'cm**2'):.3f}", "cm²")
    if solved.recompressor is not None:
        rc = solved.recompressor
        D_1, D_2 = convert(rc.D_rotor, "m", "mm"), convert(rc.D_rotor_2, "m", "mm")
        comp.add_row("Recompressor Diameters", f"{D_1:.1f} / {D_2:.1f}", "mm")
        comp.add_row("Recompressor Speed", f"{rc.N_design:.0f}", "rpm")
        comp.add_row("Recompressor Efficiency", f"{rc.eta_design:.4f}", "—")
    console.print(comp)


def print_off_design(console: Console, solved: OffDesignSolved) -> None:
    """Performance and node-state tables of an off-design operating point."""
    perf = _value_table("Off-Design Performance")
    perf.add_row("Net Power", f"{power_from_si(solved.W_dot_net, 'MW'):.3f}", "MW")
    perf.add_row("Thermal Efficiency", f"{solved.eta_thermal:.4f}", "—")
    perf.add_row("Heat Input", f"{power_from_si(solved.Q_dot_PHX, 'MW'):.3f}", "MW")
    perf.add_row("Compressor Inlet Pressure", f"{pressure_from_si(solved.parameters.P_mc_in, 'MPa'):.3f}", "MPa")
    perf.add_row("Turbine Mass Flow", f"{solved.m_dot_t:.3f}", "kg/s")
    perf.add_row("Recompression Fraction", f"{solved.recomp_frac:.4f}", "—")
    perf.add_row("Compressor Speed", f"{solved.N_mc:.0f}", "rpm")
    perf.add_row("Turbine Speed", f"{solved.N_t:.0f}", "rpm")
    perf.add_row("Compressor Flow Coefficient", f"{solved.compressor.phi:.4f}", "—")
    perf.add_row("Surge", "[red]yes[/red]" if solved.surge else "no", "")
    console.print(perf)
    console.print(states_table(solved.states))


def print_validation(console: Console, validation: ValidationResult) -> None:
    """List clamp warnings and rejections."""
    for message in validation.messages:
        if message.severity == Severity.ERROR:
            console.print(f"[red]Error:[/red] {message.parameter}: {message.message}")
        elif message.severity == Severity.WARNING:
            console.print(f"[yellow]Warning:[/yellow] {message.parameter}: {message.message}")
