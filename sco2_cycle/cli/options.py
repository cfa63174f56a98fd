"""Shared click options for cycle inputs given in engineering units."""

from __future__ import annotations

from typing import Any, Callable

import click

from sco2_cycle.cycle.parameters import PressureDrop
from sco2_cycle.utils.units import (
    conductance_to_si,
    power_to_si,
    pressure_to_si,
    temperature_to_si,
)

_DROP_HELP = "(cold, hot) pressure drop: negative = fraction of inlet pressure, otherwise kPa."


def drop_to_si(pair: tuple[float, float]) -> PressureDrop:
    """Convert a CLI pressure-drop pair; fractions pass through, kPa become Pa."""
    cold, hot = (value if value < 0.0 else pressure_to_si(value, "kPa") for value in pair)
    return (cold, hot)


def cycle_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every design-point command."""
    options = [
        click.option("--power", type=float, default=10.0, show_default=True, help="Net power [MW]."),
        click.option("--t-mc-in", type=float, default=32.0, show_default=True, help="Compressor inlet temperature [°C]."),
        click.option("--t-t-in", type=float, default=550.0, show_default=True, help="Turbine inlet temperature [°C]."),
        click.option("--dp-lt", type=(float, float), default=(0.0, 0.0), show_default=True, help=f"LT recuperator {_DROP_HELP}"),
        click.option("--dp-ht", type=(float, float), default=(0.0, 0.0), show_default=True, help=f"HT recuperator {_DROP_HELP}"),
        click.option("--dp-pc", type=(float, float), default=(0.0, 0.0), show_default=True, help=f"Precooler {_DROP_HELP}"),
        click.option("--dp-phx", type=(float, float), default=(0.0, 0.0), show_default=True, help=f"Primary heater {_DROP_HELP}"),
        click.option("--eta-mc", type=float, default=0.89, show_default=True, help="Compressor efficiency (negative = polytropic)."),
        click.option("--eta-rc", type=float, default=0.89, show_default=True, help="Recompressor efficiency (negative = polytropic)."),
        click.option("--eta-t", type=float, default=0.90, show_default=True, help="Turbine efficiency (negative = polytropic)."),
        click.option("--n-sub", type=int, default=10, show_default=True, help="Sub-heat-exchangers per recuperator."),
        click.option("--p-limit", type=float, default=25.0, show_default=True, help="High-side pressure limit [MPa]."),
        click.option("--n-turbine", type=float, default=3600.0, show_default=True, help="Turbine speed [rpm] (<= 0 links to the compressor)."),
        click.option("--tol", type=float, default=1.0e-6, show_default=True, help="Convergence tolerance."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def cycle_inputs(
    power: float,
    t_mc_in: float,
    t_t_in: float,
    dp_lt: tuple[float, float],
    dp_ht: tuple[float, float],
    dp_pc: tuple[float, float],
    dp_phx: tuple[float, float],
    eta_mc: float,
    eta_rc: float,
    eta_t: float,
    n_sub: int,
    p_limit: float,
    n_turbine: float,
    tol: float,
) -> dict[str, Any]:
    """SI keyword arguments common to all design parameter sets."""
    return {
        "W_dot_net": power_to_si(power, "MW"),
        "T_mc_in": temperature_to_si(t_mc_in, "degC"),
        "T_t_in": temperature_to_si(t_t_in, "degC"),
        "DP_LT": drop_to_si(dp_lt),
        "DP_HT": drop_to_si(dp_ht),
        "DP_PC": drop_to_si(dp_pc),
        "DP_PHX": drop_to_si(dp_phx),
        "eta_mc": eta_mc,
        "eta_rc": eta_rc,
        "eta_t": eta_t,
        "N_sub_hxrs": n_sub,
        "P_high_limit": pressure_to_si(p_limit, "MPa"),
        "tol": tol,
        "N_turbine": n_turbine,
    }


def ua_to_si(value: float) -> float:
    """Conductance given in kW/K to W/K."""
    return conductance_to_si(value, "kW/K")
