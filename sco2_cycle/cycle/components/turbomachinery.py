"""Shared turbomachinery relations.

Isentropic-efficiency outlet states, polytropic to isentropic conversion and
the dimensionless performance curves of the radial compressor and turbine
maps.  Specific works are signed: negative for compression, positive for
expansion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sco2_cycle.core.errors import CompressorOperatingError
from sco2_cycle.core.fluids import Fluid, ThermoState
from sco2_cycle.utils.constants import N_POLYTROPIC_STAGES, PHI_DESIGN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageResult:
    """Inlet/outlet states and specific work of a compression or expansion."""

    inlet: ThermoState
    outlet: ThermoState
    specific_work: float  # J/kg, negative for compression


def turbomachinery_outlet(
    fluid: Fluid,
    T_in: float,
    P_in: float,
    P_out: float,
    eta: float,
    is_compressor: bool,
) -> StageResult:
    """Outlet state of a compressor or turbine from its isentropic efficiency.

    A compressor absorbs ``w = w_s / eta``, a turbine delivers ``w = w_s * eta``.
    """
    inlet = fluid.state_TP(T_in, P_in)
    h_s_out = fluid.state_PS(P_out, inlet.entropy).enthalpy
    w_s = inlet.enthalpy - h_s_out
    w = w_s / eta if is_compressor else w_s * eta
    outlet = fluid.state_PH(P_out, inlet.enthalpy - w)
    return StageResult(inlet=inlet, outlet=outlet, specific_work=w)


def isentropic_from_polytropic(
    fluid: Fluid,
    T_in: float,
    P_in: float,
    P_out: float,
    poly_eta: float,
    is_compressor: bool,
    n_stages: int = N_POLYTROPIC_STAGES,
) -> float:
    """Isentropic efficiency equivalent to a polytropic efficiency.

    The pressure change is split into ``n_stages`` equal steps; the polytropic
    efficiency is applied to each and the states re-evaluated.
    """
    inlet = fluid.state_TP(T_in, P_in)
    h_s_out = fluid.state_PS(P_out, inlet.entropy).enthalpy

    dP = (P_out - P_in) / n_stages
    P_stage = P_in
    h_stage = inlet.enthalpy
    s_stage = inlet.entropy
    for _ in range(n_stages):
        P_stage += dP
        w_s = h_stage - fluid.state_PS(P_stage, s_stage).enthalpy
        w = w_s / poly_eta if is_compressor else w_s * poly_eta
        h_stage -= w
        s_stage = fluid.state_PH(P_stage, h_stage).entropy

    if is_compressor:
        return (h_s_out - inlet.enthalpy) / (h_stage - inlet.enthalpy)
    return (h_stage - inlet.enthalpy) / (h_s_out - inlet.enthalpy)


def resolve_efficiency(
    fluid: Fluid,
    eta: float,
    T_in: float,
    P_in: float,
    P_out: float,
    is_compressor: bool,
) -> float:
    """Return an isentropic efficiency; negative inputs are polytropic."""
    if eta >= 0.0:
        return eta
    return isentropic_from_polytropic(fluid, T_in, P_in, P_out, abs(eta), is_compressor)


# --- Dimensionless compressor map ---


def head_coefficient_curve(phi_star: float) -> float:
    """Modified head coefficient psi* at modified flow coefficient phi*."""
    return ((((-498626.0 * phi_star) + 53224.0) * phi_star - 2505.0) * phi_star + 54.6) * phi_star + 0.04049


def efficiency_curve(phi_star: float) -> float:
    """Modified efficiency eta* at modified flow coefficient phi*."""
    return ((((-1.638e6 * phi_star) + 182725.0) * phi_star - 8089.0) * phi_star + 168.6) * phi_star - 0.7069


PSI_DESIGN = head_coefficient_curve(PHI_DESIGN)


def compressor_map(phi: float, N: float, N_design: float) -> tuple[float, float]:
    """Evaluate the compressor map at flow coefficient ``phi`` and speed ``N``.

    Returns:
        ``(psi, eta_0)``: head coefficient and efficiency normalised to 1 at
        the design flow coefficient.
    """
    if not (N > 0.0 and phi > 0.0):
        raise CompressorOperatingError(f"Map evaluated outside its domain (phi={phi}, N={N})")
    speed_ratio = N_design / N
    phi_star = phi * (N / N_design) ** 0.2
    try:
        psi = head_coefficient_curve(phi_star) / speed_ratio ** ((20.0 * phi_star) ** 3)
        eta_0 = efficiency_curve(phi_star) * 1.47528 / speed_ratio ** ((20.0 * phi_star) ** 5)
    except (OverflowError, ZeroDivisionError) as exc:
        raise CompressorOperatingError(
            f"Map overflow at phi={phi:.4g}, N/N_design={N / N_design:.4g}"
        ) from exc
    return psi, eta_0


def turbine_efficiency_curve(nu: float) -> float:
    """Normalised radial-turbine efficiency at velocity ratio ``nu``, in [0, 1]."""
    eta_0 = (((1.0626 * nu - 3.0874) * nu + 1.3668) * nu + 1.3567) * nu + 0.179921180
    return min(max(eta_0, 0.0), 1.0)
