"""Input parameter sets for the cycle solvers.

All values SI: K, Pa, W, W/K, rpm.  Pressure-drop specifications are
``(cold, hot)`` pairs; a negative entry is a fractional drop, a non-negative
entry an absolute drop in Pa.  Efficiencies are isentropic when positive and
polytropic when negative.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from sco2_cycle.utils.validation import (
    ValidationResult,
    validate_non_negative,
    validate_positive,
    validate_range,
)

PressureDrop = tuple[float, float]

_NO_DROP: PressureDrop = (0.0, 0.0)


@dataclass(frozen=True)
class DesignParameters:
    """Design-point specification of a recompression cycle."""

    W_dot_net: float = 10.0e6  # W
    T_mc_in: float = 305.15  # K
    T_t_in: float = 823.15  # K
    P_mc_in: float = 7.65e6  # Pa
    P_mc_out: float = 20.0e6  # Pa
    DP_LT: PressureDrop = _NO_DROP
    DP_HT: PressureDrop = _NO_DROP
    DP_PC: PressureDrop = _NO_DROP
    DP_PHX: PressureDrop = _NO_DROP
    UA_LT: float = 0.0  # W/K
    UA_HT: float = 0.0  # W/K
    recomp_frac: float = 0.0
    eta_mc: float = 0.89
    eta_rc: float = 0.89
    eta_t: float = 0.90
    N_sub_hxrs: int = 10
    P_high_limit: float = 25.0e6  # Pa
    tol: float = 1.0e-6
    N_turbine: float = 3600.0  # rpm, <= 0 links the turbine to the compressor shaft


@dataclass(frozen=True)
class OffDesignParameters:
    """Operating point of an already sized cycle."""

    T_mc_in: float = 305.15  # K
    T_t_in: float = 823.15  # K
    P_mc_in: float = 7.65e6  # Pa
    recomp_frac: float = 0.0
    N_mc: float = 0.0  # rpm
    N_t: float = 3600.0  # rpm
    N_sub_hxrs: int = 10
    tol: float = 1.0e-6


@dataclass(frozen=True)
class AutoOptimalDesignParameters:
    """Design inputs for searches that choose pressures, fraction and UA split."""

    W_dot_net: float = 10.0e6  # W
    T_mc_in: float = 305.15  # K
    T_t_in: float = 823.15  # K
    DP_LT: PressureDrop = _NO_DROP
    DP_HT: PressureDrop = _NO_DROP
    DP_PC: PressureDrop = _NO_DROP
    DP_PHX: PressureDrop = _NO_DROP
    UA_rec_total: float = 0.0  # W/K
    eta_mc: float = 0.89
    eta_rc: float = 0.89
    eta_t: float = 0.90
    N_sub_hxrs: int = 10
    P_high_limit: float = 25.0e6  # Pa
    tol: float = 1.0e-6
    opt_tol: float = 1.0e-3
    N_turbine: float = 3600.0  # rpm
    max_evaluations: int = 500

    def to_design(
        self,
        P_mc_in: float,
        P_mc_out: float,
        recomp_frac: float,
        LT_frac: float,
    ) -> DesignParameters:
        """Complete design parameters for a given pressure pair, fraction and split."""
        return DesignParameters(
            W_dot_net=self.W_dot_net,
            T_mc_in=self.T_mc_in,
            T_t_in=self.T_t_in,
            P_mc_in=P_mc_in,
            P_mc_out=P_mc_out,
            DP_LT=self.DP_LT,
            DP_HT=self.DP_HT,
            DP_PC=self.DP_PC,
            DP_PHX=self.DP_PHX,
            UA_LT=self.UA_rec_total * LT_frac,
            UA_HT=self.UA_rec_total * (1.0 - LT_frac),
            recomp_frac=recomp_frac,
            eta_mc=self.eta_mc,
            eta_rc=self.eta_rc,
            eta_t=self.eta_t,
            N_sub_hxrs=self.N_sub_hxrs,
            P_high_limit=self.P_high_limit,
            tol=self.tol,
            N_turbine=self.N_turbine,
        )


@dataclass(frozen=True)
class OptimalDesignParameters(AutoOptimalDesignParameters):
    """Local optimization of the free design variables.

    Each variable has a guess and a ``fixed_*`` flag; fixed variables take
    their guess value.
    """

    P_mc_out_guess: float = 20.0e6  # Pa
    fixed_P_mc_out: bool = False
    PR_mc_guess: float = 2.6
    fixed_PR_mc: bool = False
    recomp_frac_guess: float = 0.3
    fixed_recomp_frac: bool = False
    LT_frac_guess: float = 0.5
    fixed_LT_frac: bool = False


@dataclass(frozen=True)
class TargetEfficiencyParameters(AutoOptimalDesignParameters):
    """Auto-optimized design with the recuperator conductance sized for an efficiency."""

    eta_thermal: float = 0.45


@dataclass(frozen=True)
class TargetOffDesignParameters:
    """Search for the compressor inlet pressure that hits a power or heat target."""

    T_mc_in: float = 305.15  # K
    T_t_in: float = 823.15  # K
    recomp_frac: float = 0.0
    N_mc: float = 0.0  # rpm
    N_t: float = 3600.0  # rpm
    N_sub_hxrs: int = 10
    tol: float = 1.0e-6
    target: float = 10.0e6  # W
    is_target_Q: bool = False
    lowest_pressure: float = 1.0e6  # Pa
    highest_pressure: float = 12.0e6  # Pa
    use_default_res: bool = True

    def at_pressure(self, P_mc_in: float) -> OffDesignParameters:
        return OffDesignParameters(
            T_mc_in=self.T_mc_in,
            T_t_in=self.T_t_in,
            P_mc_in=P_mc_in,
            recomp_frac=self.recomp_frac,
            N_mc=self.N_mc,
            N_t=self.N_t,
            N_sub_hxrs=self.N_sub_hxrs,
            tol=self.tol,
        )


@dataclass(frozen=True)
class OptimalOffDesignParameters:
    """Off-design optimization over inlet pressure, fraction and shaft speeds."""

    T_mc_in: float = 305.15  # K
    T_t_in: float = 823.15  # K
    N_sub_hxrs: int = 10
    tol: float = 1.0e-6
    opt_tol: float = 1.0e-3
    is_max_W_dot: bool = True
    P_mc_in_guess: float = 7.65e6  # Pa
    fixed_P_mc_in: bool = False
    recomp_frac_guess: float = 0.0
    fixed_recomp_frac: bool = False
    N_mc_guess: float = 0.0  # rpm
    fixed_N_mc: bool = False
    N_t_guess: float = 3600.0  # rpm, <= 0 links to N_mc
    fixed_N_t: bool = True
    max_evaluations: int = 500


@dataclass(frozen=True)
class MaxOutputParameters:
    """Search for the largest achievable power (or heat input) off-design."""

    T_mc_in: float = 305.15  # K
    T_t_in: float = 823.15  # K
    N_sub_hxrs: int = 10
    tol: float = 1.0e-6
    opt_tol: float = 1.0e-3
    is_target_Q: bool = False
    lowest_pressure: float = 1.0e6  # Pa
    highest_pressure: float = 12.0e6  # Pa
    recomp_frac_guess: float = 0.0
    fixed_recomp_frac: bool = False
    N_mc_guess: float = 0.0  # rpm
    fixed_N_mc: bool = False
    N_t_guess: float = 3600.0  # rpm
    fixed_N_t: bool = True
    max_evaluations: int = 500


@dataclass(frozen=True)
class DesignLimits:
    """Solver-wide limits."""

    UA_net_power_ratio_max: float = 2.0  # (W/K)/W
    UA_net_power_ratio_min: float = 1.0e-5  # (W/K)/W
    design_max_iter: int = 500
    off_design_max_iter: int = 100


# --- Validation ---


def _validate_drop(name: str, drop: PressureDrop, result: ValidationResult) -> None:
    if len(drop) != 2:
        result.error(name, f"{name} must be a (cold, hot) pair, got {drop}")
        return
    for side, value in zip(("cold", "hot"), drop):
        if not math.isfinite(value) or value <= -1.0:
            result.error(name, f"{name} {side}-side drop {value} is invalid", value=value)


def validate_design_parameters(params: DesignParameters) -> ValidationResult:
    """Reject design parameters that no solve can accept."""
    result = ValidationResult()
    validate_positive("W_dot_net", params.W_dot_net, result)
    validate_positive("T_mc_in", params.T_mc_in, result)
    validate_positive("T_t_in", params.T_t_in, result)
    validate_positive("P_mc_in", params.P_mc_in, result)
    validate_positive("P_mc_out", params.P_mc_out, result)
    if params.P_mc_out <= params.P_mc_in:
        result.error("P_mc_out", "Compressor outlet pressure must exceed the inlet pressure")
    validate_range("recomp_frac", params.recomp_frac, 0.0, 1.0, result)
    if params.recomp_frac >= 1.0:
        result.error("recomp_frac", "Recompression fraction must be below 1")
    validate_non_negative("UA_LT", params.UA_LT, result)
    validate_non_negative("UA_HT", params.UA_HT, result)
    validate_positive("tol", params.tol, result)
    if params.N_sub_hxrs < 1:
        result.error("N_sub_hxrs", "At least one sub-heat-exchanger is required")
    for name in ("eta_mc", "eta_rc", "eta_t"):
        eta = getattr(params, name)
        if eta == 0.0 or abs(eta) > 1.0:
            result.error(name, f"{name} = {eta} must be in (0, 1] (negative for polytropic)")
    for name in ("DP_LT", "DP_HT", "DP_PC", "DP_PHX"):
        _validate_drop(name, getattr(params, name), result)
    return result


def validate_off_design_parameters(params: OffDesignParameters) -> ValidationResult:
    """Reject off-design parameters that no solve can accept."""
    result = ValidationResult()
    validate_positive("T_mc_in", params.T_mc_in, result)
    validate_positive("T_t_in", params.T_t_in, result)
    validate_positive("P_mc_in", params.P_mc_in, result)
    validate_positive("N_mc", params.N_mc, result)
    validate_positive("tol", params.tol, result)
    validate_range("recomp_frac", params.recomp_frac, 0.0, 1.0, result)
    if params.recomp_frac >= 1.0:
        result.error("recomp_frac", "Recompression fraction must be below 1")
    if params.N_sub_hxrs < 1:
        result.error("N_sub_hxrs", "At least one sub-heat-exchanger is required")
    return result


def validate_target_off_design_parameters(params: TargetOffDesignParameters) -> ValidationResult:
    """Reject target searches that cannot bracket a positive target."""
    result = ValidationResult()
    validate_positive("target", params.target, result)
    validate_positive("lowest_pressure", params.lowest_pressure, result)
    if params.highest_pressure <= params.lowest_pressure:
        result.error("highest_pressure", "Highest search pressure must exceed the lowest")
    return result
