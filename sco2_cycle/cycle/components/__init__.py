"""Component models for the recompression cycle."""

from sco2_cycle.cycle.components.compressor import Compressor, CompressorDesign
from sco2_cycle.cycle.components.heat_exchanger import HeatExchangerDesign, calculate_ua
from sco2_cycle.cycle.components.recompressor import Recompressor, RecompressorDesign
from sco2_cycle.cycle.components.turbine import Turbine, TurbineDesign

__all__ = [
    "Compressor",
    "CompressorDesign",
    "HeatExchangerDesign",
    "Recompressor",
    "RecompressorDesign",
    "Turbine",
    "TurbineDesign",
    "calculate_ua",
]
