"""sCO2 recompression Brayton cycle design and off-design analysis."""

__app_name__ = "sco2"
__version__ = "0.1.0"
