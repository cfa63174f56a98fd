"""Optimisation drivers for the recompression cycle.

Design-point searches over pressures, recompression fraction and
conductance split, and off-design searches over inlet pressure,
recompression fraction and shaft speeds.
"""
