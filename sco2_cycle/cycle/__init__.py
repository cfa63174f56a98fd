"""Recompression cycle analysis.

Provides the turbomachinery and heat-exchanger component models, the shared
bounded root finder, selectable cycle topologies and the design/off-design
equilibrium solvers.
"""
