"""Core modules for sco2-cycle.

- errors: error codes and exception hierarchy
- fluids: CoolProp-based CO2 property oracle
- config: project persistence (JSON)
"""
