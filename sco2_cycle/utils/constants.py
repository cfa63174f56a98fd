"""Constants used throughout sco2-cycle.

All values in SI units unless otherwise noted.
"""

# Thermodynamic
T_CELSIUS_OFFSET = 273.15  # K

# Rotational speed
RPM_TO_RAD_S = 0.104719755  # (rad/s)/rpm
RAD_S_TO_RPM = 9.549296590  # rpm/(rad/s)

# Conversion factors
MPA_TO_PA = 1.0e6

# Compressor map (non-dimensional)
PHI_DESIGN = 0.02971  # design-point flow coefficient
PHI_MIN = 0.02  # surge limit
PHI_MAX = 0.05  # choke limit

# Radial turbine design velocity ratio U/C_s
NU_DESIGN = 0.7476

# Recuperator loops
ZERO_UA = 1.0e-12  # W/K, conductance treated as "no recuperator"
ZERO_FRACTION = 1.0e-12  # recompression fraction treated as "no recompressor"
MIN_SIZED_RECOMP_FRACTION = 0.01  # smallest recompression fraction that sizes a recompressor
ZERO_DUTY = 1.0e-14  # W
MIN_APPROACH = 1.0e-6  # K

# Polytropic/isentropic conversion
N_POLYTROPIC_STAGES = 200
