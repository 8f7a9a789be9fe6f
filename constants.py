# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are fixed properties of the force law and rod dynamics that are not
part of the experimental configuration.
"""

# --- Body kinds ---
# Type tags stored in BodySystem.kinds. The engine dispatches on these
# rather than on Python types.
POINT_BODY = 0
ROD_BODY = 1

# --- Force law shape ---
# Pairs closer than this fraction of the threshold distance are bonded
# (an edge in the proximity graph).
PROXIMITY_RATIO = 0.8
# Upper edge of the sticky band just outside the threshold distance.
STICKY_RANGE_RATIO = 1.2
# Strength of the weak attraction holding a non-repulsing cluster together,
# relative to the sticky force.
HOLDING_FORCE_RATIO = 0.5
# Strength of the outward push from the cluster center during dispersal.
RADIAL_REPULSION_RATIO = 0.5
# Residual direct repulsion between two bodies of a dispersing cluster.
RESIDUAL_REPULSION_RATIO = 0.3

# --- Rod dynamics ---
# Radians per time step.
MAX_ANGULAR_VELOCITY = 0.2
TWO_PI = 6.283185307179586

# --- Runner defaults ---
DEFAULT_CONFIG_PATH = 'config.json'
DEFAULT_LOG_THROTTLE_STEPS = 100
DEFAULT_MAX_STEPS = 5000
