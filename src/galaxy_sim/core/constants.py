from __future__ import annotations

from typing import Tuple

# Default gravitational parameter (mu) of the central mass, simulation units
DEFAULT_MU: float = 0.01

# Orbital planes are built in a local frame whose normal is +Y
REFERENCE_AXIS: Tuple[float, float, float] = (0.0, 1.0, 0.0)

# Rotation axis used when the orbit normal is antiparallel to REFERENCE_AXIS
ANTIPARALLEL_AXIS: Tuple[float, float, float] = (1.0, 0.0, 0.0)

# Kepler solver
KEPLER_TOL: float = 1e-10
KEPLER_MAX_ITER: int = 50

# Orbit determination degeneracy thresholds
POSITION_EPS: float = 1e-12
ANGULAR_MOMENTUM_REL_EPS: float = 1e-9
CIRCULAR_ECC_EPS: float = 1e-12

# Extra slack added to each body's bounding box in the broad phase
DEFAULT_BROAD_PHASE_MARGIN: float = 1e-3
