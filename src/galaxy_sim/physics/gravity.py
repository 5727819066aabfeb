# Two-body / Kepler model

from __future__ import annotations

import logging
import math

from galaxy_sim.core.constants import KEPLER_MAX_ITER, KEPLER_TOL

logger = logging.getLogger(__name__)


def wrap_to_2pi(angle_rad: float) -> float:
    """Wrap angle to [0, 2π)."""
    two_pi = 2.0 * math.pi
    wrapped = angle_rad % two_pi
    # x % 2π can round up to exactly 2π for tiny negative x
    return 0.0 if wrapped == two_pi else wrapped


def solve_keplers_equation(M_rad: float, e: float, tol: float = KEPLER_TOL,
                           max_iter: int = KEPLER_MAX_ITER) -> float:
    """
    Solve Kepler's equation for elliptic orbits:
        M = E - e sin(E)
    using Newton-Raphson.

    The iteration cap bounds the work per call. If it is reached before the
    step drops below tol, the last iterate is returned as the best estimate.

    Args:
        M_rad: Mean anomaly (rad)
        e: eccentricity (0 <= e < 1)
        tol: convergence tolerance on the Newton step
        max_iter: iteration cap

    Returns:
        E_rad: Eccentric anomaly (rad)
    """
    if not (0.0 <= e < 1.0):
        raise ValueError("Elliptic Kepler solver requires 0 <= e < 1.")

    M = wrap_to_2pi(M_rad)

    # Good initial guess
    if e < 0.8:
        E = M
    else:
        # For higher e, start closer to pi to avoid slow convergence near M~0
        E = math.pi

    for _ in range(max_iter):
        f = E - e * math.sin(E) - M
        fp = 1.0 - e * math.cos(E)
        dE = -f / fp
        E += dE
        if abs(dE) < tol:
            return E

    logger.debug("Kepler solver hit %d iterations (M=%.6f, e=%.6f)", max_iter, M, e)
    return E
