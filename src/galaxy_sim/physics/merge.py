"""
Collision resolution for colliding bodies.

Two bodies that touch are fused into one (perfectly inelastic collision):
- mass (radius^3) is conserved
- linear momentum is conserved
- the merged body's orbit is recovered from its state vector

The body passed first keeps its id; the second is retired.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from galaxy_sim.core.constants import DEFAULT_MU
from galaxy_sim.core.frames import Vector3, add, scale
from galaxy_sim.objects.body import Body
from galaxy_sim.physics.orbit import OrbitalElements, elements_from_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    """Outcome of fusing two bodies at one instant."""
    body: Body  # merged body, carries retained_id
    retained_id: int
    retired_id: int
    position: Vector3  # merged state at the merge time
    velocity: Vector3


@dataclass(frozen=True)
class MergePolicy:
    """
    Optional pruning applied after a successful merge.

    Any threshold left as None is not checked, so the default policy never
    prunes. A merged body that crosses a configured threshold is retired too.
    """
    max_eccentricity: Optional[float] = None
    min_semi_major_axis: Optional[float] = None
    max_semi_major_axis: Optional[float] = None

    def __post_init__(self):
        if self.max_eccentricity is not None and not (0.0 <= self.max_eccentricity < 1.0):
            raise ValueError(f"max_eccentricity must be in [0, 1). Got: {self.max_eccentricity}")
        if self.min_semi_major_axis is not None and self.min_semi_major_axis <= 0:
            raise ValueError(f"min_semi_major_axis must be positive. Got: {self.min_semi_major_axis}")
        if self.max_semi_major_axis is not None and self.max_semi_major_axis <= 0:
            raise ValueError(f"max_semi_major_axis must be positive. Got: {self.max_semi_major_axis}")
        if (self.min_semi_major_axis is not None and self.max_semi_major_axis is not None
                and self.min_semi_major_axis > self.max_semi_major_axis):
            raise ValueError("min_semi_major_axis must be <= max_semi_major_axis.")

    def should_prune(self, elements: OrbitalElements) -> bool:
        if self.max_eccentricity is not None and elements.eccentricity > self.max_eccentricity:
            return True
        if self.min_semi_major_axis is not None and elements.semi_major_axis < self.min_semi_major_axis:
            return True
        if self.max_semi_major_axis is not None and elements.semi_major_axis > self.max_semi_major_axis:
            return True
        return False


def merged_radius(radius_a: float, radius_b: float) -> float:
    """Radius of the body holding both volumes: (ra^3 + rb^3)^(1/3)."""
    return (radius_a ** 3 + radius_b ** 3) ** (1.0 / 3.0)


def weighted_mean(v_a: Vector3, mass_a: float, v_b: Vector3, mass_b: float) -> Vector3:
    return scale(add(scale(v_a, mass_a), scale(v_b, mass_b)), 1.0 / (mass_a + mass_b))


def merge_bodies(a: Body, b: Body, t: float, mu: float = DEFAULT_MU) -> MergeResult:
    """
    Fuse body b into body a at simulation time t.

    Args:
        a: Surviving body (keeps its id)
        b: Absorbed body (retired)
        t: Simulation time of the collision
        mu: Gravitational parameter of the central mass

    Returns:
        MergeResult with the replacement body for a

    Raises:
        DegenerateOrbitError: the merged state has no well-defined bound orbit
    """
    if a.body_id == b.body_id:
        raise ValueError(f"Cannot merge body {a.body_id} with itself.")

    mass_a = a.mass
    mass_b = b.mass
    r_a, v_a = a.state_at(t)
    r_b, v_b = b.state_at(t)

    position = weighted_mean(r_a, mass_a, r_b, mass_b)
    velocity = weighted_mean(v_a, mass_a, v_b, mass_b)

    elements = elements_from_state(position, velocity, t, mu)
    body = Body(
        body_id=a.body_id,
        radius=merged_radius(a.radius, b.radius),
        elements=elements,
    )
    logger.debug("Merged body %d into %d at t=%.6f (r=%.6f, a=%.6f, e=%.6f)",
                 b.body_id, a.body_id, t, body.radius,
                 elements.semi_major_axis, elements.eccentricity)
    return MergeResult(
        body=body,
        retained_id=a.body_id,
        retired_id=b.body_id,
        position=position,
        velocity=velocity,
    )
