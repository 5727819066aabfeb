from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import List, Tuple

from galaxy_sim.core.constants import DEFAULT_BROAD_PHASE_MARGIN, REFERENCE_AXIS
from galaxy_sim.core.frames import Vector3, cross, normalize, rotate_about_axis
from galaxy_sim.objects.body import Body
from galaxy_sim.physics.merge import MergePolicy
from galaxy_sim.physics.orbit import OrbitalElements

Range = Tuple[float, float]


def _check_range(name: str, bounds: Range) -> None:
    if len(bounds) != 2:
        raise ValueError(f"{name} must be a (low, high) pair. Got: {bounds}")
    lo, hi = bounds
    if not (math.isfinite(lo) and math.isfinite(hi)):
        raise ValueError(f"{name} bounds must be finite. Got: {bounds}")
    if lo > hi:
        raise ValueError(f"{name} low bound must be <= high bound. Got: {bounds}")


@dataclass(frozen=True)
class SimulationConfig:
    """
    Construction-time distribution of the initial population.
    Every body draws its elements uniformly from these ranges.
    """
    eccentricity_range: Range = (0.0, 0.2)
    semi_major_axis_range: Range = (0.1, 0.5)
    radius_range: Range = (0.005, 0.02)
    max_inclination_rad: float = math.pi / 6
    broad_phase_margin: float = DEFAULT_BROAD_PHASE_MARGIN
    merge_policy: MergePolicy = field(default_factory=MergePolicy)

    def __post_init__(self):
        _check_range("eccentricity_range", self.eccentricity_range)
        _check_range("semi_major_axis_range", self.semi_major_axis_range)
        _check_range("radius_range", self.radius_range)
        e_lo, e_hi = self.eccentricity_range
        if not (0.0 <= e_lo and e_hi < 1.0):
            raise ValueError(f"Eccentricity range must lie in [0, 1). Got: {self.eccentricity_range}")
        if self.semi_major_axis_range[0] <= 0:
            raise ValueError(f"Semi-major axis range must be positive. Got: {self.semi_major_axis_range}")
        if self.radius_range[0] <= 0:
            raise ValueError(f"Radius range must be positive. Got: {self.radius_range}")
        if not (0.0 <= self.max_inclination_rad <= math.pi):
            raise ValueError(f"Max inclination must be in range [0, π] radians. Got: {self.max_inclination_rad}")
        if not (self.broad_phase_margin >= 0 and math.isfinite(self.broad_phase_margin)):
            raise ValueError(f"Broad-phase margin must be non-negative. Got: {self.broad_phase_margin}")


def random_orbit_normal(rng: random.Random, max_inclination_rad: float) -> Vector3:
    """
    Unit normal tilted from the reference axis by an angle uniform in
    [0, max_inclination_rad], about a uniformly random horizontal axis.
    """
    tilt = rng.uniform(0.0, max_inclination_rad)
    azimuth = rng.uniform(0.0, 2.0 * math.pi)
    horizontal = (math.cos(azimuth), 0.0, math.sin(azimuth))
    axis = normalize(cross(REFERENCE_AXIS, horizontal))
    return normalize(rotate_about_axis(REFERENCE_AXIS, axis, tilt))


def generate_bodies(count: int, mu: float, config: SimulationConfig,
                    rng: random.Random) -> List[Body]:
    """Draw `count` bodies with ids 0..count-1 from the configured ranges."""
    if count < 0:
        raise ValueError(f"Body count must be non-negative. Got: {count}")

    bodies: List[Body] = []
    for body_id in range(count):
        elements = OrbitalElements.from_shape(
            semi_major_axis=rng.uniform(*config.semi_major_axis_range),
            eccentricity=rng.uniform(*config.eccentricity_range),
            phase_at_epoch=rng.uniform(0.0, 2.0 * math.pi),
            orbit_normal=random_orbit_normal(rng, config.max_inclination_rad),
            heading=rng.uniform(0.0, 2.0 * math.pi),
            mu=mu,
        )
        bodies.append(Body(body_id=body_id, radius=rng.uniform(*config.radius_range),
                           elements=elements))
    return bodies
