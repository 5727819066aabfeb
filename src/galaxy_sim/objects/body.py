from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from galaxy_sim.core.frames import Vector3
from galaxy_sim.physics.orbit import OrbitalElements, elements_to_state


@dataclass(frozen=True)
class Body:
    """
    An orbiting point mass with a spherical collision volume.
    Mass follows the unit-density convention mass = radius^3 and is never stored.
    """
    body_id: int
    radius: float
    elements: OrbitalElements

    def __post_init__(self):
        if isinstance(self.body_id, bool) or not isinstance(self.body_id, int) or self.body_id < 0:
            raise ValueError(f"Body ID must be a non-negative integer. Got: {self.body_id!r}")
        if not (self.radius > 0 and math.isfinite(self.radius)):
            raise ValueError(f"Radius must be positive. Got: {self.radius}")

    @property
    def mass(self) -> float:
        return self.radius ** 3

    def state_at(self, t: float) -> Tuple[Vector3, Vector3]:
        """World position/velocity at simulation time t."""
        return elements_to_state(self.elements, t)

    def position_at(self, t: float) -> Vector3:
        r, _v = self.state_at(t)
        return r
