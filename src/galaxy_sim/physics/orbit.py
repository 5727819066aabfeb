# src/galaxy_sim/physics/orbit.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

from galaxy_sim.core.constants import (
    ANGULAR_MOMENTUM_REL_EPS,
    CIRCULAR_ECC_EPS,
    DEFAULT_MU,
    POSITION_EPS,
)
from galaxy_sim.core.frames import (
    Vector3,
    add,
    cross,
    dot,
    in_plane_angle,
    norm,
    plane_to_world,
    scale,
    sub,
    world_to_plane,
)
from galaxy_sim.physics.gravity import solve_keplers_equation, wrap_to_2pi


class DegenerateOrbitError(ValueError):
    """A state vector that does not define a bound Keplerian ellipse."""


@dataclass(frozen=True)
class OrbitalElements:
    """
    Orbital elements of a bound orbit about the fixed central mass.

    Fields:
        semi_major_axis: a > 0
        eccentricity: e in [0, 1)
        phase_at_epoch: mean anomaly at simulation time 0 (rad)
        mean_motion: n = sqrt(mu / a^3) (rad per time unit)
        orbit_normal: unit normal of the orbital plane (normalized on construction)
        heading: rotation of the periapsis direction about orbit_normal (rad)
    """
    semi_major_axis: float
    eccentricity: float
    phase_at_epoch: float
    mean_motion: float
    orbit_normal: Vector3
    heading: float = 0.0

    def __post_init__(self):
        if not (self.semi_major_axis > 0 and math.isfinite(self.semi_major_axis)):
            raise ValueError(f"Semi-major axis must be positive. Got: {self.semi_major_axis}")
        if not (0.0 <= self.eccentricity < 1.0):
            raise ValueError(f"Only bound orbits are supported (0 <= e < 1). Got: {self.eccentricity}")
        if not (self.mean_motion > 0 and math.isfinite(self.mean_motion)):
            raise ValueError(f"Mean motion must be positive. Got: {self.mean_motion}")
        if not math.isfinite(self.phase_at_epoch):
            raise ValueError(f"Phase at epoch must be finite. Got: {self.phase_at_epoch}")
        if not math.isfinite(self.heading):
            raise ValueError(f"Heading must be finite. Got: {self.heading}")
        if len(self.orbit_normal) != 3 or not all(math.isfinite(c) for c in self.orbit_normal):
            raise ValueError(f"Orbit normal must be a finite 3-vector. Got: {self.orbit_normal}")
        length = norm(self.orbit_normal)
        if length == 0.0:
            raise ValueError("Orbit normal cannot be the zero vector.")
        unit = tuple(float(c) / length for c in self.orbit_normal)
        object.__setattr__(self, "orbit_normal", unit)

    @classmethod
    def from_shape(cls, semi_major_axis: float, eccentricity: float, phase_at_epoch: float,
                   orbit_normal: Vector3, heading: float = 0.0,
                   mu: float = DEFAULT_MU) -> "OrbitalElements":
        """Build elements, deriving the mean motion from mu."""
        if not (semi_major_axis > 0):
            raise ValueError(f"Semi-major axis must be positive. Got: {semi_major_axis}")
        return cls(
            semi_major_axis=semi_major_axis,
            eccentricity=eccentricity,
            phase_at_epoch=phase_at_epoch,
            mean_motion=mean_motion(semi_major_axis, mu),
            orbit_normal=orbit_normal,
            heading=heading,
        )

    @property
    def period(self) -> float:
        return 2.0 * math.pi / self.mean_motion

    @property
    def periapsis_distance(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity)

    @property
    def apoapsis_distance(self) -> float:
        return self.semi_major_axis * (1.0 + self.eccentricity)


def mean_motion(a: float, mu: float = DEFAULT_MU) -> float:
    """n = sqrt(mu / a^3)."""
    if mu <= 0:
        raise ValueError(f"Gravitational parameter must be positive. Got: {mu}")
    return math.sqrt(mu / (a ** 3))


def true_anomaly_from_eccentric(E: float, e: float) -> float:
    # Half-angle form; stays on the same revolution as E
    beta = e / (1.0 + math.sqrt(1.0 - e * e))
    return E + 2.0 * math.atan(beta * math.sin(E) / (1.0 - beta * math.cos(E)))


def elements_to_state(elements: OrbitalElements, t: float) -> Tuple[Vector3, Vector3]:
    """
    World-frame position and velocity at absolute simulation time t.
    Two-body Keplerian propagation using mean anomaly.

    Returns:
        r_world, v_world
    """
    a = elements.semi_major_axis
    e = elements.eccentricity
    n = elements.mean_motion

    M = wrap_to_2pi(elements.phase_at_epoch + n * t)
    E = solve_keplers_equation(M, e)
    nu = true_anomaly_from_eccentric(E, e)

    cos_nu = math.cos(nu)
    sin_nu = math.sin(nu)
    p = a * (1.0 - e * e)
    r = p / (1.0 + e * cos_nu)

    # Local plane: periapsis along -X, motion towards +Z, normal +Y
    radial = (-cos_nu, 0.0, sin_nu)
    tangential = (sin_nu, 0.0, cos_nu)
    speed_scale = n * a / math.sqrt(1.0 - e * e)
    v_r = speed_scale * e * sin_nu
    v_t = speed_scale * (1.0 + e * cos_nu)

    r_local = scale(radial, r)
    v_local = add(scale(radial, v_r), scale(tangential, v_t))

    r_world = plane_to_world(r_local, elements.orbit_normal, elements.heading)
    v_world = plane_to_world(v_local, elements.orbit_normal, elements.heading)
    return r_world, v_world


def elements_from_state(r: Vector3, v: Vector3, t: float,
                        mu: float = DEFAULT_MU) -> OrbitalElements:
    """
    Orbit determination: recover the elements whose propagation at time t
    reproduces the state vector (r, v).

    Raises:
        DegenerateOrbitError: r at the force centre, r and v collinear, or the
            state is not on a bound ellipse.
    """
    if mu <= 0:
        raise ValueError(f"Gravitational parameter must be positive. Got: {mu}")

    r_mag = norm(r)
    if r_mag < POSITION_EPS:
        raise DegenerateOrbitError(f"Position too close to the force centre: |r|={r_mag:.3e}")

    h = cross(r, v)
    h_mag = norm(h)
    if h_mag < ANGULAR_MOMENTUM_REL_EPS * math.sqrt(mu * r_mag):
        raise DegenerateOrbitError(f"Angular momentum vanishes: |h|={h_mag:.3e}")
    normal = scale(h, 1.0 / h_mag)

    ecc_vec = sub(scale(cross(v, h), 1.0 / mu), scale(r, 1.0 / r_mag))
    e = norm(ecc_vec)
    if e >= 1.0:
        raise DegenerateOrbitError(f"State is not on a bound orbit: e={e:.6f}")

    if e < CIRCULAR_ECC_EPS:
        # Periapsis undefined; place it at the current position
        e = 0.0
        nu = 0.0
    else:
        # Angle between eccentricity vector and r, i.e. acos(e.r / |e||r|),
        # in the atan2 form that stays accurate near 0 and pi
        nu = math.atan2(norm(cross(ecc_vec, r)), dot(ecc_vec, r))
        if dot(r, v) < 0:
            nu = 2.0 * math.pi - nu

    a = r_mag * (1.0 + e * math.cos(nu)) / (1.0 - e * e)
    n = mean_motion(a, mu)

    E = 2.0 * math.atan(math.sqrt((1.0 - e) / (1.0 + e)) * math.tan(nu / 2.0))
    M = E - e * math.sin(E)
    phase = wrap_to_2pi(M - n * t)

    heading = wrap_to_2pi(in_plane_angle(world_to_plane(r, normal)) - nu)

    return OrbitalElements(
        semi_major_axis=a,
        eccentricity=e,
        phase_at_epoch=phase,
        mean_motion=n,
        orbit_normal=normal,
        heading=heading,
    )


def propagate(elements: OrbitalElements, times: List[float]) -> List[Tuple[float, Vector3, Vector3]]:
    """
    Propagate an orbit across a list of time stamps.
    Returns list of (t, r_world, v_world).
    """
    out: List[Tuple[float, Vector3, Vector3]] = []
    for t in times:
        r, v = elements_to_state(elements, t)
        out.append((t, r, v))
    return out
