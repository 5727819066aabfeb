from __future__ import annotations

import math
from typing import Tuple

from galaxy_sim.core.constants import ANTIPARALLEL_AXIS, REFERENCE_AXIS

Vector3 = Tuple[float, float, float]

# Below this |sin(angle)| two unit vectors are treated as (anti)parallel
_PARALLEL_EPS = 1e-12


def add(a: Vector3, b: Vector3) -> Vector3:
    return (a[0]+b[0], a[1]+b[1], a[2]+b[2])


def sub(a: Vector3, b: Vector3) -> Vector3:
    return (a[0]-b[0], a[1]-b[1], a[2]-b[2])


def scale(v: Vector3, s: float) -> Vector3:
    return (v[0]*s, v[1]*s, v[2]*s)


def dot(a: Vector3, b: Vector3) -> float:
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2]


def cross(a: Vector3, b: Vector3) -> Vector3:
    return (a[1]*b[2] - a[2]*b[1],
            a[2]*b[0] - a[0]*b[2],
            a[0]*b[1] - a[1]*b[0])


def norm(a: Vector3) -> float:
    return math.sqrt(dot(a, a))


def normalize(v: Vector3) -> Vector3:
    n = norm(v)
    if n == 0.0:
        raise ValueError("Cannot normalize a zero vector.")
    return (v[0]/n, v[1]/n, v[2]/n)


def rotate_about_axis(v: Vector3, axis: Vector3, angle_rad: float) -> Vector3:
    """
    Rodrigues rotation of v by angle_rad (right-handed) about a unit axis.
    """
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    k_cross_v = cross(axis, v)
    k_dot_v = dot(axis, v)
    return (v[0]*c + k_cross_v[0]*s + axis[0]*k_dot_v*(1.0 - c),
            v[1]*c + k_cross_v[1]*s + axis[1]*k_dot_v*(1.0 - c),
            v[2]*c + k_cross_v[2]*s + axis[2]*k_dot_v*(1.0 - c))


def alignment_rotation(normal: Vector3) -> Tuple[Vector3, float]:
    """
    Minimal-angle rotation taking REFERENCE_AXIS onto a unit normal.

    Returns:
        (axis, angle_rad). For a parallel normal the angle is 0. For an
        antiparallel normal every perpendicular axis is minimal; the fixed
        ANTIPARALLEL_AXIS is used so the result is deterministic.
    """
    axis = cross(REFERENCE_AXIS, normal)
    sin_angle = norm(axis)
    cos_angle = dot(REFERENCE_AXIS, normal)
    if sin_angle < _PARALLEL_EPS:
        if cos_angle > 0.0:
            return REFERENCE_AXIS, 0.0
        return ANTIPARALLEL_AXIS, math.pi
    return scale(axis, 1.0 / sin_angle), math.atan2(sin_angle, cos_angle)


def plane_to_world(v_local: Vector3, normal: Vector3, heading_rad: float) -> Vector3:
    """
    Map a vector from the local orbital-plane frame (normal = REFERENCE_AXIS)
    to the world frame: spin by heading about the reference axis, then align
    the reference axis with the orbit normal.
    """
    spun = rotate_about_axis(v_local, REFERENCE_AXIS, heading_rad)
    axis, angle = alignment_rotation(normal)
    if angle == 0.0:
        return spun
    return rotate_about_axis(spun, axis, angle)


def world_to_plane(v_world: Vector3, normal: Vector3) -> Vector3:
    """
    Inverse of the alignment step only: bring a world vector into the frame
    where the orbit normal is REFERENCE_AXIS. Heading is not undone.
    """
    axis, angle = alignment_rotation(normal)
    if angle == 0.0:
        return v_world
    return rotate_about_axis(v_world, axis, -angle)


def in_plane_angle(v_local: Vector3) -> float:
    """
    Angle of a local-plane vector measured from the reference periapsis
    direction (-X) towards +Z, wrapped to [0, 2π).
    """
    return math.atan2(v_local[2], -v_local[0]) % (2.0 * math.pi)
