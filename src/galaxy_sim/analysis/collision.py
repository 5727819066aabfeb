"""
Collision detection between orbiting bodies.

Includes:
- Axis-aligned bounding boxes around body spheres
- Bounding volume hierarchy (rebuilt from scratch every tick)
- Broad phase: box-overlap candidate pairs
- Narrow phase: exact sphere-sphere confirmation
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from galaxy_sim.core.frames import Vector3

Pair = Tuple[int, int]

# Bodies per BVH leaf
LEAF_SIZE = 2


@dataclass(frozen=True)
class AABB:
    """Axis-aligned bounding box."""
    lo: Vector3
    hi: Vector3

    @classmethod
    def around_sphere(cls, center: Vector3, radius: float) -> "AABB":
        return cls(
            (center[0] - radius, center[1] - radius, center[2] - radius),
            (center[0] + radius, center[1] + radius, center[2] + radius),
        )

    def union(self, other: "AABB") -> "AABB":
        return AABB(
            (min(self.lo[0], other.lo[0]), min(self.lo[1], other.lo[1]), min(self.lo[2], other.lo[2])),
            (max(self.hi[0], other.hi[0]), max(self.hi[1], other.hi[1]), max(self.hi[2], other.hi[2])),
        )

    def overlaps(self, other: "AABB") -> bool:
        return not (self.hi[0] < other.lo[0] or self.lo[0] > other.hi[0] or
                    self.hi[1] < other.lo[1] or self.lo[1] > other.hi[1] or
                    self.hi[2] < other.lo[2] or self.lo[2] > other.hi[2])

    def center(self) -> Vector3:
        return ((self.lo[0] + self.hi[0]) * 0.5,
                (self.lo[1] + self.hi[1]) * 0.5,
                (self.lo[2] + self.hi[2]) * 0.5)


@dataclass
class BVHNode:
    box: AABB
    items: List[Tuple[int, AABB]]  # non-empty only for leaves
    left: Optional["BVHNode"] = None
    right: Optional["BVHNode"] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None


class BoundingVolumeHierarchy:
    """
    Binary tree of AABBs built top-down by median split along the longest
    axis of the item centres.
    """

    def __init__(self, root: Optional[BVHNode]):
        self.root = root

    @classmethod
    def build(cls, items: Sequence[Tuple[int, AABB]]) -> "BoundingVolumeHierarchy":
        if not items:
            return cls(None)
        return cls(_build_node(list(items)))

    def overlapping_pairs(self) -> Set[Pair]:
        """All id pairs whose boxes overlap, as (low_id, high_id)."""
        found: Set[Pair] = set()
        if self.root is not None:
            _self_pairs(self.root, found)
        return found


def _build_node(items: List[Tuple[int, AABB]]) -> BVHNode:
    box = items[0][1]
    for _id, item_box in items[1:]:
        box = box.union(item_box)

    if len(items) <= LEAF_SIZE:
        return BVHNode(box=box, items=items)

    centers = [item_box.center() for _id, item_box in items]
    extents = [max(c[k] for c in centers) - min(c[k] for c in centers) for k in range(3)]
    axis = extents.index(max(extents))

    # Sort on (centre, id) so equal centres split deterministically
    ordered = sorted(items, key=lambda it: (it[1].center()[axis], it[0]))
    mid = len(ordered) // 2
    return BVHNode(
        box=box,
        items=[],
        left=_build_node(ordered[:mid]),
        right=_build_node(ordered[mid:]),
    )


def _add_pair(found: Set[Pair], i: int, j: int) -> None:
    found.add((i, j) if i < j else (j, i))


def _self_pairs(node: BVHNode, found: Set[Pair]) -> None:
    if node.is_leaf:
        for k, (id_a, box_a) in enumerate(node.items):
            for id_b, box_b in node.items[k + 1:]:
                if box_a.overlaps(box_b):
                    _add_pair(found, id_a, id_b)
        return
    _self_pairs(node.left, found)
    _self_pairs(node.right, found)
    _cross_pairs(node.left, node.right, found)


def _cross_pairs(a: BVHNode, b: BVHNode, found: Set[Pair]) -> None:
    if not a.box.overlaps(b.box):
        return
    if a.is_leaf and b.is_leaf:
        for id_a, box_a in a.items:
            for id_b, box_b in b.items:
                if box_a.overlaps(box_b):
                    _add_pair(found, id_a, id_b)
        return
    # Descend into the non-leaf side (the larger one when both are internal)
    if b.is_leaf or (not a.is_leaf and _volume(a.box) >= _volume(b.box)):
        _cross_pairs(a.left, b, found)
        _cross_pairs(a.right, b, found)
    else:
        _cross_pairs(a, b.left, found)
        _cross_pairs(a, b.right, found)


def _volume(box: AABB) -> float:
    return ((box.hi[0] - box.lo[0]) *
            (box.hi[1] - box.lo[1]) *
            (box.hi[2] - box.lo[2]))


def broad_phase_pairs(positions: Dict[int, Vector3],
                      radii: Dict[int, float],
                      margin: float = 0.0) -> Set[Pair]:
    """
    Candidate pairs whose inflated bounding boxes overlap.

    May contain pairs whose spheres do not touch; never misses a pair whose
    spheres do.

    Args:
        positions: body id -> current position
        radii: body id -> radius
        margin: slack added to every radius when building boxes

    Returns:
        Set of (low_id, high_id)
    """
    if margin < 0:
        raise ValueError(f"Broad-phase margin must be non-negative. Got: {margin}")
    items = [(body_id, AABB.around_sphere(positions[body_id], radii[body_id] + margin))
             for body_id in positions]
    return BoundingVolumeHierarchy.build(items).overlapping_pairs()


def spheres_intersect(r1: Vector3, radius1: float, r2: Vector3, radius2: float) -> bool:
    """Exact test: centre distance strictly below the sum of radii."""
    dx = r2[0] - r1[0]
    dy = r2[1] - r1[1]
    dz = r2[2] - r1[2]
    return math.sqrt(dx*dx + dy*dy + dz*dz) < radius1 + radius2


def narrow_phase(candidates: Set[Pair],
                 positions: Dict[int, Vector3],
                 radii: Dict[int, float]) -> List[Pair]:
    """Confirmed colliding pairs, sorted ascending by (low_id, high_id)."""
    confirmed = [
        (i, j) for (i, j) in candidates
        if spheres_intersect(positions[i], radii[i], positions[j], radii[j])
    ]
    confirmed.sort()
    return confirmed


def detect_collisions(positions: Dict[int, Vector3],
                      radii: Dict[int, float],
                      margin: float = 0.0) -> List[Pair]:
    """
    Full detection pass: BVH broad phase followed by the exact narrow phase.

    Returns:
        Colliding id pairs (low_id first), sorted for deterministic processing
    """
    if set(positions) != set(radii):
        raise ValueError("positions and radii must cover the same body ids.")
    candidates = broad_phase_pairs(positions, radii, margin)
    return narrow_phase(candidates, positions, radii)
