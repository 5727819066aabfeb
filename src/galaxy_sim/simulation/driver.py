from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from galaxy_sim.analysis.collision import detect_collisions
from galaxy_sim.core.frames import Vector3, norm
from galaxy_sim.objects.body import Body
from galaxy_sim.physics.merge import MergeResult, merge_bodies
from galaxy_sim.physics.orbit import DegenerateOrbitError, mean_motion
from galaxy_sim.simulation.config import SimulationConfig, generate_bodies
from galaxy_sim.simulation.registry import ActiveSet

logger = logging.getLogger(__name__)

Duration = Union[float, int, timedelta]


@dataclass(frozen=True)
class MergeEvent:
    """One committed merge. `pruned` means the survivor was retired by policy too."""
    time: float
    retained_id: int
    retired_id: int
    radius: float
    position: Vector3
    velocity: Vector3
    pruned: bool = False


@dataclass
class Simulation:
    """
    Owns the active set and runs one detection/merge pass per advance().

    All accessors are evaluated at the current simulation time.
    """
    mu: float
    config: SimulationConfig = field(default_factory=SimulationConfig)
    active: ActiveSet = field(default_factory=ActiveSet)
    last_events: List[MergeEvent] = field(default_factory=list)
    # Number of completed advance() calls; last_events belongs to this tick
    ticks: int = 0

    def __post_init__(self):
        if not (self.mu > 0 and math.isfinite(self.mu)):
            raise ValueError(f"Gravitational parameter must be positive. Got: {self.mu}")

    @classmethod
    def create(cls, body_count: int, gravitational_parameter: float,
               seed: Optional[int] = None,
               config: Optional[SimulationConfig] = None) -> "Simulation":
        """Random initial population drawn from `config` with a seeded RNG."""
        config = config or SimulationConfig()
        sim = cls(mu=gravitational_parameter, config=config)
        rng = random.Random(seed)
        for body in generate_bodies(body_count, gravitational_parameter, config, rng):
            sim.active.add(body)
        logger.info("Created simulation with %d bodies (mu=%g, seed=%s)",
                    body_count, gravitational_parameter, seed)
        return sim

    @classmethod
    def from_bodies(cls, bodies: Iterable[Body], gravitational_parameter: float,
                    config: Optional[SimulationConfig] = None) -> "Simulation":
        """Explicit initial population. Mean motions must agree with mu."""
        sim = cls(mu=gravitational_parameter, config=config or SimulationConfig())
        for body in sorted(bodies, key=lambda b: b.body_id):
            expected = mean_motion(body.elements.semi_major_axis, gravitational_parameter)
            if not math.isclose(body.elements.mean_motion, expected, rel_tol=1e-9):
                raise ValueError(
                    f"Body {body.body_id} mean motion {body.elements.mean_motion} "
                    f"does not match mu={gravitational_parameter} (expected {expected})")
            sim.active.add(body)
        return sim

    # --- read accessors -------------------------------------------------

    @property
    def simulation_time(self) -> float:
        return self.active.simulation_time

    def active_count(self) -> int:
        return self.active.active_count()

    def active_ids(self) -> List[int]:
        return self.active.active_ids()

    def is_active(self, body_id: int) -> bool:
        return self.active.is_active(body_id)

    def body(self, body_id: int) -> Body:
        return self.active.get(body_id)

    def position(self, body_id: int) -> Vector3:
        return self.active.get(body_id).position_at(self.simulation_time)

    def velocity(self, body_id: int) -> Vector3:
        _r, v = self.active.get(body_id).state_at(self.simulation_time)
        return v

    def radius(self, body_id: int) -> float:
        return self.active.get(body_id).radius

    # --- stepping ---------------------------------------------------------

    def advance(self, elapsed: Duration) -> None:
        """
        Move the clock forward by `elapsed` and resolve every collision
        detected at the new time. Each body takes part in at most one merge
        per call; mutations are committed together once all pairs are handled.
        """
        dt = _to_seconds(elapsed)
        t = self.active.advance_clock(dt)

        states: Dict[int, Tuple[Vector3, Vector3]] = {
            body.body_id: body.state_at(t) for body in self.active.bodies()
        }
        positions = {body_id: rv[0] for body_id, rv in states.items()}
        radii = {body.body_id: body.radius for body in self.active.bodies()}

        margin = broad_phase_margin(self.config.broad_phase_margin,
                                    [rv[1] for rv in states.values()], dt)
        pairs = detect_collisions(positions, radii, margin)

        consumed: Set[int] = set()
        results: List[MergeResult] = []
        for id_a, id_b in pairs:
            if id_a in consumed or id_b in consumed:
                continue
            try:
                result = merge_bodies(self.active.get(id_a), self.active.get(id_b), t, self.mu)
            except DegenerateOrbitError as exc:
                logger.debug("Skipping merge of %d and %d at t=%.6f: %s", id_a, id_b, t, exc)
                continue
            consumed.update((id_a, id_b))
            results.append(result)

        self.last_events = [self._commit(result, t) for result in results]
        self.ticks += 1
        if self.last_events:
            logger.info("t=%.6f: %d merge(s), %d bodies active",
                        t, len(self.last_events), self.active_count())

    def _commit(self, result: MergeResult, t: float) -> MergeEvent:
        pruned = self.config.merge_policy.should_prune(result.body.elements)
        self.active.retire(result.retired_id)
        if pruned:
            self.active.retire(result.retained_id)
            logger.debug("Pruned merged body %d (a=%.6f, e=%.6f)", result.retained_id,
                         result.body.elements.semi_major_axis, result.body.elements.eccentricity)
        else:
            self.active.replace(result.body)
        return MergeEvent(
            time=t,
            retained_id=result.retained_id,
            retired_id=result.retired_id,
            radius=result.body.radius,
            position=result.position,
            velocity=result.velocity,
            pruned=pruned,
        )


def broad_phase_margin(base_margin: float, velocities: Iterable[Vector3], dt: float) -> float:
    """
    Box inflation for one tick: never less than the farthest any body can
    travel during dt.
    """
    max_speed = max((norm(v) for v in velocities), default=0.0)
    return max(base_margin, max_speed * dt)


def _to_seconds(elapsed: Duration) -> float:
    if isinstance(elapsed, timedelta):
        dt = elapsed.total_seconds()
    else:
        dt = float(elapsed)
    if not math.isfinite(dt) or dt < 0:
        raise ValueError(f"Elapsed time must be finite and non-negative. Got: {elapsed}")
    return dt


def create(body_count: int, gravitational_parameter: float, seed: Optional[int] = None,
           config: Optional[SimulationConfig] = None) -> Simulation:
    return Simulation.create(body_count, gravitational_parameter, seed, config)
