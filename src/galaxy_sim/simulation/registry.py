from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from galaxy_sim.objects.body import Body


@dataclass
class ActiveSet:
    """
    Arena of bodies indexed by id, plus the simulation clock.
    A retired slot keeps a tombstone (None) so ids are never reused.
    Keep this pure: just data + lookup, no stepping logic.
    """
    slots: List[Optional[Body]] = field(default_factory=list)
    simulation_time: float = 0.0
    _active: int = field(default=0, init=False, repr=False)

    def add(self, body: Body) -> None:
        if body.body_id < len(self.slots):
            raise ValueError(f"Duplicate or reused body ID: {body.body_id}")
        # Skipped ids become permanent tombstones
        self.slots.extend([None] * (body.body_id - len(self.slots)))
        self.slots.append(body)
        self._active += 1

    def is_active(self, body_id: int) -> bool:
        return 0 <= body_id < len(self.slots) and self.slots[body_id] is not None

    def get(self, body_id: int) -> Body:
        if not self.is_active(body_id):
            raise ValueError(f"Body {body_id} is not active.")
        return self.slots[body_id]

    def replace(self, body: Body) -> None:
        """Swap in new elements/radius for a live id (merge winner)."""
        self.get(body.body_id)
        self.slots[body.body_id] = body

    def retire(self, body_id: int) -> None:
        self.get(body_id)
        self.slots[body_id] = None
        self._active -= 1

    def advance_clock(self, dt: float) -> float:
        if dt < 0:
            raise ValueError(f"Simulation time cannot run backwards. Got dt={dt}")
        self.simulation_time += dt
        return self.simulation_time

    def active_count(self) -> int:
        return self._active

    def active_ids(self) -> List[int]:
        return [i for i, body in enumerate(self.slots) if body is not None]

    def bodies(self) -> Iterator[Body]:
        return (body for body in self.slots if body is not None)
