from __future__ import annotations

from dataclasses import dataclass

from galaxy_sim.simulation.driver import Simulation
from galaxy_sim.simulation.engine import SimulationLog


@dataclass
class StateRecorderSystem:
    name: str = "state_recorder"

    def on_step(self, t: float, sim: Simulation, log: SimulationLog) -> None:
        for body_id in sim.active_ids():
            log.record_position(body_id, t, sim.position(body_id))
            log.record_radius(body_id, t, sim.radius(body_id))
