from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional

from galaxy_sim.simulation.driver import Simulation
from galaxy_sim.simulation.engine import SimulationLog


@dataclass
class MergeRecorderSystem:
    name: str = "merge_recorder"
    # Tick whose events were already seen; None until the first observation
    last_tick: Optional[int] = field(default=None, repr=False)

    def on_step(self, t: float, sim: Simulation, log: SimulationLog) -> None:
        # The first observation only sets the baseline: events present then
        # come from advances made before this recorder was attached
        seen = self.last_tick
        self.last_tick = sim.ticks
        if seen is None or seen == sim.ticks:
            return
        for event in sim.last_events:
            record = {"type": "merge", **asdict(event)}
            record["position"] = list(event.position)
            record["velocity"] = list(event.velocity)
            log.events.append(record)
