from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple

from galaxy_sim.core.frames import Vector3
from galaxy_sim.simulation.driver import Simulation


class System(Protocol):
    """
    Plugin interface for simulation systems.
    Each system runs per tick, after the simulation has advanced, and can
    write to the log.
    """
    name: str

    def on_step(self, t: float, sim: Simulation, log: "SimulationLog") -> None:
        ...


@dataclass
class SimulationLog:
    """
    Stores outputs from a simulation run.
    Keep it simple and serializable.
    """
    # Positions: body_id -> list of (t, r_world)
    body_positions: Dict[int, List[Tuple[float, Vector3]]] = field(default_factory=dict)

    # Radii: body_id -> list of (t, radius)
    body_radii: Dict[int, List[Tuple[float, float]]] = field(default_factory=dict)

    # Merge events as plain dicts
    events: List[Dict[str, Any]] = field(default_factory=list)

    def record_position(self, body_id: int, t: float, r: Vector3) -> None:
        self.body_positions.setdefault(body_id, []).append((t, r))

    def record_radius(self, body_id: int, t: float, radius: float) -> None:
        self.body_radii.setdefault(body_id, []).append((t, radius))


@dataclass
class Engine:
    """
    Fixed-step headless driver standing in for a render loop.
    Deterministic replay: given same simulation + dt + duration => same output.
    """
    dt: float
    systems: List[System] = field(default_factory=list)

    def run(self, sim: Simulation, duration: float) -> SimulationLog:
        if self.dt <= 0:
            raise ValueError("dt must be positive.")
        if duration < 0:
            raise ValueError("duration must be >= 0.")

        log = SimulationLog()
        t_end = sim.simulation_time + duration

        # Initial state is observed before the first advance
        for sys in self.systems:
            sys.on_step(sim.simulation_time, sim, log)

        # Note: inclusive end if it lands exactly; otherwise the last step is shortened
        # Relative end tolerance so large clocks still terminate
        tol = 1e-9 * max(1.0, abs(t_end))
        while sim.simulation_time < t_end - tol:
            sim.advance(min(self.dt, t_end - sim.simulation_time))
            for sys in self.systems:
                sys.on_step(sim.simulation_time, sim, log)

        return log
