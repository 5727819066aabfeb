import logging
import math

from galaxy_sim.simulation.config import SimulationConfig
from galaxy_sim.simulation.driver import Simulation
from galaxy_sim.simulation.engine import Engine
from galaxy_sim.simulation.systems.merge_recorder import MergeRecorderSystem
from galaxy_sim.simulation.systems.state_recorder import StateRecorderSystem
from galaxy_sim.visualization.export_log import export_log_to_json
from galaxy_sim.visualization.plotly_viewer import render_playback, render_static_scene

logging.basicConfig(level=logging.INFO, format="%(message)s")

MU = 0.01

# Crowded, nearly coplanar disc so merges happen within a few orbits
config = SimulationConfig(
    eccentricity_range=(0.0, 0.3),
    semi_major_axis_range=(0.15, 0.35),
    radius_range=(0.008, 0.02),
    max_inclination_rad=math.radians(5.0),
)

sim = Simulation.create(body_count=120, gravitational_parameter=MU, seed=42, config=config)

engine = Engine(
    dt=0.05,
    systems=[StateRecorderSystem(), MergeRecorderSystem()],
)

# Roughly three orbits at the outer edge of the disc
outer_period = 2.0 * math.pi / math.sqrt(MU / config.semi_major_axis_range[1] ** 3)
log = engine.run(sim, duration=3.0 * outer_period)

print(f"Simulated t={sim.simulation_time:.2f}, merges={len(log.events)}, active={sim.active_count()}")
for event in log.events[:10]:
    print(f"  t={event['time']:8.3f}  {event['retired_id']:4d} -> {event['retained_id']:4d}  "
          f"radius={event['radius']:.4f}")

print("JSON:", export_log_to_json(log))
print("Scene:", render_static_scene(log))
print("Playback:", render_playback(log, frame_stride=4))
