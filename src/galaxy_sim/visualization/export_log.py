from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from galaxy_sim.simulation.engine import SimulationLog


def export_log_to_json(log: SimulationLog, out_path: str = "out/galaxy_log.json") -> str:
    """
    Export playback data for an external viewer:
      {
        "bodies": {
          "0": [{"t": 0.0, "r": [x, y, z], "radius": 0.01}, ...],
          ...
        },
        "events": [{"type": "merge", "time": ..., "retained_id": ..., ...}, ...]
      }
    """
    data: Dict[str, Any] = {"bodies": {}, "events": list(log.events)}

    for body_id in sorted(log.body_positions):
        samples = log.body_positions[body_id]
        radii = log.body_radii.get(body_id, [])
        if len(radii) != len(samples):
            raise ValueError(f"Body {body_id} has {len(samples)} positions but {len(radii)} radii.")
        data["bodies"][str(body_id)] = [
            {"t": t, "r": [r[0], r[1], r[2]], "radius": radius}
            for (t, r), (_t, radius) in zip(samples, radii)
        ]

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(data, f)

    return out_path
