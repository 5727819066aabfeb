from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

import plotly.graph_objects as go

from galaxy_sim.core.frames import Vector3
from galaxy_sim.simulation.engine import SimulationLog

# Marker size (px) per unit of body radius
MARKER_SCALE = 400.0
MIN_MARKER_PX = 2.0

_SCENE = dict(
    xaxis_title="X",
    yaxis_title="Y",
    zaxis_title="Z",
    aspectmode="data",
)


def _marker_size(radius: float) -> float:
    return max(MIN_MARKER_PX, radius * MARKER_SCALE)


def _central_mass_trace() -> go.Scatter3d:
    return go.Scatter3d(
        x=[0.0], y=[0.0], z=[0.0],
        mode="markers",
        name="central mass",
        marker=dict(size=8, color="gold"),
    )


def _snapshots(log: SimulationLog) -> Dict[float, List[Tuple[int, Vector3, float]]]:
    """time -> [(body_id, position, radius)] for every body alive at that time."""
    frames: Dict[float, List[Tuple[int, Vector3, float]]] = {}
    for body_id, samples in log.body_positions.items():
        radii = log.body_radii.get(body_id, [])
        for k, (t, r) in enumerate(samples):
            radius = radii[k][1] if k < len(radii) else 0.0
            frames.setdefault(t, []).append((body_id, r, radius))
    return frames


def render_static_scene(
    log: SimulationLog,
    out_html: str = "out/galaxy_scene.html",
    show_central_mass: bool = True,
) -> str:
    """
    Renders a static 3D scene:
      - Central mass at the origin
      - Track of each body while it was active
      - Last position marker for each body, sized by radius
      - Merge locations
    """
    if not log.body_positions:
        raise ValueError("No body positions found in log.")

    fig = go.Figure()
    if show_central_mass:
        fig.add_trace(_central_mass_trace())

    for body_id in sorted(log.body_positions):
        samples = log.body_positions[body_id]
        xs = [r[0] for (_t, r) in samples]
        ys = [r[1] for (_t, r) in samples]
        zs = [r[2] for (_t, r) in samples]
        radius = log.body_radii[body_id][-1][1] if log.body_radii.get(body_id) else 0.0

        fig.add_trace(go.Scatter3d(
            x=xs, y=ys, z=zs,
            mode="lines",
            name=f"body {body_id} track",
            line=dict(width=2),
        ))
        fig.add_trace(go.Scatter3d(
            x=[xs[-1]], y=[ys[-1]], z=[zs[-1]],
            mode="markers",
            name=f"body {body_id}",
            marker=dict(size=_marker_size(radius)),
        ))

    if log.events:
        fig.add_trace(go.Scatter3d(
            x=[ev["position"][0] for ev in log.events],
            y=[ev["position"][1] for ev in log.events],
            z=[ev["position"][2] for ev in log.events],
            mode="markers",
            name="merges",
            marker=dict(size=4, symbol="x", color="red"),
        ))

    fig.update_layout(
        title="Galaxy Sim — Orbits and Merges",
        scene=_SCENE,
        margin=dict(l=0, r=0, t=40, b=0),
        showlegend=False,
    )

    Path(out_html).parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(out_html, auto_open=False)
    return out_html


def render_playback(
    log: SimulationLog,
    out_html: str = "out/galaxy_playback.html",
    frame_stride: int = 1,
) -> str:
    """
    Animated playback: one frame per recorded time stamp (strided), showing
    every body active at that time with a marker sized by its radius.
    """
    snapshots = _snapshots(log)
    if not snapshots:
        raise ValueError("No body positions found in log.")

    times_full = sorted(snapshots)
    times = times_full[::max(1, frame_stride)]

    def bodies_trace(t: float) -> go.Scatter3d:
        snap = snapshots[t]
        return go.Scatter3d(
            x=[r[0] for (_id, r, _rad) in snap],
            y=[r[1] for (_id, r, _rad) in snap],
            z=[r[2] for (_id, r, _rad) in snap],
            mode="markers",
            text=[f"body {body_id}" for (body_id, _r, _rad) in snap],
            marker=dict(size=[_marker_size(rad) for (_id, _r, rad) in snap]),
            name="bodies",
        )

    fig = go.Figure(data=[_central_mass_trace(), bodies_trace(times[0])])

    # Frames update the bodies trace (index 1)
    fig.frames = [
        go.Frame(name=str(i), data=[bodies_trace(t)], traces=[1])
        for i, t in enumerate(times)
    ]

    fig.update_layout(
        title=f"Galaxy Sim — Playback ({len(times)} frames)",
        scene=_SCENE,
        margin=dict(l=0, r=0, t=40, b=0),
        updatemenus=[dict(
            type="buttons",
            showactive=True,
            buttons=[
                dict(label="Play", method="animate",
                     args=[None, {"frame": {"duration": 50, "redraw": True}, "fromcurrent": True}]),
                dict(label="Pause", method="animate",
                     args=[[None], {"frame": {"duration": 0, "redraw": False}, "mode": "immediate"}]),
            ],
        )],
        sliders=[dict(
            steps=[dict(method="animate",
                        args=[[str(i)], {"mode": "immediate", "frame": {"duration": 0, "redraw": True}}],
                        label=f"{times[i]:.2f}")
                   for i in range(0, len(times), max(1, len(times) // 20))],
            active=0,
        )],
    )

    Path(out_html).parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(out_html, auto_open=False)
    return out_html
