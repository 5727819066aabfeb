"""
Tests for the simulation driver, its active set and the public interface.
"""
import math
from datetime import timedelta

import pytest

from galaxy_sim.core.frames import cross, normalize, scale
from galaxy_sim.objects.body import Body
from galaxy_sim.physics.merge import MergePolicy
from galaxy_sim.physics.orbit import OrbitalElements, elements_from_state
from galaxy_sim.simulation.config import SimulationConfig
from galaxy_sim.simulation.driver import Simulation, broad_phase_margin, create
from galaxy_sim.simulation.registry import ActiveSet

MU = 0.01


def circular_body(body_id, radius, r, normal=(0.0, 1.0, 0.0), sign=1.0):
    speed = math.sqrt(MU / math.sqrt(sum(c * c for c in r)))
    v = scale(normalize(cross(normal, r)), sign * speed)
    return Body(body_id=body_id, radius=radius, elements=elements_from_state(r, v, 0.0, MU))


@pytest.fixture
def touching_pair():
    return [
        circular_body(0, 0.01, (-0.25, 0.0, 0.0)),
        circular_body(1, 0.01, (-0.255, 0.0, 0.0)),
    ]


@pytest.fixture
def triple():
    # A-B, A-C and B-C all overlap at t=0
    return [
        circular_body(0, 0.01, (-0.25, 0.0, 0.0)),
        circular_body(1, 0.01, (-0.255, 0.0, 0.0)),
        circular_body(2, 0.01, (-0.245, 0.0, 0.0)),
    ]


@pytest.fixture
def head_on_pair():
    return [
        circular_body(0, 0.01, (0.0, 0.0, 0.25)),
        circular_body(1, 0.01, (0.0, 0.0, 0.25), sign=-1.0),
    ]


class TestActiveSet:
    def test_add_and_lookup(self, touching_pair):
        active = ActiveSet()
        for body in touching_pair:
            active.add(body)
        assert active.active_count() == 2
        assert active.active_ids() == [0, 1]
        assert active.get(1) is touching_pair[1]

    def test_duplicate_id_rejected(self, touching_pair):
        active = ActiveSet()
        active.add(touching_pair[0])
        with pytest.raises(ValueError, match="Duplicate or reused body ID"):
            active.add(touching_pair[0])

    def test_retired_id_never_reused(self, touching_pair):
        active = ActiveSet()
        for body in touching_pair:
            active.add(body)
        active.retire(1)
        assert not active.is_active(1)
        assert active.active_count() == 1
        with pytest.raises(ValueError, match="Duplicate or reused body ID"):
            active.add(touching_pair[1])

    def test_skipped_ids_are_tombstones(self):
        active = ActiveSet()
        active.add(circular_body(3, 0.01, (0.3, 0.0, 0.0)))
        assert active.active_ids() == [3]
        assert not active.is_active(0)
        assert active.active_count() == 1

    def test_replace_requires_live_id(self, touching_pair):
        active = ActiveSet()
        active.add(touching_pair[0])
        active.retire(0)
        with pytest.raises(ValueError, match="not active"):
            active.replace(touching_pair[0])

    def test_unknown_ids(self):
        active = ActiveSet()
        assert not active.is_active(0)
        assert not active.is_active(-1)
        with pytest.raises(ValueError, match="not active"):
            active.get(5)

    def test_clock_is_monotonic(self):
        active = ActiveSet()
        assert active.advance_clock(0.5) == 0.5
        with pytest.raises(ValueError, match="backwards"):
            active.advance_clock(-0.1)


class TestCreate:
    def test_random_population(self):
        sim = Simulation.create(50, MU, seed=1)
        assert sim.active_count() == 50
        assert sim.active_ids() == list(range(50))
        assert sim.simulation_time == 0.0
        for body_id in sim.active_ids():
            assert sim.is_active(body_id)
            assert sim.radius(body_id) > 0
            assert len(sim.position(body_id)) == 3

    def test_seed_reproducible(self):
        a = create(20, MU, seed=7)
        b = create(20, MU, seed=7)
        c = create(20, MU, seed=8)
        assert [a.position(i) for i in range(20)] == [b.position(i) for i in range(20)]
        assert [a.position(i) for i in range(20)] != [c.position(i) for i in range(20)]

    def test_config_ranges_respected(self):
        config = SimulationConfig(
            eccentricity_range=(0.1, 0.2),
            semi_major_axis_range=(0.3, 0.4),
            radius_range=(0.001, 0.002),
            max_inclination_rad=0.1,
        )
        sim = Simulation.create(30, MU, seed=3, config=config)
        for body_id in sim.active_ids():
            elements = sim.body(body_id).elements
            assert 0.1 <= elements.eccentricity <= 0.2
            assert 0.3 <= elements.semi_major_axis <= 0.4
            assert 0.001 <= sim.radius(body_id) <= 0.002
            # Normal within the inclination cone about +Y
            assert elements.orbit_normal[1] >= math.cos(0.1) - 1e-12
            assert math.isclose(elements.mean_motion, math.sqrt(MU / elements.semi_major_axis ** 3))

    def test_non_positive_mu_rejected(self):
        with pytest.raises(ValueError, match="Gravitational parameter must be positive"):
            Simulation.create(3, 0.0)

    def test_from_bodies_checks_mean_motion(self):
        elements = OrbitalElements.from_shape(0.3, 0.0, 0.0, (0.0, 1.0, 0.0), mu=MU)
        with pytest.raises(ValueError, match="does not match mu"):
            Simulation.from_bodies([Body(0, 0.01, elements)], gravitational_parameter=2 * MU)

    def test_from_bodies_duplicate_ids(self):
        elements = OrbitalElements.from_shape(0.3, 0.0, 0.0, (0.0, 1.0, 0.0), mu=MU)
        with pytest.raises(ValueError, match="Duplicate"):
            Simulation.from_bodies([Body(0, 0.01, elements), Body(0, 0.02, elements)], MU)


class TestAdvance:
    def test_clock_accumulates(self):
        sim = create(5, MU, seed=2)
        sim.advance(0.25)
        sim.advance(timedelta(seconds=0.5))
        sim.advance(0)
        assert math.isclose(sim.simulation_time, 0.75)

    def test_negative_elapsed_rejected(self):
        sim = create(5, MU, seed=2)
        with pytest.raises(ValueError, match="non-negative"):
            sim.advance(-1.0)
        with pytest.raises(ValueError, match="non-negative"):
            sim.advance(float("nan"))
        assert sim.simulation_time == 0.0

    def test_accessors_follow_simulation_time(self):
        sim = create(3, MU, seed=4)
        sim.advance(1.5)
        body = sim.body(0)
        r, v = body.state_at(1.5)
        assert sim.position(0) == r
        assert sim.velocity(0) == v

    def test_merge_reduces_count_by_one(self, touching_pair):
        sim = Simulation.from_bodies(touching_pair, MU)
        sim.advance(0.0)
        assert sim.active_count() == 1
        assert sim.is_active(0)
        assert not sim.is_active(1)
        assert math.isclose(sim.radius(0), 0.01 * 2 ** (1.0 / 3.0), rel_tol=1e-12)
        assert len(sim.last_events) == 1
        event = sim.last_events[0]
        assert (event.retained_id, event.retired_id) == (0, 1)
        assert not event.pruned

    def test_retired_id_never_reappears(self, touching_pair):
        sim = Simulation.from_bodies(touching_pair, MU)
        sim.advance(0.0)
        for _ in range(20):
            sim.advance(0.3)
            assert not sim.is_active(1)
        with pytest.raises(ValueError, match="not active"):
            sim.position(1)
        with pytest.raises(ValueError, match="not active"):
            sim.radius(1)

    def test_merged_body_continues_from_merge_state(self, touching_pair):
        sim = Simulation.from_bodies(touching_pair, MU)
        sim.advance(0.0)
        event = sim.last_events[0]
        assert all(abs(x - y) < 1e-9 for x, y in zip(sim.position(0), event.position))
        assert all(abs(x - y) < 1e-9 for x, y in zip(sim.velocity(0), event.velocity))

    def test_one_merge_per_body_per_tick(self, triple):
        sim = Simulation.from_bodies(triple, MU)
        sim.advance(0.0)
        # (0,1) merges first; (0,2) and (1,2) wait for the next tick
        assert sim.active_count() == 2
        assert sim.active_ids() == [0, 2]
        assert [(e.retained_id, e.retired_id) for e in sim.last_events] == [(0, 1)]

        sim.advance(0.0)
        assert sim.active_count() == 1
        assert sim.active_ids() == [0]
        assert [(e.retained_id, e.retired_id) for e in sim.last_events] == [(0, 2)]
        assert math.isclose(sim.radius(0) ** 3, 3 * 0.01 ** 3, rel_tol=1e-12)

    def test_degenerate_merge_is_skipped(self, head_on_pair):
        sim = Simulation.from_bodies(head_on_pair, MU)
        sim.advance(0.0)
        assert sim.active_count() == 2
        assert sim.is_active(0)
        assert sim.is_active(1)
        assert sim.last_events == []

    def test_pruning_policy_retires_survivor(self, touching_pair):
        config = SimulationConfig(merge_policy=MergePolicy(max_eccentricity=0.0))
        sim = Simulation.from_bodies(touching_pair, MU, config=config)
        sim.advance(0.0)
        assert sim.active_count() == 0
        assert sim.last_events[0].pruned

    def test_mass_conserved_over_random_run(self):
        config = SimulationConfig(
            semi_major_axis_range=(0.2, 0.3),
            radius_range=(0.01, 0.02),
            max_inclination_rad=0.05,
        )
        sim = Simulation.create(60, MU, seed=5, config=config)
        total_mass = sum(sim.radius(i) ** 3 for i in sim.active_ids())
        retired = set()
        count = sim.active_count()
        for _ in range(40):
            sim.advance(0.2)
            assert sim.active_count() == count - len(sim.last_events)
            count = sim.active_count()
            retired.update(e.retired_id for e in sim.last_events)
            assert not any(sim.is_active(i) for i in retired)
            assert math.isclose(sum(sim.radius(i) ** 3 for i in sim.active_ids()),
                                total_mass, rel_tol=1e-9)


def test_crossing_orbits_merge_through_driver():
    p = (0.0, 0.0, 0.25)
    bodies = [
        circular_body(0, 0.01, p, normal=normalize((1.0, 1.0, 0.0))),
        circular_body(1, 0.01, p, normal=normalize((1.0, -1.0, 0.0))),
    ]
    sim = Simulation.from_bodies(bodies, MU)
    sim.advance(0.0)
    assert sim.active_count() == 1
    assert math.isclose(sim.radius(0), 0.01 * 2 ** (1.0 / 3.0), rel_tol=1e-12)


class TestBroadPhaseMargin:
    def test_configured_margin_when_slow(self):
        assert broad_phase_margin(1e-3, [(0.01, 0.0, 0.0)], dt=0.01) == 1e-3

    def test_grows_with_fastest_body(self):
        velocities = [(0.1, 0.0, 0.0), (0.0, 3.0, 4.0), (0.0, 0.0, -1.0)]
        assert math.isclose(broad_phase_margin(1e-3, velocities, dt=0.5), 2.5)

    def test_no_bodies(self):
        assert broad_phase_margin(1e-3, [], dt=10.0) == 1e-3

    def test_zero_dt(self):
        assert broad_phase_margin(0.0, [(1.0, 0.0, 0.0)], dt=0.0) == 0.0


def test_ticks_count_advances():
    sim = create(3, MU, seed=1)
    assert sim.ticks == 0
    sim.advance(0.1)
    sim.advance(0.0)
    assert sim.ticks == 2
