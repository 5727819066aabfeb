import math
import pytest

from galaxy_sim.objects.body import Body
from galaxy_sim.physics.orbit import OrbitalElements
from galaxy_sim.simulation.config import SimulationConfig
from galaxy_sim.simulation.driver import Simulation

MU = 0.01


def valid_elements(**overrides):
    params = dict(
        semi_major_axis=0.3,
        eccentricity=0.1,
        phase_at_epoch=0.0,
        mean_motion=math.sqrt(MU / 0.3 ** 3),
        orbit_normal=(0.0, 1.0, 0.0),
        heading=0.0,
    )
    params.update(overrides)
    return OrbitalElements(**params)


def test_orbital_elements_rejects_unbound_eccentricity():
    with pytest.raises(ValueError, match="Only bound orbits are supported"):
        valid_elements(eccentricity=1.2)

    with pytest.raises(ValueError, match="Only bound orbits are supported"):
        valid_elements(eccentricity=1.0)

    with pytest.raises(ValueError, match="Only bound orbits are supported"):
        valid_elements(eccentricity=-0.1)


def test_orbital_elements_validates_semi_major_axis():
    with pytest.raises(ValueError, match="Semi-major axis must be positive"):
        valid_elements(semi_major_axis=0.0)

    with pytest.raises(ValueError, match="Semi-major axis must be positive"):
        OrbitalElements.from_shape(-1.0, 0.1, 0.0, (0.0, 1.0, 0.0), mu=MU)


def test_orbital_elements_validates_mean_motion():
    with pytest.raises(ValueError, match="Mean motion must be positive"):
        valid_elements(mean_motion=0.0)


def test_orbital_elements_validates_angles():
    with pytest.raises(ValueError, match="Phase at epoch must be finite"):
        valid_elements(phase_at_epoch=math.nan)

    with pytest.raises(ValueError, match="Heading must be finite"):
        valid_elements(heading=math.inf)


def test_orbital_elements_validates_normal():
    with pytest.raises(ValueError, match="Orbit normal cannot be the zero vector"):
        valid_elements(orbit_normal=(0.0, 0.0, 0.0))

    with pytest.raises(ValueError, match="Orbit normal must be a finite 3-vector"):
        valid_elements(orbit_normal=(0.0, math.nan, 1.0))


def test_orbital_elements_normalizes_normal():
    elements = valid_elements(orbit_normal=(0.0, 3.0, 4.0))
    assert elements.orbit_normal == (0.0, 0.6, 0.8)


def test_orbital_elements_derived_quantities():
    elements = OrbitalElements.from_shape(0.25, 0.2, 0.0, (0.0, 1.0, 0.0), mu=MU)
    assert math.isclose(elements.mean_motion, 0.8)
    assert math.isclose(elements.period, 2.0 * math.pi / 0.8)
    assert math.isclose(elements.periapsis_distance, 0.2)
    assert math.isclose(elements.apoapsis_distance, 0.3)


def test_body_validates_radius():
    with pytest.raises(ValueError, match="Radius must be positive"):
        Body(0, 0.0, valid_elements())

    with pytest.raises(ValueError, match="Radius must be positive"):
        Body(0, -0.01, valid_elements())


def test_body_validates_id():
    with pytest.raises(ValueError, match="Body ID must be a non-negative integer"):
        Body(-1, 0.01, valid_elements())

    with pytest.raises(ValueError, match="Body ID must be a non-negative integer"):
        Body("A", 0.01, valid_elements())


def test_body_mass_is_radius_cubed():
    assert math.isclose(Body(0, 0.2, valid_elements()).mass, 0.008)


def test_config_rejects_unbound_eccentricity_range():
    with pytest.raises(ValueError, match="Eccentricity range must lie in"):
        SimulationConfig(eccentricity_range=(0.0, 1.2))


def test_config_validates_ranges():
    with pytest.raises(ValueError, match="Semi-major axis range must be positive"):
        SimulationConfig(semi_major_axis_range=(0.0, 1.0))

    with pytest.raises(ValueError, match="Radius range must be positive"):
        SimulationConfig(radius_range=(-0.1, 0.1))

    with pytest.raises(ValueError, match="low bound must be <= high bound"):
        SimulationConfig(radius_range=(0.2, 0.1))

    with pytest.raises(ValueError, match="Max inclination must be in range"):
        SimulationConfig(max_inclination_rad=4.0)

    with pytest.raises(ValueError, match="Broad-phase margin must be non-negative"):
        SimulationConfig(broad_phase_margin=-1e-3)


def test_simulation_rejects_invalid_config_before_running():
    with pytest.raises(ValueError, match="Eccentricity range must lie in"):
        Simulation.create(10, MU, seed=0, config=SimulationConfig(eccentricity_range=(1.2, 1.2)))


def test_negative_body_count_rejected():
    with pytest.raises(ValueError, match="Body count must be non-negative"):
        Simulation.create(-1, MU)


def test_config_accepts_valid_values():
    config = SimulationConfig(eccentricity_range=(0.0, 0.9), semi_major_axis_range=(1.0, 1.0))
    assert config.eccentricity_range == (0.0, 0.9)
