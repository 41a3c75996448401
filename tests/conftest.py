import numpy as np
import pytest

from danielsonpy.astro import Orbit, SpacecraftState


EARTH_MU = 3.986004418e14


@pytest.fixture
def leo_orbit():
    """Near-circular, moderately inclined low Earth orbit."""
    return Orbit.from_classical_elements(
        sm_axis=7000e3,
        eccentricity=0.01,
        raan=0.0,
        argp=0.7,
        inclination=0.1,
        mean_anomaly=1.2,
        epoch=0.0,
        grav_param=EARTH_MU,
    )


@pytest.fixture
def inclined_orbit():
    """Sun-synchronous-like orbit, far enough from the equator for nodal motion to be well defined."""
    return Orbit.from_classical_elements(
        sm_axis=7078e3,
        eccentricity=0.002,
        raan=np.deg2rad(40.0),
        argp=np.deg2rad(90.0),
        inclination=np.deg2rad(98.0),
        mean_anomaly=0.5,
        grav_param=EARTH_MU,
    )


@pytest.fixture
def leo_state(leo_orbit):
    return SpacecraftState(leo_orbit, mass=1000.0)


@pytest.fixture
def inclined_state(inclined_orbit):
    return SpacecraftState(inclined_orbit, mass=500.0)
