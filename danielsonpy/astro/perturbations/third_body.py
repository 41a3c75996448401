from __future__ import annotations

import jax.numpy as jnp
import numpy as np

from .. import conversions, errors, orbit, parameters as parameters_, time as time_
from . import base


class KeplerianEphemeris:
    r"""
    Position of a body moving on a fixed Keplerian orbit about the central body.

    Used by :class:`ThirdBodyAttraction` and :class:`~danielsonpy.astro.perturbations.SolarRadiationPressure` to locate
    the Moon and Sun. The orbit is propagated analytically by advancing the mean longitude at the Keplerian rate, which
    is adequate for the averaged effect of distant bodies.

    Parameters
    ----------
    body_orbit : :class:`~danielsonpy.astro.Orbit`
        Orbit of the body at epoch ``body_orbit.epoch``. For the Sun this is the orbit of the central body around it.
    invert : bool
        Whether ``body_orbit`` describes the motion of the central body around the third body, in which case the
        position of the third body is the opposite of the orbit's.
    """

    def __init__(self, body_orbit: orbit.Orbit, invert: bool = False):
        self.body_orbit = body_orbit
        self.invert = invert

    def position(self, epoch: float) -> jnp.ndarray:
        r"""
        Planet-centered inertial position of the body at ``epoch``.
        """

        elements = jnp.asarray(self.body_orbit.elements)
        elements = elements.at[5].add(self.body_orbit.mean_motion * (epoch - self.body_orbit.epoch))
        position, _ = conversions.equinoctial_2_state(elements, self.body_orbit.grav_param)

        return -position if self.invert else position

    @classmethod
    def moon(cls, mean_anomaly: float = 0.0) -> KeplerianEphemeris:
        r"""
        Mean orbit of the Moon around the Earth.

        Parameters
        ----------
        mean_anomaly : float
            Mean anomaly of the Moon at epoch zero.
        """

        return cls(orbit.Orbit.from_classical_elements(
            sm_axis=3.844e8,
            eccentricity=0.0549,
            raan=np.deg2rad(125.08),
            argp=np.deg2rad(318.15),
            inclination=np.deg2rad(5.145),
            mean_anomaly=mean_anomaly,
            grav_param=3.986004418e14 + 4.9048695e12,
        ))

    @classmethod
    def sun(cls, initial_global_time: time_.Time = None, obliquity: float = np.deg2rad(23.439)) -> KeplerianEphemeris:
        r"""
        Apparent orbit of the Sun around the Earth.

        The orbit of the Earth around the Sun lies in the ecliptic, inclined by the ``obliquity`` with respect to the
        equatorial inertial frame. Its mean anomaly is propagated from its J2000 value at a constant rate.

        Parameters
        ----------
        initial_global_time : :class:`~danielsonpy.astro.Time`
            Gregorian date and UT1 time of epoch zero. Defaults to the J2000 epoch.
        obliquity : float
            Inclination of the ecliptic on the equator.
        """

        earth_mean_motion = np.deg2rad(0.98560028)  # rad/day
        j2000_mean_anomaly = np.deg2rad(357.5277233)
        j2000_julian_time = 2451545

        days = 0.0 if initial_global_time is None else initial_global_time.julian_date - j2000_julian_time
        mean_anomaly = (j2000_mean_anomaly + earth_mean_motion * days) % (2 * np.pi)

        earth_orbit = orbit.Orbit.from_classical_elements(
            sm_axis=149597870.7e3,
            eccentricity=0.0167086,
            raan=0.0,
            argp=np.deg2rad(102.937),
            inclination=obliquity,
            mean_anomaly=mean_anomaly,
            grav_param=1.32712440018e20,
        )
        return cls(earth_orbit, invert=True)


class ThirdBodyAttraction(base.ConservativePerturbation):
    r"""
    Perturbation caused by the gravity of a distant body such as the Moon or the Sun.

    The disturbing potential is the difference between the attraction of the body on the spacecraft and on the central
    body:

    .. math::

        R = \mu_3 \left(\frac{1}{|\vec{r}_3 - \vec{r}|} - \frac{1}{|\vec{r}_3|}
            - \frac{\vec{r} \cdot \vec{r}_3}{|\vec{r}_3|^3}\right)

    The body is held fixed at its position at the epoch of the state while averaging over one revolution of the
    spacecraft.

    Parameters
    ----------
    name : str
        Name of the body, used for its parameter ``"<name> attraction coefficient"`` and its short-period coefficients.
    grav_param : float
        Gravitational parameter of the body.
    ephemeris : :class:`KeplerianEphemeris`
        Provider of the body's position.
    quadrature_points : int
        Number of nodes used to average over one revolution.
    max_frequency : int
        Highest multiple of the mean longitude in the short-period terms.
    """

    time_dependent = True

    def __init__(
            self,
            name: str,
            grav_param: float,
            ephemeris: KeplerianEphemeris,
            quadrature_points: int = 32,
            max_frequency: int = 6,
    ):
        super().__init__(quadrature_points, max_frequency)

        if grav_param <= 0:
            raise errors.ConfigurationError(f"gravitational parameter of {name} must be positive, got {grav_param}")

        self.name = name
        self.ephemeris = ephemeris
        self.parameters = [
            parameters_.ParameterDriver(f"{name} attraction coefficient", grav_param, 2.0 ** 32, minimum=0.0)
        ]

    @classmethod
    def moon(cls, mean_anomaly: float = 0.0, **kwargs) -> ThirdBodyAttraction:
        return cls("Moon", 4.9048695e12, KeplerianEphemeris.moon(mean_anomaly), **kwargs)

    @classmethod
    def sun(cls, initial_global_time: time_.Time = None, **kwargs) -> ThirdBodyAttraction:
        return cls("Sun", 1.32712440018e20, KeplerianEphemeris.sun(initial_global_time), **kwargs)

    def potential(self, epoch, positions, parameters, grav_param):
        positions = jnp.asarray(positions, dtype=float)
        body_position = self.ephemeris.position(epoch)
        body_distance = jnp.linalg.norm(body_position)

        relative_distance = jnp.linalg.norm(body_position - positions, axis=-1)
        return parameters[0] * (
            1 / relative_distance - 1 / body_distance - positions @ body_position / body_distance ** 3
        )
