from __future__ import annotations

import jax.numpy as jnp
import numpy as np
import scipy as sp

from .. import auxiliary, conversions, errors, parameters as parameters_
from . import base, third_body


class SolarRadiationPressure(base.GaussianPerturbation):
    r"""
    Perturbation caused by the pressure of solar radiation.

    The reflective area facing the Sun and its reflectivity are assumed constant, with the satellite's attitude not
    accounted for. As a result the perturbing acceleration acts along the line from the Sun to the satellite:

    .. math::

        \vec{a} = C_R \frac{A}{m} P_{ref} \left(\frac{d_{ref}}{|\vec{d}|}\right)^2 \frac{\vec{d}}{|\vec{d}|}

    where :math:`\vec{d}` is the position of the satellite wrt. the Sun and :math:`P_{ref}` the radiation pressure at
    the distance :math:`d_{ref}` of one astronomical unit.

    Shade due to the central body follows a cylindrical shadow model. The averaging is restricted to the lit arc of
    the orbit whose bounds are bracketed by sampling the true longitude and refined with :func:`scipy.optimize.brentq`.

    Parameters
    ----------
    sun : :class:`~danielsonpy.astro.perturbations.KeplerianEphemeris`
        Provider of the position of the Sun.
    equatorial_radius : float
        Radius of the shadow cylinder cast by the central body.
    cross_section : float
        Average area exposed to solar radiation in :math:`m^2`.
    reflection_coefficient : float
        Dimensionless coefficient :math:`C_R`, published as parameter ``"reflection coefficient"``. 1 = full
        absorption and 2 = full reflection.
    quadrature_points : int
        Number of nodes used to average over the lit arc.
    max_frequency : int
        Highest multiple of the mean longitude in the short-period terms.
    """

    name = "radiation"

    REFLECTION_COEFFICIENT = "reflection coefficient"

    # Radiation pressure at one astronomical unit (N/m^2) and the astronomical unit (m).
    REFERENCE_PRESSURE = 4.56e-6
    REFERENCE_DISTANCE = 149597870000.0

    SHADOW_SAMPLES = 360

    def __init__(
            self,
            sun: third_body.KeplerianEphemeris,
            equatorial_radius: float = 6378137.0,
            cross_section: float = 1.0,
            reflection_coefficient: float = 1.5,
            quadrature_points: int = 48,
            max_frequency: int = 12,
    ):
        super().__init__(quadrature_points, max_frequency)

        if cross_section <= 0:
            raise errors.ConfigurationError(f"cross-section must be positive, got {cross_section}")
        if equatorial_radius <= 0:
            raise errors.ConfigurationError(f"equatorial radius must be positive, got {equatorial_radius}")

        self.sun = sun
        self.equatorial_radius = equatorial_radius
        self.cross_section = cross_section
        self.parameters = [
            parameters_.ParameterDriver(self.REFLECTION_COEFFICIENT, reflection_coefficient, 2.0 ** -3, minimum=0.0)
        ]

    def _shadow_function(self, positions, sun_direction):
        r"""
        Negative inside the shadow cylinder, positive outside and continuous across the terminator plane.
        """

        along_sun = jnp.minimum(positions @ sun_direction, 0.0)
        return jnp.sum(positions ** 2, axis=-1) - along_sun ** 2 - self.equatorial_radius ** 2

    def acceleration(self, epoch, positions, velocities, mass, parameters, grav_param):
        positions = jnp.asarray(positions, dtype=float)
        sun_position = self.sun.position(epoch)

        sun_to_satellite = positions - sun_position
        distance = jnp.linalg.norm(sun_to_satellite, axis=-1, keepdims=True)
        pressure = self.REFERENCE_PRESSURE * (self.REFERENCE_DISTANCE / distance) ** 2

        lit = self._shadow_function(positions, sun_position / jnp.linalg.norm(sun_position)) >= 0
        return jnp.where(
            lit[..., None],
            parameters[0] * self.cross_section / mass * pressure * sun_to_satellite / distance,
            0.0,
        )

    def integration_limits(self, state):
        aux = auxiliary.AuxiliaryElements.from_elements(state.epoch, state.elements, state.orbit.grav_param)
        sun_position = np.asarray(self.sun.position(state.epoch))
        sun_direction = sun_position / np.linalg.norm(sun_position)

        def shadow(true_longitude):
            eccentric_longitude = conversions.true_2_eccentric_longitude(true_longitude, aux.k, aux.h)
            positions, _ = aux.orbit_points(jnp.atleast_1d(eccentric_longitude))
            return np.asarray(self._shadow_function(positions, sun_direction))

        crossing = lambda true_longitude: float(shadow(true_longitude)[0])

        grid = np.linspace(0, 2 * np.pi, self.SHADOW_SAMPLES + 1)
        values = shadow(grid)

        shadow_entry = None
        shadow_exit = None
        for lower, upper, value_lower, value_upper in zip(grid[:-1], grid[1:], values[:-1], values[1:]):
            if value_lower >= 0 > value_upper:
                shadow_entry = sp.optimize.brentq(crossing, lower, upper)
            elif value_lower < 0 <= value_upper:
                shadow_exit = sp.optimize.brentq(crossing, lower, upper)

        if shadow_entry is None or shadow_exit is None:
            # No eclipse: lit all around, or dark all around.
            return None if values[0] >= 0 else (0.0, 0.0)

        if shadow_entry < shadow_exit:
            shadow_entry += 2 * np.pi
        return shadow_exit, shadow_entry
