from __future__ import annotations
import dataclasses

import jax.numpy as jnp
import numpy as np

from .. import errors, parameters as parameters_
from . import base


@dataclasses.dataclass(frozen=True)
class ExponentialAtmosphere:
    r"""
    Spherically symmetric atmosphere whose density decays exponentially with the distance to the center of the body.

    .. math::

        \rho(r) = \rho_0 \exp\left(-\frac{r - r_0}{H}\right)

    Attributes
    ----------
    reference_density : float
        Density :math:`\rho_0` at the reference radius in :math:`kg/m^3`.
    scale_height : float
        Scale height :math:`H` in :math:`m`.
    reference_radius : float
        Distance :math:`r_0` from the center of the body at which the reference density holds in :math:`m`.
    """

    reference_density: float
    scale_height: float
    reference_radius: float

    def __post_init__(self):
        if self.reference_density <= 0:
            raise errors.ConfigurationError(f"reference density must be positive, got {self.reference_density}")
        if self.scale_height <= 0:
            raise errors.ConfigurationError(f"scale height must be positive, got {self.scale_height}")
        if self.reference_radius <= 0:
            raise errors.ConfigurationError(f"reference radius must be positive, got {self.reference_radius}")

    def density(self, positions):
        r"""
        Density at one or more (N, 3) positions.
        """

        radius = jnp.linalg.norm(jnp.asarray(positions, dtype=float), axis=-1)
        return self.reference_density * jnp.exp(-(radius - self.reference_radius) / self.scale_height)


# Fit of the Earth's atmosphere at 500 km altitude from Table 8-4 of Vallado.
LEO_ATMOSPHERE = ExponentialAtmosphere(6.967e-13, 63822.0, 6378137.0 + 500e3)


class AtmosphericDrag(base.GaussianPerturbation):
    r"""
    Perturbation caused by drag due to the central body's atmosphere.

    The atmosphere is assumed to co-rotate with the body at its mean rotation rate so the spacecraft moves through it
    with the relative velocity :math:`\vec{v}_r = \vec{v} - \vec{\omega} \times \vec{r}`. A constant drag coefficient
    and cross-section remove any drag-attitude dependence:

    .. math::

        \vec{a} = -\frac{1}{2} \rho C_D \frac{A}{m} |\vec{v}_r| \vec{v}_r

    Above ``max_altitude`` the atmosphere is considered void. The averaging is therefore restricted to the arc of the
    orbit below it, which is the whole revolution when the apogee is below the ceiling and nothing at all when the
    perigee is above it.

    Parameters
    ----------
    atmosphere : :class:`ExponentialAtmosphere`
        Density model.
    cross_section : float
        Cross-sectional area of the spacecraft in :math:`m^2`.
    drag_coefficient : float
        Dimensionless drag coefficient :math:`C_D`, published as parameter ``"drag coefficient"``.
    max_altitude : float
        Altitude of the top of the atmosphere above the equatorial radius in :math:`m`.
    equatorial_radius : float
        Equatorial radius of the central body.
    rotation_rate : float
        Rotation rate of the atmosphere in :math:`rad/s`.
    quadrature_points : int
        Number of nodes used to average over the drag arc.
    max_frequency : int
        Highest multiple of the mean longitude in the short-period terms.
    """

    name = "drag"

    DRAG_COEFFICIENT = "drag coefficient"

    def __init__(
            self,
            atmosphere: ExponentialAtmosphere,
            cross_section: float,
            drag_coefficient: float = 2.2,
            max_altitude: float = 1000e3,
            equatorial_radius: float = 6378137.0,
            rotation_rate: float = 7.292115e-5,
            quadrature_points: int = 48,
            max_frequency: int = 12,
    ):
        super().__init__(quadrature_points, max_frequency)

        if cross_section <= 0:
            raise errors.ConfigurationError(f"cross-section must be positive, got {cross_section}")
        if max_altitude <= 0:
            raise errors.ConfigurationError(f"atmosphere ceiling must be positive, got {max_altitude}")

        self.atmosphere = atmosphere
        self.cross_section = cross_section
        self.max_altitude = max_altitude
        self.equatorial_radius = equatorial_radius
        self.rotation_rate = rotation_rate
        self.parameters = [parameters_.ParameterDriver(self.DRAG_COEFFICIENT, drag_coefficient, 2.0 ** -3, minimum=0.0)]

    def acceleration(self, epoch, positions, velocities, mass, parameters, grav_param):
        positions = jnp.asarray(positions, dtype=float)
        velocities = jnp.asarray(velocities, dtype=float)

        # Velocity wrt. an atmosphere rotating with the body about the inertial z-axis.
        relative_velocities = velocities - self.rotation_rate * jnp.stack(
            [-positions[..., 1], positions[..., 0], jnp.zeros_like(positions[..., 0])], axis=-1
        )
        speed = jnp.linalg.norm(relative_velocities, axis=-1, keepdims=True)
        density = self.atmosphere.density(positions)[..., None]

        return -0.5 * density * parameters[0] * self.cross_section / mass * speed * relative_velocities

    def integration_limits(self, state):
        sm_axis, ex, ey = state.elements[:3]
        eccentricity = np.hypot(ex, ey)
        ceiling = self.equatorial_radius + self.max_altitude

        if sm_axis * (1 - eccentricity) >= ceiling:
            return 0.0, 0.0
        if sm_axis * (1 + eccentricity) <= ceiling:
            return None

        # True anomalies at which the orbit crosses the ceiling, symmetric about perigee.
        half_width = np.arccos((sm_axis * (1 - eccentricity ** 2) / ceiling - 1) / eccentricity)
        longp = np.arctan2(ey, ex)
        return longp - half_width, longp + half_width
