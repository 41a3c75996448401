from __future__ import annotations
import dataclasses

import jax.numpy as jnp
import numpy as np

from . import conversions, errors


# Eccentricities closer to one than this are treated as outside of the domain of the theory.
ECCENTRICITY_MARGIN = 1e-10


@dataclasses.dataclass(frozen=True)
class AuxiliaryElements:
    r"""
    Quantities derived from a set of equinoctial elements which recur in every averaged perturbation.

    Instances are immutable and rebuilt on every evaluation of the mean element rates with
    :meth:`from_elements()`. They are never persisted from one integration step to the next. The fields can hold
    plain floats or :mod:`jax` tracers, which lets the same perturbation code compute nominal rates and their
    derivatives.

    Attributes
    ----------
    epoch : float
        Time in seconds since the reference epoch.
    elements : jnp.ndarray
        (6, ) array of equinoctial elements the other quantities are derived from.
    grav_param : float
        Gravitational parameter of the central body.
    sm_axis : float
        Semi-major axis :math:`a`.
    k : float
        First component of the eccentricity vector :math:`e_x`.
    h : float
        Second component of the eccentricity vector :math:`e_y`.
    q : float
        First component of the inclination vector :math:`h_x`.
    p : float
        Second component of the inclination vector :math:`h_y`.
    lm : float
        Mean longitude.
    ecc : float
        Eccentricity.
    b : float
        :math:`B = \sqrt{1 - e^2}`.
    a_factor : float
        :math:`A = \sqrt{\mu a}`.
    c_factor : float
        :math:`C = 1 + p^2 + q^2`.
    mean_motion : float
        Keplerian mean motion :math:`n = \sqrt{\mu / a^3}`.
    period : float
        Keplerian period.
    f, g, w : jnp.ndarray
        (3, ) unit vectors of the equinoctial frame.
    alpha, beta, gamma : float
        Direction cosines of the central body's pole along ``f``, ``g`` and ``w``.

    Notes
    -----
    The names follow Danielson et al. [1]_ where :math:`(k, h, q, p)` are the components of the eccentricity and
    inclination vectors.

    .. [1] D. A. Danielson, C. P. Sagovac, B. Neta, L. W. Early, Semianalytic Satellite Theory, Naval Postgraduate
        School, 1995.
    """

    epoch: float
    elements: jnp.ndarray
    grav_param: float
    sm_axis: float
    k: float
    h: float
    q: float
    p: float
    lm: float
    ecc: float
    b: float
    a_factor: float
    c_factor: float
    mean_motion: float
    period: float
    f: jnp.ndarray
    g: jnp.ndarray
    w: jnp.ndarray
    alpha: float
    beta: float
    gamma: float

    @classmethod
    def from_elements(cls, epoch: float, elements, grav_param) -> AuxiliaryElements:
        r"""
        Derives the auxiliary quantities of a set of equinoctial elements.

        Parameters
        ----------
        epoch : float
            Time in seconds since the reference epoch.
        elements : jnp.ndarray
            (6, ) array of equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)`.
        grav_param : float
            Gravitational parameter of the central body.
        """

        elements = jnp.asarray(elements, dtype=float)
        sm_axis, k, h, q, p, lm = elements

        ecc = jnp.sqrt(k ** 2 + h ** 2)
        mean_motion = jnp.sqrt(grav_param / sm_axis ** 3)
        f, g, w = conversions.equinoctial_frame(q, p)

        return cls(
            epoch=epoch,
            elements=elements,
            grav_param=grav_param,
            sm_axis=sm_axis,
            k=k,
            h=h,
            q=q,
            p=p,
            lm=lm,
            ecc=ecc,
            b=jnp.sqrt(1 - ecc ** 2),
            a_factor=jnp.sqrt(grav_param * sm_axis),
            c_factor=1 + p ** 2 + q ** 2,
            mean_motion=mean_motion,
            period=2 * jnp.pi / mean_motion,
            f=f,
            g=g,
            w=w,
            # The pole of the central body is the z-axis of the inertial frame.
            alpha=f[2],
            beta=g[2],
            gamma=w[2],
        )

    def check_domain(self):
        r"""
        Verifies that the elements describe a bound, non-degenerate orbit.

        Only valid on concrete values, not inside a traced :mod:`jax` computation.

        Raises
        ------
        NumericalDomainError
            If the semi-major axis is not positive, the eccentricity is not below one or an element is not finite.
        """

        elements = np.asarray(self.elements, dtype=float)
        if not np.all(np.isfinite(elements)):
            raise errors.NumericalDomainError(f"non-finite equinoctial elements {elements}")
        if elements[0] <= 0:
            raise errors.NumericalDomainError(f"semi-major axis {elements[0]} must be positive")
        if float(self.ecc) >= 1 - ECCENTRICITY_MARGIN:
            raise errors.NumericalDomainError(f"eccentricity {float(self.ecc)} outside of the elliptic domain")

    def in_plane(self, eccentric_longitude) -> tuple:
        r"""
        Position and velocity components along ``f`` and ``g`` at one or more eccentric longitudes.
        """

        return conversions.in_plane_state(self.sm_axis, self.k, self.h, eccentric_longitude, self.grav_param)

    def orbit_points(self, eccentric_longitude) -> tuple[jnp.ndarray, jnp.ndarray]:
        r"""
        Inertial positions and velocities on the osculating ellipse.

        Parameters
        ----------
        eccentric_longitude : jnp.ndarray
            (N, ) array of eccentric longitudes.

        Returns
        -------
        positions : jnp.ndarray
            (N, 3) array of inertial positions.
        velocities : jnp.ndarray
            (N, 3) array of inertial velocities.
        """

        x, y, x_dot, y_dot = self.in_plane(eccentric_longitude)
        positions = x[:, None] * self.f[None, :] + y[:, None] * self.g[None, :]
        velocities = x_dot[:, None] * self.f[None, :] + y_dot[:, None] * self.g[None, :]

        return positions, velocities

    def mean_longitude(self, eccentric_longitude):
        r"""
        Mean longitudes matching one or more eccentric longitudes.
        """

        return conversions.eccentric_2_mean_longitude(eccentric_longitude, self.k, self.h)

    def radius_ratio(self, eccentric_longitude):
        r"""
        :math:`r / a = 1 - k \cos F - h \sin F`, which is also :math:`d\lambda_M / dF`.
        """

        return 1 - self.k * jnp.cos(eccentric_longitude) - self.h * jnp.sin(eccentric_longitude)
