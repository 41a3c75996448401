r"""
Conversions between the equinoctial elements propagated by :mod:`danielsonpy` and other orbit representations.

The equinoctial elements used throughout the package are

.. math::

    \left(a, e_x, e_y, h_x, h_y, \lambda_M\right) = \left(a, e \cos(\omega + \Omega), e \sin(\omega + \Omega),
    \tan\frac{i}{2} \cos\Omega, \tan\frac{i}{2} \sin\Omega, M + \omega + \Omega\right)

All functions are written with :mod:`jax.numpy` so they accept plain floats, NumPy arrays and JAX tracers alike. This
lets :mod:`jax` differentiate through them when building state transition matrices.
"""

from __future__ import annotations

import jax.numpy as jnp


def classical_2_equinoctial(
        sm_axis: float,
        eccentricity: float,
        raan: float,
        argp: float,
        inclination: float,
        mean_anomaly: float,
) -> jnp.ndarray:
    r"""
    Converts the classical orbital elements (where mean anomaly is the fast parameter) into equinoctial elements.

    Parameters
    ----------
    sm_axis : float
        Semi-major axis.
    eccentricity : float
        Eccentricity.
    raan : float
        Right ascension (longitude) of the ascending node.
    argp : float
        Argument of periapsis.
    inclination : float
        Inclination.
    mean_anomaly : float
        Mean anomaly.

    Returns
    -------
    elements : jnp.ndarray
        (6, ) array of equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)`.
    """

    # Project the eccentricity and nodal vectors into the equinoctial plane.
    longp = raan + argp
    tan_half_inclination = jnp.tan(inclination / 2)

    return jnp.stack([
        jnp.asarray(sm_axis, dtype=float),
        eccentricity * jnp.cos(longp),
        eccentricity * jnp.sin(longp),
        tan_half_inclination * jnp.cos(raan),
        tan_half_inclination * jnp.sin(raan),
        jnp.asarray(mean_anomaly + longp, dtype=float),
    ])


def equinoctial_2_classical(elements: jnp.ndarray) -> tuple:
    r"""
    Converts equinoctial elements to the classical orbital elements.

    Parameters
    ----------
    elements : jnp.ndarray
        (6, ) array of equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)`.

    Returns
    -------
    sm_axis : float
        Semi-major axis.
    eccentricity : float
        Eccentricity.
    raan : float
        Right ascension (longitude) of the ascending node.
    argp : float
        Argument of periapsis.
    inclination : float
        Inclination.
    mean_anomaly : float
        Mean anomaly.

    Notes
    -----
    The RAAN is undefined for equatorial orbits and the argument of periapsis for circular ones. In both cases the
    angle returned is the one obtained by setting the undefined angle to zero.
    """

    sm_axis, ex, ey, hx, hy, lm = elements

    eccentricity = jnp.sqrt(ex ** 2 + ey ** 2)
    inclination = 2 * jnp.arctan(jnp.sqrt(hx ** 2 + hy ** 2))
    raan = jnp.arctan2(hy, hx)
    longp = jnp.arctan2(ey, ex)

    return sm_axis, eccentricity, raan, longp - raan, inclination, lm - longp


def eccentric_2_mean_longitude(eccentric_longitude, ex, ey):
    r"""
    Kepler's equation written with longitudes.

    .. math::

        \lambda_M = F - e_x \sin F + e_y \cos F
    """

    return eccentric_longitude - ex * jnp.sin(eccentric_longitude) + ey * jnp.cos(eccentric_longitude)


def mean_2_eccentric_longitude(mean_longitude, ex, ey, iterations: int = 16):
    r"""
    Solves Kepler's equation for the eccentric longitude.

    A fixed number of Newton iterations is used instead of a convergence test so that the function stays traceable by
    :mod:`jax`. Starting from a first-order guess the iteration converges to machine precision in a handful of steps
    for every elliptic orbit of practical interest.

    Parameters
    ----------
    mean_longitude : float
        Mean longitude :math:`\lambda_M`.
    ex : float
        First component of the eccentricity vector.
    ey : float
        Second component of the eccentricity vector.
    iterations : int
        Number of Newton iterations.

    Returns
    -------
    eccentric_longitude : float
        Eccentric longitude :math:`F`.
    """

    eccentric_longitude = mean_longitude + ex * jnp.sin(mean_longitude) - ey * jnp.cos(mean_longitude)
    for _ in range(iterations):
        residual = eccentric_2_mean_longitude(eccentric_longitude, ex, ey) - mean_longitude
        slope = 1 - ex * jnp.cos(eccentric_longitude) - ey * jnp.sin(eccentric_longitude)
        eccentric_longitude = eccentric_longitude - residual / slope

    return eccentric_longitude


def eccentric_2_true_longitude(eccentric_longitude, ex, ey):
    r"""
    Converts the eccentric longitude :math:`F` to the true longitude :math:`L`.
    """

    epsilon = jnp.sqrt(1 - ex ** 2 - ey ** 2)
    cos_f = jnp.cos(eccentric_longitude)
    sin_f = jnp.sin(eccentric_longitude)
    num = ex * sin_f - ey * cos_f
    den = epsilon + 1 - ex * cos_f - ey * sin_f

    return eccentric_longitude + 2 * jnp.arctan(num / den)


def true_2_eccentric_longitude(true_longitude, ex, ey):
    r"""
    Converts the true longitude :math:`L` to the eccentric longitude :math:`F`.
    """

    epsilon = jnp.sqrt(1 - ex ** 2 - ey ** 2)
    cos_l = jnp.cos(true_longitude)
    sin_l = jnp.sin(true_longitude)
    num = ey * cos_l - ex * sin_l
    den = epsilon + 1 + ex * cos_l + ey * sin_l

    return true_longitude + 2 * jnp.arctan(num / den)


def equinoctial_frame(hx, hy) -> tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    r"""
    Computes the unit vectors of the equinoctial frame.

    Parameters
    ----------
    hx : float
        First component of the inclination vector.
    hy : float
        Second component of the inclination vector.

    Returns
    -------
    f : jnp.ndarray
        (3, ) unit vector in the orbital plane from which the longitudes are measured.
    g : jnp.ndarray
        (3, ) unit vector completing ``f`` in the orbital plane.
    w : jnp.ndarray
        (3, ) unit vector along the orbital angular momentum.
    """

    hx2 = hx ** 2
    hy2 = hy ** 2
    factor = 1 / (1 + hx2 + hy2)

    f = factor * jnp.stack([1 + hx2 - hy2, 2 * hx * hy, -2 * hy])
    g = factor * jnp.stack([2 * hx * hy, 1 - hx2 + hy2, 2 * hx])
    w = factor * jnp.stack([2 * hy, -2 * hx, 1 - hx2 - hy2])

    return f, g, w


def in_plane_state(sm_axis, ex, ey, eccentric_longitude, grav_param) -> tuple:
    r"""
    Position and velocity components in the equinoctial frame for given eccentric longitudes.

    Parameters
    ----------
    sm_axis : float
        Semi-major axis.
    ex : float
        First component of the eccentricity vector.
    ey : float
        Second component of the eccentricity vector.
    eccentric_longitude : float | jnp.ndarray
        One or more eccentric longitudes.
    grav_param : float
        Gravitational parameter of the central body.

    Returns
    -------
    x, y, x_dot, y_dot : jnp.ndarray
        Components of position and velocity along the ``f`` and ``g`` unit vectors.
    """

    beta = 1 / (1 + jnp.sqrt(1 - ex ** 2 - ey ** 2))
    cos_f = jnp.cos(eccentric_longitude)
    sin_f = jnp.sin(eccentric_longitude)
    ex_c_ey_s = ex * cos_f + ey * sin_f

    x = sm_axis * ((1 - beta * ey ** 2) * cos_f + beta * ex * ey * sin_f - ex)
    y = sm_axis * ((1 - beta * ex ** 2) * sin_f + beta * ex * ey * cos_f - ey)

    factor = jnp.sqrt(grav_param / sm_axis) / (1 - ex_c_ey_s)
    x_dot = factor * (-sin_f + beta * ey * ex_c_ey_s)
    y_dot = factor * (cos_f - beta * ex * ex_c_ey_s)

    return x, y, x_dot, y_dot


def equinoctial_2_state(elements: jnp.ndarray, grav_param: float = 3.986004418e14) -> tuple[jnp.ndarray, jnp.ndarray]:
    r"""
    Converts equinoctial elements into inertial position and velocity.

    Parameters
    ----------
    elements : jnp.ndarray
        (6, ) array of equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)`.
    grav_param : float
        Gravitational parameter of the central body (defaults to that of the Earth in :math:`\text{m}^3/\text{s}^2`).

    Returns
    -------
    position : jnp.ndarray
        Position of the satellite in planet-centered inertial coordinates.
    velocity : jnp.ndarray
        Velocity of the satellite in planet-centered inertial coordinates.
    """

    sm_axis, ex, ey, hx, hy, lm = elements
    eccentric_longitude = mean_2_eccentric_longitude(lm, ex, ey)

    x, y, x_dot, y_dot = in_plane_state(sm_axis, ex, ey, eccentric_longitude, grav_param)
    f, g, _ = equinoctial_frame(hx, hy)

    return x * f + y * g, x_dot * f + y_dot * g


def state_2_equinoctial(
        position: jnp.ndarray,
        velocity: jnp.ndarray,
        grav_param: float = 3.986004418e14,
) -> jnp.ndarray:
    r"""
    Converts inertial position and velocity into equinoctial elements.

    Parameters
    ----------
    position : jnp.ndarray
        Position of the satellite in planet-centered inertial coordinates.
    velocity : jnp.ndarray
        Velocity of the satellite in planet-centered inertial coordinates.
    grav_param : float
        Gravitational parameter of the central body (defaults to that of the Earth in :math:`\text{m}^3/\text{s}^2`).

    Returns
    -------
    elements : jnp.ndarray
        (6, ) array of equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)`.

    Notes
    -----
    The conversion is singular for exactly retrograde equatorial orbits only (:math:`i = \pi`).
    """

    radius = jnp.sqrt(jnp.sum(position ** 2))
    r_v2_on_mu = radius * jnp.sum(velocity ** 2) / grav_param
    sm_axis = radius / (2 - r_v2_on_mu)

    # Inclination vector from the direction of the angular momentum.
    momentum = jnp.cross(position, velocity)
    w = momentum / jnp.sqrt(jnp.sum(momentum ** 2))
    d = 1 / (1 + w[2])
    hx = -d * w[1]
    hy = d * w[0]

    # True longitude.
    cos_lv = (position[0] - d * position[2] * w[0]) / radius
    sin_lv = (position[1] - d * position[2] * w[1]) / radius
    true_longitude = jnp.arctan2(sin_lv, cos_lv)

    # Eccentricity vector.
    e_sin_e = jnp.dot(position, velocity) / jnp.sqrt(grav_param * sm_axis)
    e_cos_e = r_v2_on_mu - 1
    e2 = e_cos_e ** 2 + e_sin_e ** 2
    f = e_cos_e - e2
    g = jnp.sqrt(1 - e2) * e_sin_e
    ex = sm_axis * (f * cos_lv + g * sin_lv) / radius
    ey = sm_axis * (f * sin_lv - g * cos_lv) / radius

    eccentric_longitude = true_2_eccentric_longitude(true_longitude, ex, ey)
    mean_longitude = eccentric_2_mean_longitude(eccentric_longitude, ex, ey)

    return jnp.stack([sm_axis, ex, ey, hx, hy, mean_longitude])


def normalize_angle(angle, center):
    r"""
    Wraps an angle into :math:`[c - \pi, c + \pi)` where :math:`c` is ``center``.
    """

    return angle - 2 * jnp.pi * jnp.floor((angle + jnp.pi - center) / (2 * jnp.pi))
