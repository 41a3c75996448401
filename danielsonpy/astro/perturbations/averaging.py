r"""
Averaging machinery shared by the semi-analytical perturbations.

Mean element rates are obtained by averaging the perturbation over one revolution of the satellite on its osculating
ellipse. Conservative perturbations average their potential and turn its gradient into element rates through the
Poisson brackets of the equinoctial elements (Lagrange's planetary equations). Non-conservative perturbations average
the element rates given by Gauss' variational equations directly.

The same quadratures yield the Fourier coefficients of the perturbation in the mean longitude. Integrating the
periodic part analytically gives the short-period terms, stored as :class:`Harmonics`.
"""

from __future__ import annotations
import dataclasses
from typing import Callable

import jax
import jax.numpy as jnp
import numpy as np
import scipy.special

from .. import auxiliary, conversions


@dataclasses.dataclass(frozen=True)
class Harmonics:
    r"""
    Trigonometric series in the phase :math:`\phi_k = j_k \lambda_M - m_k \theta(t)`.

    .. math::

        \Delta\vec{e} = \sum_k \vec{C}_k \cos\phi_k + \vec{S}_k \sin\phi_k

    where :math:`\theta(t) = \theta_0 + \dot{\theta} t` is the rotation angle of the central body. Terms without
    dependence on the body's rotation have :math:`m_k = 0`.

    Attributes
    ----------
    frequencies : np.ndarray
        (K, ) integer multiples :math:`j` of the mean longitude.
    orders : np.ndarray
        (K, ) integer multiples :math:`m` of the rotation angle of the central body.
    cos_coefficients : jnp.ndarray
        (K, 6) coefficients of the cosines.
    sin_coefficients : jnp.ndarray
        (K, 6) coefficients of the sines.
    reference_angle : float
        Rotation angle :math:`\theta_0` of the central body at epoch zero.
    rotation_rate : float
        Rotation rate :math:`\dot{\theta}` of the central body.
    indexed_by_order : bool
        Whether coefficient names include the order :math:`m` as well as the frequency :math:`j`.
    """

    frequencies: np.ndarray
    orders: np.ndarray
    cos_coefficients: jnp.ndarray
    sin_coefficients: jnp.ndarray
    reference_angle: float = 0.0
    rotation_rate: float = 0.0
    indexed_by_order: bool = False

    @classmethod
    def empty(cls) -> Harmonics:
        return cls(
            np.zeros(0, dtype=int),
            np.zeros(0, dtype=int),
            jnp.zeros((0, 6)),
            jnp.zeros((0, 6)),
        )

    def __len__(self):
        return len(self.frequencies)

    def phases(self, mean_longitude, epoch: float):
        theta = self.reference_angle + self.rotation_rate * epoch
        return jnp.asarray(self.frequencies) * mean_longitude - jnp.asarray(self.orders) * theta

    def evaluate(self, mean_longitude, epoch: float) -> jnp.ndarray:
        r"""
        Sum of the series at a mean longitude and epoch.

        Returns
        -------
        value : jnp.ndarray
            (6, ) array.
        """

        if len(self) == 0:
            return jnp.zeros(6)

        phi = self.phases(mean_longitude, epoch)
        return jnp.cos(phi) @ self.cos_coefficients + jnp.sin(phi) @ self.sin_coefficients

    def named_coefficients(self, prefix: str) -> dict[str, np.ndarray]:
        r"""
        Coefficients keyed ``"<prefix>-cos[<j>]"`` and ``"<prefix>-sin[<j>]"``, or ``"<prefix>-cos[<m>,<j>]"`` when
        :attr:`indexed_by_order` is set.
        """

        named = {}
        for index, (j, m) in enumerate(zip(self.frequencies, self.orders)):
            label = f"{m},{j}" if self.indexed_by_order else f"{j}"
            named[f"{prefix}-cos[{label}]"] = np.asarray(self.cos_coefficients[index])
            named[f"{prefix}-sin[{label}]"] = np.asarray(self.sin_coefficients[index])

        return named

    @classmethod
    def concatenate(cls, series: list[Harmonics]) -> Harmonics:
        r"""
        Joins series sharing the same central body rotation.
        """

        series = [harmonics for harmonics in series if len(harmonics) > 0]
        if not series:
            return cls.empty()

        return cls(
            np.concatenate([harmonics.frequencies for harmonics in series]),
            np.concatenate([harmonics.orders for harmonics in series]),
            jnp.concatenate([harmonics.cos_coefficients for harmonics in series]),
            jnp.concatenate([harmonics.sin_coefficients for harmonics in series]),
            series[0].reference_angle,
            series[0].rotation_rate,
            any(harmonics.indexed_by_order for harmonics in series),
        )


def poisson_matrix(elements, grav_param) -> jnp.ndarray:
    r"""
    Poisson brackets of the equinoctial elements.

    For a disturbing potential :math:`R` expressed as a function of the elements, Lagrange's planetary equations read
    :math:`\dot{\vec{e}} = P \nabla_{\vec{e}} R` with

    .. math::

        P = \frac{\partial \vec{e}}{\partial \vec{v}} \frac{\partial \vec{e}}{\partial \vec{r}}^T
          - \frac{\partial \vec{e}}{\partial \vec{r}} \frac{\partial \vec{e}}{\partial \vec{v}}^T

    :math:`P` does not depend on the fast angle so it is evaluated at eccentric longitude zero, which avoids solving
    Kepler's equation.

    Parameters
    ----------
    elements : jnp.ndarray
        (6, ) array of equinoctial elements.
    grav_param : float
        Gravitational parameter of the central body.

    Returns
    -------
    poisson : jnp.ndarray
        (6, 6) antisymmetric matrix.
    """

    sm_axis, ex, ey, hx, hy, _ = elements
    x, y, x_dot, y_dot = conversions.in_plane_state(sm_axis, ex, ey, 0.0, grav_param)
    f, g, _ = conversions.equinoctial_frame(hx, hy)

    jac_r, jac_v = jax.jacfwd(conversions.state_2_equinoctial, argnums=(0, 1))(
        x * f + y * g, x_dot * f + y_dot * g, grav_param
    )

    return jac_v @ jac_r.T - jac_r @ jac_v.T


def eccentric_grid(aux: auxiliary.AuxiliaryElements, points: int) -> tuple:
    r"""
    Quadrature nodes for averaging over a full revolution.

    Uniform nodes in eccentric longitude :math:`F` with weights :math:`(1 - k \cos F - h \sin F) / N` so that
    :math:`\frac{1}{2\pi}\oint f \, d\lambda_M \approx \sum_i w_i f(F_i)`. The rule is spectrally accurate for smooth
    periodic integrands.

    Returns
    -------
    eccentric_longitude : jnp.ndarray
        (N, ) nodes.
    mean_longitude : jnp.ndarray
        (N, ) mean longitudes of the nodes.
    weights : jnp.ndarray
        (N, ) quadrature weights.
    """

    eccentric_longitude = 2 * jnp.pi * jnp.arange(points) / points
    return (
        eccentric_longitude,
        aux.mean_longitude(eccentric_longitude),
        aux.radius_ratio(eccentric_longitude) / points,
    )


def true_longitude_arc(aux: auxiliary.AuxiliaryElements, lower: float, upper: float, points: int) -> tuple:
    r"""
    Quadrature nodes for averaging over an arc of the orbit delimited by true longitudes.

    Gauss-Legendre nodes in true longitude :math:`L` with :math:`d\lambda_M = (r / a)^2 / B \, dL`. The bounds are
    plain floats and are not differentiated.

    Returns
    -------
    eccentric_longitude : jnp.ndarray
        (N, ) nodes.
    mean_longitude : jnp.ndarray
        (N, ) mean longitudes of the nodes.
    weights : jnp.ndarray
        (N, ) quadrature weights.
    """

    abscissae, legendre_weights = scipy.special.roots_legendre(points)
    half = (upper - lower) / 2
    true_longitude = (upper + lower) / 2 + half * jnp.asarray(abscissae)

    eccentric_longitude = conversions.true_2_eccentric_longitude(true_longitude, aux.k, aux.h)
    weights = jnp.asarray(legendre_weights) * half * aux.radius_ratio(eccentric_longitude) ** 2 / aux.b / (2 * jnp.pi)

    return eccentric_longitude, aux.mean_longitude(eccentric_longitude), weights


def real_fourier(values, mean_longitude, weights, max_frequency: int) -> tuple:
    r"""
    Averages and Fourier coefficients in the mean longitude of sampled values.

    Parameters
    ----------
    values : jnp.ndarray
        (N, ...) samples at the quadrature nodes.
    mean_longitude : jnp.ndarray
        (N, ) mean longitudes of the nodes.
    weights : jnp.ndarray
        (N, ) quadrature weights.
    max_frequency : int
        Highest multiple :math:`J` of the mean longitude.

    Returns
    -------
    average : jnp.ndarray
        (...) mean value.
    cos_coefficients, sin_coefficients : jnp.ndarray
        (J, ...) coefficients :math:`a_j, b_j` of :math:`\cos j\lambda_M` and :math:`\sin j\lambda_M` for
        :math:`j = 1 \dots J`.
    """

    phi = jnp.arange(1, max_frequency + 1)[:, None] * mean_longitude[None, :]

    average = jnp.tensordot(weights, values, axes=1)
    cos_coefficients = 2 * jnp.tensordot(jnp.cos(phi) * weights, values, axes=1)
    sin_coefficients = 2 * jnp.tensordot(jnp.sin(phi) * weights, values, axes=1)

    return average, cos_coefficients, sin_coefficients


def integrate_harmonics(
        rate_cos: jnp.ndarray,
        rate_sin: jnp.ndarray,
        frequencies: np.ndarray,
        orders: np.ndarray,
        aux: auxiliary.AuxiliaryElements,
        reference_angle: float = 0.0,
        rotation_rate: float = 0.0,
        indexed_by_order: bool = False,
) -> Harmonics:
    r"""
    Integrates periodic element rates over time into short-period terms.

    The rates :math:`\vec{C}_k \cos\phi_k + \vec{S}_k \sin\phi_k` with :math:`\dot{\phi}_k = \omega_k = j_k n - m_k
    \dot{\theta}` integrate to :math:`(\vec{C}_k \sin\phi_k - \vec{S}_k \cos\phi_k) / \omega_k`. The mean longitude
    picks up the additional drift caused by the periodic variation of the semi-major axis through the mean motion.

    Parameters
    ----------
    rate_cos, rate_sin : jnp.ndarray
        (K, 6) coefficients :math:`\vec{C}_k` and :math:`\vec{S}_k`.
    frequencies, orders : np.ndarray
        (K, ) multiples :math:`j_k` and :math:`m_k`. No :math:`\omega_k` may vanish.
    aux : :class:`~danielsonpy.astro.AuxiliaryElements`
        Auxiliary elements of the mean state.
    reference_angle, rotation_rate : float
        Rotation of the central body.
    indexed_by_order : bool
        Passed on to the :class:`Harmonics`.
    """

    frequencies = np.asarray(frequencies, dtype=int)
    orders = np.asarray(orders, dtype=int)
    omega = jnp.asarray(frequencies) * aux.mean_motion - jnp.asarray(orders) * rotation_rate

    cos_coefficients = -rate_sin / omega[:, None]
    sin_coefficients = rate_cos / omega[:, None]

    drift = 1.5 * aux.mean_motion / (aux.sm_axis * omega ** 2)
    cos_coefficients = cos_coefficients.at[:, 5].add(drift * rate_cos[:, 0])
    sin_coefficients = sin_coefficients.at[:, 5].add(drift * rate_sin[:, 0])

    return Harmonics(
        frequencies, orders, cos_coefficients, sin_coefficients, reference_angle, rotation_rate, indexed_by_order
    )


def potential_rates(coefficients: Callable, aux: auxiliary.AuxiliaryElements, frequencies: np.ndarray) -> tuple:
    r"""
    Element rates caused by the potential terms :math:`c_k \cos\phi_k + s_k \sin\phi_k`.

    Returns
    -------
    rate_cos, rate_sin : jnp.ndarray
        (K, 6) coefficients of :math:`\cos\phi_k` and :math:`\sin\phi_k` in the element rates.
    """

    def stacked(elements):
        values = jnp.stack(coefficients(elements))
        return values, values

    (jac_c, jac_s), (c, s) = jax.jacfwd(stacked, has_aux=True)(aux.elements)

    # The phase itself depends on the mean longitude.
    j = jnp.asarray(frequencies, dtype=float)
    unit_lm = jnp.zeros(6).at[5].set(1.0)
    grad_c = jac_c + (j * s)[:, None] * unit_lm[None, :]
    grad_s = jac_s - (j * c)[:, None] * unit_lm[None, :]

    poisson = poisson_matrix(aux.elements, aux.grav_param)
    return grad_c @ poisson.T, grad_s @ poisson.T


def conservative_harmonics(
        coefficients: Callable,
        aux: auxiliary.AuxiliaryElements,
        frequencies: np.ndarray,
        orders: np.ndarray,
        reference_angle: float = 0.0,
        rotation_rate: float = 0.0,
        indexed_by_order: bool = False,
) -> Harmonics:
    r"""
    Short-period terms of the periodic part of a disturbing potential.

    Parameters
    ----------
    coefficients : Callable
        Function of the equinoctial elements returning the (K, ) arrays :math:`c_k, s_k` of the potential
        :math:`\sum_k c_k \cos\phi_k + s_k \sin\phi_k`.
    aux : :class:`~danielsonpy.astro.AuxiliaryElements`
        Auxiliary elements of the mean state.
    frequencies, orders : np.ndarray
        (K, ) multiples :math:`j_k` and :math:`m_k` of the phases.
    reference_angle, rotation_rate : float
        Rotation of the central body.
    indexed_by_order : bool
        Passed on to the :class:`Harmonics`.
    """

    if len(frequencies) == 0:
        return Harmonics.empty()

    rate_cos, rate_sin = potential_rates(coefficients, aux, frequencies)
    return integrate_harmonics(
        rate_cos,
        rate_sin,
        frequencies,
        orders,
        aux,
        reference_angle,
        rotation_rate,
        indexed_by_order,
    )


def gaussian_rates(
        acceleration: Callable,
        aux: auxiliary.AuxiliaryElements,
        eccentric_longitude: jnp.ndarray,
) -> jnp.ndarray:
    r"""
    Osculating element rates from Gauss' variational equations at points of the osculating ellipse.

    Parameters
    ----------
    acceleration : Callable
        Function of (N, 3) positions and velocities returning the (N, 3) perturbing accelerations.
    aux : :class:`~danielsonpy.astro.AuxiliaryElements`
        Auxiliary elements of the ellipse.
    eccentric_longitude : jnp.ndarray
        (N, ) eccentric longitudes of the points.

    Returns
    -------
    rates : jnp.ndarray
        (N, 6) element rates :math:`\partial\vec{e}/\partial\vec{v} \cdot \vec{a}`.
    """

    positions, velocities = aux.orbit_points(eccentric_longitude)
    jac_v = jax.vmap(jax.jacfwd(conversions.state_2_equinoctial, argnums=1), in_axes=(0, 0, None))(
        positions, velocities, aux.grav_param
    )

    return jnp.einsum("nij,nj->ni", jac_v, acceleration(positions, velocities))
