from __future__ import annotations
import dataclasses
import logging

import jax
import jax.numpy as jnp
import numpy as np

from .. import auxiliary, errors, parameters as parameters_, time as time_
from . import averaging, base


_log = logging.getLogger(__name__)


# Unnormalized EGM96/JGM-3 Stokes coefficients to degree and order 8, keyed (n, m) -> (C_nm, S_nm).
_EARTH_STOKES_COEFFS: dict[tuple[int, int], tuple[float, float]] = {
    (2, 0): (-1.08263e-3, 0.0),
    (2, 1): (-2.414e-10, 1.543e-9),
    (2, 2): (1.5745e-6, -9.0386e-7),
    (3, 0): (2.53241e-6, 0.0),
    (3, 1): (2.1928e-6, 2.6801e-7),
    (3, 2): (3.0900e-7, -2.1140e-7),
    (3, 3): (1.0055e-7, 1.9720e-7),
    (4, 0): (1.6199e-6, 0.0),
    (4, 1): (-5.0872e-7, -4.4945e-7),
    (4, 2): (7.8412e-8, 1.4817e-7),
    (4, 3): (5.9215e-8, -1.2010e-8),
    (4, 4): (-3.9824e-9, 6.5253e-9),
    (5, 0): (2.2772e-7, 0.0),
    (5, 1): (-5.3195e-8, -9.4997e-8),
    (5, 2): (1.0559e-7, -6.5314e-8),
    (5, 3): (-1.4926e-8, -3.2323e-9),
    (5, 4): (6.8629e-10, -7.1622e-10),
    (5, 5): (3.5274e-10, -5.5373e-10),
    (6, 0): (-5.3964e-7, 0.0),
    (6, 1): (-5.9835e-8, 2.1476e-8),
    (6, 2): (6.5256e-9, 3.2827e-8),
    (6, 3): (1.0061e-8, 7.5855e-10),
    (6, 4): (-1.5780e-9, -2.3854e-9),
    (6, 5): (-3.3044e-11, -5.0586e-10),
    (6, 6): (7.8972e-12, -3.1534e-11),
    (7, 0): (3.5136e-7, 0.0),
    (7, 1): (9.2024e-8, 1.2233e-7),
    (7, 2): (4.2963e-8, 1.1847e-8),
    (7, 3): (-2.3283e-9, -1.0209e-8),
    (7, 4): (-4.3310e-10, 2.5795e-10),
    (7, 5): (-2.3503e-10, 1.2345e-10),
    (7, 6): (1.7920e-12, -4.5648e-11),
    (7, 7): (-1.4490e-12, 6.5210e-12),
    (8, 0): (2.0251e-7, 0.0),
    (8, 1): (2.4563e-8, 5.7461e-8),
    (8, 2): (8.2823e-9, 1.6586e-8),
    (8, 3): (-1.9278e-9, -1.2560e-9),
    (8, 4): (-1.9279e-10, 2.3451e-10),
    (8, 5): (-3.0600e-11, -2.2555e-11),
    (8, 6): (4.6040e-12, -5.1100e-12),
    (8, 7): (-1.6310e-13, 7.0560e-13),
    (8, 8): (-2.1880e-14, 1.9640e-14),
}


@dataclasses.dataclass(frozen=True, eq=False)
class GravityField:
    r"""
    Spherical harmonics model of the gravity field of a rotating central body.

    The gravitational potential field of the non-spherical body is the solution to a geopotential
    partial-differential equation whose coefficients, known as Stokes coefficients (C and S), are stored here
    unnormalized. The body is assumed to rotate uniformly about the inertial z-axis so that the angle between the
    inertial x-axis and its prime meridian is :math:`\theta(t) = \theta_0 + \dot{\theta} t`, ignoring precession.

    Attributes
    ----------
    c_coeffs : np.ndarray
        Cosine-like Stokes coefficients, indexed ``[n, m]``.
    s_coeffs : np.ndarray
        Sine-like Stokes coefficients, indexed ``[n, m]``.
    grav_param : float
        Gravitational parameter the coefficients were estimated with.
    equatorial_radius : float
        Reference radius of the coefficients.
    rotation_rate : float
        Mean rotation rate of the body in :math:`rad/s`.
    reference_gmst : float
        Angle of the prime meridian at epoch zero in :math:`rad`.
    """

    c_coeffs: np.ndarray
    s_coeffs: np.ndarray
    grav_param: float = 3.986004418e14
    equatorial_radius: float = 6378137.0
    rotation_rate: float = 7.292115e-5
    reference_gmst: float = 0.0

    def __post_init__(self):
        c_coeffs = np.array(self.c_coeffs, dtype=float)
        s_coeffs = np.array(self.s_coeffs, dtype=float)
        object.__setattr__(self, "c_coeffs", c_coeffs)
        object.__setattr__(self, "s_coeffs", s_coeffs)

        if c_coeffs.ndim != 2 or c_coeffs.shape != s_coeffs.shape:
            raise errors.DimensionMismatchError(
                "Stokes coefficient tables must be two-dimensional and of equal shape",
                c_coeffs.shape[:2] if c_coeffs.ndim >= 2 else None,
                s_coeffs.shape,
            )
        if c_coeffs.shape[1] > c_coeffs.shape[0]:
            raise errors.ConfigurationError(
                f"gravity field order {c_coeffs.shape[1] - 1} exceeds its degree {c_coeffs.shape[0] - 1}"
            )
        if not (np.all(np.isfinite(c_coeffs)) and np.all(np.isfinite(s_coeffs))):
            raise errors.ConfigurationError("Stokes coefficients must be finite")
        if self.grav_param <= 0:
            raise errors.ConfigurationError(f"gravitational parameter must be positive, got {self.grav_param}")
        if self.equatorial_radius <= 0:
            raise errors.ConfigurationError(f"equatorial radius must be positive, got {self.equatorial_radius}")

    @property
    def max_degree(self) -> int:
        return self.c_coeffs.shape[0] - 1

    @property
    def max_order(self) -> int:
        return self.c_coeffs.shape[1] - 1

    def theta(self, epoch):
        r"""
        Angle of the prime meridian at ``epoch``.
        """

        return self.reference_gmst + self.rotation_rate * epoch

    @classmethod
    def earth(cls, degree: int = 8, order: int = None, gmst: float | time_.Time = 0.0) -> GravityField:
        r"""
        Earth gravity field truncated to the given degree and order.

        Parameters
        ----------
        degree : int
            Maximum degree, at most 8.
        order : int
            Maximum order, defaults to ``degree``.
        gmst : float | :class:`~danielsonpy.astro.Time`
            Greenwich mean-sidereal time at epoch zero, either as an angle or as the :class:`~danielsonpy.astro.Time`
            of epoch zero.
        """

        order = degree if order is None else order
        if not 2 <= degree <= 8:
            raise errors.ConfigurationError(f"built-in Earth field degree must be in [2, 8], got {degree}")
        if not 0 <= order <= degree:
            raise errors.ConfigurationError(f"built-in Earth field order must be in [0, {degree}], got {order}")
        if isinstance(gmst, time_.Time):
            gmst = gmst.gmst

        c_coeffs = np.zeros((degree + 1, order + 1))
        s_coeffs = np.zeros((degree + 1, order + 1))
        for (n, m), (c, s) in _EARTH_STOKES_COEFFS.items():
            if n <= degree and m <= order:
                c_coeffs[n, m] = c
                s_coeffs[n, m] = s

        return cls(c_coeffs, s_coeffs, reference_gmst=float(gmst))

    @classmethod
    def from_zonals(cls, j_coeffs: list[float], **kwargs) -> GravityField:
        r"""
        Axially symmetric field from the zonal coefficients :math:`J_2, J_3, \dots`.
        """

        c_coeffs = np.zeros((len(j_coeffs) + 2, 1))
        c_coeffs[2:, 0] = -np.asarray(j_coeffs, dtype=float)
        return cls(c_coeffs, np.zeros_like(c_coeffs), **kwargs)


def associated_legendre(max_degree: int, max_order: int, sin_lat, cos_lat) -> list[list]:
    r"""
    Unnormalized associated Legendre functions :math:`P_n^m(\sin\phi)` without the Condon-Shortley phase.

    Parameters
    ----------
    max_degree : int
        Highest degree :math:`n`.
    max_order : int
        Highest order :math:`m`, at most ``max_degree``.
    sin_lat, cos_lat : jnp.ndarray
        Sine and cosine of the latitude.

    Returns
    -------
    legendre : list[list]
        ``legendre[n][m]`` for :math:`m \leq \min(n, M)`, ``None`` elsewhere.
    """

    legendre = [[None] * (max_order + 1) for _ in range(max_degree + 1)]
    for m in range(max_order + 1):
        if m == 0:
            legendre[0][0] = jnp.ones_like(sin_lat)
        else:
            legendre[m][m] = (2 * m - 1) * cos_lat * legendre[m - 1][m - 1]

        if m + 1 <= max_degree:
            legendre[m + 1][m] = (2 * m + 1) * sin_lat * legendre[m][m]
        for n in range(m + 2, max_degree + 1):
            legendre[n][m] = ((2 * n - 1) * sin_lat * legendre[n - 1][m] - (n + m - 1) * legendre[n - 2][m]) / (n - m)

    return legendre


class NewtonianAttraction(base.Perturbation):
    r"""
    Point-mass attraction of the central body.

    Its only averaged effect is the Keplerian drift :math:`n = \sqrt{\mu / a^3}` of the mean longitude. The value of
    its ``"central attraction coefficient"`` parameter is the gravitational parameter used by every other perturbation
    of a :class:`~danielsonpy.astro.propagation.SemiAnalyticalPropagator`.

    Parameters
    ----------
    grav_param : float
        Gravitational parameter of the central body.
    """

    name = "newtonian"
    time_dependent = False

    CENTRAL_ATTRACTION_COEFFICIENT = "central attraction coefficient"

    def __init__(self, grav_param: float = 3.986004418e14):
        super().__init__()

        if grav_param <= 0:
            raise errors.ConfigurationError(f"gravitational parameter must be positive, got {grav_param}")
        self.parameters = [
            parameters_.ParameterDriver(self.CENTRAL_ATTRACTION_COEFFICIENT, grav_param, 2.0 ** 32, minimum=0.0)
        ]

    @property
    def grav_param(self) -> float:
        return self.parameters[0].value

    def mean_element_rate(self, state, auxiliary_elements, parameters):
        return jnp.zeros(6).at[5].set(jnp.sqrt(parameters[0] / auxiliary_elements.sm_axis ** 3))

    def acceleration(self, epoch, positions, velocities, mass, parameters, grav_param):
        positions = jnp.asarray(positions, dtype=float)
        radius = jnp.linalg.norm(positions, axis=-1, keepdims=True)
        return -parameters[0] * positions / radius ** 3


class ZonalHarmonics(base.ConservativePerturbation):
    r"""
    Perturbation caused by the zonal harmonics :math:`C_{n,0} = -J_n` of the central body's gravity field.

    The zonal potential is axially symmetric so it depends neither on the rotation of the body nor on time:

    .. math::

        R = \frac{\mu}{r} \sum_{n=2}^{N} C_{n,0} \left(\frac{R_e}{r}\right)^n P_n(\sin\phi)

    On the osculating ellipse the sine of the latitude is :math:`(x\alpha + y\beta) / r` where :math:`(x, y)` are the
    in-plane coordinates and :math:`(\alpha, \beta)` the direction cosines of the pole.

    Parameters
    ----------
    field : :class:`GravityField`
        Gravity field, every zonal of which enters the mean element rates.
    max_degree_short_periodics : int
        Highest degree of the short-period terms, defaults to the field degree.
    max_frequency_short_periodics : int
        Highest multiple of the mean longitude in the short-period terms, defaults to
        ``2 * max_degree_short_periodics + 1``.
    quadrature_points : int
        Number of nodes used to average over one revolution.

    Raises
    ------
    ConfigurationError
        If the field has no zonal beyond degree 1 or the truncation settings are inconsistent with it.
    """

    name = "zonal"
    time_dependent = False

    def __init__(
            self,
            field: GravityField,
            max_degree_short_periodics: int = None,
            max_frequency_short_periodics: int = None,
            quadrature_points: int = 64,
    ):
        if field.max_degree < 2:
            raise errors.ConfigurationError(
                f"zonal harmonics need a field of degree at least 2, got degree {field.max_degree}"
            )

        if max_degree_short_periodics is None:
            max_degree_short_periodics = field.max_degree
        if not 2 <= max_degree_short_periodics <= field.max_degree:
            raise errors.ConfigurationError(
                f"short-period degree {max_degree_short_periodics} outside of [2, {field.max_degree}]"
            )

        if max_frequency_short_periodics is None:
            max_frequency_short_periodics = 2 * max_degree_short_periodics + 1
        if not 1 <= max_frequency_short_periodics <= 2 * max_degree_short_periodics + 1:
            raise errors.ConfigurationError(
                f"short-period frequency {max_frequency_short_periodics} outside of "
                f"[1, {2 * max_degree_short_periodics + 1}]"
            )

        super().__init__(quadrature_points, max_frequency_short_periodics)

        self.field = field
        self.max_degree_short_periodics = max_degree_short_periodics

    def _zonal_sum(self, sin_lat, radius, degree: int, grav_param):
        legendre = associated_legendre(degree, 0, sin_lat, None)
        ratio = self.field.equatorial_radius / radius

        total = jnp.zeros_like(radius)
        for n in range(2, degree + 1):
            if self.field.c_coeffs[n, 0] != 0:
                total = total + self.field.c_coeffs[n, 0] * ratio ** n * legendre[n][0]

        return grav_param / radius * total

    def potential(self, epoch, positions, parameters, grav_param):
        positions = jnp.asarray(positions, dtype=float)
        radius = jnp.linalg.norm(positions, axis=-1)
        return self._zonal_sum(positions[..., 2] / radius, radius, self.field.max_degree, grav_param)

    def sample_potential(self, state, aux, parameters, eccentric_longitude, short_periodic=False):
        x, y, _, _ = aux.in_plane(eccentric_longitude)
        radius = jnp.sqrt(x ** 2 + y ** 2)
        sin_lat = (x * aux.alpha + y * aux.beta) / radius

        degree = self.max_degree_short_periodics if short_periodic else self.field.max_degree
        return self._zonal_sum(sin_lat, radius, degree, aux.grav_param)


class J2SquaredClosedForm(base.Perturbation):
    r"""
    Second-order secular effect of the :math:`J_2` zonal harmonic.

    Averaging the zonal potential to first order leaves secular drifts of the node, perigee and mean anomaly
    proportional to :math:`J_2^2`. In Brouwer's closed form, truncated for small eccentricity:

    .. math::

        \dot{M}_2 = \frac{3}{64} n J_2^2 \left(\frac{R_e}{p}\right)^4 \eta \left(13 - 78\theta^2 + 137\theta^4\right)

        \dot{\omega}_2 = \frac{3}{64} n J_2^2 \left(\frac{R_e}{p}\right)^4 \left(7 - 114\theta^2 + 395\theta^4\right)

        \dot{\Omega}_2 = \frac{3}{8} n J_2^2 \left(\frac{R_e}{p}\right)^4 \theta \left(4 - 19\theta^2\right)

    where :math:`\theta = \cos i` and :math:`\eta = \sqrt{1 - e^2}`. The semi-major axis has no secular rate. The
    contribution is meant to be added next to a :class:`ZonalHarmonics` holding the same :math:`J_2`. It has no
    short-period terms and no acceleration of its own, the force being that of the zonal harmonics.

    Parameters
    ----------
    field : :class:`GravityField`
        Gravity field, only its :math:`C_{2,0}` and equatorial radius are used.

    Raises
    ------
    ConfigurationError
        If the field has no degree 2 zonal.
    """

    name = "j2-squared"
    time_dependent = False

    def __init__(self, field: GravityField):
        if field.max_degree < 2 or field.c_coeffs[2, 0] == 0:
            raise errors.ConfigurationError("second-order J2 rates need a field with a non-zero J2")

        super().__init__()
        self.field = field

    def mean_element_rate(self, state, auxiliary_elements, parameters):
        aux = auxiliary_elements
        j2 = -self.field.c_coeffs[2, 0]
        cos_i = aux.gamma
        cos_i2 = cos_i ** 2
        cos_i4 = cos_i2 ** 2

        ratio = (self.field.equatorial_radius / (aux.sm_axis * aux.b ** 2)) ** 2
        factor = 0.75 * aux.mean_motion * (j2 * ratio) ** 2

        mean_anomaly_rate = factor / 16 * aux.b * (13 - 78 * cos_i2 + 137 * cos_i4)
        perigee_rate = factor / 16 * (7 - 114 * cos_i2 + 395 * cos_i4)
        node_rate = factor / 2 * (4 - 19 * cos_i2) * cos_i
        longitude_of_perigee_rate = perigee_rate + node_rate

        return jnp.stack([
            jnp.zeros_like(aux.sm_axis),
            -aux.h * longitude_of_perigee_rate,
            aux.k * longitude_of_perigee_rate,
            -aux.p * node_rate,
            aux.q * node_rate,
            mean_anomaly_rate + longitude_of_perigee_rate,
        ])

    def acceleration(self, epoch, positions, velocities, mass, parameters, grav_param):
        return jnp.zeros_like(jnp.asarray(positions, dtype=float))


class TesseralHarmonics(base.Perturbation):
    r"""
    Perturbation caused by the tesseral and sectoral harmonics (:math:`m \geq 1`) of the central body's gravity field.

    Writing the body-fixed longitude as the inertial longitude :math:`L` minus the rotation angle :math:`\theta` splits
    the order-:math:`m` part of the potential into :math:`A_m \cos m\theta + B_m \sin m\theta` with

    .. math::

        A_m = \sum_n \frac{\mu}{r} \left(\frac{R_e}{r}\right)^n P_n^m(\sin\phi) (C_{nm} \cos mL + S_{nm} \sin mL)

        B_m = \sum_n \frac{\mu}{r} \left(\frac{R_e}{r}\right)^n P_n^m(\sin\phi) (C_{nm} \sin mL - S_{nm} \cos mL)

    Expanding :math:`A_m` and :math:`B_m` in the mean longitude yields terms in :math:`j\lambda_M - m\theta`. Terms
    whose frequency :math:`jn - m\dot{\theta}` nearly vanishes are resonant: they vary slowly and enter the mean
    element rates. All other terms are short-periodic, including the m-daily terms (:math:`j = 0`) which only depend on
    the rotation of the body.

    Parameters
    ----------
    field : :class:`GravityField`
        Gravity field.
    max_degree_tesseral_short_periodics : int
        Highest degree of the non m-daily short-period terms.
    max_order_tesseral_short_periodics : int
        Highest order of the non m-daily short-period terms.
    max_frequency_short_periodics : int
        Highest multiple of the mean longitude, both in short-period terms and in resonance searches.
    max_degree_mdaily : int
        Highest degree of the m-daily terms.
    max_order_mdaily : int
        Highest order of the m-daily terms, zero to disable them.
    quadrature_points : int
        Number of nodes used to average over one revolution.

    Raises
    ------
    ConfigurationError
        If the field has no tesseral term or a truncation setting is inconsistent with it.
    """

    name = "tesseral"
    time_dependent = False

    def __init__(
            self,
            field: GravityField,
            max_degree_tesseral_short_periodics: int = None,
            max_order_tesseral_short_periodics: int = None,
            max_frequency_short_periodics: int = 12,
            max_degree_mdaily: int = None,
            max_order_mdaily: int = None,
            quadrature_points: int = 64,
    ):
        super().__init__()

        if field.max_order < 1:
            raise errors.ConfigurationError(f"tesseral harmonics need a field of order at least 1, got {field.max_order}")

        def degree_setting(value, label):
            value = field.max_degree if value is None else value
            if not 2 <= value <= field.max_degree:
                raise errors.ConfigurationError(f"{label} {value} outside of [2, {field.max_degree}]")
            return value

        def order_setting(value, label, degree, lowest):
            value = min(field.max_order, degree) if value is None else value
            if not lowest <= value <= min(field.max_order, degree):
                raise errors.ConfigurationError(
                    f"{label} {value} outside of [{lowest}, {min(field.max_order, degree)}]"
                )
            return value

        self.max_degree_tesseral_short_periodics = degree_setting(
            max_degree_tesseral_short_periodics, "tesseral short-period degree"
        )
        self.max_order_tesseral_short_periodics = order_setting(
            max_order_tesseral_short_periodics, "tesseral short-period order", self.max_degree_tesseral_short_periodics, 0
        )
        self.max_degree_mdaily = degree_setting(max_degree_mdaily, "m-daily degree")
        self.max_order_mdaily = order_setting(max_order_mdaily, "m-daily order", self.max_degree_mdaily, 0)

        if max_frequency_short_periodics < 1:
            raise errors.ConfigurationError(
                f"maximum short-period frequency must be at least 1, got {max_frequency_short_periodics}"
            )
        if quadrature_points <= 2 * max_frequency_short_periodics:
            raise errors.ConfigurationError(
                f"{quadrature_points} quadrature points cannot resolve short-period frequency "
                f"{max_frequency_short_periodics}"
            )

        self.field = field
        self.max_frequency_short_periodics = max_frequency_short_periodics
        self.quadrature_points = quadrature_points

    def resonant_terms(self, state) -> list[tuple[int, int]]:
        r"""
        Resonant pairs :math:`(m, j)` for the orbit of a concrete state.

        The ratio of the orbital period to the rotation period of the body sets the resonances: order :math:`m` is
        resonant when :math:`j = \mathrm{round}(m T / T_b)` is within the frequency limit and :math:`|m T / T_b - j|`
        is below a tolerance which tightens for long orbital periods.
        """

        orbit_period = state.orbit.period
        ratio = orbit_period * self.field.rotation_rate / (2 * np.pi)
        tolerance = 1 / max(10.0, 864000.0 / orbit_period)

        resonances = []
        for m in range(1, self.field.max_order + 1):
            j = int(round(ratio * m))
            if 0 < j <= self.max_frequency_short_periodics and abs(ratio * m - j) <= tolerance:
                resonances.append((m, j))

        _log.debug("resonant tesseral terms %s at period %.1f s", resonances, orbit_period)
        return resonances

    def order_terms(self, positions, degree: int, max_order: int, grav_param) -> tuple[list, list]:
        r"""
        Functions :math:`A_m` and :math:`B_m` for :math:`m = 1 \dots M` at inertial positions.

        Returns
        -------
        a_terms, b_terms : list
            ``a_terms[m]`` and ``b_terms[m]`` are (N, ) arrays, index 0 is unused.
        """

        max_order = min(max_order, degree, self.field.max_order)
        radius = jnp.linalg.norm(positions, axis=-1)
        rho = jnp.sqrt(positions[..., 0] ** 2 + positions[..., 1] ** 2)
        legendre = associated_legendre(degree, max_order, positions[..., 2] / radius, rho / radius)

        cos_l = positions[..., 0] / rho
        sin_l = positions[..., 1] / rho
        cos_ml = jnp.ones_like(radius)
        sin_ml = jnp.zeros_like(radius)

        a_terms = [None]
        b_terms = [None]
        for m in range(1, max_order + 1):
            cos_ml, sin_ml = cos_ml * cos_l - sin_ml * sin_l, sin_ml * cos_l + cos_ml * sin_l

            a_m = jnp.zeros_like(radius)
            b_m = jnp.zeros_like(radius)
            for n in range(max(2, m), degree + 1):
                c_nm = self.field.c_coeffs[n, m]
                s_nm = self.field.s_coeffs[n, m]
                scaled = grav_param / radius * (self.field.equatorial_radius / radius) ** n * legendre[n][m]
                a_m = a_m + scaled * (c_nm * cos_ml + s_nm * sin_ml)
                b_m = b_m + scaled * (c_nm * sin_ml - s_nm * cos_ml)

            a_terms.append(a_m)
            b_terms.append(b_m)

        return a_terms, b_terms

    def potential(self, epoch, positions, parameters, grav_param):
        positions = jnp.asarray(positions, dtype=float)
        a_terms, b_terms = self.order_terms(positions, self.field.max_degree, self.field.max_order, grav_param)

        theta = self.field.theta(epoch)
        total = jnp.zeros(positions.shape[:-1])
        for m in range(1, len(a_terms)):
            total = total + a_terms[m] * jnp.cos(m * theta) + b_terms[m] * jnp.sin(m * theta)

        return total

    def acceleration(self, epoch, positions, velocities, mass, parameters, grav_param):
        return jax.grad(lambda points: jnp.sum(self.potential(epoch, points, parameters, grav_param)))(
            jnp.asarray(positions, dtype=float)
        )

    def _coefficient_function(self, state, grav_param, degree: int, terms: list[tuple[int, int]]):
        r"""
        Function of the elements giving the coefficients :math:`c_k, s_k` of the potential terms
        :math:`c_k \cos(j_k\lambda_M - m_k\theta) + s_k \sin(j_k\lambda_M - m_k\theta)`.
        """

        orders = [m for m, _ in terms]
        frequencies = jnp.asarray([j for _, j in terms], dtype=float)

        def coefficients(elements):
            aux = auxiliary.AuxiliaryElements.from_elements(state.epoch, elements, grav_param)
            eccentric_longitude, mean_longitude, weights = averaging.eccentric_grid(aux, self.quadrature_points)
            positions, _ = aux.orbit_points(eccentric_longitude)
            a_terms, b_terms = self.order_terms(positions, degree, max(orders), grav_param)

            a_k = jnp.stack([a_terms[m] for m in orders])
            b_k = jnp.stack([b_terms[m] for m in orders])
            phi = frequencies[:, None] * mean_longitude[None, :]
            cos_phi = jnp.cos(phi)
            sin_phi = jnp.sin(phi)

            c = jnp.sum(weights * (a_k * cos_phi + b_k * sin_phi), axis=1)
            s = jnp.sum(weights * (a_k * sin_phi - b_k * cos_phi), axis=1)
            return c, s

        return coefficients

    def mean_element_rate(self, state, auxiliary_elements, parameters):
        resonances = self.resonant_terms(state)
        if not resonances:
            return jnp.zeros(6)

        frequencies = np.array([j for _, j in resonances])
        orders = np.array([m for m, _ in resonances])
        rate_cos, rate_sin = averaging.potential_rates(
            self._coefficient_function(state, auxiliary_elements.grav_param, self.field.max_degree, resonances),
            auxiliary_elements,
            frequencies,
        )

        phi = jnp.asarray(frequencies) * auxiliary_elements.lm - jnp.asarray(orders) * self.field.theta(state.epoch)
        return jnp.cos(phi) @ rate_cos + jnp.sin(phi) @ rate_sin

    def short_period_terms_list(self, state) -> tuple[list, list]:
        r"""
        Pairs :math:`(m, j)` of the non m-daily and of the m-daily short-period terms at a concrete state.
        """

        resonances = set(self.resonant_terms(state))
        max_frequency = self.max_frequency_short_periodics

        tesseral = [
            (m, j)
            for m in range(1, self.max_order_tesseral_short_periodics + 1)
            for j in range(-max_frequency, max_frequency + 1)
            if j != 0 and (m, j) not in resonances
        ]
        mdaily = [(m, 0) for m in range(1, self.max_order_mdaily + 1)]

        return tesseral, mdaily

    def short_period_harmonics(self, state, auxiliary_elements, parameters):
        series = []
        for degree, terms in zip(
                (self.max_degree_tesseral_short_periodics, self.max_degree_mdaily),
                self.short_period_terms_list(state),
        ):
            if not terms:
                continue

            series.append(averaging.conservative_harmonics(
                self._coefficient_function(state, auxiliary_elements.grav_param, degree, terms),
                auxiliary_elements,
                np.array([j for _, j in terms]),
                np.array([m for m, _ in terms]),
                self.field.reference_gmst,
                self.field.rotation_rate,
                indexed_by_order=True,
            ))

        return averaging.Harmonics.concatenate(series)
