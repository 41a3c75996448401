from __future__ import annotations
from abc import ABC, abstractmethod
import logging
from typing import TYPE_CHECKING

import jax
import jax.numpy as jnp
import numpy as np

from .. import auxiliary, errors, parameters as parameters_
from ..spacecraft import PropagationType
from . import averaging

if TYPE_CHECKING:
    from .. import spacecraft


_log = logging.getLogger(__name__)


class Perturbation(ABC):
    r"""
    Base class for implementing perturbations from Keplerian two-body orbital mechanics in a semi-analytical
    setting. These are designed to be used in conjunction with
    :class:`~danielsonpy.astro.propagation.SemiAnalyticalPropagator`.

    A perturbation contributes in two ways. Its averaged effect on the slowly varying equinoctial elements is returned
    by :meth:`mean_element_rate()`, which is what the propagator integrates. Its fast, periodic effect is represented
    by a set of short-period terms (see :meth:`short_period_terms()`) that are added to mean elements to recover
    osculating ones.

    Both operations are written with :mod:`jax.numpy` so the ``auxiliary`` elements and ``parameters`` they receive
    may be JAX tracers. The propagator relies on this to differentiate the very same physics with
    :func:`jax.jacfwd` when computing state transition matrices.

    Child classes must implement :meth:`mean_element_rate()` and :meth:`acceleration()`. The latter gives the
    instantaneous perturbing acceleration and lets the numerical reference propagator
    :class:`~danielsonpy.astro.propagation.CowellPropagator` share the force models.

    Attributes
    ----------
    name : str
        Identifier of the perturbation, also used as prefix of the names of its short-period coefficients.
    parameters : list[:class:`~danielsonpy.astro.ParameterDriver`]
        Tunable parameters of the model, in the order in which their values are passed to the methods below.
    time_dependent : bool
        Whether the short-period coefficients depend on the epoch in addition to the slow elements. Used to key the
        coefficient cache.
    """

    name = "perturbation"
    time_dependent = True

    def __init__(self):
        self.parameters: list[parameters_.ParameterDriver] = []
        self._short_period_terms: ShortPeriodTerms | None = None

    def get_parameter(self, name: str) -> parameters_.ParameterDriver:
        return parameters_.find_driver(self.parameters, name)

    def parameter_values(self) -> np.ndarray:
        r"""
        Current values of the parameters as a (P, ) array.
        """

        return np.array([driver.value for driver in self.parameters], dtype=float)

    def init(self, state: spacecraft.SpacecraftState):
        r"""
        Hook called once with the initial mean state before integration starts.
        """

        pass

    @abstractmethod
    def mean_element_rate(
            self,
            state: spacecraft.SpacecraftState,
            auxiliary_elements: auxiliary.AuxiliaryElements,
            parameters: jnp.ndarray,
    ) -> jnp.ndarray:
        r"""
        Averaged contribution to the time derivative of the six mean equinoctial elements.

        Parameters
        ----------
        state : :class:`~danielsonpy.astro.SpacecraftState`
            Concrete mean state the rates are evaluated at. Supplies the epoch, the mass and the quantities which are
            not differentiated, such as the bounds of averaging quadratures.
        auxiliary_elements : :class:`~danielsonpy.astro.AuxiliaryElements`
            Auxiliary elements of the mean state. May hold JAX tracers.
        parameters : jnp.ndarray
            Values of the :attr:`parameters`. May hold JAX tracers.

        Returns
        -------
        rate : jnp.ndarray
            (6, ) array of element rates.
        """

        pass

    @abstractmethod
    def acceleration(
            self,
            epoch: float,
            positions: jnp.ndarray,
            velocities: jnp.ndarray,
            mass: float,
            parameters: jnp.ndarray,
            grav_param: float,
    ) -> jnp.ndarray:
        r"""
        Instantaneous perturbing acceleration at one or more points.

        Parameters
        ----------
        epoch : float
            Time in seconds since the reference epoch.
        positions : jnp.ndarray
            (N, 3) array of planet-centered inertial positions.
        velocities : jnp.ndarray
            (N, 3) array of planet-centered inertial velocities.
        mass : float
            Spacecraft mass in :math:`kg`.
        parameters : jnp.ndarray
            Values of the :attr:`parameters`.
        grav_param : float
            Gravitational parameter of the central body.

        Returns
        -------
        acceleration : jnp.ndarray
            (N, 3) array of accelerations.
        """

        pass

    def short_period_harmonics(
            self,
            state: spacecraft.SpacecraftState,
            auxiliary_elements: auxiliary.AuxiliaryElements,
            parameters: jnp.ndarray,
    ) -> averaging.Harmonics:
        r"""
        Coefficients of the short-period series at the slow elements of a mean state.

        The default is an empty series, which is right for perturbations such as the point-mass attraction that only
        have secular effects.
        """

        return averaging.Harmonics.empty()

    def short_period_variation(
            self,
            state: spacecraft.SpacecraftState,
            auxiliary_elements: auxiliary.AuxiliaryElements,
            parameters: jnp.ndarray,
    ) -> jnp.ndarray:
        r"""
        Short-period correction at the fast angle of ``auxiliary_elements``, computed without caching.

        Traceable counterpart of :meth:`ShortPeriodTerms.value()` used to differentiate the correction with respect
        to the mean elements and parameters.
        """

        harmonics = self.short_period_harmonics(state, auxiliary_elements, parameters)
        return harmonics.evaluate(auxiliary_elements.lm, state.epoch)

    def short_period_terms(
            self,
            auxiliary_elements: auxiliary.AuxiliaryElements,
            propagation_type: PropagationType,
            parameters: np.ndarray,
    ) -> ShortPeriodTerms:
        r"""
        Creates the short-period term set used for one propagation or one conversion.

        Parameters
        ----------
        auxiliary_elements : :class:`~danielsonpy.astro.AuxiliaryElements`
            Auxiliary elements of the initial mean state.
        propagation_type : :class:`~danielsonpy.astro.PropagationType`
            ``MEAN`` term sets evaluate to zero, ``OSCULATING`` ones to the full correction.
        parameters : np.ndarray
            Parameter values to use until :meth:`update_short_period_terms()` provides new ones.

        Returns
        -------
        terms : :class:`ShortPeriodTerms`
            Term set, also kept by the perturbation so that :meth:`update_short_period_terms()` can refresh it.
        """

        self._short_period_terms = ShortPeriodTerms(
            self, propagation_type, parameters, auxiliary_elements.epoch, float(auxiliary_elements.grav_param)
        )
        return self._short_period_terms

    def update_short_period_terms(self, parameters: np.ndarray, state: spacecraft.SpacecraftState):
        r"""
        Refreshes the cached short-period coefficients at the slow elements of ``state``.

        Raises
        ------
        NotInitializedError
            If :meth:`short_period_terms()` has not been called yet.
        """

        if self._short_period_terms is None:
            raise errors.NotInitializedError(f"short-period terms of {self.name!r} have not been created")
        self._short_period_terms.update(parameters, state)

    def release_short_period_terms(self):
        self._short_period_terms = None


class ShortPeriodTerms:
    r"""
    Short-period series of one perturbation.

    The series coefficients are expensive to compute (they involve averaging quadratures and their derivatives) but
    once known the correction at any fast angle is a cheap trigonometric sum. Coefficients are therefore cached and
    only recomputed when the slow elements, parameters or (for time-dependent models) epoch of the state change. The
    cache holds a single entry and is keyed by exact values, so the value returned for a state never depends on the
    order of previous calls.

    Instances are created by :meth:`Perturbation.short_period_terms()` and owned by
    :class:`~danielsonpy.astro.propagation.ShortPeriodSynthesizer` for the lifetime of one propagation.

    Parameters
    ----------
    perturbation : :class:`Perturbation`
        Perturbation the terms belong to.
    propagation_type : :class:`~danielsonpy.astro.PropagationType`
        ``MEAN`` term sets evaluate to zero.
    parameters : np.ndarray
        Parameter values used to compute the coefficients.
    reference_epoch : float
        Epoch of the state the term set was created for.
    grav_param : float
        Gravitational parameter the coefficients are computed with.
    """

    def __init__(
            self,
            perturbation: Perturbation,
            propagation_type: PropagationType,
            parameters: np.ndarray,
            reference_epoch: float,
            grav_param: float,
    ):
        self.perturbation = perturbation
        self.propagation_type = propagation_type
        self.parameters = np.array(parameters, dtype=float)
        self.reference_epoch = reference_epoch
        self.grav_param = grav_param

        self._key = None
        self._harmonics: averaging.Harmonics | None = None

    def _cache_key(self, state: spacecraft.SpacecraftState) -> tuple:
        key = tuple(state.elements[:5]) + tuple(self.parameters) + (self.grav_param, state.mass)
        if self.perturbation.time_dependent:
            key += (state.epoch, )
        return key

    def update(self, parameters: np.ndarray, state: spacecraft.SpacecraftState):
        r"""
        Recomputes the coefficients at the slow elements of ``state`` with new parameter values.
        """

        self.parameters = np.array(parameters, dtype=float)
        self._refresh(state)

    def _refresh(self, state: spacecraft.SpacecraftState):
        key = self._cache_key(state)
        if key == self._key:
            return

        aux = auxiliary.AuxiliaryElements.from_elements(state.epoch, state.elements, self.grav_param)
        self._harmonics = self.perturbation.short_period_harmonics(state, aux, jnp.asarray(self.parameters))
        self._key = key
        _log.debug("refreshed %d short-period terms of %s", len(self._harmonics), self.perturbation.name)

    def harmonics(self, state: spacecraft.SpacecraftState) -> averaging.Harmonics:
        self._refresh(state)
        return self._harmonics

    def value(self, state: spacecraft.SpacecraftState) -> np.ndarray:
        r"""
        Six-element short-period correction at the fast angle of a mean state.
        """

        if self.propagation_type is PropagationType.MEAN:
            return np.zeros(6)
        return np.asarray(self.harmonics(state).evaluate(state.elements[5], state.epoch))

    def coefficients(self, state: spacecraft.SpacecraftState, selected: set[str] | None) -> dict[str, np.ndarray]:
        r"""
        Named short-period coefficients at a mean state.

        Parameters
        ----------
        state : :class:`~danielsonpy.astro.SpacecraftState`
            Mean state.
        selected : set[str] | None
            ``None`` retains nothing, an empty set retains every coefficient and a non-empty set retains the
            coefficients with matching names.
        """

        if selected is None or self.propagation_type is PropagationType.MEAN:
            return {}

        named = self.harmonics(state).named_coefficients(self.perturbation.name)
        if not selected:
            return named
        return {name: value for name, value in named.items() if name in selected}

    def clear(self):
        self._key = None
        self._harmonics = None


class ConservativePerturbation(Perturbation):
    r"""
    Base class for perturbations deriving from a disturbing potential :math:`R`.

    The potential is sampled on the osculating ellipse of the mean elements and averaged over the mean longitude. The
    mean element rates follow from the gradient of the average through Lagrange's planetary equations, see
    :func:`~danielsonpy.astro.perturbations.averaging.poisson_matrix`. The harmonics of the potential in the mean
    longitude give the short-period terms.

    Child classes implement :meth:`potential()`. They may override :meth:`sample_potential()` when the potential has
    a cheaper expression on the orbit, or when the short-period series is truncated differently from the mean rates.

    Parameters
    ----------
    quadrature_points : int
        Number of nodes used to average over one revolution.
    max_frequency : int
        Highest multiple of the mean longitude retained in the short-period series.
    """

    def __init__(self, quadrature_points: int = 64, max_frequency: int = 8):
        super().__init__()

        if max_frequency < 1:
            raise errors.ConfigurationError(f"maximum short-period frequency must be at least 1, got {max_frequency}")
        if quadrature_points <= 2 * max_frequency:
            raise errors.ConfigurationError(
                f"{quadrature_points} quadrature points cannot resolve short-period frequency {max_frequency}"
            )

        self.quadrature_points = quadrature_points
        self.max_frequency = max_frequency

    @abstractmethod
    def potential(self, epoch: float, positions: jnp.ndarray, parameters: jnp.ndarray, grav_param: float):
        r"""
        Disturbing potential at one or more points.

        Parameters
        ----------
        epoch : float
            Time in seconds since the reference epoch.
        positions : jnp.ndarray
            (N, 3) array of planet-centered inertial positions.
        parameters : jnp.ndarray
            Values of the :attr:`parameters`.
        grav_param : float
            Gravitational parameter of the central body.

        Returns
        -------
        potential : jnp.ndarray
            (N, ) array.
        """

        pass

    def sample_potential(
            self,
            state: spacecraft.SpacecraftState,
            aux: auxiliary.AuxiliaryElements,
            parameters: jnp.ndarray,
            eccentric_longitude: jnp.ndarray,
            short_periodic: bool = False,
    ) -> jnp.ndarray:
        positions, _ = aux.orbit_points(eccentric_longitude)
        return self.potential(state.epoch, positions, parameters, aux.grav_param)

    def averaged_potential(
            self,
            state: spacecraft.SpacecraftState,
            elements: jnp.ndarray,
            parameters: jnp.ndarray,
            grav_param: float,
            max_frequency: int = 0,
    ) -> tuple:
        r"""
        Average and harmonics in the mean longitude of the potential on the ellipse of ``elements``.

        See :func:`~danielsonpy.astro.perturbations.averaging.real_fourier()` for the returned values.
        """

        aux = auxiliary.AuxiliaryElements.from_elements(state.epoch, elements, grav_param)
        eccentric_longitude, mean_longitude, weights = averaging.eccentric_grid(aux, self.quadrature_points)
        values = self.sample_potential(state, aux, parameters, eccentric_longitude, max_frequency > 0)

        return averaging.real_fourier(values, mean_longitude, weights, max_frequency)

    def mean_element_rate(self, state, auxiliary_elements, parameters):
        gradient = jax.jacfwd(
            lambda elements: self.averaged_potential(state, elements, parameters, auxiliary_elements.grav_param)[0]
        )(auxiliary_elements.elements)

        return averaging.poisson_matrix(auxiliary_elements.elements, auxiliary_elements.grav_param) @ gradient

    def short_period_harmonics(self, state, auxiliary_elements, parameters):
        def coefficients(elements):
            _, cos_coefficients, sin_coefficients = self.averaged_potential(
                state, elements, parameters, auxiliary_elements.grav_param, self.max_frequency
            )
            return cos_coefficients, sin_coefficients

        frequencies = np.arange(1, self.max_frequency + 1)
        return averaging.conservative_harmonics(
            coefficients, auxiliary_elements, frequencies, np.zeros_like(frequencies)
        )

    def acceleration(self, epoch, positions, velocities, mass, parameters, grav_param):
        return jax.grad(lambda points: jnp.sum(self.potential(epoch, points, parameters, grav_param)))(
            jnp.asarray(positions, dtype=float)
        )


class GaussianPerturbation(Perturbation):
    r"""
    Base class for perturbations described by a force rather than a potential, such as drag and radiation pressure.

    The osculating element rates from Gauss' variational equations are averaged over the part of the orbit where
    the force acts, given by :meth:`integration_limits()`. Their harmonics in the mean longitude give the
    short-period terms.

    Parameters
    ----------
    quadrature_points : int
        Number of nodes used to average over the integration interval.
    max_frequency : int
        Highest multiple of the mean longitude retained in the short-period series.
    """

    def __init__(self, quadrature_points: int = 48, max_frequency: int = 12):
        super().__init__()

        if max_frequency < 1:
            raise errors.ConfigurationError(f"maximum short-period frequency must be at least 1, got {max_frequency}")
        if quadrature_points <= 2 * max_frequency:
            raise errors.ConfigurationError(
                f"{quadrature_points} quadrature points cannot resolve short-period frequency {max_frequency}"
            )

        self.quadrature_points = quadrature_points
        self.max_frequency = max_frequency

    def integration_limits(self, state: spacecraft.SpacecraftState) -> tuple[float, float] | None:
        r"""
        Interval of true longitude over which the force acts.

        Returns
        -------
        limits : tuple[float, float] | None
            Lower and upper true longitudes, ``None`` for the full revolution. Equal bounds mean that the force does
            not act anywhere on the orbit.
        """

        return None

    def _osculating_harmonics(self, state, aux, parameters, max_frequency: int):
        limits = self.integration_limits(state)
        if limits is None:
            nodes = averaging.eccentric_grid(aux, self.quadrature_points)
        elif limits[1] <= limits[0]:
            return None
        else:
            nodes = averaging.true_longitude_arc(aux, limits[0], limits[1], self.quadrature_points)

        eccentric_longitude, mean_longitude, weights = nodes
        rates = averaging.gaussian_rates(
            lambda positions, velocities: self.acceleration(
                state.epoch, positions, velocities, state.mass, parameters, aux.grav_param
            ),
            aux,
            eccentric_longitude,
        )

        return averaging.real_fourier(rates, mean_longitude, weights, max_frequency)

    def mean_element_rate(self, state, auxiliary_elements, parameters):
        harmonics = self._osculating_harmonics(state, auxiliary_elements, parameters, 0)
        if harmonics is None:
            return jnp.zeros(6)
        return harmonics[0]

    def short_period_harmonics(self, state, auxiliary_elements, parameters):
        harmonics = self._osculating_harmonics(state, auxiliary_elements, parameters, self.max_frequency)
        if harmonics is None:
            return averaging.Harmonics.empty()

        _, rate_cos, rate_sin = harmonics
        frequencies = np.arange(1, self.max_frequency + 1)
        return averaging.integrate_harmonics(
            rate_cos, rate_sin, frequencies, np.zeros_like(frequencies), auxiliary_elements
        )
