from __future__ import annotations
import logging
from typing import TYPE_CHECKING

import numpy as np

from .. import conversions, errors

if TYPE_CHECKING:
    from .. import spacecraft
    from ..perturbations import ShortPeriodTerms


_log = logging.getLogger(__name__)

# Additional state under which retained short-period coefficients are attached to osculating states.
SHORT_PERIOD_COEFFICIENTS = "short period coefficients"


class ShortPeriodSynthesizer:
    r"""
    Sums the short-period terms of all perturbations to map mean states onto osculating ones and back.

    Going from mean to osculating elements is a single evaluation of the short-period series at the fast angle of the
    mean state:

    .. math::

        \vec{E}_{osc} = \vec{E}_{mean} + \sum_i \vec{\eta}_i(\vec{E}_{mean})

    Going back has no closed form since the series are functions of the unknown mean elements. It is solved by the
    fixed-point iteration :math:`\vec{E}_{mean} \leftarrow \vec{E}_{osc} - \sum_i \vec{\eta}_i(\vec{E}_{mean})`
    started from the osculating elements, which converges because the short-period terms are small.

    Parameters
    ----------
    terms : list[:class:`~danielsonpy.astro.perturbations.ShortPeriodTerms`]
        One term set per perturbation, created for the propagation or conversion at hand.
    """

    def __init__(self, terms: list[ShortPeriodTerms]):
        self.terms = terms

    def value(self, mean_state: spacecraft.SpacecraftState) -> np.ndarray:
        r"""
        Total six-element short-period correction at a mean state.
        """

        correction = np.zeros(6)
        for term in self.terms:
            correction += term.value(mean_state)
        return correction

    def mean_to_osculating(self, mean_state: spacecraft.SpacecraftState) -> spacecraft.SpacecraftState:
        osculating = mean_state.elements + self.value(mean_state)
        return mean_state.with_orbit(mean_state.orbit.with_elements(osculating))

    def osculating_to_mean(
            self,
            osculating_state: spacecraft.SpacecraftState,
            epsilon: float = 1e-13,
            max_iterations: int = 200,
    ) -> spacecraft.SpacecraftState:
        r"""
        Mean state whose osculating counterpart is ``osculating_state``.

        Parameters
        ----------
        osculating_state : :class:`~danielsonpy.astro.SpacecraftState`
            State to convert.
        epsilon : float
            Relative convergence threshold. The semi-major axis is compared to :math:`\epsilon (|a| + 1)`, the
            eccentricity vector to :math:`\epsilon (e + 1)`, the inclination vector to :math:`\epsilon (i + 1)` and
            the mean longitude to :math:`\epsilon \pi`.
        max_iterations : int
            Iteration budget.

        Returns
        -------
        mean_state : :class:`~danielsonpy.astro.SpacecraftState`
            Converged mean state, with the additional states of ``osculating_state``.

        Raises
        ------
        ConvergenceError
            If the iteration budget is exhausted.
        """

        osculating = osculating_state.elements
        orbit = osculating_state.orbit
        thresholds = epsilon * np.array([
            abs(osculating[0]) + 1,
            orbit.eccentricity + 1,
            orbit.eccentricity + 1,
            orbit.inclination + 1,
            orbit.inclination + 1,
            np.pi,
        ])

        mean = osculating.copy()
        for iteration in range(1, max_iterations + 1):
            mean_state = osculating_state.with_orbit(orbit.with_elements(mean))
            new_mean = osculating - self.value(mean_state)

            delta = new_mean - mean
            delta[5] = conversions.normalize_angle(delta[5], 0.0)
            mean = new_mean

            if np.all(np.abs(delta) <= thresholds):
                _log.debug("osculating to mean conversion converged in %d iterations", iteration)
                return osculating_state.with_orbit(orbit.with_elements(mean))

        raise errors.ConvergenceError(
            "osculating to mean conversion did not converge", max_iterations, osculating_state
        )

    def coefficients(self, mean_state: spacecraft.SpacecraftState, selected: set[str] | None) -> dict[str, np.ndarray]:
        r"""
        Named coefficients of all term sets retained by ``selected``, see
        :meth:`~danielsonpy.astro.perturbations.ShortPeriodTerms.coefficients()`.
        """

        retained = {}
        for term in self.terms:
            retained.update(term.coefficients(mean_state, selected))
        return retained

    def update(self, mean_state: spacecraft.SpacecraftState):
        r"""
        Refreshes every term set at a new mean state with the current values of the perturbations' parameters.
        """

        for term in self.terms:
            term.update(term.perturbation.parameter_values(), mean_state)

    def clear(self):
        for term in self.terms:
            term.clear()
