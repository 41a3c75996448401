from __future__ import annotations
from abc import ABC, abstractmethod
import logging
from typing import Callable

import numpy as np
import scipy as sp

from .. import errors


_log = logging.getLogger(__name__)

# Absolute tolerance given to components excluded from error control.
_UNCONTROLLED_TOLERANCE = 1e30


class Integrator(ABC):
    r"""
    Base class for the ordinary differential equation solvers used by the propagators.

    Integrators advance a state vector from ``t0`` to ``t_end`` (forward or backward) and report every accepted step
    to an optional handler. Only the leading components of the vector, the mean elements, take part in error control.
    Any trailing components, such as the variational equations of
    :class:`~danielsonpy.astro.propagation.MatricesHarvester`, follow the step sequence chosen for the elements.

    Parameters
    ----------
    min_step : float
        Smallest admissible step size in :math:`s`.
    max_step : float
        Largest admissible step size in :math:`s`.
    absolute_tolerance : float | np.ndarray
        Absolute tolerance, scalar or one per controlled component.
    relative_tolerance : float | np.ndarray
        Relative tolerance, scalar or one per controlled component.
    """

    def __init__(
            self,
            min_step: float = 1e-3,
            max_step: float = 86400.0,
            absolute_tolerance: float | np.ndarray = 1e-6,
            relative_tolerance: float | np.ndarray = 1e-10,
    ):
        if min_step <= 0 or max_step < min_step:
            raise errors.ConfigurationError(f"invalid step bounds [{min_step}, {max_step}]")

        self.min_step = min_step
        self.max_step = max_step
        self.absolute_tolerance = absolute_tolerance
        self.relative_tolerance = relative_tolerance

    def tolerance_vectors(self, size: int, controlled: int) -> tuple[np.ndarray, np.ndarray]:
        r"""
        Per-component tolerances for a vector whose first ``controlled`` components take part in error control.
        """

        absolute = np.full(size, _UNCONTROLLED_TOLERANCE)
        relative = np.full(size, _UNCONTROLLED_TOLERANCE)
        absolute[:controlled] = self.absolute_tolerance
        relative[:controlled] = self.relative_tolerance

        return absolute, relative

    @abstractmethod
    def integrate(
            self,
            derivatives: Callable,
            t0: float,
            y0: np.ndarray,
            t_end: float,
            step_handler: Callable = None,
            controlled: int = None,
    ) -> tuple[float, np.ndarray]:
        r"""
        Integrates ``y' = derivatives(t, y)`` from ``t0`` to ``t_end``.

        Parameters
        ----------
        derivatives : Callable
            Right-hand side ``f(t, y)`` returning an array shaped like ``y``.
        t0 : float
            Initial time.
        y0 : np.ndarray
            Initial vector.
        t_end : float
            Final time, may precede ``t0``.
        step_handler : Callable
            Called as ``step_handler(t, y)`` after every accepted step.
        controlled : int
            Number of leading components subject to error control, all of them by default.

        Returns
        -------
        t : float
            Final time, equal to ``t_end``.
        y : np.ndarray
            Final vector.
        """

        pass


class DormandPrince853Integrator(Integrator):
    r"""
    Adaptive 8th order Runge-Kutta method of Dormand and Prince with a 5th and 3rd order error estimate.

    Steps :class:`scipy.integrate.DOP853` one accepted step at a time so that each of them can be reported. The first
    step is never smaller than ``min_step``, unless the whole interval is.

    Raises
    ------
    NumericalDomainError
        If the step size falls below ``min_step`` or the solver fails.
    """

    def integrate(self, derivatives, t0, y0, t_end, step_handler=None, controlled=None):
        y0 = np.asarray(y0, dtype=float)
        if t_end == t0:
            return t0, y0.copy()

        controlled = len(y0) if controlled is None else controlled
        absolute, relative = self.tolerance_vectors(len(y0), controlled)

        solver = sp.integrate.DOP853(
            derivatives,
            t0,
            y0,
            t_end,
            max_step=self.max_step,
            rtol=relative,
            atol=absolute,
        )
        # The initial step estimate is clamped into the step bounds like every other step.
        if solver.h_abs < self.min_step:
            solver = sp.integrate.DOP853(
                derivatives,
                t0,
                y0,
                t_end,
                first_step=min(self.min_step, abs(t_end - t0)),
                max_step=self.max_step,
                rtol=relative,
                atol=absolute,
            )

        steps = 0
        while solver.status == "running":
            message = solver.step()
            if solver.status == "failed":
                raise errors.NumericalDomainError(f"integration failed at t = {solver.t}: {message}")
            if solver.status == "running" and solver.step_size < self.min_step:
                raise errors.NumericalDomainError(
                    f"step size {solver.step_size} s below the minimum {self.min_step} s at t = {solver.t}"
                )

            steps += 1
            if step_handler is not None:
                step_handler(solver.t, solver.y)

        _log.debug("DOP853 reached t = %s in %d steps", solver.t, steps)
        return solver.t, solver.y.copy()


class ClassicalRungeKuttaIntegrator(Integrator):
    r"""
    Fixed-step classical 4th order Runge-Kutta method.

    The final step is shortened to land exactly on ``t_end``. Useful when the integrated map itself is being
    differentiated, since the step sequence does not depend on the state.

    Parameters
    ----------
    step : float
        Step size in :math:`s`.
    """

    def __init__(self, step: float):
        if step <= 0:
            raise errors.ConfigurationError(f"step size must be positive, got {step}")

        super().__init__(min_step=step, max_step=step)
        self.step = step

    def integrate(self, derivatives, t0, y0, t_end, step_handler=None, controlled=None):
        t = t0
        y = np.asarray(y0, dtype=float).copy()
        direction = np.sign(t_end - t0)

        while direction * (t_end - t) > 0:
            h = direction * min(self.step, abs(t_end - t))

            k1 = np.asarray(derivatives(t, y))
            k2 = np.asarray(derivatives(t + h / 2, y + h / 2 * k1))
            k3 = np.asarray(derivatives(t + h / 2, y + h / 2 * k2))
            k4 = np.asarray(derivatives(t + h, y + h * k3))
            y = y + h / 6 * (k1 + 2 * k2 + 2 * k3 + k4)

            # Avoid drift of the time grid from repeated additions.
            t = t_end if abs(t_end - (t + h)) < 1e-9 * self.step else t + h

            if step_handler is not None:
                step_handler(t, y)

        return t, y
