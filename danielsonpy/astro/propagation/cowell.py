from __future__ import annotations
import logging
from typing import TYPE_CHECKING

import jax.numpy as jnp
import numpy as np
import scipy as sp

from .. import errors, perturbations as perturbations_
from ..orbit import Orbit
from . import base

if TYPE_CHECKING:
    from .. import attitude, spacecraft


_log = logging.getLogger(__name__)


class CowellPropagator(base.Propagator):
    r"""
    Propagator which simply numerically integrates the Cartesian equations of motion using scipy's ``solve_ivp()``.

    The accelerations are the :meth:`~danielsonpy.astro.perturbations.Perturbation.acceleration()` of the very
    perturbations averaged by :class:`~danielsonpy.astro.propagation.SemiAnalyticalPropagator`, which makes this
    propagator the reference against which the semi-analytical model is validated. If no
    :class:`~danielsonpy.astro.perturbations.NewtonianAttraction` has been added one is built from the
    gravitational parameter of the initial orbit.

    By default, DOP853 (a Runge-Kutta method of the 8th-order with a 5th and 3rd order error estimate) is used for
    numerical integration.

    Parameters
    ----------
    step_size : float
        Time interval between logged states. If ``None`` only the final state is logged.
    absolute_solver_tol : float
        Absolute tolerance of the solver.
    relative_solver_tol : float
        Relative tolerance of the solver.
    method : str
        Integration method passed to ``solve_ivp()``.
    attitude_provider : :class:`~danielsonpy.astro.attitude.AttitudeProvider`
        Attitude law applied to the produced states.

    Notes
    -----
    Numerical integration's accuracy is wholly based on the solver tolerances. Integration error accumulates over
    every orbit so much stricter tolerances are needed than for the mean elements.
    """

    def __init__(
            self,
            step_size: float = None,
            absolute_solver_tol: float = 1e-9,
            relative_solver_tol: float = 1e-12,
            method: str = "DOP853",
            attitude_provider: attitude.AttitudeProvider = None,
    ):
        super().__init__(attitude_provider)

        self.step_size = step_size
        self.absolute_solver_tol = absolute_solver_tol
        self.relative_solver_tol = relative_solver_tol
        self.method = method

    def propagate(self, initial_state: spacecraft.SpacecraftState, target: float) -> spacecraft.SpacecraftState:
        r"""
        The procedure for this style of propagation is as follows:

        1. Save initial position and velocity.
        2. Call ``solve_ivp()`` and integrate the equations of motion numerically.
        3. Extract the results of this function and log them.

        Parameters
        ----------
        initial_state : :class:`~danielsonpy.astro.SpacecraftState`
            Osculating initial state.
        target : float
            Epoch to reach, in seconds since the reference epoch.

        Returns
        -------
        state : :class:`~danielsonpy.astro.SpacecraftState`
            Osculating state at ``target``.

        Raises
        ------
        NumericalDomainError
            If the solver fails.
        """

        orbit = initial_state.orbit
        self._ensure_newtonian(orbit.grav_param)
        perturbations = self.get_perturbations()
        grav_param = next(
            p.grav_param for p in perturbations if isinstance(p, perturbations_.NewtonianAttraction)
        )

        # Get initial values used for propagation and set up logging capabilities.
        position, velocity = orbit.state()
        self.setup_log(initial_state)

        eval_times = None
        if self.step_size is not None:
            direction = np.sign(target - orbit.epoch)
            eval_times = np.arange(orbit.epoch, target, direction * self.step_size)[1:]
            eval_times = np.append(eval_times, target)

        sol = sp.integrate.solve_ivp(
            self.eom,
            [orbit.epoch, target],
            np.hstack((position, velocity)),
            method=self.method,
            t_eval=eval_times,
            atol=self.absolute_solver_tol,
            rtol=self.relative_solver_tol,
            args=[perturbations, initial_state.mass, grav_param],
        )
        if not sol.success:
            raise errors.NumericalDomainError(f"Cowell propagation failed: {sol.message}")

        # Extract propagation results.
        state = initial_state
        for index, time in enumerate(sol.t):
            state = self._apply_attitude(initial_state.with_orbit(
                Orbit.from_state(sol.y[0:3, index], sol.y[3:, index], time, orbit.grav_param, orbit.frame)
            ))
            self.log(state)

        _log.debug("Cowell propagation reached t = %s s in %d function evaluations", sol.t[-1], sol.nfev)
        return state

    @staticmethod
    def eom(t, y, perturbations, mass, grav_param):
        r"""
        Equation of motion passed to ``solve_ivp()``, the sum of the accelerations of all perturbations put in
        first-order form.

        Parameters
        ----------
        t : float
            Current time.
        y : np.ndarray
            Current state, a (6, ) array where indices 0-2 correspond to the (x, y, z) Cartesian position and indices
            3-5 the accompanying (x, y, z) Cartesian velocity.
        perturbations : list[:class:`~danielsonpy.astro.perturbations.Perturbation`]
            Perturbations acting on the spacecraft, the point-mass attraction included.
        mass : float
            Spacecraft mass.
        grav_param : float
            Gravitational parameter handed to the perturbations.
        """

        positions = jnp.asarray(y[None, 0:3])
        velocities = jnp.asarray(y[None, 3:])

        acceleration = np.zeros(3)
        for perturbation in perturbations:
            acceleration += np.asarray(perturbation.acceleration(
                t, positions, velocities, mass, jnp.asarray(perturbation.parameter_values()), grav_param
            ))[0]

        return np.hstack((y[3:], acceleration))
