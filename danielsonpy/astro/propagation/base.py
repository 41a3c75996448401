from __future__ import annotations
from typing import TYPE_CHECKING, Callable

from .. import attitude as attitude_, perturbations

if TYPE_CHECKING:
    from .. import logging, spacecraft


class Propagator:
    r"""
    Base class for all orbit propagators.

    Holds what every propagator shares: the perturbations acting on the spacecraft, the attitude law applied to the
    states it produces and the callbacks run on each accepted step. Child classes implement ``propagate()``. On each
    accepted step of that process :meth:`log()` is called to hand the current state to every
    :class:`~danielsonpy.astro.logging.Logger` and step handler.

    Parameters
    ----------
    attitude_provider : :class:`~danielsonpy.astro.attitude.AttitudeProvider`
        Attitude law applied to the produced states. If ``None`` the attitude of the initial state is kept.

    Attributes
    ----------
    perturbations : list[:class:`~danielsonpy.astro.perturbations.Perturbation`]
        Perturbations acting on the spacecraft, in insertion order.
    loggers : list[:class:`~danielsonpy.astro.logging.Logger`]
        Ephemeris recorders.
    step_handlers : list[Callable]
        Callbacks called as ``handler(state)`` on each accepted step.
    """

    def __init__(self, attitude_provider: attitude_.AttitudeProvider = None):
        self.attitude_provider = attitude_provider

        self.perturbations: list[perturbations.Perturbation] = []
        self.loggers: list[logging.Logger] = []
        self.step_handlers: list[Callable] = []

    def add_perturbation(self, perturbation: perturbations.Perturbation):
        r"""
        Adds a perturbation. A new :class:`~danielsonpy.astro.perturbations.NewtonianAttraction` replaces the
        existing one since there can only be a single central body.
        """

        if isinstance(perturbation, perturbations.NewtonianAttraction):
            self.perturbations = [
                existing for existing in self.perturbations
                if not isinstance(existing, perturbations.NewtonianAttraction)
            ]
        self.perturbations.append(perturbation)

    def remove_perturbations(self):
        self.perturbations = []

    def get_perturbations(self) -> list[perturbations.Perturbation]:
        r"""
        Perturbations in the order in which they are evaluated, the point-mass attraction last.
        """

        newtonian = [p for p in self.perturbations if isinstance(p, perturbations.NewtonianAttraction)]
        others = [p for p in self.perturbations if not isinstance(p, perturbations.NewtonianAttraction)]
        return others + newtonian

    def add_logger(self, logger: logging.Logger):
        self.loggers.append(logger)

    def add_step_handler(self, handler: Callable):
        self.step_handlers.append(handler)

    def _ensure_newtonian(self, grav_param: float):
        # The central attraction is always present, built from the state's own gravitational parameter if needed.
        if not any(isinstance(p, perturbations.NewtonianAttraction) for p in self.perturbations):
            self.perturbations.append(perturbations.NewtonianAttraction(grav_param))

    def _apply_attitude(self, state: spacecraft.SpacecraftState) -> spacecraft.SpacecraftState:
        if self.attitude_provider is None:
            return state
        return state.with_orbit(state.orbit, self.attitude_provider.get_attitude(state.orbit))

    def setup_log(self, initial_state: spacecraft.SpacecraftState):
        for logger in self.loggers:
            logger.setup(initial_state)

    def log(self, current_state: spacecraft.SpacecraftState):
        r"""
        Hand the state of an accepted step to the loggers and step handlers.
        """

        for logger in self.loggers:
            logger.log(current_state)
        for handler in self.step_handlers:
            handler(current_state)
