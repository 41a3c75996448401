from __future__ import annotations
import enum
from typing import Any

import numpy as np

from . import errors, orbit


class PropagationType(enum.Enum):
    r"""
    Kind of elements held by a state or produced by a propagation.

    ``MEAN`` states hold averaged elements free of short-period oscillations. ``OSCULATING`` states hold the
    instantaneous Keplerian elements of the true trajectory.
    """

    MEAN = "mean"
    OSCULATING = "osculating"


class SpacecraftState:
    r"""
    Everything known about a spacecraft at one epoch.

    A state bundles the :class:`~danielsonpy.astro.Orbit` with the spacecraft's mass and attitude as well as any
    number of named additional states. The sensitivity machinery stores the state transition matrix and parameter
    Jacobian there so that they live and die with the state they describe, and osculating states may carry the
    short-period coefficients retained for diagnostics.

    States are treated as values: methods that change something return a new state.

    Parameters
    ----------
    orbit : :class:`~danielsonpy.astro.Orbit`
        Orbit of the spacecraft.
    mass : float
        Mass of the spacecraft in :math:`kg`. Needed by :class:`~danielsonpy.astro.perturbations.AtmosphericDrag`
        and :class:`~danielsonpy.astro.perturbations.SolarRadiationPressure`.
    attitude : np.ndarray
        Optional (3, 3) rotation from the inertial frame to the spacecraft body frame.
    additional_states : dict[str, Any]
        Named additional quantities attached to the state.

    Attributes
    ----------
    orbit : :class:`~danielsonpy.astro.Orbit`
        Orbit of the spacecraft.
    mass : float
        Mass of the spacecraft in :math:`kg`.
    attitude : np.ndarray
        Optional (3, 3) rotation from the inertial frame to the spacecraft body frame.
    """

    def __init__(
            self,
            orbit: orbit.Orbit,
            mass: float = 1000.0,
            attitude: np.ndarray = None,
            additional_states: dict[str, Any] = None,
    ):
        if mass <= 0:
            raise errors.ConfigurationError(f"spacecraft mass must be positive, got {mass}")

        self.orbit = orbit
        self.mass = float(mass)
        self.attitude = attitude
        self._additional_states = dict(additional_states) if additional_states is not None else {}

    @property
    def epoch(self) -> float:
        return self.orbit.epoch

    @property
    def elements(self) -> np.ndarray:
        return self.orbit.elements

    def with_orbit(self, new_orbit: orbit.Orbit, attitude: np.ndarray = None) -> SpacecraftState:
        r"""
        New state for a different orbit keeping the mass, attitude and additional states of this one.
        """

        return SpacecraftState(
            new_orbit,
            self.mass,
            self.attitude if attitude is None else attitude,
            self._additional_states,
        )

    def add_additional_state(self, name: str, value: Any) -> SpacecraftState:
        r"""
        New state with one more (or one replaced) additional state.
        """

        additional_states = dict(self._additional_states)
        additional_states[name] = value
        return SpacecraftState(self.orbit, self.mass, self.attitude, additional_states)

    def has_additional_state(self, name: str) -> bool:
        return name in self._additional_states

    def get_additional_state(self, name: str) -> Any:
        r"""
        Retrieve an additional state.

        Raises
        ------
        NotInitializedError
            If nothing is stored under ``name``.
        """

        if name not in self._additional_states:
            raise errors.NotInitializedError(f"no additional state named {name!r} attached to the state")
        return self._additional_states[name]

    @property
    def additional_states(self) -> dict[str, Any]:
        return dict(self._additional_states)

    def __repr__(self):
        return f"SpacecraftState({self.orbit!r}, mass={self.mass})"
