from __future__ import annotations
from abc import ABC, abstractmethod
import pathlib
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from . import spacecraft


class Logger(ABC):
    r"""
    A logger is used to store data regarding the :class:`~danielsonpy.astro.SpacecraftState` produced on each accepted
    step by :meth:`~danielsonpy.astro.propagation.SemiAnalyticalPropagator.propagate()`.

    Adaptive integrators do not know in advance how many steps they will take, so each logger appends one row per
    step to its history lists and :meth:`concatenate()` stacks them into an (N, M) array for N steps and M logged
    variables, in the order of the class attribute ``labels``.

    Loggers are passed to a propagator with :meth:`~danielsonpy.astro.propagation.SemiAnalyticalPropagator.add_logger()`.
    Their ``__init__()`` is empty as the initial state is not known until propagation starts. At this point
    :meth:`setup()` is called to record it. Then, as the propagator steps through time, :meth:`log()` is called on each
    accepted step.

    The states handed to the loggers are osculating when the propagator produces osculating states and mean
    otherwise.
    """

    labels: list[str] = []

    def __init__(self):
        self.history: list[np.ndarray] = []

    def setup(self, initial_state: spacecraft.SpacecraftState):
        r"""
        Clears previous records and logs the initial state.

        Parameters
        ----------
        initial_state : :class:`~danielsonpy.astro.SpacecraftState`
            The state which holds the data to log.
        """

        self.history = []
        self.log(initial_state)

    def log(self, current_state: spacecraft.SpacecraftState):
        r"""
        Appends the current values of the logged variables.

        Parameters
        ----------
        current_state : :class:`~danielsonpy.astro.SpacecraftState`
            The state which holds the data to log.
        """

        self.history.append(np.asarray(self.extract(current_state), dtype=float))

    @abstractmethod
    def extract(self, current_state: spacecraft.SpacecraftState) -> np.ndarray:
        r"""
        Values of the logged variables for one state, in the order of ``labels``.
        """

        pass

    def concatenate(self) -> np.ndarray:
        if not self.history:
            return np.zeros((0, len(self.labels)))
        return np.vstack(self.history)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.concatenate(), columns=self.labels)

    def save(self, path: str | pathlib.Path, fp_accuracy: int = 9):
        r"""
        Save the logged data as a .csv where each column represents a different variable and each row a step of
        propagation.

        Parameters
        ----------
        path : str | pathlib.Path
            File to write.
        fp_accuracy : int
            How many digits past the decimal to record for each data point.
        """

        self.to_dataframe().to_csv(path, index=False, float_format=f"%.{fp_accuracy}f")


class StateLogger(Logger):
    r"""
    Child of :class:`~danielsonpy.astro.logging.Logger` that logs the epoch and Cartesian state (position and velocity)
    of each step.
    """

    labels = [
        "Time [s]",
        "x-Position [m]", "y-Position [m]", "z-Position [m]",
        "x-Velocity [m/s]", "y-Velocity [m/s]", "z-Velocity [m/s]",
    ]

    def extract(self, current_state):
        position, velocity = current_state.orbit.state()
        return np.hstack(([current_state.epoch], position, velocity))


class EquinoctialElementsLogger(Logger):
    r"""
    Child of :class:`~danielsonpy.astro.logging.Logger` that logs the epoch and equinoctial orbital elements of each
    step.
    """

    labels = [
        "Time [s]",
        "Semi-Major Axis [m]",
        "e-component 1", "e-component 2",
        "h-component 1", "h-component 2",
        "Mean Longitude [rad]",
    ]

    def extract(self, current_state):
        return np.hstack(([current_state.epoch], current_state.elements))


class ClassicalElementsLogger(Logger):
    r"""
    Child of :class:`~danielsonpy.astro.logging.Logger` that logs the epoch and classical orbital elements of each
    step.
    """

    labels = [
        "Time [s]",
        "Semi-Major Axis [m]",
        "Eccentricity",
        "RAAN [rad]", "Argument of Periapsis [rad]", "Inclination [rad]",
        "Mean Anomaly [rad]",
    ]

    def extract(self, current_state):
        return np.hstack(([current_state.epoch], current_state.orbit.classical()))


def combine(loggers: list[Logger]) -> pd.DataFrame:
    r"""
    Joins the records of several loggers attached to the same propagation column-wise.
    """

    data = None
    labels = []
    for logger in loggers:
        local_data = logger.concatenate()
        if data is None:
            data = local_data
        else:
            data = np.hstack((data, local_data))
        labels.extend(logger.labels)

    return pd.DataFrame(data, columns=labels)
