r"""
Exceptions raised by :mod:`danielsonpy.astro`.

Three kinds of failure are distinguished so callers can react to each one differently:

* :class:`ConfigurationError` is raised while building or setting up objects (truncation orders inconsistent with a
  gravity field, unknown parameter names, Jacobian blocks of the wrong shape). It is never deferred into a running
  propagation.
* :class:`NumericalDomainError` is raised where a computation leaves the domain of the theory (eccentricity at or
  above one, non-convergent osculating to mean iteration, integrator step size collapse).
* :class:`NotInitializedError` is raised when an object is queried before it has been given what it needs (no
  initial state, no Jacobian blocks attached to a state).
"""

from __future__ import annotations
from typing import Any


class DanielsonError(Exception):
    r"""
    Base class of all errors raised by the package.
    """


class ConfigurationError(DanielsonError, ValueError):
    r"""
    Invalid combination of construction or setup arguments.
    """


class DimensionMismatchError(ConfigurationError):
    r"""
    A matrix handed to the package does not have the expected shape.

    Parameters
    ----------
    message : str
        Description of the offending matrix.
    expected : tuple[int, int]
        Expected shape.
    actual : tuple[int, ...]
        Shape that was received.
    """

    def __init__(self, message: str, expected: tuple = None, actual: tuple = None):
        self.expected = expected
        self.actual = actual
        if expected is not None and actual is not None:
            message = f"{message} (expected {expected[0]}x{expected[1]}, got {'x'.join(str(d) for d in actual)})"
        super().__init__(message)


class UnknownParameterError(ConfigurationError, KeyError):
    r"""
    A parameter name does not match any parameter published by the active perturbations.

    Parameters
    ----------
    name : str
        The name that could not be resolved.
    available : list[str]
        Names that are known.
    """

    def __init__(self, name: str, available: list[str] = None):
        self.name = name
        self.available = list(available) if available is not None else []
        super().__init__(name)

    def __str__(self):
        known = ", ".join(self.available) if self.available else "none"
        return f"unknown parameter {self.name!r}, known parameters: {known}"


class NumericalDomainError(DanielsonError, ArithmeticError):
    r"""
    A computation left the domain in which the theory is valid.
    """


class ConvergenceError(NumericalDomainError):
    r"""
    An iterative computation did not converge within its iteration budget.

    Attributes
    ----------
    iterations : int
        Number of iterations performed before giving up.
    state : Any
        State at which the iteration was attempted.
    """

    def __init__(self, message: str, iterations: int, state: Any = None):
        self.iterations = iterations
        self.state = state
        super().__init__(f"{message} after {iterations} iterations")


class NotInitializedError(DanielsonError, RuntimeError):
    r"""
    An object was used before it was initialized.
    """
