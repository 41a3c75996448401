from __future__ import annotations

import numpy as np

from . import errors


class ParameterDriver:
    r"""
    Named, tunable scalar of a force model.

    Every :class:`~danielsonpy.astro.perturbations.Perturbation` publishes its tunable quantities (gravitational
    parameters, drag and reflection coefficients) as drivers. External orbit determination code reads and writes the
    ``value`` of a driver and toggles ``selected`` to choose which columns of the parameter Jacobian are computed by
    :class:`~danielsonpy.astro.propagation.MatricesHarvester`.

    Parameters
    ----------
    name : str
        Unique name of the parameter, e.g. ``"drag coefficient"``.
    reference_value : float
        Nominal value, also used as the initial ``value``.
    scale : float
        Typical magnitude of variations of the parameter. Used as the step of finite-difference checks and to scale
        estimation problems. Must be strictly positive.
    minimum : float
        Lowest admissible value.
    maximum : float
        Highest admissible value.

    Attributes
    ----------
    name : str
        Unique name of the parameter.
    reference_value : float
        Nominal value.
    scale : float
        Typical magnitude of variations of the parameter.
    minimum : float
        Lowest admissible value.
    maximum : float
        Highest admissible value.
    selected : bool
        Whether partial derivatives with respect to this parameter should be computed.
    """

    def __init__(
            self,
            name: str,
            reference_value: float,
            scale: float,
            minimum: float = -np.inf,
            maximum: float = np.inf,
    ):
        if scale <= 0:
            raise errors.ConfigurationError(f"scale of parameter {name!r} must be positive, got {scale}")
        if minimum > maximum:
            raise errors.ConfigurationError(f"empty range [{minimum}, {maximum}] for parameter {name!r}")

        self.name = name
        self.reference_value = float(reference_value)
        self.scale = float(scale)
        self.minimum = float(minimum)
        self.maximum = float(maximum)
        self.selected = False

        self._value = None
        self.value = reference_value

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, new_value: float):
        new_value = float(new_value)
        if not self.minimum <= new_value <= self.maximum:
            raise errors.ConfigurationError(
                f"value {new_value} of parameter {self.name!r} outside of [{self.minimum}, {self.maximum}]"
            )
        self._value = new_value

    def reset(self):
        r"""
        Set the value back to the reference value.
        """

        self.value = self.reference_value

    def __repr__(self):
        flag = ", selected" if self.selected else ""
        return f"ParameterDriver({self.name!r}, value={self._value!r}{flag})"


def find_driver(drivers: list[ParameterDriver], name: str) -> ParameterDriver:
    r"""
    Look up a driver by name.

    Parameters
    ----------
    drivers : list[:class:`ParameterDriver`]
        Drivers to search.
    name : str
        Name of the wanted driver.

    Returns
    -------
    driver : :class:`ParameterDriver`
        The first driver carrying ``name``.

    Raises
    ------
    UnknownParameterError
        If no driver carries ``name``.
    """

    for driver in drivers:
        if driver.name == name:
            return driver
    raise errors.UnknownParameterError(name, [driver.name for driver in drivers])
