"""
Astrodynamics utilities for semi-analytical orbit propagation and its sensitivities.

Importing the package enables 64-bit floats in :mod:`jax` (``jax_enable_x64``). The option is global to the jax
runtime, so other jax code of the same process also computes in double precision from then on.
"""

import jax

# Forward-mode derivatives of the element rates need double precision.
jax.config.update("jax_enable_x64", True)

from . import errors
from . import conversions
from .auxiliary import AuxiliaryElements
from .parameters import ParameterDriver
from .orbit import Orbit
from .spacecraft import SpacecraftState, PropagationType
from .attitude import AttitudeProvider, InertialAttitude, LvlhAttitude
from .time import Time
from . import logging
from . import perturbations
from . import propagation
