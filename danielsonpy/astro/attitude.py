from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from . import orbit


class AttitudeProvider(ABC):
    r"""
    Base class for attitude laws.

    Only perturbations whose physics depends on the spacecraft's orientation query the attitude. The isotropic drag
    and radiation pressure models of :mod:`danielsonpy.astro.perturbations` do not, but the attitude returned here is
    stored on every :class:`~danielsonpy.astro.SpacecraftState` produced by the propagators so that shape-dependent
    models can use it.
    """

    @abstractmethod
    def get_attitude(self, current_orbit: orbit.Orbit) -> np.ndarray:
        r"""
        Rotation from the inertial frame to the spacecraft body frame.

        Parameters
        ----------
        current_orbit : :class:`~danielsonpy.astro.Orbit`
            Orbit (and epoch) at which the attitude is wanted.

        Returns
        -------
        rotation : np.ndarray
            (3, 3) rotation matrix.
        """

        pass


class InertialAttitude(AttitudeProvider):
    r"""
    Body frame fixed with respect to the inertial frame.

    Parameters
    ----------
    rotation : np.ndarray
        (3, 3) rotation from the inertial frame to the body frame. Defaults to the identity.
    """

    def __init__(self, rotation: np.ndarray = None):
        self.rotation = np.eye(3) if rotation is None else np.asarray(rotation, dtype=float)

    def get_attitude(self, current_orbit: orbit.Orbit) -> np.ndarray:
        return self.rotation.copy()


class LvlhAttitude(AttitudeProvider):
    r"""
    Body frame aligned with the local-vertical local-horizontal frame.

    The body x-axis points along the radial direction, z along the orbital angular momentum and y completes the
    right-handed triad (roughly along the velocity for near-circular orbits).
    """

    def get_attitude(self, current_orbit: orbit.Orbit) -> np.ndarray:
        position, velocity = current_orbit.state()

        radial = position / np.linalg.norm(position)
        normal = np.cross(position, velocity)
        normal /= np.linalg.norm(normal)
        along_track = np.cross(normal, radial)

        return np.vstack((radial, along_track, normal))
