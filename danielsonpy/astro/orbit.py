from __future__ import annotations

import numpy as np

from . import conversions, errors


class Orbit:
    r"""
    Keplerian orbit described by equinoctial elements at an epoch.

    The equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)` act as the source of truth of the orbit. They
    are free of the singularities of the classical elements for circular and equatorial orbits which makes them the
    natural choice for averaged (mean element) propagation. The Cartesian state and classical elements are computed on
    demand.

    The basic ``__init__()`` creates an :class:`~danielsonpy.astro.Orbit` from equinoctial elements. Alternate
    instantiations decorated using ``@classmethod`` are available to build orbits from classical elements or from a
    Cartesian state.

    Parameters
    ----------
    elements : np.ndarray
        (6, ) array of equinoctial elements :math:`(a, e_x, e_y, h_x, h_y, \lambda_M)`. Units: :math:`m` and
        :math:`rad`.
    epoch : float
        Time in seconds since the reference epoch of the propagation.
    grav_param : float
        Gravitational parameter of the central body. Defaults to that of the Earth.
    frame : str
        Name of the inertial frame the orbit is expressed in.

    Attributes
    ----------
    elements : np.ndarray
        (6, ) array of equinoctial elements.
    epoch : float
        Time in seconds since the reference epoch of the propagation.
    grav_param : float
        Gravitational parameter of the central body.
    frame : str
        Name of the inertial frame the orbit is expressed in.

    Raises
    ------
    NumericalDomainError
        If the elements do not describe a bound orbit.
    """

    def __init__(
            self,
            elements: np.ndarray,
            epoch: float = 0.0,
            grav_param: float = 3.986004418e14,  # Default to Earth in units of m^3/s^2.
            frame: str = "EME2000",
    ):
        elements = np.array(elements, dtype=float)
        if elements.shape != (6, ):
            raise errors.DimensionMismatchError("equinoctial elements", (6, 1), elements.shape)
        if not np.all(np.isfinite(elements)):
            raise errors.NumericalDomainError(f"non-finite equinoctial elements {elements}")
        if elements[0] <= 0:
            raise errors.NumericalDomainError(f"semi-major axis {elements[0]} must be positive for a bound orbit")
        if np.hypot(elements[1], elements[2]) >= 1:
            raise errors.NumericalDomainError(
                f"eccentricity {np.hypot(elements[1], elements[2])} outside of the elliptic domain"
            )

        self.elements = elements
        self.epoch = float(epoch)
        self.grav_param = float(grav_param)
        self.frame = frame

    # ---------------------------------
    # ALTERNATE INSTANTIATION FUNCTIONS
    # ---------------------------------
    @classmethod
    def from_classical_elements(
            cls,
            sm_axis: float,
            eccentricity: float,
            raan: float,
            argp: float,
            inclination: float,
            mean_anomaly: float,
            epoch: float = 0.0,
            grav_param: float = 3.986004418e14,
            frame: str = "EME2000",
    ) -> Orbit:
        r"""
        Instantiates an :class:`~danielsonpy.astro.Orbit` from the classical orbital elements.

        Parameters
        ----------
        sm_axis : float
            Semi-major axis.
        eccentricity : float
            Eccentricity.
        raan : float
            Right ascension (longitude) of the ascending node.
        argp : float
            Argument of periapsis.
        inclination : float
            Inclination.
        mean_anomaly : float
            Mean anomaly.
        epoch : float
            Time in seconds since the reference epoch of the propagation.
        grav_param : float
            Gravitational parameter of the central body. Defaults to that of the Earth.
        frame : str
            Name of the inertial frame the orbit is expressed in.

        Returns
        -------
        orbit : :class:`~danielsonpy.astro.Orbit`
            Orbit with the equivalent equinoctial elements.
        """

        elements = conversions.classical_2_equinoctial(sm_axis, eccentricity, raan, argp, inclination, mean_anomaly)
        return cls(np.asarray(elements), epoch, grav_param, frame)

    @classmethod
    def from_state(
            cls,
            position: np.ndarray,
            velocity: np.ndarray,
            epoch: float = 0.0,
            grav_param: float = 3.986004418e14,
            frame: str = "EME2000",
    ) -> Orbit:
        r"""
        Instantiates an :class:`~danielsonpy.astro.Orbit` from a Cartesian state.

        Parameters
        ----------
        position : np.ndarray
            A (3, ) vector of the satellite's planet-centered inertial position.
        velocity : np.ndarray
            A (3, ) vector of the satellite's velocity.
        epoch : float
            Time in seconds since the reference epoch of the propagation.
        grav_param : float
            Gravitational parameter of the central body. Defaults to that of the Earth.
        frame : str
            Name of the inertial frame the orbit is expressed in.
        """

        elements = conversions.state_2_equinoctial(
            np.asarray(position, dtype=float), np.asarray(velocity, dtype=float), grav_param
        )
        return cls(np.asarray(elements), epoch, grav_param, frame)

    def with_elements(self, elements: np.ndarray, epoch: float = None) -> Orbit:
        r"""
        New orbit sharing the central body and frame of this one.
        """

        return Orbit(elements, self.epoch if epoch is None else epoch, self.grav_param, self.frame)

    # ----------
    # PROPERTIES
    # ----------
    @property
    def sm_axis(self) -> float:
        return self.elements[0]

    @property
    def ex(self) -> float:
        return self.elements[1]

    @property
    def ey(self) -> float:
        return self.elements[2]

    @property
    def hx(self) -> float:
        return self.elements[3]

    @property
    def hy(self) -> float:
        return self.elements[4]

    @property
    def mean_longitude(self) -> float:
        return self.elements[5]

    @property
    def eccentricity(self) -> float:
        return float(np.hypot(self.elements[1], self.elements[2]))

    @property
    def inclination(self) -> float:
        return float(2 * np.arctan(np.hypot(self.elements[3], self.elements[4])))

    @property
    def mean_motion(self) -> float:
        return float(np.sqrt(self.grav_param / self.elements[0] ** 3))

    @property
    def period(self) -> float:
        return 2 * np.pi / self.mean_motion

    @property
    def position(self) -> np.ndarray:
        position, _ = conversions.equinoctial_2_state(self.elements, self.grav_param)
        return np.asarray(position)

    @property
    def velocity(self) -> np.ndarray:
        _, velocity = conversions.equinoctial_2_state(self.elements, self.grav_param)
        return np.asarray(velocity)

    def state(self) -> tuple[np.ndarray, np.ndarray]:
        r"""
        Position and velocity in planet-centered inertial coordinates.
        """

        position, velocity = conversions.equinoctial_2_state(self.elements, self.grav_param)
        return np.asarray(position), np.asarray(velocity)

    def classical(self) -> tuple[float, float, float, float, float, float]:
        r"""
        Classical orbital elements ``(sm_axis, eccentricity, raan, argp, inclination, mean_anomaly)``.
        """

        return tuple(float(value) for value in conversions.equinoctial_2_classical(self.elements))

    def __repr__(self):
        return f"Orbit(epoch={self.epoch}, elements={self.elements.tolist()}, frame={self.frame!r})"
