from __future__ import annotations

import numpy as np


class Time:
    r"""
    Stores a date and time in UT1 and allows for rapid conversion to other time schemes (including Julian dates and
    Greenwich mean-sidereal time).

    Takes in a date (MM/DD/YYYY) and time (HH:MM:SS.S) and via the use of @property automatically converts to the
    corresponding Julian date and Greenwich mean-sidereal time (GMST). The input time should be in UT1 but technically
    UTC+0 may also be used with approximately 1 s loss in accuracy.

    The GMST at the reference epoch of a propagation orients the central body's gravity field, see
    :meth:`~danielsonpy.astro.perturbations.GravityField.earth()`.

    Parameters
    ----------
    date: str
        Current Gregorian date (MM/DD/YYYY).
    time: str
        Current UT1 time (HH:MM:SS.S).

    Attributes
    ----------
    date: str
        Current Gregorian date (MM/DD/YYYY).
    time: str
        Current UT1 time (HH:MM:SS.S).

    Notes
    -----
    The Julian date follows Algorithm 14 and the GMST Equation 3-47 of Vallado [1]_.

    .. [1] D. A. Vallado, Fundamentals of Astrodynamics and Applications, 4th ed., Microcosm Press, 2013.
    """

    def __init__(self, date: str, time: str = "00:00:00"):
        self.date = date
        self.time = time

        month, day, year = (int(field) for field in date.split("/"))
        hours, minutes, seconds = time.split(":")
        self._calendar = (year, month, day, int(hours), int(minutes), float(seconds))

    @property
    def julian_date(self) -> float:
        year, month, day, hours, minutes, seconds = self._calendar

        return (
            367 * year
            - int(7 * (year + int((month + 9) / 12)) / 4)
            + int(275 * month / 9)
            + day
            + 1721013.5
            + ((seconds / 60 + minutes) / 60 + hours) / 24
        )

    @property
    def gmst(self) -> float:
        r"""
        Angle between the Vernal equinox and the Greenwich meridian in :math:`rad`, wrapped to :math:`[0, 2\pi)`.
        """

        centuries = (self.julian_date - 2451545.0) / 36525
        gmst_seconds = (
            67310.54841
            + (876600 * 3600 + 8640184.812866) * centuries
            + 0.093104 * centuries ** 2
            - 6.2e-6 * centuries ** 3
        )

        return (gmst_seconds % 86400) / 86400 * 2 * np.pi
