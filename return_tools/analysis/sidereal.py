"""Sidereal time and obliquity of the ecliptic from the Swiss Ephemeris."""

from __future__ import annotations

import swisseph as swe

from ..angles import normalize

J2000 = 2451545.0


def mean_obliquity(julian_day: float) -> float:
    """Mean obliquity of the ecliptic in degrees."""

    res = swe.calc_ut(julian_day, swe.ECL_NUT, 0)
    # (true obliquity, mean obliquity, nutation in longitude, nutation in obliquity, ...)
    values = res[0] if isinstance(res[0], (list, tuple)) else res
    return float(values[1])


def greenwich_mean_sidereal_time(julian_day: float) -> float:
    """Greenwich Mean Sidereal Time in degrees, [0, 360)."""

    # Zero nutation drops the equation of the equinoxes.
    return normalize(swe.sidtime0(julian_day, mean_obliquity(julian_day), 0.0) * 15.0)


def local_sidereal_time(julian_day: float, longitude: float) -> float:
    """Local sidereal time in degrees for an east-positive geographic longitude."""

    return normalize(greenwich_mean_sidereal_time(julian_day) + longitude)
