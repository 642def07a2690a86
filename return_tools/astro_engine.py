"""Position oracles backed by Swiss Ephemeris, plus Julian Day conversions."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Protocol, runtime_checkable

import swisseph as swe

from .errors import ConfigurationError, OracleError, ReturnToolsError, ValidationError
from .models import BodyPosition, Location

logger = logging.getLogger(__name__)

EPHE_PATH = os.environ.get("SWISSEPH_EPHE")
BACKENDS = ("swieph", "moseph")
BODIES: Dict[str, int] = {
    "Sun": swe.SUN,
    "Moon": swe.MOON,
    "Mercury": swe.MERCURY,
    "Venus": swe.VENUS,
    "Mars": swe.MARS,
    "Jupiter": swe.JUPITER,
    "Saturn": swe.SATURN,
    "Uranus": swe.URANUS,
    "Neptune": swe.NEPTUNE,
    "Pluto": swe.PLUTO,
}


@runtime_checkable
class PositionOracle(Protocol):
    """Anything that can place a body on the ecliptic at a Julian Day (UT)."""

    def position(self, body: str, julian_day: float, location: Location) -> BodyPosition: ...


@runtime_checkable
class AsyncPositionOracle(Protocol):
    async def position(self, body: str, julian_day: float, location: Location) -> BodyPosition: ...


def set_ephe_path(path: str) -> None:
    """Override the ephemeris directory used for all Swiss Ephemeris calls."""

    global EPHE_PATH
    EPHE_PATH = path


def ensure_ephe_path() -> str:
    """
    Resolve the ephemeris path from the global setting or env var.

    Raises a clear error if not provided; ephemeris data is not shipped, so
    the user must point the code at a local Swiss Ephemeris folder or select
    the ``moseph`` backend.
    """

    path = EPHE_PATH or os.environ.get("SWISSEPH_EPHE")
    if not path:
        raise ConfigurationError(
            "Swiss Ephemeris path is not set. Set SWISSEPH_EPHE, pass --ephe, "
            "or use EPHEMERIS_BACKEND=moseph."
        )
    swe.set_ephe_path(path)
    return path


def resolve_backend(backend: str | None = None) -> str:
    """Return the configured backend name, defaulting to EPHEMERIS_BACKEND or ``swieph``."""

    raw = backend if backend is not None else os.environ.get("EPHEMERIS_BACKEND")
    name = raw.strip().lower() if raw else "swieph"
    if name not in BACKENDS:
        raise ConfigurationError(f"Unknown ephemeris backend {raw!r}; expected one of {BACKENDS}")
    return name


def julian_day_from_datetime(value: datetime) -> float:
    """Convert a datetime into a Julian day (UT frame). Naive values are treated as UTC."""

    dt_utc = value
    if dt_utc.tzinfo is not None:
        dt_utc = dt_utc.astimezone(timezone.utc).replace(tzinfo=None)

    ut_hour = (
        dt_utc.hour
        + dt_utc.minute / 60.0
        + dt_utc.second / 3600.0
        + dt_utc.microsecond / 3_600_000_000.0
    )
    return swe.julday(dt_utc.year, dt_utc.month, dt_utc.day, ut_hour, swe.GREG_CAL)


def datetime_from_julian_day(julian_day: float) -> datetime:
    """Return an aware UTC datetime for a Julian day, rounded to the millisecond."""

    year, month, day, hour = swe.revjul(julian_day, swe.GREG_CAL)
    midnight = datetime(int(year), int(month), int(day), tzinfo=timezone.utc)
    return midnight + timedelta(milliseconds=round(hour * 3_600_000))


class SwissEphemerisOracle:
    """
    Geocentric tropical positions from pyswisseph.

    The location argument is accepted for interface compatibility and ignored;
    positions are geocentric, so topocentric parallax is treated as zero.
    """

    def __init__(self, backend: str | None = None, ephe_path: str | None = None) -> None:
        self.backend = resolve_backend(backend)
        if ephe_path:
            set_ephe_path(ephe_path)
        if self.backend == "swieph":
            ensure_ephe_path()
            self.flags = swe.FLG_SWIEPH | swe.FLG_SPEED
        else:
            self.flags = swe.FLG_MOSEPH | swe.FLG_SPEED
        logger.debug("Swiss Ephemeris oracle ready (backend=%s)", self.backend)

    def position(self, body: str, julian_day: float, location: Location) -> BodyPosition:
        try:
            body_id = BODIES[body]
        except KeyError:
            raise ValidationError(f"Unsupported body {body!r}") from None
        lon, lat, dist, speed = _body_position(julian_day, body_id, self.flags)
        return BodyPosition(name=body, longitude=lon % 360.0, latitude=lat, distance=dist, speed=speed)


class ThreadedOracle:
    """Expose a blocking oracle through the async interface by running it in a worker thread."""

    def __init__(self, oracle: PositionOracle) -> None:
        self.oracle = oracle

    async def position(self, body: str, julian_day: float, location: Location) -> BodyPosition:
        return await asyncio.to_thread(self.oracle.position, body, julian_day, location)


def _body_position(jd_ut: float, body_id: int, flags: int) -> tuple[float, float, float, float]:
    """Return ecliptic longitude, latitude, distance and daily longitude speed."""

    result = swe.calc_ut(jd_ut, body_id, flags)
    # pyswisseph returns either a flat tuple of floats or (position_tuple, retflag).
    if len(result) == 2 and isinstance(result[0], (tuple, list)):
        position = result[0]
    else:
        position = result
    return float(position[0]), float(position[1]), float(position[2]), float(position[3])


def query_position(oracle: PositionOracle, body: str, julian_day: float, location: Location) -> BodyPosition:
    """Ask ``oracle`` for a position, wrapping any foreign failure in ``OracleError``."""

    try:
        return oracle.position(body, julian_day, location)
    except ReturnToolsError:
        raise
    except Exception as exc:
        raise _oracle_failure(body, julian_day, exc) from exc


async def query_position_async(
    oracle: AsyncPositionOracle, body: str, julian_day: float, location: Location
) -> BodyPosition:
    try:
        return await oracle.position(body, julian_day, location)
    except ReturnToolsError:
        raise
    except Exception as exc:
        raise _oracle_failure(body, julian_day, exc) from exc


def _oracle_failure(body: str, julian_day: float, exc: Exception) -> OracleError:
    return OracleError(f"Position oracle failed for {body} at JD {julian_day:.6f}: {exc}", cause=exc)
