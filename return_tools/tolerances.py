"""Per-body search parameters for return-time solving."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .errors import ValidationError

RETURN_TIME_ACCURACY_SECONDS = 60.0
SCAN_STEPS_PER_PERIOD = 20
BASE_TOLERANCE_DEG = RETURN_TIME_ACCURACY_SECONDS / 86400.0
DERIVATIVE_STEP_DAYS = 0.01


@dataclass(frozen=True)
class BodyProfile:
    """
    Search settings for one body.

    ``tolerance_deg`` grows with the tolerance scale: the Moon gets the tightest
    angular tolerance and Pluto the loosest. ``nominal_period_days`` is the
    mean tropical return period; crossings are scanned for in steps of a
    twentieth of it. ``search_half_width_days`` is half the width of the
    window handed to the Newton search once a crossing has been bracketed.
    ``max_step_days`` bounds a single Newton step.
    """

    name: str
    tolerance_scale: float
    nominal_period_days: float
    search_half_width_days: float
    max_step_days: float = 1.0
    derivative_step_days: float = DERIVATIVE_STEP_DAYS
    can_station: bool = True

    @property
    def tolerance_deg(self) -> float:
        return BASE_TOLERANCE_DEG * self.tolerance_scale

    @property
    def mean_motion(self) -> float:
        """Mean daily motion in degrees."""
        return 360.0 / self.nominal_period_days

    @property
    def scan_step_days(self) -> float:
        return self.nominal_period_days / SCAN_STEPS_PER_PERIOD


def _profiles(*profiles: BodyProfile) -> dict[str, BodyProfile]:
    return {p.name: p for p in profiles}


# Mercury and Venus stay near the Sun, so their mean geocentric period is a year.
BODY_PROFILES: Mapping[str, BodyProfile] = _profiles(
    BodyProfile("Moon", 1, 27.321582, 1.0, can_station=False),
    BodyProfile("Mercury", 2, 365.24219, 0.5),
    BodyProfile("Venus", 3, 365.24219, 0.5),
    BodyProfile("Sun", 4, 365.24219, 0.5, can_station=False),
    BodyProfile("Mars", 5, 686.9796, 0.5),
    BodyProfile("Jupiter", 10, 4332.589, 0.5),
    BodyProfile("Saturn", 15, 10759.22, 0.5),
    BodyProfile("Uranus", 20, 30685.4, 0.5),
    BodyProfile("Neptune", 25, 60189.0, 0.5),
    BodyProfile("Pluto", 30, 90560.0, 0.5),
)


def profile_for(body: str, table: Mapping[str, BodyProfile] | None = None) -> BodyProfile:
    """Look up ``body`` in ``table`` (the default table when omitted)."""

    profiles = BODY_PROFILES if table is None else table
    try:
        return profiles[body]
    except KeyError:
        raise ValidationError(f"No search profile for body {body!r}") from None


def tolerance_for(body: str, table: Mapping[str, BodyProfile] | None = None) -> float:
    return profile_for(body, table).tolerance_deg
