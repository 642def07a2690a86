"""Generate return charts: bracket the crossing, solve the moment, then derive the chart."""

from __future__ import annotations

import logging
import math
from typing import List, Mapping, Optional, Sequence

from .analysis import derive_chart, derive_chart_async
from .analysis.combined import combine_returns
from .analysis.houses import HOUSE_SYSTEMS
from .astro_engine import datetime_from_julian_day, julian_day_from_datetime
from .errors import ChartDerivationError, ValidationError
from .models import (
    BirthRecord,
    ChartGeometry,
    CombinedAnalysis,
    CombinedReturns,
    Location,
    ReturnChart,
    ReturnSolution,
    ValidityPeriod,
)
from .scan import DIRECTIONS, bracket_crossing
from .solver import CancelSignal, run_search, run_search_async, solve, solve_async
from .tolerances import BodyProfile, profile_for

logger = logging.getLogger(__name__)

DEFAULT_BODIES = (
    "Sun",
    "Moon",
    "Mercury",
    "Venus",
    "Mars",
    "Jupiter",
    "Saturn",
    "Uranus",
    "Neptune",
    "Pluto",
)


class ReturnChartOrchestrator:
    """
    Cast return charts against an injected position oracle.

    The same oracle is used for the search and for the chart geometry.
    Solver errors propagate unchanged. Failures while deriving geometry are
    raised as ``ChartDerivationError`` with the original exception as cause.
    """

    def __init__(
        self,
        oracle,
        *,
        bodies: Sequence[str] = DEFAULT_BODIES,
        tolerances: Mapping[str, BodyProfile] | None = None,
        house_system: str = "placidus",
        include_minor_aspects: bool = False,
    ) -> None:
        if house_system not in HOUSE_SYSTEMS:
            raise ValidationError(f"Unknown house system {house_system!r}; expected one of {HOUSE_SYSTEMS}")
        if not bodies:
            raise ValidationError("At least one body is required")
        self.oracle = oracle
        self.bodies = tuple(bodies)
        self.tolerances = tolerances
        self.house_system = house_system
        self.include_minor_aspects = include_minor_aspects

    # -- validation and assembly shared by the sync and async paths

    def _check_request(
        self,
        body: str,
        birth_julian_day: float,
        birth_longitude: float,
        anchor_julian_day: float,
        casting_location: Location,
        direction: str,
    ) -> BodyProfile:
        if direction not in DIRECTIONS:
            raise ValidationError(f"Unknown direction {direction!r}; expected one of {DIRECTIONS}")
        if not (math.isfinite(birth_julian_day) and math.isfinite(anchor_julian_day)):
            raise ValidationError("Birth and anchor moments must be finite Julian Days")
        if anchor_julian_day < birth_julian_day:
            raise ValidationError("Anchor moment precedes the birth moment")
        if not (math.isfinite(birth_longitude) and 0.0 <= birth_longitude < 360.0):
            raise ValidationError(f"Birth longitude {birth_longitude} is outside [0, 360)")
        casting_location.validate()
        return profile_for(body, self.tolerances)

    def _chart_bodies(self, body: str) -> tuple[str, ...]:
        return self.bodies if body in self.bodies else self.bodies + (body,)

    def _derive_options(self) -> dict:
        return {"house_system": self.house_system, "include_minor": self.include_minor_aspects}

    def _assemble(
        self,
        body: str,
        target_longitude: float,
        solution: ReturnSolution,
        next_return: float,
        geometry: ChartGeometry,
    ) -> ReturnChart:
        flags: list[str] = []
        if solution.low_confidence:
            flags.append("non_monotonic_motion")
        if geometry.houses.low_confidence:
            flags.append("degenerate_houses")
        chart = ReturnChart(
            body=body,
            target_longitude=target_longitude,
            solution=solution,
            geometry=geometry,
            validity=ValidityPeriod(start=solution.julian_day, end=next_return),
            flags=tuple(flags),
        )
        logger.info(
            "%s return at %s (residual %.6f°, %d iterations)%s",
            body,
            datetime_from_julian_day(solution.julian_day).isoformat(),
            solution.residual,
            solution.iterations,
            f" flags={','.join(flags)}" if flags else "",
        )
        return chart

    # -- blocking oracle

    def guess_window(
        self,
        body: str,
        target_longitude: float,
        anchor_julian_day: float,
        location: Location,
        direction: str = "nearest",
        cancel: Optional[CancelSignal] = None,
    ) -> tuple[float, float]:
        """Search window bracketing the crossing nearest the anchor, or the first one after it."""

        profile = profile_for(body, self.tolerances)
        search = bracket_crossing(profile, target_longitude, anchor_julian_day, direction, cancel)
        return run_search(self.oracle, body, location, search)

    def _solve_near(
        self,
        body: str,
        target_longitude: float,
        anchor_julian_day: float,
        location: Location,
        direction: str,
        cancel: Optional[CancelSignal],
    ) -> ReturnSolution:
        start, end = self.guess_window(body, target_longitude, anchor_julian_day, location, direction, cancel)
        logger.debug("Searching %s return in JD [%.5f, %.5f]", body, start, end)
        return solve(
            self.oracle, body, target_longitude, start, end, location, tolerances=self.tolerances, cancel=cancel
        )

    def generate_return(
        self,
        body: str,
        birth_julian_day: float,
        birth_longitude: float,
        anchor_julian_day: float,
        casting_location: Location,
        *,
        direction: str = "nearest",
        cancel: Optional[CancelSignal] = None,
    ) -> ReturnChart:
        """
        Find the return of ``body`` to ``birth_longitude`` near the anchor
        (``direction="nearest"``) or first after it (``"next"``), and cast the
        chart for ``casting_location``.

        The chart stays valid until the first return at least half a period
        later, so a retrograde loop around the target does not cut it short.
        """

        profile = self._check_request(
            body, birth_julian_day, birth_longitude, anchor_julian_day, casting_location, direction
        )
        solution = self._solve_near(body, birth_longitude, anchor_julian_day, casting_location, direction, cancel)
        following = self._solve_near(
            body,
            birth_longitude,
            solution.julian_day + profile.nominal_period_days / 2.0,
            casting_location,
            "next",
            cancel,
        )

        try:
            geometry = derive_chart(
                self.oracle,
                solution.julian_day,
                casting_location,
                self._chart_bodies(body),
                **self._derive_options(),
            )
        except Exception as exc:
            raise ChartDerivationError(f"Could not derive the {body} return chart: {exc}", cause=exc) from exc

        return self._assemble(body, birth_longitude, solution, following.julian_day, geometry)

    # -- async oracle

    async def guess_window_async(
        self,
        body: str,
        target_longitude: float,
        anchor_julian_day: float,
        location: Location,
        direction: str = "nearest",
        cancel: Optional[CancelSignal] = None,
    ) -> tuple[float, float]:
        profile = profile_for(body, self.tolerances)
        search = bracket_crossing(profile, target_longitude, anchor_julian_day, direction, cancel)
        return await run_search_async(self.oracle, body, location, search)

    async def _solve_near_async(
        self,
        body: str,
        target_longitude: float,
        anchor_julian_day: float,
        location: Location,
        direction: str,
        cancel: Optional[CancelSignal],
    ) -> ReturnSolution:
        start, end = await self.guess_window_async(
            body, target_longitude, anchor_julian_day, location, direction, cancel
        )
        logger.debug("Searching %s return in JD [%.5f, %.5f]", body, start, end)
        return await solve_async(
            self.oracle, body, target_longitude, start, end, location, tolerances=self.tolerances, cancel=cancel
        )

    async def generate_return_async(
        self,
        body: str,
        birth_julian_day: float,
        birth_longitude: float,
        anchor_julian_day: float,
        casting_location: Location,
        *,
        direction: str = "nearest",
        cancel: Optional[CancelSignal] = None,
    ) -> ReturnChart:
        """:meth:`generate_return` for an oracle whose ``position`` is a coroutine."""

        profile = self._check_request(
            body, birth_julian_day, birth_longitude, anchor_julian_day, casting_location, direction
        )
        solution = await self._solve_near_async(
            body, birth_longitude, anchor_julian_day, casting_location, direction, cancel
        )
        following = await self._solve_near_async(
            body,
            birth_longitude,
            solution.julian_day + profile.nominal_period_days / 2.0,
            casting_location,
            "next",
            cancel,
        )

        try:
            geometry = await derive_chart_async(
                self.oracle,
                solution.julian_day,
                casting_location,
                self._chart_bodies(body),
                **self._derive_options(),
            )
        except Exception as exc:
            raise ChartDerivationError(f"Could not derive the {body} return chart: {exc}", cause=exc) from exc

        return self._assemble(body, birth_longitude, solution, following.julian_day, geometry)

    # -- conveniences built on generate_return

    def generate_solar_return(
        self, birth: BirthRecord, year: int, casting_location: Location | None = None
    ) -> ReturnChart:
        """Solar return nearest the birthday anniversary in ``year``."""

        anchor = julian_day_from_datetime(anniversary(birth.julian_day, year))
        return self.generate_return(
            "Sun",
            birth.julian_day,
            birth.known_position("Sun"),
            anchor,
            casting_location or birth.location,
        )

    def generate_lunar_return(
        self, birth: BirthRecord, on_or_after: float, casting_location: Location | None = None
    ) -> ReturnChart:
        """First lunar return at or after the Julian Day ``on_or_after``."""

        return self.generate_return(
            "Moon",
            birth.julian_day,
            birth.known_position("Moon"),
            on_or_after,
            casting_location or birth.location,
            direction="next",
        )

    def generate_combined_returns(self, chart_a: ReturnChart, chart_b: ReturnChart) -> CombinedAnalysis:
        return combine_returns(chart_a, chart_b)

    def generate_solar_and_lunar(
        self, birth: BirthRecord, target_julian_day: float, casting_location: Location | None = None
    ) -> CombinedReturns:
        """Solar return for the target's year, lunar return from the target onward, and their analysis."""

        year = datetime_from_julian_day(target_julian_day).year
        solar = self.generate_solar_return(birth, year, casting_location)
        lunar = self.generate_lunar_return(birth, target_julian_day, casting_location)
        return CombinedReturns(solar=solar, lunar=lunar, analysis=combine_returns(solar, lunar))

    def return_series(
        self,
        body: str,
        birth: BirthRecord,
        start_julian_day: float,
        end_julian_day: float,
        casting_location: Location | None = None,
    ) -> List[ReturnChart]:
        """Every return of ``body`` whose moment falls within ``[start, end]``."""

        if end_julian_day <= start_julian_day:
            raise ValidationError("Series end must be after its start")
        location = casting_location or birth.location
        target = birth.known_position(body)
        charts: List[ReturnChart] = []
        chart = self.generate_return(body, birth.julian_day, target, start_julian_day, location, direction="next")
        while chart.julian_day <= end_julian_day:
            charts.append(chart)
            chart = self.generate_return(body, birth.julian_day, target, chart.validity.end, location)
        return charts


def anniversary(birth_julian_day: float, year: int):
    """Birth datetime moved to ``year``; 29 February becomes 28 February in common years."""

    born = datetime_from_julian_day(birth_julian_day)
    try:
        return born.replace(year=year)
    except ValueError:
        return born.replace(year=year, day=28)
