"""
Newton–Raphson search for the moment a body returns to a target longitude.

The iteration lives in a single generator, ``_newton_search``. It yields the
Julian Day it wants sampled and receives the body's position in return.
``solve`` and ``solve_async`` only differ in how they ask the oracle for that
position, so blocking and asynchronous oracles share one algorithm.
"""

from __future__ import annotations

import logging
import math
from typing import Generator, Mapping, Optional, Protocol, TypeVar

from .angles import signed_separation
from .astro_engine import query_position, query_position_async
from .errors import ConvergenceError, SearchCancelled, ValidationError
from .models import BodyPosition, Location, ReturnSolution
from .tolerances import BodyProfile, profile_for

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 50
DERIVATIVE_FLOOR = 1e-10
STAGNATION_EPSILON = 1e-10
NUDGE_DAYS = 1.0 / 24.0
STATION_THRESHOLD = 0.02  # deg/day; slower than this a body is treated as stationary


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


T = TypeVar("T")
SearchGenerator = Generator[float, BodyPosition, ReturnSolution]


def check_cancelled(cancel: Optional[CancelSignal], body: str, julian_day: float, iterations: int) -> None:
    if cancel is not None and cancel.is_set():
        raise SearchCancelled(f"{body} return search cancelled", last_julian_day=julian_day, iterations=iterations)


def _validate_request(
    body: str,
    target_longitude: float,
    window_start: float,
    window_end: float,
    location: Location,
    tolerances: Mapping[str, BodyProfile] | None,
) -> BodyProfile:
    if not (math.isfinite(target_longitude) and 0.0 <= target_longitude < 360.0):
        raise ValidationError(f"Target longitude {target_longitude} is outside [0, 360)")
    if not (math.isfinite(window_start) and math.isfinite(window_end)):
        raise ValidationError("Search window bounds must be finite Julian Days")
    if window_start >= window_end:
        raise ValidationError(f"Search window start {window_start} is not before end {window_end}")
    location.validate()
    return profile_for(body, tolerances)


def _newton_search(
    profile: BodyProfile,
    target_longitude: float,
    window_start: float,
    window_end: float,
    cancel: Optional[CancelSignal] = None,
) -> SearchGenerator:
    body = profile.name
    tolerance = profile.tolerance_deg
    t = (window_start + window_end) / 2.0
    prev_error: float | None = None
    error = math.nan
    motion_sign = 0
    low_confidence = False

    for iteration in range(1, MAX_ITERATIONS + 1):
        check_cancelled(cancel, body, t, iteration - 1)

        position = yield t
        error = signed_separation(position.longitude, target_longitude)
        logger.debug("%s iteration %d: jd=%.6f error=%.8f", body, iteration, t, error)

        if abs(error) < tolerance:
            if profile.can_station and abs(position.speed) < STATION_THRESHOLD:
                low_confidence = True
            logger.debug("%s return found at jd=%.6f after %d iterations", body, t, iteration)
            return ReturnSolution(
                body=body,
                julian_day=t,
                residual=abs(error),
                iterations=iteration,
                tolerance=tolerance,
                low_confidence=low_confidence,
            )

        if prev_error is not None and abs(abs(error) - abs(prev_error)) < STAGNATION_EPSILON:
            raise ConvergenceError(
                f"{body} return search stagnated at residual {abs(error):.6f}°",
                body=body,
                last_julian_day=t,
                residual=abs(error),
                iterations=iteration,
                reason="stagnation",
            )

        ahead = yield t + profile.derivative_step_days
        derivative = signed_separation(ahead.longitude, position.longitude) / profile.derivative_step_days

        if derivative != 0.0:
            sign = 1 if derivative > 0 else -1
            if motion_sign == 0:
                motion_sign = sign
            elif sign != motion_sign:
                low_confidence = True
        if profile.can_station and abs(derivative) < STATION_THRESHOLD:
            low_confidence = True

        if abs(derivative) < DERIVATIVE_FLOOR:
            step = -math.copysign(NUDGE_DAYS, error)
        else:
            step = -error / derivative
            step = max(-profile.max_step_days, min(profile.max_step_days, step))

        candidate = t + step
        if candidate < window_start or candidate > window_end:
            bound = window_start if candidate < window_start else window_end
            if t == bound:
                raise ConvergenceError(
                    f"No {body} return inside window [{window_start:.6f}, {window_end:.6f}]",
                    body=body,
                    last_julian_day=t,
                    residual=abs(error),
                    iterations=iteration,
                    reason="no_root_in_window",
                )
            candidate = bound

        prev_error = error
        t = candidate

    raise ConvergenceError(
        f"{body} return search did not converge in {MAX_ITERATIONS} iterations",
        body=body,
        last_julian_day=t,
        residual=abs(error),
        iterations=MAX_ITERATIONS,
        reason="max_iterations",
    )


def run_search(oracle, body: str, location: Location, search: Generator[float, BodyPosition, T]) -> T:
    """Drive a sampling generator against a blocking oracle until it returns."""

    request = next(search)
    while True:
        position = query_position(oracle, body, request, location)
        try:
            request = search.send(position)
        except StopIteration as done:
            return done.value


async def run_search_async(oracle, body: str, location: Location, search: Generator[float, BodyPosition, T]) -> T:
    """Drive a sampling generator against an async oracle until it returns."""

    request = next(search)
    while True:
        position = await query_position_async(oracle, body, request, location)
        try:
            request = search.send(position)
        except StopIteration as done:
            return done.value


def solve(
    oracle,
    body: str,
    target_longitude: float,
    window_start: float,
    window_end: float,
    location: Location,
    *,
    tolerances: Mapping[str, BodyProfile] | None = None,
    cancel: Optional[CancelSignal] = None,
) -> ReturnSolution:
    """
    Find the Julian Day in ``[window_start, window_end]`` when ``body`` sits at
    ``target_longitude``.

    Raises ``ValidationError`` for bad input, ``ConvergenceError`` when no
    moment within tolerance is found, ``SearchCancelled`` when ``cancel`` is
    set, and ``OracleError`` when the oracle itself fails.
    """

    profile = _validate_request(body, target_longitude, window_start, window_end, location, tolerances)
    search = _newton_search(profile, target_longitude, window_start, window_end, cancel)
    return run_search(oracle, body, location, search)


async def solve_async(
    oracle,
    body: str,
    target_longitude: float,
    window_start: float,
    window_end: float,
    location: Location,
    *,
    tolerances: Mapping[str, BodyProfile] | None = None,
    cancel: Optional[CancelSignal] = None,
) -> ReturnSolution:
    """Same as :func:`solve` for an oracle whose ``position`` is a coroutine."""

    profile = _validate_request(body, target_longitude, window_start, window_end, location, tolerances)
    search = _newton_search(profile, target_longitude, window_start, window_end, cancel)
    return await run_search_async(oracle, body, location, search)
