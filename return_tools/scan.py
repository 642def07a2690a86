"""
Locate a return before solving it: step through time until the body's
offset from the target changes sign, then bisect that interval.

Like the Newton search, the scan is a generator that yields the Julian Days
it wants sampled, so ``run_search`` and ``run_search_async`` drive it against
either kind of oracle.
"""

from __future__ import annotations

import logging
import math
from typing import Generator, Optional, Tuple

from .angles import signed_separation
from .errors import ConvergenceError, ValidationError
from .models import BodyPosition
from .solver import CancelSignal, check_cancelled
from .tolerances import BodyProfile

logger = logging.getLogger(__name__)

DIRECTIONS = ("nearest", "next")
SCAN_PERIODS = 1.5
WRAP_GUARD_DEG = 90.0  # offsets beyond this mark the jump on the far side of the circle
MAX_BISECTIONS = 48

Bracket = Tuple[float, float]


def crosses(error_a: float, error_b: float) -> bool:
    """True when the target lies between two offsets and neither is near the wrap."""

    if abs(error_a) >= WRAP_GUARD_DEG or abs(error_b) >= WRAP_GUARD_DEG:
        return False
    return error_a <= 0.0 <= error_b or error_b <= 0.0 <= error_a


def _interpolated_root(start: float, error_start: float, end: float, error_end: float) -> float:
    if error_start == error_end:
        return start
    return start + (end - start) * error_start / (error_start - error_end)


def bracket_crossing(
    profile: BodyProfile,
    target_longitude: float,
    anchor_julian_day: float,
    direction: str = "nearest",
    cancel: Optional[CancelSignal] = None,
) -> Generator[float, BodyPosition, Bracket]:
    """
    Bracket the crossing of ``target_longitude`` nearest the anchor, or the
    first one at or after it when ``direction`` is ``"next"``.

    Steps of ``profile.scan_step_days`` go outward from the anchor for up to
    one and a half periods. The first interval whose end offsets straddle
    zero is bisected until it is no wider than twice
    ``search_half_width_days``. Raises ``ConvergenceError`` with reason
    ``no_root_in_window`` when no interval straddles the target.
    """

    if direction not in DIRECTIONS:
        raise ValidationError(f"Unknown direction {direction!r}; expected one of {DIRECTIONS}")

    body = profile.name
    step = profile.scan_step_days
    limit = math.ceil(SCAN_PERIODS * profile.nominal_period_days / step)

    position = yield anchor_julian_day
    anchor_error = signed_separation(position.longitude, target_longitude)
    samples = 1
    closest = abs(anchor_error)
    forward = backward = (anchor_julian_day, anchor_error)
    found: list[tuple[float, float, float, float]] = []

    for k in range(1, limit + 1):
        check_cancelled(cancel, body, forward[0], samples)
        t = anchor_julian_day + k * step
        position = yield t
        error = signed_separation(position.longitude, target_longitude)
        samples += 1
        closest = min(closest, abs(error))
        if crosses(forward[1], error):
            found.append((forward[0], forward[1], t, error))
        forward = (t, error)

        if direction == "nearest":
            t = anchor_julian_day - k * step
            position = yield t
            error = signed_separation(position.longitude, target_longitude)
            samples += 1
            closest = min(closest, abs(error))
            if crosses(error, backward[1]):
                found.append((t, error, backward[0], backward[1]))
            backward = (t, error)

        if found:
            break

    if not found:
        raise ConvergenceError(
            f"No {body} crossing of {target_longitude:.4f}° within {SCAN_PERIODS} periods of JD {anchor_julian_day:.5f}",
            body=body,
            last_julian_day=forward[0],
            residual=closest,
            iterations=samples,
            reason="no_root_in_window",
        )

    start, error_start, end, _ = min(found, key=lambda c: abs(_interpolated_root(*c) - anchor_julian_day))
    width = 2.0 * profile.search_half_width_days
    for _ in range(MAX_BISECTIONS):
        if end - start <= width:
            break
        check_cancelled(cancel, body, start, samples)
        mid = start + (end - start) / 2.0
        position = yield mid
        error_mid = signed_separation(position.longitude, target_longitude)
        samples += 1
        if error_start != 0.0 and (error_mid > 0.0) == (error_start > 0.0):
            start, error_start = mid, error_mid
        else:
            end = mid

    logger.debug("%s crossing bracketed in JD [%.5f, %.5f] after %d samples", body, start, end, samples)
    return start, end
