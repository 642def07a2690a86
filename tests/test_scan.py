import asyncio
import threading

import pytest

from fake_oracle import EPOCH, NEW_YORK, AsyncOracle, LinearOracle, PerturbedOracle, longitude_at_epoch
from return_tools.angles import signed_separation
from return_tools.errors import ConvergenceError, SearchCancelled, ValidationError
from return_tools.scan import bracket_crossing, crosses
from return_tools.solver import run_search, run_search_async
from return_tools.tolerances import BODY_PROFILES, profile_for

MOON = profile_for("Moon")
SUN = profile_for("Sun")
MARS = profile_for("Mars")
LUNAR_RATE = MOON.mean_motion


def bracket(oracle, body, target, anchor, direction="nearest", cancel=None):
    search = bracket_crossing(profile_for(body), target, anchor, direction, cancel)
    return run_search(oracle, body, NEW_YORK, search)


def test_crosses_needs_a_sign_change_away_from_the_wrap() -> None:
    assert crosses(-1.0, 2.0)
    assert crosses(3.0, -0.5)
    assert crosses(0.0, 5.0)
    assert not crosses(1.0, 2.0)
    # 179 to -179 is the far side of the circle, not the target.
    assert not crosses(179.0, -179.0)


def test_next_brackets_the_first_crossing_after_the_anchor() -> None:
    root = EPOCH + 20.0
    oracle = LinearOracle({"Moon": (longitude_at_epoch(123.7, LUNAR_RATE, root), LUNAR_RATE)})

    start, end = bracket(oracle, "Moon", 123.7, EPOCH + 0.5, "next")

    assert start >= EPOCH + 0.5
    assert start <= root <= end
    assert end - start <= 2 * MOON.search_half_width_days


def test_nearest_prefers_the_closer_side() -> None:
    # Crossings 2 days before and about 25 days after the anchor.
    oracle = LinearOracle({"Moon": (longitude_at_epoch(123.7, LUNAR_RATE, EPOCH - 2.0), LUNAR_RATE)})

    start, end = bracket(oracle, "Moon", 123.7, EPOCH)

    assert start <= EPOCH - 2.0 <= end


def test_solar_window_is_at_most_one_day() -> None:
    rate = SUN.mean_motion
    root = EPOCH + 100.3
    oracle = LinearOracle({"Sun": (longitude_at_epoch(84.5, rate, root), rate)})

    start, end = bracket(oracle, "Sun", 84.5, EPOCH + 100.0)

    assert SUN.search_half_width_days == 0.5
    assert end - start <= 1.0
    assert start <= root <= end


def test_retrograde_loop_still_yields_a_sign_change() -> None:
    # Speed swings between about -0.1 and +1.15 deg/day, so Mars loops backward.
    oracle = PerturbedOracle({"Mars": (0.0, MARS.mean_motion)}, amplitude=20.0, period=200.0)

    for target in (10.0, 45.0, 200.0, 330.0):
        start, end = bracket(oracle, "Mars", target, EPOCH)
        error_start = signed_separation(oracle.longitude("Mars", start), target)
        error_end = signed_separation(oracle.longitude("Mars", end), target)
        assert crosses(error_start, error_end)
        assert end - start <= 2 * MARS.search_half_width_days


def test_no_crossing_raises_convergence_error() -> None:
    oracle = LinearOracle({"Moon": (100.0, 0.0)})

    with pytest.raises(ConvergenceError) as excinfo:
        bracket(oracle, "Moon", 123.7, EPOCH)

    assert excinfo.value.reason == "no_root_in_window"
    assert excinfo.value.residual == pytest.approx(23.7)
    assert excinfo.value.iterations == oracle.calls


def test_unknown_direction_rejected() -> None:
    with pytest.raises(ValidationError):
        bracket(LinearOracle({"Moon": (100.0, LUNAR_RATE)}), "Moon", 123.7, EPOCH, "previous")


def test_cancellation_stops_the_scan() -> None:
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SearchCancelled):
        bracket(LinearOracle({"Moon": (100.0, LUNAR_RATE)}), "Moon", 300.0, EPOCH, cancel=cancel)


def test_async_scan_matches_blocking() -> None:
    oracle = LinearOracle({"Moon": (100.0, LUNAR_RATE)})
    blocking = bracket(oracle, "Moon", 123.7, EPOCH)
    awaited = asyncio.run(
        run_search_async(AsyncOracle(oracle), "Moon", NEW_YORK, bracket_crossing(MOON, 123.7, EPOCH))
    )

    assert awaited == blocking


@pytest.mark.parametrize("body", sorted(BODY_PROFILES))
def test_every_body_scans_in_twentieths_of_its_period(body) -> None:
    profile = BODY_PROFILES[body]
    assert profile.scan_step_days == pytest.approx(profile.nominal_period_days / 20)
