from dataclasses import replace

import pytest

from fake_oracle import EPOCH, NEW_YORK, sky
from return_tools.angles import normalize
from return_tools.models import HouseCusps, ValidityPeriod
from return_tools.orchestrator import ReturnChartOrchestrator
from return_tools.validator import assess_return_chart, rating_for

BIRTH = EPOCH - 30 * 365.24219


@pytest.fixture(scope="module")
def solar_chart():
    oracle = sky()
    target = oracle.longitude("Sun", BIRTH)
    return ReturnChartOrchestrator(oracle).generate_return("Sun", BIRTH, target, EPOCH, NEW_YORK)


def test_sound_chart_scores_excellent(solar_chart) -> None:
    assessment = assess_return_chart(solar_chart)

    assert assessment.is_valid
    assert assessment.score == 1.0
    assert assessment.rating == "Excellent"
    assert assessment.summary.startswith("All checks passed")


def test_wrong_target_fails_time_accuracy(solar_chart) -> None:
    shifted = replace(solar_chart, target_longitude=normalize(solar_chart.target_longitude + 1.0))
    assessment = assess_return_chart(shifted)

    assert not assessment.is_valid
    assert not assessment.checks["time_accuracy"].passed
    assert assessment.score == pytest.approx(0.6)
    assert assessment.rating == "Poor"


def test_empty_validity_fails_completeness_only(solar_chart) -> None:
    broken = replace(solar_chart, validity=ValidityPeriod(solar_chart.julian_day, solar_chart.julian_day))
    assessment = assess_return_chart(broken)

    assert not assessment.is_valid
    assert [name for name, check in assessment.checks.items() if not check.passed] == ["completeness"]
    assert assessment.rating == "Excellent"


def test_unordered_cusps_fail_houses(solar_chart) -> None:
    cusps = list(solar_chart.houses.cusps)
    cusps[3], cusps[4] = cusps[4], cusps[3]
    geometry = replace(solar_chart.geometry, houses=replace(solar_chart.houses, cusps=tuple(cusps)))
    assessment = assess_return_chart(replace(solar_chart, geometry=geometry))

    assert not assessment.checks["houses"].passed
    assert assessment.score == pytest.approx(0.9)
    assert assessment.rating == "Very Good"


def test_low_confidence_houses_fail_with_notes(solar_chart) -> None:
    houses = HouseCusps(
        cusps=solar_chart.houses.cusps,
        ascendant=solar_chart.houses.ascendant,
        midheaven=solar_chart.houses.midheaven,
        low_confidence=True,
        notes=("semi-arc clamped",),
    )
    geometry = replace(solar_chart.geometry, houses=houses)
    check = assess_return_chart(replace(solar_chart, geometry=geometry)).checks["houses"]

    assert not check.passed
    assert check.message == "semi-arc clamped"


@pytest.mark.parametrize(
    "score, rating",
    [
        (1.0, "Excellent"),
        (0.95, "Excellent"),
        (0.9, "Very Good"),
        (0.75, "Good"),
        (0.7, "Fair"),
        (0.5, "Poor"),
        (0.45, "Unacceptable"),
        (0.0, "Unacceptable"),
    ],
)
def test_rating_thresholds(score, rating) -> None:
    assert rating_for(score) == rating
