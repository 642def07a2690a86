import pytest

from return_tools.analysis.combined import combine_returns, harmony_score, timing_relationship
from return_tools.models import (
    AngularityClassification,
    BodyPosition,
    ChartGeometry,
    HouseCusps,
    Location,
    ReturnChart,
    ReturnSolution,
    ValidityPeriod,
)

BODIES = ("Sun", "Moon", "Mercury", "Venus", "Mars", "Jupiter", "Saturn", "Uranus", "Neptune", "Pluto")


def make_chart(body: str, julian_day: float, angular: tuple[str, ...]) -> ReturnChart:
    """Minimal chart carrying only what the cross-chart analysis reads."""

    houses = {name: (1 if name in angular else 2) for name in BODIES}
    angularity = AngularityClassification(
        angular=angular,
        succedent=tuple(name for name in BODIES if name not in angular),
        cadent=(),
        houses=houses,
        angular_count=len(angular),
        strength=len(angular) / len(BODIES),
    )
    geometry = ChartGeometry(
        julian_day=julian_day,
        location=Location(0.0, 0.0),
        positions={name: BodyPosition(name=name, longitude=0.0) for name in BODIES},
        houses=HouseCusps(cusps=tuple(30.0 * i for i in range(12)), ascendant=0.0, midheaven=270.0),
        aspects=(),
        angularity=angularity,
        local_sidereal_time=0.0,
        obliquity=23.44,
    )
    solution = ReturnSolution(body=body, julian_day=julian_day, residual=0.0, iterations=1, tolerance=0.001)
    return ReturnChart(
        body=body,
        target_longitude=0.0,
        solution=solution,
        geometry=geometry,
        validity=ValidityPeriod(julian_day, julian_day + 27.3),
    )


def test_disjoint_angular_sets_are_an_opportunity() -> None:
    solar = make_chart("Sun", 2460000.5, ("Sun", "Mars"))
    lunar = make_chart("Moon", 2460010.5, ("Moon", "Venus"))
    analysis = combine_returns(solar, lunar)

    assert len(analysis.opportunities) == 1
    assert analysis.opportunities[0].kind == "balanced_focus"
    assert analysis.opportunities[0].bodies == ("Sun", "Mars", "Moon", "Venus")
    assert analysis.conflicts == ()


def test_overlapping_sets_are_not_an_opportunity() -> None:
    solar = make_chart("Sun", 2460000.5, ("Sun", "Mars"))
    lunar = make_chart("Moon", 2460000.5, ("Mars", "Venus"))

    assert combine_returns(solar, lunar).opportunities == ()


def test_three_shared_angular_bodies_conflict() -> None:
    solar = make_chart("Sun", 2460000.5, ("Sun", "Mars", "Saturn", "Venus"))
    lunar = make_chart("Moon", 2460003.5, ("Mars", "Saturn", "Venus"))
    analysis = combine_returns(solar, lunar)

    assert len(analysis.conflicts) == 1
    conflict = analysis.conflicts[0]
    assert conflict.kind == "over_emphasis"
    assert conflict.severity == "high"
    assert conflict.bodies == ("Mars", "Saturn", "Venus")


def test_two_shared_angular_bodies_do_not_conflict() -> None:
    solar = make_chart("Sun", 2460000.5, ("Mars", "Saturn"))
    lunar = make_chart("Moon", 2460003.5, ("Mars", "Saturn"))

    assert combine_returns(solar, lunar).conflicts == ()


def test_low_energy_challenge() -> None:
    solar = make_chart("Sun", 2460000.5, ("Sun",))
    lunar = make_chart("Moon", 2460003.5, ("Moon",))
    analysis = combine_returns(solar, lunar)

    assert [c.kind for c in analysis.challenges] == ["low_energy"]
    assert analysis.challenges[0].severity == "medium"

    busier = make_chart("Moon", 2460003.5, ("Moon", "Venus"))
    assert combine_returns(solar, busier).challenges == ()


def test_harmony_score() -> None:
    solar = make_chart("Sun", 2460000.5, ("Sun", "Mars", "Venus", "Jupiter"))
    lunar = make_chart("Moon", 2460000.5, ("Moon",))

    assert harmony_score(solar, lunar) == pytest.approx(1 - 3 / 10)
    assert harmony_score(solar, solar) == 1.0


@pytest.mark.parametrize(
    "days, relationship",
    [(0.5, "simultaneous"), (1.0, "close"), (6.9, "close"), (7.0, "moderate"), (13.9, "moderate"), (14.0, "distant")],
)
def test_timing_bands(days, relationship) -> None:
    first = make_chart("Sun", 2460000.5, ())
    second = make_chart("Moon", 2460000.5 + days, ())
    timing = timing_relationship(first, second)

    assert timing.relationship == relationship
    assert timing.days_apart == pytest.approx(days)
    assert timing.description
