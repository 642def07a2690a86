"""Cross-chart analysis of two return charts, typically a solar and a lunar return."""

from __future__ import annotations

from ..models import CombinedAnalysis, Finding, ReturnChart, TimingRelationship

OVER_EMPHASIS_MIN_COMMON = 3
LOW_ENERGY_MAX_ANGULAR = 3

TIMING_DESCRIPTIONS = {
    "simultaneous": "Returns fall almost together, so their influences combine strongly",
    "close": "Returns are close together and amplify each other",
    "moderate": "Returns are moderately spaced, giving distinct phases of influence",
    "distant": "Returns are widely spaced, keeping the longer and shorter cycles apart",
}


def return_label(chart: ReturnChart) -> str:
    if chart.body == "Sun":
        return "solar return"
    if chart.body == "Moon":
        return "lunar return"
    return f"{chart.body} return"


def harmony_score(chart_a: ReturnChart, chart_b: ReturnChart) -> float:
    total_bodies = len(set(chart_a.positions) | set(chart_b.positions))
    if total_bodies == 0:
        return 0.0
    diff = abs(chart_a.angularity.angular_count - chart_b.angularity.angular_count)
    return max(0.0, 1.0 - diff / total_bodies)


def find_conflicts(chart_a: ReturnChart, chart_b: ReturnChart) -> tuple[Finding, ...]:
    angular_b = set(chart_b.angularity.angular)
    common = tuple(body for body in chart_a.angularity.angular if body in angular_b)
    if len(common) < OVER_EMPHASIS_MIN_COMMON:
        return ()
    return (
        Finding(
            kind="over_emphasis",
            description=f"{', '.join(common)} are angular in both charts, concentrating the focus",
            bodies=common,
            severity="high",
        ),
    )


def find_opportunities(chart_a: ReturnChart, chart_b: ReturnChart) -> tuple[Finding, ...]:
    angular_a = chart_a.angularity.angular
    angular_b = chart_b.angularity.angular
    if not angular_a or not angular_b or set(angular_a) & set(angular_b):
        return ()
    return (
        Finding(
            kind="balanced_focus",
            description=(
                f"The {return_label(chart_a)} emphasizes {', '.join(angular_a)} while the "
                f"{return_label(chart_b)} emphasizes {', '.join(angular_b)}"
            ),
            bodies=angular_a + angular_b,
        ),
    )


def find_challenges(chart_a: ReturnChart, chart_b: ReturnChart) -> tuple[Finding, ...]:
    total = chart_a.angularity.angular_count + chart_b.angularity.angular_count
    if total >= LOW_ENERGY_MAX_ANGULAR:
        return ()
    return (
        Finding(
            kind="low_energy",
            description="Few angular bodies across both charts, a comparatively quiet period",
            severity="medium",
        ),
    )


def timing_relationship(chart_a: ReturnChart, chart_b: ReturnChart) -> TimingRelationship:
    days = abs(chart_a.julian_day - chart_b.julian_day)
    if days < 1:
        relationship = "simultaneous"
    elif days < 7:
        relationship = "close"
    elif days < 14:
        relationship = "moderate"
    else:
        relationship = "distant"
    return TimingRelationship(days_apart=days, relationship=relationship, description=TIMING_DESCRIPTIONS[relationship])


def combine_returns(chart_a: ReturnChart, chart_b: ReturnChart) -> CombinedAnalysis:
    return CombinedAnalysis(
        harmony=harmony_score(chart_a, chart_b),
        conflicts=find_conflicts(chart_a, chart_b),
        opportunities=find_opportunities(chart_a, chart_b),
        challenges=find_challenges(chart_a, chart_b),
        timing=timing_relationship(chart_a, chart_b),
    )
