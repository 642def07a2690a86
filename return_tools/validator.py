"""Quality assessment of a finished return chart."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict

from .angles import angular_distance
from .analysis.houses import cusps_in_order
from .models import ReturnChart

MAX_ASPECT_ORB = 12.0

CHECK_WEIGHTS: Dict[str, float] = {
    "time_accuracy": 0.4,
    "positions": 0.3,
    "aspects": 0.15,
    "houses": 0.1,
    "completeness": 0.05,
}

RATINGS = (
    (0.95, "Excellent"),
    (0.85, "Very Good"),
    (0.75, "Good"),
    (0.65, "Fair"),
    (0.50, "Poor"),
)


@dataclass(frozen=True)
class CheckResult:
    passed: bool
    message: str


@dataclass(frozen=True)
class ChartAssessment:
    is_valid: bool
    score: float
    rating: str
    checks: Dict[str, CheckResult]

    @property
    def summary(self) -> str:
        failed = [name for name, check in self.checks.items() if not check.passed]
        if not failed:
            return f"All checks passed ({self.rating}, score {self.score:.2f})"
        return f"{len(failed)} check(s) failed: {', '.join(failed)} ({self.rating}, score {self.score:.2f})"


def rating_for(score: float) -> str:
    for threshold, label in RATINGS:
        if score >= threshold:
            return label
    return "Unacceptable"


def _check_time_accuracy(chart: ReturnChart) -> CheckResult:
    position = chart.positions.get(chart.body)
    error = (
        angular_distance(position.longitude, chart.target_longitude)
        if position is not None
        else chart.solution.residual
    )
    tolerance = chart.solution.tolerance
    if error <= tolerance:
        return CheckResult(True, f"{chart.body} within {error:.6f}° of its natal longitude")
    return CheckResult(False, f"{chart.body} is {error:.6f}° from its natal longitude (tolerance {tolerance:.6f}°)")


def _check_positions(chart: ReturnChart) -> CheckResult:
    bad = [
        name
        for name, p in chart.positions.items()
        if not (math.isfinite(p.longitude) and 0.0 <= p.longitude < 360.0)
        or not (math.isfinite(p.latitude) and -90.0 <= p.latitude <= 90.0)
    ]
    if bad:
        return CheckResult(False, f"Out-of-range coordinates for {', '.join(bad)}")
    return CheckResult(True, f"{len(chart.positions)} positions in range")


def _check_aspects(chart: ReturnChart) -> CheckResult:
    bad = [
        f"{a.body_a}-{a.body_b}"
        for a in chart.aspects
        if not (0.0 <= a.orb <= MAX_ASPECT_ORB)
        or not (0.0 <= a.aspect_angle <= 180.0)
        or not (0.0 <= a.separation <= 180.0)
    ]
    if bad:
        return CheckResult(False, f"Inconsistent aspects: {', '.join(bad)}")
    return CheckResult(True, f"{len(chart.aspects)} aspects consistent")


def _check_houses(chart: ReturnChart) -> CheckResult:
    cusps = chart.houses.cusps
    if len(cusps) != 12:
        return CheckResult(False, f"Expected 12 cusps, found {len(cusps)}")
    if not all(0.0 <= c < 360.0 for c in cusps) or not cusps_in_order(cusps):
        return CheckResult(False, "Cusps are not in zodiacal order")
    if chart.houses.low_confidence:
        return CheckResult(False, "; ".join(chart.houses.notes) or "House cusps flagged low confidence")
    return CheckResult(True, f"{chart.houses.system} cusps properly ordered")


def _check_completeness(chart: ReturnChart) -> CheckResult:
    missing = []
    if not chart.positions:
        missing.append("positions")
    if chart.body not in chart.positions:
        missing.append(f"{chart.body} position")
    if not chart.angularity.houses:
        missing.append("angularity")
    if chart.validity.end <= chart.validity.start:
        missing.append("validity period")
    if missing:
        return CheckResult(False, f"Missing or empty: {', '.join(missing)}")
    return CheckResult(True, "Chart is complete")


def assess_return_chart(chart: ReturnChart) -> ChartAssessment:
    """Run every check and weight the results; never raises for a poor chart."""

    checks = {
        "time_accuracy": _check_time_accuracy(chart),
        "positions": _check_positions(chart),
        "aspects": _check_aspects(chart),
        "houses": _check_houses(chart),
        "completeness": _check_completeness(chart),
    }
    score = sum(CHECK_WEIGHTS[name] for name, check in checks.items() if check.passed)
    score = round(score, 10)
    return ChartAssessment(
        is_valid=all(check.passed for check in checks.values()),
        score=score,
        rating=rating_for(score),
        checks=checks,
    )
