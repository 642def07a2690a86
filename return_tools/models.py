"""Dataclasses that capture return searches and the charts derived from them."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .errors import ValidationError


@dataclass(frozen=True)
class Location:
    """Geographic position; longitude is east positive."""

    latitude: float
    longitude: float

    def validate(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValidationError(f"Location coordinates must be finite: {self!r}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"Latitude {self.latitude} is outside [-90, 90]")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"Longitude {self.longitude} is outside [-180, 180]")


@dataclass(frozen=True)
class BodyPosition:
    """Ecliptic placement of one body at one moment."""

    name: str
    longitude: float
    latitude: float = 0.0
    distance: float = 0.0
    speed: float = 0.0  # degrees per day

    @property
    def retrograde(self) -> bool:
        return self.speed < 0


@dataclass(frozen=True)
class HouseCusps:
    """
    Twelve cusps in house order plus the angles.

    ``cusps[0]`` opens house 1 (the Ascendant) and ``cusps[9]`` opens house 10.
    ``low_confidence`` is set when the house system is degenerate at the chart
    latitude; ``notes`` says why.
    """

    cusps: Tuple[float, ...]
    ascendant: float
    midheaven: float
    system: str = "placidus"
    low_confidence: bool = False
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AspectRecord:
    """Closest aspect between two bodies, within that aspect's orb."""

    body_a: str
    body_b: str
    aspect: str
    aspect_angle: float
    orb: float  # deviation from the exact angle
    separation: float
    exact: bool
    applying: Optional[bool] = None


@dataclass(frozen=True)
class AngularityClassification:
    angular: Tuple[str, ...]
    succedent: Tuple[str, ...]
    cadent: Tuple[str, ...]
    houses: Mapping[str, int]
    angular_count: int
    strength: float


@dataclass(frozen=True)
class ValidityPeriod:
    start: float
    end: float

    @property
    def duration_days(self) -> float:
        return self.end - self.start

    def contains(self, julian_day: float) -> bool:
        return self.start <= julian_day < self.end


@dataclass(frozen=True)
class ReturnSolution:
    """Outcome of one return-time search."""

    body: str
    julian_day: float
    residual: float
    iterations: int
    tolerance: float
    low_confidence: bool = False


@dataclass(frozen=True)
class ChartGeometry:
    """Everything derivable from a moment and a location."""

    julian_day: float
    location: Location
    positions: Mapping[str, BodyPosition]
    houses: HouseCusps
    aspects: Tuple[AspectRecord, ...]
    angularity: AngularityClassification
    local_sidereal_time: float
    obliquity: float


@dataclass(frozen=True)
class ReturnChart:
    """A solved return moment with its geometry and period of validity."""

    body: str
    target_longitude: float
    solution: ReturnSolution
    geometry: ChartGeometry
    validity: ValidityPeriod
    flags: Tuple[str, ...] = ()

    @property
    def julian_day(self) -> float:
        return self.solution.julian_day

    @property
    def location(self) -> Location:
        return self.geometry.location

    @property
    def positions(self) -> Mapping[str, BodyPosition]:
        return self.geometry.positions

    @property
    def houses(self) -> HouseCusps:
        return self.geometry.houses

    @property
    def aspects(self) -> Tuple[AspectRecord, ...]:
        return self.geometry.aspects

    @property
    def angularity(self) -> AngularityClassification:
        return self.geometry.angularity

    @property
    def low_confidence(self) -> bool:
        return bool(self.flags)


@dataclass(frozen=True)
class BirthRecord:
    """Natal moment, location and the longitudes recorded for each body."""

    julian_day: float
    location: Location
    longitudes: Mapping[str, float] = field(default_factory=dict)

    def known_position(self, body: str) -> float:
        try:
            return self.longitudes[body]
        except KeyError:
            raise ValidationError(f"Birth record has no longitude for {body}") from None

    @classmethod
    def from_oracle(cls, oracle, julian_day: float, location: Location, bodies: Iterable[str]) -> "BirthRecord":
        """
        Capture natal longitudes for ``bodies`` by querying ``oracle`` once per body.

        Oracle failures surface as ``OracleError`` with the original exception as cause.
        """

        from .astro_engine import query_position

        location.validate()
        longitudes: Dict[str, float] = {
            body: query_position(oracle, body, julian_day, location).longitude for body in bodies
        }
        return cls(julian_day=julian_day, location=location, longitudes=longitudes)


@dataclass(frozen=True)
class Finding:
    """One conflict, opportunity or challenge found between two charts."""

    kind: str
    description: str
    bodies: Tuple[str, ...] = ()
    severity: Optional[str] = None


@dataclass(frozen=True)
class TimingRelationship:
    days_apart: float
    relationship: str
    description: str


@dataclass(frozen=True)
class CombinedAnalysis:
    harmony: float
    conflicts: Tuple[Finding, ...]
    opportunities: Tuple[Finding, ...]
    challenges: Tuple[Finding, ...]
    timing: TimingRelationship


@dataclass(frozen=True)
class CombinedReturns:
    """Solar and lunar returns cast for the same target period."""

    solar: ReturnChart
    lunar: ReturnChart
    analysis: CombinedAnalysis
