from __future__ import annotations

from typing import List, Mapping, NamedTuple, Optional, Sequence, Tuple

from ..angles import angular_distance
from ..models import AspectRecord, BodyPosition

# angle -> (name, orb)
MAJOR_ASPECTS: Mapping[float, Tuple[str, float]] = {
    0.0: ("conjunction", 8.0),
    60.0: ("sextile", 6.0),
    90.0: ("square", 8.0),
    120.0: ("trine", 8.0),
    180.0: ("opposition", 8.0),
}

MINOR_ASPECTS: Mapping[float, Tuple[str, float]] = {
    30.0: ("semi-sextile", 2.0),
    45.0: ("semi-square", 2.0),
    135.0: ("sesquiquadrate", 2.0),
    150.0: ("quincunx", 3.0),
}

EXACT_ORB = 1.0


class AspectMatch(NamedTuple):
    aspect: str
    angle: float
    orb: float
    separation: float


def aspect_table(include_minor: bool = False) -> dict[float, Tuple[str, float]]:
    table = dict(MAJOR_ASPECTS)
    if include_minor:
        table.update(MINOR_ASPECTS)
    return table


def find_aspect(lon_a: float, lon_b: float, table: Optional[Mapping[float, Tuple[str, float]]] = None) -> Optional[AspectMatch]:
    """Closest aspect between two longitudes that lies within its own orb, or None."""

    aspects = MAJOR_ASPECTS if table is None else table
    separation = angular_distance(lon_a, lon_b)
    best: Optional[AspectMatch] = None
    for angle, (name, max_orb) in aspects.items():
        orb = abs(separation - angle)
        if orb > max_orb:
            continue
        if best is None or orb < best.orb:
            best = AspectMatch(name, angle, orb, separation)
    return best


def find_aspects(
    positions: Sequence[BodyPosition],
    table: Optional[Mapping[float, Tuple[str, float]]] = None,
) -> Tuple[AspectRecord, ...]:
    """Check every unordered pair once, in the order the bodies were given."""

    records: List[AspectRecord] = []
    for i, first in enumerate(positions):
        for second in positions[i + 1:]:
            match = find_aspect(first.longitude, second.longitude, table)
            if match is None:
                continue
            records.append(
                AspectRecord(
                    body_a=first.name,
                    body_b=second.name,
                    aspect=match.aspect,
                    aspect_angle=match.angle,
                    orb=match.orb,
                    separation=match.separation,
                    exact=match.orb < EXACT_ORB,
                    applying=_is_applying(first, second, match.angle),
                )
            )
    return tuple(records)


def _is_applying(p1: BodyPosition, p2: BodyPosition, aspect_angle: float) -> Optional[bool]:
    """
    Determine if the aspect between p1 and p2 is applying.

    1. Measure the separation from p2 to p1 and how fast it changes.
    2. Fold it onto the nearer of the two points where the aspect perfects.
    3. If that motion reduces the difference to the exact angle, it's applying.

    Swapping the bodies gives the same answer. Returns None when the
    separation is not changing, e.g. both bodies are still or move together.
    """
    relative_speed = p1.speed - p2.speed
    if relative_speed == 0.0:
        return None

    delta = (p1.longitude - p2.longitude) % 360.0
    if delta > 180.0:
        delta = 360.0 - delta
        relative_speed = -relative_speed
    diff_now = delta - aspect_angle

    return relative_speed * diff_now < 0
