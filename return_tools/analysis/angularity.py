from __future__ import annotations

from typing import Dict, Sequence

from ..models import AngularityClassification, BodyPosition, HouseCusps
from .houses import house_for_longitude

ANGULAR_HOUSES = frozenset({1, 4, 7, 10})
SUCCEDENT_HOUSES = frozenset({2, 5, 8, 11})
CADENT_HOUSES = frozenset({3, 6, 9, 12})


def house_category(house: int) -> str:
    if house in ANGULAR_HOUSES:
        return "angular"
    if house in SUCCEDENT_HOUSES:
        return "succedent"
    return "cadent"


def classify_angularity(positions: Sequence[BodyPosition], houses: HouseCusps) -> AngularityClassification:
    """Place each body in its house and group bodies by angular, succedent and cadent houses."""

    placements: Dict[str, int] = {p.name: house_for_longitude(p.longitude, houses.cusps) for p in positions}
    groups: Dict[str, list[str]] = {"angular": [], "succedent": [], "cadent": []}
    for name, house in placements.items():
        groups[house_category(house)].append(name)

    total = len(placements)
    angular_count = len(groups["angular"])
    return AngularityClassification(
        angular=tuple(groups["angular"]),
        succedent=tuple(groups["succedent"]),
        cadent=tuple(groups["cadent"]),
        houses=placements,
        angular_count=angular_count,
        strength=angular_count / total if total else 0.0,
    )
