from __future__ import annotations

import asyncio
from typing import Mapping, Optional, Sequence, Tuple

from ..astro_engine import query_position, query_position_async
from ..models import BodyPosition, ChartGeometry, Location
from .angularity import classify_angularity
from .aspects import aspect_table, find_aspects
from .houses import compute_cusps
from .sidereal import local_sidereal_time, mean_obliquity


def build_chart(
    julian_day: float,
    location: Location,
    positions: Sequence[BodyPosition],
    *,
    house_system: str = "placidus",
    aspects: Optional[Mapping[float, Tuple[str, float]]] = None,
    include_minor: bool = False,
) -> ChartGeometry:
    """
    Derive the chart geometry from positions already sampled at ``julian_day``:
    - local sidereal time and obliquity
    - house cusps in the requested system
    - aspects between every pair of bodies
    - angular / succedent / cadent classification
    """
    location.validate()
    lst = local_sidereal_time(julian_day, location.longitude)
    obliquity = mean_obliquity(julian_day)
    houses = compute_cusps(lst, location.latitude, obliquity, house_system)
    table = aspects if aspects is not None else aspect_table(include_minor)
    return ChartGeometry(
        julian_day=julian_day,
        location=location,
        positions={p.name: p for p in positions},
        houses=houses,
        aspects=find_aspects(positions, table),
        angularity=classify_angularity(positions, houses),
        local_sidereal_time=lst,
        obliquity=obliquity,
    )


def derive_chart(
    oracle,
    julian_day: float,
    location: Location,
    bodies: Sequence[str],
    **options,
) -> ChartGeometry:
    """Query one position per body at ``julian_day`` and build the chart from them."""

    location.validate()
    positions = [query_position(oracle, body, julian_day, location) for body in bodies]
    return build_chart(julian_day, location, positions, **options)


async def derive_chart_async(
    oracle,
    julian_day: float,
    location: Location,
    bodies: Sequence[str],
    **options,
) -> ChartGeometry:
    location.validate()
    positions = await asyncio.gather(
        *(query_position_async(oracle, body, julian_day, location) for body in bodies)
    )
    return build_chart(julian_day, location, list(positions), **options)


__all__ = ["build_chart", "derive_chart", "derive_chart_async"]
