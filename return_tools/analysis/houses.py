"""
House cusps from local sidereal time, latitude and obliquity.

Placidus cusps come from the Swiss Ephemeris (``houses_armc``). When it cannot
produce them they are rebuilt here, and the rebuild trisects the semi-arcs.
Cusps 11 and 12 trisect the diurnal semi-arc between the MC and the
Ascendant. Cusps 2 and 3 trisect the nocturnal semi-arc between the
Ascendant and the IC. Each cusp's declination depends on its own longitude,
so every intermediate cusp is solved iteratively. The remaining cusps are
the opposite points.

Above the polar circles some ecliptic points never rise or set and the
semi-arc is undefined. The cusps are still produced, using clamped arcs, but
the result carries ``low_confidence=True`` and a note. Any rebuilt cusps are
marked the same way. Equal houses exist only as an explicit system.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import swisseph as swe

from ..angles import forward_arc, normalize, signed_separation
from ..errors import ValidationError
from ..models import HouseCusps

logger = logging.getLogger(__name__)

HOUSE_SYSTEMS = ("placidus", "equal")
MAX_CUSP_ITERATIONS = 50
CUSP_EPSILON = 1e-9


def midheaven(ramc: float, obliquity: float) -> float:
    theta = math.radians(ramc)
    eps = math.radians(obliquity)
    return normalize(math.degrees(math.atan2(math.sin(theta), math.cos(theta) * math.cos(eps))))


def ascendant(ramc: float, obliquity: float, latitude: float) -> float:
    theta = math.radians(ramc)
    eps = math.radians(obliquity)
    phi = math.radians(latitude)
    y = math.cos(theta)
    x = -(math.sin(theta) * math.cos(eps) + math.tan(phi) * math.sin(eps))
    return normalize(math.degrees(math.atan2(y, x)))


def _longitude_from_ra(ra: float, eps: float) -> float:
    ra_rad = math.radians(ra)
    return normalize(math.degrees(math.atan2(math.sin(ra_rad), math.cos(ra_rad) * math.cos(eps))))


def _semi_diurnal_arc(phi: float, dec: float) -> tuple[float, bool]:
    """Diurnal semi-arc in degrees, and whether it had to be clamped."""

    v = -math.tan(phi) * math.tan(dec)
    clamped = abs(v) > 1.0
    v = max(-1.0, min(1.0, v))
    return math.degrees(math.acos(v)), clamped


def _placidus_cusp(ramc: float, eps: float, phi: float, offset: float, fraction: float) -> tuple[float, bool]:
    """
    Solve one intermediate cusp: RA = RAMC + offset + fraction * SDA(dec(cusp)).

    Returns the longitude and whether the solution is trustworthy. The
    fixed-point map contracts slowly at high latitudes, so the residual is
    driven to zero with secant steps instead.
    """

    def residual(lam: float) -> tuple[float, bool]:
        dec = math.asin(math.sin(eps) * math.sin(math.radians(lam)))
        sda, clamped = _semi_diurnal_arc(phi, dec)
        return signed_separation(_longitude_from_ra(ramc + offset + fraction * sda, eps), lam), clamped

    x0 = _longitude_from_ra(ramc + offset + fraction * 90.0, eps)
    f0, _ = residual(x0)
    x1 = normalize(x0 + f0)
    for _ in range(MAX_CUSP_ITERATIONS):
        f1, clamped = residual(x1)
        if abs(f1) < CUSP_EPSILON:
            return x1, not clamped
        den = f1 - f0
        if abs(den) < 1e-14:
            break
        x2 = normalize(x1 - f1 * signed_separation(x1, x0) / den)
        x0, f0 = x1, f1
        x1 = x2
    return x1, False


def semi_arc_placidus(
    ramc: float, latitude: float, obliquity: float, reasons: Sequence[str] = ()
) -> HouseCusps:
    """Placidus by semi-arc trisection. Any ``reasons`` given are recorded as notes."""

    eps = math.radians(obliquity)
    phi = math.radians(latitude)
    asc = ascendant(ramc, obliquity, latitude)
    mc = midheaven(ramc, obliquity)

    # (offset, fraction): RA of the cusp relative to RAMC as a share of the diurnal arc.
    c11, ok11 = _placidus_cusp(ramc, eps, phi, 0.0, 1.0 / 3.0)
    c12, ok12 = _placidus_cusp(ramc, eps, phi, 0.0, 2.0 / 3.0)
    c2, ok2 = _placidus_cusp(ramc, eps, phi, 60.0, 2.0 / 3.0)
    c3, ok3 = _placidus_cusp(ramc, eps, phi, 120.0, 1.0 / 3.0)

    cusps = (
        asc,
        c2,
        c3,
        normalize(mc + 180.0),
        normalize(c11 + 180.0),
        normalize(c12 + 180.0),
        normalize(asc + 180.0),
        normalize(c2 + 180.0),
        normalize(c3 + 180.0),
        mc,
        c11,
        c12,
    )

    notes = list(reasons)
    if not all((ok11, ok12, ok2, ok3)):
        notes.append(f"semi-arc undefined for some cusps at latitude {latitude:.4f}")
    if not cusps_in_order(cusps):
        notes.append("cusps are not in zodiacal order")
    return HouseCusps(
        cusps=cusps,
        ascendant=asc,
        midheaven=mc,
        system="placidus",
        low_confidence=bool(notes),
        notes=tuple(notes),
    )


def swiss_placidus(ramc: float, latitude: float, obliquity: float) -> HouseCusps:
    cusps, _ = swe.houses_armc(ramc, latitude, obliquity, b"P")
    # Older pyswisseph releases return 13 values with an unused index 0.
    if len(cusps) == 13:
        cusps = cusps[1:]
    cusps = tuple(normalize(float(c)) for c in cusps[:12])
    notes = () if cusps_in_order(cusps) else ("cusps are not in zodiacal order",)
    return HouseCusps(
        cusps=cusps,
        ascendant=cusps[0],
        midheaven=cusps[9],
        system="placidus",
        low_confidence=bool(notes),
        notes=notes,
    )


def placidus_cusps(ramc: float, latitude: float, obliquity: float) -> HouseCusps:
    """Swiss Ephemeris Placidus, or the flagged semi-arc rebuild where it cannot be used."""

    if abs(latitude) + obliquity >= 90.0:
        reason = f"latitude {latitude:.4f} is inside the polar circle"
    else:
        try:
            return swiss_placidus(ramc, latitude, obliquity)
        except swe.Error as exc:
            reason = f"Swiss Ephemeris Placidus failed: {exc}"
    logger.warning("Placidus fallback at RAMC %.4f, latitude %.4f: %s", ramc, latitude, reason)
    return semi_arc_placidus(ramc, latitude, obliquity, (reason,))


def equal_cusps(ramc: float, latitude: float, obliquity: float) -> HouseCusps:
    asc = ascendant(ramc, obliquity, latitude)
    return HouseCusps(
        cusps=tuple(normalize(asc + 30.0 * i) for i in range(12)),
        ascendant=asc,
        midheaven=midheaven(ramc, obliquity),
        system="equal",
    )


def compute_cusps(ramc: float, latitude: float, obliquity: float, system: str = "placidus") -> HouseCusps:
    """Compute cusps with the named system; RAMC is the local sidereal time in degrees."""

    if system == "placidus":
        return placidus_cusps(ramc, latitude, obliquity)
    if system == "equal":
        return equal_cusps(ramc, latitude, obliquity)
    raise ValidationError(f"Unknown house system {system!r}; expected one of {HOUSE_SYSTEMS}")


def cusps_in_order(cusps: Sequence[float]) -> bool:
    """True when walking the cusps in house order goes round the zodiac exactly once."""

    arcs = [forward_arc(cusps[i], cusps[(i + 1) % 12]) for i in range(12)]
    return all(arc > 0.0 for arc in arcs) and abs(sum(arcs) - 360.0) < 1e-6


def house_for_longitude(longitude: float, cusps: Sequence[float]) -> int:
    """
    Return the house (1-12) containing ``longitude``.

    Houses are half-open, ``[cusp_i, cusp_i+1)``, and wrap through 0°. A point
    exactly on a cusp belongs to the house that cusp opens.
    """

    if len(cusps) != 12:
        raise ValidationError(f"Expected 12 cusps, got {len(cusps)}")
    lon = normalize(longitude)
    for i in range(12):
        width = forward_arc(cusps[i], cusps[(i + 1) % 12])
        if forward_arc(cusps[i], lon) < width:
            return i + 1
    # Degenerate cusps: fall back to the nearest preceding cusp.
    return min(range(12), key=lambda i: forward_arc(cusps[i], lon)) + 1
