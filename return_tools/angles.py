"""Angle arithmetic on the ecliptic circle."""

from __future__ import annotations


def normalize(angle: float) -> float:
    """Normalize to [0, 360)."""

    result = angle % 360.0
    # -1e-17 % 360 rounds to 360.0
    return 0.0 if result == 360.0 else result


def signed_separation(a: float, b: float) -> float:
    """Shortest signed angle from ``b`` to ``a``, in (-180, 180]."""

    diff = normalize(a - b)
    if diff > 180.0:
        diff -= 360.0
    return diff


def angular_distance(a: float, b: float) -> float:
    """Unsigned shortest separation, always in [0, 180]."""

    diff = abs(a - b) % 360.0
    return min(diff, 360.0 - diff)


def forward_arc(start: float, end: float) -> float:
    """Arc travelled moving forward (increasing longitude) from ``start`` to ``end``."""

    return normalize(end - start)
