"""Geographic utility functions for classverify.

Pure geographic computations — no I/O, no external calls.
"""

from __future__ import annotations

import math

from config.defaults import EARTH_RADIUS_M


def haversine_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius_m: float = EARTH_RADIUS_M,
) -> float:
    """Calculate the great-circle distance between two points using the Haversine formula.

    Args:
        lat1: Latitude of first point in decimal degrees.
        lon1: Longitude of first point in decimal degrees.
        lat2: Latitude of second point in decimal degrees.
        lon2: Longitude of second point in decimal degrees.
        radius_m: Sphere radius in metres.

    Returns:
        Distance in metres.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius_m * c


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def is_within_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    threshold_m: float,
) -> bool:
    """Check whether two coordinates lie within threshold_m of each other (inclusive)."""
    return haversine_m(lat1, lon1, lat2, lon2) <= threshold_m
