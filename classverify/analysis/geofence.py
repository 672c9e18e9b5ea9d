"""Geofence evaluation for classverify.

Maps the distance between the device GPS fix and the orphanage's reference
coordinate onto the shared four-level match tier. Pure and deterministic.
"""

from __future__ import annotations

from typing import Optional

from config.defaults import EARTH_RADIUS_M
from config.settings import GeofenceThresholds
from classverify.models.verification import GeofenceResult, GeoPoint, MatchTier
from classverify.utils.geo_utils import haversine_m, round_half_up

_DEFAULT_THRESHOLDS = GeofenceThresholds()


def tier_for_distance(
    distance_m: float,
    thresholds: GeofenceThresholds = _DEFAULT_THRESHOLDS,
) -> str:
    """Classify a distance in metres. Upper bounds are inclusive."""
    if distance_m <= thresholds.high_max_m:
        return MatchTier.HIGH
    if distance_m <= thresholds.likely_max_m:
        return MatchTier.LIKELY
    if distance_m <= thresholds.uncertain_max_m:
        return MatchTier.UNCERTAIN
    return MatchTier.UNLIKELY


def evaluate(
    device: Optional[GeoPoint],
    reference: Optional[GeoPoint],
    thresholds: GeofenceThresholds = _DEFAULT_THRESHOLDS,
    radius_m: float = EARTH_RADIUS_M,
) -> Optional[GeofenceResult]:
    """Compare a device fix against the orphanage location.

    The distance is rounded to whole metres before tiering, so the tier always
    agrees with the distance shown to reviewers.

    Args:
        device: GPS fix from the photo, or None.
        reference: Orphanage coordinate, or None.
        thresholds: Tier boundaries.
        radius_m: Earth radius used by the haversine formula.

    Returns:
        GeofenceResult, or None when either point is absent.
    """
    if device is None or reference is None:
        return None

    distance = round_half_up(
        haversine_m(
            device.latitude,
            device.longitude,
            reference.latitude,
            reference.longitude,
            radius_m=radius_m,
        )
    )
    return GeofenceResult(distance_meters=distance, tier=tier_for_distance(distance, thresholds))
