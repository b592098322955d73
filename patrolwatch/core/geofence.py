"""Geofence checks for checkpoint verification."""

from __future__ import annotations

import math

EARTH_RADIUS_M = 6_371_000.0


def distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute the great-circle (haversine) distance in meters.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters. No antimeridian or pole handling.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # Float rounding can push a past 1.0 near antipodes.
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def within_radius(
    current_lat: float,
    current_lon: float,
    target_lat: float,
    target_lon: float,
    radius_meters: float,
) -> bool:
    """Check whether the current position is inside or on the checkpoint geofence."""
    return distance_m(current_lat, current_lon, target_lat, target_lon) <= radius_meters
