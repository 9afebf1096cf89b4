"""Geometry helpers: great-circle distance and rough travel-time estimates."""

import math

from tworoute.services.transfer.config import transfer_config

EARTH_RADIUS_M = 6_371_000

speeds = transfer_config.speeds


def round_half_up(value: float) -> int:
    """Nearest integer, with halves always rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> int:
    """Great-circle distance between two points in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round_half_up(EARTH_RADIUS_M * c)


def point_distance_m(start, end) -> int:
    """Distance between two TransferPoints (anything with .coordinates.lat/.lng)."""
    return haversine_m(
        start.coordinates.lat, start.coordinates.lng,
        end.coordinates.lat, end.coordinates.lng,
    )


def walking_minutes(distance_m: float) -> int:
    return round_half_up(distance_m / speeds.walking_m_per_min)


def driving_minutes(distance_m: float) -> int:
    return max(1, round_half_up(distance_m / speeds.driving_m_per_min))


def taxi_fare(distance_m: float) -> float:
    return float(round_half_up(distance_m * speeds.taxi_fare_per_m + speeds.taxi_base_fare))
