"""
Navigation - Geographic calculations

- Distance between points (Haversine formula)
- Bearing/direction between points
- Display helpers for compass names and durations
"""

import math
from typing import Iterable, List

from models import Coordinates


# Earth's radius in meters
EARTH_RADIUS_M = 6371000.0


def to_radians(degrees: float) -> float:
    """Convert degrees to radians"""
    return degrees * (math.pi / 180)


def to_degrees(radians: float) -> float:
    """Convert radians to degrees"""
    return radians * (180 / math.pi)


def distance_m(start: Coordinates, end: Coordinates) -> float:
    """
    Calculate distance between two points using Haversine formula.

    The Haversine formula calculates the shortest distance over the
    Earth's surface (great-circle distance).

    Args:
        start: Starting coordinates
        end: Ending coordinates

    Returns:
        Distance in meters
    """
    lat1 = to_radians(start.lat)
    lat2 = to_radians(end.lat)
    delta_lat = to_radians(end.lat - start.lat)
    delta_lng = to_radians(end.lng - start.lng)

    # Haversine formula
    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) *
         math.sin(delta_lng / 2) ** 2)

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_km(start: Coordinates, end: Coordinates) -> float:
    return distance_m(start, end) / 1000.0


def path_distance_km(points: Iterable[Coordinates]) -> float:
    """Sum of leg distances along an ordered list of points"""
    points = list(points)
    return sum(distance_km(a, b) for a, b in zip(points, points[1:]))


def calculate_bearing(start: Coordinates, end: Coordinates) -> float:
    """
    Calculate the initial bearing (direction) from start to end.

    Returns:
        Bearing in degrees (0-360, where 0=North, 90=East, etc.)
    """
    lat1 = to_radians(start.lat)
    lat2 = to_radians(end.lat)
    delta_lng = to_radians(end.lng - start.lng)

    y = math.sin(delta_lng) * math.cos(lat2)
    x = (math.cos(lat1) * math.sin(lat2) -
         math.sin(lat1) * math.cos(lat2) * math.cos(delta_lng))

    bearing = to_degrees(math.atan2(y, x))

    # Normalize to 0-360
    return (bearing + 360) % 360


def compass_name(degrees: float) -> str:
    """Eight-point compass name for a bearing, e.g. 350 -> N"""
    names: List[str] = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
    return names[int(((degrees % 360) + 22.5) // 45) % 8]


def format_duration(hours: float) -> str:
    """
    Format hours into human readable string.

    Example: 12.5 -> "12h 30m"
    """
    h = int(hours)
    m = int((hours - h) * 60)
    if h == 0:
        return f"{m}m"
    return f"{h}h {m}m"
