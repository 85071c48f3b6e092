"""
Coastal Fetch - Open-water distance upwind of a point and wave dampening

"Fetch" is the stretch of open water the wind travels over. Short fetch
means the sea has no room to build waves, so forecast wave heights near
a sheltering coast are scaled down.

Land detection here is a coarse regional heuristic for the Turkish coast:
- named sea-area bounding boxes, with land-exclusion boxes carved out
- a bundled list of coastline points; water within 1.5 km of one counts as land

No polygon geometry is involved and no external API calls are made.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

from models import Coordinates
from navigation import distance_m

# Set up logging
logger = logging.getLogger(__name__)


FETCH_STEP_KM = 0.5
FETCH_STEP_DEG = 0.0045     # 0.5 km in degrees of latitude
MAX_FETCH_KM = 100.0        # open sea
COASTLINE_THRESHOLD_M = 1500.0

# (fetch below km, factor)
FETCH_FACTORS: List[Tuple[float, float]] = [
    (3, 0.1),     # very short fetch, almost flat
    (5, 0.2),
    (10, 0.35),
    (20, 0.5),
    (50, 0.7),
]


@dataclass(frozen=True)
class SeaArea:
    """A named lat/lng bounding box"""
    name: str
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


REGION_BOUNDS = SeaArea("Region", 35.8, 42.1, 25.6, 44.8)

SEA_AREAS: List[SeaArea] = [
    SeaArea("Marmara", 40.3, 41.1, 26.5, 29.9),
    SeaArea("Aegean", 36.5, 40.3, 25.5, 27.5),
    SeaArea("Black Sea", 41.0, 43.0, 28.0, 41.5),
    SeaArea("Mediterranean", 35.5, 37.0, 27.5, 36.5),
    SeaArea("Bosphorus", 40.9, 41.3, 28.9, 29.2),
]

LAND_EXCLUSIONS: List[SeaArea] = [
    SeaArea("Thrace", 40.85, 42.0, 26.5, 28.0),
    SeaArea("Anatolia", 39.8, 40.55, 28.5, 30.5),
    SeaArea("Kapidag", 40.35, 40.55, 27.8, 28.3),
]

# Coastline points as (lng, lat)
COASTLINE_SEGMENTS = {
    'datca_north': [
        (27.70, 36.75), (27.75, 36.76), (27.80, 36.77), (27.85, 36.78),
        (27.90, 36.78), (27.95, 36.77), (28.00, 36.76), (28.05, 36.75),
        (28.10, 36.74), (28.15, 36.73), (28.20, 36.72), (28.25, 36.72),
        (28.30, 36.71), (28.35, 36.71), (28.40, 36.71), (28.45, 36.71),
        (28.50, 36.72), (28.55, 36.72), (28.60, 36.73), (28.65, 36.74),
        (28.70, 36.75), (28.75, 36.76),
    ],
    'datca_south': [
        (27.70, 36.70), (27.75, 36.69), (27.80, 36.68), (27.85, 36.68),
        (27.90, 36.67), (27.95, 36.67), (28.00, 36.67), (28.05, 36.67),
        (28.10, 36.68), (28.15, 36.68), (28.20, 36.69), (28.25, 36.69),
        (28.30, 36.69), (28.35, 36.69), (28.40, 36.70), (28.45, 36.70),
        (28.50, 36.70), (28.55, 36.70), (28.60, 36.71),
    ],
    'knidos': [
        (28.70, 36.69), (28.72, 36.68), (28.75, 36.68),
    ],
    'bozburun': [
        (28.00, 36.65), (28.05, 36.62), (28.10, 36.60), (28.15, 36.58),
        (28.20, 36.60), (28.25, 36.62), (28.30, 36.65),
    ],
    'marmaris': [
        (28.30, 36.78), (28.35, 36.80), (28.40, 36.82), (28.45, 36.84),
        (28.50, 36.85), (28.55, 36.84), (28.60, 36.82), (28.65, 36.80),
    ],
    'symi': [
        (27.80, 36.60), (27.82, 36.58), (27.85, 36.56), (27.87, 36.55),
        (27.88, 36.58), (27.86, 36.61), (27.83, 36.62),
    ],
    'kos': [
        (27.00, 36.85), (27.05, 36.87), (27.10, 36.88), (27.15, 36.88),
        (27.20, 36.87), (27.25, 36.86),
    ],
    'bodrum': [
        (27.20, 37.05), (27.25, 37.03), (27.30, 37.00), (27.35, 36.98),
        (27.40, 36.95), (27.42, 36.92), (27.40, 36.88), (27.35, 36.85),
        (27.30, 36.83), (27.25, 36.82), (27.20, 36.83), (27.15, 36.85),
        (27.12, 36.88), (27.10, 36.92), (27.12, 36.96), (27.15, 37.00),
    ],
    'gokova_north': [
        (27.50, 37.05), (27.55, 37.06), (27.60, 37.07), (27.65, 37.08),
        (27.70, 37.08), (27.75, 37.08), (27.80, 37.07), (27.85, 37.06),
        (27.90, 37.04), (27.95, 37.02), (28.00, 37.00), (28.05, 36.98),
        (28.10, 36.95), (28.15, 36.92), (28.20, 36.88), (28.25, 36.85),
    ],
    'fethiye': [
        (29.00, 36.65), (29.05, 36.62), (29.10, 36.58), (29.12, 36.55),
        (29.10, 36.52), (29.05, 36.50), (29.00, 36.48),
    ],
    'kas': [
        (29.60, 36.20), (29.65, 36.18), (29.70, 36.15), (29.75, 36.12),
        (29.80, 36.10), (29.85, 36.12), (29.90, 36.15),
    ],
    'meis': [
        (29.58, 36.14), (29.60, 36.12), (29.62, 36.10), (29.58, 36.08),
        (29.55, 36.10), (29.55, 36.13),
    ],
}

COASTLINE_POINTS: List[Coordinates] = [
    Coordinates(lat=lat, lng=lng)
    for segment in COASTLINE_SEGMENTS.values()
    for lng, lat in segment
]


def is_in_sea(lat: float, lng: float) -> bool:
    """True if the point is inside a sea area and outside every land exclusion"""
    if not any(area.contains(lat, lng) for area in SEA_AREAS):
        return False
    return not any(land.contains(lat, lng) for land in LAND_EXCLUSIONS)


def is_near_coastline(lat: float, lng: float, threshold_m: float = COASTLINE_THRESHOLD_M) -> bool:
    point = Coordinates(lat=lat, lng=lng)
    return any(distance_m(point, coast) <= threshold_m for coast in COASTLINE_POINTS)


def is_point_on_land(lat: float, lng: float) -> bool:
    """
    Coarse land test for the Turkish coast.

    Outside the regional bounds everything is open water. Inside them, a
    point that is not in a sea area (or is in a land exclusion) is land, and
    a sea point is land only when it lies close to a coastline point.
    """
    if not REGION_BOUNDS.contains(lat, lng):
        return False
    if not is_in_sea(lat, lng):
        return True
    return is_near_coastline(lat, lng)


def march_bearing(wind_direction: float) -> float:
    """Bearing the fetch march follows for a wind blowing from wind_direction"""
    return (wind_direction + 180) % 360


def calculate_fetch(point: Coordinates, wind_direction: float) -> float:
    """
    Distance in km from point to the first land step along wind_direction + 180.

    Steps are 0.5 km (0.0045 degrees of latitude, longitude scaled by
    1/cos(latitude)). Returns MAX_FETCH_KM if no land is met within range.

    Args:
        point: Where the vessel is
        wind_direction: Degrees the wind blows FROM

    Returns:
        Fetch distance in km (0.5 to 100)
    """
    direction_rad = math.radians(march_bearing(wind_direction))
    lat = point.lat
    lng = point.lng
    distance = 0.0

    while distance < MAX_FETCH_KM:
        lat_step = math.cos(direction_rad) * FETCH_STEP_DEG
        lng_step = math.sin(direction_rad) * FETCH_STEP_DEG / math.cos(math.radians(lat))
        lat += lat_step
        lng += lng_step
        distance += FETCH_STEP_KM

        if is_point_on_land(lat, lng):
            logger.debug(f"Fetch from ({point.lat:.3f}, {point.lng:.3f}) wind {wind_direction:.0f}: {distance} km")
            return distance

    return MAX_FETCH_KM


def wave_adjustment_factor(fetch_km: float) -> float:
    """Step factor for a fetch distance, 1.0 for open sea"""
    for max_km, factor in FETCH_FACTORS:
        if fetch_km < max_km:
            return factor
    return 1.0


def adjust_wave_height(wave_height: float, fetch_km: float) -> float:
    """Scale a forecast wave height down for short fetch"""
    return wave_height * wave_adjustment_factor(fetch_km)
