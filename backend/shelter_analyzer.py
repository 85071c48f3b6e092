"""
Shelter Analyzer - Rates how well a cove is protected from the wind

A cove is best when its mouth faces away from the wind: wind from the
north (0) into a cove opening south (180) leaves the anchorage in the lee.
"""

import logging
from typing import Iterable, List

from config import SHELTER_CONFIG
from models import Cove, CoveShelterResult, ShelterLevel

# Set up logging
logger = logging.getLogger(__name__)


def mouth_wind_angle(mouth_direction: float, wind_direction: float) -> float:
    """(mouth - wind) mod 360, in [0, 360)"""
    return (mouth_direction - wind_direction) % 360


def classify_shelter(mouth_direction: float, wind_direction: float, wind_speed: float) -> ShelterLevel:
    """
    Shelter level of a cove for the given wind.

    Args:
        mouth_direction: Bearing the cove opens toward (degrees)
        wind_direction: Bearing the wind blows FROM (degrees)
        wind_speed: km/h

    Returns:
        EXCELLENT for calm wind (< 5 km/h) or an angle in [150, 210],
        GOOD in [90, 150) or (210, 270], MODERATE in [45, 90) or (270, 315],
        POOR otherwise
    """
    if wind_speed < SHELTER_CONFIG['calm_wind_kmh']:
        return ShelterLevel.EXCELLENT

    angle = mouth_wind_angle(mouth_direction, wind_direction)

    if 150 <= angle <= 210:
        return ShelterLevel.EXCELLENT
    if 90 <= angle < 150 or 210 < angle <= 270:
        return ShelterLevel.GOOD
    if 45 <= angle < 90 or 270 < angle <= 315:
        return ShelterLevel.MODERATE
    return ShelterLevel.POOR


def analyze_coves(coves: Iterable[Cove], wind_direction: float, wind_speed: float) -> List[CoveShelterResult]:
    """Rate every cove and sort best shelter first (stable within a level)"""
    results = [
        CoveShelterResult(
            cove=cove,
            shelter_level=classify_shelter(cove.mouth_direction, wind_direction, wind_speed),
            wind_direction=wind_direction,
            wind_speed=wind_speed,
        )
        for cove in coves
    ]
    results.sort(key=lambda result: result.shelter_level.sort_order)
    logger.debug(f"Analyzed {len(results)} coves for wind {wind_direction:.0f} at {wind_speed:.1f} km/h")
    return results
