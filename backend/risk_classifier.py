"""
Risk Classifier - Turns wind and wave numbers into a hazard level

- Waypoint risk from wind speed (km/h) and wave height (m)
- Route risk as the worst waypoint risk
"""

import logging
from typing import Iterable, List, Optional

from config import RISK_CONFIG
from models import RiskLevel, WeatherSample

# Set up logging
logger = logging.getLogger(__name__)


def classify_risk(wind_speed: Optional[float], wave_height: Optional[float]) -> RiskLevel:
    """
    Classify hazard for a single point.

    Args:
        wind_speed: Sustained wind in km/h, None if unknown
        wave_height: Wave height in meters, None counts as flat water

    Returns:
        RED if wind >= 30 or wave > 1.5, YELLOW if wind >= 15 or wave >= 0.5,
        GREEN otherwise. UNKNOWN when wind speed is missing.
    """
    if wind_speed is None:
        return RiskLevel.UNKNOWN

    wave = wave_height if wave_height is not None else 0.0

    if wind_speed >= RISK_CONFIG['wind_red_kmh'] or wave > RISK_CONFIG['wave_red_m']:
        return RiskLevel.RED
    if wind_speed >= RISK_CONFIG['wind_yellow_kmh'] or wave >= RISK_CONFIG['wave_yellow_m']:
        return RiskLevel.YELLOW
    return RiskLevel.GREEN


def classify_sample(sample: Optional[WeatherSample]) -> RiskLevel:
    if sample is None:
        return RiskLevel.UNKNOWN
    return classify_risk(sample.wind_speed, sample.wave_height)


def worst_risk(levels: Iterable[RiskLevel]) -> RiskLevel:
    """
    Most severe level along a route.

    Unknown is never read as safe: if the worst known level is green (or
    nothing is known) and any waypoint is unknown, the route is unknown.
    """
    all_levels: List[RiskLevel] = list(levels)
    known = [level for level in all_levels if level is not RiskLevel.UNKNOWN]
    if not known:
        return RiskLevel.UNKNOWN

    worst = max(known, key=lambda level: level.severity)
    if worst is RiskLevel.GREEN and len(known) < len(all_levels):
        return RiskLevel.UNKNOWN
    return worst


def summarize_risk(levels: Iterable[RiskLevel]) -> dict:
    """Count of waypoints per risk level, keyed by level value"""
    summary = {level.value: 0 for level in RiskLevel}
    for level in levels:
        summary[level.value] += 1
    return summary
