"""
Safe Passage - Main Entry Point

Run with: python main.py

Demo that ties everything together:
1. Plans a short route around the Datça peninsula
2. Fetches real weather for each waypoint (Open-Meteo)
3. Classifies risk and prints route statistics
4. Ranks a few nearby coves by shelter from the current wind
"""

from datetime import datetime, timezone
import json
import logging

from config import LOGGING_CONFIG, load_boat_settings
from errors import PassageError
from lambda_function import shelter_to_dict, stats_to_dict, waypoint_to_dict
from models import Cove, Coordinates, Route
from route_planner import annotate_route, calculate_route_stats
from shelter_analyzer import analyze_coves
from weather_fetcher import WeatherAcquisition

# Set up logging
logging.basicConfig(level=LOGGING_CONFIG['level'], format=LOGGING_CONFIG['format'])
logger = logging.getLogger(__name__)


DEMO_COVES = [
    Cove(name="Palamutbükü", coordinate=Coordinates(lat=36.672, lng=27.503), mouth_direction=180),
    Cove(name="Kuruca Bükü", coordinate=Coordinates(lat=36.745, lng=27.618), mouth_direction=0),
    Cove(name="Bozburun", coordinate=Coordinates(lat=36.680, lng=28.044), mouth_direction=225),
    Cove(name="Serçe Limanı", coordinate=Coordinates(lat=36.580, lng=28.058), mouth_direction=135),
]


def build_demo_route() -> Route:
    route = Route(name="Datça - Bozburun")
    route.add_waypoint(Coordinates(lat=36.72, lng=27.69), "Datça")
    route.add_waypoint(Coordinates(lat=36.70, lng=27.90))
    route.add_waypoint(Coordinates(lat=36.66, lng=28.02), "Bozburun")
    return route


def main():
    logger.info("=== Safe Passage ===")
    settings = load_boat_settings()
    acquisition = WeatherAcquisition()
    departure = datetime.now(timezone.utc)

    route = build_demo_route()
    logger.info(f"[1] Assessing {route.name} ({len(route.waypoints)} waypoints)...")
    annotate_route(route, acquisition, departure, settings)
    stats = calculate_route_stats(route, settings)

    result = {
        "route": route.name,
        "waypoints": [waypoint_to_dict(wp) for wp in route.sorted_waypoints],
        "stats": stats_to_dict(stats),
    }

    logger.info("[2] Ranking coves by shelter...")
    try:
        wind = acquisition.fetch_wind_only(route.sorted_waypoints[0].coordinate, departure)
        ranked = analyze_coves(DEMO_COVES, wind.wind_direction, wind.wind_speed)
        result["coves"] = [shelter_to_dict(r) for r in ranked]
    except PassageError as e:
        logger.warning(f"  Warning: Could not rank coves: {e}")

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
