"""
Route Planner - Weather and risk along a user-planned route

- Annotates every waypoint with weather at its estimated arrival time
  (calls run concurrently on a bounded thread pool)
- Route statistics: distance, duration, fuel, cost and worst risk
- Wind grid sampling for map overlays, with cancellation when the
  visible region changes
"""

import logging
import math
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from config import WEATHER_CONFIG
from errors import ConfigurationError, PassageError
from models import BoatSettings, Coordinates, Route, RouteStats, WeatherSample, Waypoint
from navigation import distance_km, path_distance_km
from risk_classifier import classify_sample, worst_risk
from weather_fetcher import WeatherAcquisition

# Set up logging
logger = logging.getLogger(__name__)

MAX_GRID_POINTS = 400


def route_distance_km(route: Route) -> float:
    return path_distance_km(wp.coordinate for wp in route.sorted_waypoints)


def waypoint_etas(waypoints: List[Waypoint], departure_time: datetime,
                  settings: Optional[BoatSettings] = None) -> List[datetime]:
    """
    Estimated arrival time at each waypoint at the boat's average speed.

    Without settings every waypoint gets the departure time.
    """
    if settings is None or settings.avg_speed_kmh <= 0:
        return [departure_time for _ in waypoints]

    etas = []
    travelled_km = 0.0
    previous = None
    for waypoint in waypoints:
        if previous is not None:
            travelled_km += distance_km(previous.coordinate, waypoint.coordinate)
        etas.append(departure_time + timedelta(hours=travelled_km / settings.avg_speed_kmh))
        previous = waypoint
    return etas


def annotate_route(route: Route, acquisition: WeatherAcquisition,
                   departure_time: Optional[datetime] = None,
                   settings: Optional[BoatSettings] = None,
                   max_workers: int = WEATHER_CONFIG['max_batch_workers']) -> Route:
    """
    Fetch weather for every waypoint and classify its risk.

    A waypoint whose weather cannot be fetched keeps weather=None and gets
    RiskLevel.UNKNOWN; the rest of the route is still annotated.

    Args:
        route: Route to annotate (waypoints are updated in place)
        acquisition: Weather source
        departure_time: When the boat leaves (defaults to now, UTC)
        settings: Boat settings for per-waypoint arrival times
        max_workers: Concurrent weather requests

    Returns:
        The same route
    """
    waypoints = route.sorted_waypoints
    if not waypoints:
        return route

    departure_time = departure_time or datetime.now(timezone.utc)
    etas = waypoint_etas(waypoints, departure_time, settings)

    logger.info(f"  Fetching weather for {len(waypoints)} waypoints...")
    with ThreadPoolExecutor(max_workers=min(max_workers, len(waypoints))) as pool:
        futures = [
            pool.submit(acquisition.fetch_weather, wp.coordinate, eta)
            for wp, eta in zip(waypoints, etas)
        ]
        for waypoint, future in zip(waypoints, futures):
            try:
                waypoint.weather = future.result()
            except PassageError as e:
                logger.warning(f"  Warning: No weather for {waypoint.display_name}: {e}")
                waypoint.weather = None
            waypoint.risk_level = classify_sample(waypoint.weather)

    return route


def calculate_route_stats(route: Route, settings: BoatSettings) -> RouteStats:
    """
    Planning figures for a route.

    Duration comes from the average speed, fuel from the duration and
    fuel rate, cost from fuel and price.
    """
    total_km = route_distance_km(route)
    hours = total_km / settings.avg_speed_kmh if settings.avg_speed_kmh > 0 else 0.0
    fuel = hours * settings.fuel_rate_lph
    return RouteStats(
        total_distance_km=total_km,
        estimated_duration_s=hours * 3600,
        fuel_needed_l=fuel,
        fuel_cost=fuel * settings.fuel_price,
        waypoint_count=len(route.waypoints),
        max_risk_level=worst_risk(wp.risk_level for wp in route.waypoints),
    )


def estimated_arrival(route: Route, departure_time: datetime, settings: BoatSettings) -> datetime:
    stats = calculate_route_stats(route, settings)
    return departure_time + timedelta(seconds=stats.estimated_duration_s)


def exceeds_tank(stats: RouteStats, settings: BoatSettings) -> bool:
    return stats.fuel_needed_l > settings.tank_capacity_l


def grid_points(south: float, west: float, north: float, east: float, spacing_deg: float) -> List[Coordinates]:
    """
    Regular grid of points covering a bounding box, edges included.

    Raises:
        ConfigurationError: non-positive spacing, inverted box, or too many points
    """
    if not spacing_deg > 0:
        raise ConfigurationError(f"Grid spacing must be positive, got {spacing_deg}")
    if south > north or west > east:
        raise ConfigurationError("Bounding box is inverted")

    rows = int(math.floor((north - south) / spacing_deg + 1e-9)) + 1
    cols = int(math.floor((east - west) / spacing_deg + 1e-9)) + 1
    if rows * cols > MAX_GRID_POINTS:
        raise ConfigurationError(f"Grid of {rows * cols} points exceeds {MAX_GRID_POINTS}")

    return [
        Coordinates(lat=round(south + row * spacing_deg, 4), lng=round(west + col * spacing_deg, 4))
        for row in range(rows)
        for col in range(cols)
    ]


class WindGridSampler:
    """
    Fans wind-only fetches over a grid for map overlays.

    Starting a new sample (or calling cancel) supersedes the batch in
    flight: queued requests are cancelled, requests already running finish
    and fill the cache, and the superseded caller gets an empty list.
    """

    def __init__(self, acquisition: WeatherAcquisition,
                 max_workers: int = WEATHER_CONFIG['max_batch_workers']):
        self._acquisition = acquisition
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="wind-grid")
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: List[Future] = []

    def _supersede(self) -> int:
        with self._lock:
            self._generation += 1
            for future in self._pending:
                future.cancel()
            self._pending = []
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def sample(self, south: float, west: float, north: float, east: float,
               spacing_deg: float, target_time: Optional[datetime] = None) -> List[Tuple[Coordinates, WeatherSample]]:
        points = grid_points(south, west, north, east, spacing_deg)
        generation = self._supersede()
        target_time = target_time or datetime.now(timezone.utc)

        submitted = [(point, self._executor.submit(self._acquisition.fetch_wind_only, point, target_time))
                     for point in points]
        with self._lock:
            if generation == self._generation:
                self._pending = [future for _, future in submitted]
            else:
                for _, future in submitted:
                    future.cancel()

        results = []
        for point, future in submitted:
            try:
                results.append((point, future.result()))
            except CancelledError:
                break
            except PassageError as e:
                logger.warning(f"  Warning: Wind sample failed at ({point.lat}, {point.lng}): {e}")

        if not self._is_current(generation):
            logger.debug(f"Wind grid batch {generation} superseded")
            return []
        return results

    def cancel(self) -> None:
        self._supersede()

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False)

