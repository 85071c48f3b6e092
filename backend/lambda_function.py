"""
AWS Lambda Handler for Safe Passage

Lambda calls lambda_handler() with the request data. Routes:
- POST /assess-route: weather and risk for every waypoint plus route stats
- POST /shelter: coves ranked by shelter from the current wind
- POST /wind-grid: wind over a regular grid for map overlays
- GET  /health

Weather and cove caches live at module level so warm invocations reuse them.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import boat_settings_from_dict
from cove_finder import CoveFinder
from errors import ConfigurationError, DecodingError, NetworkError, NotReady, PassageError
from models import Cove, Coordinates, CoveShelterResult, Route, RouteStats, Waypoint
from navigation import compass_name, format_duration
from risk_classifier import summarize_risk
from route_planner import (
    WindGridSampler, annotate_route, calculate_route_stats, estimated_arrival, exceeds_tank,
)
from shelter_analyzer import analyze_coves
from weather_fetcher import WeatherAcquisition, sample_to_dict

logger = logging.getLogger(__name__)

# CORS headers - needed for browser requests
HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS"
}

_acquisition: Optional[WeatherAcquisition] = None
_cove_finder: Optional[CoveFinder] = None
_wind_sampler: Optional[WindGridSampler] = None


def get_acquisition() -> WeatherAcquisition:
    global _acquisition
    if _acquisition is None:
        _acquisition = WeatherAcquisition()
    return _acquisition


def get_cove_finder() -> CoveFinder:
    global _cove_finder
    if _cove_finder is None:
        _cove_finder = CoveFinder()
    return _cove_finder


def get_wind_sampler() -> WindGridSampler:
    global _wind_sampler
    if _wind_sampler is None:
        _wind_sampler = WindGridSampler(get_acquisition())
    return _wind_sampler


# ----------------------------------------------------------------------
# Request parsing
# ----------------------------------------------------------------------

def parse_coordinates(data: Any, field: str = "position") -> Coordinates:
    try:
        coordinate = Coordinates(lat=float(data["lat"]), lng=float(data["lng"]))
    except (KeyError, TypeError, ValueError):
        raise ConfigurationError(f"{field} needs numeric lat and lng")
    if not coordinate.is_valid:
        raise ConfigurationError(f"{field} is out of range: {coordinate.lat}, {coordinate.lng}")
    return coordinate


def parse_time(value: Optional[str]) -> datetime:
    """ISO 8601 time; 'Z' suffix accepted, naive times read as UTC"""
    if not value:
        return datetime.now(timezone.utc)
    try:
        moment = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ConfigurationError(f"Invalid time: {value}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def parse_route(body: Dict[str, Any]) -> Route:
    raw_waypoints = body.get("waypoints")
    if not isinstance(raw_waypoints, list) or not raw_waypoints:
        raise ConfigurationError("waypoints must be a non-empty list")

    route = Route(name=str(body.get("name") or "Route"))
    for index, raw in enumerate(raw_waypoints):
        coordinate = parse_coordinates(raw, f"waypoints[{index}]")
        name = raw.get("name") if isinstance(raw, dict) else None
        route.add_waypoint(coordinate, name)
    return route


def parse_bbox(data: Any) -> List[float]:
    """South, west, north and east edges"""
    try:
        return [float(data[k]) for k in ("south", "west", "north", "east")]
    except (KeyError, TypeError, ValueError):
        raise ConfigurationError("bbox needs numeric south, west, north and east")


def parse_cove(data: Any, index: int) -> Cove:
    coordinate = parse_coordinates(data, f"coves[{index}]")
    try:
        mouth = float(data["mouth_direction"])
    except (KeyError, TypeError, ValueError):
        raise ConfigurationError(f"coves[{index}] needs a numeric mouth_direction")
    return Cove(name=str(data.get("name") or f"Cove {index + 1}"), coordinate=coordinate, mouth_direction=mouth)


# ----------------------------------------------------------------------
# Response building
# ----------------------------------------------------------------------

def waypoint_to_dict(waypoint: Waypoint) -> dict:
    """Convert Waypoint object to dictionary for JSON response."""
    return {
        "id": waypoint.id,
        "name": waypoint.display_name,
        "order": waypoint.order_index,
        "position": {"lat": waypoint.coordinate.lat, "lng": waypoint.coordinate.lng},
        "riskLevel": waypoint.risk_level.value,
        "riskLabel": waypoint.risk_level.label,
        "weather": sample_to_dict(waypoint.weather),
    }


def stats_to_dict(stats: RouteStats) -> dict:
    hours = stats.estimated_duration_s / 3600
    return {
        "totalDistanceKm": round(stats.total_distance_km, 2),
        "estimatedDurationS": round(stats.estimated_duration_s),
        "estimatedTime": format_duration(hours),
        "fuelNeededL": round(stats.fuel_needed_l, 1),
        "fuelCost": round(stats.fuel_cost, 2),
        "waypointCount": stats.waypoint_count,
        "maxRiskLevel": stats.max_risk_level.value,
    }


def shelter_to_dict(result: CoveShelterResult) -> dict:
    return {
        "name": result.cove.name,
        "position": {"lat": result.cove.coordinate.lat, "lng": result.cove.coordinate.lng},
        "mouthDirection": round(result.cove.mouth_direction),
        "shelterLevel": result.shelter_level.value,
    }


# ----------------------------------------------------------------------
# Operations
# ----------------------------------------------------------------------

def assess_route(body: Dict[str, Any], acquisition: WeatherAcquisition) -> dict:
    route = parse_route(body)
    departure = parse_time(body.get("departure_time"))
    settings = boat_settings_from_dict(body.get("settings") or {})

    annotate_route(route, acquisition, departure, settings)
    stats = calculate_route_stats(route, settings)

    return {
        "waypoints": [waypoint_to_dict(wp) for wp in route.sorted_waypoints],
        "stats": stats_to_dict(stats),
        "riskSummary": summarize_risk(wp.risk_level for wp in route.waypoints),
        "estimatedArrival": estimated_arrival(route, departure, settings).isoformat(),
        "exceedsTank": exceeds_tank(stats, settings),
        "calculatedAt": datetime.now(timezone.utc).isoformat(),
    }


def rank_shelter(body: Dict[str, Any], acquisition: WeatherAcquisition,
                 cove_finder: Optional[CoveFinder] = None) -> dict:
    """
    Coves come from the body ("coves") or from an Overpass lookup ("bbox").
    Wind comes from the body ("wind") or is fetched at "position".
    """
    if body.get("coves") is not None:
        if not isinstance(body["coves"], list):
            raise ConfigurationError("coves must be a list")
        coves: List[Cove] = [parse_cove(raw, i) for i, raw in enumerate(body["coves"])]
    elif isinstance(body.get("bbox"), dict):
        coves = (cove_finder or get_cove_finder()).fetch_coves(*parse_bbox(body["bbox"]))
    else:
        raise ConfigurationError("Provide coves or bbox")

    wind = body.get("wind")
    if isinstance(wind, dict):
        try:
            wind_direction = float(wind["direction"])
            wind_speed = float(wind["speed"])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError("wind needs numeric direction and speed")
    elif body.get("position") is not None:
        sample = acquisition.fetch_wind_only(parse_coordinates(body["position"]), parse_time(body.get("time")))
        wind_direction, wind_speed = sample.wind_direction, sample.wind_speed
    else:
        raise ConfigurationError("Provide wind or position")

    results = analyze_coves(coves, wind_direction, wind_speed)
    return {
        "wind": {"direction": wind_direction, "speed": wind_speed, "from": compass_name(wind_direction)},
        "coves": [shelter_to_dict(r) for r in results],
    }


def wind_grid(body: Dict[str, Any], sampler: WindGridSampler) -> dict:
    """Wind at every grid point of "bbox"; points whose fetch failed are left out"""
    edges = parse_bbox(body.get("bbox"))
    try:
        spacing = float(body.get("spacing_deg", 0.1))
    except (TypeError, ValueError):
        raise ConfigurationError("spacing_deg must be a number")

    samples = sampler.sample(*edges, spacing, parse_time(body.get("time")))
    return {
        "spacingDeg": spacing,
        "points": [
            {
                "position": {"lat": point.lat, "lng": point.lng},
                "windSpeed": sample.wind_speed,
                "windDirection": sample.wind_direction,
                "windGusts": sample.wind_gusts,
                "from": compass_name(sample.wind_direction),
            }
            for point, sample in samples
        ],
    }


def error_status(error: Exception) -> int:
    """HTTP status for an error raised by an operation"""
    if isinstance(error, (ConfigurationError, ValueError)):
        return 400
    if isinstance(error, NotReady):
        return 409
    if isinstance(error, (NetworkError, DecodingError)):
        return 502
    if isinstance(error, PassageError):
        return 400
    return 500


def _response(status: int, body: Any) -> dict:
    return {
        "statusCode": status,
        "headers": HEADERS,
        "body": json.dumps(body) if body != "" else ""
    }


def lambda_handler(event, context):
    """
    AWS Lambda entry point.

    Args:
        event: API Gateway request (contains body with JSON)
        context: Lambda context (runtime info, we don't use it)

    Returns:
        API Gateway response format
    """
    # HTTP API v2 uses requestContext.http, REST API v1 uses httpMethod/path
    http = event.get("requestContext", {}).get("http", {})
    http_method = http.get("method") or event.get("httpMethod") or "POST"
    path = event.get("rawPath") or http.get("path") or event.get("path") or "/assess-route"

    # Handle CORS preflight request
    if http_method == "OPTIONS":
        return _response(200, "")

    if path.endswith("/health"):
        return _response(200, {"status": "ok"})

    try:
        # API Gateway sends body as string, we need to parse it
        if isinstance(event.get("body"), str):
            body = json.loads(event["body"])
        else:
            body = event.get("body") or {}
        if not isinstance(body, dict):
            raise ConfigurationError("Request body must be a JSON object")

        if path.endswith("/assess-route"):
            result = assess_route(body, get_acquisition())
        elif path.endswith("/shelter"):
            result = rank_shelter(body, get_acquisition())
        elif path.endswith("/wind-grid"):
            result = wind_grid(body, get_wind_sampler())
        else:
            return _response(404, {"error": f"Unknown path: {path}"})

        return _response(200, result)

    except (PassageError, ValueError) as e:
        status = error_status(e)
        logger.warning(f"Request to {path} failed ({status}): {e}")
        return _response(status, {"error": str(e)})
    except Exception:
        logger.exception(f"Unhandled error on {path}")  # This goes to CloudWatch logs
        return _response(500, {"error": "Internal server error"})
