"""
Cove Finder - Anchorages in the visible map region from OpenStreetMap

Queries the Overpass API for bays, anchorages, harbours, marinas and
moorings, and works out which way each one opens (its "mouth"), which
is what the shelter analysis needs.

- Regions of 2 degrees or more return nothing (too many results)
- The box is grid-aligned to 0.2 degrees so nearby pans share a cache entry
"""

import logging
import math
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from coastal_fetch import is_in_sea
from config import OVERPASS_CONFIG
from errors import DecodingError
from geo_cache import GeoCache, aligned_bbox, bbox_key
from http_client import request_json
from models import Cove, Coordinates

# Set up logging
logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]

# (bearing, dlat, dlng) probed for nodes without geometry
PROBE_DIRECTIONS = [
    (0, 0.01, 0),
    (45, 0.01, 0.01),
    (90, 0, 0.01),
    (135, -0.01, 0.01),
    (180, -0.01, 0),
    (225, -0.01, -0.01),
    (270, 0, -0.01),
    (315, 0.01, -0.01),
]
PROBE_STEPS = 10
DEFAULT_MOUTH_DIRECTION = 180.0   # most coves on this coast open south
OPEN_WAY_TOLERANCE_DEG = 0.0001   # ~11 m


def build_query(south: float, west: float, north: float, east: float) -> str:
    bbox = f"{south:.4f},{west:.4f},{north:.4f},{east:.4f}"
    return f"""[out:json][timeout:15];
(
  node["natural"="bay"]({bbox});
  way["natural"="bay"]({bbox});
  node["seamark:type"="anchorage"]({bbox});
  way["seamark:type"="anchorage"]({bbox});
  node["seamark:type"="harbour"]({bbox});
  way["seamark:type"="harbour"]({bbox});
  node["leisure"="marina"]({bbox});
  way["leisure"="marina"]({bbox});
  node["seamark:type"="mooring"]({bbox});
);
out body geom;"""


def _planar_distance(a: LatLng, b: LatLng) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def _planar_bearing(origin: LatLng, target: LatLng) -> float:
    angle = math.degrees(math.atan2(target[1] - origin[1], target[0] - origin[0]))
    return angle + 360 if angle < 0 else angle


def _midpoint(a: LatLng, b: LatLng) -> LatLng:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


def mouth_direction_from_way(center: LatLng, nodes: List[LatLng]) -> float:
    """
    Mouth bearing of a cove drawn as a way.

    An open way (first and last nodes apart) is the shoreline with the gap
    between its ends as the mouth. A closed way is the water area itself;
    its longest edge is taken as the mouth.
    """
    first, last = nodes[0], nodes[-1]
    if _planar_distance(first, last) > OPEN_WAY_TOLERANCE_DEG:
        return _planar_bearing(center, _midpoint(first, last))

    longest = 0.0
    mouth = center
    for a, b in zip(nodes, nodes[1:]):
        length = _planar_distance(a, b)
        if length > longest:
            longest = length
            mouth = _midpoint(a, b)
    return _planar_bearing(center, mouth)


def estimate_mouth_direction(lat: float, lng: float) -> float:
    """Nearest of 8 compass directions that reaches open sea"""
    for step in range(1, PROBE_STEPS + 1):
        for bearing, dlat, dlng in PROBE_DIRECTIONS:
            if is_in_sea(lat + dlat * step, lng + dlng * step):
                return float(bearing)
    return DEFAULT_MOUTH_DIRECTION


def _element_name(tags: Dict[str, Any]) -> Optional[str]:
    for key in ('name', 'seamark:name', 'name:tr', 'name:en'):
        if tags.get(key):
            return str(tags[key])
    return None


def _way_nodes(element: Dict[str, Any]) -> List[LatLng]:
    nodes = []
    for node in element.get('geometry') or []:
        lat, lng = node.get('lat'), node.get('lon')
        if isinstance(lat, (int, float)) and isinstance(lng, (int, float)):
            nodes.append((float(lat), float(lng)))
    return nodes


def parse_coves(payload: Any) -> List[Cove]:
    """
    Turn an Overpass JSON response into coves.

    Raises:
        DecodingError: no 'elements' list in the payload
    """
    if not isinstance(payload, dict) or not isinstance(payload.get('elements'), list):
        raise DecodingError("Overpass response has no elements")

    coves = []
    seen = set()

    for element in payload['elements']:
        if not isinstance(element, dict):
            continue
        kind = element.get('type')
        tags = element.get('tags') or {}
        nodes: List[LatLng] = []

        if kind == 'node':
            lat, lng = element.get('lat'), element.get('lon')
            if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
                continue
        elif kind == 'way':
            nodes = _way_nodes(element)
            if not nodes:
                continue
            lat = sum(n[0] for n in nodes) / len(nodes)
            lng = sum(n[1] for n in nodes) / len(nodes)
        else:
            continue

        # Skip duplicates (same spot tagged twice)
        coord_key = f"{lat:.4f},{lng:.4f}"
        if coord_key in seen:
            continue
        seen.add(coord_key)

        name = _element_name(tags) or f"Cove ({lat:.3f}, {lng:.3f})"
        if len(nodes) >= 3:
            mouth = mouth_direction_from_way((lat, lng), nodes)
        else:
            mouth = estimate_mouth_direction(lat, lng)

        coves.append(Cove(name=name, coordinate=Coordinates(lat=lat, lng=lng), mouth_direction=mouth))

    return coves


class CoveFinder:
    """
    Cached Overpass client.

    Args:
        session: requests session (a new one by default)
        clock: Time source for cache freshness
        sleep: Called between retry attempts
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep):
        self._session = session or requests.Session()
        self._sleep = sleep
        self.cache: GeoCache[List[Cove]] = GeoCache(OVERPASS_CONFIG['cache_ttl_s'], clock)

    def fetch_coves(self, south: float, west: float, north: float, east: float) -> List[Cove]:
        """
        Coves inside (the grid-aligned expansion of) a bounding box.

        Returns:
            List of coves, empty when the region spans 2 degrees or more

        Raises:
            NetworkError / UpstreamError / DecodingError: Overpass failed
        """
        max_span = OVERPASS_CONFIG['max_span_deg']
        if north - south >= max_span or east - west >= max_span:
            logger.debug("Region too large for cove query")
            return []

        grid = OVERPASS_CONFIG['grid_deg']
        key = bbox_key(south, west, north, east, grid)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        query = build_query(*aligned_bbox(south, west, north, east, grid))
        payload = request_json(
            self._session, "POST", OVERPASS_CONFIG['api_url'],
            data={'data': query},
            timeout=OVERPASS_CONFIG['timeout_s'],
            sleep=self._sleep,
            label="Overpass API",
        )
        coves = parse_coves(payload)
        logger.info(f"Found {len(coves)} coves in {key}")

        self.cache.put(key, coves)
        return coves
