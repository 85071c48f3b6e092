"""
Type definitions for Safe Passage
Using Python dataclasses for clean, typed data structures
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Set


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RiskLevel(Enum):
    """Hazard level of a waypoint or a whole route"""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        """Display order: unknown < green < yellow < red"""
        return _RISK_SEVERITY[self]

    @property
    def label(self) -> str:
        return _RISK_LABELS[self]


_RISK_SEVERITY = {
    RiskLevel.UNKNOWN: 0,
    RiskLevel.GREEN: 1,
    RiskLevel.YELLOW: 2,
    RiskLevel.RED: 3,
}

_RISK_LABELS = {
    RiskLevel.UNKNOWN: "Unknown",
    RiskLevel.GREEN: "Safe",
    RiskLevel.YELLOW: "Caution",
    RiskLevel.RED: "Dangerous",
}


class ShelterLevel(Enum):
    """How well a cove is protected from the current wind"""
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"

    @property
    def sort_order(self) -> int:
        return _SHELTER_ORDER[self]


_SHELTER_ORDER = {
    ShelterLevel.EXCELLENT: 0,
    ShelterLevel.GOOD: 1,
    ShelterLevel.MODERATE: 2,
    ShelterLevel.POOR: 3,
}


@dataclass(frozen=True)
class Coordinates:
    """A point on Earth (latitude/longitude)"""
    lat: float  # Latitude (-90 to 90)
    lng: float  # Longitude (-180 to 180)

    @property
    def is_valid(self) -> bool:
        return (
            math.isfinite(self.lat) and math.isfinite(self.lng)
            and -90 <= self.lat <= 90 and -180 <= self.lng <= 180
        )


@dataclass(frozen=True)
class WeatherSample:
    """
    Weather conditions at a specific point and hour.

    Wave fields are None in a wind-only sample. fetch_distance_km is None
    when the fetch model was skipped (calm wind or wind-only sample).
    """
    wind_speed: float                           # km/h
    wind_direction: float                       # degrees (0-360, where wind comes FROM)
    wind_gusts: float                           # km/h
    temperature: float                          # celsius
    wave_height: Optional[float] = None         # meters, fetch-adjusted
    wave_direction: Optional[float] = None      # degrees
    wave_period: Optional[float] = None         # seconds
    fetch_distance_km: Optional[float] = None   # open water upwind, km

    @property
    def is_wind_only(self) -> bool:
        return self.wave_height is None


@dataclass(frozen=True)
class Cove:
    """An anchorage with the compass bearing its mouth opens toward"""
    name: str
    coordinate: Coordinates
    mouth_direction: float  # degrees


@dataclass(frozen=True)
class CoveShelterResult:
    """A cove rated against the current wind"""
    cove: Cove
    shelter_level: ShelterLevel
    wind_direction: float
    wind_speed: float


@dataclass(frozen=True)
class TrackedPosition:
    """A single GPS fix from the device"""
    coordinate: Coordinates
    timestamp: datetime               # UTC
    speed_kmh: float = 0.0            # negative when the device has no speed
    horizontal_accuracy_m: float = 0.0


@dataclass
class Waypoint:
    """A point on a planned route, optionally annotated with weather and risk"""
    coordinate: Coordinates
    order_index: int = 0
    name: Optional[str] = None
    weather: Optional[WeatherSample] = None
    risk_level: RiskLevel = RiskLevel.UNKNOWN
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def display_name(self) -> str:
        return self.name or f"Waypoint {self.order_index + 1}"


@dataclass
class Route:
    """A user-planned route: an ordered list of waypoints"""
    name: str
    waypoints: List[Waypoint] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def sorted_waypoints(self) -> List[Waypoint]:
        return sorted(self.waypoints, key=lambda wp: wp.order_index)

    def add_waypoint(self, coordinate: Coordinates, name: Optional[str] = None) -> Waypoint:
        """Append a waypoint at the end, named "Point N" unless a name is given"""
        index = len(self.waypoints)
        waypoint = Waypoint(coordinate=coordinate, order_index=index, name=name or f"Point {index + 1}")
        self.waypoints.append(waypoint)
        self.updated_at = _utcnow()
        return waypoint

    def remove_waypoint(self, waypoint_id: str) -> None:
        self.waypoints = [wp for wp in self.sorted_waypoints if wp.id != waypoint_id]
        self._renumber()

    def move_waypoint(self, from_index: int, to_index: int) -> None:
        ordered = self.sorted_waypoints
        waypoint = ordered.pop(from_index)
        ordered.insert(to_index, waypoint)
        self.waypoints = ordered
        self._renumber()

    def _renumber(self) -> None:
        # Default names follow the position; user-given names are kept
        for index, waypoint in enumerate(self.waypoints):
            if waypoint.name is None or _is_default_point_name(waypoint.name):
                waypoint.name = f"Point {index + 1}"
            waypoint.order_index = index
        self.updated_at = _utcnow()


def _is_default_point_name(name: str) -> bool:
    prefix, _, number = name.partition(" ")
    return prefix == "Point" and number.isdigit()


@dataclass
class BoatSettings:
    """Vessel figures used for ETA and fuel estimates"""
    boat_name: str = "My Boat"
    boat_type: str = "motorboat"
    avg_speed_kmh: float = 15.0     # km/h
    fuel_rate_lph: float = 20.0     # litres per hour
    tank_capacity_l: float = 200.0  # litres
    fuel_price: float = 45.0        # per litre


@dataclass
class RouteStats:
    """Planning figures for a route"""
    total_distance_km: float
    estimated_duration_s: float
    fuel_needed_l: float
    fuel_cost: float
    waypoint_count: int
    max_risk_level: RiskLevel


@dataclass
class TripAccumulator:
    """Running totals for the trip in progress"""
    start_time: datetime
    total_distance_km: float = 0.0
    max_speed_kmh: float = 0.0
    last_accepted_position: Optional[TrackedPosition] = None
    positions: List[TrackedPosition] = field(default_factory=list)
    paused: bool = False


@dataclass
class WaypointProgress:
    """Which waypoint the vessel is heading for, and which were announced"""
    waypoints: List[Waypoint] = field(default_factory=list)
    current_index: int = 0
    notified_ids: Set[str] = field(default_factory=set)
    arrived: bool = False

    @property
    def target(self) -> Optional[Waypoint]:
        if self.arrived or self.current_index >= len(self.waypoints):
            return None
        return self.waypoints[self.current_index]


@dataclass
class TripStats:
    """Live figures for the trip in progress"""
    distance_km: float
    duration_s: float
    current_speed_kmh: float
    max_speed_kmh: float
    avg_speed_kmh: float
    fix_count: int
    paused: bool = False


@dataclass
class TripSummary:
    """A finished trip"""
    start_time: datetime
    end_time: datetime
    duration_s: float
    distance_km: float
    avg_speed_kmh: float
    max_speed_kmh: float
    positions: List[TrackedPosition] = field(default_factory=list)
    fuel_used_l: float = 0.0
    fuel_cost: float = 0.0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class TotalTripStats:
    """Totals over every stored trip"""
    trip_count: int = 0
    total_distance_km: float = 0.0
    total_duration_s: float = 0.0
    total_fuel_l: float = 0.0
    total_cost: float = 0.0
