"""
Position Tracker - Filters GPS fixes and keeps trip statistics

Every raw fix goes through accept_fix:
- fixes with poor (> 50 m) or invalid accuracy are dropped
- while a trip is recording, a fix more than 1 km from the last track fix is
  a GPS jump and dropped; after several jumps in a row the track restarts
  at the new position

While a trip is recording, accepted fixes also extend the track, add to the
distance, raise the max speed and are checked against the next waypoint.
Outside a trip (or while it is paused) every fix with usable accuracy is
accepted, so the anchor alarm keeps getting positions.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional

from config import GPS_CONFIG
from errors import NotReady
from models import (
    BoatSettings, TotalTripStats, TrackedPosition, TripAccumulator, TripStats,
    TripSummary, Waypoint, WaypointProgress,
)
from navigation import calculate_bearing, distance_km, distance_m
from notifications import NotificationSink
from storage import Repository

# Set up logging
logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def has_usable_accuracy(position: TrackedPosition, threshold_m: float) -> bool:
    accuracy = position.horizontal_accuracy_m
    return (
        math.isfinite(position.coordinate.lat)
        and math.isfinite(position.coordinate.lng)
        and math.isfinite(accuracy)
        and 0 <= accuracy <= threshold_m
    )


def fuel_figures(duration_s: float, settings: Optional[BoatSettings]) -> Dict[str, float]:
    """Fuel used (L) and its cost for a running time, zero without settings"""
    if settings is None:
        return {'fuel_used_l': 0.0, 'fuel_cost': 0.0}
    fuel = duration_s / 3600 * settings.fuel_rate_lph
    return {'fuel_used_l': fuel, 'fuel_cost': fuel * settings.fuel_price}


def total_trip_stats(trips: Repository) -> TotalTripStats:
    """Trip count plus distance, duration, fuel and cost summed over stored trips"""
    summaries = trips.all()
    return TotalTripStats(
        trip_count=len(summaries),
        total_distance_km=sum(s.distance_km for s in summaries),
        total_duration_s=sum(s.duration_s for s in summaries),
        total_fuel_l=sum(s.fuel_used_l for s in summaries),
        total_cost=sum(s.fuel_cost for s in summaries),
    )


class PositionTracker:
    """
    GPS filter, trip accumulator and waypoint arrival check for one vessel.

    Args:
        sink: Receives waypoint arrival notifications
        clock: Returns the current UTC time
        config: Overrides for GPS_CONFIG keys
    """

    def __init__(self, sink: NotificationSink, clock: Callable[[], datetime] = _utcnow,
                 config: Optional[dict] = None):
        self._sink = sink
        self._clock = clock
        self.config = dict(GPS_CONFIG, **(config or {}))

        self.last_accepted_position: Optional[TrackedPosition] = None
        self.current_speed_kmh = 0.0
        self.trip: Optional[TripAccumulator] = None
        self.progress: Optional[WaypointProgress] = None
        self._consecutive_jumps = 0

    @property
    def is_trip_active(self) -> bool:
        return self.trip is not None

    @property
    def is_recording(self) -> bool:
        return self.trip is not None and not self.trip.paused

    def accept_fix(self, position: TrackedPosition) -> bool:
        """
        Run one fix through the filter.

        Returns:
            True if the fix was accepted
        """
        if position is None or not has_usable_accuracy(position, self.config['accuracy_threshold_m']):
            logger.debug("GPS fix rejected: accuracy")
            return False

        previous = self.trip.last_accepted_position if self.is_recording else None
        if previous is not None:
            jump = distance_m(previous.coordinate, position.coordinate)
            if jump > self.config['jump_threshold_m']:
                self._consecutive_jumps += 1
                if self._consecutive_jumps < self.config['jump_reseed_count']:
                    logger.warning(f"  Warning: GPS jump filtered: {jump:.0f}m")
                    return False
                logger.warning(f"  Warning: {self._consecutive_jumps} GPS jumps in a row, "
                               f"restarting track at ({position.coordinate.lat:.4f}, {position.coordinate.lng:.4f})")
                # New leg: the gap is not added to the distance
                self.trip.last_accepted_position = None
        self._consecutive_jumps = 0

        self.last_accepted_position = position
        self.current_speed_kmh = max(0.0, position.speed_kmh)

        if self.is_recording:
            self._record(position)
        return True

    def _record(self, position: TrackedPosition) -> None:
        trip = self.trip
        if trip.last_accepted_position is not None:
            trip.total_distance_km += distance_km(trip.last_accepted_position.coordinate, position.coordinate)
        trip.last_accepted_position = position
        trip.positions.append(position)
        trip.max_speed_kmh = max(trip.max_speed_kmh, self.current_speed_kmh)
        self._check_waypoint(position)

    def _check_waypoint(self, position: TrackedPosition) -> None:
        progress = self.progress
        target = progress.target if progress else None
        if target is None:
            return

        distance = distance_m(position.coordinate, target.coordinate)
        if distance > self.config['waypoint_proximity_m'] or target.id in progress.notified_ids:
            return

        progress.notified_ids.add(target.id)
        logger.info(f"Waypoint reached: {target.display_name} ({distance:.0f}m)")
        self._sink.send_arrival(target.display_name, distance)

        if progress.current_index < len(progress.waypoints) - 1:
            progress.current_index += 1
        else:
            progress.arrived = True
            logger.info("Final waypoint reached")

    @property
    def distance_to_next_waypoint_m(self) -> Optional[float]:
        target = self.progress.target if self.progress else None
        if target is None or self.last_accepted_position is None:
            return None
        return distance_m(self.last_accepted_position.coordinate, target.coordinate)

    @property
    def bearing_to_next_waypoint(self) -> Optional[float]:
        target = self.progress.target if self.progress else None
        if target is None or self.last_accepted_position is None:
            return None
        return calculate_bearing(self.last_accepted_position.coordinate, target.coordinate)

    def start_trip(self, waypoints: Iterable[Waypoint] = ()) -> None:
        """Begin a trip; any trip in progress is discarded"""
        ordered = sorted(waypoints, key=lambda wp: wp.order_index)
        self.trip = TripAccumulator(start_time=self._clock())
        self.progress = WaypointProgress(waypoints=ordered)
        self.last_accepted_position = None
        self.current_speed_kmh = 0.0
        self._consecutive_jumps = 0
        logger.info(f"Trip started with {len(ordered)} waypoints")

    def pause_trip(self) -> None:
        """Stop recording fixes without ending the trip"""
        if self.trip is None:
            raise NotReady("No trip in progress")
        self.trip.paused = True
        logger.info("Trip paused")

    def resume_trip(self) -> None:
        """
        Record again, heading for the same waypoints.

        Distance covered while paused is not added to the trip.
        """
        if self.trip is None:
            raise NotReady("No trip in progress")
        if self.trip.paused:
            self.trip.paused = False
            self.trip.last_accepted_position = None
            self._consecutive_jumps = 0
            logger.info("Trip resumed")

    def trip_stats(self) -> TripStats:
        if self.trip is None:
            raise NotReady("No trip in progress")
        duration_s = (self._clock() - self.trip.start_time).total_seconds()
        hours = duration_s / 3600
        return TripStats(
            distance_km=self.trip.total_distance_km,
            duration_s=duration_s,
            current_speed_kmh=self.current_speed_kmh,
            max_speed_kmh=self.trip.max_speed_kmh,
            avg_speed_kmh=self.trip.total_distance_km / hours if hours > 0 else 0.0,
            fix_count=len(self.trip.positions),
            paused=self.trip.paused,
        )

    def stop_trip(self, settings: Optional[BoatSettings] = None) -> TripSummary:
        """
        Finish the trip and summarize it.

        Args:
            settings: Boat settings for fuel figures (fuel left at zero if None)

        Raises:
            NotReady: no trip in progress
        """
        if self.trip is None:
            raise NotReady("No trip in progress")

        trip = self.trip
        end_time = self._clock()
        duration_s = (end_time - trip.start_time).total_seconds()
        hours = duration_s / 3600
        summary = TripSummary(
            start_time=trip.start_time,
            end_time=end_time,
            duration_s=duration_s,
            distance_km=trip.total_distance_km,
            avg_speed_kmh=trip.total_distance_km / hours if hours > 0 else 0.0,
            max_speed_kmh=trip.max_speed_kmh,
            positions=list(trip.positions),
            **fuel_figures(duration_s, settings),
        )

        self.trip = None
        self.progress = None
        logger.info(f"Trip stopped: {summary.distance_km:.2f} km in {summary.duration_s / 60:.0f} min")
        return summary
