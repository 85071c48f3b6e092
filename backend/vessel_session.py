"""
Vessel Session - One boat's live state

Raw GPS fixes pass through the PositionTracker filter. Accepted fixes also
reach the AnchorDragDetector, whether or not a trip is running. The two
components share the input stream and nothing else.
"""

import logging
import threading
from typing import Iterable, Optional

from anchor_alarm import AnchorDragDetector
from config import load_boat_settings
from models import BoatSettings, TotalTripStats, TrackedPosition, TripSummary, Waypoint
from notifications import NotificationSink
from position_tracker import PositionTracker, total_trip_stats
from storage import InMemoryPreferenceStore, InMemoryRepository, PreferenceStore, Repository

# Set up logging
logger = logging.getLogger(__name__)


class VesselSession:
    def __init__(self, sink: NotificationSink,
                 settings: Optional[BoatSettings] = None,
                 preferences: Optional[PreferenceStore] = None,
                 trips: Optional[Repository] = None,
                 tracker: Optional[PositionTracker] = None):
        self.settings = settings or load_boat_settings()
        self.tracker = tracker or PositionTracker(sink)
        self.anchor = AnchorDragDetector(sink, preferences or InMemoryPreferenceStore())
        self.trips = trips if trips is not None else InMemoryRepository()
        # Fixes may arrive from several request threads
        self._lock = threading.Lock()

    def handle_fix(self, position: TrackedPosition) -> bool:
        """Feed one raw fix; returns True if the tracker accepted it"""
        with self._lock:
            accepted = self.tracker.accept_fix(position)
            if accepted:
                self.anchor.check_location(position)
            return accepted

    def start_trip(self, waypoints: Iterable[Waypoint] = ()) -> None:
        with self._lock:
            self.tracker.start_trip(waypoints)

    def pause_trip(self) -> None:
        with self._lock:
            self.tracker.pause_trip()

    def resume_trip(self) -> None:
        with self._lock:
            self.tracker.resume_trip()

    def stop_trip(self) -> TripSummary:
        """Finish the trip and store it with fuel figures from the boat settings"""
        with self._lock:
            summary = self.tracker.stop_trip(self.settings)
        self.trips.insert(summary)
        self.trips.save()
        logger.info(f"Trip saved: {summary.id} ({summary.fuel_used_l:.1f} L, cost {summary.fuel_cost:.0f})")
        return summary

    def total_stats(self) -> TotalTripStats:
        return total_trip_stats(self.trips)
