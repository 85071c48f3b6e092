"""
Anchor Alarm - Detects an anchored boat dragging out of its swing circle

States:
- Idle: nothing to watch
- Drafting: the user is placing the circle (center and radius can change)
- Active: watching accepted GPS fixes against the circle

The transition functions are pure: they take a state and return the next
one, raising NotReady for moves that make no sense from the current state.
AnchorDragDetector holds the current state and connects it to the
notification sink and the stored radius preference.

A single stray fix outside the circle is GPS noise, so the alarm needs
several consecutive outside fixes. One fix back inside resets the count.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from config import ANCHOR_CONFIG
from errors import NotReady
from models import Coordinates, TrackedPosition
from navigation import distance_m
from notifications import NotificationSink
from storage import InMemoryPreferenceStore, PreferenceStore

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Drafting:
    center: Coordinates
    radius_m: float


@dataclass(frozen=True)
class Active:
    center: Coordinates
    radius_m: float
    consecutive_outside: int = 0
    triggered: bool = False
    current_drift_m: float = 0.0


AnchorAlarmState = Union[Idle, Drafting, Active]


def clamp_radius(radius_m: float) -> float:
    """Keep a radius inside the allowed range (10-500 m)"""
    return min(max(radius_m, ANCHOR_CONFIG['min_radius_m']), ANCHOR_CONFIG['max_radius_m'])


def start_drafting(state: AnchorAlarmState, center: Coordinates, radius_m: float) -> Drafting:
    """Begin placing a circle. Allowed from any state."""
    return Drafting(center=center, radius_m=clamp_radius(radius_m))


def update_center(state: AnchorAlarmState, center: Coordinates) -> Drafting:
    if not isinstance(state, Drafting):
        raise NotReady(f"Cannot move anchor center while {type(state).__name__}")
    return replace(state, center=center)


def update_radius(state: AnchorAlarmState, radius_m: float) -> Drafting:
    if not isinstance(state, Drafting):
        raise NotReady(f"Cannot change anchor radius while {type(state).__name__}")
    return replace(state, radius_m=clamp_radius(radius_m))


def activate(state: AnchorAlarmState) -> Active:
    if not isinstance(state, Drafting):
        raise NotReady(f"Cannot activate anchor alarm while {type(state).__name__}")
    return Active(center=state.center, radius_m=state.radius_m)


def deactivate(state: AnchorAlarmState) -> Idle:
    return Idle()


def _is_valid_fix(position: Optional[TrackedPosition]) -> bool:
    return (
        position is not None
        and math.isfinite(position.coordinate.lat)
        and math.isfinite(position.coordinate.lng)
    )


def check_location(state: AnchorAlarmState, position: Optional[TrackedPosition]) -> Tuple[AnchorAlarmState, Optional[float]]:
    """
    Feed one accepted fix to the alarm.

    Returns:
        (next state, drift in meters if the alarm fires on this fix else None).
        Anything other than an Active state, or a malformed fix, comes back
        unchanged.
    """
    if not isinstance(state, Active) or not _is_valid_fix(position):
        return state, None

    drift = distance_m(state.center, position.coordinate)

    if drift <= state.radius_m:
        return replace(state, consecutive_outside=0, triggered=False, current_drift_m=drift), None

    count = state.consecutive_outside + 1
    fire = count >= ANCHOR_CONFIG['required_consecutive_outside'] and not state.triggered
    next_state = replace(
        state,
        consecutive_outside=count,
        triggered=state.triggered or fire,
        current_drift_m=drift,
    )
    return next_state, (drift if fire else None)


class AnchorDragDetector:
    """
    One vessel's anchor alarm.

    Args:
        sink: Receives the drag alarm
        preferences: Remembers the last radius used (50 m by default)
    """

    def __init__(self, sink: NotificationSink, preferences: Optional[PreferenceStore] = None):
        self._sink = sink
        self._preferences = preferences or InMemoryPreferenceStore()
        self.state: AnchorAlarmState = Idle()

    @property
    def last_radius_m(self) -> float:
        stored = self._preferences.get(ANCHOR_CONFIG['radius_preference_key'])
        if stored is None:
            return ANCHOR_CONFIG['default_radius_m']
        return clamp_radius(float(stored))

    @property
    def is_active(self) -> bool:
        return isinstance(self.state, Active)

    @property
    def is_drafting(self) -> bool:
        return isinstance(self.state, Drafting)

    def start_drafting(self, center: Coordinates) -> Drafting:
        self.state = start_drafting(self.state, center, self.last_radius_m)
        logger.info(f"Anchor drafting at ({center.lat:.5f}, {center.lng:.5f}), radius {self.state.radius_m:.0f}m")
        return self.state

    def update_center(self, center: Coordinates) -> Drafting:
        self.state = update_center(self.state, center)
        return self.state

    def update_radius(self, radius_m: float) -> Drafting:
        self.state = update_radius(self.state, radius_m)
        return self.state

    def activate_alarm(self) -> Active:
        self.state = activate(self.state)
        self._preferences.set(ANCHOR_CONFIG['radius_preference_key'], self.state.radius_m)
        logger.info(f"Anchor alarm activated, radius {self.state.radius_m:.0f}m")
        return self.state

    def deactivate_alarm(self) -> Idle:
        if self.is_active:
            logger.info("Anchor alarm deactivated")
        self.state = deactivate(self.state)
        return self.state

    def cancel_drafting(self) -> Idle:
        self.state = deactivate(self.state)
        return self.state

    def check_location(self, position: Optional[TrackedPosition]) -> None:
        self.state, alarm_drift = check_location(self.state, position)
        if alarm_drift is not None:
            logger.warning(f"Anchor drag detected: {alarm_drift:.0f}m from anchor (radius {self.state.radius_m:.0f}m)")
            self._sink.send_drag_alarm(alarm_drift)
