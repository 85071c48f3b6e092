"""
Notifications - Where arrival and drag alarms go

The backend only decides WHEN to alert. Delivery belongs to a sink:
the dev server and the demo use LoggingNotificationSink, a mobile client
would push to the device.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Protocol

# Set up logging
logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def send_arrival(self, waypoint_name: str, distance_m: float) -> None:
        ...

    def send_drag_alarm(self, drift_m: float) -> None:
        ...


def arrival_message(waypoint_name: str, distance_m: float) -> str:
    return f"{distance_m:.0f} meters to {waypoint_name}"


def drag_alarm_message(drift_m: float) -> str:
    return f"Anchor dragging! Boat drifted {drift_m:.0f}m from anchor"


class LoggingNotificationSink:
    """Writes every alert to the log"""

    def send_arrival(self, waypoint_name: str, distance_m: float) -> None:
        logger.info(f"Approaching waypoint: {arrival_message(waypoint_name, distance_m)}")

    def send_drag_alarm(self, drift_m: float) -> None:
        logger.warning(drag_alarm_message(drift_m))


@dataclass
class Notification:
    kind: str
    message: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CollectingNotificationSink(LoggingNotificationSink):
    """Logs alerts and keeps them so an HTTP client can poll for them"""

    def __init__(self):
        self.notifications: List[Notification] = []
        self._lock = threading.Lock()

    def send_arrival(self, waypoint_name: str, distance_m: float) -> None:
        super().send_arrival(waypoint_name, distance_m)
        with self._lock:
            self.notifications.append(Notification("arrival", arrival_message(waypoint_name, distance_m)))

    def send_drag_alarm(self, drift_m: float) -> None:
        super().send_drag_alarm(drift_m)
        with self._lock:
            self.notifications.append(Notification("drag_alarm", drag_alarm_message(drift_m)))

    def drain(self) -> List[Notification]:
        with self._lock:
            pending, self.notifications = self.notifications, []
        return pending
