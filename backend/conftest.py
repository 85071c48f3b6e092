"""
Shared pytest fixtures for the backend tests
"""

from datetime import datetime, timedelta, timezone

import pytest

from models import Coordinates, TrackedPosition


class FakeClock:
    """Seconds-since-epoch clock that only moves when told to"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDateClock:
    """UTC datetime clock for the tracker"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSink:
    def __init__(self):
        self.arrivals = []
        self.drag_alarms = []

    def send_arrival(self, waypoint_name, distance_m):
        self.arrivals.append((waypoint_name, distance_m))

    def send_drag_alarm(self, drift_m):
        self.drag_alarms.append(drift_m)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


def hourly_times(start: str = "2024-06-01T00:00", hours: int = 72):
    base = datetime.fromisoformat(start)
    return [(base + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M") for h in range(hours)]


def make_atmospheric_payload(wind_speed=20.0, wind_direction=350.0, wind_gusts=28.0,
                             temperature=24.0, hours=72, utc_offset_seconds=0):
    times = hourly_times(hours=hours)
    return {
        "latitude": 36.7,
        "longitude": 27.9,
        "utc_offset_seconds": utc_offset_seconds,
        "hourly": {
            "time": times,
            "wind_speed_10m": [wind_speed] * hours,
            "wind_direction_10m": [wind_direction] * hours,
            "wind_gusts_10m": [wind_gusts] * hours,
            "temperature_2m": [temperature] * hours,
        },
    }


def make_marine_payload(wave_height=1.0, wave_direction=340.0, wave_period=4.0,
                        wind_wave_height=None, swell_wave_height=None, hours=72):
    times = hourly_times(hours=hours)
    hourly = {
        "time": times,
        "wave_height": [wave_height] * hours,
        "wave_direction": [wave_direction] * hours,
        "wave_period": [wave_period] * hours,
    }
    if wind_wave_height is not None:
        hourly["wind_wave_height"] = [wind_wave_height] * hours
    if swell_wave_height is not None:
        hourly["swell_wave_height"] = [swell_wave_height] * hours
    return {"latitude": 36.7, "longitude": 27.9, "utc_offset_seconds": 0, "hourly": hourly}


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def date_clock():
    return FakeDateClock(datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def atmospheric_payload():
    return make_atmospheric_payload


@pytest.fixture
def marine_payload():
    return make_marine_payload


@pytest.fixture
def target_time():
    return datetime(2024, 6, 1, 12, 0)


@pytest.fixture
def make_fix():
    def _make_fix(lat, lng, accuracy=5.0, speed_kmh=10.0, when=None):
        return TrackedPosition(
            coordinate=Coordinates(lat=lat, lng=lng),
            timestamp=when or datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc),
            speed_kmh=speed_kmh,
            horizontal_accuracy_m=accuracy,
        )
    return _make_fix
