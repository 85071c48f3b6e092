"""
Test the Flask dev server's live vessel routes
"""

import pytest

from dev_server import create_app
from models import BoatSettings, WeatherSample
from notifications import CollectingNotificationSink
from position_tracker import PositionTracker
from storage import InMemoryPreferenceStore
from vessel_session import VesselSession

ANCHOR = {"lat": 36.70, "lng": 27.90}


@pytest.fixture
def client(date_clock):
    sink = CollectingNotificationSink()
    session = VesselSession(
        sink,
        settings=BoatSettings(),
        preferences=InMemoryPreferenceStore(),
        tracker=PositionTracker(sink, clock=date_clock),
    )
    app = create_app(session=session, sink=sink)
    app.config['TESTING'] = True
    return app.test_client()


def fix(lat, lng=27.90, accuracy=5):
    return {"lat": lat, "lng": lng, "accuracy": accuracy, "speed_kmh": 2,
            "timestamp": "2024-06-01T10:00:00Z"}


def test_health(client):
    assert client.get('/health').get_json() == {"status": "ok"}


def test_anchor_flow_raises_drag_alarm(client):
    response = client.post('/anchor/draft', json=ANCHOR)
    assert response.get_json()["state"] == "drafting"
    assert response.get_json()["radiusM"] == 50

    client.post('/anchor/radius', json={"radius_m": 60})
    active = client.post('/anchor/activate').get_json()
    assert active["state"] == "active"
    assert active["radiusM"] == 60

    result = client.post('/fixes', json={"fixes": [fix(36.7008), fix(36.7008), fix(36.7008)]}).get_json()
    assert result["accepted"] == [True, True, True]
    assert result["anchor"]["triggered"] is True

    notes = client.get('/notifications').get_json()
    assert [n["kind"] for n in notes] == ["drag_alarm"]
    assert notes[0]["message"].startswith("Anchor dragging! Boat drifted 89m")
    # Drained
    assert client.get('/notifications').get_json() == []


def test_radius_change_while_active_is_conflict(client):
    client.post('/anchor/draft', json=ANCHOR)
    client.post('/anchor/activate')
    response = client.post('/anchor/radius', json={"radius_m": 100})
    assert response.status_code == 409


def test_activate_from_idle_is_conflict(client):
    assert client.post('/anchor/activate').status_code == 409


def test_bad_fix_is_400(client):
    assert client.post('/fixes', json={"lat": "here", "lng": 27.9}).status_code == 400
    assert client.post('/anchor/radius', json={"radius_m": "big"}).status_code == 400


def test_trip_flow(client, date_clock):
    started = client.post('/trip/start', json={"waypoints": [{"lat": 36.705, "lng": 27.90, "name": "Buoy"}]})
    assert started.get_json()["nextWaypoint"] == "Buoy"

    client.post('/fixes', json=fix(36.700))
    client.post('/fixes', json=fix(36.7048))
    trip = client.get('/trip').get_json()
    assert trip["active"] is True
    assert trip["arrived"] is True
    assert trip["distanceKm"] == pytest.approx(0.534, abs=0.005)

    notes = client.get('/notifications').get_json()
    assert notes[0]["kind"] == "arrival"
    assert notes[0]["message"] == "22 meters to Buoy"

    date_clock.advance(hours=1)
    summary = client.post('/trip/stop').get_json()
    assert summary["durationS"] == 3600
    assert summary["fuelUsedL"] == 20.0
    assert client.get('/trip').get_json()["active"] is False


def test_stop_without_trip_is_conflict(client):
    assert client.post('/trip/stop').status_code == 409


def test_poor_fix_is_not_accepted(client):
    result = client.post('/fixes', json=fix(36.70, accuracy=80)).get_json()
    assert result["accepted"] == [False]


def test_pause_and_resume_trip(client):
    client.post('/trip/start', json={})
    client.post('/fixes', json=fix(36.700))

    assert client.post('/trip/pause').get_json()["paused"] is True
    client.post('/fixes', json=fix(36.720))
    assert client.get('/trip').get_json()["fixCount"] == 1

    resumed = client.post('/trip/resume').get_json()
    assert resumed["paused"] is False
    assert resumed["active"] is True


def test_pause_without_trip_is_conflict(client):
    assert client.post('/trip/pause').status_code == 409
    assert client.post('/trip/resume').status_code == 409


def test_trip_totals(client, date_clock):
    assert client.get('/trips/stats').get_json()["tripCount"] == 0
    for _ in range(2):
        client.post('/trip/start', json={})
        date_clock.advance(hours=1)
        client.post('/trip/stop')

    totals = client.get('/trips/stats').get_json()
    assert totals["tripCount"] == 2
    assert totals["totalDurationS"] == 7200
    assert totals["totalFuelL"] == 40.0
    assert totals["totalCost"] == 1800.0


class SouthWindAcquisition:
    def fetch_wind_only(self, coordinate, target_time=None):
        return WeatherSample(wind_speed=18.0, wind_direction=180.0, wind_gusts=25.0, temperature=24.0)


def test_wind_grid():
    app = create_app(acquisition=SouthWindAcquisition())
    response = app.test_client().post('/wind-grid', json={
        "bbox": {"south": 36.6, "west": 27.4, "north": 36.7, "east": 27.5},
        "spacing_deg": 0.05,
    })

    points = response.get_json()["points"]
    assert len(points) == 9
    assert {p["from"] for p in points} == {"S"}


def test_anchor_radius_saved_to_preferences_file(tmp_path):
    path = str(tmp_path / "prefs.json")
    client = create_app(preferences_file=path).test_client()
    client.post('/anchor/draft', json=ANCHOR)
    client.post('/anchor/radius', json={"radius_m": 80})
    client.post('/anchor/activate')

    restarted = create_app(preferences_file=path).test_client()
    assert restarted.get('/anchor').get_json()["lastRadiusM"] == 80
