"""
Test one vessel's combined tracker and anchor alarm
"""

import pytest

from models import BoatSettings, Coordinates
from position_tracker import PositionTracker
from storage import InMemoryRepository
from vessel_session import VesselSession


@pytest.fixture
def session(sink, date_clock):
    return VesselSession(
        sink,
        settings=BoatSettings(fuel_rate_lph=10, fuel_price=40),
        trips=InMemoryRepository(),
        tracker=PositionTracker(sink, clock=date_clock),
    )


def test_rejected_fix_never_reaches_the_anchor(session, sink, make_fix):
    session.anchor.start_drafting(Coordinates(36.70, 27.90))
    session.anchor.activate_alarm()
    session.start_trip()
    session.handle_fix(make_fix(36.70, 27.90))

    # Three far-off fixes during a trip: all are GPS jumps and get filtered
    for _ in range(3):
        assert not session.handle_fix(make_fix(36.72, 27.90))
    assert sink.drag_alarms == []
    assert session.anchor.state.consecutive_outside == 0


def test_anchor_works_without_a_trip(session, sink, make_fix):
    session.anchor.start_drafting(Coordinates(36.70, 27.90))
    session.anchor.activate_alarm()
    for _ in range(3):
        assert session.handle_fix(make_fix(36.701, 27.90))
    assert len(sink.drag_alarms) == 1
    assert not session.tracker.is_trip_active


def test_anchor_still_fed_after_move_the_filter_never_saw(session, sink, make_fix):
    # Last fix before the app went to the background, 5 km from the cove
    assert session.handle_fix(make_fix(36.700, 27.90))

    session.anchor.start_drafting(Coordinates(36.745, 27.90))
    session.anchor.activate_alarm()

    at_anchor = [session.handle_fix(make_fix(36.745, 27.90)) for _ in range(20)]
    # ~200 m north of the anchor
    dragged = [session.handle_fix(make_fix(36.7468, 27.90)) for _ in range(5)]

    assert all(at_anchor) and all(dragged)
    assert len(sink.drag_alarms) == 1
    assert sink.drag_alarms[0] == pytest.approx(200, abs=2)


def test_pause_and_resume_keep_the_trip(session, make_fix):
    session.start_trip()
    session.handle_fix(make_fix(36.700, 27.90))
    session.pause_trip()
    assert session.tracker.is_trip_active
    assert not session.tracker.is_recording

    session.resume_trip()
    assert session.tracker.is_recording


def test_stop_trip_stores_summary(session, make_fix, date_clock):
    session.start_trip()
    session.handle_fix(make_fix(36.700, 27.90))
    session.handle_fix(make_fix(36.705, 27.90))
    date_clock.advance(hours=2)

    summary = session.stop_trip()

    assert summary.fuel_used_l == pytest.approx(20)
    assert summary.fuel_cost == pytest.approx(800)
    assert session.trips.get(summary.id) is summary
    assert session.trips.save_count == 1


def test_total_stats_over_stored_trips(session, make_fix, date_clock):
    for _ in range(2):
        session.start_trip()
        session.handle_fix(make_fix(36.700, 27.90))
        session.handle_fix(make_fix(36.705, 27.90))
        date_clock.advance(hours=1)
        session.stop_trip()

    totals = session.total_stats()

    assert totals.trip_count == 2
    assert totals.total_distance_km == pytest.approx(1.112, abs=0.01)
    assert totals.total_duration_s == 7200
    assert totals.total_fuel_l == pytest.approx(20)
    assert totals.total_cost == pytest.approx(800)
