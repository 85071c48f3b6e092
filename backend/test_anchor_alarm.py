"""
Test the anchor drag alarm state machine
"""

import pytest

import anchor_alarm
from anchor_alarm import Active, AnchorDragDetector, Drafting, Idle, clamp_radius
from config import ANCHOR_CONFIG
from errors import NotReady
from models import Coordinates
from storage import InMemoryPreferenceStore, JsonPreferenceStore

ANCHOR = Coordinates(lat=36.70, lng=27.90)
INSIDE = (36.7002, 27.90)    # ~22 m from the anchor
OUTSIDE = (36.7010, 27.90)   # ~111 m from the anchor


@pytest.fixture
def detector(sink):
    return AnchorDragDetector(sink)


def armed(detector):
    detector.start_drafting(ANCHOR)
    detector.activate_alarm()
    return detector


# ============================================================================
# Transitions
# ============================================================================

def test_drafting_uses_default_radius(detector):
    state = detector.start_drafting(ANCHOR)
    assert state == Drafting(center=ANCHOR, radius_m=50)
    assert detector.is_drafting


def test_radius_is_clamped():
    assert clamp_radius(3) == 10
    assert clamp_radius(800) == 500
    assert clamp_radius(75) == 75


def test_update_center_and_radius_while_drafting(detector):
    detector.start_drafting(ANCHOR)
    moved = Coordinates(36.71, 27.91)
    detector.update_center(moved)
    state = detector.update_radius(1000)
    assert state.center == moved
    assert state.radius_m == 500


def test_activate_requires_drafting(detector):
    with pytest.raises(NotReady):
        detector.activate_alarm()


def test_update_radius_while_active_is_rejected(detector):
    armed(detector)
    with pytest.raises(NotReady):
        detector.update_radius(80)
    with pytest.raises(NotReady):
        detector.update_center(ANCHOR)


def test_deactivate_and_cancel_return_to_idle(detector):
    armed(detector)
    assert detector.is_active
    assert detector.deactivate_alarm() == Idle()

    detector.start_drafting(ANCHOR)
    assert detector.cancel_drafting() == Idle()
    # Deactivating when idle is harmless
    assert detector.deactivate_alarm() == Idle()


def test_activation_remembers_radius(sink):
    preferences = InMemoryPreferenceStore()
    first = AnchorDragDetector(sink, preferences)
    first.start_drafting(ANCHOR)
    first.update_radius(120)
    first.activate_alarm()

    assert preferences.get(ANCHOR_CONFIG['radius_preference_key']) == 120
    second = AnchorDragDetector(sink, preferences)
    assert second.start_drafting(ANCHOR).radius_m == 120


def test_radius_preference_survives_restart(sink, tmp_path):
    path = str(tmp_path / "prefs.json")
    detector = AnchorDragDetector(sink, JsonPreferenceStore(path))
    detector.start_drafting(ANCHOR)
    detector.update_radius(90)
    detector.activate_alarm()

    assert AnchorDragDetector(sink, JsonPreferenceStore(path)).last_radius_m == 90


# ============================================================================
# Drag detection
# ============================================================================

def test_three_consecutive_outside_fixes_fire_once(detector, sink, make_fix):
    armed(detector)
    for _ in range(2):
        detector.check_location(make_fix(*OUTSIDE))
    assert sink.drag_alarms == []

    detector.check_location(make_fix(*OUTSIDE))
    assert len(sink.drag_alarms) == 1
    assert sink.drag_alarms[0] == pytest.approx(111, abs=2)
    assert detector.state.triggered

    # Still outside: no repeat alarm
    detector.check_location(make_fix(*OUTSIDE))
    detector.check_location(make_fix(*OUTSIDE))
    assert len(sink.drag_alarms) == 1


def test_inside_fix_resets_the_count(detector, sink, make_fix):
    armed(detector)
    sequence = [OUTSIDE, OUTSIDE, INSIDE, OUTSIDE, OUTSIDE]
    for point in sequence:
        detector.check_location(make_fix(*point))

    assert sink.drag_alarms == []
    assert detector.state.consecutive_outside == 2


def test_returning_inside_rearms_the_alarm(detector, sink, make_fix):
    armed(detector)
    for _ in range(3):
        detector.check_location(make_fix(*OUTSIDE))

    detector.check_location(make_fix(*INSIDE))
    state = detector.state
    assert isinstance(state, Active)
    assert not state.triggered
    assert state.center == ANCHOR
    assert state.current_drift_m == pytest.approx(22, abs=1)

    for _ in range(3):
        detector.check_location(make_fix(*OUTSIDE))
    assert len(sink.drag_alarms) == 2


def test_fix_on_the_boundary_counts_as_inside(make_fix):
    position = make_fix(*INSIDE)
    on_edge = anchor_alarm.distance_m(ANCHOR, position.coordinate)
    state = Active(center=ANCHOR, radius_m=on_edge, consecutive_outside=2)

    next_state, drift = anchor_alarm.check_location(state, position)
    assert drift is None
    assert next_state.consecutive_outside == 0


def test_fixes_ignored_unless_active(detector, sink, make_fix):
    detector.check_location(make_fix(*OUTSIDE))
    assert detector.state == Idle()

    detector.start_drafting(ANCHOR)
    for _ in range(5):
        detector.check_location(make_fix(*OUTSIDE))
    assert detector.is_drafting
    assert sink.drag_alarms == []


def test_missing_fix_leaves_state_alone(detector):
    armed(detector)
    before = detector.state
    detector.check_location(None)
    assert detector.state == before
