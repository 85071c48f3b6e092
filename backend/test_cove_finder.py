"""
Test Overpass cove parsing, mouth directions and the cached client
"""

from urllib.parse import parse_qs

import pytest
import requests

import cove_finder
from config import OVERPASS_CONFIG
from cove_finder import CoveFinder, estimate_mouth_direction, mouth_direction_from_way, parse_coves
from errors import DecodingError, UpstreamError

OVERPASS_URL = OVERPASS_CONFIG['api_url']


@pytest.fixture
def sea_to_the_east(monkeypatch):
    # Everything east of 27.9 is water
    monkeypatch.setattr(cove_finder, "is_in_sea", lambda lat, lng: lng > 27.9 + 1e-9)


def geometry(*points):
    return [{"lat": lat, "lon": lng} for lat, lng in points]


OPEN_SOUTH_WAY = {
    "type": "way",
    "id": 1,
    "tags": {"natural": "bay", "name": "Kuruca Buk"},
    "geometry": geometry((36.70, 27.90), (36.71, 27.90), (36.71, 27.91), (36.70, 27.91)),
}


# ============================================================================
# Mouth direction
# ============================================================================

def test_open_way_mouth_is_gap_between_ends():
    nodes = [(36.70, 27.90), (36.71, 27.90), (36.71, 27.91), (36.70, 27.91)]
    assert mouth_direction_from_way((36.705, 27.905), nodes) == pytest.approx(180)


def test_closed_way_mouth_is_longest_edge():
    nodes = [(36.70, 27.90), (36.70, 27.92), (36.71, 27.90), (36.70, 27.90)]
    # Longest edge runs from (36.70, 27.92) to (36.71, 27.90); its midpoint lies north-east
    assert mouth_direction_from_way((36.7025, 27.905), nodes) == pytest.approx(63.43, abs=0.01)


def test_estimate_picks_first_direction_reaching_sea(sea_to_the_east):
    assert estimate_mouth_direction(36.70, 27.90) == 45.0


def test_estimate_defaults_to_south_when_landlocked(monkeypatch):
    monkeypatch.setattr(cove_finder, "is_in_sea", lambda lat, lng: False)
    assert estimate_mouth_direction(39.0, 33.0) == 180.0


# ============================================================================
# Parsing
# ============================================================================

def test_parse_way_and_node(sea_to_the_east):
    payload = {"elements": [
        OPEN_SOUTH_WAY,
        {"type": "node", "id": 2, "lat": 36.70, "lon": 27.90, "tags": {"seamark:type": "anchorage"}},
    ]}

    bay, anchorage = parse_coves(payload)

    assert bay.name == "Kuruca Buk"
    assert bay.coordinate.lat == pytest.approx(36.705)
    assert bay.coordinate.lng == pytest.approx(27.905)
    assert bay.mouth_direction == pytest.approx(180)

    assert anchorage.name == "Cove (36.700, 27.900)"
    assert anchorage.mouth_direction == 45.0


def test_name_fallbacks(sea_to_the_east):
    payload = {"elements": [
        {"type": "node", "lat": 36.70, "lon": 27.95, "tags": {"seamark:name": "Palamutbuku"}},
        {"type": "node", "lat": 36.71, "lon": 27.95, "tags": {"name:tr": "Hayitbuku"}},
        {"type": "node", "lat": 36.72, "lon": 27.95, "tags": {"name:en": "Mersincik Bay"}},
    ]}
    assert [c.name for c in parse_coves(payload)] == ["Palamutbuku", "Hayitbuku", "Mersincik Bay"]


def test_duplicates_are_dropped(sea_to_the_east):
    payload = {"elements": [
        {"type": "node", "lat": 36.70001, "lon": 27.95, "tags": {"name": "A"}},
        {"type": "node", "lat": 36.70002, "lon": 27.95, "tags": {"name": "B"}},
    ]}
    assert [c.name for c in parse_coves(payload)] == ["A"]


def test_malformed_elements_are_skipped(sea_to_the_east):
    payload = {"elements": [
        {"type": "node", "tags": {"name": "no position"}},
        {"type": "way", "geometry": []},
        {"type": "relation", "id": 9},
        "junk",
    ]}
    assert parse_coves(payload) == []


def test_payload_without_elements_is_decoding_error():
    with pytest.raises(DecodingError):
        parse_coves({"remark": "runtime error"})


# ============================================================================
# Client
# ============================================================================

@pytest.fixture
def finder(fake_clock, no_sleep):
    return CoveFinder(session=requests.Session(), clock=fake_clock, sleep=no_sleep)


def test_large_region_returns_nothing(finder, requests_mock):
    post = requests_mock.post(OVERPASS_URL, json={"elements": []})
    assert finder.fetch_coves(36.0, 27.0, 38.0, 28.0) == []
    assert post.call_count == 0


def test_query_uses_aligned_box_and_is_cached(finder, requests_mock, sea_to_the_east):
    post = requests_mock.post(OVERPASS_URL, json={"elements": [OPEN_SOUTH_WAY]})

    first = finder.fetch_coves(36.65, 27.45, 36.95, 27.75)
    # A small pan inside the same aligned box is served from cache
    second = finder.fetch_coves(36.62, 27.41, 36.98, 27.79)

    assert post.call_count == 1
    assert second is first
    assert [c.name for c in first] == ["Kuruca Buk"]

    query = parse_qs(post.last_request.text)["data"][0]
    assert "36.6000,27.4000,37.0000,27.8000" in query
    assert 'node["seamark:type"="anchorage"]' in query


def test_cache_expires(finder, requests_mock, fake_clock):
    post = requests_mock.post(OVERPASS_URL, json={"elements": []})
    finder.fetch_coves(36.65, 27.45, 36.95, 27.75)
    fake_clock.advance(OVERPASS_CONFIG['cache_ttl_s'])
    finder.fetch_coves(36.65, 27.45, 36.95, 27.75)
    assert post.call_count == 2


def test_overpass_failure_propagates(finder, requests_mock):
    requests_mock.post(OVERPASS_URL, status_code=429)
    with pytest.raises(UpstreamError):
        finder.fetch_coves(36.65, 27.45, 36.95, 27.75)
    assert len(finder.cache) == 0
