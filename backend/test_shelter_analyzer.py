"""
Test cove shelter rating
"""

import pytest

from models import Cove, Coordinates, ShelterLevel
from shelter_analyzer import analyze_coves, classify_shelter, mouth_wind_angle


def cove(name, mouth):
    return Cove(name=name, coordinate=Coordinates(36.7, 27.9), mouth_direction=mouth)


def test_mouth_facing_away_from_wind_is_excellent():
    # North wind, cove opening south
    assert mouth_wind_angle(180, 0) == 180
    assert classify_shelter(180, 0, 20) == ShelterLevel.EXCELLENT


def test_mouth_facing_the_wind_is_poor():
    assert classify_shelter(0, 0, 20) == ShelterLevel.POOR
    assert classify_shelter(30, 0, 20) == ShelterLevel.POOR
    assert classify_shelter(330, 0, 20) == ShelterLevel.POOR


@pytest.mark.parametrize("angle, expected", [
    (150, ShelterLevel.EXCELLENT), (210, ShelterLevel.EXCELLENT),
    (149, ShelterLevel.GOOD), (90, ShelterLevel.GOOD), (211, ShelterLevel.GOOD), (270, ShelterLevel.GOOD),
    (89, ShelterLevel.MODERATE), (45, ShelterLevel.MODERATE), (271, ShelterLevel.MODERATE), (315, ShelterLevel.MODERATE),
    (44, ShelterLevel.POOR), (316, ShelterLevel.POOR),
])
def test_band_edges(angle, expected):
    assert classify_shelter(angle, 0, 20) == expected


def test_angle_wraps_around():
    # mouth 10, wind from 200: (10 - 200) mod 360 = 170
    assert mouth_wind_angle(10, 200) == 170
    assert classify_shelter(10, 200, 20) == ShelterLevel.EXCELLENT


def test_calm_wind_is_always_excellent():
    assert classify_shelter(0, 0, 4.9) == ShelterLevel.EXCELLENT


def test_analyze_coves_sorts_best_first():
    coves = [cove("A", 0), cove("B", 180), cove("C", 90), cove("D", 60), cove("E", 170)]
    results = analyze_coves(coves, 0, 20)

    assert [r.cove.name for r in results] == ["B", "E", "C", "D", "A"]
    assert [r.shelter_level for r in results] == [
        ShelterLevel.EXCELLENT, ShelterLevel.EXCELLENT, ShelterLevel.GOOD,
        ShelterLevel.MODERATE, ShelterLevel.POOR,
    ]
    assert results[0].wind_speed == 20
