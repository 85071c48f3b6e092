"""
Test boat settings loading
"""

import pytest

from config import boat_settings_from_dict, load_boat_settings
from errors import ConfigurationError


def test_defaults_without_environment():
    settings = load_boat_settings({})
    assert settings.boat_name == "My Boat"
    assert settings.avg_speed_kmh == 15
    assert settings.tank_capacity_l == 200


def test_environment_overrides():
    settings = load_boat_settings({
        'PASSAGE_BOAT_NAME': "Mavi Yolculuk",
        'PASSAGE_AVG_SPEED': "11.5",
        'PASSAGE_FUEL_PRICE': "50",
    })
    assert settings.boat_name == "Mavi Yolculuk"
    assert settings.avg_speed_kmh == 11.5
    assert settings.fuel_price == 50
    assert settings.fuel_rate_lph == 20


@pytest.mark.parametrize("raw", ["fast", "0", "-3"])
def test_bad_environment_value(raw):
    with pytest.raises(ConfigurationError) as excinfo:
        load_boat_settings({'PASSAGE_AVG_SPEED': raw})
    assert "PASSAGE_AVG_SPEED" in str(excinfo.value)


def test_settings_from_request_payload():
    settings = boat_settings_from_dict({"boat_type": "sailboat", "tank_capacity_l": 80})
    assert settings.boat_type == "sailboat"
    assert settings.tank_capacity_l == 80


def test_payload_rejects_non_numeric():
    with pytest.raises(ConfigurationError):
        boat_settings_from_dict({"fuel_rate_lph": "a lot"})
