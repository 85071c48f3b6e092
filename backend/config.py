"""
Configuration for Safe Passage

Constants are grouped into plain dictionaries per concern. Boat settings
can be overridden from the environment (see load_boat_settings).
"""

import logging
import os
from typing import Mapping, Optional

from errors import ConfigurationError
from models import BoatSettings

logger = logging.getLogger(__name__)


# Open-Meteo (free, no API key needed)
WEATHER_CONFIG = {
    'weather_api_url': "https://api.open-meteo.com/v1/forecast",
    'marine_api_url': "https://marine-api.open-meteo.com/v1/marine",
    'atmospheric_fields': ["temperature_2m", "wind_speed_10m", "wind_direction_10m", "wind_gusts_10m"],
    'marine_fields': ["wave_height", "wave_direction", "wave_period", "wind_wave_height", "swell_wave_height"],
    'forecast_days': 3,
    'timeout_s': 15,
    'max_attempts': 3,
    'backoff_base_s': 1.0,
    'cache_ttl_s': 3600,           # 1 hour
    'sample_grid_deg': 0.01,       # processed samples, ~1 km
    'response_grid_deg': 0.05,     # raw upstream responses, ~5 km
    'calm_wind_kmh': 5.0,          # below this the fetch model is skipped
    'max_batch_workers': 8,
}

# GPS filtering and waypoint arrival
GPS_CONFIG = {
    'accuracy_threshold_m': 50.0,
    'jump_threshold_m': 1000.0,
    'waypoint_proximity_m': 100.0,
    'jump_reseed_count': 5,        # consecutive jumps before the track restarts at the new position
}

ANCHOR_CONFIG = {
    'default_radius_m': 50.0,
    'min_radius_m': 10.0,
    'max_radius_m': 500.0,
    'required_consecutive_outside': 3,
    'radius_preference_key': "anchor_alarm_last_radius",
}

# Risk thresholds (km/h and meters)
RISK_CONFIG = {
    'wind_yellow_kmh': 15.0,
    'wind_red_kmh': 30.0,
    'wave_yellow_m': 0.5,
    'wave_red_m': 1.5,
}

# Shelter analysis
SHELTER_CONFIG = {
    'calm_wind_kmh': 5.0,
}

OVERPASS_CONFIG = {
    'api_url': "https://overpass-api.de/api/interpreter",
    'timeout_s': 20,
    'cache_ttl_s': 3600,
    'grid_deg': 0.2,
    'max_span_deg': 2.0,
}

BOAT_DEFAULTS = {
    'boat_name': "My Boat",
    'boat_type': "motorboat",
    'avg_speed_kmh': 15.0,
    'fuel_rate_lph': 20.0,
    'tank_capacity_l': 200.0,
    'fuel_price': 45.0,
}

# Local persistence for the dev server
STORAGE_CONFIG = {
    'preferences_file': os.environ.get('PASSAGE_PREFERENCES_FILE'),
}

LOGGING_CONFIG = {
    'level': os.environ.get('PASSAGE_LOG_LEVEL', 'INFO'),
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'log_file': 'backend.log',
}

# Environment variable -> BoatSettings field
_BOAT_ENV_VARS = {
    'PASSAGE_AVG_SPEED': 'avg_speed_kmh',
    'PASSAGE_FUEL_RATE': 'fuel_rate_lph',
    'PASSAGE_TANK_CAPACITY': 'tank_capacity_l',
    'PASSAGE_FUEL_PRICE': 'fuel_price',
}


def _positive_float(name: str, raw) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if not value > 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def boat_settings_from_dict(data: Mapping) -> BoatSettings:
    """
    Build BoatSettings from a request payload or stored preferences.

    Missing keys fall back to BOAT_DEFAULTS. Numeric fields must be positive.

    Raises:
        ConfigurationError: if a numeric field is invalid
    """
    values = dict(BOAT_DEFAULTS)
    for key in ('boat_name', 'boat_type'):
        if data.get(key):
            values[key] = str(data[key])
    for key in _BOAT_ENV_VARS.values():
        if data.get(key) is not None:
            values[key] = _positive_float(key, data[key])
    return BoatSettings(**values)


def load_boat_settings(environ: Optional[Mapping[str, str]] = None) -> BoatSettings:
    """
    Read boat settings from environment variables.

    PASSAGE_BOAT_NAME, PASSAGE_AVG_SPEED, PASSAGE_FUEL_RATE,
    PASSAGE_TANK_CAPACITY and PASSAGE_FUEL_PRICE override the defaults.
    """
    environ = os.environ if environ is None else environ
    data = {}
    if environ.get('PASSAGE_BOAT_NAME'):
        data['boat_name'] = environ['PASSAGE_BOAT_NAME']
    for env_name, key in _BOAT_ENV_VARS.items():
        if env_name in environ:
            data[key] = _positive_float(env_name, environ[env_name])
    settings = boat_settings_from_dict(data)
    logger.debug(f"Boat settings loaded: {settings}")
    return settings
