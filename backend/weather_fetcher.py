"""
Weather Fetcher - Gets weather data from Open-Meteo API

Open-Meteo is a FREE weather API that requires NO API key.
- Weather API: wind, gusts, temperature
- Marine API: total wave height plus swell and wind-wave components

FEATURES:
- Atmospheric and marine calls run in parallel for each point
- Marine data is best-effort: if it fails the sample carries calm-sea defaults
- Wave heights are dampened for short fetch (see coastal_fetch)
- Three cache tiers: raw responses per API (~5 km grid) and processed
  samples (~1 km grid plus hour), and a separate wind-only tier for map overlays
- Retries with exponential backoff (see http_client)
"""

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from coastal_fetch import adjust_wave_height, calculate_fetch
from config import WEATHER_CONFIG
from errors import ConfigurationError, DecodingError, PassageError
from geo_cache import GeoCache, grid_key, point_hour_key
from http_client import request_json
from models import Coordinates, WeatherSample

# Set up logging
logger = logging.getLogger(__name__)


# API endpoints (free, no API key needed!)
WEATHER_API_URL = WEATHER_CONFIG['weather_api_url']
MARINE_API_URL = WEATHER_CONFIG['marine_api_url']


@dataclass(frozen=True)
class AtmosphericValues:
    """Atmospheric readings for one hour"""
    wind_speed: float
    wind_direction: float
    wind_gusts: float
    temperature: float


@dataclass(frozen=True)
class MarineValues:
    """Marine readings for one hour; components are None when not reported"""
    wave_height: float = 0.0
    wave_direction: float = 0.0
    wave_period: float = 0.0
    wind_wave_height: Optional[float] = None
    swell_wave_height: Optional[float] = None


def _parse_hour(text: Any) -> Optional[datetime]:
    if not isinstance(text, str):
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _hour_ordinal(moment: datetime) -> int:
    return moment.toordinal() * 24 + moment.hour


def nearest_hour_index(times: List[Any], target: datetime, utc_offset_seconds: int = 0) -> int:
    """
    Index of the hourly timestamp closest to target.

    Open-Meteo timestamps are local wall-clock times (timezone=auto), so an
    aware target is first shifted by the response's UTC offset. Distance is
    measured in whole hours across dates; the first of equal candidates wins.

    Raises:
        DecodingError: if no timestamp can be parsed
    """
    if target.tzinfo is not None:
        target = (target.astimezone(timezone.utc) + timedelta(seconds=utc_offset_seconds)).replace(tzinfo=None)
    target_ordinal = _hour_ordinal(target)

    best_index = None
    best_diff = None
    for index, text in enumerate(times):
        parsed = _parse_hour(text)
        if parsed is None:
            continue
        diff = abs(_hour_ordinal(parsed) - target_ordinal)
        if best_diff is None or diff < best_diff:
            best_index = index
            best_diff = diff

    if best_index is None:
        raise DecodingError("No usable hourly timestamps in response")
    return best_index


def _hourly_block(payload: Any, label: str) -> Dict[str, Any]:
    """Validate and return the 'hourly' object of an Open-Meteo response"""
    if not isinstance(payload, dict) or not isinstance(payload.get('hourly'), dict):
        raise DecodingError(f"{label} response has no hourly data")
    hourly = payload['hourly']
    if not isinstance(hourly.get('time'), list) or not hourly['time']:
        raise DecodingError(f"{label} response has no hourly timestamps")
    return hourly


def _get_hourly_value(hourly: dict, key: str, hour_index: int) -> Optional[float]:
    """Safely get a value from hourly data, None when missing or null."""
    values = hourly.get(key)
    if isinstance(values, list) and hour_index < len(values):
        value = values[hour_index]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


def _payload_index(payload: dict, hourly: dict, target: datetime) -> int:
    offset = payload.get('utc_offset_seconds') or 0
    return nearest_hour_index(hourly['time'], target, int(offset))


def extract_atmospheric(payload: Any, target: datetime) -> AtmosphericValues:
    """
    Pick the atmospheric readings for the hour nearest target.

    Raises:
        DecodingError: malformed payload or no wind speed for that hour
    """
    hourly = _hourly_block(payload, "Weather API")
    index = _payload_index(payload, hourly, target)

    wind_speed = _get_hourly_value(hourly, 'wind_speed_10m', index)
    if wind_speed is None:
        raise DecodingError(f"Weather API has no wind speed for {hourly['time'][index]}")

    return AtmosphericValues(
        wind_speed=wind_speed,
        wind_direction=_get_hourly_value(hourly, 'wind_direction_10m', index) or 0.0,
        wind_gusts=_get_hourly_value(hourly, 'wind_gusts_10m', index) or 0.0,
        temperature=_get_hourly_value(hourly, 'temperature_2m', index) or 0.0,
    )


def extract_marine(payload: Any, target: datetime) -> MarineValues:
    """Pick the marine readings for the hour nearest target."""
    hourly = _hourly_block(payload, "Marine API")
    index = _payload_index(payload, hourly, target)

    return MarineValues(
        wave_height=_get_hourly_value(hourly, 'wave_height', index) or 0.0,
        wave_direction=_get_hourly_value(hourly, 'wave_direction', index) or 0.0,
        wave_period=_get_hourly_value(hourly, 'wave_period', index) or 0.0,
        wind_wave_height=_get_hourly_value(hourly, 'wind_wave_height', index),
        swell_wave_height=_get_hourly_value(hourly, 'swell_wave_height', index),
    )


def combine_wave_height(marine: MarineValues, fetch_km: float) -> float:
    """
    Fetch-adjusted wave height.

    Swell was generated far away and is not affected by local fetch, so when
    both components are reported only the wind-wave part is dampened and the
    two are recombined by energy (root of summed squares). Otherwise the
    total height is dampened.
    """
    if marine.swell_wave_height is not None and marine.wind_wave_height is not None:
        dampened = adjust_wave_height(marine.wind_wave_height, fetch_km)
        return math.sqrt(marine.swell_wave_height ** 2 + dampened ** 2)
    return adjust_wave_height(marine.wave_height, fetch_km)


def _validate(coordinate: Coordinates) -> None:
    if not isinstance(coordinate, Coordinates) or not coordinate.is_valid:
        raise ConfigurationError(f"Invalid coordinate: {coordinate}")


class WeatherAcquisition:
    """
    Point-in-time weather samples backed by Open-Meteo and a set of caches.

    Args:
        session: requests session (a new one by default)
        clock: Time source for cache freshness, in seconds
        sleep: Called between retry attempts
        config: Overrides for WEATHER_CONFIG keys
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep,
                 config: Optional[Dict[str, Any]] = None):
        self.config = dict(WEATHER_CONFIG, **(config or {}))
        self._session = session or requests.Session()
        self._sleep = sleep

        ttl = self.config['cache_ttl_s']
        self.atmospheric_responses: GeoCache[dict] = GeoCache(ttl, clock)
        self.marine_responses: GeoCache[dict] = GeoCache(ttl, clock)
        self.samples: GeoCache[WeatherSample] = GeoCache(ttl, clock)
        self.wind_samples: GeoCache[WeatherSample] = GeoCache(ttl, clock)

    # ------------------------------------------------------------------
    # Upstream calls
    # ------------------------------------------------------------------

    def _fetch_json(self, url: str, params: Dict[str, Any], label: str) -> Any:
        return request_json(
            self._session, "GET", url,
            params=params,
            timeout=self.config['timeout_s'],
            max_attempts=self.config['max_attempts'],
            backoff_base_s=self.config['backoff_base_s'],
            sleep=self._sleep,
            label=label,
        )

    def _params(self, coordinate: Coordinates, fields: List[str]) -> Dict[str, Any]:
        return {
            'latitude': round(coordinate.lat, 4),
            'longitude': round(coordinate.lng, 4),
            'hourly': ",".join(fields),
            'forecast_days': self.config['forecast_days'],
            'timezone': 'auto',
        }

    def _atmospheric_response(self, coordinate: Coordinates) -> dict:
        key = grid_key(coordinate, self.config['response_grid_deg'])
        cached = self.atmospheric_responses.get(key)
        if cached is not None:
            return cached

        payload = self._fetch_json(
            self.config['weather_api_url'],
            self._params(coordinate, self.config['atmospheric_fields']),
            "Weather API",
        )
        _hourly_block(payload, "Weather API")
        self.atmospheric_responses.put(key, payload)
        return payload

    def _marine_response(self, coordinate: Coordinates) -> dict:
        key = grid_key(coordinate, self.config['response_grid_deg'])
        cached = self.marine_responses.get(key)
        if cached is not None:
            return cached

        payload = self._fetch_json(
            self.config['marine_api_url'],
            self._params(coordinate, self.config['marine_fields']),
            "Marine API",
        )
        _hourly_block(payload, "Marine API")
        self.marine_responses.put(key, payload)
        return payload

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_weather(self, coordinate: Coordinates, target_time: Optional[datetime] = None) -> WeatherSample:
        """
        Full weather sample (wind and fetch-adjusted waves) for a point and hour.

        Args:
            coordinate: Where
            target_time: When (defaults to now, UTC)

        Returns:
            WeatherSample

        Raises:
            ConfigurationError: invalid coordinate
            NetworkError / UpstreamError / DecodingError: atmospheric data unavailable
        """
        _validate(coordinate)
        target_time = target_time or datetime.now(timezone.utc)

        key = point_hour_key(coordinate, target_time, self.config['sample_grid_deg'])
        cached = self.samples.get(key)
        if cached is not None:
            return cached

        with ThreadPoolExecutor(max_workers=2) as pool:
            atmospheric_future = pool.submit(self._atmospheric_response, coordinate)
            marine_future = pool.submit(self._marine_response, coordinate)

            atmospheric = extract_atmospheric(atmospheric_future.result(), target_time)
            try:
                marine = extract_marine(marine_future.result(), target_time)
            except PassageError as e:
                logger.warning(f"  Warning: Marine data unavailable at ({coordinate.lat:.3f}, {coordinate.lng:.3f}): {e}")
                marine = MarineValues()

        if atmospheric.wind_speed < self.config['calm_wind_kmh']:
            # Calm: no wind-driven sea to dampen
            fetch_km = None
            wave_height = marine.wave_height
        else:
            fetch_km = calculate_fetch(coordinate, atmospheric.wind_direction)
            wave_height = combine_wave_height(marine, fetch_km)

        sample = WeatherSample(
            wind_speed=atmospheric.wind_speed,
            wind_direction=atmospheric.wind_direction,
            wind_gusts=atmospheric.wind_gusts,
            temperature=atmospheric.temperature,
            wave_height=wave_height,
            wave_direction=marine.wave_direction,
            wave_period=marine.wave_period,
            fetch_distance_km=fetch_km,
        )
        self.samples.put(key, sample)
        return sample

    def fetch_wind_only(self, coordinate: Coordinates, target_time: Optional[datetime] = None) -> WeatherSample:
        """
        Wind sample for map overlays: no marine call and no fetch model.

        A full sample already cached for the same point and hour is returned
        as is.
        """
        _validate(coordinate)
        target_time = target_time or datetime.now(timezone.utc)

        key = point_hour_key(coordinate, target_time, self.config['sample_grid_deg'])
        full = self.samples.get(key)
        if full is not None:
            return full
        cached = self.wind_samples.get(key)
        if cached is not None:
            return cached

        atmospheric = extract_atmospheric(self._atmospheric_response(coordinate), target_time)
        sample = WeatherSample(
            wind_speed=atmospheric.wind_speed,
            wind_direction=atmospheric.wind_direction,
            wind_gusts=atmospheric.wind_gusts,
            temperature=atmospheric.temperature,
        )
        self.wind_samples.put(key, sample)
        return sample

    def clear_cache(self) -> None:
        for cache in (self.atmospheric_responses, self.marine_responses, self.samples, self.wind_samples):
            cache.clear()
        logger.info("Weather caches cleared")


def sample_to_dict(sample: Optional[WeatherSample]) -> Optional[dict]:
    """Convert a WeatherSample to a dictionary for JSON response."""
    if sample is None:
        return None
    return {
        "windSpeed": round(sample.wind_speed, 1),
        "windDirection": round(sample.wind_direction),
        "windGusts": round(sample.wind_gusts, 1),
        "temperature": round(sample.temperature, 1),
        "waveHeight": round(sample.wave_height, 2) if sample.wave_height is not None else None,
        "waveDirection": sample.wave_direction,
        "wavePeriod": sample.wave_period,
        "fetchDistanceKm": sample.fetch_distance_km,
    }
