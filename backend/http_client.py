"""
HTTP helper - JSON requests with retry and error mapping

Retries on transport errors and non-200 responses with exponential
backoff (1s, 2s, 4s, ...). A 200 response whose body is not JSON raises
DecodingError straight away; retrying would not change the payload.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from errors import DecodingError, NetworkError, UpstreamError

# Set up logging
logger = logging.getLogger(__name__)


def request_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    timeout: float = 15,
    max_attempts: int = 3,
    backoff_base_s: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "API",
) -> Any:
    """
    Send a request and return the decoded JSON body.

    Args:
        session: requests session to send through
        method: "GET" or "POST"
        url: Endpoint
        params: Query string parameters
        data: Form body (POST)
        timeout: Seconds per attempt
        max_attempts: Total attempts before giving up
        backoff_base_s: Delay after the first failure; doubles each time
        sleep: Called with the delay between attempts
        label: Name used in log messages and errors

    Returns:
        Parsed JSON

    Raises:
        UpstreamError: every attempt got a non-200 status (last status kept)
        NetworkError: every attempt failed in transport
        DecodingError: a 200 response did not contain JSON
    """
    last_error: Optional[NetworkError] = None

    for attempt in range(1, max_attempts + 1):
        try:
            response = session.request(method, url, params=params, data=data, timeout=timeout)
        except requests.RequestException as e:
            last_error = NetworkError(f"{label} request failed: {e}")
        else:
            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise DecodingError(f"{label} returned invalid JSON: {e}") from e
            last_error = UpstreamError(
                f"{label} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if attempt < max_attempts:
            delay = backoff_base_s * (2 ** (attempt - 1))
            logger.warning(f"  Warning: {label} attempt {attempt}/{max_attempts} failed ({last_error}), retrying in {delay:.0f}s")
            sleep(delay)

    logger.error(f"{label} failed after {max_attempts} attempts: {last_error}")
    raise last_error
