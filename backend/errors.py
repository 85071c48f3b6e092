"""
Error types for Safe Passage

Every error raised by the backend derives from PassageError so callers
(the Lambda handler, the dev server) can map failures to HTTP responses.
"""

from typing import Optional


class PassageError(Exception):
    """Base class for all Safe Passage errors"""


class NetworkError(PassageError):
    """Transport failure or timeout talking to a remote API"""


class UpstreamError(NetworkError):
    """Remote API answered with a non-200 status"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodingError(PassageError):
    """Remote payload could not be parsed into the expected shape"""


class ConfigurationError(PassageError):
    """Invalid coordinate, settings value or other caller input"""


class NotReady(PassageError):
    """Operation is not legal in the current state"""
