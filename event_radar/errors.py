from __future__ import annotations

from typing import Optional


class EventRadarError(Exception):
    pass


class ConfigurationError(EventRadarError):
    """A required API key or setting is missing."""


class UpstreamError(EventRadarError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(EventRadarError):
    """The language-model API kept answering 429 after all retries."""

    def __init__(self, message: str = "Rate limit reached. Please wait a minute and try again."):
        super().__init__(message)
        self.status_code = 429


class ParseError(EventRadarError):
    """Model output contained no recoverable JSON array."""
