"""
Error taxonomy for the music pipeline.

Only ClientInputError, ConfigurationError and UpstreamSearchError ever reach
the route. Single playlist / duration chunk failures are logged and absorbed
by the stage that hit them.
"""
from __future__ import annotations


class MusicPipelineError(Exception):
    """Base class for every error raised by the music pipeline."""


class ClientInputError(MusicPipelineError):
    """A request parameter is missing or invalid."""


class ConfigurationError(MusicPipelineError):
    """Server-side configuration (API credential) is missing."""


class YouTubeAPIError(MusicPipelineError):
    """A YouTube Data API call answered with a non-success status or an unusable body."""

    def __init__(self, endpoint: str, status: int | None, message: str = ""):
        super().__init__(f"YouTube {endpoint} failed (status={status}) {message}".strip())
        self.endpoint = endpoint
        self.status = status


class UpstreamSearchError(MusicPipelineError):
    """The playlist search failed; carries meta for diagnostics."""

    def __init__(self, message: str, meta: dict | None = None):
        super().__init__(message)
        self.meta = meta or {}
