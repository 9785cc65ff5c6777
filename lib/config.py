"""Centralized runtime settings (environment variables & credential lookup)."""
from __future__ import annotations

import os

from lib.youtube.errors import ConfigurationError

# YouTube Data API settings
YOUTUBE_API_BASE = os.getenv("YOUTUBE_API_BASE", "https://www.googleapis.com/youtube/v3").rstrip("/")
YOUTUBE_HTTP_TIMEOUT_S = float(os.getenv("YOUTUBE_HTTP_TIMEOUT_S", "10"))
YOUTUBE_MAX_CONCURRENCY = max(1, int(os.getenv("YOUTUBE_MAX_CONCURRENCY", "5")))


def get_youtube_api_key() -> str:
    """
    Read the YouTube API key at call time so a key added to the environment
    after startup is picked up without a restart.
    """
    api_key = (os.getenv("YOUTUBE_API_KEY") or "").strip()
    if not api_key:
        raise ConfigurationError("YouTube API key not configured")
    return api_key
