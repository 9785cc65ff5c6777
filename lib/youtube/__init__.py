"""
YouTube-backed music resolution for book genres.

Public API:
  - resolve_genre(raw_genre, table) -> str
  - build_search_query(phrase, mode, ...) -> str
  - search_playlists / expand_playlists / fallback_search / resolve_durations
  - assemble_tracks(entries, durations, mode, bounds, rng, ...) -> list[Track]
"""
from lib.youtube.assembly import (
    assemble_tracks,
    effective_bounds,
    filter_by_keywords,
    format_duration,
)
from lib.youtube.client import YouTubeClient
from lib.youtube.errors import (
    ClientInputError,
    ConfigurationError,
    MusicPipelineError,
    UpstreamSearchError,
    YouTubeAPIError,
)
from lib.youtube.genres import build_search_query, genre_table_for, resolve_genre
from lib.youtube.models import (
    CategoryQuery,
    DurationBounds,
    MediaEntry,
    MusicMode,
    PlaylistCandidate,
    ResolvedQuery,
    Track,
)
from lib.youtube.stages import (
    expand_playlists,
    fallback_search,
    parse_iso_duration,
    resolve_durations,
    search_playlists,
)

__all__ = [
    "assemble_tracks",
    "effective_bounds",
    "filter_by_keywords",
    "format_duration",
    "YouTubeClient",
    "ClientInputError",
    "ConfigurationError",
    "MusicPipelineError",
    "UpstreamSearchError",
    "YouTubeAPIError",
    "build_search_query",
    "genre_table_for",
    "resolve_genre",
    "CategoryQuery",
    "DurationBounds",
    "MediaEntry",
    "MusicMode",
    "PlaylistCandidate",
    "ResolvedQuery",
    "Track",
    "expand_playlists",
    "fallback_search",
    "parse_iso_duration",
    "resolve_durations",
    "search_playlists",
]
