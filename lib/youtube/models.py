"""
Data model for one music resolution run. Everything here is request-scoped.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MusicMode(str, Enum):
    """
    What kind of music the caller wants.
    BACKGROUND: long ambient / instrumental mixes
    SONGS: regular vocal songs
    """
    BACKGROUND = "background"
    SONGS = "songs"


ANY_SUB_GENRE = "any"


@dataclass(frozen=True)
class CategoryQuery:
    """Pipeline input: a book genre plus the caller's music preferences."""
    raw_genre: str
    mode: MusicMode = MusicMode.BACKGROUND
    sub_genre: Optional[str] = None
    include_all_durations: bool = False
    # Minutes. None -> mode default
    min_minutes: Optional[int] = None
    max_minutes: Optional[int] = None
    keywords: str = ""
    fallback_query: Optional[str] = None

    @property
    def effective_sub_genre(self) -> Optional[str]:
        """sub_genre stripped, or None when unset / 'any'."""
        s = (self.sub_genre or "").strip()
        if not s or s.lower() == ANY_SUB_GENRE:
            return None
        return s


@dataclass(frozen=True)
class ResolvedQuery:
    search_phrase: str


@dataclass(frozen=True)
class PlaylistCandidate:
    playlist_id: str


@dataclass(frozen=True)
class MediaEntry:
    item_id: str
    title_text: str
    owner_text: str
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class DurationBounds:
    """Inclusive duration window in minutes."""
    min_minutes: int
    max_minutes: int

    @property
    def min_seconds(self) -> int:
        return self.min_minutes * 60

    @property
    def max_seconds(self) -> int:
        return self.max_minutes * 60


@dataclass(frozen=True)
class Track:
    """Final output record. duration_label is always the rendering of duration_seconds."""
    id: str
    title: str
    artist: str
    duration_label: str
    duration_seconds: int
    thumbnail_url: Optional[str]
    external_url: str
    is_first: bool
    mode: MusicMode
    sub_genre: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "duration_label": self.duration_label,
            "duration_seconds": self.duration_seconds,
            "thumbnail_url": self.thumbnail_url,
            "external_url": self.external_url,
            "is_first": self.is_first,
            "mode": self.mode.value,
            "sub_genre": self.sub_genre,
        }
