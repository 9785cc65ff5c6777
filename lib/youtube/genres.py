"""
Book genre -> YouTube search phrase mapping and search query composition.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Optional

from lib.youtube.models import MusicMode

DEFAULT_GENRE_KEY = "default"

# Ambient / instrumental phrasing for background mode
BACKGROUND_GENRE_PHRASES: Mapping[str, str] = MappingProxyType({
    "Fiction": "ambient lo-fi study music",
    "Romance": "romantic piano instrumental",
    "Science Fiction": "synthwave cyberpunk ambient",
    "Fantasy": "epic fantasy orchestral",
    "Mystery": "dark mysterious ambient",
    "Thriller": "suspenseful cinematic",
    "Horror": "dark horror ambient",
    "Historical Fiction": "classical period music",
    "Young Adult Fiction": "indie instrumental",
    "Biography": "inspiring instrumental",
    "Self-Help": "calm meditation music",
    "Business": "focus productivity music",
    "Science": "ambient space music",
    "Philosophy": "contemplative classical",
    "Poetry": "emotional piano",
    "Drama": "emotional cinematic",
    "Adventure": "epic adventure orchestral",
    "Crime": "noir jazz",
    "Dystopian": "dark electronic ambient",
    "Paranormal": "ethereal ambient",
    "Contemporary": "modern indie instrumental",
    "Literary Fiction": "sophisticated jazz",
    "Classics": "timeless classical",
    DEFAULT_GENRE_KEY: "ambient reading music",
})

# Vocal song phrasing for songs mode
SONG_GENRE_PHRASES: Mapping[str, str] = MappingProxyType({
    "Fiction": "indie pop songs",
    "Romance": "love songs romantic playlist",
    "Science Fiction": "electronic pop songs",
    "Fantasy": "epic pop songs",
    "Mystery": "alternative rock songs",
    "Thriller": "intense rock songs",
    "Horror": "dark alternative songs",
    "Historical Fiction": "classic songs",
    "Young Adult Fiction": "pop hits playlist",
    "Biography": "inspiring pop songs",
    "Self-Help": "uplifting pop songs",
    "Business": "motivational songs",
    "Science": "electronic songs",
    "Philosophy": "indie folk songs",
    "Poetry": "emotional ballads",
    "Drama": "powerful ballads",
    "Adventure": "energetic pop songs",
    "Crime": "rock songs",
    "Dystopian": "alternative pop songs",
    "Paranormal": "ethereal pop songs",
    "Contemporary": "modern pop hits",
    "Literary Fiction": "indie songs",
    "Classics": "timeless songs",
    DEFAULT_GENRE_KEY: "pop songs playlist",
})

BACKGROUND_PLAYLIST_HINT = "playlist"
BACKGROUND_EXTENDED_HINT = "long version extended"
# Background requests asking for at least this many minutes get the extended hint
EXTENDED_HINT_MIN_MINUTES = 10
SONGS_PLAYLIST_HINT = "playlist"


def genre_table_for(mode: MusicMode) -> Mapping[str, str]:
    return BACKGROUND_GENRE_PHRASES if mode == MusicMode.BACKGROUND else SONG_GENRE_PHRASES


def resolve_genre(raw_genre: str, table: Mapping[str, str]) -> str:
    """
    Resolve a free-text genre against a phrase table. Never raises.

    Order:
    1. exact key match (case-insensitive)
    2. first key (table order) where key contains input or input contains key
    3. the table's default entry
    """
    needle = (raw_genre or "").strip().lower()
    if needle:
        for key, phrase in table.items():
            if key != DEFAULT_GENRE_KEY and key.lower() == needle:
                return phrase

        for key, phrase in table.items():
            if key == DEFAULT_GENRE_KEY:
                continue
            k = key.lower()
            if k in needle or needle in k:
                return phrase

    return table[DEFAULT_GENRE_KEY]


def build_search_query(
    phrase: str,
    mode: MusicMode,
    sub_genre: Optional[str] = None,
    keywords: str = "",
    min_minutes: Optional[int] = None,
) -> str:
    """
    Compose the final search string:
    <phrase> [keywords] <mode hints> [sub_genre (songs only)]

    sub_genre is expected to be already normalized (None when 'any').
    A mode hint that already appears as a whole word (e.g. the "playlist" in
    "pop songs playlist") is not appended a second time.
    """
    parts = [phrase.strip()]
    if keywords and keywords.strip():
        parts.append(keywords.strip())

    if mode == MusicMode.BACKGROUND:
        _append_hint(parts, BACKGROUND_PLAYLIST_HINT)
        if min_minutes is None or min_minutes >= EXTENDED_HINT_MIN_MINUTES:
            _append_hint(parts, BACKGROUND_EXTENDED_HINT)
    else:
        _append_hint(parts, SONGS_PLAYLIST_HINT)
        if sub_genre:
            parts.append(sub_genre.strip())

    return " ".join(p for p in parts if p)


def _append_hint(parts: List[str], hint: str) -> None:
    # phrases like "pop songs playlist" already carry the hint
    words = " ".join(parts).lower().split()
    if f" {hint.lower()} " not in f" {' '.join(words)} ":
        parts.append(hint)
