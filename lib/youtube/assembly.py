"""
Track assembly and filtering.

Tracks whose duration could not be looked up get a random but plausible
duration (see estimate_duration_seconds). The random source is injectable so
tests can pin it down.
"""
from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence

from lib.youtube.client import watch_url
from lib.youtube.models import DurationBounds, MediaEntry, MusicMode, Track

logger = logging.getLogger(__name__)

DEFAULT_BOUNDS: Dict[MusicMode, DurationBounds] = {
    MusicMode.BACKGROUND: DurationBounds(min_minutes=30, max_minutes=240),
    MusicMode.SONGS: DurationBounds(min_minutes=0, max_minutes=10),
}

# Upper cap (minutes) for estimated background durations
BACKGROUND_ESTIMATE_CAP_MINUTES = 60
SONG_ESTIMATE_MINUTES = (2, 4)


def effective_bounds(
    mode: MusicMode,
    min_minutes: Optional[int] = None,
    max_minutes: Optional[int] = None,
) -> DurationBounds:
    default = DEFAULT_BOUNDS[mode]
    return DurationBounds(
        min_minutes=default.min_minutes if min_minutes is None else min_minutes,
        max_minutes=default.max_minutes if max_minutes is None else max_minutes,
    )


def format_duration(total_seconds: int) -> str:
    """125 -> '2:05', 3725 -> '1:02:05'"""
    total_seconds = max(0, int(total_seconds))
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def estimate_duration_seconds(mode: MusicMode, bounds: DurationBounds, rng: random.Random) -> int:
    """
    Background: [max(1, min), min(max, 60)] minutes, plus 0-59 s.
    Songs: [2, 4] minutes, plus 0-59 s.
    """
    if mode == MusicMode.BACKGROUND:
        lo = max(1, bounds.min_minutes)
        hi = min(bounds.max_minutes, BACKGROUND_ESTIMATE_CAP_MINUTES)
        # min above the cap: estimate at the minimum
        if hi < lo:
            hi = lo
    else:
        lo, hi = SONG_ESTIMATE_MINUTES
    return rng.randint(lo, hi) * 60 + rng.randint(0, 59)


def build_tracks(
    entries: Sequence[MediaEntry],
    durations: Mapping[str, int],
    mode: MusicMode,
    bounds: DurationBounds,
    rng: random.Random,
    sub_genre: Optional[str] = None,
) -> List[Track]:
    """One Track per entry, in entry order. The first one is marked is_first."""
    tracks: List[Track] = []
    estimated = 0
    for idx, entry in enumerate(entries):
        seconds = durations.get(entry.item_id, 0)
        if seconds <= 0:
            seconds = estimate_duration_seconds(mode, bounds, rng)
            estimated += 1
        tracks.append(Track(
            id=entry.item_id,
            title=entry.title_text,
            artist=entry.owner_text,
            duration_label=format_duration(seconds),
            duration_seconds=seconds,
            thumbnail_url=entry.thumbnail_url,
            external_url=watch_url(entry.item_id),
            is_first=(idx == 0),
            mode=mode,
            sub_genre=sub_genre,
        ))
    if estimated:
        logger.info(f"[assembly] estimated durations for {estimated}/{len(tracks)} tracks")
    return tracks


def filter_by_duration(tracks: Sequence[Track], bounds: DurationBounds) -> List[Track]:
    """Drop zero-length tracks and tracks outside [min, max] (inclusive)."""
    return [
        t for t in tracks
        if t.duration_seconds > 0 and bounds.min_seconds <= t.duration_seconds <= bounds.max_seconds
    ]


def filter_by_sub_genre(tracks: Sequence[Track], sub_genre: Optional[str]) -> List[Track]:
    """Keep tracks whose title or artist contains sub_genre (case-insensitive)."""
    if not sub_genre:
        return list(tracks)
    token = sub_genre.lower()
    return [t for t in tracks if token in t.title.lower() or token in t.artist.lower()]


def filter_by_keywords(tracks: Sequence[Track], keywords: str) -> List[Track]:
    """Keep tracks whose "title artist" text contains every whitespace-separated keyword (case-insensitive)."""
    tokens = (keywords or "").lower().split()
    if not tokens:
        return list(tracks)
    return [t for t in tracks if all(tok in f"{t.title} {t.artist}".lower() for tok in tokens)]


def assemble_tracks(
    entries: Sequence[MediaEntry],
    durations: Mapping[str, int],
    mode: MusicMode,
    bounds: DurationBounds,
    rng: random.Random,
    include_all_durations: bool = False,
    sub_genre: Optional[str] = None,
    keywords: str = "",
) -> List[Track]:
    """
    build_tracks + filters. sub_genre must already be normalized (None for 'any').
    keywords applies in both modes.
    is_first ends up on the first track that survives filtering.
    """
    tracks = build_tracks(entries, durations, mode, bounds, rng, sub_genre=sub_genre)
    if not include_all_durations:
        tracks = filter_by_duration(tracks, bounds)
    if mode == MusicMode.SONGS:
        tracks = filter_by_sub_genre(tracks, sub_genre)
    tracks = filter_by_keywords(tracks, keywords)
    return [replace(t, is_first=(i == 0)) for i, t in enumerate(tracks)]
