"""
Network stages of the music pipeline:

search_playlists -> expand_playlists -> (fallback_search) -> resolve_durations

Only search_playlists may fail the run. Expansion, fallback and duration
lookups log their failures and carry on with whatever succeeded.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

import httpx

from lib.youtube.client import MAX_IDS_PER_VIDEOS_CALL, YouTubeClient, pick_thumbnail
from lib.youtube.errors import UpstreamSearchError, YouTubeAPIError
from lib.youtube.models import MediaEntry, PlaylistCandidate

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_PLAYLIST_CANDIDATES = 10
MAX_ENTRIES_PER_PLAYLIST = 10
MAX_FALLBACK_RESULTS = 15
MAX_DURATION_IDS = 50
DURATION_CHUNK_SIZE = MAX_IDS_PER_VIDEOS_CALL
DEFAULT_MAX_CONCURRENCY = 5

_ISO_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


async def _gather_bounded(
    factories: Sequence[Callable[[], Awaitable[T]]],
    max_concurrency: int,
) -> List[T]:
    """
    Run every factory as its own task, at most max_concurrency at a time,
    and wait for all of them. Results come back in submission order.
    """
    sem = asyncio.Semaphore(max(1, max_concurrency))

    async def _run(factory: Callable[[], Awaitable[T]]) -> T:
        async with sem:
            return await factory()

    return list(await asyncio.gather(*(_run(f) for f in factories)))


# =========================
# Playlist search
# =========================


async def search_playlists(
    client: YouTubeClient,
    query: str,
    limit: int = MAX_PLAYLIST_CANDIDATES,
) -> List[PlaylistCandidate]:
    """Discover candidate playlists. Any failure here is fatal (UpstreamSearchError)."""
    try:
        items = await client.search_playlists(query, max_results=limit)
    except YouTubeAPIError as e:
        logger.error(f"[YT search] playlist search failed status={e.status}: {e}")
        raise UpstreamSearchError("Failed to fetch music", meta={"stage": "playlist_search", "status": e.status}) from e
    except httpx.HTTPError as e:
        logger.error(f"[YT search] playlist search transport error: {e!r}")
        raise UpstreamSearchError("Failed to fetch music", meta={"stage": "playlist_search", "status": None}) from e

    candidates: List[PlaylistCandidate] = []
    for item in items:
        ident = item.get("id")
        playlist_id = ident.get("playlistId") if isinstance(ident, dict) else None
        if playlist_id:
            candidates.append(PlaylistCandidate(playlist_id=playlist_id))
        if len(candidates) >= limit:
            break
    logger.info(f"[YT search] query={query!r} playlists={len(candidates)}")
    return candidates


# =========================
# Playlist expansion
# =========================


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_playlist_item(item: Dict[str, Any]) -> Optional[MediaEntry]:
    """playlistItems resource -> MediaEntry, or None when no video id can be found."""
    snippet = _as_dict(item.get("snippet"))
    details = _as_dict(item.get("contentDetails"))
    video_id = details.get("videoId") or _as_dict(snippet.get("resourceId")).get("videoId")
    if not video_id:
        return None
    return MediaEntry(
        item_id=video_id,
        title_text=snippet.get("title") or "",
        owner_text=snippet.get("videoOwnerChannelTitle") or snippet.get("channelTitle") or "",
        thumbnail_url=pick_thumbnail(snippet),
    )


async def _fetch_playlist_entries(
    client: YouTubeClient,
    candidate: PlaylistCandidate,
    limit: int,
) -> Optional[List[MediaEntry]]:
    try:
        items = await client.playlist_items(candidate.playlist_id, max_results=limit)
        entries = [e for e in (parse_playlist_item(it) for it in items) if e is not None]
    except Exception as e:
        logger.warning(f"[YT expand] playlist={candidate.playlist_id} failed, skipping: {e!r}")
        return None
    return entries[:limit]


async def expand_playlists(
    client: YouTubeClient,
    candidates: Sequence[PlaylistCandidate],
    per_playlist: int = MAX_ENTRIES_PER_PLAYLIST,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    stats: Optional[Dict[str, Any]] = None,
) -> List[MediaEntry]:
    """
    Fetch members of every candidate concurrently and concatenate them in
    discovery order. A failed playlist contributes zero entries.
    """
    results = await _gather_bounded(
        [lambda c=c: _fetch_playlist_entries(client, c, per_playlist) for c in candidates],
        max_concurrency,
    )

    entries: List[MediaEntry] = []
    failures = 0
    for res in results:
        if res is None:
            failures += 1
            continue
        entries.extend(res)

    if stats is not None:
        stats["playlists_expanded"] = len(candidates) - failures
        stats["playlist_failures"] = failures
        stats["entries_expanded"] = len(entries)
    logger.info(f"[YT expand] playlists={len(candidates)} failed={failures} entries={len(entries)}")
    return entries


# =========================
# Fallback video search
# =========================


def parse_search_video(item: Dict[str, Any]) -> Optional[MediaEntry]:
    """search#result (type=video) -> MediaEntry, or None without a video id."""
    ident = item.get("id")
    video_id = ident.get("videoId") if isinstance(ident, dict) else None
    if not video_id:
        return None
    snippet = _as_dict(item.get("snippet"))
    return MediaEntry(
        item_id=video_id,
        title_text=snippet.get("title") or "",
        owner_text=snippet.get("channelTitle") or "",
        thumbnail_url=pick_thumbnail(snippet),
    )


async def fallback_search(
    client: YouTubeClient,
    raw_query: str,
    limit: int = MAX_FALLBACK_RESULTS,
) -> List[MediaEntry]:
    """Direct video search used when no playlist produced entries. Never raises."""
    try:
        items = await client.search_videos(raw_query, max_results=limit)
        entries = [e for e in (parse_search_video(it) for it in items) if e is not None][:limit]
    except Exception as e:
        logger.warning(f"[YT fallback] video search failed for query={raw_query!r}: {e!r}")
        return []
    logger.info(f"[YT fallback] query={raw_query!r} entries={len(entries)}")
    return entries


# =========================
# Duration resolution
# =========================


def parse_iso_duration(value: Any) -> int:
    """
    'PT1H2M3S' -> 3723. Missing components count as zero.
    Anything that does not match (including 'P1D', 'P0D', None) -> 0.
    """
    if not isinstance(value, str):
        return 0
    m = _ISO_DURATION_RE.match(value.strip())
    if not m:
        logger.debug(f"[YT durations] unparseable duration {value!r}, using 0")
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in m.groups())
    return hours * 3600 + minutes * 60 + seconds


def unique_item_ids(entries: Iterable[MediaEntry], cap: Optional[int] = MAX_DURATION_IDS) -> List[str]:
    """First-seen order, duplicates collapsed, truncated to cap (None = no cap)."""
    seen: Dict[str, None] = {}
    for e in entries:
        if not e.item_id or e.item_id in seen:
            continue
        if cap is not None and len(seen) >= cap:
            break
        seen[e.item_id] = None
    return list(seen)


def chunked(values: Sequence[T], size: int) -> List[List[T]]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(values[i:i + size]) for i in range(0, len(values), size)]


async def _fetch_duration_chunk(client: YouTubeClient, ids: List[str]) -> Dict[str, int]:
    try:
        items = await client.videos(ids)
        found = _parse_durations(items, set(ids))
    except Exception as e:
        logger.warning(f"[YT durations] chunk of {len(ids)} ids failed, using estimates: {e!r}")
        return {}
    return found


def _parse_durations(items: List[Dict[str, Any]], wanted: set) -> Dict[str, int]:
    found: Dict[str, int] = {}
    for item in items:
        vid = item.get("id")
        if not isinstance(vid, str) or vid not in wanted:
            continue
        details = _as_dict(item.get("contentDetails"))
        found[vid] = parse_iso_duration(details.get("duration"))
    return found


async def resolve_durations(
    client: YouTubeClient,
    entries: Sequence[MediaEntry],
    max_ids: Optional[int] = MAX_DURATION_IDS,
    chunk_size: int = DURATION_CHUNK_SIZE,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    stats: Optional[Dict[str, Any]] = None,
) -> Dict[str, int]:
    """
    Look up durations (seconds) for the unique ids in entries.
    Ids whose chunk failed, or that the API did not return, are absent.
    The returned dict iterates in first-seen id order.
    """
    ids = unique_item_ids(entries, cap=max_ids)
    chunks = chunked(ids, chunk_size) if ids else []
    results = await _gather_bounded(
        [lambda ch=ch: _fetch_duration_chunk(client, ch) for ch in chunks],
        max_concurrency,
    )

    merged: Dict[str, int] = {}
    for part in results:
        merged.update(part)
    durations = {i: merged[i] for i in ids if i in merged}

    if stats is not None:
        stats["duration_ids_requested"] = len(ids)
        stats["duration_chunks"] = len(chunks)
        stats["durations_resolved"] = len(durations)
    logger.info(f"[YT durations] ids={len(ids)} chunks={len(chunks)} resolved={len(durations)}")
    return durations
