#!/usr/bin/env python3
"""
本のジャンルから YouTube の音楽トラック一覧を組み立てるコアモジュール。

genre -> 検索フレーズ -> プレイリスト検索 -> プレイリスト展開
  -> (空なら動画検索フォールバック) -> 再生時間取得 -> 組み立て & フィルタ

を実行して Python 辞書で返す。
"""

from __future__ import annotations

import logging
import random
from time import perf_counter
from typing import Any, Dict, Optional

import httpx

from lib.config import (
    YOUTUBE_API_BASE,
    YOUTUBE_HTTP_TIMEOUT_S,
    YOUTUBE_MAX_CONCURRENCY,
    get_youtube_api_key,
)
from lib.youtube.assembly import assemble_tracks, effective_bounds
from lib.youtube.client import YouTubeClient
from lib.youtube.errors import ClientInputError
from lib.youtube.genres import build_search_query, genre_table_for, resolve_genre
from lib.youtube.models import CategoryQuery, MusicMode, ResolvedQuery
from lib.youtube.stages import (
    expand_playlists,
    fallback_search,
    resolve_durations,
    search_playlists,
)

# Configure logger for this module
logger = logging.getLogger(__name__)


def _ms_since(t0: float) -> int:
    return int((perf_counter() - t0) * 1000)


# =========================
# 入力の検証
# =========================


def build_category_query(
    genre: Optional[str],
    music_type: Optional[str] = "background",
    song_genre: Optional[str] = "any",
    all_durations: bool = False,
    fallback_query: Optional[str] = None,
    min_duration: Optional[int] = None,
    max_duration: Optional[int] = None,
    keywords: Optional[str] = None,
) -> CategoryQuery:
    """
    クエリパラメータを検証して CategoryQuery を作る。

    Raises:
        ClientInputError: genre 未指定 / type 不正 / duration 範囲不正
    """
    g = (genre or "").strip()
    if not g:
        raise ClientInputError("Genre parameter is required")

    t = (music_type or MusicMode.BACKGROUND.value).strip().lower()
    try:
        mode = MusicMode(t)
    except ValueError:
        raise ClientInputError(
            f"Invalid type {music_type!r}. Valid: {[m.value for m in MusicMode]}"
        ) from None

    if min_duration is not None and min_duration < 0:
        raise ClientInputError("minDuration must be >= 0")
    if max_duration is not None and max_duration < 0:
        raise ClientInputError("maxDuration must be >= 0")
    bounds = effective_bounds(mode, min_duration, max_duration)
    if bounds.min_minutes > bounds.max_minutes:
        raise ClientInputError(
            f"minDuration ({bounds.min_minutes}) must not exceed maxDuration ({bounds.max_minutes})"
        )

    return CategoryQuery(
        raw_genre=g,
        mode=mode,
        sub_genre=(song_genre or None),
        include_all_durations=bool(all_durations),
        min_minutes=min_duration,
        max_minutes=max_duration,
        keywords=(keywords or "").strip(),
        fallback_query=((fallback_query or "").strip() or None),
    )


def resolve_query(query: CategoryQuery) -> ResolvedQuery:
    """GenreResolver + QueryBuilder."""
    phrase = resolve_genre(query.raw_genre, genre_table_for(query.mode))
    bounds = effective_bounds(query.mode, query.min_minutes, query.max_minutes)
    search = build_search_query(
        phrase,
        query.mode,
        sub_genre=query.effective_sub_genre,
        keywords=query.keywords,
        min_minutes=bounds.min_minutes,
    )
    return ResolvedQuery(search_phrase=search)


# =========================
# パイプライン本体
# =========================


async def _run_pipeline(
    yt: YouTubeClient,
    query: CategoryQuery,
    rng: random.Random,
    max_concurrency: int,
) -> Dict[str, Any]:
    t0_total = perf_counter()
    perf: Dict[str, int] = {}
    meta: Dict[str, Any] = {"fallback_used": False}

    resolved = resolve_query(query)
    bounds = effective_bounds(query.mode, query.min_minutes, query.max_minutes)
    sub_genre = query.effective_sub_genre if query.mode == MusicMode.SONGS else None

    t0 = perf_counter()
    candidates = await search_playlists(yt, resolved.search_phrase)
    perf["search_ms"] = _ms_since(t0)
    meta["playlists_found"] = len(candidates)

    t0 = perf_counter()
    entries = await expand_playlists(yt, candidates, max_concurrency=max_concurrency, stats=meta)
    perf["expand_ms"] = _ms_since(t0)

    if not entries:
        t0 = perf_counter()
        raw = query.fallback_query or resolved.search_phrase
        logger.info(f"[core] no playlist entries, falling back to video search q={raw!r}")
        entries = await fallback_search(yt, raw)
        perf["fallback_ms"] = _ms_since(t0)
        meta["fallback_used"] = True
        meta["entries_fallback"] = len(entries)

    t0 = perf_counter()
    durations = await resolve_durations(yt, entries, max_concurrency=max_concurrency, stats=meta) if entries else {}
    perf["durations_ms"] = _ms_since(t0)

    t0 = perf_counter()
    tracks = assemble_tracks(
        entries,
        durations,
        query.mode,
        bounds,
        rng,
        include_all_durations=query.include_all_durations,
        sub_genre=sub_genre,
        keywords=query.keywords,
    )
    perf["assemble_ms"] = _ms_since(t0)
    perf["total_ms"] = _ms_since(t0_total)

    meta["tracks_before_filter"] = len(entries)
    meta["tracks_count"] = len(tracks)

    return {
        "tracks": tracks,
        "genre": query.raw_genre,
        "search_query": resolved.search_phrase,
        "type": query.mode.value,
        "song_genre": (query.sub_genre or "any").strip() or "any",
        "bounds": bounds,
        "all_durations": query.include_all_durations,
        "meta": meta,
        "perf": perf,
    }


async def fetch_music_tracks(
    query: CategoryQuery,
    api_key: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    rng: Optional[random.Random] = None,
    max_concurrency: int = YOUTUBE_MAX_CONCURRENCY,
) -> Dict[str, Any]:
    """
    CategoryQuery から YouTube のトラック一覧を取得する。

    http_client を渡さない場合はこの呼び出し専用の httpx.AsyncClient を作る。
    戻り値は raw dict（tracks は Track のまま）。API 向けの変換は
    music_result_to_dict() で行う。

    Raises:
        ConfigurationError: YOUTUBE_API_KEY 未設定
        UpstreamSearchError: プレイリスト検索の失敗
    """
    key = api_key or get_youtube_api_key()
    rng = rng or random.Random()

    if http_client is not None:
        yt = YouTubeClient(key, http_client, base_url=YOUTUBE_API_BASE)
        return await _run_pipeline(yt, query, rng, max_concurrency)

    timeout = httpx.Timeout(YOUTUBE_HTTP_TIMEOUT_S)
    async with httpx.AsyncClient(timeout=timeout) as http:
        yt = YouTubeClient(key, http, base_url=YOUTUBE_API_BASE)
        return await _run_pipeline(yt, query, rng, max_concurrency)


# =========================
# フロント向けのフラットな dict に変換
# =========================


def music_result_to_dict(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    fetch_music_tracks() の結果を JSON にそのまま出せる dict に変換する。

    戻り値フォーマット:
    {
      "tracks": [ {id, title, artist, duration_label, duration_seconds, ...}, ... ],
      "genre": str,
      "search_query": str,
      "type": "background" | "songs",
      "song_genre": str,
      "preferences": {min_duration, max_duration, min_seconds, max_seconds, all_durations},
      "meta": {...},
      "perf": {...},
    }
    """
    bounds = raw["bounds"]
    return {
        "tracks": [t.to_dict() for t in raw.get("tracks", [])],
        "genre": raw.get("genre"),
        "search_query": raw.get("search_query"),
        "type": raw.get("type"),
        "song_genre": raw.get("song_genre", "any"),
        "preferences": {
            "min_duration": bounds.min_minutes,
            "max_duration": bounds.max_minutes,
            "min_seconds": bounds.min_seconds,
            "max_seconds": bounds.max_seconds,
            "all_durations": bool(raw.get("all_durations")),
        },
        "meta": raw.get("meta") or {},
        "perf": raw.get("perf") or {},
    }
