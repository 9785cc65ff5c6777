"""
Thin async client for the three YouTube Data API v3 operations the pipeline
uses: search, playlistItems and videos.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import httpx

from lib.youtube.errors import YouTubeAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://www.googleapis.com/youtube/v3"
# videos.list accepts at most 50 ids per call
MAX_IDS_PER_VIDEOS_CALL = 50
MUSIC_CATEGORY_ID = "10"


class YouTubeClient:
    """
    Wraps a shared httpx.AsyncClient. The caller owns the httpx client's
    lifetime (and its timeout settings).
    """

    def __init__(self, api_key: str, http: httpx.AsyncClient, base_url: str = DEFAULT_API_BASE):
        self._api_key = api_key
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}/{endpoint}"
        # key is appended last and never logged
        logger.debug(f"[YT api] GET {endpoint} params={params}")
        resp = await self._http.get(url, params={**params, "key": self._api_key})
        if not resp.is_success:
            snippet = (resp.text or "")[:200]
            raise YouTubeAPIError(endpoint, resp.status_code, snippet)
        try:
            data = resp.json()
        except ValueError as e:
            raise YouTubeAPIError(endpoint, resp.status_code, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise YouTubeAPIError(endpoint, resp.status_code, "unexpected JSON body")
        return data

    async def search_playlists(self, query: str, max_results: int) -> List[Dict[str, Any]]:
        data = await self._get("search", {
            "part": "snippet",
            "type": "playlist",
            "q": query,
            "maxResults": max_results,
        })
        return _items(data)

    async def search_videos(self, query: str, max_results: int) -> List[Dict[str, Any]]:
        data = await self._get("search", {
            "part": "snippet",
            "type": "video",
            "videoCategoryId": MUSIC_CATEGORY_ID,
            "q": query,
            "maxResults": max_results,
        })
        return _items(data)

    async def playlist_items(self, playlist_id: str, max_results: int) -> List[Dict[str, Any]]:
        data = await self._get("playlistItems", {
            "part": "snippet,contentDetails",
            "playlistId": playlist_id,
            "maxResults": max_results,
        })
        return _items(data)

    async def videos(self, video_ids: Sequence[str]) -> List[Dict[str, Any]]:
        if len(video_ids) > MAX_IDS_PER_VIDEOS_CALL:
            raise ValueError(f"videos() accepts at most {MAX_IDS_PER_VIDEOS_CALL} ids, got {len(video_ids)}")
        data = await self._get("videos", {
            "part": "contentDetails",
            "id": ",".join(video_ids),
            "maxResults": len(video_ids),
        })
        return _items(data)


def _items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = data.get("items") or []
    if not isinstance(items, list):
        return []
    return [it for it in items if isinstance(it, dict)]


def pick_thumbnail(snippet: Dict[str, Any]) -> str | None:
    """high > medium > default"""
    thumbs = snippet.get("thumbnails") or {}
    if not isinstance(thumbs, dict):
        return None
    for size in ("high", "medium", "default"):
        t = thumbs.get(size)
        if isinstance(t, dict) and t.get("url"):
            return t["url"]
    return None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
