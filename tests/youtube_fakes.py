"""In-memory stand-in for the YouTube Data API, served through httpx.MockTransport."""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple, Union

import httpx

BASE = "https://www.googleapis.com/youtube/v3"

# (video_id, title, channel)
Video = Tuple[str, str, str]


def playlist_item(video_id: str, title: str, owner: str) -> dict:
    return {
        "snippet": {
            "title": title,
            "videoOwnerChannelTitle": owner,
            "channelTitle": "Playlist Curator",
            "resourceId": {"kind": "youtube#video", "videoId": video_id},
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
        },
        "contentDetails": {"videoId": video_id},
    }


def search_video(video_id: str, title: str, owner: str) -> dict:
    return {
        "id": {"kind": "youtube#video", "videoId": video_id},
        "snippet": {
            "title": title,
            "channelTitle": owner,
            "thumbnails": {"medium": {"url": f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"}},
        },
    }


class FakeYouTube:
    """
    playlist_items values may be a list of videos or an int HTTP status
    (that playlist then fails). delays (seconds) per playlist let tests
    shuffle completion order.
    """

    def __init__(
        self,
        playlists: Optional[List[str]] = None,
        playlist_items: Optional[Dict[str, Union[List[Video], int]]] = None,
        durations: Optional[Dict[str, str]] = None,
        fallback_videos: Optional[List[Video]] = None,
        search_status: int = 200,
        videos_status: int = 200,
        fallback_status: int = 200,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.playlists = playlists or []
        self.playlist_items = playlist_items or {}
        self.durations = durations or {}
        self.fallback_videos = fallback_videos or []
        self.search_status = search_status
        self.videos_status = videos_status
        self.fallback_status = fallback_status
        self.delays = delays or {}
        self.requests: List[httpx.Request] = []

    def calls(self, endpoint: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/" + endpoint)]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        endpoint = request.url.path.rsplit("/", 1)[-1]

        if endpoint == "search" and params.get("type") == "playlist":
            if self.search_status != 200:
                return httpx.Response(self.search_status, json={"error": {"code": self.search_status}})
            items = [{"id": {"kind": "youtube#playlist", "playlistId": p}} for p in self.playlists]
            return httpx.Response(200, json={"items": items})

        if endpoint == "search" and params.get("type") == "video":
            if self.fallback_status != 200:
                return httpx.Response(self.fallback_status, json={"error": {}})
            return httpx.Response(200, json={"items": [search_video(*v) for v in self.fallback_videos]})

        if endpoint == "playlistItems":
            pid = params.get("playlistId")
            if pid in self.delays:
                await asyncio.sleep(self.delays[pid])
            found = self.playlist_items.get(pid, [])
            if isinstance(found, int):
                return httpx.Response(found, json={"error": {"code": found}})
            return httpx.Response(200, json={"items": [playlist_item(*v) for v in found]})

        if endpoint == "videos":
            if self.videos_status != 200:
                return httpx.Response(self.videos_status, json={"error": {}})
            ids = [i for i in params.get("id", "").split(",") if i]
            items = [
                {"id": i, "contentDetails": {"duration": self.durations[i]}}
                for i in ids if i in self.durations
            ]
            return httpx.Response(200, json={"items": items})

        return httpx.Response(404, json={"error": "unknown endpoint"})

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
