import unittest

import httpx

from lib.youtube.client import YouTubeClient
from lib.youtube.errors import UpstreamSearchError
from lib.youtube.models import PlaylistCandidate
from lib.youtube.stages import (
    expand_playlists,
    fallback_search,
    parse_playlist_item,
    search_playlists,
)

from youtube_fakes import BASE, FakeYouTube


class PlaylistSearchTests(unittest.IsolatedAsyncioTestCase):
    async def test_returns_candidates_in_order_capped_at_ten(self):
        fake = FakeYouTube(playlists=[f"PL{i}" for i in range(12)])
        async with fake.http_client() as http:
            found = await search_playlists(YouTubeClient("k", http, base_url=BASE), "noir jazz playlist")

        self.assertEqual([c.playlist_id for c in found], [f"PL{i}" for i in range(10)])
        params = fake.calls("search")[0].url.params
        self.assertEqual(params["type"], "playlist")
        self.assertEqual(params["maxResults"], "10")
        self.assertEqual(params["q"], "noir jazz playlist")
        self.assertEqual(params["key"], "k")

    async def test_non_success_status_is_fatal(self):
        fake = FakeYouTube(search_status=403)
        async with fake.http_client() as http:
            with self.assertRaises(UpstreamSearchError) as ctx:
                await search_playlists(YouTubeClient("k", http, base_url=BASE), "q")
        self.assertEqual(ctx.exception.meta["status"], 403)

    async def test_transport_error_is_fatal(self):
        def boom(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(boom)) as http:
            with self.assertRaises(UpstreamSearchError):
                await search_playlists(YouTubeClient("k", http, base_url=BASE), "q")


class PlaylistExpansionTests(unittest.IsolatedAsyncioTestCase):
    async def test_order_follows_discovery_not_completion(self):
        fake = FakeYouTube(
            playlist_items={
                "PL1": [("a1", "A1", "X"), ("a2", "A2", "X")],
                "PL2": [("b1", "B1", "Y")],
            },
            delays={"PL1": 0.05},
        )
        async with fake.http_client() as http:
            entries = await expand_playlists(
                YouTubeClient("k", http, base_url=BASE),
                [PlaylistCandidate("PL1"), PlaylistCandidate("PL2")],
            )
        self.assertEqual([e.item_id for e in entries], ["a1", "a2", "b1"])
        self.assertEqual(entries[0].owner_text, "X")
        self.assertEqual(entries[0].thumbnail_url, "https://i.ytimg.com/vi/a1/hqdefault.jpg")

    async def test_failed_playlists_contribute_nothing(self):
        fake = FakeYouTube(
            playlist_items={
                "PL1": [("a1", "A1", "X")],
                "PL2": 500,
                "PL3": [("c1", "C1", "Z")],
                "PL4": 404,
                "PL5": [("e1", "E1", "W")],
            },
        )
        stats = {}
        async with fake.http_client() as http:
            entries = await expand_playlists(
                YouTubeClient("k", http, base_url=BASE),
                [PlaylistCandidate(f"PL{i}") for i in range(1, 6)],
                stats=stats,
            )
        self.assertEqual([e.item_id for e in entries], ["a1", "c1", "e1"])
        self.assertEqual(stats["playlist_failures"], 2)
        self.assertEqual(stats["playlists_expanded"], 3)

    async def test_entries_capped_per_playlist(self):
        fake = FakeYouTube(playlist_items={"PL1": [(f"v{i}", "T", "O") for i in range(14)]})
        async with fake.http_client() as http:
            entries = await expand_playlists(YouTubeClient("k", http, base_url=BASE), [PlaylistCandidate("PL1")])
        self.assertEqual(len(entries), 10)

    async def test_single_concurrency_slot_still_completes(self):
        fake = FakeYouTube(playlist_items={f"PL{i}": [(f"v{i}", "T", "O")] for i in range(4)})
        async with fake.http_client() as http:
            entries = await expand_playlists(
                YouTubeClient("k", http, base_url=BASE),
                [PlaylistCandidate(f"PL{i}") for i in range(4)],
                max_concurrency=1,
            )
        self.assertEqual([e.item_id for e in entries], ["v0", "v1", "v2", "v3"])


class ParsePlaylistItemTests(unittest.TestCase):
    def test_item_without_video_id_dropped(self):
        self.assertIsNone(parse_playlist_item({"snippet": {"title": "Deleted video"}}))

    def test_resource_id_used_when_content_details_missing(self):
        entry = parse_playlist_item({
            "snippet": {"title": "T", "channelTitle": "C", "resourceId": {"videoId": "vid"}},
        })
        self.assertEqual(entry.item_id, "vid")
        self.assertEqual(entry.owner_text, "C")
        self.assertIsNone(entry.thumbnail_url)


class FallbackSearchTests(unittest.IsolatedAsyncioTestCase):
    async def test_returns_videos(self):
        fake = FakeYouTube(fallback_videos=[("v1", "Song", "Chan"), ("v2", "Other", "Chan2")])
        async with fake.http_client() as http:
            entries = await fallback_search(YouTubeClient("k", http, base_url=BASE), "romance music")
        self.assertEqual([e.item_id for e in entries], ["v1", "v2"])
        params = fake.calls("search")[0].url.params
        self.assertEqual(params["type"], "video")
        self.assertEqual(params["videoCategoryId"], "10")
        self.assertEqual(params["maxResults"], "15")

    async def test_failure_returns_empty(self):
        fake = FakeYouTube(fallback_status=500)
        async with fake.http_client() as http:
            entries = await fallback_search(YouTubeClient("k", http, base_url=BASE), "q")
        self.assertEqual(entries, [])

    async def test_malformed_snippet_does_not_escape(self):
        def handler(request):
            return httpx.Response(200, json={"items": [
                {"id": {"videoId": "v1"}, "snippet": "oops"},
                {"id": "not-a-dict"},
            ]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            entries = await fallback_search(YouTubeClient("k", http, base_url=BASE), "q")
        self.assertEqual([e.item_id for e in entries], ["v1"])
        self.assertEqual(entries[0].title_text, "")
        self.assertIsNone(entries[0].thumbnail_url)


if __name__ == "__main__":
    unittest.main()
