#!/usr/bin/env python3
"""
Music endpoint latency diagnosis tool.
Calls a running backend and prints the per-stage breakdown from `perf`.

Usage:
    python tools/diagnose_music_latency.py [BACKEND_URL]
"""
import sys
import time
import requests

BACKEND_URL = sys.argv[1] if len(sys.argv) > 1 else "http://127.0.0.1:8000"

CASES = [
    ("TEST 1: Romance / background", {"genre": "Romance", "type": "background"}),
    ("TEST 2: Crime / songs / jazz", {"genre": "Crime", "type": "songs", "songGenre": "jazz"}),
    ("TEST 3: Unknown genre / all durations", {"genre": "Cookbooks", "allDurations": "true"}),
]

STAGES = ["search_ms", "expand_ms", "fallback_ms", "durations_ms", "assemble_ms"]


def measure_request(params, label):
    """Measure a single /api/music request."""
    print(f"\n{'='*60}")
    print(f"{label}")
    print(f"{'='*60}")

    t0 = time.time()
    try:
        response = requests.get(f"{BACKEND_URL}/api/music", params=params, timeout=120)
        elapsed_ms = (time.time() - t0) * 1000
        data = response.json()
    except Exception as e:
        print(f"\n❌ Error: {e}")
        return None

    if response.status_code != 200:
        print(f"\n❌ HTTP {response.status_code}: {data.get('error')}")
        return None

    perf = data.get("perf", {})
    meta = data.get("meta", {})
    backend_ms = perf.get("total_ms", 0)

    print(f"\n🔎 Query: {data.get('search_query')}")
    print(f"\n📊 Stage Breakdown:")
    for key in STAGES:
        if key in perf:
            print(f"  {key:<26}{perf[key]:8d} ms")
    print(f"  {'total_backend_ms':<26}{backend_ms:8d} ms")
    print(f"  {'round trip':<26}{elapsed_ms:8.1f} ms")

    print(f"\n🔧 Pipeline:")
    print(f"  playlists={meta.get('playlists_found')} failed={meta.get('playlist_failures')} "
          f"fallback={meta.get('fallback_used')} durations={meta.get('durations_resolved')}")

    tracks_count = len(data.get("tracks", []))
    print(f"\n✅ Result: {tracks_count} tracks")
    return {"elapsed_ms": elapsed_ms, "backend_ms": backend_ms, "tracks": tracks_count}


def main():
    results = [(label, measure_request(params, label)) for label, params in CASES]

    print(f"\n\n{'='*60}")
    print("📈 SUMMARY")
    print(f"{'='*60}")
    for label, res in results:
        if res is None:
            print(f"{label}: failed")
            continue
        print(f"{label}: {res['elapsed_ms']:.0f}ms total, backend {res['backend_ms']}ms, {res['tracks']} tracks")


if __name__ == "__main__":
    main()
