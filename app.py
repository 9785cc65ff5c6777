from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from pydantic import BaseModel

# .env / .env.local (local development only; platform env vars take precedence)
_HERE = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(_HERE, ".env"))
load_dotenv(os.path.join(_HERE, ".env.local"))

from core import build_category_query, fetch_music_tracks, music_result_to_dict
from lib.youtube.errors import (
    ClientInputError,
    ConfigurationError,
    UpstreamSearchError,
)
import logging

# Basic logging configuration to ensure logger outputs appear in the terminal
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)


# =========================
# Pydantic models
# =========================

class TrackModel(BaseModel):
    id: str
    title: str
    artist: str
    duration_label: str
    duration_seconds: int
    thumbnail_url: Optional[str] = None
    external_url: str
    is_first: bool = False
    mode: str  # "background" | "songs"
    sub_genre: Optional[str] = None


class PreferencesModel(BaseModel):
    min_duration: int  # minutes
    max_duration: int  # minutes
    min_seconds: int
    max_seconds: int
    all_durations: bool = False


class MusicMetaModel(BaseModel):
    model_config = {"extra": "allow"}  # Allow unknown counters to pass through

    fallback_used: Optional[bool] = None
    playlists_found: Optional[int] = None
    playlist_failures: Optional[int] = None
    entries_expanded: Optional[int] = None
    durations_resolved: Optional[int] = None
    tracks_count: Optional[int] = None
    total_api_ms: Optional[float] = None


class MusicResponse(BaseModel):
    tracks: List[TrackModel]
    genre: str
    search_query: str
    type: str
    song_genre: str = "any"
    preferences: PreferencesModel
    meta: Optional[MusicMetaModel] = None
    perf: Optional[Dict[str, int]] = None


# =========================
# FastAPI app & CORS
# =========================

app = FastAPI(
    title="Book Genre Music",
    version="1.0.0",
)

# Add GZip middleware for response compression
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.on_event("startup")
def _log_startup():
    logger.info("book-genre-music: startup event triggered")
    if not os.getenv("YOUTUBE_API_KEY"):
        logger.warning("YOUTUBE_API_KEY is not set; /api/music will answer 500 until it is")


# デフォルトの許可オリジン
default_origins = [
    "http://localhost:3000",
]

# 環境変数 ALLOWED_ORIGINS があればそれを優先（カンマ区切り）
env_origins = os.getenv("ALLOWED_ORIGINS")
if env_origins:
    origins = [o.strip() for o in env_origins.split(",") if o.strip()]
else:
    origins = default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================
# Health check
# =========================

@app.get("/health", tags=["system"])
def health() -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ok",
        "build_commit": os.getenv("RENDER_GIT_COMMIT", "local")[:7],
        "has_youtube_key": bool(os.getenv("YOUTUBE_API_KEY")),
    }


@app.get("/", tags=["system"])
def root() -> Dict[str, Any]:
    # Render health-style response to silence platform health checks on /
    return {"ok": True, "status": "ok"}


# =========================
# Core helpers
# =========================

def _error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """Error payload shape shared by every failure: no tracks, one message."""
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "tracks": [], **extra},
    )


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed query params (e.g. minDuration=abc) use the same 400 payload as other input errors
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "query") for err in exc.errors()]
    logger.info(f"[api] invalid parameters {fields} path={request.url.path}")
    return _error_response(400, f"Invalid parameter(s): {', '.join(fields)}")


# =========================
# Endpoints
# =========================

@app.get("/api/music", response_model=MusicResponse)
async def get_music(
    genre: Optional[str] = Query(None, description="Book genre, e.g. 'Romance'"),
    type: str = Query("background", description="background or songs"),
    songGenre: str = Query("any", description="Song sub-genre filter (songs only), 'any' to disable"),
    allDurations: bool = Query(False, description="Skip the duration window filter"),
    q: Optional[str] = Query(None, description="Raw query for the fallback video search"),
    minDuration: Optional[int] = Query(None, description="Minimum duration in minutes (mode default when omitted)"),
    maxDuration: Optional[int] = Query(None, description="Maximum duration in minutes (mode default when omitted)"),
    keywords: Optional[str] = Query(None, description="Extra search keywords"),
):
    """
    本のジャンルに合う音楽トラックを YouTube から取得。
    """
    t0_total = time.time()

    try:
        query = build_category_query(
            genre,
            music_type=type,
            song_genre=songGenre,
            all_durations=allDurations,
            fallback_query=q,
            min_duration=minDuration,
            max_duration=maxDuration,
            keywords=keywords,
        )
    except ClientInputError as e:
        logger.info(f"[api/music] rejected genre={genre!r} type={type!r}: {e}")
        return _error_response(400, str(e))

    logger.info(
        f"[api/music] genre={query.raw_genre!r} type={query.mode.value} song_genre={songGenre!r} "
        f"all_durations={query.include_all_durations} min={minDuration} max={maxDuration}"
    )

    try:
        result = await fetch_music_tracks(query)
    except ConfigurationError as e:
        logger.error(f"[api/music] configuration error: {e}")
        return _error_response(500, str(e))
    except UpstreamSearchError as e:
        logger.error(f"[api/music] upstream failure for genre={query.raw_genre!r}: {e} meta={e.meta}")
        return _error_response(502, "Failed to fetch music", meta=e.meta)
    except Exception as e:
        logger.exception(f"[api/music] unexpected error for genre={query.raw_genre!r}: {e!r}")
        return _error_response(502, "Failed to fetch music")

    data = music_result_to_dict(result)
    total_ms = (time.time() - t0_total) * 1000
    data["meta"] = {**data.get("meta", {}), "total_api_ms": float(total_ms)}

    perf = data.get("perf", {})
    logger.info(
        f"[PERF] genre={query.raw_genre!r} type={query.mode.value} "
        f"search_ms={perf.get('search_ms', 0)} expand_ms={perf.get('expand_ms', 0)} "
        f"fallback_ms={perf.get('fallback_ms', 0)} durations_ms={perf.get('durations_ms', 0)} "
        f"total_backend_ms={perf.get('total_ms', 0)} total_api_ms={total_ms:.1f} tracks={len(data['tracks'])}"
    )
    return data


# =========================
# Local dev entrypoint
# =========================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
