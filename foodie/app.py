from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .llm.groq_client import AIRankingError, filter_hotspots, rank_restaurants
from .ranking.cache import ResolutionCache
from .ranking.config import DEFAULT_RANKING_CONFIG
from .ranking.models import (
    HotspotFilterRequest,
    RestaurantRankRequest,
    SearchRequest,
    SearchResponse,
)
from .ranking.remote_client import RemoteRankingClient
from .ranking.resolver import QueryResolver

logger = logging.getLogger(__name__)

_cache = ResolutionCache(ttl=DEFAULT_RANKING_CONFIG.cache_ttl)
_remote_client = (
    RemoteRankingClient(DEFAULT_RANKING_CONFIG)
    if DEFAULT_RANKING_CONFIG.remote_enabled
    else None
)
_resolver = QueryResolver(cache=_cache, client=_remote_client)


def get_resolver() -> QueryResolver:
    return _resolver


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _remote_client is not None:
        await _remote_client.aclose()


app = FastAPI(title="Foodie Recommendation API", version="1.0.0", lifespan=lifespan)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/search", response_model=SearchResponse)
async def search(
    body: SearchRequest,
    resolver: QueryResolver = Depends(get_resolver),
) -> SearchResponse:
    hotspots, restaurants = await resolver.resolve_all(
        body.mood, body.cravings, body.profile, body.hotspots, body.restaurants,
    )
    if not hotspots.items and not restaurants.items:
        logger.info("No matches for mood=%r cravings=%r", body.mood, body.cravings)
    return SearchResponse(hotspots=hotspots, restaurants=restaurants)


# ── AI ranking service ───────────────────────────────────────────────────


@app.post("/api/ai/filter-hotspots")
def ai_filter_hotspots(body: HotspotFilterRequest):
    try:
        selected = filter_hotspots(body.mood, body.cravings, body.profile, body.hotspots)
    except AIRankingError as exc:
        logger.warning("AI filter error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to filter hotspots", "fallback": True},
        )
    return {"hotspots": [h.model_dump(mode="json", exclude_none=True) for h in selected]}


@app.post("/api/ai/rank-restaurants")
def ai_rank_restaurants(body: RestaurantRankRequest):
    try:
        ranked = rank_restaurants(body.mood, body.cravings, body.profile, body.restaurants)
    except AIRankingError as exc:
        logger.warning("AI rank error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to rank restaurants", "fallback": True},
        )
    return {
        "restaurants": [
            {**r.model_dump(mode="json", exclude_none=True), "aiReasoning": reasoning}
            for r, reasoning in ranked
        ]
    }


# ── Diagnostics ──────────────────────────────────────────────────────────


@app.get("/cache/stats")
def cache_stats(resolver: QueryResolver = Depends(get_resolver)) -> dict:
    return resolver.cache.stats()


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())
