from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from foodie.analytics.store import clear_events
from foodie.app import app, get_resolver
from foodie.llm.groq_client import AIRankingError
from foodie.ranking.cache import ResolutionCache
from foodie.ranking.config import RankingConfig
from foodie.ranking.models import CandidateEntity
from foodie.ranking.remote_client import RemoteRankingClient
from foodie.ranking.resolver import QueryResolver

client = TestClient(app)

HOTSPOTS = [
    {"id": 1, "name": "Williamsburg Waterfront", "review_count": 9500, "lat": 40.716, "lng": -73.96,
     "tags": ["pizza", "brunch", "bars", "trendy", "views"]},
    {"id": 4, "name": "Bushwick", "review_count": 7300, "tags": ["tacos", "vegan", "breweries", "latin", "art"]},
    {"id": 7, "name": "Sunset Park (Chinatown)", "review_count": 7900,
     "tags": ["dim sum", "chinese", "vietnamese", "spicy", "authentic"]},
]
RESTAURANTS = [
    {"placeId": "ChIJ-cozy", "name": "The Cozy Corner", "cuisine": "American",
     "tags": ["comfort food", "cozy", "american", "bistro"]},
    {"placeId": "ChIJ-dragon", "name": "Spicy Dragon", "cuisine": "Chinese",
     "tags": ["spicy", "chinese", "sichuan", "adventurous"]},
    {"placeId": "ChIJ-toro", "name": "El Toro Loco", "cuisine": "Mexican",
     "tags": ["mexican", "tacos", "lively", "fun", "groups"]},
]
SEARCH_BODY = {
    "mood": "adventurous",
    "cravings": "spicy food",
    "profile": {"name": "Sam", "age": 29, "location": "Brooklyn"},
    "hotspots": HOTSPOTS,
    "restaurants": RESTAURANTS,
}


@pytest.fixture(autouse=True)
def local_resolver():
    resolver = QueryResolver(ResolutionCache())
    app.dependency_overrides[get_resolver] = lambda: resolver
    yield resolver
    app.dependency_overrides.clear()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_search_falls_back_locally():
    resp = client.post("/search", json=SEARCH_BODY)
    assert resp.status_code == 200
    body = resp.json()

    assert body["hotspots"]["source"] == "fallback"
    assert [i["entity"]["id"] for i in body["hotspots"]["items"]] == [7, 1, 4]
    assert body["hotspots"]["items"][1]["entity"]["lat"] == 40.716

    restaurants = body["restaurants"]["items"]
    # Cozy Corner matches "food" in a tag; El Toro only has a cuisine keyword
    assert [i["entity"]["placeId"] for i in restaurants] == ["ChIJ-dragon", "ChIJ-cozy", "ChIJ-toro"]
    assert restaurants[0]["reasoning"] == "Spicy Dragon - serves spicy & adventurous"
    assert restaurants[2]["reasoning"] == "El Toro Loco - serves mexican"
    assert restaurants[0]["entity"]["cuisine"] == "Chinese"


def test_search_uses_remote_ranker_per_kind(local_resolver):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/ai/filter-hotspots"):
            return httpx.Response(500, json={"error": "Failed to filter hotspots", "fallback": True})
        return httpx.Response(200, json={"restaurants": [
            {"id": "ChIJ-toro", "name": "El Toro Loco", "aiReasoning": "Lively room, hot salsa."},
            {"id": "ChIJ-gone", "name": "Closed Forever", "aiReasoning": "Stale."},
        ]})

    remote = RemoteRankingClient(
        RankingConfig(ranker_url="http://ranker.test/api"),
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_resolver] = lambda: QueryResolver(ResolutionCache(), remote)

    body = client.post("/search", json=SEARCH_BODY).json()

    assert body["hotspots"]["source"] == "fallback"
    assert len(body["hotspots"]["items"]) == len(HOTSPOTS)
    assert body["restaurants"]["source"] == "ai"
    assert [i["entity"]["placeId"] for i in body["restaurants"]["items"]] == ["ChIJ-toro"]
    assert body["restaurants"]["items"][0]["reasoning"] == "Lively room, hot salsa."


def test_search_no_matches_is_not_an_error():
    resp = client.post("/search", json={**SEARCH_BODY, "cravings": "xyz123", "restaurants": RESTAURANTS[:1]})
    assert resp.status_code == 200
    assert resp.json()["restaurants"]["items"] == []


def test_search_rejects_empty_mood():
    resp = client.post("/search", json={**SEARCH_BODY, "mood": ""})
    assert resp.status_code == 422


def test_search_rejects_candidate_without_id():
    resp = client.post("/search", json={**SEARCH_BODY, "restaurants": [{"name": "Nameless"}]})
    assert resp.status_code == 422


def test_cache_stats_endpoint():
    client.post("/search", json=SEARCH_BODY)
    client.post("/search", json=SEARCH_BODY)
    resp = client.get("/cache/stats")
    assert resp.status_code == 200
    body = resp.json()
    assert body["hits"] == 2
    assert body["size"] == 2
    assert body["ttl_seconds"] == 300


def test_analytics_tracks_resolutions():
    clear_events()
    client.post("/search", json=SEARCH_BODY)
    body = client.get("/analytics").json()
    assert body["total_resolutions"] == 2
    assert body["source_by_kind"]["hotspot"]["fallback"] == 1
    assert body["top_cravings"][0] == {"name": "spicy food", "count": 2}


# ── AI ranking service ───────────────────────────────────────────────────


def test_ai_filter_hotspots_failure_requests_fallback():
    with patch("foodie.app.filter_hotspots", side_effect=AIRankingError("no key")):
        resp = client.post("/api/ai/filter-hotspots", json={
            "mood": "happy", "cravings": "pizza", "profile": {"name": "Sam"}, "hotspots": HOTSPOTS,
        })
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to filter hotspots", "fallback": True}


def test_ai_filter_hotspots_returns_entities():
    picked = [CandidateEntity.model_validate(HOTSPOTS[2])]
    with patch("foodie.app.filter_hotspots", return_value=picked):
        resp = client.post("/api/ai/filter-hotspots", json={
            "mood": "happy", "cravings": "dim sum", "profile": {}, "hotspots": HOTSPOTS,
        })
    assert resp.status_code == 200
    assert resp.json() == {"hotspots": [HOTSPOTS[2]]}


def test_ai_rank_restaurants_adds_reasoning():
    ranked = [(CandidateEntity.model_validate(RESTAURANTS[1]), "Numbing Sichuan heat.")]
    with patch("foodie.app.rank_restaurants", return_value=ranked):
        resp = client.post("/api/ai/rank-restaurants", json={
            "mood": "bold", "cravings": "spicy", "profile": {}, "restaurants": RESTAURANTS,
        })
    assert resp.status_code == 200
    [restaurant] = resp.json()["restaurants"]
    assert restaurant["placeId"] == "ChIJ-dragon"
    assert restaurant["aiReasoning"] == "Numbing Sichuan heat."


def test_ai_rank_restaurants_rejects_empty_list():
    resp = client.post("/api/ai/rank-restaurants", json={
        "mood": "bold", "cravings": "spicy", "profile": {}, "restaurants": [],
    })
    assert resp.status_code == 422
