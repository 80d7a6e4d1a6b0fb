from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    resolutions = [e for e in events if e["type"] == "resolution"]
    total = len(resolutions)

    # Average response time
    times = [r["response_time_ms"] for r in resolutions if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Top cravings / moods
    craving_counter: Counter[str] = Counter()
    mood_counter: Counter[str] = Counter()
    for r in resolutions:
        craving_counter[r.get("cravings", "unknown")] += 1
        mood_counter[r.get("mood", "unknown")] += 1
    top_cravings = [{"name": n, "count": c} for n, c in craving_counter.most_common(10)]
    top_moods = [{"name": n, "count": c} for n, c in mood_counter.most_common(10)]

    # AI vs fallback, per kind
    by_kind: dict[str, dict[str, int]] = {}
    for r in resolutions:
        bucket = by_kind.setdefault(r.get("kind", "unknown"), {"ai": 0, "fallback": 0})
        bucket[r.get("source", "fallback")] = bucket.get(r.get("source", "fallback"), 0) + 1

    fallback_reasons = Counter(r["remote_error"] for r in resolutions if r.get("remote_error"))
    empty_results = sum(1 for r in resolutions if r.get("results_returned") == 0)

    # Cache stats
    cache_hits = sum(1 for r in resolutions if r.get("cache_hit"))
    cache_misses = total - cache_hits

    return {
        "total_resolutions": total,
        "avg_response_time_ms": avg_time,
        "top_cravings": top_cravings,
        "top_moods": top_moods,
        "source_by_kind": by_kind,
        "fallback_reasons": dict(fallback_reasons),
        "empty_results": empty_results,
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": round(cache_hits / total * 100, 1) if total else 0.0,
        },
    }
