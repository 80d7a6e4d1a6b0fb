from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from ..analytics.store import record_event
from .cache import CachedRanking, ResolutionCache, make_signature
from .fallback import score_fallback
from .models import (
    CandidateEntity,
    CandidateKind,
    RankedEntry,
    RankedResult,
    ResolutionSource,
    UserProfile,
)
from .reconcile import reconcile
from .remote_client import RemoteRankingClient, RemoteRankingError

logger = logging.getLogger(__name__)


class QueryResolver:
    """Resolve a mood/cravings query against one candidate set.

    The remote AI ranker is tried first when a client is configured; any
    ``RemoteRankingError`` sends the query to the local fallback scorer.
    Ranking failures never reach the caller.
    """

    def __init__(
        self,
        cache: ResolutionCache,
        client: RemoteRankingClient | None = None,
    ) -> None:
        self.cache = cache
        self.client = client

    async def resolve(
        self,
        kind: CandidateKind,
        mood: str,
        cravings: str,
        profile: UserProfile | None,
        candidates: Sequence[CandidateEntity],
    ) -> RankedResult:
        start_time = time.time()

        if not candidates:
            return RankedResult(kind=kind, source=ResolutionSource.fallback)

        # --- Cache check ---
        signature = make_signature(kind, mood, cravings)
        cached = self.cache.get(signature)
        if cached is not None:
            result = RankedResult(
                kind=kind,
                source=cached.source,
                items=reconcile(kind, cached.entries, candidates),
            )
            logger.debug("Cache hit for %s query %r/%r", kind.value, mood, cravings)
            self._record(kind, mood, cravings, candidates, result, start_time, cache_hit=True)
            return result

        # --- Remote ranking, falling back to local scoring ---
        entries: list[RankedEntry] | None = None
        remote_error: str | None = None
        if self.client is not None:
            try:
                entries = await self.client.rank(kind, mood, cravings, profile, candidates)
            except RemoteRankingError as exc:
                remote_error = exc.reason.value
                logger.warning(
                    "AI %s ranking failed (%s), using local scoring: %s",
                    kind.value, remote_error, exc,
                )

        if entries is None:
            source = ResolutionSource.fallback
            entries = score_fallback(kind, mood, cravings, candidates)
            logger.info(
                "Fallback %s ranking kept %d of %d candidates",
                kind.value, len(entries), len(candidates),
            )
        else:
            source = ResolutionSource.ai

        self.cache.set(signature, CachedRanking(source=source, entries=tuple(entries)))

        result = RankedResult(
            kind=kind,
            source=source,
            items=reconcile(kind, entries, candidates),
        )
        self._record(
            kind, mood, cravings, candidates, result, start_time,
            cache_hit=False, remote_error=remote_error,
        )
        return result

    async def resolve_all(
        self,
        mood: str,
        cravings: str,
        profile: UserProfile | None,
        hotspots: Sequence[CandidateEntity],
        restaurants: Sequence[CandidateEntity],
    ) -> tuple[RankedResult, RankedResult]:
        """Resolve hotspots and restaurants concurrently and independently."""
        hotspot_result, restaurant_result = await asyncio.gather(
            self.resolve(CandidateKind.hotspot, mood, cravings, profile, hotspots),
            self.resolve(CandidateKind.restaurant, mood, cravings, profile, restaurants),
        )
        return hotspot_result, restaurant_result

    @staticmethod
    def _record(
        kind: CandidateKind,
        mood: str,
        cravings: str,
        candidates: Sequence[CandidateEntity],
        result: RankedResult,
        start_time: float,
        cache_hit: bool,
        remote_error: str | None = None,
    ) -> None:
        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        record_event("resolution", {
            "kind": kind.value,
            "mood": mood,
            "cravings": cravings,
            "source": result.source.value,
            "cache_hit": cache_hit,
            "remote_error": remote_error,
            "total_candidates": len(candidates),
            "results_returned": len(result.items),
            "response_time_ms": elapsed_ms,
        })
