from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Sequence

import httpx
from pydantic_core import PydanticSerializationError

from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .models import CandidateEntity, CandidateKind, RankedEntry, UserProfile

logger = logging.getLogger(__name__)

_ENDPOINTS: dict[CandidateKind, tuple[str, str]] = {
    CandidateKind.hotspot: ("/ai/filter-hotspots", "hotspots"),
    CandidateKind.restaurant: ("/ai/rank-restaurants", "restaurants"),
}


class RemoteFailure(str, Enum):
    timeout = "timeout"
    explicit_fallback = "explicit_fallback"
    http_status = "http_status"
    malformed = "malformed"
    network = "network"


class RemoteRankingError(RuntimeError):
    def __init__(
        self,
        reason: RemoteFailure,
        message: str = "",
        status: int | None = None,
    ) -> None:
        super().__init__(message or reason.value)
        self.reason = reason
        self.status = status


def _malformed(detail: str) -> RemoteRankingError:
    return RemoteRankingError(RemoteFailure.malformed, f"Malformed ranking response: {detail}")


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _default_reasoning(name: Any, cuisine: Any) -> str:
    return f"{name} - {cuisine}" if cuisine else str(name)


def _parse_item(
    kind: CandidateKind,
    item: Any,
    candidates: Sequence[CandidateEntity],
) -> RankedEntry | None:
    """Validate one ranking item; ``None`` means an out-of-range index to drop."""
    if _is_index(item) and kind is CandidateKind.hotspot:
        if 0 <= item < len(candidates):
            return RankedEntry(id=candidates[item].id)
        return None

    if not isinstance(item, dict):
        raise _malformed(f"unexpected item {item!r}")

    if "index" in item:
        index = item["index"]
        if not _is_index(index):
            raise _malformed(f"non-integer index {index!r}")
        if not 0 <= index < len(candidates):
            return None
        target = candidates[index]
        if kind is CandidateKind.hotspot:
            return RankedEntry(id=target.id)
        reasoning = item.get("reasoning")
        if reasoning is None:
            reasoning = _default_reasoning(target.name, target.extra_field("cuisine"))
        return RankedEntry(id=target.id, reasoning=str(reasoning))

    rid = item.get("id")
    if rid is None:
        rid = item.get("placeId")
    if rid is None or isinstance(rid, (bool, dict, list, float)):
        raise _malformed("entity without a usable id")
    if kind is CandidateKind.hotspot:
        return RankedEntry(id=rid)
    reasoning = item.get("aiReasoning") or _default_reasoning(item.get("name", rid), item.get("cuisine"))
    return RankedEntry(id=rid, reasoning=str(reasoning))


def parse_ranking(
    kind: CandidateKind,
    body: Any,
    candidates: Sequence[CandidateEntity],
) -> list[RankedEntry]:
    """Turn a ranker response body into ranked entries or raise ``malformed``."""
    _, key = _ENDPOINTS[kind]
    items = body.get(key) if isinstance(body, dict) else None
    if not isinstance(items, list):
        raise _malformed(f"missing '{key}' array")

    entries: list[RankedEntry] = []
    for item in items:
        entry = _parse_item(kind, item, candidates)
        if entry is not None:
            entries.append(entry)
    return entries


class RemoteRankingClient:
    """Single-attempt client for the AI ranking endpoints."""

    def __init__(
        self,
        config: RankingConfig = DEFAULT_RANKING_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.ranker_url.rstrip("/"),
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
            )
        return self._client

    async def rank(
        self,
        kind: CandidateKind,
        mood: str,
        cravings: str,
        profile: UserProfile | None,
        candidates: Sequence[CandidateEntity],
    ) -> list[RankedEntry]:
        path, key = _ENDPOINTS[kind]
        try:
            payload = {
                "mood": mood,
                "cravings": cravings,
                "profile": profile.model_dump(mode="json", exclude_none=True) if profile else {},
                key: [c.model_dump(mode="json", exclude_none=True) for c in candidates],
            }
            request = self._get_client().build_request("POST", path, json=payload)
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            raise _malformed(f"request payload is not serializable: {exc}") from exc

        try:
            response = await asyncio.wait_for(
                self._get_client().send(request), timeout=self.config.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteRankingError(
                RemoteFailure.timeout,
                f"Ranking request exceeded {self.config.timeout}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteRankingError(RemoteFailure.network, f"Request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                error_body = response.json()
            except ValueError:
                error_body = {}
            if isinstance(error_body, dict) and error_body.get("fallback"):
                raise RemoteRankingError(
                    RemoteFailure.explicit_fallback,
                    f"Ranker requested fallback ({response.status_code})",
                    status=response.status_code,
                )
            raise RemoteRankingError(
                RemoteFailure.http_status,
                f"Ranker error {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise _malformed("body is not JSON") from exc

        entries = parse_ranking(kind, body, candidates)
        logger.debug("Remote ranker returned %d %s entries", len(entries), kind.value)
        return entries

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
