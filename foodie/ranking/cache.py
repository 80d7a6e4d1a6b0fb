from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .models import CandidateKind, RankedEntry, ResolutionSource

_DEFAULT_TTL = 300  # 5 minutes

Signature = tuple[CandidateKind, str, str]


def make_signature(kind: CandidateKind, mood: str, cravings: str) -> Signature:
    return (kind, mood, cravings)


def _make_key(signature: Signature) -> str:
    kind, mood, cravings = signature
    normalized = json.dumps([kind.value, mood, cravings])
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class CachedRanking:
    source: ResolutionSource
    entries: tuple[RankedEntry, ...]


@dataclass(frozen=True)
class CacheEntry:
    value: CachedRanking
    created_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


class ResolutionCache:
    """Signature-keyed ranking cache with a fixed time-to-live per entry.

    Expiry is checked against each entry's own ``created_at`` on read, so an
    entry written later for the same signature is never evicted by an older
    deadline. ``purge_expired`` sweeps the whole map on demand.
    """

    def __init__(
        self,
        ttl: float = _DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, signature: Signature) -> CachedRanking | None:
        key = _make_key(signature)
        with self._lock:
            entry = self._entries.get(key)
            if entry and not entry.expired(self._clock()):
                self._hits += 1
                return entry.value
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, signature: Signature, value: CachedRanking) -> None:
        entry = CacheEntry(value=value, created_at=self._clock(), ttl=self.ttl)
        with self._lock:
            self._entries[_make_key(signature)] = entry

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.expired(now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
                "ttl_seconds": self.ttl,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
