from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .models import (
    REASONING_MAX_CHARS,
    CandidateEntity,
    CandidateKind,
    RankedEntry,
    RankedItem,
)

logger = logging.getLogger(__name__)


def reconcile(
    kind: CandidateKind,
    entries: Iterable[RankedEntry],
    candidates: Sequence[CandidateEntity],
) -> list[RankedItem]:
    """Join ranked ids back onto the canonical candidate records.

    Ids missing from ``candidates`` are skipped and the first occurrence of a
    repeated id wins. Items carry copies, never the caller's objects.
    """
    by_id: dict[str | int, CandidateEntity] = {}
    for candidate in candidates:
        by_id.setdefault(candidate.id, candidate)

    items: list[RankedItem] = []
    seen: set[str | int] = set()
    dropped = 0
    for entry in entries:
        canonical = by_id.get(entry.id)
        if canonical is None:
            dropped += 1
            continue
        if entry.id in seen:
            continue
        seen.add(entry.id)

        reasoning = None
        if kind is CandidateKind.restaurant and entry.reasoning is not None:
            reasoning = entry.reasoning[:REASONING_MAX_CHARS]
        items.append(RankedItem(
            entity=canonical.model_copy(deep=True),
            reasoning=reasoning,
            score=entry.score,
        ))

    if dropped:
        logger.debug("Dropped %d %s ids absent from the candidate set", dropped, kind.value)
    return items
