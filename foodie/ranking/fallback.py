from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from .models import REASONING_MAX_CHARS, CandidateEntity, CandidateKind, RankedEntry

CRAVING_TAG_WEIGHT = 2.0
MOOD_TAG_WEIGHT = 1.5
PHRASE_TAG_BONUS = 4.0
CRAVING_NAME_WEIGHT = 3.0
MOOD_NAME_WEIGHT = 2.0
PHRASE_NAME_BONUS = 3.0
KEYWORD_ONLY_SCORE = 0.1

CUISINE_KEYWORDS = [
    "pizza", "chinese", "mexican", "bbq", "vegan",
    "sushi", "burger", "thai", "italian", "spicy",
]


def tokenize(text: str) -> list[str]:
    """Lower-case, split on whitespace and keep tokens longer than two characters."""
    return [w for w in text.lower().split() if len(w) > 2]


def _overlaps(tag: str, word: str) -> bool:
    return word in tag or tag in word


@dataclass
class _Score:
    value: float = 0.0
    direct_match: bool = False
    matched_tags: list[str] = field(default_factory=list)
    name_words: list[str] = field(default_factory=list)
    keyword: str | None = None

    def award(self, points: float) -> None:
        self.value += points
        self.direct_match = True

    def note_tag(self, tag: str) -> None:
        if tag not in self.matched_tags:
            self.matched_tags.append(tag)


def _score_hotspot(
    hotspot: CandidateEntity,
    mood_words: list[str],
    craving_words: list[str],
) -> float:
    score = 0.0
    for tag in hotspot.tags:
        tag_lower = tag.lower()
        if not tag_lower:
            continue
        score += CRAVING_TAG_WEIGHT * sum(1 for w in craving_words if _overlaps(tag_lower, w))
        score += MOOD_TAG_WEIGHT * sum(1 for w in mood_words if _overlaps(tag_lower, w))

    name_lower = hotspot.name.lower()
    name_parts = name_lower.split()
    first_word = name_parts[0] if name_parts else ""
    for word in craving_words:
        if word in name_lower or (first_word and first_word in word):
            score += CRAVING_NAME_WEIGHT
    for word in mood_words:
        if word in name_lower:
            score += MOOD_NAME_WEIGHT

    # Popularity signal
    reviews = hotspot.review_count or 0
    if reviews > 8000:
        score += 2
    elif reviews > 6000:
        score += 1

    if score == 0:
        score = math.log(max(reviews, 1)) / 10
    return score


def _score_restaurant(
    restaurant: CandidateEntity,
    mood_words: list[str],
    craving_words: list[str],
    craving_phrase: str,
) -> _Score:
    result = _Score()

    for tag in restaurant.tags:
        tag_lower = tag.lower()
        if not tag_lower:
            continue
        for word in craving_words:
            if _overlaps(tag_lower, word):
                result.award(CRAVING_TAG_WEIGHT)
                result.note_tag(tag)
        if craving_phrase and _overlaps(tag_lower, craving_phrase):
            result.award(PHRASE_TAG_BONUS)
            result.note_tag(tag)
        for word in mood_words:
            if _overlaps(tag_lower, word):
                result.award(MOOD_TAG_WEIGHT)
                result.note_tag(tag)

    name_lower = restaurant.name.lower()
    for word in craving_words:
        if word in name_lower:
            result.award(CRAVING_NAME_WEIGHT)
            result.name_words.append(word)
    for word in mood_words:
        if word in name_lower:
            result.award(MOOD_NAME_WEIGHT)
            result.name_words.append(word)
    if craving_phrase and craving_phrase in name_lower:
        result.award(PHRASE_NAME_BONUS)

    if result.value == 0:
        result.keyword = _first_cuisine_keyword(restaurant.tags)
        if result.keyword:
            result.value = KEYWORD_ONLY_SCORE

    return result


def _first_cuisine_keyword(tags: Sequence[str]) -> str | None:
    for tag in tags:
        tag_lower = tag.lower()
        for keyword in CUISINE_KEYWORDS:
            if keyword in tag_lower:
                return keyword
    return None


def _restaurant_reasoning(restaurant: CandidateEntity, score: _Score) -> str:
    if score.matched_tags:
        clause = "serves " + " & ".join(score.matched_tags[:2])
    elif score.name_words:
        clause = f"specializes in {score.name_words[0]}"
    elif score.keyword:
        clause = f"serves {score.keyword}"
    else:
        clause = ", ".join(restaurant.tags[:2])
    reasoning = f"{restaurant.name} - {clause}" if clause else restaurant.name
    return reasoning[:REASONING_MAX_CHARS]


def score_fallback(
    kind: CandidateKind,
    mood: str,
    cravings: str,
    candidates: Sequence[CandidateEntity],
) -> list[RankedEntry]:
    """Rank candidates by lexical overlap with the mood and cravings.

    Hotspots are only reordered, never dropped. Restaurants that match
    directly come first and anything scoring zero is excluded. Every tag and
    name rule counts as a direct match, mood rules included, so a restaurant
    that only fits the mood still ranks ahead of a cuisine-keyword hit. Only
    the keyword rule leaves a restaurant indirect. Python's sort is stable,
    so equal scores keep their input order.
    """
    mood_words = tokenize(mood)
    craving_words = tokenize(cravings)

    if kind is CandidateKind.hotspot:
        scored = [
            RankedEntry(id=h.id, score=_score_hotspot(h, mood_words, craving_words))
            for h in candidates
        ]
        return sorted(scored, key=lambda e: -e.score)

    craving_phrase = cravings.lower().strip()
    ranked: list[RankedEntry] = []
    for restaurant in candidates:
        score = _score_restaurant(restaurant, mood_words, craving_words, craving_phrase)
        ranked.append(RankedEntry(
            id=restaurant.id,
            reasoning=_restaurant_reasoning(restaurant, score),
            score=score.value,
            direct_match=score.direct_match,
        ))

    ranked.sort(key=lambda e: (not e.direct_match, -e.score))
    return [e for e in ranked if e.score > 0]
