from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

from groq import Groq

from ..ranking.models import CandidateEntity, UserProfile
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a food recommendation AI. "
    "You read a diner's mood, cravings and profile together with a numbered "
    "list of candidates, and answer with a JSON array only. "
    "Never invent candidates that are not in the list."
)

_INDEX_ARRAY_RE = re.compile(r"\[[\d,\s]+\]")
_ANY_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class AIRankingError(RuntimeError):
    pass


def _profile_line(profile: UserProfile | None) -> str:
    p = profile or UserProfile()
    return f"Profile: {p.name or 'anonymous'}, age {p.age or 'unknown'}, location {p.location or 'unknown'}."


def _build_hotspot_prompt(
    mood: str,
    cravings: str,
    profile: UserProfile | None,
    hotspots: Sequence[CandidateEntity],
    min_results: int,
) -> str:
    lines = [
        f'User mood: "{mood}". Cravings: "{cravings}".',
        _profile_line(profile),
        "",
        "Hotspots to filter:",
    ]
    for i, h in enumerate(hotspots):
        lines.append(f"{i}. {h.name} - {', '.join(h.tags)}")
    lines.append("")
    lines.append(
        "Return a JSON array of hotspot indices (0-based) that match the user's "
        f"mood and cravings. Include at least {min_results} results. Format: [0, 2, 4, ...]"
    )
    return "\n".join(lines)


def _build_restaurant_prompt(
    mood: str,
    cravings: str,
    profile: UserProfile | None,
    restaurants: Sequence[CandidateEntity],
) -> str:
    lines = [
        f'User mood: "{mood}". Cravings: "{cravings}".',
        _profile_line(profile),
        "",
        "Restaurants to rank:",
    ]
    for i, r in enumerate(restaurants):
        cuisine = r.extra_field("cuisine") or "unknown cuisine"
        lines.append(f"{i}. {r.name} - {cuisine} ({', '.join(r.tags)})")
    lines.append("")
    lines.append(
        "Provide a ranked JSON array with reasoning. Format:\n"
        '[{"index": 0, "reasoning": "Perfect match because..."}, ...]\n'
        "Order by best match first. Include all restaurants that serve the requested cuisine."
    )
    return "\n".join(lines)


def parse_hotspot_indices(text: str, count: int) -> list[int]:
    """Pull the first integer array out of ``text``; keep indices in ``[0, count)``."""
    match = _INDEX_ARRAY_RE.search(text)
    if not match:
        raise AIRankingError("Invalid AI response format")
    try:
        indices = json.loads(match.group(0))
    except ValueError as exc:
        raise AIRankingError("Invalid AI response format") from exc
    return [i for i in indices if 0 <= i < count]


def parse_restaurant_rankings(text: str, count: int) -> list[tuple[int, str]]:
    """Pull ``[{index, reasoning}, ...]`` out of ``text``; keep indices in ``[0, count)``."""
    match = _ANY_ARRAY_RE.search(text)
    if not match:
        raise AIRankingError("Invalid AI response format")
    try:
        rankings: Any = json.loads(match.group(0))
    except ValueError as exc:
        raise AIRankingError("Invalid AI response format") from exc
    if not isinstance(rankings, list):
        raise AIRankingError("Invalid AI response format")

    results: list[tuple[int, str]] = []
    for r in rankings:
        if not isinstance(r, dict):
            continue
        index = r.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            continue
        if 0 <= index < count:
            results.append((index, str(r.get("reasoning") or "")))
    return results


def _complete(prompt: str, config: LLMConfig) -> str:
    if not config.enabled or not config.api_key:
        raise AIRankingError("LLM ranking is not configured")

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
        return response.choices[0].message.content or ""
    except Exception as exc:
        logger.warning("Groq LLM call failed", exc_info=True)
        raise AIRankingError("LLM call failed") from exc


def filter_hotspots(
    mood: str,
    cravings: str,
    profile: UserProfile | None,
    hotspots: Sequence[CandidateEntity],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> list[CandidateEntity]:
    """Ask the LLM which hotspots fit, in its preferred order.

    Raises ``AIRankingError`` when the LLM is unavailable or its reply has
    no usable index array.
    """
    prompt = _build_hotspot_prompt(mood, cravings, profile, hotspots, config.min_hotspots)
    text = _complete(prompt, config)
    return [hotspots[i] for i in parse_hotspot_indices(text, len(hotspots))]


def rank_restaurants(
    mood: str,
    cravings: str,
    profile: UserProfile | None,
    restaurants: Sequence[CandidateEntity],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> list[tuple[CandidateEntity, str]]:
    """Ask the LLM to rank restaurants; returns ``(restaurant, reasoning)`` pairs."""
    prompt = _build_restaurant_prompt(mood, cravings, profile, restaurants)
    text = _complete(prompt, config)
    return [
        (restaurants[i], reasoning)
        for i, reasoning in parse_restaurant_rankings(text, len(restaurants))
    ]
