from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SerializerFunctionWrapHandler,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_serializer,
    model_validator,
)

REASONING_MAX_CHARS = 120


class CandidateKind(str, Enum):
    hotspot = "hotspot"
    restaurant = "restaurant"


class ResolutionSource(str, Enum):
    ai = "ai"
    fallback = "fallback"


class CandidateEntity(BaseModel):
    """A hotspot or restaurant.

    Fields beyond these are carried through untouched, and an entity dumps
    under the key names it was given (``placeId``, ``reviewCount``).
    """

    model_config = ConfigDict(extra="allow")

    id: str | int = Field(..., validation_alias=AliasChoices("id", "placeId"))
    name: str
    tags: list[str] = Field(default_factory=list)
    review_count: int | None = Field(
        default=None, validation_alias=AliasChoices("review_count", "reviewCount"),
    )
    _id_key: str = PrivateAttr(default="id")
    _review_count_key: str = PrivateAttr(default="review_count")

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="wrap")
    @classmethod
    def _remember_keys(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        entity = handler(data)
        if isinstance(data, dict):
            if "id" not in data and "placeId" in data:
                entity._id_key = "placeId"
            if "review_count" not in data and "reviewCount" in data:
                entity._review_count_key = "reviewCount"
        return entity

    @model_serializer(mode="wrap")
    def _caller_keys(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        renames = {"id": self._id_key, "review_count": self._review_count_key}
        return {renames.get(key, key): value for key, value in data.items()}

    def extra_field(self, key: str, default: Any = None) -> Any:
        return (self.model_extra or {}).get(key, default)


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    age: int | str | None = None
    location: str | None = None


@dataclass(frozen=True)
class RankedEntry:
    """One position in a raw ranking, before reconciliation."""

    id: str | int
    reasoning: str | None = None
    score: float | None = None
    direct_match: bool = False


class RankedItem(BaseModel):
    entity: CandidateEntity
    reasoning: str | None = None
    score: float | None = None


class RankedResult(BaseModel):
    kind: CandidateKind
    source: ResolutionSource
    items: list[RankedItem] = Field(default_factory=list)


# ── HTTP payloads ────────────────────────────────────────────────────────


class SearchRequest(BaseModel):
    mood: str = Field(..., min_length=1, max_length=200)
    cravings: str = Field(..., min_length=1, max_length=200)
    profile: UserProfile = Field(default_factory=UserProfile)
    hotspots: list[CandidateEntity] = Field(default_factory=list)
    restaurants: list[CandidateEntity] = Field(default_factory=list)


class SearchResponse(BaseModel):
    hotspots: RankedResult
    restaurants: RankedResult


class HotspotFilterRequest(BaseModel):
    mood: str = Field(..., min_length=1)
    cravings: str = Field(..., min_length=1)
    profile: UserProfile
    hotspots: list[CandidateEntity] = Field(..., min_length=1)


class RestaurantRankRequest(BaseModel):
    mood: str = Field(..., min_length=1)
    cravings: str = Field(..., min_length=1)
    profile: UserProfile
    restaurants: list[CandidateEntity] = Field(..., min_length=1)
