from __future__ import annotations

from foodie.ranking.models import CandidateEntity, CandidateKind, RankedEntry
from foodie.ranking.reconcile import reconcile

RESTAURANTS = [
    CandidateEntity.model_validate({"placeId": "p1", "name": "Pronto Pizza", "tags": ["pizza"], "cuisine": "Pizza"}),
    CandidateEntity.model_validate({"placeId": "p2", "name": "Verdure", "tags": ["vegan"], "cuisine": "Vegan"}),
    CandidateEntity.model_validate({"placeId": "p3", "name": "El Toro Loco", "tags": ["tacos"], "cuisine": "Mexican"}),
]


def test_restaurants_follow_ranked_order_with_reasoning():
    entries = [RankedEntry(id="p3", reasoning="tacos"), RankedEntry(id="p1", reasoning="pizza")]
    items = reconcile(CandidateKind.restaurant, entries, RESTAURANTS)
    assert [i.entity.id for i in items] == ["p3", "p1"]
    assert [i.reasoning for i in items] == ["tacos", "pizza"]


def test_unknown_ids_are_dropped():
    entries = [RankedEntry(id="ghost", reasoning="hallucinated"), RankedEntry(id="p2", reasoning="green")]
    items = reconcile(CandidateKind.restaurant, entries, RESTAURANTS)
    assert [i.entity.id for i in items] == ["p2"]


def test_first_duplicate_wins():
    entries = [
        RankedEntry(id="p1", reasoning="first"),
        RankedEntry(id="p2", reasoning="middle"),
        RankedEntry(id="p1", reasoning="second"),
    ]
    items = reconcile(CandidateKind.restaurant, entries, RESTAURANTS)
    assert [(i.entity.id, i.reasoning) for i in items] == [("p1", "first"), ("p2", "middle")]


def test_reasoning_truncated_to_120_chars():
    items = reconcile(CandidateKind.restaurant, [RankedEntry(id="p1", reasoning="x" * 500)], RESTAURANTS)
    assert len(items[0].reasoning) == 120


def test_opaque_fields_survive_and_input_is_not_aliased():
    items = reconcile(CandidateKind.restaurant, [RankedEntry(id="p1", reasoning="r")], RESTAURANTS)
    entity = items[0].entity
    assert entity.extra_field("cuisine") == "Pizza"
    entity.tags.append("mutated")
    assert RESTAURANTS[0].tags == ["pizza"]


def test_hotspots_are_a_pass_through_join():
    hotspots = [
        CandidateEntity(id=1, name="DUMBO", tags=["views"]),
        CandidateEntity(id=2, name="Bushwick", tags=["tacos"]),
    ]
    entries = [RankedEntry(id=2, reasoning="ignored"), RankedEntry(id=1)]
    items = reconcile(CandidateKind.hotspot, entries, hotspots)
    assert [i.entity for i in items] == [hotspots[1], hotspots[0]]
    assert all(i.reasoning is None for i in items)


def test_empty_ranking():
    assert reconcile(CandidateKind.restaurant, [], RESTAURANTS) == []
