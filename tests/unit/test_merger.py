from __future__ import annotations

import pytest

from collection_audit.domain.models import AllRule, Category, Sample
from collection_audit.errors import InvalidInputError
from collection_audit.sampling.merger import merge_selections


def _sample(name: str, identifiers) -> Sample:
    identifiers = tuple(identifiers)
    return Sample(
        category=Category(name=name, predicate="TRUE", rule=AllRule()),
        identifiers=identifiers,
        population_size=len(identifiers),
        quota=len(identifiers),
    )


def test_identifier_drawn_twice_is_kept_once() -> None:
    selection = merge_selections([_sample("On loan", [77, 3]), _sample("General", [12, 77])])

    assert selection.identifiers.count(77) == 1
    assert selection.identifiers == (77, 3, 12)
    assert 77 in selection.by_category["On loan"]
    assert 77 in selection.by_category["General"]


def test_first_category_owns_shared_identifiers() -> None:
    selection = merge_selections([_sample("On loan", [77]), _sample("General", [77, 5])])

    assert selection.owned_by("On loan") == (77,)
    assert selection.owned_by("General") == (5,)
    assert [e.category for e in selection.entries] == ["On loan", "General"]


def test_merged_size_is_bounded_by_sample_sizes() -> None:
    overlapping = [_sample("A", [1, 2, 3]), _sample("B", [3, 4]), _sample("C", [1, 5])]
    merged = merge_selections(overlapping)
    total = sum(len(s) for s in overlapping)

    assert len(merged.identifiers) < total
    assert len(set(merged.identifiers)) == len(merged.identifiers)
    assert set(merged.identifiers) == {1, 2, 3, 4, 5}

    disjoint = [_sample("A", [1, 2]), _sample("B", [3]), _sample("C", [])]
    assert len(merge_selections(disjoint).identifiers) == sum(len(s) for s in disjoint)


def test_empty_sample_keeps_its_category_entry() -> None:
    selection = merge_selections([_sample("Recently moved", []), _sample("General", [8])])
    assert selection.by_category["Recently moved"] == ()
    assert selection.identifiers == (8,)


def test_membership_is_bar_joined() -> None:
    selection = merge_selections([_sample("A", [10, 2]), _sample("B", [2, 33])])
    assert selection.membership == "10|2|33"
    assert merge_selections([]).membership == ""


def test_category_sampled_twice_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        merge_selections([_sample("A", [1]), _sample("A", [2])])


def test_merged_selection_cannot_be_changed() -> None:
    merged = merge_selections([_sample("A", [1, 2]), _sample("B", [2, 3])])

    with pytest.raises(TypeError):
        merged.by_category["A"] = (9,)
    assert merged.by_category == {"A": (1, 2), "B": (2, 3)}
