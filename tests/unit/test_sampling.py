from __future__ import annotations

import pytest

from collection_audit.domain.models import AllRule, Category, PercentWithBoundsRule
from collection_audit.errors import InvalidInputError
from collection_audit.sampling.engine import (
    SeededRandomProvider,
    SystemRandomProvider,
    draw_sample,
    random_provider_for,
    sample_category,
)

POPULATION = tuple(range(1000, 2000))


def _category(name: str = "High value", rule=None) -> Category:
    return Category(name=name, predicate="TRUE", rule=rule or AllRule())


def test_draw_returns_exact_number_of_distinct_members() -> None:
    sample = draw_sample(_category(), POPULATION, 50, SeededRandomProvider(7))

    assert len(sample) == 50
    assert len(set(sample.identifiers)) == 50
    assert set(sample.identifiers) <= set(POPULATION)
    assert sample.population_size == len(POPULATION)
    assert sample.quota == 50


def test_same_seed_reproduces_the_sample() -> None:
    first = draw_sample(_category(), POPULATION, 40, SeededRandomProvider(99))
    second = draw_sample(_category(), POPULATION, 40, SeededRandomProvider(99))
    assert first.identifiers == second.identifiers


def test_different_seeds_draw_different_samples() -> None:
    first = draw_sample(_category(), POPULATION, 40, SeededRandomProvider(1))
    second = draw_sample(_category(), POPULATION, 40, SeededRandomProvider(2))
    assert first.identifiers != second.identifiers


def test_zero_quota_is_an_empty_sample() -> None:
    sample = draw_sample(_category(), (), 0, SeededRandomProvider(1))
    assert len(sample) == 0
    assert sample.inclusion_predicate() == "FALSE"


def test_full_quota_takes_everything() -> None:
    population = (5, 3, 9)
    sample = draw_sample(_category(), population, 3, SeededRandomProvider(3))
    assert sorted(sample.identifiers) == [3, 5, 9]


@pytest.mark.parametrize("quota", [-1, 4])
def test_quota_outside_population_is_rejected(quota: int) -> None:
    with pytest.raises(InvalidInputError):
        draw_sample(_category(), (1, 2, 3), quota, SeededRandomProvider(1))


def test_duplicate_population_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        draw_sample(_category(), (1, 2, 2), 1, SeededRandomProvider(1))


def test_sample_category_applies_the_quota_rule() -> None:
    rule = PercentWithBoundsRule(percent=30, min_count=5, max_count=200)
    sample = sample_category(_category(rule=rule), POPULATION, SeededRandomProvider(5))
    assert sample.quota == 200
    assert len(sample) == 200


def test_inclusion_predicate_lists_sorted_identifiers() -> None:
    sample = draw_sample(_category(), (30, 10, 20), 3, SeededRandomProvider(4))
    assert sample.inclusion_predicate() == "id IN (10, 20, 30)"
    assert sample.inclusion_predicate("r.id") == "r.id IN (10, 20, 30)"


def test_provider_selection_by_seed() -> None:
    seeded = random_provider_for(12)
    assert isinstance(seeded, SeededRandomProvider)
    assert seeded.seed == 12

    unseeded = random_provider_for(None)
    assert isinstance(unseeded, SystemRandomProvider)
    assert unseeded.seed is None
    assert len(unseeded.sample(POPULATION, 10)) == 10
