"""
Sampling engine: bounded uniform draws without replacement.

Randomness is injected through a `RandomProvider` so tests can pin a seed
without touching the sampling logic. Without a seed the engine draws from
the operating system's random source and runs are not reproducible.
"""

from __future__ import annotations

import random
from typing import List, Optional, Protocol, Sequence, TypeVar, runtime_checkable

from collection_audit.domain.models import Category, Sample
from collection_audit.errors import InvalidInputError
from collection_audit.sampling.quota import compute_quota
from collection_audit.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@runtime_checkable
class RandomProvider(Protocol):
    """Source of uniform without-replacement draws."""

    seed: Optional[int]

    def sample(self, population: Sequence[T], k: int) -> List[T]:
        ...


class SeededRandomProvider:
    """Reproducible draws from `random.Random(seed)`."""

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def sample(self, population: Sequence[T], k: int) -> List[T]:
        return self._rng.sample(population, k)


class SystemRandomProvider:
    """Non-reproducible draws from the OS entropy source."""

    seed: Optional[int] = None

    def __init__(self) -> None:
        self._rng = random.SystemRandom()

    def sample(self, population: Sequence[T], k: int) -> List[T]:
        return self._rng.sample(population, k)


def random_provider_for(seed: Optional[int]) -> RandomProvider:
    """Seeded provider when a seed is given, system randomness otherwise."""
    if seed is None:
        return SystemRandomProvider()
    return SeededRandomProvider(seed)


def draw_sample(
    category: Category,
    population: Sequence[int],
    quota: int,
    provider: RandomProvider,
) -> Sample:
    """
    Draw exactly `quota` distinct identifiers from `population`.

    The draw order of the provider is preserved. A quota of zero returns an
    empty sample; that is a normal outcome for a category with nothing in it.
    """
    population = tuple(population)
    size = len(population)
    if quota < 0 or quota > size:
        raise InvalidInputError(
            f"Quota {quota} for category '{category.name}' is outside [0, {size}]"
        )
    if len(set(population)) != size:
        raise InvalidInputError(
            f"Population for category '{category.name}' contains duplicate identifiers"
        )

    chosen = tuple(provider.sample(population, quota)) if quota else ()
    return Sample(category=category, identifiers=chosen, population_size=size, quota=quota)


def sample_category(
    category: Category,
    population: Sequence[int],
    provider: RandomProvider,
) -> Sample:
    """Compute the category quota and draw a sample of that size."""
    quota = compute_quota(len(population), category.rule)
    sample = draw_sample(category, population, quota, provider)
    log.info(
        f"[SAMPLE] {category.name}: {len(sample)} of {sample.population_size}",
        extra={
            "category": category.name,
            "population": sample.population_size,
            "quota": quota,
            "rule": category.rule.describe(),
        },
    )
    return sample


__all__ = [
    "RandomProvider",
    "SeededRandomProvider",
    "SystemRandomProvider",
    "random_provider_for",
    "draw_sample",
    "sample_category",
]
