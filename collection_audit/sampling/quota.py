"""
Quota calculation: how many records to draw from a category population.

Pure functions, no side effects. Percent quotas use exact arithmetic so a
fractional percent never rounds through binary floating point.
"""

from __future__ import annotations

import math
from fractions import Fraction

from collection_audit.domain.models import (
    AllRule,
    FixedCountRule,
    PercentWithBoundsRule,
    QuotaRule,
)
from collection_audit.errors import InvalidInputError, InvalidRuleError


def validate_rule(rule: QuotaRule) -> None:
    """
    Raise InvalidRuleError if the rule can never produce a valid quota.
    """
    if isinstance(rule, FixedCountRule):
        if rule.count < 0:
            raise InvalidRuleError(f"Fixed count must be non-negative, got {rule.count}")
    elif isinstance(rule, PercentWithBoundsRule):
        if not 0 <= rule.percent <= 100:
            raise InvalidRuleError(f"Percent must be within [0, 100], got {rule.percent}")
        if rule.min_count < 0:
            raise InvalidRuleError(f"min_count must be non-negative, got {rule.min_count}")
        if rule.min_count > rule.max_count:
            raise InvalidRuleError(
                f"min_count ({rule.min_count}) exceeds max_count ({rule.max_count})"
            )
    elif not isinstance(rule, AllRule):
        raise InvalidRuleError(f"Unsupported quota rule: {rule!r}")


def compute_quota(population_size: int, rule: QuotaRule) -> int:
    """
    Number of records to select from a population of `population_size`.

    - ALL: the whole population.
    - FIXED_COUNT(n): min(n, N).
    - PERCENT_WITH_BOUNDS(p, lo, hi): floor(N * p / 100) clamped to [lo, hi],
      except that a population smaller than lo is taken whole.

    Raises
    ------
    InvalidInputError
        If population_size is negative.
    InvalidRuleError
        If the rule is outside its valid domain.
    """
    if population_size < 0:
        raise InvalidInputError(f"Population size must be non-negative, got {population_size}")
    validate_rule(rule)

    if isinstance(rule, AllRule):
        return population_size
    if isinstance(rule, FixedCountRule):
        return min(rule.count, population_size)

    if population_size < rule.min_count:
        return population_size
    raw = math.floor(Fraction(population_size) * Fraction(rule.percent) / 100)
    return max(rule.min_count, min(raw, rule.max_count))


__all__ = ["compute_quota", "validate_rule"]
