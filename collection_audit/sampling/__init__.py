"""
Sampling package for the collection audit.

Quota calculation, seeded/unseeded sampling and selection merging. Everything
here is pure: no database or filesystem access.
"""

from collection_audit.sampling.engine import (
    RandomProvider,
    SeededRandomProvider,
    SystemRandomProvider,
    draw_sample,
    random_provider_for,
    sample_category,
)
from collection_audit.sampling.merger import merge_selections
from collection_audit.sampling.quota import compute_quota, validate_rule

__all__ = [
    "RandomProvider",
    "SeededRandomProvider",
    "SystemRandomProvider",
    "draw_sample",
    "random_provider_for",
    "sample_category",
    "merge_selections",
    "compute_quota",
    "validate_rule",
]
