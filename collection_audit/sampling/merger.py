"""
Selection merger: combine per-category samples into one audit selection.

Two views come out of a merge:
- a deduplicated identifier sequence in first-seen order, each identifier
  attributed to the earliest-processed category that drew it (this is what
  the group record stores, bar-joined via `MergedSelection.membership`);
- per-category identifier lists with cross-category duplicates kept, since a
  record belongs in every report section whose rule it satisfied.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from collection_audit.domain.models import MergedSelection, Sample, SelectionEntry
from collection_audit.errors import InvalidInputError


def merge_selections(samples: Sequence[Sample]) -> MergedSelection:
    """
    Merge samples in the given (precedence) order.
    """
    entries: List[SelectionEntry] = []
    seen: set[int] = set()
    by_category: Dict[str, Tuple[int, ...]] = {}

    for sample in samples:
        name = sample.category.name
        if name in by_category:
            raise InvalidInputError(f"Category '{name}' was sampled more than once")
        by_category[name] = tuple(sample.identifiers)
        for identifier in sample.identifiers:
            if identifier in seen:
                continue
            seen.add(identifier)
            entries.append(SelectionEntry(identifier=identifier, category=name))

    return MergedSelection(entries=tuple(entries), by_category=by_category)


__all__ = ["merge_selections"]
