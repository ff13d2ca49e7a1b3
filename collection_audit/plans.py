"""
Audit plans: which categories to sample and under which quota rules.

The built-in plan targets the `records` table created by `db/init.sql`.
A site-specific plan can be supplied as JSON (AUDIT_PLAN_FILE or --plan):

    {
      "name": "paintings",
      "categories": [
        {"name": "High value items", "predicate": "insured_value >= 50000",
         "rule": {"kind": "percent", "percent": 30, "min_count": 5, "max_count": 200}},
        {"name": "General collection", "predicate": "TRUE", "baseline": true,
         "rule": {"kind": "fixed", "count": 40}}
      ]
    }
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from collection_audit.domain.models import (
    AllRule,
    AuditPlan,
    Category,
    FixedCountRule,
    PercentWithBoundsRule,
)
from collection_audit.errors import InvalidInputError
from collection_audit.sampling.quota import validate_rule

DEFAULT_PLAN = AuditPlan(
    name="default",
    categories=(
        Category(
            name="High value items",
            predicate="insured_value >= 10000",
            rule=PercentWithBoundsRule(percent=30, min_count=5, max_count=200),
        ),
        Category(
            name="Items on loan",
            predicate="on_loan",
            rule=AllRule(),
        ),
        Category(
            name="Recently moved items",
            predicate="last_moved_at >= now() - interval '90 days'",
            rule=FixedCountRule(count=25),
        ),
        Category(
            name="General collection",
            predicate="TRUE",
            rule=PercentWithBoundsRule(percent=1, min_count=20, max_count=100),
            baseline=True,
        ),
    ),
)


def load_plan(path: Optional[Path] = None) -> AuditPlan:
    """
    Load and validate an audit plan; the built-in plan when `path` is None.

    Raises
    ------
    InvalidInputError
        If the file is missing, is not a valid plan, or carries an invalid
        quota rule (InvalidRuleError).
    """
    if path is None:
        plan = DEFAULT_PLAN
    else:
        try:
            plan = AuditPlan.model_validate_json(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise InvalidInputError(f"Audit plan file not found: {path}") from exc
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid audit plan {path}: {exc}") from exc

    for category in plan.categories:
        validate_rule(category.rule)
    return plan


__all__ = ["DEFAULT_PLAN", "load_plan"]
