"""
Domain models for the collection audit.

Defines the audit plan (categories and their quota rules), the sampling and
merge results, the per-record display detail, the immutable report document
and the group record persisted at the end of a run. Pydantic models are used
where data crosses a file or database boundary; plain frozen dataclasses for
the in-memory sampling results.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Annotated, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

NOT_RECORDED = "Not recorded"

_FROZEN = {"frozen": True, "populate_by_name": True, "extra": "forbid"}


# --------------------------------------------------------------------------- #
# Quota rules
# --------------------------------------------------------------------------- #


class AllRule(BaseModel):
    """Select every record in the population."""

    kind: Literal["all"] = "all"

    model_config = _FROZEN

    def describe(self) -> str:
        return "All"


class FixedCountRule(BaseModel):
    """Select a fixed number of records (or all of them, if fewer exist)."""

    kind: Literal["fixed"] = "fixed"
    count: int = Field(..., description="Number of records to select.")

    model_config = _FROZEN

    def describe(self) -> str:
        return f"Fixed {self.count}"


class PercentWithBoundsRule(BaseModel):
    """
    Select a percentage of the population, clamped to [min_count, max_count].
    """

    kind: Literal["percent"] = "percent"
    percent: Decimal = Field(..., description="Share of the population, 0-100.")
    min_count: int = Field(..., description="Lower bound on the quota.")
    max_count: int = Field(..., description="Upper bound on the quota.")

    model_config = _FROZEN

    def describe(self) -> str:
        return f"{self.percent}% ({self.min_count}-{self.max_count})"


QuotaRule = Annotated[
    Union[AllRule, FixedCountRule, PercentWithBoundsRule],
    Field(discriminator="kind"),
]


# --------------------------------------------------------------------------- #
# Audit plan
# --------------------------------------------------------------------------- #


class Category(BaseModel):
    """
    One audit category: a population filter plus a quota rule.

    `predicate` is an opaque boolean filter understood by the query backend
    (a SQL fragment for Postgres). Categories may overlap in membership.
    """

    name: str = Field(..., min_length=1)
    predicate: str = Field(..., min_length=1)
    rule: QuotaRule
    baseline: bool = Field(False, description="Always reported, even when empty.")

    model_config = _FROZEN


class AuditPlan(BaseModel):
    """Ordered categories; order sets merge precedence and report order."""

    name: str = "default"
    categories: Tuple[Category, ...] = Field(..., min_length=1)

    model_config = _FROZEN

    @model_validator(mode="after")
    def _check_categories(self) -> "AuditPlan":
        names = [c.name for c in self.categories]
        if len(set(names)) != len(names):
            raise ValueError(f"Category names must be unique: {names}")
        baselines = [i for i, c in enumerate(self.categories) if c.baseline]
        if len(baselines) > 1:
            raise ValueError("At most one category may be marked baseline")
        if baselines and baselines[0] != len(self.categories) - 1:
            raise ValueError("The baseline category must be the last category")
        return self


# --------------------------------------------------------------------------- #
# Sampling results
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Sample:
    category: Category
    identifiers: Tuple[int, ...]
    population_size: int
    quota: int

    def __len__(self) -> int:
        return len(self.identifiers)

    def inclusion_predicate(self, column: str = "id") -> str:
        """Filter restricting a query to exactly this sample."""
        return inclusion_predicate(self.identifiers, column)


def inclusion_predicate(identifiers: Iterable[int], column: str = "id") -> str:
    """
    `column IN (...)` over the given identifiers.

    An empty identifier set yields a predicate that matches nothing.
    """
    ordered = sorted(set(int(i) for i in identifiers))
    if not ordered:
        return "FALSE"
    return f"{column} IN ({', '.join(str(i) for i in ordered)})"


@dataclass(frozen=True)
class SelectionEntry:
    identifier: int
    category: str


@dataclass(frozen=True)
class MergedSelection:
    entries: Tuple[SelectionEntry, ...]
    by_category: Mapping[str, Tuple[int, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_category", MappingProxyType(dict(self.by_category)))

    @property
    def identifiers(self) -> Tuple[int, ...]:
        return tuple(e.identifier for e in self.entries)

    @property
    def membership(self) -> str:
        return "|".join(str(i) for i in self.identifiers)

    def owned_by(self, category: str) -> Tuple[int, ...]:
        return tuple(e.identifier for e in self.entries if e.category == category)


# --------------------------------------------------------------------------- #
# Record detail and report document
# --------------------------------------------------------------------------- #


class RecordDetail(BaseModel):
    """
    Display detail for one catalogue record.
    """

    identifier: int = Field(..., ge=0, description="Internal record number.")
    prefix: str = Field("", description="Registration number prefix.")
    number: int = Field(..., ge=0, description="Registration number.")
    suffix: str = Field("", description="Registration number suffix.")
    summary: str = Field("", description="Human-readable summary text.")
    location: str = Field(NOT_RECORDED, description="Current location or sentinel.")

    model_config = _FROZEN

    @field_validator("location", mode="before")
    @classmethod
    def _location_never_blank(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return NOT_RECORDED
        return str(value).strip()

    @property
    def display_code(self) -> str:
        return f"{self.prefix}{self.number}{self.suffix}"

    @property
    def sort_key(self) -> Tuple[str, int, str]:
        return (self.prefix, self.number, self.suffix)


class ReportRow(BaseModel):
    position: int = Field(..., ge=1)
    display_code: str
    summary: str
    location: str

    model_config = _FROZEN


class ReportSection(BaseModel):
    title: str
    rows: Tuple[ReportRow, ...] = ()

    model_config = _FROZEN


class ReportDocument(BaseModel):
    """Immutable report description consumed by both rendering passes."""

    title: str
    subtitle: str = ""
    sections: Tuple[ReportSection, ...] = ()

    model_config = _FROZEN

    def row_counts(self) -> Dict[str, int]:
        return {s.title: len(s.rows) for s in self.sections}


# --------------------------------------------------------------------------- #
# Group record
# --------------------------------------------------------------------------- #


class GroupRecord(BaseModel):
    """
    Named, access-controlled group of selected record identifiers.
    """

    name: str = Field(..., min_length=1)
    description: str = ""
    owner_id: str
    owner_name: str
    group_type: Literal["Static"] = "Static"
    module: str
    members: Tuple[int, ...]
    edit_roles: Tuple[str, ...] = ()
    display_roles: Tuple[str, ...] = ()
    delete_roles: Tuple[str, ...] = ()

    model_config = _FROZEN

    def to_fields(self) -> Dict[str, Union[str, List[str]]]:
        """Field names and values as stored by the group persister."""
        return {
            "GroupName": self.name,
            "GroupDescription": self.description,
            "UserId": self.owner_id,
            "UserName": self.owner_name,
            "GroupType": self.group_type,
            "Module": self.module,
            "Members": "|".join(str(m) for m in self.members),
            "SecCanEdit": list(self.edit_roles),
            "SecCanDisplay": list(self.display_roles),
            "SecCanDelete": list(self.delete_roles),
        }


@dataclass(frozen=True)
class GroupResult:
    group_id: Optional[str]
    dry_run: bool
    idempotency_key: Optional[str] = None


__all__ = [
    "NOT_RECORDED",
    "AllRule",
    "FixedCountRule",
    "PercentWithBoundsRule",
    "QuotaRule",
    "Category",
    "AuditPlan",
    "Sample",
    "inclusion_predicate",
    "SelectionEntry",
    "MergedSelection",
    "RecordDetail",
    "ReportRow",
    "ReportSection",
    "ReportDocument",
    "GroupRecord",
    "GroupResult",
]
