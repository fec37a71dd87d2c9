"""
ZipMetro Backend — Structured Query Model
===========================================

What:  Plain data objects describing reads and writes independently of any
       query language: conditions, sort, parsed SELECTs and mutation plans.
Why:   Both the literal-SQL translator and the typed store interface produce
       these objects, and both adapters execute them. One model, two front
       ends, two back ends.
How:   Frozen dataclasses for conditions; small builders for plans so that
       timestamp handling lives in exactly one place.
Who:   zipmetro.store.translator, zipmetro.store.base and both adapters.

Condition semantics (identical on both stores):
    Equals(field, value)      field equals value (None matches missing/NULL)
    Like(field, pattern)      SQL LIKE pattern, case-insensitive, anchored:
                              % = any sequence, _ = any single character
    AnyLike(options)          at least one of the Like options holds
    AtLeast(field, value)     field >= value
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

# What: Fields auto-populated on insert when the caller does not supply them
TIMESTAMP_FIELDS = ("created_at", "updated_at")


def utcnow() -> datetime:
    """
    Current time as naive UTC, truncated to milliseconds.

    Why milliseconds: BSON dates carry millisecond precision, so a value
    written and read back compares equal on both stores.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


# ── Conditions ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Like:
    field: str
    pattern: str


@dataclass(frozen=True)
class AnyLike:
    options: Tuple[Like, ...]


@dataclass(frozen=True)
class AtLeast:
    field: str
    value: Any


Condition = Union[Equals, Like, AnyLike, AtLeast]


def conditions_from(
    where: Optional[Mapping[str, Any]] = None,
    extra: Sequence[Condition] = (),
) -> List[Condition]:
    """Equality conditions for each `where` item, followed by `extra`."""
    conditions: List[Condition] = [Equals(k, v) for k, v in (where or {}).items()]
    conditions.extend(extra)
    return conditions


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = False


# ── Reads ─────────────────────────────────────────────────────────────────

@dataclass
class ParsedQuery:
    """
    A structured SELECT.

    `fields=None` means the whole entity. A non-None `count_alias` turns the
    query into a count whose result is `{count_alias: n}`.
    """

    collection: str
    conditions: List[Condition] = field(default_factory=list)
    fields: Optional[List[str]] = None
    sort: Optional[Sort] = None
    limit: Optional[int] = None
    count_alias: Optional[str] = None

    @property
    def is_count(self) -> bool:
        return self.count_alias is not None


# ── Writes ────────────────────────────────────────────────────────────────

@dataclass
class InsertPlan:
    """
    An insert. `replace=True` overwrites the row/document with the same id.

    `stamped` lists the timestamp fields filled in by `build` rather than by
    the caller; the relational store drops those its table does not have.
    """

    collection: str
    values: Dict[str, Any]
    replace: bool = False
    stamped: Tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        collection: str,
        values: Mapping[str, Any],
        replace: bool = False,
        now: Optional[datetime] = None,
    ) -> "InsertPlan":
        doc = dict(values)
        now = now or utcnow()
        stamped = []
        for name in TIMESTAMP_FIELDS:
            if doc.get(name) is None:
                doc[name] = now
                stamped.append(name)
        return cls(collection=collection, values=doc, replace=replace, stamped=tuple(stamped))


@dataclass
class UpdatePlan:
    """Sets `values` on every match; `updated_at` is always refreshed."""

    collection: str
    conditions: List[Condition]
    values: Dict[str, Any]

    @classmethod
    def build(
        cls,
        collection: str,
        conditions: Sequence[Condition],
        values: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> "UpdatePlan":
        changes = dict(values)
        changes["updated_at"] = now or utcnow()
        return cls(collection=collection, conditions=list(conditions), values=changes)


@dataclass
class DeletePlan:
    collection: str
    conditions: List[Condition]


MutationPlan = Union[InsertPlan, UpdatePlan, DeletePlan]


@dataclass(frozen=True)
class RunResult:
    """Outcome of a write: the assigned identifier (inserts) and rows affected."""

    last_id: Any = None
    changes: int = 0
