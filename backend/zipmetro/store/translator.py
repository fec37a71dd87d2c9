"""
ZipMetro Backend — Literal Query Translator
============================================

What:  Turns a literal SQL statement with `?` placeholders plus its positional
       parameters into a structured plan (ParsedQuery, InsertPlan,
       UpdatePlan or DeletePlan). Nothing is executed here.
Why:   Lets the document store run the same literal queries the relational
       store runs natively.
How:   Regex-driven parsing of a deliberately small SQL subset. Anything
       outside the subset raises TranslationError instead of being
       approximated, so a query never silently selects more rows on one
       store than on the other.
Who:   zipmetro.store.document (literal get_one / get_many / run)

Supported grammar (keywords case-insensitive, statements may span lines):
    SELECT * | col, ... | COUNT(*) [AS alias] FROM coll
        [WHERE cond AND ...] [ORDER BY field [ASC|DESC]] [LIMIT n|?]
    INSERT [OR REPLACE] INTO coll (f1, f2, ...) [VALUES (v1, v2, ...)]
    UPDATE coll SET f1 = ?|literal, ... [WHERE cond AND ...]
    DELETE FROM coll [WHERE cond AND ...]

WHERE conditions (fields may carry an `alias.` prefix):
    field = ?                       → Equals
    field = <literal>               → Equals (integer, real, quoted string, NULL)
    field LIKE ?                    → Like
    (f1 LIKE ? OR f2 LIKE ?)        → AnyLike
    1=1                             → always true, dropped

Parameter consumption:
    Strictly left to right in the textual order of `?` markers: SET before
    WHERE for UPDATE, WHERE before LIMIT for SELECT. Every parameter must be
    consumed by exactly one placeholder.

Value normalisation (equality, INSERT values, SET values):
    id      → the active store's native identifier (native_id callback)
    active  → True iff the value is 1, True or '1'
"""

import re
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence, Union

from zipmetro.exceptions import TranslationError
from zipmetro.store.query import (
    AnyLike,
    Condition,
    DeletePlan,
    Equals,
    InsertPlan,
    Like,
    ParsedQuery,
    Sort,
    UpdatePlan,
    utcnow,
)

Plan = Union[ParsedQuery, InsertPlan, UpdatePlan, DeletePlan]

_FLAGS = re.IGNORECASE | re.DOTALL
_FIELD = r"(?:\w+\.)?(\w+)"

# ── Statement-level patterns ──────────────────────────────────────────────
_COLLECTION_RE = re.compile(r"\bFROM\s+(\w+)|\bINTO\s+(\w+)|\bUPDATE\s+(\w+)", re.IGNORECASE)
_UNSUPPORTED_RE = re.compile(r"\b(JOIN|GROUP\s+BY|HAVING|UNION)\b", re.IGNORECASE)

_PROJECTION_RE = re.compile(r"^SELECT\s+(.+?)\s+FROM\b", _FLAGS)
_WHERE_RE = re.compile(r"\bWHERE\s+(.+?)(?=\s+ORDER\s+BY\b|\s+LIMIT\b|\s*$)", _FLAGS)
_ORDER_RE = re.compile(r"\bORDER\s+BY\s+(.+?)(?=\s+LIMIT\b|\s*$)", _FLAGS)
_LIMIT_RE = re.compile(r"\bLIMIT\s+(\d+|\?)\s*$", re.IGNORECASE)
_LIMIT_WORD_RE = re.compile(r"\bLIMIT\b", re.IGNORECASE)

_INSERT_RE = re.compile(
    r"^INSERT\s+(OR\s+REPLACE\s+)?INTO\s+(\w+)\s*\(([^)]*)\)\s*(?:VALUES\s*\((.*)\))?$",
    _FLAGS,
)
_UPDATE_RE = re.compile(r"^UPDATE\s+(\w+)\s+SET\s+(.+?)(?:\s+WHERE\s+(.+))?$", _FLAGS)
_DELETE_RE = re.compile(r"^DELETE\s+FROM\s+(\w+)(?:\s+WHERE\s+(.+))?$", _FLAGS)

# ── Fragment patterns ─────────────────────────────────────────────────────
_COUNT_RE = re.compile(r"COUNT\s*\(\s*\*\s*\)(?:\s+AS\s+(\w+))?", re.IGNORECASE)
_COLUMN_RE = re.compile(r"(?:\w+\.)?(\w+|\*)")
_SORT_RE = re.compile(rf"{_FIELD}(?:\s+(ASC|DESC))?", re.IGNORECASE)
_IDENTIFIER_RE = re.compile(r"\w+")
_ASSIGNMENT_RE = re.compile(rf"{_FIELD}\s*=\s*(.+)", _FLAGS)

_ALWAYS_TRUE_PREFIX_RE = re.compile(r"\b1\s*=\s*1\s+AND\s+", re.IGNORECASE)
_ALWAYS_TRUE_RE = re.compile(r"1\s*=\s*1")
_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)
_EQUALS_RE = re.compile(rf"{_FIELD}\s*=\s*\?")
_EQUALS_LITERAL_RE = re.compile(rf"{_FIELD}\s*=\s*(.+)", _FLAGS)
_LIKE_RE = re.compile(rf"{_FIELD}\s+LIKE\s+\?", re.IGNORECASE)
_ANY_LIKE_RE = re.compile(
    rf"\(\s*{_FIELD}\s+LIKE\s+\?\s+OR\s+{_FIELD}\s+LIKE\s+\?\s*\)", re.IGNORECASE
)

_INT_RE = re.compile(r"[-+]?\d+")
_REAL_RE = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+)(?:[eE][-+]?\d+)?")
_STRING_RE = re.compile(r"'((?:[^']|'')*)'", re.DOTALL)


def _same(value: Any) -> Any:
    return value


class _Parameters:
    """Positional parameters consumed one placeholder at a time."""

    def __init__(self, values: Sequence[Any], sql: str):
        self._values = list(values)
        self._next = 0
        self._sql = sql

    def take(self) -> Any:
        if self._next >= len(self._values):
            raise TranslationError(
                f"Query has more placeholders than the {len(self._values)} parameters supplied",
                sql=self._sql,
            )
        value = self._values[self._next]
        self._next += 1
        return value

    def finish(self) -> None:
        if self._next != len(self._values):
            raise TranslationError(
                f"Query has {self._next} placeholders but {len(self._values)} parameters were supplied",
                sql=self._sql,
            )


def collection_name(sql: str) -> str:
    """The table/collection named after FROM, INTO or UPDATE (first match)."""
    match = _COLLECTION_RE.search(sql)
    if not match:
        raise TranslationError("Could not determine collection from query", sql=sql)
    return match.group(1) or match.group(2) or match.group(3)


def active_flag(value: Any) -> bool:
    """The `active` column convention: 1, True and '1' mean active."""
    return value in (1, True, "1")


def _normalise(field: str, value: Any, native_id: Callable[[Any], Any]) -> Any:
    if field == "id":
        return native_id(value)
    if field == "active":
        return active_flag(value)
    return value


def _split_list(text: str) -> List[str]:
    """Splits on commas outside quotes and parentheses."""
    items = []
    depth = 0
    quoted = False
    start = 0
    for index, char in enumerate(text):
        if char == "'":
            quoted = not quoted
        elif quoted:
            continue
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            items.append(text[start:index].strip())
            start = index + 1
    items.append(text[start:].strip())
    return items


def _literal(token: str, sql: str, now: datetime) -> Any:
    upper = token.upper()
    if upper == "NULL":
        return None
    if upper == "CURRENT_TIMESTAMP":
        return now
    if upper in ("TRUE", "FALSE"):
        return upper == "TRUE"
    if _INT_RE.fullmatch(token):
        return int(token)
    if _REAL_RE.fullmatch(token):
        return float(token)
    match = _STRING_RE.fullmatch(token)
    if match:
        return match.group(1).replace("''", "'")
    raise TranslationError(f"Unsupported value: {token}", sql=sql)


def _value(token: str, params: _Parameters, sql: str, now: datetime) -> Any:
    if token == "?":
        return params.take()
    return _literal(token, sql, now)


def _like_pattern(value: Any, sql: str) -> str:
    if value is None:
        raise TranslationError("LIKE parameter must not be NULL", sql=sql)
    return str(value)


# ── Conditions ────────────────────────────────────────────────────────────

def _parse_conditions(
    clause: Optional[str],
    params: _Parameters,
    native_id: Callable[[Any], Any],
    sql: str,
    now: datetime,
) -> List[Condition]:
    if not clause:
        return []
    clause = _ALWAYS_TRUE_PREFIX_RE.sub("", clause.strip())

    conditions: List[Condition] = []
    for part in _AND_RE.split(clause):
        part = part.strip()
        if _ALWAYS_TRUE_RE.fullmatch(part):
            continue

        match = _EQUALS_RE.fullmatch(part)
        if match:
            field = match.group(1)
            conditions.append(Equals(field, _normalise(field, params.take(), native_id)))
            continue

        match = _LIKE_RE.fullmatch(part)
        if match:
            conditions.append(Like(match.group(1), _like_pattern(params.take(), sql)))
            continue

        match = _ANY_LIKE_RE.fullmatch(part)
        if match:
            first = Like(match.group(1), _like_pattern(params.take(), sql))
            second = Like(match.group(2), _like_pattern(params.take(), sql))
            conditions.append(AnyLike((first, second)))
            continue

        match = _EQUALS_LITERAL_RE.fullmatch(part)
        if match and "?" not in match.group(2):
            field = match.group(1)
            value = _literal(match.group(2).strip(), sql, now)
            conditions.append(Equals(field, _normalise(field, value, native_id)))
            continue

        raise TranslationError(f"Unsupported WHERE condition: {part}", sql=sql)
    return conditions


# ── Statements ────────────────────────────────────────────────────────────

def _translate_select(
    statement: str,
    collection: str,
    params: _Parameters,
    native_id: Callable[[Any], Any],
    now: datetime,
) -> ParsedQuery:
    query = ParsedQuery(collection=collection)

    projection = _PROJECTION_RE.search(statement)
    if not projection:
        raise TranslationError("Could not parse SELECT column list", sql=statement)
    columns = projection.group(1).strip()
    count = _COUNT_RE.fullmatch(columns)
    if count:
        query.count_alias = count.group(1) or "count"
    elif columns != "*":
        fields = []
        for column in _split_list(columns):
            match = _COLUMN_RE.fullmatch(column)
            if not match:
                raise TranslationError(f"Unsupported column: {column}", sql=statement)
            fields.append(match.group(1))
        if "*" not in fields:
            query.fields = fields

    where = _WHERE_RE.search(statement)
    if where:
        query.conditions = _parse_conditions(where.group(1), params, native_id, statement, now)

    order = _ORDER_RE.search(statement)
    if order:
        sort = _SORT_RE.fullmatch(order.group(1).strip())
        if not sort:
            raise TranslationError("Only single-field ORDER BY is supported", sql=statement)
        direction = (sort.group(2) or "ASC").upper()
        query.sort = Sort(sort.group(1), descending=direction == "DESC")

    if _LIMIT_WORD_RE.search(statement):
        limit = _LIMIT_RE.search(statement)
        if not limit:
            raise TranslationError("Could not parse LIMIT", sql=statement)
        raw = limit.group(1)
        try:
            query.limit = int(params.take() if raw == "?" else raw)
        except (TypeError, ValueError):
            raise TranslationError("LIMIT must be an integer", sql=statement)

    return query


def _translate_insert(
    statement: str,
    params: _Parameters,
    native_id: Callable[[Any], Any],
    now: datetime,
) -> InsertPlan:
    match = _INSERT_RE.match(statement)
    if not match:
        raise TranslationError("Could not parse INSERT fields", sql=statement)

    replace = bool(match.group(1))
    collection = match.group(2)
    fields = [f.strip() for f in match.group(3).split(",")]
    if not all(_IDENTIFIER_RE.fullmatch(f) for f in fields):
        raise TranslationError("Could not parse INSERT fields", sql=statement)

    if match.group(4) is not None:
        tokens = _split_list(match.group(4))
        if len(tokens) != len(fields):
            raise TranslationError(
                f"INSERT names {len(fields)} fields but supplies {len(tokens)} values",
                sql=statement,
            )
        values = [_value(token, params, statement, now) for token in tokens]
    else:
        values = [params.take() for _ in fields]

    doc = {field: _normalise(field, value, native_id) for field, value in zip(fields, values)}
    return InsertPlan.build(collection, doc, replace=replace, now=now)


def _translate_update(
    statement: str,
    params: _Parameters,
    native_id: Callable[[Any], Any],
    now: datetime,
) -> UpdatePlan:
    match = _UPDATE_RE.match(statement)
    if not match:
        raise TranslationError("Could not parse UPDATE SET clause", sql=statement)

    collection = match.group(1)
    changes = {}
    # SET placeholders come first in the text, so they consume first
    for assignment in _split_list(match.group(2)):
        parsed = _ASSIGNMENT_RE.fullmatch(assignment)
        if not parsed:
            raise TranslationError(f"Malformed assignment: {assignment}", sql=statement)
        field = parsed.group(1)
        value = _value(parsed.group(2).strip(), params, statement, now)
        changes[field] = _normalise(field, value, native_id)

    conditions = _parse_conditions(match.group(3), params, native_id, statement, now)
    return UpdatePlan.build(collection, conditions, changes, now=now)


def _translate_delete(
    statement: str,
    params: _Parameters,
    native_id: Callable[[Any], Any],
    now: datetime,
) -> DeletePlan:
    match = _DELETE_RE.match(statement)
    if not match:
        raise TranslationError("Could not parse DELETE statement", sql=statement)
    conditions = _parse_conditions(match.group(2), params, native_id, statement, now)
    return DeletePlan(collection=match.group(1), conditions=conditions)


def translate(
    sql: str,
    params: Sequence[Any] = (),
    native_id: Callable[[Any], Any] = _same,
    now: Optional[datetime] = None,
) -> Plan:
    """
    Translate one literal statement into a structured plan.

    Args:
        sql:        Statement using `?` placeholders.
        params:     Positional parameters, one per placeholder.
        native_id:  Converts inbound identifiers to the store's native type.
        now:        Timestamp used for CURRENT_TIMESTAMP and auto-stamped
                    fields (defaults to utcnow()).

    Raises:
        TranslationError for anything outside the supported grammar and for
        placeholder/parameter count mismatches.
    """
    statement = sql.strip().rstrip(";").strip()
    if not statement:
        raise TranslationError("Empty query", sql=sql)

    collection = collection_name(statement)
    unsupported = _UNSUPPORTED_RE.search(statement)
    if unsupported:
        raise TranslationError(
            f"{unsupported.group(1).upper()} is not supported by the document store",
            sql=statement,
        )

    params_ = _Parameters(params, statement)
    now = now or utcnow()
    verb = statement.split(None, 1)[0].upper()

    if verb == "SELECT":
        plan: Plan = _translate_select(statement, collection, params_, native_id, now)
    elif verb == "INSERT":
        plan = _translate_insert(statement, params_, native_id, now)
    elif verb == "UPDATE":
        plan = _translate_update(statement, params_, native_id, now)
    elif verb == "DELETE":
        plan = _translate_delete(statement, params_, native_id, now)
    else:
        raise TranslationError(f"Unsupported statement: {verb}", sql=statement)

    params_.finish()
    return plan
