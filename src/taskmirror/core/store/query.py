"""
Document query evaluation shared by the store backends.

Implements the Mongo-style subset the API accepts in ``where``, ``sort``
and ``select`` parameters:

- Filters: field equality (a list field matches when it contains the
  value), ``$eq $ne $gt $gte $lt $lte $in $nin $exists $regex``
  (with ``$options``), and the logical operators ``$and $or $nor``.
- Sort: ``{"field": 1 | -1}`` applied in key order; ``"asc"``/``"desc"``
  are accepted as aliases.
- Projection: inclusion (``{"name": 1}``) or exclusion (``{"email": 0}``),
  or the string form ``"name -email"``. ``_id`` is kept unless excluded.

Example:
    >>> docs = [{"_id": "1", "name": "b", "completed": False},
    ...         {"_id": "2", "name": "a", "completed": True}]
    >>> [d["_id"] for d in run_query(docs, {"completed": False})]
    ['1']
    >>> [d["name"] for d in run_query(docs, sort={"name": 1})]
    ['a', 'b']
"""

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from taskmirror.core.exceptions import ValidationError

Filter = dict[str, Any]
SortSpec = dict[str, Any]
Projection = dict[str, Any] | str


class _Missing:
    """Sentinel for a field that is absent from a document."""

    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()

_COMPARISONS = {
    "$gt": lambda a, b: a > b,
    "$gte": lambda a, b: a >= b,
    "$lt": lambda a, b: a < b,
    "$lte": lambda a, b: a <= b,
}

_SORT_DIRECTIONS = {
    1: False,
    -1: True,
    "1": False,
    "-1": True,
    "asc": False,
    "ascending": False,
    "desc": True,
    "descending": True,
}

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def get_field(doc: dict[str, Any], path: str) -> Any:
    """Resolve a (possibly dotted) field path, returning MISSING when absent."""
    current: Any = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return MISSING
    return current


def _equals(value: Any, target: Any) -> bool:
    if value is MISSING:
        return target is None
    if isinstance(value, list) and not isinstance(target, list):
        return target in value
    return bool(value == target)


def _comparable(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    return type(a) is type(b) and isinstance(a, (str, datetime))


def _compile_regex(pattern: Any, options: Any) -> re.Pattern[str]:
    if not isinstance(pattern, str):
        raise ValidationError("$regex expects a string pattern")
    flags = 0
    for ch in str(options or ""):
        if ch not in _REGEX_FLAGS:
            raise ValidationError(f"Unsupported regex option '{ch}'")
        flags |= _REGEX_FLAGS[ch]
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ValidationError(f"Invalid regular expression: {e}") from e


def _match_operators(value: Any, ops: dict[str, Any]) -> bool:
    for op, arg in ops.items():
        if op == "$options":
            if "$regex" not in ops:
                raise ValidationError("$options requires $regex")
            continue
        if op == "$eq":
            ok = _equals(value, arg)
        elif op == "$ne":
            ok = not _equals(value, arg)
        elif op in ("$in", "$nin"):
            if not isinstance(arg, list):
                raise ValidationError(f"{op} expects an array")
            found = any(_equals(value, item) for item in arg)
            ok = found if op == "$in" else not found
        elif op in _COMPARISONS:
            candidates = value if isinstance(value, list) else [value]
            ok = any(
                c is not MISSING and _comparable(c, arg) and _COMPARISONS[op](c, arg)
                for c in candidates
            )
        elif op == "$exists":
            ok = (value is not MISSING) == bool(arg)
        elif op == "$regex":
            regex = _compile_regex(arg, ops.get("$options"))
            candidates = value if isinstance(value, list) else [value]
            ok = any(isinstance(c, str) and regex.search(c) is not None for c in candidates)
        else:
            raise ValidationError(f"Unsupported query operator '{op}'")
        if not ok:
            return False
    return True


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, dict) and bool(cond) and all(k.startswith("$") for k in cond)


def matches(doc: dict[str, Any], filter_: Filter | None) -> bool:
    """
    Check whether a document satisfies a filter.

    Args:
        doc: JSON document (as stored)
        filter_: Mongo-style filter, or None to match everything

    Returns:
        True if the document matches

    Raises:
        ValidationError: If the filter is malformed or uses an unknown operator
    """
    if filter_ is None:
        return True
    if not isinstance(filter_, dict):
        raise ValidationError("Filter must be a JSON object")

    for key, cond in filter_.items():
        if key in ("$and", "$or", "$nor"):
            if not isinstance(cond, list) or not cond:
                raise ValidationError(f"{key} expects a non-empty array")
            results = (matches(doc, sub) for sub in cond)
            if key == "$and" and not all(results):
                return False
            if key == "$or" and not any(results):
                return False
            if key == "$nor" and any(results):
                return False
        elif key.startswith("$"):
            raise ValidationError(f"Unsupported query operator '{key}'")
        elif _is_operator_dict(cond):
            if not _match_operators(get_field(doc, key), cond):
                return False
        elif not _equals(get_field(doc, key), cond):
            return False
    return True


def _sort_key(value: Any) -> tuple[int, Any]:
    # Cross-type ordering: missing/null < numbers < strings < objects < arrays < booleans
    if value is MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (5, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, dict):
        return (3, str(sorted(value.items())))
    if isinstance(value, list):
        return (4, str(value))
    return (6, str(value))


def sort_documents(docs: list[dict[str, Any]], sort: SortSpec | None) -> list[dict[str, Any]]:
    """
    Sort documents by a ``{field: direction}`` spec.

    Earlier keys take precedence; ties keep their incoming order.
    """
    if not sort:
        return list(docs)
    if not isinstance(sort, dict):
        raise ValidationError("Sort must be a JSON object")

    result = list(docs)
    for field_name, direction in reversed(list(sort.items())):
        key = direction.lower() if isinstance(direction, str) else direction
        if key not in _SORT_DIRECTIONS:
            raise ValidationError(f"Invalid sort direction for '{field_name}': {direction!r}")
        result.sort(
            key=lambda d, f=field_name: _sort_key(get_field(d, f)),
            reverse=_SORT_DIRECTIONS[key],
        )
    return result


def _normalize_projection(select: Projection) -> dict[str, bool]:
    if isinstance(select, str):
        spec: dict[str, bool] = {}
        for token in select.split():
            if token.startswith("-"):
                spec[token[1:]] = False
            else:
                spec[token] = True
        return spec
    if not isinstance(select, dict):
        raise ValidationError("Select must be a JSON object or a string")

    spec = {}
    for field_name, flag in select.items():
        if flag in (0, 1) or isinstance(flag, bool):
            spec[field_name] = bool(flag)
        else:
            raise ValidationError(f"Invalid projection value for '{field_name}': {flag!r}")
    return spec


def project(doc: dict[str, Any], select: Projection | None) -> dict[str, Any]:
    """
    Apply a projection to a single document.

    Raises:
        ValidationError: If inclusion and exclusion are mixed
    """
    if not select:
        return dict(doc)

    spec = _normalize_projection(select)
    explicit_id = spec.pop("_id", None)
    include_id = explicit_id is not False
    flags = set(spec.values())
    if len(flags) > 1:
        raise ValidationError("Projection cannot mix inclusion and exclusion")

    # {"_id": 1} alone is an inclusion projection of just the id
    if not flags and explicit_id is True:
        return {"_id": doc["_id"]} if "_id" in doc else {}

    if flags == {True}:
        out = {k: doc[k] for k in spec if k in doc}
        if include_id and "_id" in doc:
            out = {"_id": doc["_id"], **out}
    else:
        out = {k: v for k, v in doc.items() if k not in spec}
    if not include_id:
        out.pop("_id", None)
    return out


def run_query(
    docs: Iterable[dict[str, Any]],
    filter_: Filter | None = None,
    *,
    sort: SortSpec | None = None,
    select: Projection | None = None,
    skip: int = 0,
    limit: int = 0,
) -> list[dict[str, Any]]:
    """
    Filter, sort, paginate and project a sequence of documents.

    Args:
        docs: Documents to query
        filter_: Mongo-style filter
        sort: ``{field: direction}`` sort spec
        select: Projection spec
        skip: Number of leading results to drop
        limit: Maximum number of results (0 means no limit)

    Returns:
        Matching documents, projected
    """
    if skip < 0 or limit < 0:
        raise ValidationError("skip and limit must be non-negative")

    matched = [d for d in docs if matches(d, filter_)]
    ordered = sort_documents(matched, sort)
    window = ordered[skip : skip + limit] if limit else ordered[skip:]
    return [project(d, select) for d in window]
