"""
Query-string parameter parsing for list and detail endpoints.

``where``, ``sort`` and ``select`` arrive as JSON text; ``skip`` and
``limit`` as integers; ``count=true`` switches a list call to a count.
"""

import json
from dataclasses import dataclass
from typing import Any

from fastapi import Query

from taskmirror.core.exceptions import ValidationError


def parse_json_param(value: str | None, field_name: str) -> Any:
    """
    Decode a JSON query parameter.

    Returns:
        Decoded value, or None when the parameter is absent or empty

    Raises:
        ValidationError: If the text is not valid JSON
    """
    if value is None or value == "":
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in '{field_name}'") from e


def parse_int_param(value: str | None, field_name: str) -> int | None:
    """Decode an integer query parameter (None when absent)."""
    if value is None or value.strip() == "":
        return None
    try:
        number = int(value)
    except ValueError as e:
        raise ValidationError(f"Invalid integer in '{field_name}'") from e
    if number < 0:
        raise ValidationError(f"'{field_name}' must be non-negative")
    return number


@dataclass
class ListParams:
    """Parsed list-endpoint parameters."""

    where: dict[str, Any] | None = None
    sort: dict[str, Any] | None = None
    select: dict[str, Any] | str | None = None
    skip: int = 0
    limit: int | None = None
    count: bool = False


def list_params(
    where: str | None = Query(default=None, description="JSON filter"),
    sort: str | None = Query(default=None, description="JSON sort spec"),
    select: str | None = Query(default=None, description="JSON projection"),
    skip: str | None = Query(default=None, description="Results to skip"),
    limit: str | None = Query(default=None, description="Maximum results"),
    count: str | None = Query(default=None, description="Return a count instead"),
) -> ListParams:
    """FastAPI dependency turning raw query strings into ListParams."""
    parsed_where = parse_json_param(where, "where")
    if parsed_where is not None and not isinstance(parsed_where, dict):
        raise ValidationError("'where' must be a JSON object")

    parsed_sort = parse_json_param(sort, "sort")
    if parsed_sort is not None and not isinstance(parsed_sort, dict):
        raise ValidationError("'sort' must be a JSON object")

    return ListParams(
        where=parsed_where,
        sort=parsed_sort,
        select=parse_json_param(select, "select"),
        skip=parse_int_param(skip, "skip") or 0,
        limit=parse_int_param(limit, "limit"),
        count=(count or "").lower() == "true",
    )


def select_param(
    select: str | None = Query(default=None, description="JSON projection"),
) -> dict[str, Any] | str | None:
    """FastAPI dependency for the ``select`` parameter of detail endpoints."""
    parsed: dict[str, Any] | str | None = parse_json_param(select, "select")
    return parsed
