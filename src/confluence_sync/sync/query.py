"""Build CQL search queries from sync filters."""

from __future__ import annotations

import re

from ..config_schema import SyncFilters
from ..errors import ConfigurationError
from ..validators import validate_filters

BASE_QUERY = "type = page"

_NEEDS_QUOTES = re.compile(r"[\s,()]")
_NUMERIC_ID = re.compile(r"^\d+$")


def escape_cql_value(value: str) -> str:
    """Quote a CQL value when it contains whitespace, commas or parentheses."""
    trimmed = (value or "").strip()
    if not trimmed:
        return ""
    if _NEEDS_QUOTES.search(trimmed):
        return '"' + trimmed.replace('"', '\\"') + '"'
    return trimmed


def build_search_query(filters: SyncFilters | None = None) -> str:
    """Translate *filters* into a CQL query.

    A missing or disabled filter yields ``type = page``. Blank values are
    dropped and non-numeric root page ids are ignored.

    Examples:
        >>> build_search_query(SyncFilters(enabled=True, space_keys=["ENG"]))
        'type = page AND space IN (ENG)'
    """
    conditions = [BASE_QUERY]
    if filters is None or not filters.enabled:
        return BASE_QUERY

    spaces = [v for v in map(escape_cql_value, filters.space_keys) if v]
    if spaces:
        conditions.append(f"space IN ({', '.join(spaces)})")

    labels = [v for v in map(escape_cql_value, filters.labels) if v]
    if labels:
        conditions.append(f"label IN ({', '.join(labels)})")

    roots = [
        p.strip() for p in filters.root_page_ids if _NUMERIC_ID.match(p.strip())
    ]
    if roots:
        conditions.append(f"ancestor IN ({', '.join(roots)})")

    return " AND ".join(conditions)


def ensure_valid_filters(filters: SyncFilters | None) -> None:
    """Raise ``ConfigurationError`` when *filters* fail validation."""
    if filters is None:
        return
    is_valid, message = validate_filters(filters)
    if not is_valid:
        raise ConfigurationError(message, {"filters": filters.model_dump()})


__all__ = [
    "BASE_QUERY",
    "build_search_query",
    "ensure_valid_filters",
    "escape_cql_value",
    "validate_filters",
]
