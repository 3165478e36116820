"""
Input validation helpers for confluence_sync.

Validators return ``(is_valid, message)`` tuples; callers decide whether an
invalid value becomes an exception.
"""

import re

from .config_schema import SyncFilters

_NUMERIC_ID = re.compile(r"^\d+$")
_TRAVERSAL = re.compile(r"(^|[\\/])\.\.([\\/]|$)")


def format_validation_error(field_name: str, reason: str) -> str:
    """Generate a consistent error message for validation failures."""
    return f"{field_name} {reason}"


def validate_relative_path(path: str) -> tuple[bool, str]:
    """
    Validate a vault-relative file path before any I/O.

    Args:
        path: Path relative to the vault root.

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Cannot be empty
        - Cannot contain NUL bytes
        - Cannot be absolute (``/x``, ``\\x`` or a drive letter)
        - Cannot contain a ``..`` segment with either separator
    """
    if not path or not path.strip():
        return False, format_validation_error("Path", "cannot be empty")

    if "\x00" in path:
        return False, format_validation_error(
            "Path", "cannot contain NUL bytes"
        )

    if path.startswith(("/", "\\")) or re.match(r"^[A-Za-z]:", path):
        return False, format_validation_error("Path", "must be relative")

    if _TRAVERSAL.search(path):
        return False, format_validation_error(
            "Path", f"'{path}' contains a path traversal sequence"
        )

    return True, ""


def validate_filters(filters: SyncFilters) -> tuple[bool, str]:
    """
    Validate a sync query filter before it is sent anywhere.

    A disabled filter is always valid. An enabled filter must name at
    least one space, label or root page, and root page ids must be numeric.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not filters.enabled:
        return True, ""

    space_keys = [k for k in filters.space_keys if k.strip()]
    labels = [label for label in filters.labels if label.strip()]
    root_ids = [p for p in filters.root_page_ids if p.strip()]

    if not (space_keys or labels or root_ids):
        return False, format_validation_error(
            "Filter",
            "is enabled but names no space keys, labels or root page ids",
        )

    bad = [p for p in root_ids if not _NUMERIC_ID.match(p.strip())]
    if bad:
        return False, format_validation_error(
            "Root page ids", f"must be numeric (got {', '.join(bad)})"
        )

    return True, ""
