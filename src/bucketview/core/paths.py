"""Helpers for treating flat object keys as a folder hierarchy."""

from __future__ import annotations

from bucketview.constants import DELIMITER


def normalize_prefix(path: str) -> str:
    """Turn a user-facing folder path into a listing prefix.

    The root is the empty string. Every other prefix ends with the delimiter
    and never starts with one. Whitespace is part of a key and is kept.
    """
    path = path.lstrip(DELIMITER)
    if not path:
        return ""
    if not path.endswith(DELIMITER):
        path += DELIMITER
    return path


def compose_key(prefix: str, name: str) -> str:
    """Join a folder prefix and an object name into a key."""
    name = name.lstrip(DELIMITER)
    if not name:
        raise ValueError("Object name cannot be empty")
    return f"{normalize_prefix(prefix)}{name}"


def parent_prefix(prefix: str) -> str:
    """Return the prefix one level above ``prefix`` ('' at the root)."""
    trimmed = prefix.rstrip(DELIMITER)
    if DELIMITER not in trimmed:
        return ""
    return trimmed.rsplit(DELIMITER, 1)[0] + DELIMITER


def split_prefix(prefix: str) -> list[tuple[str, str]]:
    """Break a prefix into breadcrumb segments of (label, prefix-up-to-here)."""
    segments = []
    current = ""
    for part in normalize_prefix(prefix).split(DELIMITER):
        if not part:
            continue
        current += part + DELIMITER
        segments.append((part, current))
    return segments


def basename(key: str) -> str:
    """Last path segment of a key, ignoring a trailing delimiter."""
    trimmed = key.rstrip(DELIMITER)
    return trimmed.rsplit(DELIMITER, 1)[-1] if trimmed else key
