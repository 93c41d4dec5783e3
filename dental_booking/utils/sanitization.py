import re
from typing import Any, Optional

# Keys a document store would read as an operator or a nested path
OPERATOR_PREFIX = "$"
PATH_SEPARATOR = "."

# Bracket notation used by query-string parsers, e.g. "email[$ne]"
BRACKET_SEGMENT = re.compile(r"\[([^\]]*)\]")


def is_operator_key(key: Any) -> bool:
    """True when a key starts with "$" or contains "." """
    if not isinstance(key, str):
        return False
    return key.startswith(OPERATOR_PREFIX) or PATH_SEPARATOR in key


def is_operator_query_key(key: str) -> bool:
    """Like is_operator_key, but also inspects bracket segments of query keys"""
    if is_operator_key(key):
        return True
    return any(is_operator_key(segment) for segment in BRACKET_SEGMENT.findall(key))


def sanitize(value: Any, removed: Optional[list[str]] = None) -> Any:
    """
    Return a copy of value with operator-shaped keys dropped at every level.

    Args:
        value: Decoded JSON structure (dicts, lists, scalars)
        removed: Optional list that collects the dropped keys

    Returns:
        Cleaned structure; scalars are returned as-is
    """
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            if is_operator_key(key):
                if removed is not None:
                    removed.append(key)
                continue
            cleaned[key] = sanitize(item, removed)
        return cleaned

    if isinstance(value, list):
        return [sanitize(item, removed) for item in value]

    return value


def sanitize_query_pairs(
    pairs: list[tuple[str, str]], removed: Optional[list[str]] = None
) -> list[tuple[str, str]]:
    """Drop query-string pairs whose key is operator-shaped"""
    kept = []
    for key, value in pairs:
        if is_operator_query_key(key):
            if removed is not None:
                removed.append(key)
            continue
        kept.append((key, value))
    return kept
