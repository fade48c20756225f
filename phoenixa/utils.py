from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from types import MappingProxyType
from typing import Any, TypeVar

K = TypeVar("K")
V = TypeVar("V")

EMPTY_CONTEXT: Mapping[str, Any] = MappingProxyType({})


def parse_http_date(value: str) -> datetime:
    """
    Parse an HTTP date (RFC 1123, RFC 850 or asctime format).

    The result is always timezone-aware. Raises ValueError when the value
    is not a valid HTTP date.
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid HTTP date: {value!r}") from exc
    if parsed is None:
        raise ValueError(f"Invalid HTTP date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def update_map(original: Mapping[K, V], updates: Mapping[K, V | None] | None) -> Mapping[K, V]:
    """
    Return a copy of original with updates applied.

    A None value removes the key, any other value replaces it. The original
    mapping is returned as-is when there is nothing to apply.
    """
    if not updates:
        return original
    merged = dict(original)
    for key, value in updates.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def freeze_context(context: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Wrap context in a read-only view, sharing one empty instance."""
    if isinstance(context, MappingProxyType):
        return context
    if not context:
        return EMPTY_CONTEXT
    return MappingProxyType(dict(context))
