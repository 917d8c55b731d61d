"""Lenient coercion for loosely-typed provider payloads."""

from __future__ import annotations

from typing import Any, List, Mapping


def ensure_string(value: Any) -> str:
    """Flatten arbitrary JSON-ish values into display text.

    Lists are joined with ``", "`` and mappings with ``" | "``; booleans render
    as ``Yes``/``No``. ``None`` becomes the empty string.
    """

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(ensure_string(item) for item in value)
    if isinstance(value, Mapping):
        return " | ".join(ensure_string(item) for item in value.values())
    return str(value)


def safe_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


__all__ = ["ensure_string", "safe_list"]
