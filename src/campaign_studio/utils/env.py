"""Environment helpers shared across runtime modules."""

from __future__ import annotations

from typing import Mapping, MutableMapping
import os

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def env_flag(value: str | None, *, default: bool = False) -> bool:
    token = _normalize(value)
    if not token:
        return default
    if token in TRUTHY:
        return True
    if token in FALSY:
        return False
    return default


def env_float(value: str | None, *, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc


def fixture_mode_enabled(
    env: Mapping[str, str] | MutableMapping[str, str] | None = None,
    *,
    default: bool = False,
) -> bool:
    data = env if env is not None else os.environ
    return env_flag(data.get("CAMPAIGN_STUDIO_FIXTURE"), default=default)


__all__ = [
    "TRUTHY",
    "FALSY",
    "env_flag",
    "env_float",
    "fixture_mode_enabled",
]
