"""Reusable IAM helper utilities for the collector access role."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence


def dedupe(values: Iterable[Any]) -> list[str]:
    """Return stripped, non-empty items without duplicates while preserving order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def config_string_list(config: Mapping[str, Any], key: str, default: Sequence[str] = ()) -> list[str]:
    """Return normalized list[str] from config or provide default."""
    raw_values = config.get(key)
    if isinstance(raw_values, str):
        raw_values = raw_values.split(",")
    items = list(default if raw_values is None else raw_values)
    return dedupe(items)


def resource_tag_condition(tag_key: str, value: str = "true") -> dict[str, dict[str, str]]:
    """Build a StringEquals condition on a resource tag."""
    key = str(tag_key or "").strip()
    if not key:
        raise ValueError("Tag key must be provided")
    return {"StringEquals": {f"aws:ResourceTag/{key}": value}}
