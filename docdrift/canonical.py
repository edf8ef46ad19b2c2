"""Deterministic serialisation used to compare specification documents."""

from __future__ import annotations

import json
from typing import Any


def sort_keys_deep(value: Any) -> Any:
    """Return a copy of ``value`` with every mapping's keys sorted recursively."""
    if isinstance(value, dict):
        return {str(key): sort_keys_deep(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [sort_keys_deep(item) for item in value]
    return value


def stable_stringify(value: Any) -> str:
    """Canonical JSON: keys sorted at every depth, two-space indent."""
    return json.dumps(sort_keys_deep(value), indent=2, ensure_ascii=False, default=str)


__all__ = ["sort_keys_deep", "stable_stringify"]
