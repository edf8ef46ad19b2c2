"""Glob matching for repository-relative paths.

``*`` matches within a single path segment, ``**`` matches across segments
and every other character is literal. Patterns must match the whole path.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Pattern, Sequence


@lru_cache(maxsize=512)
def glob_to_regex(glob: str) -> Pattern[str]:
    parts: list[str] = []
    index = 0
    while index < len(glob):
        if glob.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        char = glob[index]
        parts.append("[^/]*" if char == "*" else re.escape(char))
        index += 1
    return re.compile("".join(parts), re.DOTALL)


def matches_glob(glob: str, value: str) -> bool:
    normalized = value.replace("\\", "/")
    return glob_to_regex(glob).fullmatch(normalized) is not None


def is_path_allowed(path: str, allowlist: Sequence[str]) -> bool:
    return any(matches_glob(glob, path) for glob in allowlist)


def is_path_excluded(path: str, exclude: Sequence[str]) -> bool:
    return any(matches_glob(glob, path) for glob in exclude)


def is_path_allowed_and_not_excluded(
    path: str, allowlist: Sequence[str], exclude: Sequence[str] = ()
) -> bool:
    return is_path_allowed(path, allowlist) and not is_path_excluded(path, exclude)


__all__ = [
    "glob_to_regex",
    "is_path_allowed",
    "is_path_allowed_and_not_excluded",
    "is_path_excluded",
    "matches_glob",
]
