"""Glob matching used by allowlists, excludes and path rules."""

from __future__ import annotations

import pytest

from docdrift.globs import is_path_allowed, is_path_allowed_and_not_excluded, matches_glob


@pytest.mark.parametrize(
    ("glob", "path", "expected"),
    [
        ("apps/api/src/**", "apps/api/src/routes/users.ts", True),
        ("apps/api/src/**", "apps/web/src/index.ts", False),
        ("docs/*.md", "docs/guide.md", True),
        ("docs/*.md", "docs/guides/auth.md", False),
        ("docs/**/*.md", "docs/guides/auth.md", True),
        ("openapi.json", "openapi.json", True),
        ("openapi.json", "openapiXjson", False),
        ("src/**", "lib/src/a.py", False),
    ],
)
def test_matches_glob(glob: str, path: str, expected: bool) -> None:
    assert matches_glob(glob, path) is expected


def test_matches_glob_normalises_windows_separators() -> None:
    assert matches_glob("docs/**", "docs\\guides\\auth.md")


def test_allowlist_and_exclude() -> None:
    allowlist = ["docs/**", "openapi/**"]
    exclude = ["docs/generated/**"]

    assert is_path_allowed("docs/guide.md", allowlist)
    assert not is_path_allowed("src/app.py", allowlist)
    assert is_path_allowed_and_not_excluded("docs/guide.md", allowlist, exclude)
    assert not is_path_allowed_and_not_excluded("docs/generated/api.md", allowlist, exclude)


def test_empty_allowlist_allows_nothing() -> None:
    assert not is_path_allowed("docs/guide.md", [])
