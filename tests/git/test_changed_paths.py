"""Tests for revision-range inspection."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from docdrift.errors import GitError
from docdrift.git.diff import ChangedPathLister, RevisionRange
from tests._fixtures.fakes import fake_git_runner


def test_changed_paths_lists_diff_names(tmp_path: Path) -> None:
    calls: list[tuple[list[str], Path]] = []

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        calls.append((list(args), Path(cwd)))
        return "src/app.py\n\ndocs/guide.md\n"

    lister = ChangedPathLister(tmp_path, runner=runner)

    assert lister.changed_paths("base", "head") == ["src/app.py", "docs/guide.md"]
    assert calls == [(["git", "diff", "--name-only", "base", "head"], tmp_path)]


def test_change_set_collects_summary_and_commits(tmp_path: Path) -> None:
    lister = ChangedPathLister(tmp_path, runner=fake_git_runner(["a.py", "b.py"], commits=["c1", "c2"]))

    change_set = lister.change_set("base", "head")

    assert change_set.changed_paths == ["a.py", "b.py"]
    assert change_set.diff_summary == "2 files changed"
    assert change_set.commits == ["c1", "c2"]
    assert change_set.to_dict()["changedPaths"] == ["a.py", "b.py"]


def test_git_failure_raises_git_error(tmp_path: Path) -> None:
    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        raise subprocess.CalledProcessError(128, args, stderr="fatal: bad revision")

    lister = ChangedPathLister(tmp_path, runner=runner)

    with pytest.raises(GitError, match="bad revision"):
        lister.changed_paths("nope", "head")
    assert lister.commit_list("nope", "head") == []


def test_resolve_prefers_explicit_revisions(tmp_path: Path) -> None:
    lister = ChangedPathLister(tmp_path, runner=fake_git_runner())

    assert lister.resolve_base_head("b", "h", environ={}) == RevisionRange(base_sha="b", head_sha="h")


def test_resolve_reads_ci_environment(tmp_path: Path) -> None:
    lister = ChangedPathLister(tmp_path, runner=fake_git_runner())

    revisions = lister.resolve_base_head(environ={"GITHUB_SHA": "sha-head", "GITHUB_BASE_SHA": "sha-base"})

    assert revisions == RevisionRange(base_sha="sha-base", head_sha="sha-head")


def test_resolve_falls_back_to_merge_base(tmp_path: Path) -> None:
    lister = ChangedPathLister(tmp_path, runner=fake_git_runner(merge_base="mb1", head="f00d"))

    assert lister.resolve_base_head(environ={}) == RevisionRange(base_sha="mb1", head_sha="f00d")


def test_resolve_uses_parent_when_no_default_branch(tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        calls.append(list(args))
        if args[:2] == ["git", "merge-base"]:
            raise subprocess.CalledProcessError(1, args, stderr="")
        if args == ["git", "rev-parse", "HEAD"]:
            return "c0ffee\n"
        if args[:2] == ["git", "rev-parse"]:
            return "parent1\n"
        return ""

    lister = ChangedPathLister(tmp_path, runner=runner)

    assert lister.resolve_base_head(environ={}) == RevisionRange(base_sha="parent1", head_sha="c0ffee")
    assert ["git", "rev-parse", "c0ffee^"] in calls


def test_default_head_is_a_commit_not_a_symbolic_ref(tmp_path: Path) -> None:
    first = ChangedPathLister(tmp_path, runner=fake_git_runner(merge_base="abc123", head="1111")).resolve_base_head(
        environ={}
    )
    second = ChangedPathLister(tmp_path, runner=fake_git_runner(merge_base="abc123", head="2222")).resolve_base_head(
        environ={}
    )

    assert first.head_sha == "1111"
    assert second.head_sha == "2222"
    assert first != second


def test_explicit_head_is_not_resolved(tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        calls.append(list(args))
        return "mb1\n"

    lister = ChangedPathLister(tmp_path, runner=runner)

    assert lister.resolve_base_head(head_sha="feature", environ={}).head_sha == "feature"
    assert ["git", "rev-parse", "HEAD"] not in calls


def test_unresolvable_head_keeps_symbolic_name(tmp_path: Path) -> None:
    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        raise subprocess.CalledProcessError(128, args, stderr="not a git repository")

    lister = ChangedPathLister(tmp_path, runner=runner)

    assert lister.resolve_base_head(environ={}) == RevisionRange(base_sha="HEAD", head_sha="HEAD")
