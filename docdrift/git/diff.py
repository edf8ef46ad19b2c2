"""Revision-range inspection backed by the git CLI."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from ..errors import GitError
from ..logging import get_logger
from ..models import ChangeSet

_DEFAULT_BRANCHES: Sequence[str] = ("origin/main", "origin/master", "main", "master")


@dataclass(frozen=True)
class RevisionRange:
    base_sha: str
    head_sha: str


class ChangedPathLister:
    """Lists changed paths and related facts between two revisions."""

    def __init__(self, repo: Path, runner: Callable[..., str] | None = None) -> None:
        self.repo = repo
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def changed_paths(self, base_sha: str, head_sha: str) -> List[str]:
        output = self._run(["git", "diff", "--name-only", base_sha, head_sha])
        return [line.strip() for line in output.splitlines() if line.strip()]

    def diff_summary(self, base_sha: str, head_sha: str) -> str:
        return self._run(["git", "diff", "--stat", base_sha, head_sha]).strip()

    def commit_list(self, base_sha: str, head_sha: str) -> List[str]:
        try:
            output = self._run(["git", "log", "--pretty=format:%H", f"{base_sha}..{head_sha}"])
        except GitError:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def change_set(self, base_sha: str, head_sha: str) -> ChangeSet:
        return ChangeSet(
            changed_paths=self.changed_paths(base_sha, head_sha),
            diff_summary=self.diff_summary(base_sha, head_sha),
            commits=self.commit_list(base_sha, head_sha),
        )

    def resolve_base_head(
        self,
        base_sha: Optional[str] = None,
        head_sha: Optional[str] = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> RevisionRange:
        """Fill in missing revisions.

        Head defaults to ``GITHUB_SHA`` then the commit ``HEAD`` points at.
        Base comes from ``GITHUB_BASE_SHA``, then the merge-base with the
        first default branch that exists, then ``head^``.
        """
        env = os.environ if environ is None else environ
        head = head_sha or env.get("GITHUB_SHA") or self._current_commit()
        if base_sha:
            return RevisionRange(base_sha=base_sha, head_sha=head)
        env_base = env.get("GITHUB_BASE_SHA")
        if env_base:
            return RevisionRange(base_sha=env_base, head_sha=head)

        for branch in _DEFAULT_BRANCHES:
            base = self._try(["git", "merge-base", branch, head])
            if base:
                return RevisionRange(base_sha=base, head_sha=head)
        parent = self._try(["git", "rev-parse", f"{head}^"])
        if parent:
            return RevisionRange(base_sha=parent, head_sha=head)
        self.logger.warning("Could not resolve a base revision; comparing %s with itself", head)
        return RevisionRange(base_sha=head, head_sha=head)

    # ------------------------------------------------------------------
    # Internals

    def _current_commit(self) -> str:
        # Idempotency keys hash the head revision, so it must name a commit.
        commit = self._try(["git", "rev-parse", "HEAD"])
        if not commit:
            self.logger.warning("Could not resolve HEAD to a commit; using the symbolic name")
            return "HEAD"
        return commit

    def _try(self, args: Sequence[str]) -> str:
        try:
            return self._run(args).strip()
        except GitError:
            return ""

    def _run(self, args: Iterable[str]) -> str:
        argv = list(args)
        try:
            return self._runner(argv, cwd=self.repo, capture_output=True)
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit code {exc.returncode}"
            raise GitError(f"{' '.join(argv)} failed: {detail}") from exc
        except OSError as exc:
            raise GitError(f"Unable to run git: {exc}") from exc

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


__all__ = ["ChangedPathLister", "RevisionRange"]
