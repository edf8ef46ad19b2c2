from __future__ import annotations

from pathlib import Path

import pytest

from docdrift.detectors.docs_check import run_docs_checks
from docdrift.evidence.writer import MemoryEvidenceWriter
from docdrift.models import SignalKind
from tests._fixtures.fakes import FakeCommandRunner


def test_all_commands_pass(tmp_path: Path, command_runner: FakeCommandRunner) -> None:
    result = run_docs_checks(
        ["npm run docs:lint", "npm run docs:build"],
        tmp_path,
        executor=command_runner.executor(),
        writer=MemoryEvidenceWriter(),
    )

    assert result.signal is None
    assert result.summary == "Docs checks passed"
    assert result.logs == (str(tmp_path / "docs-check.1.log"), str(tmp_path / "docs-check.2.log"))


def test_failure_does_not_stop_later_commands(tmp_path: Path) -> None:
    runner = FakeCommandRunner({"npm run docs:lint": 1})
    writer = MemoryEvidenceWriter()

    result = run_docs_checks(
        ["npm run docs:lint", "npm run docs:build"],
        tmp_path,
        executor=runner.executor(),
        writer=writer,
    )

    assert runner.calls == ["npm run docs:lint", "npm run docs:build"]
    assert result.summary == "Docs checks failed (1/2)"
    assert result.signal is not None
    assert result.signal.kind is SignalKind.DOCS_CHECK_FAILED
    assert result.signal.tier == 0
    assert result.signal.confidence == pytest.approx(0.99)
    assert result.signal.evidence == (str(tmp_path / "docs-check.1.log"),)
    assert [outcome.exit_code for outcome in result.command_results] == [1, 0]
    assert "exitCode: 1" in writer.read(tmp_path / "docs-check.1.log")
