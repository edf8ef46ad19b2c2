"""Run the configured docs verification commands."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from ..evidence.writer import EvidenceWriter, FileEvidenceWriter
from ..logging import get_logger
from ..models import CommandOutcome, DocsCheckResult, Signal, SignalKind
from ..sources.commands import CommandExecutor, format_command_log

DOCS_CHECK_TIER = 0
DOCS_CHECK_CONFIDENCE = 0.99

_LOGGER = get_logger("detectors.docs_check")


def run_docs_checks(
    commands: Sequence[str],
    evidence_dir: Path,
    *,
    executor: CommandExecutor | None = None,
    writer: EvidenceWriter | None = None,
) -> DocsCheckResult:
    """Run every command in order, logging each, and flag any failure.

    A failing command never stops the ones after it.
    """
    executor = executor or CommandExecutor()
    writer = writer or FileEvidenceWriter()

    outcomes: List[CommandOutcome] = []
    for index, command in enumerate(commands, start=1):
        result = executor.run(command)
        log_path = evidence_dir / f"docs-check.{index}.log"
        writer.write(log_path, format_command_log(result))
        outcomes.append(CommandOutcome(command=command, exit_code=result.exit_code, log_path=str(log_path)))

    logs = tuple(outcome.log_path for outcome in outcomes)
    failed = [outcome for outcome in outcomes if outcome.exit_code != 0]
    if not failed:
        return DocsCheckResult(summary="Docs checks passed", logs=logs, command_results=tuple(outcomes))

    for outcome in failed:
        _LOGGER.warning("Docs check failed (exit %d): %s", outcome.exit_code, outcome.command)
    return DocsCheckResult(
        summary=f"Docs checks failed ({len(failed)}/{len(outcomes)})",
        logs=logs,
        command_results=tuple(outcomes),
        signal=Signal(
            kind=SignalKind.DOCS_CHECK_FAILED,
            tier=DOCS_CHECK_TIER,
            confidence=DOCS_CHECK_CONFIDENCE,
            evidence=tuple(outcome.log_path for outcome in failed),
        ),
    )


__all__ = ["run_docs_checks"]
