"""Assemble per-area detector output into a drift report."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Sequence

from .config import DocAreaConfig, DocDriftConfig
from .detectors.docs_check import run_docs_checks
from .detectors.heuristics import detect_heuristic_impacts
from .detectors.spec import get_spec_detector
from .evidence.writer import EvidenceWriter, FileEvidenceWriter
from .logging import get_logger
from .models import (
    DocAreaMode,
    DocsCheckResult,
    DriftItem,
    DriftReport,
    PolicyAction,
    RunInfo,
    Signal,
    unique_in_order,
)
from .sources.commands import CommandExecutor
from .sources.fetch import SpecFetcher

SUMMARY_SEPARATOR = " | "
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def default_action(mode: DocAreaMode, signals: Sequence[Signal]) -> PolicyAction:
    """Advisory action recorded on each item; the policy engine has the final say."""
    if not signals:
        return PolicyAction.NOOP
    if mode is DocAreaMode.CONCEPTUAL:
        return PolicyAction.OPEN_ISSUE
    if any(signal.tier <= 1 for signal in signals):
        return PolicyAction.OPEN_PR
    return PolicyAction.OPEN_ISSUE


def area_evidence_dir(evidence_root: Path, area_name: str) -> Path:
    return evidence_root / _UNSAFE_CHARS.sub("_", area_name)


class DriftAggregator:
    """Runs each area's detectors in order and keeps areas that produced signals."""

    def __init__(
        self,
        *,
        root: Path,
        executor: CommandExecutor | None = None,
        fetcher: SpecFetcher | None = None,
        writer: EvidenceWriter | None = None,
    ) -> None:
        self.root = root
        self.executor = executor or CommandExecutor(cwd=root)
        self.fetcher = fetcher or SpecFetcher()
        self.writer = writer or FileEvidenceWriter()
        self.logger = get_logger("aggregator")

    def build_report(
        self,
        config: DocDriftConfig,
        run: RunInfo,
        changed_paths: Sequence[str],
        evidence_root: Path,
    ) -> DriftReport:
        verification = self._verify(config, evidence_root)
        items: List[DriftItem] = []
        for area in config.doc_areas:
            item = self._build_item(area, verification, changed_paths, evidence_root)
            if item is not None:
                items.append(item)
            else:
                self.logger.debug("No signals for doc area %s", area.name)
        self.logger.info("Drift report: %d item(s) across %d area(s)", len(items), len(config.doc_areas))
        return DriftReport(run=run, items=tuple(items))

    # ------------------------------------------------------------------
    # Internals

    def _verify(self, config: DocDriftConfig, evidence_root: Path) -> Optional[DocsCheckResult]:
        commands = config.policy.verification_commands
        if not commands:
            return None
        return run_docs_checks(commands, evidence_root, executor=self.executor, writer=self.writer)

    def _build_item(
        self,
        area: DocAreaConfig,
        verification: Optional[DocsCheckResult],
        changed_paths: Sequence[str],
        evidence_root: Path,
    ) -> Optional[DriftItem]:
        signals: List[Signal] = []
        impacted: List[str] = []
        summaries: List[str] = []

        if verification is not None:
            if verification.signal is not None:
                signals.append(verification.signal)
            summaries.append(verification.summary)

        spec_dir = area_evidence_dir(evidence_root, area.name)
        for spec in area.detect.specs:
            detector = get_spec_detector(
                spec.format,
                root=self.root,
                executor=self.executor,
                fetcher=self.fetcher,
                writer=self.writer,
            )
            result = detector.detect(spec, spec_dir)
            if result.signal is not None:
                signals.append(result.signal)
                impacted.extend(result.impacted_docs)
                impacted.extend(area.patch.targets)
            summaries.append(result.summary)

        if area.detect.paths:
            heuristic = detect_heuristic_impacts(area, changed_paths, evidence_root, writer=self.writer)
            if heuristic.signal is not None:
                signals.append(heuristic.signal)
            impacted.extend(heuristic.impacted_docs)
            summaries.append(heuristic.summary)

        if not signals:
            return None
        return DriftItem(
            doc_area=area.name,
            mode=area.mode,
            signals=tuple(signals),
            impacted_docs=unique_in_order(impacted),
            recommended_action=default_action(area.mode, signals),
            summary=SUMMARY_SEPARATOR.join(summary for summary in summaries if summary),
        )


__all__ = ["DriftAggregator", "SUMMARY_SEPARATOR", "area_evidence_dir", "default_action"]
