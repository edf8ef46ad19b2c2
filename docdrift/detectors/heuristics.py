"""Infer conceptually impacted docs from changed source paths."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from ..config import DocAreaConfig
from ..evidence.writer import EvidenceWriter, FileEvidenceWriter
from ..globs import matches_glob
from ..logging import get_logger
from ..models import HeuristicResult, Signal, SignalKind, unique_in_order

HEURISTIC_TIER = 2
HEURISTIC_CONFIDENCE = 0.67

_LOGGER = get_logger("detectors.heuristics")


@dataclass(frozen=True)
class HeuristicMatch:
    rule: str
    path: str
    impacts: Tuple[str, ...]

    def describe(self) -> str:
        return f"{self.path} matched {self.rule} -> {', '.join(self.impacts)}"


def detect_heuristic_impacts(
    area: DocAreaConfig,
    changed_paths: Sequence[str],
    evidence_dir: Path,
    *,
    writer: EvidenceWriter | None = None,
) -> HeuristicResult:
    """Match ``changed_paths`` against the area's path rules.

    No match is a normal outcome and yields neither a signal nor evidence.
    """
    rules = area.detect.paths
    if not rules:
        return HeuristicResult(summary="No heuristic rules configured")

    matches: List[HeuristicMatch] = []
    for rule in rules:
        for changed_path in changed_paths:
            if matches_glob(rule.match, changed_path):
                matches.append(HeuristicMatch(rule=rule.match, path=changed_path, impacts=rule.impacts))

    if not matches:
        return HeuristicResult(summary="No heuristic conceptual impacts")

    impacted = unique_in_order(doc for match in matches for doc in match.impacts)
    evidence_path = evidence_dir / f"{area.name}.heuristics.txt"
    (writer or FileEvidenceWriter()).write(
        evidence_path, "\n".join(match.describe() for match in matches)
    )
    _LOGGER.info("%s: %d heuristic path matches", area.name, len(matches))
    return HeuristicResult(
        summary=f"Heuristic impacts detected ({len(matches)} matches)",
        impacted_docs=impacted,
        evidence_files=(str(evidence_path),),
        signal=Signal(
            kind=SignalKind.HEURISTIC_PATH_IMPACT,
            tier=HEURISTIC_TIER,
            confidence=HEURISTIC_CONFIDENCE,
            evidence=(str(evidence_path),),
        ),
    )


__all__ = ["HeuristicMatch", "detect_heuristic_impacts"]
