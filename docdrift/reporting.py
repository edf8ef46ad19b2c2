"""JSON artifacts written at the end of each run."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable

from .models import ChangeSet, DriftReport, Outcome, RunResult


def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path


def write_report(report: DriftReport, path: Path) -> Path:
    """Write the drift report to its well-known location."""
    return write_json(path, report.to_dict())


def write_changeset(change_set: ChangeSet, evidence_root: Path) -> Path:
    return write_json(evidence_root / "changeset.json", change_set.to_dict())


@dataclass
class RunMetrics:
    """Counters describing one run, for dashboards and noise tracking."""

    drift_items_detected: int = 0
    prs_opened: int = 0
    issues_opened: int = 0
    blocked_count: int = 0
    doc_area_counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_run(cls, report: DriftReport, results: Iterable[RunResult] = ()) -> "RunMetrics":
        metrics = cls(drift_items_detected=len(report.items))
        for item in report.items:
            metrics.doc_area_counts[item.doc_area] = metrics.doc_area_counts.get(item.doc_area, 0) + 1
        for result in results:
            metrics.record(result.outcome)
        return metrics

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RunMetrics":
        counts = payload.get("docAreaCounts")
        return cls(
            drift_items_detected=int(payload.get("driftItemsDetected", 0)),
            prs_opened=int(payload.get("prsOpened", 0)),
            issues_opened=int(payload.get("issuesOpened", 0)),
            blocked_count=int(payload.get("blockedCount", 0)),
            doc_area_counts={str(k): int(v) for k, v in counts.items()} if isinstance(counts, dict) else {},
        )

    def record(self, outcome: Outcome) -> None:
        if outcome is Outcome.PR_OPENED:
            self.prs_opened += 1
        elif outcome is Outcome.ISSUE_OPENED:
            self.issues_opened += 1
        elif outcome is Outcome.BLOCKED:
            self.blocked_count += 1

    @property
    def noise_rate_proxy(self) -> float:
        # Share of detected items that turned into PRs.
        if self.drift_items_detected == 0:
            return 0.0
        return round(self.prs_opened / self.drift_items_detected, 4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "driftItemsDetected": self.drift_items_detected,
            "prsOpened": self.prs_opened,
            "issuesOpened": self.issues_opened,
            "blockedCount": self.blocked_count,
            "docAreaCounts": dict(self.doc_area_counts),
            "noiseRateProxy": self.noise_rate_proxy,
        }


def write_metrics(metrics: RunMetrics, path: Path) -> Path:
    return write_json(path, metrics.to_dict())


def load_metrics(path: Path) -> RunMetrics:
    """Read metrics written earlier in the run; a missing or bad file starts fresh."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return RunMetrics()
    if not isinstance(payload, dict):
        return RunMetrics()
    return RunMetrics.from_dict(payload)


__all__ = [
    "RunMetrics",
    "load_metrics",
    "write_changeset",
    "write_json",
    "write_metrics",
    "write_report",
]
