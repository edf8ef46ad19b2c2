"""Core data models shared across docdrift components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class SignalKind(str, Enum):
    """Closed set of evidence kinds a detector may emit."""

    DOCS_CHECK_FAILED = "docs_check_failed"
    OPENAPI_DIFF = "openapi_diff"
    SWAGGER2_DIFF = "swagger2_diff"
    GRAPHQL_DIFF = "graphql_diff"
    FERN_DIFF = "fern_diff"
    POSTMAN_DIFF = "postman_diff"
    HEURISTIC_PATH_IMPACT = "heuristic_path_impact"
    WEAK_EVIDENCE = "weak_evidence"


class DocAreaMode(str, Enum):
    AUTOGEN = "autogen"
    CONCEPTUAL = "conceptual"


class PolicyAction(str, Enum):
    NOOP = "NOOP"
    OPEN_PR = "OPEN_PR"
    UPDATE_EXISTING_PR = "UPDATE_EXISTING_PR"
    OPEN_ISSUE = "OPEN_ISSUE"


class Outcome(str, Enum):
    """Result reported back by the collaborator that executed a decision."""

    PR_OPENED = "PR_OPENED"
    ISSUE_OPENED = "ISSUE_OPENED"
    NO_CHANGE = "NO_CHANGE"
    BLOCKED = "BLOCKED"


class TriggerKind(str, Enum):
    PUSH = "push"
    MANUAL = "manual"
    SCHEDULE = "schedule"
    PULL_REQUEST = "pull_request"


@dataclass(frozen=True)
class Signal:
    """One piece of evidence that documentation may be stale.

    ``tier`` is ordinal: 0 is the strongest class (failed verification),
    3 the weakest. ``confidence`` is the detector's own estimate in [0, 1].
    """

    kind: SignalKind
    tier: int
    confidence: float
    evidence: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "tier": self.tier,
            "confidence": self.confidence,
            "evidence": list(self.evidence),
        }


@dataclass(frozen=True)
class RunInfo:
    """Metadata describing a single detection run."""

    run_id: str
    repo: str
    base_sha: str
    head_sha: str
    trigger: TriggerKind
    timestamp: str
    pr_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "repo": self.repo,
            "baseSha": self.base_sha,
            "headSha": self.head_sha,
            "trigger": self.trigger.value,
            "timestamp": self.timestamp,
        }
        if self.pr_number is not None:
            data["prNumber"] = self.pr_number
        return data


@dataclass(frozen=True)
class DriftItem:
    """Findings for one doc area in one run."""

    doc_area: str
    mode: DocAreaMode
    signals: Tuple[Signal, ...]
    impacted_docs: Tuple[str, ...]
    recommended_action: PolicyAction
    summary: str

    @property
    def has_strong_signal(self) -> bool:
        return any(signal.tier <= 1 for signal in self.signals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "docArea": self.doc_area,
            "mode": self.mode.value,
            "signals": [signal.to_dict() for signal in self.signals],
            "impactedDocs": list(self.impacted_docs),
            "recommendedAction": self.recommended_action.value,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class DriftReport:
    """Run metadata plus the ordered drift items. Written once per run."""

    run: RunInfo
    items: Tuple[DriftItem, ...] = ()

    @property
    def has_drift(self) -> bool:
        return bool(self.items)

    @property
    def primary_item(self) -> Optional[DriftItem]:
        return self.items[0] if self.items else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": self.run.to_dict(),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class PolicyDecision:
    """Action chosen for a drift item, keyed for idempotency."""

    action: PolicyAction
    confidence: float
    reason: str
    idempotency_key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "idempotencyKey": self.idempotency_key,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PolicyDecision":
        return cls(
            action=PolicyAction(payload["action"]),
            confidence=float(payload.get("confidence", 0.0)),
            reason=str(payload.get("reason", "")),
            idempotency_key=str(payload["idempotencyKey"]),
        )


@dataclass
class RunResult:
    """What happened to a decision once the caller acted on it."""

    doc_area: str
    decision: PolicyDecision
    outcome: Outcome
    summary: str
    pr_url: Optional[str] = None
    issue_url: Optional[str] = None
    session_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "docArea": self.doc_area,
            "decision": self.decision.to_dict(),
            "outcome": self.outcome.value,
            "summary": self.summary,
        }
        for key, value in (
            ("prUrl", self.pr_url),
            ("issueUrl", self.issue_url),
            ("sessionUrl", self.session_url),
        ):
            if value:
                data[key] = value
        return data


@dataclass(frozen=True)
class DetectionResult:
    """Output of a spec-format detector."""

    has_drift: bool
    summary: str
    evidence_files: Tuple[str, ...] = ()
    impacted_docs: Tuple[str, ...] = ()
    signal: Optional[Signal] = None


@dataclass(frozen=True)
class HeuristicResult:
    """Output of the path-heuristic detector."""

    summary: str
    impacted_docs: Tuple[str, ...] = ()
    evidence_files: Tuple[str, ...] = ()
    signal: Optional[Signal] = None


@dataclass(frozen=True)
class CommandOutcome:
    command: str
    exit_code: int
    log_path: str


@dataclass(frozen=True)
class DocsCheckResult:
    """Output of the verification-command runner."""

    summary: str
    logs: Tuple[str, ...] = ()
    command_results: Tuple[CommandOutcome, ...] = ()
    signal: Optional[Signal] = None


@dataclass
class ChangeSet:
    """Revision-range facts recorded next to the evidence for auditing."""

    changed_paths: List[str] = field(default_factory=list)
    diff_summary: str = ""
    commits: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changedPaths": list(self.changed_paths),
            "diffSummary": self.diff_summary,
            "commits": list(self.commits),
        }


def unique_in_order(values: Iterable[str]) -> Tuple[str, ...]:
    """Deduplicate while keeping first-seen order; empty strings are dropped."""
    seen: set[str] = set()
    ordered: List[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return tuple(ordered)


__all__ = [
    "ChangeSet",
    "CommandOutcome",
    "DetectionResult",
    "DocAreaMode",
    "DocsCheckResult",
    "DriftItem",
    "DriftReport",
    "HeuristicResult",
    "Outcome",
    "PolicyAction",
    "PolicyDecision",
    "RunInfo",
    "RunResult",
    "Signal",
    "SignalKind",
    "TriggerKind",
    "unique_in_order",
]
