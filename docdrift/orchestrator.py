"""Pipeline orchestration for detect / decide / record flows."""

from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .aggregator import DriftAggregator
from .config import DocDriftConfig, load_config
from .errors import ConfigError, DecisionNotRecordableError, StateError
from .evidence.bundle import EvidenceBundle, build_evidence_bundle
from .evidence.writer import EvidenceWriter, FileEvidenceWriter
from .git.diff import ChangedPathLister
from .logging import get_logger
from .models import (
    DocAreaMode,
    DriftItem,
    DriftReport,
    Outcome,
    PolicyAction,
    PolicyDecision,
    RunInfo,
    RunResult,
    TriggerKind,
)
from .policy.confidence import combine_with_agent_plan
from .policy.engine import apply_decision_to_state, decide_policy
from .prompting.builder import PromptBuilder
from .reporting import RunMetrics, load_metrics, write_changeset, write_json, write_metrics, write_report
from .sources.commands import CommandExecutor
from .sources.fetch import SpecFetcher
from .stores.state import JsonStateRepository, StateLock, StateStore

DECISION_FILENAME = "decision.json"
METRICS_FILENAME = "metrics.json"
RUN_COMMENT_FILENAME = "run_comment.md"


@dataclass
class DetectOutcome:
    """Result of a detection run."""

    config: DocDriftConfig
    report: DriftReport
    evidence_root: Path
    report_path: Path
    changed_paths: List[str] = field(default_factory=list)


@dataclass
class DecisionOutcome:
    """Decision for the run's primary item plus the material prepared for it."""

    item: DriftItem
    decision: PolicyDecision
    decision_path: Path
    bundle: Optional[EvidenceBundle] = None
    prompt_path: Optional[Path] = None
    issue_body_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "docArea": self.item.doc_area,
            "mode": self.item.mode.value,
            "summary": self.item.summary,
            "decision": self.decision.to_dict(),
        }
        if self.bundle is not None:
            data["attachments"] = [str(path) for path in self.bundle.attachment_paths]
        if self.prompt_path is not None:
            data["promptPath"] = str(self.prompt_path)
        if self.issue_body_path is not None:
            data["issueBodyPath"] = str(self.issue_body_path)
        return data


class Orchestrator:
    """Coordinates detection, policy decisions and outcome recording."""

    def __init__(
        self,
        *,
        executor: CommandExecutor | None = None,
        fetcher: SpecFetcher | None = None,
        writer: EvidenceWriter | None = None,
        git_runner: Callable[..., str] | None = None,
        prompt_builder: PromptBuilder | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._executor = executor
        self._fetcher = fetcher
        self.writer = writer or FileEvidenceWriter()
        self._git_runner = git_runner
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("orchestrator")

    def run_detect(
        self,
        path: str,
        base_sha: str | None = None,
        head_sha: str | None = None,
        *,
        trigger: TriggerKind = TriggerKind.MANUAL,
        pr_number: int | None = None,
    ) -> DetectOutcome:
        """Compare docs against their sources and write the drift report."""
        config = self._load_config(path)
        lister = ChangedPathLister(config.root, runner=self._git_runner)
        revisions = lister.resolve_base_head(base_sha, head_sha)
        now = self._clock()
        run = RunInfo(
            run_id=str(int(now.timestamp() * 1000)),
            repo=_repo_name(config.root),
            base_sha=revisions.base_sha,
            head_sha=revisions.head_sha,
            trigger=trigger,
            timestamp=now.astimezone(UTC).isoformat().replace("+00:00", "Z"),
            pr_number=pr_number,
        )
        self.logger.info("Detecting drift for %s (%s..%s)", run.repo, run.base_sha, run.head_sha)

        evidence_root = config.runtime.evidence_root / run.run_id
        evidence_root.mkdir(parents=True, exist_ok=True)
        change_set = lister.change_set(run.base_sha, run.head_sha)
        write_changeset(change_set, evidence_root)

        aggregator = DriftAggregator(
            root=config.root,
            executor=self._executor or CommandExecutor(timeout=config.runtime.command_timeout, cwd=config.root),
            fetcher=self._fetcher or SpecFetcher(timeout=config.runtime.fetch_timeout),
            writer=self.writer,
        )
        report = aggregator.build_report(config, run, change_set.changed_paths, evidence_root)
        report_path = write_report(report, config.runtime.report_path)
        write_metrics(RunMetrics.from_run(report), config.runtime.state_dir / METRICS_FILENAME)
        return DetectOutcome(
            config=config,
            report=report,
            evidence_root=evidence_root,
            report_path=report_path,
            changed_paths=list(change_set.changed_paths),
        )

    def run_decide(
        self,
        path: str,
        base_sha: str | None = None,
        head_sha: str | None = None,
        *,
        trigger: TriggerKind = TriggerKind.MANUAL,
        pr_number: int | None = None,
        detected: DetectOutcome | None = None,
    ) -> Optional[DecisionOutcome]:
        """Decide what to do about the primary drift item, if any.

        Only the first item of the report is decided per run. The decision is
        written to ``decision.json`` in the state directory for ``record``.
        """
        if detected is None:
            detected = self.run_detect(path, base_sha, head_sha, trigger=trigger, pr_number=pr_number)
        config = detected.config
        item = detected.report.primary_item
        if item is None:
            self.logger.info("No drift detected; nothing to decide")
            return None
        area = config.area(item.doc_area)
        if area is None:
            raise ConfigError(f"Drift item references unknown doc area: {item.doc_area}")

        run = detected.report.run
        state = JsonStateRepository(config.runtime.state_path).load()
        decision = decide_policy(
            item,
            area,
            config.policy,
            state,
            repo=run.repo,
            base_sha=run.base_sha,
            head_sha=run.head_sha,
            now=self._clock(),
        )

        outcome = DecisionOutcome(
            item=item,
            decision=decision,
            decision_path=config.runtime.state_dir / DECISION_FILENAME,
        )
        if decision.action is not PolicyAction.NOOP:
            bundle = build_evidence_bundle(run, item, detected.evidence_root / "bundles", root=config.root)
            outcome.bundle = bundle
            attachments = [str(p) for p in bundle.attachment_paths]
            if decision.action is PolicyAction.OPEN_ISSUE:
                outcome.issue_body_path = self._write_text(
                    bundle.bundle_dir.with_name(f"{bundle.bundle_dir.name}.issue.md"),
                    self.prompt_builder.issue_body(
                        item.doc_area,
                        item.summary,
                        _review_questions(item, decision),
                    ),
                )
            if decision.action is not PolicyAction.OPEN_ISSUE or area.mode is DocAreaMode.CONCEPTUAL:
                outcome.prompt_path = self._write_text(
                    bundle.bundle_dir.with_name(f"{bundle.bundle_dir.name}.prompt.md"),
                    self.prompt_builder.prompt_for(item, area, config.policy, attachments),
                )

        write_json(outcome.decision_path, outcome.to_dict())
        return outcome

    def record_outcome(
        self,
        path: str,
        decision: PolicyDecision,
        doc_area: str,
        outcome: Outcome,
        *,
        link: str | None = None,
        summary: str = "",
        agent_confidence: float | None = None,
    ) -> RunResult:
        """Apply an executed decision's outcome to persisted state under the lock."""
        if decision.action is PolicyAction.NOOP:
            raise DecisionNotRecordableError(f"Decision for {doc_area} is NOOP ({decision.reason}); nothing to record")
        config = self._load_config(path)
        state_path = config.runtime.state_path
        repository = JsonStateRepository(state_path)
        with StateLock(state_path):
            state: StateStore = repository.load()
            updated = apply_decision_to_state(state, decision, doc_area, outcome, link, now=self._clock())
            repository.save(updated)

        confidence = combine_with_agent_plan(decision.confidence, agent_confidence)
        result = RunResult(
            doc_area=doc_area,
            decision=dataclasses.replace(decision, confidence=confidence),
            outcome=outcome,
            summary=summary or decision.reason,
            pr_url=link if outcome is Outcome.PR_OPENED else None,
            issue_url=link if outcome is Outcome.ISSUE_OPENED else None,
        )
        metrics_path = config.runtime.state_dir / METRICS_FILENAME
        metrics = load_metrics(metrics_path)
        metrics.record(outcome)
        write_metrics(metrics, metrics_path)
        self._write_text(config.runtime.state_dir / RUN_COMMENT_FILENAME, self.prompt_builder.run_comment(result))
        self.logger.info("Recorded %s for %s", outcome.value, doc_area)
        return result

    def load_decision(self, path: str, decision_file: Path | None = None) -> tuple[str, PolicyDecision]:
        """Read the doc area and decision written by ``run_decide``."""
        config = self._load_config(path)
        target = decision_file or config.runtime.state_dir / DECISION_FILENAME
        try:
            payload = json.loads(target.read_text(encoding="utf-8"))
            return str(payload["docArea"]), PolicyDecision.from_dict(payload["decision"])
        except FileNotFoundError as exc:
            raise StateError(f"No decision found at {target}; run `docdrift decide` first") from exc
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StateError(f"Decision file {target} is invalid: {exc}") from exc

    # ------------------------------------------------------------------
    # Internals

    @staticmethod
    def _load_config(path: str) -> DocDriftConfig:
        return load_config(Path(path).expanduser())

    def _write_text(self, path: Path, content: str) -> Path:
        return self.writer.write(path, content)


def _repo_name(root: Path) -> str:
    return os.environ.get("GITHUB_REPOSITORY") or root.name or "repository"


def _review_questions(item: DriftItem, decision: PolicyDecision) -> List[str]:
    questions = [f"Does {doc} need to change for this drift?" for doc in item.impacted_docs[:10]]
    if not questions:
        questions.append("Which documentation should be updated for this change?")
    questions.append(f"Policy note: {decision.reason}.")
    return questions


__all__ = ["DecisionOutcome", "DetectOutcome", "Orchestrator"]
