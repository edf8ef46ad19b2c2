"""Decide what to do about a drift item and record what happened."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from typing import Optional

from ..config import DocAreaConfig, PolicyConfig
from ..errors import DecisionNotRecordableError
from ..globs import is_path_allowed_and_not_excluded
from ..logging import get_logger
from ..models import DocAreaMode, DriftItem, Outcome, PolicyAction, PolicyDecision
from ..stores.state import IdempotencyRecord, StateStore
from .confidence import score_signals

CONCEPTUAL_CONFIDENCE_CEILING = 0.95
CONCEPTUAL_THRESHOLD_MARGIN = 0.10
ALREADY_PROCESSED_REASON = "Idempotency key already processed"

_LOGGER = get_logger("policy")


def utc_day(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(UTC)).astimezone(UTC).strftime("%Y-%m-%d")


def utc_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(UTC)).astimezone(UTC).isoformat().replace("+00:00", "Z")


def build_idempotency_key(repo: str, doc_area: str, base_sha: str, head_sha: str, action: PolicyAction) -> str:
    raw = f"{repo}:{doc_area}:{base_sha}:{head_sha}:{action.value}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def decide_policy(
    item: DriftItem,
    area: DocAreaConfig,
    policy: PolicyConfig,
    state: StateStore,
    *,
    repo: str,
    base_sha: str,
    head_sha: str,
    now: Optional[datetime] = None,
) -> PolicyDecision:
    """Pick one action for ``item``; the first matching rule wins.

    The idempotency check runs last so the key reflects the action the
    rules chose. A key already in the ledger turns any action into NOOP.
    """
    confidence = score_signals(item.signals)
    action, reason = _choose_action(item, area, policy, state, confidence, utc_day(now))

    key = build_idempotency_key(repo, item.doc_area, base_sha, head_sha, action)
    if key in state.idempotency:
        _LOGGER.info("%s: %s already processed (%s)", item.doc_area, action.value, key[:12])
        return PolicyDecision(
            action=PolicyAction.NOOP,
            confidence=confidence,
            reason=ALREADY_PROCESSED_REASON,
            idempotency_key=key,
        )

    _LOGGER.info("%s: %s (confidence %.2f) - %s", item.doc_area, action.value, confidence, reason)
    return PolicyDecision(action=action, confidence=confidence, reason=reason, idempotency_key=key)


def _choose_action(
    item: DriftItem,
    area: DocAreaConfig,
    policy: PolicyConfig,
    state: StateStore,
    confidence: float,
    today: str,
) -> tuple[PolicyAction, str]:
    threshold = policy.autopatch_threshold
    strong = item.has_strong_signal

    outside_allowlist = any(
        doc and not is_path_allowed_and_not_excluded(doc, policy.allowlist, policy.exclude)
        for doc in item.impacted_docs
    )
    if outside_allowlist:
        return PolicyAction.OPEN_ISSUE, "Impacted files include non-allowlisted paths"
    if len(item.impacted_docs) > policy.pr_caps.max_files_touched:
        return PolicyAction.OPEN_ISSUE, "Impacted files exceed maxFilesTouched policy cap"

    if item.mode is DocAreaMode.AUTOGEN:
        if not strong:
            return PolicyAction.OPEN_ISSUE, "Autogen area without strong signal; escalate as issue"
        if confidence < threshold:
            return PolicyAction.OPEN_ISSUE, f"Confidence {confidence:.2f} below threshold {threshold:.2f}"
        if state.daily_pr_count.get(today, 0) >= policy.pr_caps.max_prs_per_day:
            if state.area_latest_pr.get(item.doc_area):
                return PolicyAction.UPDATE_EXISTING_PR, "Daily PR cap reached"
            return PolicyAction.OPEN_ISSUE, "Daily PR cap reached"
        if state.area_daily_pr_opened.get(f"{today}:{item.doc_area}"):
            return PolicyAction.UPDATE_EXISTING_PR, "One PR per doc area per day bundling rule"
        return PolicyAction.OPEN_PR, "Strong autogen signal with confidence above threshold"

    required = min(CONCEPTUAL_CONFIDENCE_CEILING, threshold + CONCEPTUAL_THRESHOLD_MARGIN)
    if not area.patch.require_human_confirmation and strong and confidence >= required:
        return PolicyAction.OPEN_PR, "Conceptual area is high-confidence and human confirmation not required"
    return PolicyAction.OPEN_ISSUE, "Conceptual drift defaults to human-in-the-loop issue"


def apply_decision_to_state(
    state: StateStore,
    decision: PolicyDecision,
    doc_area: str,
    outcome: Outcome,
    link: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> StateStore:
    """Return a new state with the outcome recorded.

    PR counters move only when a PR was actually opened. Each idempotency key
    is recorded once; NOOP decisions and keys already in the ledger raise
    ``DecisionNotRecordableError`` and leave ``state`` untouched.
    """
    if decision.action is PolicyAction.NOOP:
        raise DecisionNotRecordableError(f"NOOP decision for {doc_area} has no outcome to record")
    if decision.idempotency_key in state.idempotency:
        existing = state.idempotency[decision.idempotency_key]
        raise DecisionNotRecordableError(
            f"Decision {decision.idempotency_key[:12]} for {doc_area} was already recorded as {existing.outcome}"
        )
    updated = state.copy()
    updated.idempotency[decision.idempotency_key] = IdempotencyRecord(
        created_at=utc_timestamp(now),
        action=decision.action.value,
        outcome=outcome.value,
        link=link,
    )
    if outcome is Outcome.PR_OPENED:
        today = utc_day(now)
        updated.daily_pr_count[today] = updated.daily_pr_count.get(today, 0) + 1
        updated.area_daily_pr_opened[f"{today}:{doc_area}"] = link or "opened"
        if link:
            updated.area_latest_pr[doc_area] = link
    return updated


__all__ = [
    "ALREADY_PROCESSED_REASON",
    "apply_decision_to_state",
    "build_idempotency_key",
    "decide_policy",
    "utc_day",
    "utc_timestamp",
]
