"""Tests for the policy decision engine."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from docdrift.config import DetectConfig, DocAreaConfig, PatchConfig, PathRule, PolicyConfig, PrCaps
from docdrift.errors import DecisionNotRecordableError
from docdrift.models import DocAreaMode, DriftItem, Outcome, PolicyAction, PolicyDecision, Signal, SignalKind
from docdrift.policy.engine import (
    ALREADY_PROCESSED_REASON,
    apply_decision_to_state,
    build_idempotency_key,
    decide_policy,
)
from docdrift.stores.state import IdempotencyRecord, StateStore

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)
TODAY = "2026-03-14"
STRONG = Signal(kind=SignalKind.OPENAPI_DIFF, tier=1, confidence=0.95, evidence=("openapi3.diff.txt",))
WEAK = Signal(kind=SignalKind.HEURISTIC_PATH_IMPACT, tier=2, confidence=0.67)


def _item(
    *,
    area: str = "api",
    mode: DocAreaMode = DocAreaMode.AUTOGEN,
    signals: tuple[Signal, ...] = (STRONG,),
    docs: tuple[str, ...] = ("docs/reference/api.md",),
) -> DriftItem:
    return DriftItem(
        doc_area=area,
        mode=mode,
        signals=signals,
        impacted_docs=docs,
        recommended_action=PolicyAction.OPEN_PR,
        summary="summary",
    )


def _area(name: str = "api", mode: DocAreaMode = DocAreaMode.AUTOGEN, *, confirm: bool = False) -> DocAreaConfig:
    return DocAreaConfig(
        name=name,
        mode=mode,
        detect=DetectConfig(paths=[PathRule(match="src/**", impacts=("docs/guides/a.md",))]),
        patch=PatchConfig(require_human_confirmation=confirm),
    )


def _policy(**overrides: object) -> PolicyConfig:
    policy = PolicyConfig(allowlist=["docs/**"], exclude=["docs/generated/**"])
    for key, value in overrides.items():
        setattr(policy, key, value)
    return policy


def _decide(item: DriftItem, area: DocAreaConfig, policy: PolicyConfig, state: StateStore) -> PolicyDecision:
    return decide_policy(item, area, policy, state, repo="acme/api", base_sha="b1", head_sha="h1", now=NOW)


def test_strong_autogen_signal_opens_pr() -> None:
    decision = _decide(_item(), _area(), _policy(), StateStore())

    assert decision.action is PolicyAction.OPEN_PR
    assert decision.reason == "Strong autogen signal with confidence above threshold"
    assert decision.confidence == pytest.approx(0.855)
    assert decision.idempotency_key == build_idempotency_key("acme/api", "api", "b1", "h1", PolicyAction.OPEN_PR)


def test_confidence_below_threshold_opens_issue() -> None:
    decision = _decide(_item(), _area(), _policy(autopatch_threshold=0.95), StateStore())

    assert decision.action is PolicyAction.OPEN_ISSUE
    assert decision.reason.startswith("Confidence 0.8")
    assert decision.reason.endswith("below threshold 0.95")


def test_non_allowlisted_path_wins_over_everything() -> None:
    item = _item(docs=("docs/reference/api.md", "README.md"))

    decision = _decide(item, _area(), _policy(), StateStore())

    assert decision.action is PolicyAction.OPEN_ISSUE
    assert decision.reason == "Impacted files include non-allowlisted paths"


def test_excluded_path_counts_as_non_allowlisted() -> None:
    decision = _decide(_item(docs=("docs/generated/api.md",)), _area(), _policy(), StateStore())

    assert decision.reason == "Impacted files include non-allowlisted paths"


def test_file_cap() -> None:
    docs = tuple(f"docs/page{index}.md" for index in range(3))

    decision = _decide(_item(docs=docs), _area(), _policy(pr_caps=PrCaps(max_files_touched=2)), StateStore())

    assert decision.action is PolicyAction.OPEN_ISSUE
    assert decision.reason == "Impacted files exceed maxFilesTouched policy cap"


def test_autogen_without_strong_signal() -> None:
    decision = _decide(_item(signals=(WEAK,)), _area(), _policy(), StateStore())

    assert decision.action is PolicyAction.OPEN_ISSUE
    assert decision.reason == "Autogen area without strong signal; escalate as issue"


def test_daily_cap_updates_existing_pr_when_one_is_known() -> None:
    state = StateStore(daily_pr_count={TODAY: 1}, area_latest_pr={"api": "https://git.example/pr/7"})

    decision = _decide(_item(), _area(), _policy(), state)

    assert decision.action is PolicyAction.UPDATE_EXISTING_PR
    assert decision.reason == "Daily PR cap reached"


def test_daily_cap_without_known_pr_opens_issue() -> None:
    state = StateStore(daily_pr_count={TODAY: 1})

    decision = _decide(_item(), _area(), _policy(), state)

    assert decision.action is PolicyAction.OPEN_ISSUE
    assert decision.reason == "Daily PR cap reached"


def test_one_pr_per_area_per_day() -> None:
    state = StateStore(daily_pr_count={TODAY: 1}, area_daily_pr_opened={f"{TODAY}:api": "https://git.example/pr/7"})

    decision = _decide(_item(), _area(), _policy(pr_caps=PrCaps(max_prs_per_day=5)), state)

    assert decision.action is PolicyAction.UPDATE_EXISTING_PR
    assert decision.reason == "One PR per doc area per day bundling rule"


def test_counters_from_other_days_are_ignored() -> None:
    state = StateStore(daily_pr_count={"2026-03-13": 4}, area_daily_pr_opened={"2026-03-13:api": "x"})

    assert _decide(_item(), _area(), _policy(), state).action is PolicyAction.OPEN_PR


@pytest.mark.parametrize("confidence", [0.5, 0.99, 1.0])
def test_conceptual_with_human_confirmation_always_opens_issue(confidence: float) -> None:
    item = _item(
        area="guides",
        mode=DocAreaMode.CONCEPTUAL,
        signals=(Signal(kind=SignalKind.DOCS_CHECK_FAILED, tier=0, confidence=confidence),),
    )

    decision = _decide(item, _area("guides", DocAreaMode.CONCEPTUAL, confirm=True), _policy(), StateStore())

    assert decision.action is PolicyAction.OPEN_ISSUE
    assert decision.reason == "Conceptual drift defaults to human-in-the-loop issue"


def test_conceptual_high_confidence_can_open_pr() -> None:
    item = _item(
        area="guides",
        mode=DocAreaMode.CONCEPTUAL,
        signals=(Signal(kind=SignalKind.DOCS_CHECK_FAILED, tier=0, confidence=0.99),),
    )

    decision = _decide(item, _area("guides", DocAreaMode.CONCEPTUAL), _policy(), StateStore())

    assert decision.action is PolicyAction.OPEN_PR
    assert decision.reason == "Conceptual area is high-confidence and human confirmation not required"


def test_conceptual_required_confidence_is_capped() -> None:
    # threshold 0.9 + 0.1 would be 1.0; the bar is capped at 0.95.
    item = _item(
        area="guides",
        mode=DocAreaMode.CONCEPTUAL,
        signals=(Signal(kind=SignalKind.DOCS_CHECK_FAILED, tier=0, confidence=0.96),),
    )

    decision = _decide(item, _area("guides", DocAreaMode.CONCEPTUAL), _policy(autopatch_threshold=0.9), StateStore())

    assert decision.action is PolicyAction.OPEN_PR


def test_conceptual_heuristic_only_opens_issue() -> None:
    item = _item(area="guides", mode=DocAreaMode.CONCEPTUAL, signals=(WEAK,))

    decision = _decide(item, _area("guides", DocAreaMode.CONCEPTUAL), _policy(), StateStore())

    assert decision.action is PolicyAction.OPEN_ISSUE


def test_processed_key_turns_decision_into_noop() -> None:
    key = build_idempotency_key("acme/api", "api", "b1", "h1", PolicyAction.OPEN_PR)
    state = StateStore(idempotency={key: IdempotencyRecord(created_at="t", action="OPEN_PR", outcome="PR_OPENED")})

    decision = _decide(_item(), _area(), _policy(), state)

    assert decision.action is PolicyAction.NOOP
    assert decision.reason == ALREADY_PROCESSED_REASON
    assert decision.idempotency_key == key


def test_idempotency_key_is_deterministic() -> None:
    first = build_idempotency_key("acme/api", "api", "b1", "h1", PolicyAction.OPEN_PR)

    assert first == build_idempotency_key("acme/api", "api", "b1", "h1", PolicyAction.OPEN_PR)
    assert first != build_idempotency_key("acme/api", "api", "b1", "h1", PolicyAction.OPEN_ISSUE)
    assert len(first) == 64


def test_apply_pr_opened_updates_counters() -> None:
    state = StateStore()
    decision = _decide(_item(), _area(), _policy(), state)

    updated = apply_decision_to_state(state, decision, "api", Outcome.PR_OPENED, "https://git.example/pr/9", now=NOW)

    assert state.idempotency == {}
    record = updated.idempotency[decision.idempotency_key]
    assert record.action == "OPEN_PR"
    assert record.outcome == "PR_OPENED"
    assert record.link == "https://git.example/pr/9"
    assert record.created_at == "2026-03-14T09:30:00Z"
    assert updated.daily_pr_count == {TODAY: 1}
    assert updated.area_daily_pr_opened == {f"{TODAY}:api": "https://git.example/pr/9"}
    assert updated.area_latest_pr == {"api": "https://git.example/pr/9"}


def test_apply_other_outcomes_only_record_idempotency() -> None:
    decision = PolicyDecision(action=PolicyAction.OPEN_ISSUE, confidence=0.4, reason="r", idempotency_key="k")

    updated = apply_decision_to_state(StateStore(), decision, "api", Outcome.ISSUE_OPENED, "https://git.example/i/1", now=NOW)

    assert list(updated.idempotency) == ["k"]
    assert updated.daily_pr_count == {}
    assert updated.area_daily_pr_opened == {}
    assert updated.area_latest_pr == {}


def test_second_run_after_recording_is_noop() -> None:
    state = StateStore()
    decision = _decide(_item(), _area(), _policy(), state)
    state = apply_decision_to_state(state, decision, "api", Outcome.NO_CHANGE, now=NOW)

    again = _decide(_item(), _area(), _policy(), state)

    assert again.action is PolicyAction.NOOP


def test_noop_decision_cannot_be_recorded() -> None:
    key = build_idempotency_key("acme/api", "api", "b1", "h1", PolicyAction.OPEN_ISSUE)
    state = StateStore(
        idempotency={
            key: IdempotencyRecord(
                created_at="2026-03-14T08:00:00Z",
                action="OPEN_ISSUE",
                outcome="ISSUE_OPENED",
                link="https://git.example/issues/1",
            )
        }
    )
    noop = PolicyDecision(action=PolicyAction.NOOP, confidence=0.4, reason=ALREADY_PROCESSED_REASON, idempotency_key=key)

    with pytest.raises(DecisionNotRecordableError, match="NOOP"):
        apply_decision_to_state(state, noop, "api", Outcome.PR_OPENED, now=NOW)

    assert state.idempotency[key] == IdempotencyRecord(
        created_at="2026-03-14T08:00:00Z",
        action="OPEN_ISSUE",
        outcome="ISSUE_OPENED",
        link="https://git.example/issues/1",
    )
    assert state.daily_pr_count == {}
    assert state.area_daily_pr_opened == {}


def test_recorded_key_is_never_overwritten() -> None:
    decision = PolicyDecision(action=PolicyAction.OPEN_PR, confidence=0.9, reason="r", idempotency_key="k")
    state = apply_decision_to_state(StateStore(), decision, "api", Outcome.PR_OPENED, "https://git.example/pr/1", now=NOW)

    with pytest.raises(DecisionNotRecordableError, match="already recorded as PR_OPENED"):
        apply_decision_to_state(state, decision, "api", Outcome.PR_OPENED, "https://git.example/pr/2", now=NOW)

    assert state.idempotency["k"].link == "https://git.example/pr/1"
    assert state.daily_pr_count == {TODAY: 1}
    assert state.area_latest_pr == {"api": "https://git.example/pr/1"}
