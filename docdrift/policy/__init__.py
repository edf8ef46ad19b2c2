"""Confidence scoring and the policy decision engine."""

from .confidence import combine_with_agent_plan, score_signals
from .engine import apply_decision_to_state, build_idempotency_key, decide_policy

__all__ = [
    "apply_decision_to_state",
    "build_idempotency_key",
    "combine_with_agent_plan",
    "decide_policy",
    "score_signals",
]
