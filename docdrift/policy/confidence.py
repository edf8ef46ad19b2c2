"""Combine detector signals into a single confidence score."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..models import Signal

TIER_WEIGHTS: Mapping[int, float] = {0: 1.0, 1: 0.9, 2: 0.6, 3: 0.35}
DEFAULT_TIER_WEIGHT = 0.3

DETECTOR_WEIGHT = 0.65
AGENT_WEIGHT = 0.35


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def score_signals(signals: Sequence[Signal]) -> float:
    """Noisy-OR over tier-weighted confidences.

    Signals are treated as independent evidence for the same claim, so
    adding a signal can never lower the score.
    """
    if not signals:
        return 0.0
    complement = 1.0
    for signal in signals:
        weight = TIER_WEIGHTS.get(signal.tier, DEFAULT_TIER_WEIGHT)
        complement *= 1.0 - clamp01(signal.confidence * weight)
    return clamp01(1.0 - complement)


def combine_with_agent_plan(detector_confidence: float, agent_confidence: Optional[float] = None) -> float:
    """Blend in a confidence reported by the collaborator that acted on a decision."""
    if agent_confidence is None:
        return detector_confidence
    return clamp01(detector_confidence * DETECTOR_WEIGHT + agent_confidence * AGENT_WEIGHT)


__all__ = [
    "DEFAULT_TIER_WEIGHT",
    "TIER_WEIGHTS",
    "clamp01",
    "combine_with_agent_plan",
    "score_signals",
]
