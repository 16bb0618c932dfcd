"""
Scoring Functions -- Preliminary Triage for an Ingested Event.

Pure functions that turn event attributes into the values a new session
starts with: the ternary recommendation, the ethics score and the list of
candidate response scenarios.  None of them have side effects; each takes
an optional policy fragment and falls back to ``DEFAULT_POLICY``.
"""

from __future__ import annotations

from transreality.config import (
    DEFAULT_POLICY,
    EthicsWeights,
    RecommendationThresholds,
    TriagePolicy,
)
from transreality.models import Event, Scenario, TernaryRecommendation


def compute_ternary_recommendation(
    confidence: float,
    thresholds: RecommendationThresholds | None = None,
) -> TernaryRecommendation:
    """Map a confidence value to ``yes`` / ``no`` / ``undefined``.

    Args:
        confidence: Confidence in the event, 0..1.
        thresholds: Optional cut-offs; defaults to the built-in policy.

    Returns:
        ``YES`` at or above the yes threshold, ``NO`` at or below the no
        threshold, ``UNDEFINED`` otherwise.
    """
    thresholds = thresholds or DEFAULT_POLICY.recommendation_thresholds
    if confidence >= thresholds.yes_min_confidence:
        return TernaryRecommendation.YES
    if confidence <= thresholds.no_max_confidence:
        return TernaryRecommendation.NO
    return TernaryRecommendation.UNDEFINED


def compute_ethics_score(
    event: Event,
    weights: EthicsWeights | None = None,
) -> float:
    """Compute the fixed-at-creation ethics score for an event.

    The pii rule runs after the sensitive rule, so pii dominates when both
    flags are set.
    """
    weights = weights or DEFAULT_POLICY.ethics_weights
    score = weights.baseline
    if event.metadata.sensitive:
        score = weights.sensitive
    if event.metadata.pii:
        score = weights.pii
    return score


def generate_scenarios(
    event: Event,
    policy: TriagePolicy | None = None,
) -> list[Scenario]:
    """Return the candidate response scenarios for an event.

    Currently the policy's baseline list regardless of event content.
    Copies are returned so a session can reorder or extend its own list.
    """
    policy = policy or DEFAULT_POLICY
    return [s.model_copy() for s in policy.baseline_scenarios]
