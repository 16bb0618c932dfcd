"""
Triage Policy -- Configuration for the Transreality Triage Core.

Every constant the scoring functions and the session service rely on lives
in a single validated ``TriagePolicy``: the recommendation thresholds, the
ethics score weights, the ethics gate threshold, the confidence step applied
by ``investigate``, the default actor and the scenario templates.

``DEFAULT_POLICY`` reproduces the proof-of-concept behavior exactly.  A
deployment may load a different policy from YAML with
``load_policy_from_yaml()``.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from transreality.models import OperatorAction, Scenario


# ---------------------------------------------------------------------------
# Recommendation thresholds
# ---------------------------------------------------------------------------

class RecommendationThresholds(BaseModel):
    """Confidence cut-offs for the ternary recommendation.

    Confidence at or above ``yes_min_confidence`` yields ``yes``; at or below
    ``no_max_confidence`` yields ``no``; anything between is ``undefined``.
    """

    yes_min_confidence: float = Field(
        default=0.75,
        ge=0,
        le=1,
        description="Confidence at or above which the recommendation is 'yes'.",
    )
    no_max_confidence: float = Field(
        default=0.40,
        ge=0,
        le=1,
        description="Confidence at or below which the recommendation is 'no'.",
    )

    @field_validator("no_max_confidence")
    @classmethod
    def no_below_yes(cls, v: float, info) -> float:
        yes = info.data.get("yes_min_confidence")
        if yes is not None and v >= yes:
            raise ValueError(
                f"no_max_confidence ({v}) must be < yes_min_confidence ({yes})"
            )
        return v


# ---------------------------------------------------------------------------
# Ethics weights
# ---------------------------------------------------------------------------

class EthicsWeights(BaseModel):
    """Ethics score values keyed by event metadata flags.

    The score starts at ``baseline``.  A ``sensitive`` event drops to
    ``sensitive``; a ``pii`` event drops to ``pii``.  The pii rule is applied
    last, so it wins when both flags are set.
    """

    baseline: float = Field(default=0.9, gt=0, le=1)
    sensitive: float = Field(default=0.3, gt=0, le=1)
    pii: float = Field(default=0.2, gt=0, le=1)


def _baseline_scenarios() -> list[Scenario]:
    return [
        Scenario(
            label="Monitor & log",
            description="Keep monitoring, request ISR if escalates",
            probability=0.55,
        ),
        Scenario(
            label="Request ISR",
            description="Task ISR assets for verification",
            probability=0.30,
        ),
        Scenario(
            label="Escalate to command",
            description="Escalate for immediate action",
            probability=0.15,
        ),
    ]


def _isr_scenario() -> Scenario:
    return Scenario(label="ISR in progress", description="ISR tasked", probability=0.6)


# ---------------------------------------------------------------------------
# Triage policy
# ---------------------------------------------------------------------------

class TriagePolicy(BaseModel):
    """Complete decision policy for the triage core."""

    recommendation_thresholds: RecommendationThresholds = Field(
        default_factory=RecommendationThresholds,
    )
    ethics_weights: EthicsWeights = Field(default_factory=EthicsWeights)
    ethics_gate_threshold: float = Field(
        default=0.40,
        ge=0,
        le=1,
        description=(
            "An action is approved when the session's ethics score is strictly "
            "greater than this value, unless the action is ungated."
        ),
    )
    ungated_actions: list[OperatorAction] = Field(
        default_factory=lambda: [OperatorAction.INVESTIGATE],
        description="Actions approved regardless of ethics score.",
    )
    enforce_ethics_gate: bool = Field(
        default=False,
        description=(
            "When False the gate is advisory: its outcome is recorded but the "
            "action's effect always applies.  When True a blocked action is "
            "recorded and its effect is skipped."
        ),
    )
    default_confidence: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Confidence used when an event carries no numeric initial_confidence.",
    )
    investigate_confidence_step: float = Field(
        default=0.05,
        ge=0,
        le=1,
        description="Confidence added by each 'investigate' action (capped at 1.0).",
    )
    default_actor: str = Field(
        default="operator",
        min_length=1,
        description="Actor recorded when an action request names none.",
    )
    summary_max_chars: int = Field(
        default=200,
        gt=0,
        description="Description prefix length used when an event has no summary.",
    )
    baseline_scenarios: list[Scenario] = Field(default_factory=_baseline_scenarios)
    isr_scenario: Scenario = Field(default_factory=_isr_scenario)

    def is_ungated(self, action: OperatorAction) -> bool:
        return action in self.ungated_actions


# ---------------------------------------------------------------------------
# Default policy
# ---------------------------------------------------------------------------

DEFAULT_POLICY = TriagePolicy()
"""Built-in policy matching the proof-of-concept constants."""


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

def load_policy_from_yaml(path: str | Path) -> TriagePolicy:
    """Load a triage policy from a YAML file.

    The YAML file must contain a top-level ``policy`` mapping.  Omitted
    fields take their defaults.

    Example YAML structure::

        policy:
          ethics_gate_threshold: 0.5
          enforce_ethics_gate: true
          recommendation_thresholds:
            yes_min_confidence: 0.8
            no_max_confidence: 0.3

    Args:
        path: Path to the YAML file.

    Returns:
        A validated ``TriagePolicy``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the YAML structure is invalid.
        pydantic.ValidationError: If the policy fails validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict) or "policy" not in raw:
        raise ValueError("YAML file must contain a top-level 'policy' mapping.")

    policy_data = raw["policy"]
    if policy_data is None:
        return TriagePolicy()
    if not isinstance(policy_data, dict):
        raise ValueError("'policy' must be a mapping of policy fields.")

    return TriagePolicy.model_validate(policy_data)
