"""
Tests for transreality.config -- Triage Policy.

Covers: default policy values, threshold ordering, field bounds, and YAML
loading.
"""

from pathlib import Path

import pytest
import yaml

from transreality.config import (
    DEFAULT_POLICY,
    EthicsWeights,
    RecommendationThresholds,
    TriagePolicy,
    load_policy_from_yaml,
)
from transreality.models import OperatorAction


# ---------------------------------------------------------------------------
# 1. Default policy
# ---------------------------------------------------------------------------

class TestDefaultPolicy:
    def test_default_constants(self):
        assert DEFAULT_POLICY.recommendation_thresholds.yes_min_confidence == 0.75
        assert DEFAULT_POLICY.recommendation_thresholds.no_max_confidence == 0.40
        assert DEFAULT_POLICY.ethics_gate_threshold == 0.40
        assert DEFAULT_POLICY.default_confidence == 0.5
        assert DEFAULT_POLICY.investigate_confidence_step == 0.05
        assert DEFAULT_POLICY.default_actor == "operator"

    def test_default_gate_is_advisory(self):
        assert DEFAULT_POLICY.enforce_ethics_gate is False

    def test_only_investigate_is_ungated(self):
        assert DEFAULT_POLICY.is_ungated(OperatorAction.INVESTIGATE) is True
        for action in (OperatorAction.REQUEST_ISR, OperatorAction.ESCALATE, OperatorAction.DISMISS):
            assert DEFAULT_POLICY.is_ungated(action) is False

    def test_isr_scenario(self):
        isr = DEFAULT_POLICY.isr_scenario
        assert (isr.label, isr.description, isr.probability) == ("ISR in progress", "ISR tasked", 0.6)


# ---------------------------------------------------------------------------
# 2. Validation
# ---------------------------------------------------------------------------

class TestPolicyValidation:
    def test_no_threshold_must_be_below_yes(self):
        with pytest.raises(Exception):
            RecommendationThresholds(yes_min_confidence=0.5, no_max_confidence=0.5)

    def test_thresholds_bounded(self):
        with pytest.raises(Exception):
            RecommendationThresholds(yes_min_confidence=1.5)

    def test_ethics_weights_bounded(self):
        with pytest.raises(Exception):
            EthicsWeights(pii=-0.1)

    @pytest.mark.parametrize("field", ["baseline", "sensitive", "pii"])
    def test_zero_ethics_weight_rejected(self, field):
        with pytest.raises(Exception):
            EthicsWeights(**{field: 0})

    def test_empty_default_actor_rejected(self):
        with pytest.raises(Exception):
            TriagePolicy(default_actor="")

    def test_unknown_ungated_action_rejected(self):
        with pytest.raises(Exception):
            TriagePolicy(ungated_actions=["launch"])


# ---------------------------------------------------------------------------
# 3. YAML loader
# ---------------------------------------------------------------------------

class TestYAMLLoader:
    def _write_yaml(self, data, tmp_dir: Path) -> Path:
        path = tmp_dir / "policy.yaml"
        with open(path, "w") as f:
            yaml.dump(data, f)
        return path

    def test_load_overrides(self, tmp_path):
        path = self._write_yaml(
            {
                "policy": {
                    "ethics_gate_threshold": 0.5,
                    "enforce_ethics_gate": True,
                    "recommendation_thresholds": {
                        "yes_min_confidence": 0.8,
                        "no_max_confidence": 0.3,
                    },
                }
            },
            tmp_path,
        )
        policy = load_policy_from_yaml(path)
        assert policy.ethics_gate_threshold == 0.5
        assert policy.enforce_ethics_gate is True
        assert policy.recommendation_thresholds.yes_min_confidence == 0.8
        # Untouched fields keep defaults
        assert policy.default_confidence == 0.5

    def test_empty_policy_section_uses_defaults(self, tmp_path):
        path = self._write_yaml({"policy": None}, tmp_path)
        assert load_policy_from_yaml(path) == TriagePolicy()

    def test_load_nonexistent_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_policy_from_yaml("/nonexistent/path.yaml")

    def test_missing_policy_key_raises(self, tmp_path):
        path = self._write_yaml({"not_policy": {}}, tmp_path)
        with pytest.raises(ValueError, match="top-level 'policy'"):
            load_policy_from_yaml(path)

    def test_non_mapping_policy_raises(self, tmp_path):
        path = self._write_yaml({"policy": [1, 2]}, tmp_path)
        with pytest.raises(ValueError, match="mapping"):
            load_policy_from_yaml(path)

    def test_load_bundled_example(self):
        sample_path = Path(__file__).parent.parent / "examples" / "triage_policy.yaml"
        if sample_path.exists():
            policy = load_policy_from_yaml(sample_path)
            assert policy.enforce_ethics_gate is True
            assert policy.ungated_actions == [OperatorAction.INVESTIGATE]
