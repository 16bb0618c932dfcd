"""
Triage Walkthrough: One Event From Ingestion to Escalation
==========================================================

This script drives the triage core end to end using synthetic events.

Steps demonstrated:
  1. Load the triage policy (YAML if present, defaults otherwise)
  2. Ingest a routine event and inspect the new session
  3. Apply operator actions: investigate, request ISR, escalate
  4. Ingest a PII-flagged event and watch the ethics gate block
  5. Verify the audit hash chain and print the audit trail

Usage:
    python -m examples.triage_walkthrough
    # or: python examples/triage_walkthrough.py
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transreality.config import DEFAULT_POLICY, load_policy_from_yaml
from transreality.service import TriageService
from transreality.store import SessionStore


def _banner(text: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {text}")
    print(f"{'=' * 60}\n")


def main() -> None:
    _banner("Transreality Triage Walkthrough")
    print("All events in this demo are synthetic.\n")

    # ------------------------------------------------------------------
    # Step 1: Load policy
    # ------------------------------------------------------------------
    _banner("Step 1: Load Triage Policy")

    sample_yaml = Path(__file__).parent / "triage_policy.yaml"
    if sample_yaml.exists():
        policy = load_policy_from_yaml(sample_yaml)
        print(f"Loaded policy from {sample_yaml.name}")
    else:
        policy = DEFAULT_POLICY
        print("Using built-in default policy")
    print(f"  Ethics gate threshold: {policy.ethics_gate_threshold}")
    print(f"  Gate enforced: {policy.enforce_ethics_gate}")

    service = TriageService(SessionStore(), policy=policy)

    # ------------------------------------------------------------------
    # Step 2: Routine event
    # ------------------------------------------------------------------
    _banner("Step 2: Ingest Routine Event")

    result = service.ingest_event({
        "event_id": "evt-demo-001",
        "summary": "(Synthetic) Unidentified vessel loitering near buoy 7",
        "initial_confidence": 0.65,
        "metadata": {"sensitive": False},
    })
    session = service.get_session(result.session_id)
    print(f"Session created: {result.session_id}")
    print(f"  Recommendation: {session.recommendation.value}")
    print(f"  Confidence: {session.confidence}")
    print(f"  Ethics score: {session.ethics_score}")
    for scenario in session.scenarios:
        print(f"  - {scenario.label} ({scenario.probability})")

    # ------------------------------------------------------------------
    # Step 3: Operator actions
    # ------------------------------------------------------------------
    _banner("Step 3: Operator Actions")

    for action, why in [
        ("investigate", "Gather more context"),
        ("request_isr", "Need eyes on target"),
        ("escalate", "Pattern matches prior incursion"),
    ]:
        outcome = service.apply_action(result.session_id, action, why, actor="ops.demo")
        print(f"{action}: ethics={outcome.ethics_status.value} applied={outcome.applied}")

    session = service.get_session(result.session_id)
    print(f"\nRecommendation now: {session.recommendation.value}")
    print(f"Confidence now: {session.confidence}")
    print(f"Top scenario: {session.scenarios[0].label}")

    # ------------------------------------------------------------------
    # Step 4: PII event
    # ------------------------------------------------------------------
    _banner("Step 4: Ingest PII-Flagged Event")

    pii_result = service.ingest_event({
        "event_id": "evt-demo-002",
        "description": "(Synthetic) Report naming a private individual",
        "metadata": {"pii": True},
    })
    pii_session = service.get_session(pii_result.session_id)
    print(f"Ethics score: {pii_session.ethics_score}")

    for action in ("investigate", "dismiss"):
        outcome = service.apply_action(pii_result.session_id, action, "demo")
        print(f"{action}: ethics={outcome.ethics_status.value} applied={outcome.applied}")

    # ------------------------------------------------------------------
    # Step 5: Audit trail
    # ------------------------------------------------------------------
    _banner("Step 5: Audit Trail")

    valid, broken_at = service.verify_audit_chain(result.session_id)
    print(f"Chain verification: valid={valid}, broken_at={broken_at}")
    trail = [
        entry.model_dump(mode="json", exclude={"previous_hash"})
        for entry in service.get_session(result.session_id).audit_log
    ]
    print(json.dumps(trail, indent=2))

    _banner("Walkthrough Complete")


if __name__ == "__main__":
    main()
