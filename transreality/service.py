"""
Session Service -- Ingestion and Operator Actions.

This module orchestrates the two ways a triage session changes:

* ``ingest_event()`` creates a session from an event, scores it, and opens
  its audit log with a single ``ingest_event`` entry.  This is the only way
  a session comes into existence.
* ``apply_action()`` applies one operator action (``investigate``,
  ``request_isr``, ``escalate``, ``dismiss``), runs the ethics gate and
  appends exactly one audit entry.  The effect and the audit append happen
  in one critical section of the session store.

Sessions have no terminal state; they accept actions for as long as the
process runs.

**Ethics gate:**  An action is ``approved`` when the session's ethics score
exceeds the policy threshold, and ``investigate`` is always approved.  With
the default policy the gate is advisory: a ``blocked`` outcome is recorded
and returned, but the action's effect still applies.  Setting
``enforce_ethics_gate`` on the policy skips the effect of blocked actions.

The core never logs.  Callers report outcomes.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from transreality.audit import AuditEntry, AuditLog, EthicsStatus, make_ingest_entry
from transreality.config import DEFAULT_POLICY, TriagePolicy
from transreality.models import (
    Event,
    OperatorAction,
    Session,
    TernaryRecommendation,
)
from transreality.scoring import (
    compute_ethics_score,
    compute_ternary_recommendation,
    generate_scenarios,
)
from transreality.store import SessionNotFoundError, SessionStore

# Confidence is rounded after each step so repeated increments stay exact.
_CONFIDENCE_DIGITS = 10


class InvalidInputError(ValueError):
    """Raised when a request is malformed or missing required fields."""
    pass


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class IngestResult(BaseModel):
    session_id: str
    recommendation: TernaryRecommendation


class ActionResult(BaseModel):
    action_id: str
    ethics_status: EthicsStatus
    applied: bool = True


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TriageService:
    """Session lifecycle and decision logic for the triage core.

    Args:
        store: The session store this service owns sessions in.
        policy: Decision policy; defaults to ``DEFAULT_POLICY``.
    """

    def __init__(
        self,
        store: SessionStore,
        policy: TriagePolicy = DEFAULT_POLICY,
    ) -> None:
        self._store = store
        self._policy = policy

    @property
    def policy(self) -> TriagePolicy:
        return self._policy

    @property
    def store(self) -> SessionStore:
        return self._store

    # -- ingestion --

    def _parse_event(self, payload: Any) -> Event:
        if isinstance(payload, Event):
            return payload
        if payload is None:
            raise InvalidInputError("Missing event payload or event_id")
        if not isinstance(payload, Mapping):
            raise InvalidInputError("Event payload must be a JSON object")
        if not payload.get("event_id"):
            raise InvalidInputError("Missing event payload or event_id")
        try:
            return Event.model_validate(dict(payload))
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid event payload: {exc}") from exc

    def _summarize(self, event: Event) -> str:
        if event.summary:
            return event.summary
        return event.description[: self._policy.summary_max_chars]

    def ingest_event(self, event: Event | Mapping[str, Any] | None) -> IngestResult:
        """Create a new session from an event.

        Args:
            event: An ``Event`` or a mapping that validates into one.

        Returns:
            The new session's identifier and its computed recommendation.

        Raises:
            InvalidInputError: If the payload is missing, lacks an
                ``event_id``, or fails validation.
        """
        parsed = self._parse_event(event)

        confidence = parsed.initial_confidence
        if confidence is None:
            confidence = self._policy.default_confidence

        recommendation = compute_ternary_recommendation(
            confidence, self._policy.recommendation_thresholds
        )

        session = Session(
            session_id=str(uuid.uuid4()),
            event_id=parsed.event_id,
            event=parsed,
            summary=self._summarize(parsed),
            recommendation=recommendation,
            confidence=confidence,
            ethics_score=compute_ethics_score(parsed, self._policy.ethics_weights),
            scenarios=generate_scenarios(parsed, self._policy),
        )
        # The ingestion entry is in place before the session becomes visible.
        AuditLog(session.audit_log).append(make_ingest_entry(parsed.event_id))
        self._store.create(session)

        return IngestResult(session_id=session.session_id, recommendation=recommendation)

    # -- reads --

    def get_session(self, session_id: str) -> Session:
        """Return a snapshot of a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        return self._store.get(session_id)

    # -- operator actions --

    def _parse_action(self, action: Any) -> OperatorAction:
        if not action:
            raise InvalidInputError("Missing action")
        try:
            return OperatorAction(action)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Unsupported action: {action!r}") from None

    def evaluate_ethics_gate(
        self, ethics_score: float, action: OperatorAction
    ) -> EthicsStatus:
        """Return the gate outcome for an action against a session's score."""
        if ethics_score > self._policy.ethics_gate_threshold or self._policy.is_ungated(action):
            return EthicsStatus.APPROVED
        return EthicsStatus.BLOCKED

    def _apply_effect(self, session: Session, action: OperatorAction) -> None:
        if action == OperatorAction.INVESTIGATE:
            stepped = session.confidence + self._policy.investigate_confidence_step
            session.confidence = round(min(1.0, stepped), _CONFIDENCE_DIGITS)
        elif action == OperatorAction.REQUEST_ISR:
            session.scenarios.insert(0, self._policy.isr_scenario.model_copy())
        elif action == OperatorAction.ESCALATE:
            session.recommendation = TernaryRecommendation.YES
        elif action == OperatorAction.DISMISS:
            session.recommendation = TernaryRecommendation.NO

    def apply_action(
        self,
        session_id: str,
        action: Optional[str],
        justification: Optional[str] = "",
        actor: Optional[str] = None,
    ) -> ActionResult:
        """Apply an operator action to a session.

        Args:
            session_id: Target session.
            action: One of ``investigate``, ``request_isr``, ``escalate``,
                ``dismiss``.
            justification: Free-text reason, recorded on the audit entry.
            actor: Who is acting; defaults to the policy's default actor.

        Returns:
            The generated action identifier and the ethics gate outcome.
            ``applied`` is False only when the policy enforces the gate and
            the action was blocked.

        Raises:
            SessionNotFoundError: If the session does not exist.
            InvalidInputError: If ``action`` is missing or unsupported, or
                ``justification`` or ``actor`` is not a string.
        """
        if session_id not in self._store:
            raise SessionNotFoundError(session_id)
        operator_action = self._parse_action(action)
        for name, value in (("justification", justification), ("actor", actor)):
            if value is not None and not isinstance(value, str):
                raise InvalidInputError(f"{name} must be a string")

        entry_actor = actor or self._policy.default_actor
        entry_justification = justification or ""

        def _transition(session: Session, audit_log: AuditLog) -> ActionResult:
            status = self.evaluate_ethics_gate(session.ethics_score, operator_action)
            applied = status == EthicsStatus.APPROVED or not self._policy.enforce_ethics_gate

            entry = AuditEntry(
                action_id=str(uuid.uuid4()),
                action=operator_action.value,
                justification=entry_justification,
                actor=entry_actor,
                ethics_status=status,
                detail={} if applied else {"effect": "skipped"},
            )
            audit_log.append(entry)
            if applied:
                self._apply_effect(session, operator_action)

            return ActionResult(action_id=entry.action_id, ethics_status=status, applied=applied)

        return self._store.mutate(session_id, _transition)

    def verify_audit_chain(self, session_id: str) -> tuple[bool, int | None]:
        """Check the hash chain of a session's audit log."""
        return self._store.verify_audit_chain(session_id)
