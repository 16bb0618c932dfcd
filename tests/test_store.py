"""
Tests for transreality.store -- In-Memory Session Store.

Covers: create/get, duplicate rejection, snapshot independence, audit
append visibility, mutate exclusivity, and unknown-session errors.
"""

from __future__ import annotations

import threading

import pytest

from transreality.audit import AuditEntry, make_ingest_entry
from transreality.models import Event, Scenario, Session, TernaryRecommendation
from transreality.store import DuplicateSessionError, SessionNotFoundError, SessionStore


def _make_session(session_id: str = "s1", confidence: float = 0.5) -> Session:
    session = Session(
        session_id=session_id,
        event_id="e1",
        event=Event(event_id="e1"),
        recommendation=TernaryRecommendation.UNDEFINED,
        confidence=confidence,
        ethics_score=0.9,
        scenarios=[Scenario(label="Monitor & log", description="d", probability=0.55)],
    )
    return session


# ---------------------------------------------------------------------------
# 1. Create / get
# ---------------------------------------------------------------------------

class TestCreateAndGet:
    def test_create_then_get(self):
        store = SessionStore()
        store.create(_make_session())
        assert "s1" in store
        assert len(store) == 1
        assert store.get("s1").confidence == 0.5

    def test_duplicate_rejected(self):
        store = SessionStore()
        store.create(_make_session())
        with pytest.raises(DuplicateSessionError, match="already exists"):
            store.create(_make_session())

    def test_get_unknown_raises(self):
        store = SessionStore()
        with pytest.raises(SessionNotFoundError):
            store.get("missing")

    def test_not_found_is_key_error(self):
        store = SessionStore()
        with pytest.raises(KeyError):
            store.get("missing")

    def test_session_ids(self):
        store = SessionStore()
        store.create(_make_session("a"))
        store.create(_make_session("b"))
        assert sorted(store.session_ids()) == ["a", "b"]


# ---------------------------------------------------------------------------
# 2. Snapshot independence
# ---------------------------------------------------------------------------

class TestSnapshots:
    def test_mutating_snapshot_does_not_touch_store(self):
        store = SessionStore()
        store.create(_make_session())

        snapshot = store.get("s1")
        snapshot.confidence = 0.99
        snapshot.scenarios.clear()
        snapshot.audit_log.append(AuditEntry(action="dismiss"))

        fresh = store.get("s1")
        assert fresh.confidence == 0.5
        assert len(fresh.scenarios) == 1
        assert fresh.audit_log == []

    def test_snapshot_not_updated_by_later_writes(self):
        store = SessionStore()
        store.create(_make_session())
        before = store.get("s1")

        store.append_audit("s1", AuditEntry(action="investigate"))

        assert len(before.audit_log) == 0
        assert len(store.get("s1").audit_log) == 1


# ---------------------------------------------------------------------------
# 3. Audit append
# ---------------------------------------------------------------------------

class TestAppendAudit:
    def test_appends_visible_in_order(self):
        store = SessionStore()
        store.create(_make_session())
        store.append_audit("s1", make_ingest_entry("e1"))
        for action in ("investigate", "escalate", "dismiss"):
            store.append_audit("s1", AuditEntry(action=action))

        actions = [e.action for e in store.get("s1").audit_log]
        assert actions == ["ingest_event", "investigate", "escalate", "dismiss"]
        assert store.verify_audit_chain("s1") == (True, None)

    def test_append_unknown_raises(self):
        store = SessionStore()
        with pytest.raises(SessionNotFoundError):
            store.append_audit("missing", AuditEntry(action="investigate"))

    def test_preexisting_entries_are_chained(self):
        session = _make_session()
        session.audit_log.append(make_ingest_entry("e1"))
        store = SessionStore()
        store.create(session)

        appended = store.append_audit("s1", AuditEntry(action="investigate"))

        assert appended.previous_hash == store.get("s1").audit_log[0].compute_hash()


# ---------------------------------------------------------------------------
# 4. Mutate
# ---------------------------------------------------------------------------

class TestMutate:
    def test_mutate_updates_and_returns(self):
        store = SessionStore()
        store.create(_make_session())

        def bump(session, audit_log):
            session.confidence = 0.7
            audit_log.append(AuditEntry(action="investigate"))
            return "done"

        assert store.mutate("s1", bump) == "done"
        snapshot = store.get("s1")
        assert snapshot.confidence == 0.7
        assert len(snapshot.audit_log) == 1

    def test_mutate_unknown_raises(self):
        store = SessionStore()
        with pytest.raises(SessionNotFoundError):
            store.mutate("missing", lambda s, a: None)

    def test_concurrent_mutations_serialize(self):
        store = SessionStore()
        store.create(_make_session(confidence=0.0))
        n_threads, per_thread = 8, 50

        def bump(session, audit_log):
            # Read-modify-write that would lose updates without the lock.
            current = session.confidence
            audit_log.append(AuditEntry(action="investigate"))
            session.confidence = round(current + 0.001, 6)

        def worker():
            for _ in range(per_thread):
                store.mutate("s1", bump)

        threads = [threading.Thread(target=worker) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = store.get("s1")
        assert snapshot.confidence == pytest.approx(n_threads * per_thread * 0.001)
        assert len(snapshot.audit_log) == n_threads * per_thread
        assert store.verify_audit_chain("s1") == (True, None)

    def test_sessions_are_independent(self):
        store = SessionStore()
        store.create(_make_session("a"))
        store.create(_make_session("b"))

        def escalate(session, audit_log):
            session.recommendation = TernaryRecommendation.YES

        store.mutate("a", escalate)
        assert store.get("a").recommendation == TernaryRecommendation.YES
        assert store.get("b").recommendation == TernaryRecommendation.UNDEFINED
