"""
In-Memory Session Store.

Holds the authoritative set of live sessions and their audit logs, keyed by
session identifier, for the lifetime of the process.

**Locking model:**

* A registry lock guards the id -> slot mapping (create, lookup).
* Each session has its own lock guarding its record and audit log.  All
  reads and writes of one session go through that lock, so a reader sees
  either the state before an action or the state after it, never a mix.
  Sessions never wait on each other.

``get()`` returns a deep copy; callers cannot reach store internals through
the value they receive.
"""

from __future__ import annotations

import threading
from typing import Callable, TypeVar

from transreality.audit import AuditEntry, AuditLog
from transreality.models import Session

T = TypeVar("T")


class SessionNotFoundError(KeyError):
    """Raised when a session identifier is not present in the store."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class DuplicateSessionError(ValueError):
    """Raised when creating a session whose identifier already exists."""
    pass


class _SessionSlot:
    """A session record, its audit log and the lock that serializes both."""

    __slots__ = ("session", "audit_log", "lock")

    def __init__(self, session: Session) -> None:
        self.session = session
        # Shares the session's own list so session.audit_log sees every append.
        self.audit_log = AuditLog(session.audit_log)
        self.lock = threading.Lock()


class SessionStore:
    """Thread-safe in-memory store of triage sessions.

    The store is an explicitly owned object: create one per process (or per
    test) and hand it to ``TriageService``.  There is no module-level state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[str, _SessionSlot] = {}

    def _slot(self, session_id: str) -> _SessionSlot:
        with self._lock:
            slot = self._slots.get(session_id)
        if slot is None:
            raise SessionNotFoundError(session_id)
        return slot

    def create(self, session: Session) -> None:
        """Insert a new session.

        The session is stored as given (not copied) so that its audit list
        and the store's ``AuditLog`` stay the same object.  Callers must not
        keep using the instance after handing it over.

        Raises:
            DuplicateSessionError: If ``session.session_id`` already exists.
        """
        with self._lock:
            if session.session_id in self._slots:
                raise DuplicateSessionError(
                    f"Session '{session.session_id}' already exists."
                )
            self._slots[session.session_id] = _SessionSlot(session)

    def get(self, session_id: str) -> Session:
        """Return an independent snapshot of a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        slot = self._slot(session_id)
        with slot.lock:
            return slot.session.model_copy(deep=True)

    def append_audit(self, session_id: str, entry: AuditEntry) -> AuditEntry:
        """Append an entry to a session's audit log.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        slot = self._slot(session_id)
        with slot.lock:
            return slot.audit_log.append(entry)

    def mutate(
        self,
        session_id: str,
        fn: Callable[[Session, AuditLog], T],
    ) -> T:
        """Run ``fn(session, audit_log)`` with exclusive access to one session.

        ``fn`` may update the session's mutable fields and append to its
        audit log; both become visible to readers together when ``fn``
        returns.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        slot = self._slot(session_id)
        with slot.lock:
            return fn(slot.session, slot.audit_log)

    def verify_audit_chain(self, session_id: str) -> tuple[bool, int | None]:
        slot = self._slot(session_id)
        with slot.lock:
            return slot.audit_log.verify_chain()

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._slots)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._slots

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
