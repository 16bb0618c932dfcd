"""
Append-Only, Tamper-Evident Session Audit Log (Hash-Chained).

Every session owns one audit log.  Its first entry is always the
``ingest_event`` record written when the session is created; each operator
action afterwards adds exactly one entry carrying the action identifier,
the operator's justification, the actor and the ethics gate outcome.

Entries are linked via a SHA-256 hash chain: each entry stores the hash of
its predecessor, so modifying any recorded entry after the fact is detected
by ``verify_chain()``.

**Honest scope note:**  The chain gives structural tamper evidence inside a
single process.  Sessions live only for the process lifetime; nothing here
is written to durable or WORM storage.
"""

from __future__ import annotations

import enum
import hashlib
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


INGEST_EVENT_ACTION = "ingest_event"
"""Reserved action name for the ingestion entry; never an operator action."""

SYSTEM_ACTOR = "system"


class EthicsStatus(str, enum.Enum):
    """Outcome of the ethics gate for a single operator action."""

    APPROVED = "approved"
    BLOCKED = "blocked"


# ---------------------------------------------------------------------------
# Audit entry model
# ---------------------------------------------------------------------------

class AuditEntry(BaseModel):
    """A single audit log entry.

    Records what was done to a session, by whom, why, and whether the
    ethics gate approved it.  The ingestion entry has no ``action_id`` and
    no ``ethics_status``.
    """

    entry_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for this audit entry (UUID).",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        serialization_alias="ts",
        description="UTC timestamp of the event.",
    )
    action_id: Optional[str] = Field(
        default=None,
        description="Identifier generated per operator action. Absent for ingestion.",
    )
    action: str = Field(
        ...,
        min_length=1,
        description="Action name; 'ingest_event' is reserved for ingestion.",
    )
    justification: str = Field(
        default="",
        description="Operator-supplied justification for the action.",
    )
    actor: str = Field(
        default="operator",
        description="Who performed the action.",
    )
    ethics_status: Optional[EthicsStatus] = Field(
        default=None,
        description="Ethics gate outcome. Set for operator actions only.",
    )
    detail: dict[str, Any] = Field(
        default_factory=dict,
        description="Action-specific data, e.g. the originating event_id for ingestion.",
    )
    previous_hash: str = Field(
        default="",
        description=(
            "SHA-256 hash of the previous entry's canonical representation. "
            "Empty string for the first entry in the chain."
        ),
    )

    @property
    def is_ingestion(self) -> bool:
        return self.action == INGEST_EVENT_ACTION

    def canonical_bytes(self) -> bytes:
        """Return a deterministic byte representation for hashing.

        Uses sorted JSON serialization to ensure consistent ordering.
        """
        data = {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "action_id": self.action_id,
            "action": self.action,
            "justification": self.justification,
            "actor": self.actor,
            "ethics_status": self.ethics_status.value if self.ethics_status else None,
            "detail": self.detail,
            "previous_hash": self.previous_hash,
        }
        return json.dumps(data, sort_keys=True, default=str).encode("utf-8")

    def compute_hash(self) -> str:
        """Compute the SHA-256 hash of this entry's canonical representation."""
        return hashlib.sha256(self.canonical_bytes()).hexdigest()


def make_ingest_entry(event_id: str) -> AuditEntry:
    """Build the single ingestion entry that opens every session's log."""
    return AuditEntry(
        action=INGEST_EVENT_ACTION,
        actor=SYSTEM_ACTOR,
        detail={"event_id": event_id},
    )


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

class AuditLog:
    """Append-only, tamper-evident audit log with SHA-256 hash chaining.

    * **Append-only writes** -- there are no ``update()`` or ``delete()``
      methods.
    * **Shared storage** -- the log appends into the list it was given, so
      a ``Session`` holding that list always reflects every append.
    * **Hash chain verification** -- ``verify_chain()`` walks the log and
      reports the first broken link.

    The log does no locking of its own; the session store serializes all
    access to a session's log.
    """

    def __init__(self, entries: Optional[list[AuditEntry]] = None) -> None:
        self._entries: list[AuditEntry] = entries if entries is not None else []
        self._hashes: list[str] = [e.compute_hash() for e in self._entries]

    def append(self, entry: AuditEntry) -> AuditEntry:
        """Append a new entry to the audit log.

        Computes the hash chain link from the previous entry (if any)
        and stores it in the new entry's ``previous_hash`` field.

        Args:
            entry: The audit entry to append.

        Returns:
            The entry with ``previous_hash`` populated.
        """
        entry.previous_hash = self._hashes[-1] if self._hashes else ""
        self._entries.append(entry)
        self._hashes.append(entry.compute_hash())
        return entry

    def verify_chain(self) -> tuple[bool, Optional[int]]:
        """Walk the log and validate every hash link.

        Returns:
            A tuple of ``(valid, broken_at)`` where ``valid`` is True if
            the entire chain is intact, and ``broken_at`` is the index of
            the first broken link (or None if valid).
        """
        if len(self._entries) != len(self._hashes):
            return (False, min(len(self._entries), len(self._hashes)))

        for i, entry in enumerate(self._entries):
            if i == 0:
                if entry.previous_hash != "":
                    return (False, 0)
            elif entry.previous_hash != self._entries[i - 1].compute_hash():
                return (False, i)

            if self._hashes[i] != entry.compute_hash():
                return (False, i)

        return (True, None)

    def entries(self) -> list[AuditEntry]:
        """Return deep copies of all entries in insertion order."""
        return [e.model_copy(deep=True) for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
