"""
Core data models for the Transreality triage core.

An ``Event`` is what an external caller submits.  A ``Session`` is the
mutable triage record created from it, holding the current recommendation,
confidence, candidate ``Scenario`` list and the session's audit trail.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from transreality.audit import AuditEntry, EthicsStatus

__all__ = [
    "Event",
    "EventMetadata",
    "EthicsStatus",
    "OperatorAction",
    "Scenario",
    "Session",
    "TernaryRecommendation",
]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TernaryRecommendation(str, enum.Enum):
    """The system's current disposition toward an event.

    * ``YES``       -- act on the event.
    * ``NO``        -- no action warranted.
    * ``UNDEFINED`` -- not enough confidence either way; operator judgment
      required.
    """

    YES = "yes"
    NO = "no"
    UNDEFINED = "undefined"


class OperatorAction(str, enum.Enum):
    """Actions an operator may apply to a session.

    ``INVESTIGATE`` is low-risk information gathering and is never gated.
    The remaining actions have real-world impact and require an ethics
    score above the policy threshold.
    """

    INVESTIGATE = "investigate"
    REQUEST_ISR = "request_isr"
    ESCALATE = "escalate"
    DISMISS = "dismiss"


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------

class EventMetadata(BaseModel):
    """Risk flags attached to an event.

    A flag counts as set when its value is truthy the way a JSON client
    would read it: any non-empty string (including ``"false"``), any non-zero
    number, and any object or array.  Only ``null``, ``false``, ``0``, NaN and
    ``""`` leave a flag unset, so an ambiguous value never lowers the risk.

    Unknown keys are kept so nothing the caller sent is lost on the stored
    copy of the event.
    """

    model_config = ConfigDict(extra="allow")

    sensitive: bool = Field(
        default=False,
        description="Event concerns sensitive subject matter.",
    )
    pii: bool = Field(
        default=False,
        description="Event carries personally identifiable information.",
    )

    @field_validator("sensitive", "pii", mode="before")
    @classmethod
    def json_truthy(cls, v: Any) -> bool:
        if v is None or isinstance(v, bool):
            return bool(v)
        if isinstance(v, (int, float)):
            return v != 0 and v == v
        if isinstance(v, str):
            return v != ""
        return True


class Event(BaseModel):
    """An externally submitted item that triggers triage.

    ``initial_confidence`` is left as ``None`` when the caller omitted it or
    sent something non-numeric; the service substitutes the policy default.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    event_id: str = Field(
        ...,
        min_length=1,
        description="Caller-supplied event identifier.",
    )
    summary: str = Field(default="", description="Short free-text summary.")
    description: str = Field(default="", description="Longer free-text description.")
    initial_confidence: float | None = Field(
        default=None,
        ge=0,
        le=1,
        description="Caller's confidence in the event, 0..1.",
    )
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    @field_validator("summary", "description", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("initial_confidence", mode="before")
    @classmethod
    def numeric_or_none(cls, v: Any) -> Any:
        # Only real numbers count; strings and booleans fall back to the default.
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def none_is_empty_metadata(cls, v: Any) -> Any:
        return {} if v is None else v


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class Scenario(BaseModel):
    """A labeled candidate response with a probability weight.

    Probabilities across a session's scenario list are not required to
    sum to 1.
    """

    label: str
    description: str
    probability: float = Field(..., ge=0, le=1)


class Session(BaseModel):
    """Mutable triage record for one ingested event.

    ``ethics_score`` is fixed at creation.  ``audit_log`` is the same list
    object the store's ``AuditLog`` appends to, so the session always
    reflects every recorded entry.
    """

    session_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique session identifier.",
    )
    event_id: str = Field(..., description="Identifier of the originating event.")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of ingestion.",
    )
    event: Event
    summary: str = ""
    recommendation: TernaryRecommendation = Field(
        ..., serialization_alias="ternary_recommendation"
    )
    confidence: float = Field(..., ge=0, le=1)
    ethics_score: float = Field(..., ge=0, le=1)
    scenarios: list[Scenario] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)
