# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data model for the tiered learner memory.

A MemoryRecord is a single inference about a learner, identified by
(subject_id, layer, key). Records move through three confidence tiers:

- ephemeral: recent observations that expire unless re-observed
- hypothesis: suspected patterns awaiting confirmation or decay
- stable: confirmed long-term traits

Status is constrained per layer (see ALLOWED_STATUSES). The model validator
rejects any combination that the state machine cannot produce, so a record
read back from a store is always internally consistent.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from learner_memory.core.memory.errors import MemoryValidationError
from learner_memory.utils.datetime import ensure_utc

E = TypeVar("E", bound=Enum)


class MemoryLayer(str, Enum):
    """Confidence tier of a memory record."""

    EPHEMERAL = "ephemeral"
    HYPOTHESIS = "hypothesis"
    STABLE = "stable"


class MemoryStatus(str, Enum):
    """Lifecycle state of a memory record."""

    ACTIVE = "active"
    SUSPECTED = "suspected"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        """Whether the status is a soft-deleted marker."""
        return self in TERMINAL_STATUSES


class ConfidenceLevel(str, Enum):
    """Ordinal confidence label: low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Position on the ordinal scale (low=1, medium=2, high=3)."""
        return _CONFIDENCE_RANK[self]

    @classmethod
    def at_least(cls, threshold: "ConfidenceLevel") -> list["ConfidenceLevel"]:
        """List every level greater than or equal to threshold."""
        return [level for level in cls if level.rank >= threshold.rank]


class ValidationOutcome(str, Enum):
    """Verdict passed to the validation gate."""

    VALIDATED = "validated"
    REJECTED = "rejected"


_CONFIDENCE_RANK = {
    ConfidenceLevel.LOW: 1,
    ConfidenceLevel.MEDIUM: 2,
    ConfidenceLevel.HIGH: 3,
}

TERMINAL_STATUSES = frozenset({MemoryStatus.RESOLVED, MemoryStatus.EXPIRED})

# Statuses counted by summaries: anything not soft-deleted.
LIVE_STATUSES = frozenset(
    {MemoryStatus.ACTIVE, MemoryStatus.SUSPECTED, MemoryStatus.RESOLVING}
)

ALLOWED_STATUSES: dict[MemoryLayer, frozenset[MemoryStatus]] = {
    MemoryLayer.EPHEMERAL: frozenset({MemoryStatus.ACTIVE, MemoryStatus.EXPIRED}),
    MemoryLayer.HYPOTHESIS: frozenset(
        {MemoryStatus.SUSPECTED, MemoryStatus.RESOLVING, MemoryStatus.RESOLVED}
    ),
    MemoryLayer.STABLE: frozenset(
        {MemoryStatus.ACTIVE, MemoryStatus.RESOLVING, MemoryStatus.RESOLVED}
    ),
}

INITIAL_STATUS: dict[MemoryLayer, MemoryStatus] = {
    MemoryLayer.EPHEMERAL: MemoryStatus.ACTIVE,
    MemoryLayer.HYPOTHESIS: MemoryStatus.SUSPECTED,
    MemoryLayer.STABLE: MemoryStatus.ACTIVE,
}


class MemoryRecord(BaseModel):
    """Snapshot of a stored memory record.

    Attributes:
        id: Store-assigned identifier.
        subject_id: Learner the record describes.
        layer: Confidence tier.
        key: Semantic identifier of the fact (e.g. "struggles_fractions").
        content: Opaque payload interpreted by consumers.
        status: Lifecycle state, constrained per layer.
        confidence: Ordinal confidence label.
        evidence_count: Number of observations merged into the record.
        first_observed: UTC date the record was created.
        last_updated: Time of the last write or state change.
        last_confirmed: UTC date of the last promotion.
        expires_at: Expiry time, set only while the record is ephemeral.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    subject_id: str
    layer: MemoryLayer
    key: str
    content: dict[str, Any]
    status: MemoryStatus
    confidence: ConfidenceLevel
    evidence_count: int = Field(ge=1)
    first_observed: date
    last_updated: datetime
    last_confirmed: date | None = None
    expires_at: datetime | None = None

    @field_validator("last_updated", "expires_at")
    @classmethod
    def _normalise_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_layer_invariants(self) -> "MemoryRecord":
        if (self.expires_at is not None) != (self.layer == MemoryLayer.EPHEMERAL):
            raise ValueError(
                f"expires_at must be set if and only if layer is ephemeral "
                f"(layer={self.layer.value}, expires_at={self.expires_at})"
            )
        if self.status not in ALLOWED_STATUSES[self.layer]:
            raise ValueError(
                f"status {self.status.value!r} is not valid for layer {self.layer.value!r}"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        """Whether the record is resolved or expired."""
        return self.status.is_terminal


class MemoryQuery(BaseModel):
    """Conjunctive filter understood by every record store.

    None means "no constraint" for every field.
    """

    subject_id: str | None = None
    layers: frozenset[MemoryLayer] | None = None
    statuses: frozenset[MemoryStatus] | None = None
    key: str | None = None
    key_pattern: str | None = None
    confidences: frozenset[ConfidenceLevel] | None = None
    updated_on_or_before: datetime | None = None
    limit: int | None = Field(default=None, ge=1)


class MemoryCondition(BaseModel):
    """Guard evaluated atomically with a conditional update.

    The update applies only if the stored record still matches every field
    that is set.
    """

    layer: MemoryLayer | None = None
    status: MemoryStatus | None = None
    confidence: ConfidenceLevel | None = None
    updated_on_or_before: datetime | None = None


class MemoryChanges(BaseModel):
    """Field assignments for a conditional update.

    Only explicitly passed fields are written, so ``MemoryChanges(expires_at=None)``
    clears the expiry while ``MemoryChanges()`` leaves it alone.
    """

    layer: MemoryLayer | None = None
    status: MemoryStatus | None = None
    confidence: ConfidenceLevel | None = None
    last_updated: datetime | None = None
    last_confirmed: date | None = None
    expires_at: datetime | None = None

    def assignments(self) -> dict[str, Any]:
        """Return only the fields the caller set."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class MemoryStats(BaseModel):
    """Counts over a subject's live records."""

    total_memories: int = 0
    stable_count: int = 0
    hypothesis_count: int = 0
    ephemeral_count: int = 0


class MemorySummary(BaseModel):
    """Per-subject view handed to content-planning consumers.

    Attributes:
        subject_id: Learner summarised.
        stable_patterns: Live stable records, newest first.
        active_hypotheses: Live hypothesis records, newest first.
        recent_observations: Most recently updated live ephemeral records.
        stats: Counts over the full live set.
    """

    subject_id: str
    stable_patterns: list[MemoryRecord] = Field(default_factory=list)
    active_hypotheses: list[MemoryRecord] = Field(default_factory=list)
    recent_observations: list[MemoryRecord] = Field(default_factory=list)
    stats: MemoryStats = Field(default_factory=MemoryStats)


def coerce_enum(enum_cls: type[E], value: E | str | None, field: str) -> E:
    """Convert a member or its string value to ``enum_cls``.

    Args:
        enum_cls: Target enumeration.
        value: Member or raw value supplied by a caller.
        field: Field name used in the error message.

    Raises:
        MemoryValidationError: If value is missing or not a valid member.
    """
    if value is None:
        raise MemoryValidationError(f"{field} is required")
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise MemoryValidationError(
            f"Invalid {field} {value!r}; expected one of: {allowed}", e
        ) from e


def require_text(value: str | None, field: str) -> str:
    """Reject missing or blank identifier strings.

    Raises:
        MemoryValidationError: If value is None, not a string, or blank.
    """
    if not isinstance(value, str) or not value.strip():
        raise MemoryValidationError(f"{field} is required")
    return value
