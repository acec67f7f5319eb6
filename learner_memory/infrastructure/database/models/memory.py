# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM model for tiered learner memory records.

One row per (subject_id, layer, key). The unique constraint is the conflict
target of the store's atomic upsert, so it must never be dropped.
"""

import uuid
from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from learner_memory.infrastructure.database.models.base import Base
from learner_memory.utils.datetime import utc_now

MEMORY_LAYERS = ("ephemeral", "hypothesis", "stable")
MEMORY_STATUSES = ("active", "suspected", "resolving", "resolved", "expired")
CONFIDENCE_LEVELS = ("low", "medium", "high")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class LearnerMemory(Base):
    """A single inference about a learner in one confidence tier."""

    __tablename__ = "learner_memories"
    __table_args__ = (
        sa.UniqueConstraint("subject_id", "layer", "key"),
        sa.CheckConstraint(_in_list("layer", MEMORY_LAYERS), name="layer"),
        sa.CheckConstraint(_in_list("status", MEMORY_STATUSES), name="status"),
        sa.CheckConstraint(_in_list("confidence", CONFIDENCE_LEVELS), name="confidence"),
        sa.CheckConstraint("evidence_count >= 1", name="evidence_count_positive"),
        sa.Index("ix_learner_memories_subject_layer", "subject_id", "layer"),
        sa.Index("ix_learner_memories_status", "status"),
        sa.Index("ix_learner_memories_key", "key"),
        sa.Index(
            "ix_learner_memories_expires_at",
            "expires_at",
            postgresql_where=sa.text("expires_at IS NOT NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(
        sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    subject_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    layer: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    key: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    content: Mapped[dict[str, Any]] = mapped_column(
        sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    confidence: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    evidence_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)
    first_observed: Mapped[date] = mapped_column(sa.Date, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    last_confirmed: Mapped[date | None] = mapped_column(sa.Date, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )

    def __repr__(self) -> str:
        return (
            f"<LearnerMemory(id={self.id}, subject_id={self.subject_id}, "
            f"layer={self.layer}, key={self.key}, status={self.status})>"
        )
