# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create learner memory table.

Revision ID: 001_create_learner_memories
Revises:
Create Date: 2025-06-02

This migration creates the tiered memory store:
- learner_memories: one row per (subject_id, layer, key)

The unique constraint is the conflict target of the atomic upsert used by
the SQL record store.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_create_learner_memories"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create learner_memories table and its indexes."""
    op.create_table(
        "learner_memories",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("subject_id", sa.String(64), nullable=False),
        sa.Column("layer", sa.String(20), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column(
            "content",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("confidence", sa.String(10), nullable=False),
        sa.Column("evidence_count", sa.Integer, nullable=False, server_default="1"),
        # Lifecycle timestamps
        sa.Column("first_observed", sa.Date, nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_confirmed", sa.Date, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_learner_memories"),
        sa.UniqueConstraint(
            "subject_id", "layer", "key", name="uq_learner_memories_subject_id"
        ),
        sa.CheckConstraint(
            "layer IN ('ephemeral', 'hypothesis', 'stable')",
            name="ck_learner_memories_layer",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'suspected', 'resolving', 'resolved', 'expired')",
            name="ck_learner_memories_status",
        ),
        sa.CheckConstraint(
            "confidence IN ('low', 'medium', 'high')",
            name="ck_learner_memories_confidence",
        ),
        sa.CheckConstraint(
            "evidence_count >= 1",
            name="ck_learner_memories_evidence_count_positive",
        ),
    )

    op.create_index(
        "ix_learner_memories_subject_layer",
        "learner_memories",
        ["subject_id", "layer"],
    )
    op.create_index("ix_learner_memories_status", "learner_memories", ["status"])
    op.create_index("ix_learner_memories_key", "learner_memories", ["key"])
    op.create_index(
        "ix_learner_memories_expires_at",
        "learner_memories",
        ["expires_at"],
        postgresql_where=sa.text("expires_at IS NOT NULL"),
    )


def downgrade() -> None:
    """Drop learner_memories table."""
    op.drop_index("ix_learner_memories_expires_at", table_name="learner_memories")
    op.drop_index("ix_learner_memories_key", table_name="learner_memories")
    op.drop_index("ix_learner_memories_status", table_name="learner_memories")
    op.drop_index("ix_learner_memories_subject_layer", table_name="learner_memories")
    op.drop_table("learner_memories")
