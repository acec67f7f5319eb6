# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models."""

from learner_memory.infrastructure.database.models.base import Base
from learner_memory.infrastructure.database.models.memory import LearnerMemory

__all__ = [
    "Base",
    "LearnerMemory",
]
