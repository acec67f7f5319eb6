# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

This package contains the Alembic environment and the revisions that create
the learner memory schema. Revisions can be applied with the alembic CLI or
programmatically through the runner module.
"""
