# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tiered long-term memory about individual learners."""

__version__ = "0.1.0"
