# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core business logic for learner memory.

This package contains:
- config: Application configuration
- memory: The tiered memory engine
"""
