# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the tiered memory engine.

Callers distinguish three failure kinds:
- MemoryValidationError: malformed input or an illegal transition (caller bug)
- MemoryNotFoundError: the targeted record id does not exist
- StoreUnavailableError: the record store cannot be reached (caller retries)
"""


class TieredMemoryError(Exception):
    """Base exception for memory engine operations.

    Attributes:
        message: Error description.
        original_error: Original exception if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class MemoryValidationError(TieredMemoryError):
    """Raised when required input is missing or malformed."""


class InvalidTransitionError(MemoryValidationError):
    """Raised when a lifecycle operation is not legal from the record's state.

    Attributes:
        record_id: Record the transition was attempted on.
        layer: Layer observed at the time of the attempt.
        status: Status observed at the time of the attempt.
    """

    def __init__(
        self,
        message: str,
        record_id: str,
        layer: str | None = None,
        status: str | None = None,
    ):
        self.record_id = record_id
        self.layer = layer
        self.status = status
        super().__init__(message)


class MemoryNotFoundError(TieredMemoryError):
    """Raised when a record id does not resolve to a stored record.

    Attributes:
        record_id: The id that was looked up.
    """

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Memory record not found: {record_id}")


class StoreUnavailableError(TieredMemoryError):
    """Raised when the underlying record store cannot be reached."""
