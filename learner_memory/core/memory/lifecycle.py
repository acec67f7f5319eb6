# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle state machine for tiered memory records.

States are (layer, status) pairs. The only legal promotions are:

    (ephemeral, active)      -> (hypothesis, suspected)
    (hypothesis, suspected)  -> (stable, active)
    (stable, active)         -> (stable, active)      no-op

Promotion never skips a tier and clears expires_at. Unconfirmed hypotheses
decay one confidence step per staleness window (high -> medium -> low) and
are resolved once they are already low. Ephemeral records are soft-expired
once their TTL passes.

Every transition is a single conditional update keyed by id and guarded by
the state the engine observed, so a concurrent change makes the transition
fail instead of being overwritten.

Example:
    promotion = PromotionEngine(store=store)
    hypothesis = await promotion.promote(record.id)
    stable = await promotion.promote(record.id)
"""

import logging
from datetime import timedelta

from learner_memory.core.memory.errors import (
    InvalidTransitionError,
    MemoryNotFoundError,
    MemoryValidationError,
)
from learner_memory.core.memory.models import (
    INITIAL_STATUS,
    ConfidenceLevel,
    MemoryChanges,
    MemoryCondition,
    MemoryLayer,
    MemoryQuery,
    MemoryRecord,
    MemoryStatus,
    ValidationOutcome,
    coerce_enum,
    require_text,
)
from learner_memory.core.memory.stores.base import MemoryStore
from learner_memory.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_DAYS = 30

State = tuple[MemoryLayer, MemoryStatus]

PROMOTION_TRANSITIONS: dict[State, State] = {
    (MemoryLayer.EPHEMERAL, MemoryStatus.ACTIVE): (
        MemoryLayer.HYPOTHESIS,
        MemoryStatus.SUSPECTED,
    ),
    (MemoryLayer.HYPOTHESIS, MemoryStatus.SUSPECTED): (
        MemoryLayer.STABLE,
        MemoryStatus.ACTIVE,
    ),
    (MemoryLayer.STABLE, MemoryStatus.ACTIVE): (
        MemoryLayer.STABLE,
        MemoryStatus.ACTIVE,
    ),
}

# Confidence after one decay step; LOW has no entry and resolves instead.
DECAY_STEPS: dict[ConfidenceLevel, ConfidenceLevel] = {
    ConfidenceLevel.HIGH: ConfidenceLevel.MEDIUM,
    ConfidenceLevel.MEDIUM: ConfidenceLevel.LOW,
}

PENDING_HYPOTHESIS: State = (MemoryLayer.HYPOTHESIS, MemoryStatus.SUSPECTED)
CONFIRMED: State = (MemoryLayer.STABLE, MemoryStatus.ACTIVE)


def _state(record: MemoryRecord) -> State:
    return (record.layer, record.status)


async def _load(store: MemoryStore, record_id: str) -> MemoryRecord:
    record_id = require_text(record_id, "record_id")
    record = await store.get(record_id)
    if record is None:
        raise MemoryNotFoundError(record_id)
    return record


def _illegal(record: MemoryRecord, operation: str) -> InvalidTransitionError:
    return InvalidTransitionError(
        f"Cannot {operation} memory {record.id} in state "
        f"({record.layer.value}, {record.status.value})",
        record_id=record.id,
        layer=record.layer.value,
        status=record.status.value,
    )


class PromotionEngine:
    """Advances records one tier along the confidence ladder."""

    def __init__(self, store: MemoryStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def promote(self, record_id: str) -> MemoryRecord:
        """Move a record one tier up.

        Args:
            record_id: Id of the record to promote.

        Returns:
            The promoted record, or the unchanged record if already stable.

        Raises:
            MemoryNotFoundError: If no record has this id.
            InvalidTransitionError: If the record's state has no promotion,
                or it changed concurrently.
            StoreUnavailableError: If the store cannot be reached.
        """
        current = await _load(self._store, record_id)
        source = _state(current)
        target = PROMOTION_TRANSITIONS.get(source)

        if target is None:
            raise _illegal(current, "promote")
        if target == source:
            return current

        now = self._clock()
        target_layer, target_status = target
        updated = await self._store.update_if(
            current.id,
            MemoryChanges(
                layer=target_layer,
                status=target_status,
                last_confirmed=now.date(),
                last_updated=now,
                expires_at=None,
            ),
            MemoryCondition(layer=current.layer, status=current.status),
        )
        if updated is None:
            raise _illegal(current, "promote")

        logger.info(
            "Promoted memory %s (%s) for subject %s: %s -> %s",
            updated.id,
            updated.key,
            updated.subject_id,
            current.layer.value,
            updated.layer.value,
        )
        return updated


class DecayEngine:
    """Weakens unconfirmed hypotheses that stop receiving evidence.

    Attributes:
        staleness_days: Minimum age of last_updated before a step applies.
    """

    def __init__(
        self,
        store: MemoryStore,
        clock: Clock = utc_now,
        staleness_days: int = DEFAULT_STALENESS_DAYS,
    ) -> None:
        self._store = store
        self._clock = clock
        self.staleness_days = staleness_days

    async def decay(self, subject_id: str) -> int:
        """Apply one decay step to each stale suspected hypothesis.

        high -> medium, medium -> low, low -> resolved (confidence kept).
        The step refreshes last_updated, so the next step needs another full
        staleness window. Ephemeral and stable records are never touched.

        Args:
            subject_id: Learner whose hypotheses are decayed.

        Returns:
            Number of records changed.
        """
        subject_id = require_text(subject_id, "subject_id")
        now = self._clock()
        cutoff = now - timedelta(days=self.staleness_days)

        stale = await self._store.query(
            MemoryQuery(
                subject_id=subject_id,
                layers=frozenset({MemoryLayer.HYPOTHESIS}),
                statuses=frozenset({MemoryStatus.SUSPECTED}),
                updated_on_or_before=cutoff,
            )
        )

        changed = 0
        for record in stale:
            next_confidence = DECAY_STEPS.get(record.confidence)
            if next_confidence is None:
                changes = MemoryChanges(status=MemoryStatus.RESOLVED, last_updated=now)
            else:
                changes = MemoryChanges(confidence=next_confidence, last_updated=now)

            updated = await self._store.update_if(
                record.id,
                changes,
                MemoryCondition(
                    layer=MemoryLayer.HYPOTHESIS,
                    status=MemoryStatus.SUSPECTED,
                    confidence=record.confidence,
                    updated_on_or_before=cutoff,
                ),
            )
            if updated is None:
                logger.debug("Skipped decay of memory %s: changed concurrently", record.id)
                continue

            changed += 1
            logger.debug(
                "Decayed memory %s (%s): %s/%s -> %s/%s",
                record.id,
                record.key,
                record.confidence.value,
                record.status.value,
                updated.confidence.value,
                updated.status.value,
            )

        logger.info("Decayed %d memories for subject %s", changed, subject_id)
        return changed


class ExpirationSweep:
    """Soft-expires ephemeral records whose TTL has passed."""

    def __init__(self, store: MemoryStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def cleanup_expired(self) -> int:
        """Mark every active ephemeral record with expires_at < now as expired.

        Runs across all subjects. Records are never deleted, and re-running
        with nothing newly due changes nothing.

        Returns:
            Number of records changed.
        """
        count = await self._store.expire_due(self._clock())
        logger.info("Cleaned up %d expired memories", count)
        return count


class ValidationGate:
    """Explicit external verdicts on hypotheses, and explicit reactivation."""

    def __init__(
        self,
        store: MemoryStore,
        promotion: PromotionEngine,
        clock: Clock = utc_now,
        default_ttl_days: int = 10,
    ) -> None:
        self._store = store
        self._promotion = promotion
        self._clock = clock
        self.default_ttl_days = default_ttl_days

    async def validate_hypothesis(
        self,
        record_id: str,
        outcome: ValidationOutcome | str,
    ) -> MemoryRecord:
        """Accept or reject a suspected hypothesis.

        ``validated`` promotes the hypothesis to stable. ``rejected`` resolves
        it in place, keeping the record for audit. Repeating a verdict that
        already holds returns the record unchanged.

        Args:
            record_id: Id of the hypothesis.
            outcome: validated or rejected.

        Returns:
            The record after the verdict.

        Raises:
            MemoryNotFoundError: If no record has this id.
            InvalidTransitionError: If the record is not a suspected
                hypothesis and the verdict does not already hold.
        """
        outcome = coerce_enum(ValidationOutcome, outcome, "outcome")
        current = await _load(self._store, record_id)
        state = _state(current)

        if outcome == ValidationOutcome.VALIDATED:
            if state == CONFIRMED:
                return current
            if state != PENDING_HYPOTHESIS:
                raise _illegal(current, "validate")
            return await self._promotion.promote(current.id)

        if current.status == MemoryStatus.RESOLVED:
            return current
        if state != PENDING_HYPOTHESIS:
            raise _illegal(current, "reject")

        updated = await self._store.update_if(
            current.id,
            MemoryChanges(status=MemoryStatus.RESOLVED, last_updated=self._clock()),
            MemoryCondition(layer=current.layer, status=current.status),
        )
        if updated is None:
            raise _illegal(current, "reject")

        logger.info(
            "Rejected hypothesis %s (%s) for subject %s",
            updated.id,
            updated.key,
            updated.subject_id,
        )
        return updated

    async def reactivate(self, record_id: str, ttl_days: int | None = None) -> MemoryRecord:
        """Return a resolved or expired record to its layer's initial status.

        Writes never reactivate terminal records on their own; callers that
        want new evidence to revive a fact do it here. Ephemeral records get a
        fresh expiry of ``now + ttl_days``.

        Args:
            record_id: Id of the record.
            ttl_days: Lifetime of a reactivated ephemeral record.

        Returns:
            The reactivated record, or the record unchanged if it was live.

        Raises:
            MemoryNotFoundError: If no record has this id.
            InvalidTransitionError: If the record changed concurrently.
        """
        current = await _load(self._store, record_id)
        if not current.is_terminal:
            return current

        now = self._clock()
        changes = MemoryChanges(status=INITIAL_STATUS[current.layer], last_updated=now)
        if current.layer == MemoryLayer.EPHEMERAL:
            ttl = self.default_ttl_days if ttl_days is None else ttl_days
            if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 1:
                raise MemoryValidationError(
                    f"ttl_days must be a positive integer, got {ttl!r}"
                )
            changes = MemoryChanges(
                status=INITIAL_STATUS[current.layer],
                last_updated=now,
                expires_at=now + timedelta(days=ttl),
            )

        updated = await self._store.update_if(
            current.id,
            changes,
            MemoryCondition(layer=current.layer, status=current.status),
        )
        if updated is None:
            raise _illegal(current, "reactivate")

        logger.info(
            "Reactivated memory %s (%s) for subject %s: %s -> %s",
            updated.id,
            updated.key,
            updated.subject_id,
            current.status.value,
            updated.status.value,
        )
        return updated
