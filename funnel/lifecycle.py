"""
funnel.lifecycle
================

Stage‑transition policy for a :class:`funnel.models.Client`.

Every stage is reachable from every other stage.  Skips and backward
moves along :data:`funnel.models.CANONICAL_ORDER`, and moves into
``lost`` / ``on_hold``, are *overrides* and need a written reason.
Everything else (one step forward, or leaving ``lost`` / ``on_hold``)
is taken silently.

:class:`StageTransitionPolicy` applies an accepted change in two strictly
ordered steps: write the new stage to the client store, then append an
:class:`~funnel.models.ActivityEntry` to the activity log.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .errors import ActivityLogError, PersistenceError, ValidationError
from .models import (
    OFF_PIPELINE,
    ActivityEntry,
    Stage,
    StageChangeRequest,
    TransitionClass,
    stage_index,
)
from .store import ActivityLog, ClientStore

logger = logging.getLogger(__name__)

StageLike = Union[Stage, str]

# Called with (request, entry) once both writes succeeded.
Notifier = Callable[[StageChangeRequest, ActivityEntry], None]


def _coerce(stage: StageLike) -> Stage:
    try:
        return Stage(stage)
    except ValueError:
        raise ValueError(f"unknown stage {stage!r}") from None


def classify(from_stage: StageLike, to_stage: StageLike) -> TransitionClass:
    """
    Classify the move ``from_stage → to_stage``.

    Raises :class:`ValueError` when both stages are equal; no‑op moves are
    the caller's to filter out.

    Examples
    --------
    >>> classify("lead", "audit_scheduled")
    <TransitionClass.SEQUENTIAL: 'sequential'>
    >>> classify("lead", "won")
    <TransitionClass.REQUIRES_REASON: 'requires_reason'>
    """
    src, dst = _coerce(from_stage), _coerce(to_stage)
    if src is dst:
        raise ValueError(f"no-op transition {src} → {dst}")

    if dst in OFF_PIPELINE:
        return TransitionClass.REQUIRES_REASON

    if not src.is_canonical:
        # leaving lost / on_hold: no index to compare against
        return TransitionClass.SEQUENTIAL
    if stage_index(dst) - stage_index(src) == 1:
        return TransitionClass.SEQUENTIAL
    return TransitionClass.REQUIRES_REASON


def requires_reason(from_stage: StageLike, to_stage: StageLike) -> bool:
    """Shorthand for ``classify(...) is TransitionClass.REQUIRES_REASON``."""
    return classify(from_stage, to_stage) is TransitionClass.REQUIRES_REASON


def _clean_reason(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    reason = reason.strip()
    return reason or None


class StageTransitionPolicy:
    """
    Mediates every stage change and keeps the activity log authoritative.

    Parameters
    ----------
    clients : ClientStore
        Where the current stage of each client lives.
    activity : ActivityLog
        Append‑only audit trail.
    notifier : callable, optional
        Invoked after a fully recorded change (e.g. Slack).  Its failures
        are logged and never reach the caller.
    """

    def __init__(self, clients: ClientStore, activity: ActivityLog,
                 notifier: Optional[Notifier] = None) -> None:
        self.clients = clients
        self.activity = activity
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def classify(self, from_stage: StageLike, to_stage: StageLike) -> TransitionClass:
        return classify(from_stage, to_stage)

    def apply(
        self,
        client_id: str,
        from_stage: StageLike,
        to_stage: StageLike,
        reason: Optional[str],
        acting_user_id: str,
    ) -> ActivityEntry:
        """
        Move *client_id* from *from_stage* to *to_stage* and record it.

        *from_stage* is the stage the caller observed; it goes into the
        activity entry verbatim and is not re‑read from the store.

        Raises
        ------
        ValidationError
            No‑op move, unknown stage, or an override without a reason.
            Nothing is written.
        PersistenceError
            The client store rejected the write.  No entry is appended.
        ActivityLogError
            The stage was written but the entry could not be appended.
        """
        try:
            src, dst = _coerce(from_stage), _coerce(to_stage)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        if src is dst:
            raise ValidationError(f"client is already in stage {dst}")

        reason = _clean_reason(reason)
        if classify(src, dst) is TransitionClass.REQUIRES_REASON and reason is None:
            raise ValidationError("reason required for this transition")

        request = StageChangeRequest(client_id, src, dst, reason)

        # 1. client store
        try:
            self.clients.update_stage(client_id, dst)
        except PersistenceError:
            logger.error("Stage update failed for client %s (%s → %s)", client_id, src, dst)
            raise

        # 2. activity log
        entry = ActivityEntry(
            client_id=client_id,
            acting_user_id=acting_user_id,
            from_stage=src,
            to_stage=dst,
            reason=reason,
        )
        try:
            self.activity.append(entry)
        except PersistenceError as exc:
            logger.critical(
                "UNAUDITED stage change: client %s moved %s → %s by %s (reason=%r); "
                "activity entry lost, reconcile manually",
                client_id, src, dst, acting_user_id, reason,
            )
            raise ActivityLogError(request, acting_user_id, cause=exc) from exc

        logger.info("Client %s moved %s → %s by %s", client_id, src, dst, acting_user_id)
        self._notify(request, entry)
        return entry

    def change_stage(
        self,
        client_id: str,
        to_stage: StageLike,
        reason: Optional[str],
        acting_user_id: str,
    ) -> ActivityEntry:
        """Read the client's current stage, then :meth:`apply` the move."""
        current = self.clients.get(client_id).stage
        return self.apply(client_id, current, to_stage, reason, acting_user_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _notify(self, request: StageChangeRequest, entry: ActivityEntry) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(request, entry)
        except Exception:  # noqa: BLE001
            logger.exception("Stage-change notifier failed for client %s", request.client_id)
