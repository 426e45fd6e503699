"""
funnel.errors
=============

Exception hierarchy for the pipeline core.

Only genuine faults raise: a missing override reason, or a failed write to
one of the two stores.  Classification results are plain values.
"""

from __future__ import annotations

from typing import Optional

from .models import StageChangeRequest

__all__ = [
    "FunnelError",
    "ValidationError",
    "PersistenceError",
    "ClientNotFoundError",
    "ActivityLogError",
]


class FunnelError(Exception):
    """Base class for every error raised by :pymod:`funnel`."""


class ValidationError(FunnelError):
    """The request is malformed; nothing was written."""


class PersistenceError(FunnelError):
    """A store write (or read) failed."""


class ClientNotFoundError(PersistenceError):
    """No client with the given id exists in the store."""

    def __init__(self, client_id: str):
        super().__init__(f"client {client_id!r} not found")
        self.client_id = client_id


class ActivityLogError(PersistenceError):
    """
    The stage write succeeded but the audit entry could not be appended.

    The client now sits at ``request.to_stage`` without an activity record.
    Nothing is rolled back; the request is attached so an operator can
    reconcile the log by hand.
    """

    def __init__(self, request: StageChangeRequest, acting_user_id: str,
                 cause: Optional[BaseException] = None):
        super().__init__(
            f"stage of client {request.client_id!r} changed "
            f"{request.from_stage.value} → {request.to_stage.value} but the activity "
            f"entry was not recorded"
        )
        self.request = request
        self.acting_user_id = acting_user_id
        self.cause = cause
