"""
funnel.models
=============

Dataclasses and enums describing a client record, its pipeline stage and
the audit entries produced when that stage changes.  Like the rest of the
core these objects only use the standard library, so the policy in
:pymod:`funnel.lifecycle` can be exercised without a database.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Stage(str, Enum):
    """Position of a client in the sales / delivery funnel."""
    LEAD = "lead"
    AUDIT_SCHEDULED = "audit_scheduled"
    AUDIT_DONE = "audit_done"
    PROTOTYPE_BUILDING = "prototype_building"
    PROTOTYPE_DELIVERED = "prototype_delivered"
    PROPOSAL_DRAFT = "proposal_draft"
    PROPOSAL_SENT = "proposal_sent"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"
    ON_HOLD = "on_hold"

    def __str__(self) -> str:        # "lead" rather than "Stage.LEAD"
        return self.value

    @property
    def label(self) -> str:
        """Human readable name, e.g. ``Audit Scheduled``."""
        return STAGE_LABELS[self]

    @property
    def is_canonical(self) -> bool:
        return self in _CANONICAL_INDEX


# ---------------------------------------------------------------------
# Ordering: normal forward progress, lead → won
# ---------------------------------------------------------------------
CANONICAL_ORDER: Tuple[Stage, ...] = (
    Stage.LEAD,
    Stage.AUDIT_SCHEDULED,
    Stage.AUDIT_DONE,
    Stage.PROTOTYPE_BUILDING,
    Stage.PROTOTYPE_DELIVERED,
    Stage.PROPOSAL_DRAFT,
    Stage.PROPOSAL_SENT,
    Stage.NEGOTIATION,
    Stage.WON,
)

# Terminal / suspended stages, reachable from anywhere, never indexed.
OFF_PIPELINE = frozenset({Stage.LOST, Stage.ON_HOLD})

_CANONICAL_INDEX: Dict[Stage, int] = {s: i for i, s in enumerate(CANONICAL_ORDER)}

STAGE_LABELS: Dict[Stage, str] = {
    Stage.LEAD: "Lead",
    Stage.AUDIT_SCHEDULED: "Audit Scheduled",
    Stage.AUDIT_DONE: "Audit Done",
    Stage.PROTOTYPE_BUILDING: "Prototype Building",
    Stage.PROTOTYPE_DELIVERED: "Prototype Delivered",
    Stage.PROPOSAL_DRAFT: "Proposal Draft",
    Stage.PROPOSAL_SENT: "Proposal Sent",
    Stage.NEGOTIATION: "Negotiation",
    Stage.WON: "Won",
    Stage.LOST: "Lost",
    Stage.ON_HOLD: "On Hold",
}


def stage_index(stage: Stage) -> Optional[int]:
    """Position of *stage* in :data:`CANONICAL_ORDER`, ``None`` for lost / on_hold."""
    return _CANONICAL_INDEX.get(stage)


class TransitionClass(Enum):
    """Outcome of classifying a requested stage change."""
    BLOCKED = "blocked"                  # reserved, not produced today
    REQUIRES_REASON = "requires_reason"
    SEQUENTIAL = "sequential"

    def __str__(self) -> str:
        return self.value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Client:
    """
    Business entity tracked in the pipeline.

    Parameters
    ----------
    company_name : str
        Legal or trading name of the business.
    contact_name : str
        Primary contact person.
    email : str
        Contact e‑mail.
    phone : str | None, default=None
        Optional phone number.
    stage : Stage, default=LEAD
        Current pipeline stage.  Only changed through
        :class:`funnel.lifecycle.StageTransitionPolicy`.
    assigned_to : str | None, default=None
        Id of the team member owning the account.
    notes : str | None, default=None
        Free‑text notes.
    tags : list[str], default=[]
        Arbitrary labels.
    id : str
        Stable identifier, generated when omitted.
    """
    company_name: str
    contact_name: str
    email: str
    phone: Optional[str] = None
    stage: Stage = Stage.LEAD
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        self.stage = Stage(self.stage)
        if not self.company_name.strip():
            raise ValueError("company_name cannot be blank")


@dataclass(frozen=True)
class StageChangeRequest:
    """Proposed move of one client between two stages (never persisted)."""
    client_id: str
    from_stage: Stage
    to_stage: Stage
    reason: Optional[str] = None


@dataclass(frozen=True)
class ActivityEntry:
    """Immutable audit record written after an accepted stage change."""
    client_id: str
    acting_user_id: str
    from_stage: Stage
    to_stage: Stage
    reason: Optional[str] = None
    action: str = "stage_changed"
    timestamp: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=_new_id)

    def as_dict(self) -> dict:
        """JSON‑friendly representation used by the HTTP layer."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "acting_user_id": self.acting_user_id,
            "action": self.action,
            "from_stage": self.from_stage.value,
            "to_stage": self.to_stage.value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }
