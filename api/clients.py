"""
api.clients
===========

Client records, their stage changes and their activity feed.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from funnel.errors import (
    ActivityLogError,
    ClientNotFoundError,
    PersistenceError,
    ValidationError,
)
from funnel.lifecycle import StageTransitionPolicy
from funnel.models import Client, Stage
from funnel.store import ActivityLog, ClientStore
from api.deps import (
    get_acting_user,
    get_activity_log,
    get_client_store,
    get_policy,
    get_settings,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])


# ---------- request / response models ----------
class ClientCreate(BaseModel):
    company_name: str = Field(..., min_length=1)
    contact_name: str
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = []


class ClientOut(BaseModel):
    id: str
    company_name: str
    contact_name: str
    email: str
    phone: Optional[str] = None
    stage: Stage
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_client(cls, c: Client) -> "ClientOut":
        return cls(**{name: getattr(c, name) for name in cls.model_fields})


class StageChangeIn(BaseModel):
    to_stage: Stage
    reason: Optional[str] = None


class ActivityOut(BaseModel):
    id: str
    client_id: str
    acting_user_id: str
    action: str
    from_stage: Stage
    to_stage: Stage
    reason: Optional[str] = None
    timestamp: datetime


# ---------- POST /clients ----------
@router.post("", status_code=201, response_model=ClientOut)
def create_client(data: ClientCreate, store: ClientStore = Depends(get_client_store)):
    """Create a client; every new client starts at ``lead``."""
    client = Client(**data.model_dump())
    try:
        store.add(client)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    logger.info("Created client %s (%s)", client.id, client.company_name)
    return ClientOut.from_client(client)


# ---------- GET /clients ----------
@router.get("", response_model=List[ClientOut])
def list_clients(
    stage: Optional[Stage] = Query(None, description="Only clients in this stage"),
    assigned_to: Optional[str] = Query(None, description="Only clients owned by this user id"),
    search: Optional[str] = Query(None, min_length=1, description="Substring of company, contact or e-mail"),
    store: ClientStore = Depends(get_client_store),
):
    """
    Clients for the Kanban board, most recently updated first.

    Filters combine; *search* is case‑insensitive.
    """
    try:
        found = store.find_by_stage(stage) if stage else list(store)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if assigned_to:
        found = [c for c in found if c.assigned_to == assigned_to]
    if search:
        needle = search.lower()
        found = [
            c for c in found
            if needle in c.company_name.lower()
            or needle in c.contact_name.lower()
            or needle in c.email.lower()
        ]
    found.sort(key=lambda c: c.updated_at, reverse=True)
    return [ClientOut.from_client(c) for c in found]


# ---------- GET /clients/{client_id} ----------
@router.get("/{client_id}", response_model=ClientOut)
def read_client(client_id: str, store: ClientStore = Depends(get_client_store)):
    try:
        return ClientOut.from_client(store.get(client_id))
    except ClientNotFoundError:
        raise HTTPException(status_code=404, detail="Client not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


# ---------- POST /clients/{client_id}/stage ----------
@router.post("/{client_id}/stage", status_code=201, response_model=ActivityOut)
def change_stage(
    client_id: str,
    data: StageChangeIn,
    policy: StageTransitionPolicy = Depends(get_policy),
    user_id: str = Depends(get_acting_user),
):
    """
    Move the client to ``to_stage``.

    Overrides (skips, backward moves, lost / on_hold) need a ``reason``;
    without one the call fails with 422 and nothing changes.  Use
    ``GET /pipeline/classify`` first to find out whether to prompt.
    """
    try:
        entry = policy.change_stage(client_id, data.to_stage, data.reason, user_id)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ClientNotFoundError:
        raise HTTPException(status_code=404, detail="Client not found")
    except ActivityLogError as e:
        # stage changed, audit entry missing
        raise HTTPException(
            status_code=500,
            detail={
                "message": str(e),
                "client_id": e.request.client_id,
                "from_stage": e.request.from_stage.value,
                "to_stage": e.request.to_stage.value,
            },
        )
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ActivityOut(**entry.as_dict())


# ---------- GET /clients/{client_id}/activity ----------
@router.get("/{client_id}/activity", response_model=List[ActivityOut])
def client_activity(
    client_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500, description="Max entries, newest first"),
    store: ClientStore = Depends(get_client_store),
    log: ActivityLog = Depends(get_activity_log),
    settings=Depends(get_settings),
):
    try:
        store.get(client_id)
        entries = log.for_client(client_id, limit=limit or settings.activity_feed_limit)
    except ClientNotFoundError:
        raise HTTPException(status_code=404, detail="Client not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [ActivityOut(**e.as_dict()) for e in entries]
