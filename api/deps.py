"""
api.deps
========

FastAPI dependency providers.

Every request gets its own SQLModel ``Session`` from :func:`get_db_session`;
both DB‑backed stores for that request share it and it is closed once the
response is produced.  Sessions are never shared between the worker
threads FastAPI runs sync endpoints on.  Tests swap the stores out through
``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Iterator

from fastapi import BackgroundTasks, Depends, Header
from sqlmodel import Session

from funnel.db import SessionLocal
from funnel.lifecycle import StageTransitionPolicy
from funnel.notify import SlackStageNotifier
from funnel.settings import settings
from funnel.store import ActivityLog, ClientStore
from funnel.store_db import DBActivityLog, DBClientStore


@lru_cache
def get_settings():
    """Return application settings."""
    return settings


def get_db_session() -> Iterator[Session]:
    """Request‑scoped session, closed after the response."""
    with SessionLocal() as session:
        yield session


def get_client_store(session: Session = Depends(get_db_session)) -> ClientStore:
    """DB‑backed client store bound to this request's session."""
    return DBClientStore(session)


def get_activity_log(session: Session = Depends(get_db_session)) -> ActivityLog:
    """DB‑backed activity log bound to this request's session."""
    return DBActivityLog(session)


def get_policy(
    background_tasks: BackgroundTasks,
    clients: ClientStore = Depends(get_client_store),
    activity: ActivityLog = Depends(get_activity_log),
    settings=Depends(get_settings),
) -> StageTransitionPolicy:
    """
    Transition policy wired to the request's stores.

    When a Slack webhook is configured the message is built during the
    request and posted as a background task after the response.
    """
    notifier = None
    if settings.slack_webhook_url:
        notifier = SlackStageNotifier(
            settings.slack_webhook_url,
            clients=clients,
            timeout=settings.slack_timeout,
            schedule=background_tasks.add_task,
        )
    return StageTransitionPolicy(clients, activity, notifier=notifier)


def get_acting_user(x_user_id: str = Header(..., min_length=1)) -> str:
    """
    Id of the operator making the change.

    Authentication happens upstream; this layer only reads the ``X-User-Id``
    header the admin front‑end forwards.
    """
    return x_user_id
