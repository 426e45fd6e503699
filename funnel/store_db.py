"""
funnel.store_db
===============

SQLite‑backed implementations of the :pymod:`funnel.store` interfaces.

These adapters wrap the CRUD helpers in :pymod:`funnel.db` so the
transition policy can switch from the in‑memory stores to a persistent
database without changing its calls.  Every SQLAlchemy failure is rolled
back and surfaced as :class:`funnel.errors.PersistenceError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from funnel.db import (
    SessionLocal,
    all_clients,
    client_activity,
    clients_in_stage,
    get_client,
    insert_activity,
    set_client_stage,
    upsert_client,
)
from funnel.errors import ClientNotFoundError, PersistenceError
from funnel.models import ActivityEntry, Client, Stage
from funnel.store import DEFAULT_FEED_LIMIT

logger = logging.getLogger(__name__)


class _SessionBacked:
    """Shared session handling for the DB adapters."""

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session = session or SessionLocal()

    @contextmanager
    def _guard(self, what: str):
        try:
            yield self._session
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("Database error during %s: %s", what, exc)
            raise PersistenceError(f"{what} failed: {exc}") from exc

    # ----------------------------------------------------- context manager
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._session.close()


class DBClientStore(_SessionBacked):
    """
    Drop‑in replacement for :class:`funnel.store.InMemoryClientStore`.

    Methods mirror the in‑memory store:
    * add(client)
    * get(client_id)
    * update_stage(client_id, stage)
    * find_by_stage(stage)
    * iteration / len()
    """

    # ------------------------------------------------------------------ CRUD
    def add(self, client: Client) -> None:
        with self._guard("client insert") as s:
            upsert_client(s, client)

    def get(self, client_id: str) -> Client:
        with self._guard("client lookup") as s:
            client = get_client(s, client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    def update_stage(self, client_id: str, stage: Stage) -> None:
        with self._guard("stage update") as s:
            found = set_client_stage(s, client_id, stage)
        if not found:
            raise ClientNotFoundError(client_id)

    def find_by_stage(self, stage: Stage) -> List[Client]:
        with self._guard("stage query") as s:
            return clients_in_stage(s, stage)

    # ------------------------------------------------------ dunder helpers
    def __iter__(self) -> Iterator[Client]:
        with self._guard("client listing") as s:
            rows = all_clients(s)
        yield from rows

    def __len__(self) -> int:
        with self._guard("client count") as s:
            return len(all_clients(s))


class DBActivityLog(_SessionBacked):
    """Append‑only activity log stored in the ``activity_log`` table."""

    def append(self, entry: ActivityEntry) -> None:
        with self._guard("activity append") as s:
            insert_activity(s, entry)

    def for_client(self, client_id: str, limit: int = DEFAULT_FEED_LIMIT) -> List[ActivityEntry]:
        with self._guard("activity query") as s:
            return client_activity(s, client_id, limit)
