"""
funnel.store
============

Storage interfaces used by the transition policy, plus in‑memory
implementations.

The in‑memory versions only use the standard library so the policy can be
unit‑tested without a database; :pymod:`funnel.store_db` provides the
SQLite‑backed equivalents with the same public surface.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Protocol

from .errors import ClientNotFoundError
from .models import ActivityEntry, Client, Stage

DEFAULT_FEED_LIMIT = 20


class ClientStore(Protocol):
    """CRUD surface the policy needs from the client database."""

    def add(self, client: Client) -> None: ...
    def get(self, client_id: str) -> Client: ...
    def update_stage(self, client_id: str, stage: Stage) -> None: ...
    def find_by_stage(self, stage: Stage) -> List[Client]: ...
    def __iter__(self) -> Iterator[Client]: ...
    def __len__(self) -> int: ...


class ActivityLog(Protocol):
    """Append‑only event store; entries are never updated or deleted."""

    def append(self, entry: ActivityEntry) -> None: ...
    def for_client(self, client_id: str, limit: int = DEFAULT_FEED_LIMIT) -> List[ActivityEntry]: ...


def pipeline_counts(clients: Iterable[Client]) -> Dict[str, int]:
    """Number of clients per stage; every stage appears, zeros included."""
    counts: Dict[str, int] = {s.value: 0 for s in Stage}
    for c in clients:
        counts[c.stage.value] += 1
    return counts


class InMemoryClientStore:
    """
    Dictionary‑backed client registry.

    Example
    -------
    >>> store = InMemoryClientStore()
    >>> store.add(Client("Foo UAB", "Jonas", "jonas@foo.lt", id="c1"))
    >>> store.update_stage("c1", Stage.AUDIT_SCHEDULED)
    >>> store.get("c1").stage
    <Stage.AUDIT_SCHEDULED: 'audit_scheduled'>
    """

    def __init__(self) -> None:
        self._clients: Dict[str, Client] = {}

    def add(self, client: Client) -> None:
        """Insert or overwrite a client."""
        self._clients[client.id] = client

    def get(self, client_id: str) -> Client:
        try:
            return self._clients[client_id]
        except KeyError:
            raise ClientNotFoundError(client_id) from None

    def update_stage(self, client_id: str, stage: Stage) -> None:
        client = self.get(client_id)
        client.stage = stage
        client.updated_at = datetime.now(timezone.utc)

    def find_by_stage(self, stage: Stage) -> List[Client]:
        """Return all clients currently at the given stage."""
        return [c for c in self._clients.values() if c.stage == stage]

    def __iter__(self) -> Iterator[Client]:
        return iter(self._clients.values())

    def __len__(self) -> int:
        return len(self._clients)


class InMemoryActivityLog:
    """List‑backed activity log, oldest entry first."""

    def __init__(self) -> None:
        self._entries: List[ActivityEntry] = []

    def append(self, entry: ActivityEntry) -> None:
        self._entries.append(entry)

    def for_client(self, client_id: str, limit: int = DEFAULT_FEED_LIMIT) -> List[ActivityEntry]:
        """Newest first, at most *limit* entries."""
        hits = [e for e in reversed(self._entries) if e.client_id == client_id]
        return hits[:limit]

    def __iter__(self) -> Iterator[ActivityEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
