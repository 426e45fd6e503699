"""
funnel.db
=========

SQLite persistence layer for Funnel.

This module exposes:

* ``engine`` – a global SQLModel engine pointing at ``settings.DB_URL``
* ``SessionLocal`` – a session factory used via ``with SessionLocal() as s:``
* ``ClientDB`` / ``ActivityEntryDB`` – table models mirroring
  :class:`funnel.models.Client` and :class:`funnel.models.ActivityEntry`
* ``create_all()`` – helper to create tables at first run
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from funnel.models import ActivityEntry, Client, Stage
from funnel.settings import DB_ECHO, DB_URL


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def make_engine(url: str = DB_URL, echo: bool = DB_ECHO) -> Engine:
    """
    Build an engine for *url*.

    ``sqlite://`` (in‑memory) gets a single shared connection so every
    session sees the same database; handy for tests.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = make_engine()


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def SessionLocal(bind: Engine | None = None) -> Session:  # noqa: N802 (factory camel‑case for consistency with FastAPI docs)
    """Return a new Session bound to *bind* or the global engine."""
    return Session(bind or engine)


def _aware(ts: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# ORM models
# ---------------------------------------------------------------------------
class ClientDB(SQLModel, table=True):
    """SQLite‑backed representation of a :class:`funnel.models.Client`."""

    __tablename__ = "clients"

    id: str = Field(primary_key=True, index=True)
    company_name: str
    contact_name: str
    email: str
    phone: Optional[str] = None
    stage: Stage = Field(default=Stage.LEAD, index=True)
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime
    updated_at: datetime

    # ---------------------------------------------------------------------
    # Converters
    # ---------------------------------------------------------------------
    @classmethod
    def from_client(cls, c: Client) -> "ClientDB":
        """Create a DB row from an in‑memory client."""
        return cls(
            id=c.id,
            company_name=c.company_name,
            contact_name=c.contact_name,
            email=c.email,
            phone=c.phone,
            stage=c.stage,
            assigned_to=c.assigned_to,
            notes=c.notes,
            tags=list(c.tags),
            created_at=c.created_at,
            updated_at=c.updated_at,
        )

    def to_client(self) -> Client:
        """Convert the DB row back into a plain Client."""
        return Client(
            id=self.id,
            company_name=self.company_name,
            contact_name=self.contact_name,
            email=self.email,
            phone=self.phone,
            stage=Stage(self.stage),
            assigned_to=self.assigned_to,
            notes=self.notes,
            tags=list(self.tags or []),
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class ActivityEntryDB(SQLModel, table=True):
    """
    One row per recorded stage change.

    *seq* is an autoincrement key giving a stable insertion order; *id* is
    the entry's public identifier.
    """

    __tablename__ = "activity_log"

    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(index=True, unique=True)
    client_id: str = Field(index=True)
    acting_user_id: str
    action: str = "stage_changed"
    from_stage: Stage
    to_stage: Stage
    reason: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_entry(cls, e: ActivityEntry) -> "ActivityEntryDB":
        return cls(
            id=e.id,
            client_id=e.client_id,
            acting_user_id=e.acting_user_id,
            action=e.action,
            from_stage=e.from_stage,
            to_stage=e.to_stage,
            reason=e.reason,
            timestamp=e.timestamp,
        )

    def to_entry(self) -> ActivityEntry:
        return ActivityEntry(
            id=self.id,
            client_id=self.client_id,
            acting_user_id=self.acting_user_id,
            action=self.action,
            from_stage=Stage(self.from_stage),
            to_stage=Stage(self.to_stage),
            reason=self.reason,
            timestamp=_aware(self.timestamp),
        )


# ---------------------------------------------------------------------------
# Convenience CRUD helpers
# ---------------------------------------------------------------------------
def upsert_client(s: Session, c: Client) -> None:
    """Insert or update a client row."""
    s.merge(ClientDB.from_client(c))
    s.commit()


def get_client(s: Session, client_id: str) -> Client | None:
    """Return a client by id or *None* if missing."""
    row = s.get(ClientDB, client_id)
    return row.to_client() if row else None


def set_client_stage(s: Session, client_id: str, stage: Stage) -> bool:
    """Update the stage column; ``False`` if the client does not exist."""
    row = s.get(ClientDB, client_id)
    if row is None:
        return False
    row.stage = stage
    row.updated_at = datetime.now(timezone.utc)
    s.add(row)
    s.commit()
    return True


def all_clients(s: Session) -> list[Client]:
    """Return every client in the database."""
    rows = s.exec(select(ClientDB)).all()
    return [row.to_client() for row in rows]


def clients_in_stage(s: Session, stage: Stage) -> list[Client]:
    rows = s.exec(select(ClientDB).where(ClientDB.stage == stage)).all()
    return [row.to_client() for row in rows]


def insert_activity(s: Session, e: ActivityEntry) -> None:
    """Append an activity row; rows are never updated afterwards."""
    s.add(ActivityEntryDB.from_entry(e))
    s.commit()


def client_activity(s: Session, client_id: str, limit: int) -> list[ActivityEntry]:
    """Newest‑first activity for one client."""
    stmt = (
        select(ActivityEntryDB)
        .where(ActivityEntryDB.client_id == client_id)
        .order_by(ActivityEntryDB.seq.desc())
        .limit(limit)
    )
    return [row.to_entry() for row in s.exec(stmt).all()]


# ---------------------------------------------------------------------------
# Utility: create tables
# ---------------------------------------------------------------------------
def create_all(bind: Engine | None = None) -> None:
    """Create all tables for imported SQLModel subclasses."""
    SQLModel.metadata.create_all(bind or engine)


# ---------------------------------------------------------------------------
# Lightweight CLI
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    """
    Quick bootstrap helper.

    Examples
    --------
    $ python -m funnel.db --create        # first‑time table creation
    """
    import argparse
    import logging

    from funnel.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        prog="python -m funnel.db",
        description="Funnel DB utilities",
    )
    parser.add_argument("--create", action="store_true", help="create tables")
    args = parser.parse_args()

    configure_logging()
    if args.create:
        create_all()
        logging.getLogger("funnel.db").info("Schema initialised at %s", DB_URL)
    else:
        parser.print_help()
