"""
tests/test_store_db.py
======================

Integration‑style tests for the SQLite‑backed stores.

These mirror `test_store.py` and `test_lifecycle.py` but use DBClientStore
and DBActivityLog to check persistence and API parity with the in‑memory
versions.  Each test gets its own in‑memory database (see ``db_engine``).
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from api import deps
from funnel.db import SessionLocal, create_all, make_engine
from funnel.errors import ActivityLogError, ClientNotFoundError, PersistenceError
from funnel.lifecycle import StageTransitionPolicy
from funnel.models import Client, Stage
from funnel.store import pipeline_counts
from funnel.store_db import DBActivityLog, DBClientStore


@pytest.fixture
def stores(db_engine):
    clients = DBClientStore(SessionLocal(db_engine))
    activity = DBActivityLog(SessionLocal(db_engine))
    clients.add(Client("Foo UAB", "Jonas", "jonas@foo.lt", id="c1", tags=["retail"]))
    yield clients, activity
    clients.__exit__(None, None, None)
    activity.__exit__(None, None, None)


def test_add_and_get_roundtrip(stores):
    clients, _ = stores
    c = clients.get("c1")
    assert c.company_name == "Foo UAB"
    assert c.stage is Stage.LEAD
    assert c.tags == ["retail"]
    assert c.created_at.tzinfo is not None


def test_persistence_across_sessions(db_engine, stores):
    clients, _ = stores
    clients.update_stage("c1", Stage.AUDIT_SCHEDULED)

    with DBClientStore(SessionLocal(db_engine)) as fresh:
        assert fresh.get("c1").stage is Stage.AUDIT_SCHEDULED
        assert len(fresh) == 1


def test_missing_client(stores):
    clients, _ = stores
    with pytest.raises(ClientNotFoundError):
        clients.get("nope")
    with pytest.raises(ClientNotFoundError):
        clients.update_stage("nope", Stage.WON)


def test_find_by_stage_and_counts(stores):
    clients, _ = stores
    clients.add(Client("Bar MB", "Ona", "ona@bar.lt", id="c2", stage=Stage.WON))
    assert [c.id for c in clients.find_by_stage(Stage.WON)] == ["c2"]
    counts = pipeline_counts(clients)
    assert counts["lead"] == 1
    assert counts["won"] == 1


def test_policy_on_db_stores(stores):
    clients, activity = stores
    policy = StageTransitionPolicy(clients, activity)
    policy.apply("c1", "lead", "audit_scheduled", None, "u1")
    policy.apply("c1", "audit_scheduled", "lost", "Went with a competitor", "u1")

    feed = activity.for_client("c1")
    assert [e.to_stage for e in feed] == [Stage.LOST, Stage.AUDIT_SCHEDULED]
    assert feed[0].reason == "Went with a competitor"
    assert feed[1].reason is None
    assert activity.for_client("c1", limit=1) == feed[:1]
    assert clients.get("c1").stage is Stage.LOST


def test_sqlalchemy_error_becomes_persistence_error(stores):
    clients, activity = stores
    boom = OperationalError("UPDATE clients", {}, Exception("database is locked"))
    with patch("funnel.store_db.set_client_stage", side_effect=boom):
        with pytest.raises(PersistenceError):
            clients.update_stage("c1", Stage.AUDIT_SCHEDULED)
    # session is usable again after rollback
    assert clients.get("c1").stage is Stage.LEAD


def test_activity_insert_failure_is_reported(stores):
    clients, activity = stores
    policy = StageTransitionPolicy(clients, activity)
    boom = OperationalError("INSERT INTO activity_log", {}, Exception("disk full"))
    with patch("funnel.store_db.insert_activity", side_effect=boom):
        with pytest.raises(ActivityLogError):
            policy.apply("c1", "lead", "audit_scheduled", None, "u1")
    assert clients.get("c1").stage is Stage.AUDIT_SCHEDULED
    assert activity.for_client("c1") == []


# ---------------------------------------------------------------------------
# Request-scoped sessions (api.deps) under concurrent requests
# ---------------------------------------------------------------------------
@pytest.fixture
def file_engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'funnel.db'}")
    create_all(engine)
    with DBClientStore(SessionLocal(engine)) as seed:
        seed.add(Client("Foo UAB", "Jonas", "jonas@foo.lt", id="c1"))
    yield engine
    engine.dispose()


def _request(sessions, work):
    """Run *work* the way FastAPI resolves one request's dependencies."""
    gen = deps.get_db_session()
    session = next(gen)
    sessions.append(session)
    try:
        return work(deps.get_client_store(session), deps.get_activity_log(session))
    finally:
        gen.close()


def test_each_request_gets_its_own_session(file_engine):
    seen = []
    with patch("api.deps.SessionLocal", lambda: SessionLocal(file_engine)):
        _request(seen, lambda c, a: c.get("c1"))
        _request(seen, lambda c, a: c.get("c1"))
    assert seen[0] is not seen[1]


def test_concurrent_stage_changes_keep_every_entry(file_engine):
    workers, rounds = 6, 5
    seen = []

    def bounce(clients, activity):
        policy = StageTransitionPolicy(clients, activity)
        policy.apply("c1", Stage.LEAD, Stage.AUDIT_SCHEDULED, None, "u1")
        policy.apply("c1", Stage.AUDIT_SCHEDULED, Stage.LEAD, "Rework", "u1")

    def worker():
        for _ in range(rounds):
            _request(seen, bounce)

    with patch("api.deps.SessionLocal", lambda: SessionLocal(file_engine)):
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(worker) for _ in range(workers)]
            for f in futures:
                f.result()  # re-raises anything a worker hit

    assert len({id(s) for s in seen}) == workers * rounds
    with DBActivityLog(SessionLocal(file_engine)) as log:
        assert len(log.for_client("c1", limit=1000)) == workers * rounds * 2
    with DBClientStore(SessionLocal(file_engine)) as store:
        assert store.get("c1").stage in (Stage.LEAD, Stage.AUDIT_SCHEDULED)
