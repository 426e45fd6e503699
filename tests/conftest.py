"""
Pytest configuration: make sure `import funnel` works regardless of
where pytest is invoked, and provide fresh stores for each test.

It prepends the project root (one directory above *tests/*) to
``sys.path`` **before** any tests are collected.
"""

import sys
from pathlib import Path

import pytest

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from funnel.models import Client  # noqa: E402
from funnel.store import InMemoryActivityLog, InMemoryClientStore  # noqa: E402


@pytest.fixture
def clients():
    store = InMemoryClientStore()
    store.add(Client("Foo UAB", "Jonas Jonaitis", "jonas@foo.lt", id="c1"))
    return store


@pytest.fixture
def activity():
    return InMemoryActivityLog()


@pytest.fixture
def db_engine():
    """Private in‑memory SQLite database with the schema created."""
    from funnel.db import create_all, make_engine

    engine = make_engine("sqlite://")
    create_all(engine)
    yield engine
    engine.dispose()

