"""
Funnel
======

Pipeline core of the consultancy's internal CRM: the client stage catalogue,
the transition policy that decides when an operator must justify a move,
and the append‑only activity log every accepted move is written to.

Import structure
----------------
`import funnel` is intentionally cheap: only the stdlib-based sub‑modules
are imported by default.  The SQLite adapters (*sqlmodel*) and the Slack
notifier (*requests*) are only imported when you explicitly access
:pymod:`funnel.store_db` or :pymod:`funnel.notify`.

Sub‑modules
~~~~~~~~~~~
- :pymod:`funnel.models`     – ``Client``, ``ActivityEntry`` dataclasses + :class:`~funnel.models.Stage` enum
- :pymod:`funnel.lifecycle`  – ``classify`` and ``StageTransitionPolicy``
- :pymod:`funnel.store`      – store interfaces and in‑memory implementations
- :pymod:`funnel.store_db`   – SQLite‑backed stores
- :pymod:`funnel.notify`     – Slack pipeline notifications

Quick start
-----------
>>> from funnel.lifecycle import StageTransitionPolicy
>>> from funnel.models import Client
>>> from funnel.store import InMemoryActivityLog, InMemoryClientStore
>>> clients, log = InMemoryClientStore(), InMemoryActivityLog()
>>> clients.add(Client("Foo UAB", "Jonas", "jonas@foo.lt", id="c1"))
>>> policy = StageTransitionPolicy(clients, log)
>>> policy.apply("c1", "lead", "audit_scheduled", None, "u1").reason is None
True
"""

__all__ = [
    "models",
    "errors",
    "lifecycle",
    "store",
    "store_db",
    "notify",
]

__version__ = "0.1.0"
