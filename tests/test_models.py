"""
tests/test_models.py
====================

Unit tests for the dataclasses and enums defined in funnel.models.

Run:  pytest -q
"""

import dataclasses

import pytest

from funnel.models import (
    CANONICAL_ORDER,
    OFF_PIPELINE,
    ActivityEntry,
    Client,
    Stage,
    stage_index,
)


def test_default_stage_is_lead():
    """New client starts at LEAD."""
    c = Client("Foo UAB", "Jonas", "jonas@foo.lt")
    assert c.stage is Stage.LEAD


def test_stage_string_is_coerced():
    c = Client("Foo UAB", "Jonas", "jonas@foo.lt", stage="negotiation")
    assert c.stage is Stage.NEGOTIATION


def test_blank_company_name_raises():
    with pytest.raises(ValueError):
        Client("   ", "Jonas", "jonas@foo.lt")


def test_str_on_stage():
    """Enum __str__ returns its wire value."""
    assert str(Stage.AUDIT_SCHEDULED) == "audit_scheduled"
    assert Stage.AUDIT_SCHEDULED.label == "Audit Scheduled"


def test_canonical_order_excludes_off_pipeline():
    assert CANONICAL_ORDER[0] is Stage.LEAD
    assert CANONICAL_ORDER[-1] is Stage.WON
    assert len(CANONICAL_ORDER) == 9
    assert not OFF_PIPELINE & set(CANONICAL_ORDER)
    assert set(CANONICAL_ORDER) | OFF_PIPELINE == set(Stage)


def test_stage_index():
    assert stage_index(Stage.LEAD) == 0
    assert stage_index(Stage.WON) == 8
    assert stage_index(Stage.LOST) is None
    assert stage_index(Stage.ON_HOLD) is None
    assert not Stage.ON_HOLD.is_canonical


def test_activity_entry_is_immutable():
    e = ActivityEntry("c1", "u1", Stage.LEAD, Stage.AUDIT_SCHEDULED)
    assert e.action == "stage_changed"
    assert e.reason is None
    with pytest.raises(dataclasses.FrozenInstanceError):
        e.reason = "edited"


def test_activity_entry_as_dict():
    e = ActivityEntry("c1", "u1", Stage.NEGOTIATION, Stage.LOST, reason="Budget cut")
    d = e.as_dict()
    assert d["from_stage"] == "negotiation"
    assert d["to_stage"] == "lost"
    assert d["reason"] == "Budget cut"
    assert d["timestamp"].endswith("+00:00")
