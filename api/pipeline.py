"""
api.pipeline
============

Pipeline‑wide read endpoints: stage counts for the Kanban header and the
transition classifier the front‑end calls before a stage change.
"""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from funnel.errors import PersistenceError
from funnel.lifecycle import classify
from funnel.models import CANONICAL_ORDER, OFF_PIPELINE, Stage, TransitionClass
from funnel.store import ClientStore, pipeline_counts
from api.deps import get_client_store

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


class Classification(BaseModel):
    from_stage: Stage
    to_stage: Stage
    transition: TransitionClass
    requires_reason: bool


# ---------- GET /pipeline/stages ----------
@router.get("/stages")
def list_stages():
    """Canonical order plus the off‑pipeline stages, with labels."""
    return {
        "canonical": [{"id": s.value, "label": s.label} for s in CANONICAL_ORDER],
        "off_pipeline": [{"id": s.value, "label": s.label}
                         for s in sorted(OFF_PIPELINE, key=lambda s: s.value)],
    }


# ---------- GET /pipeline/counts ----------
@router.get("/counts", response_model=Dict[str, int])
def stage_counts(store: ClientStore = Depends(get_client_store)):
    try:
        return pipeline_counts(store)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


# ---------- GET /pipeline/classify ----------
@router.get("/classify", response_model=Classification)
def classify_transition(
    from_stage: Stage = Query(..., description="Current stage"),
    to_stage: Stage = Query(..., description="Requested stage"),
):
    """Tell the caller whether the move needs an override reason."""
    try:
        result = classify(from_stage, to_stage)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return Classification(
        from_stage=from_stage,
        to_stage=to_stage,
        transition=result,
        requires_reason=result is TransitionClass.REQUIRES_REASON,
    )
