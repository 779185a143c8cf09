# routers/narrative_routes.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database import get_db
from middleware.rate_limit import REFRESH_RATE_LIMIT, limiter
from schemas.narrative import (
    BeliefEdgeView,
    BeliefGraph,
    DashboardResponse,
    NarrativeView,
    RefreshResult,
)
from services.narratives.belief_graph import layout_graph
from services.narratives.narrative_refresh_service import NarrativeRefreshError, refresh_narratives
from services.narratives.narrative_service import (
    build_dashboard,
    filter_narratives,
    get_narrative,
    list_belief_edges,
    list_narratives,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[NarrativeView])
async def get_narratives(
    search: str = Query("", max_length=200),
    tag: str = Query("all", max_length=100),
    seed_if_empty: bool = Query(False, description="Generate the initial dataset when the table is empty"),
    db: Session = Depends(get_db),
):
    narratives = list_narratives(db)
    if not narratives and seed_if_empty:
        logger.info("narratives_empty_seeding")
        try:
            await refresh_narratives(db)
        except NarrativeRefreshError as e:
            # the dashboard still renders an empty state
            logger.error("narratives_seed_failed error=%s", e)
        narratives = list_narratives(db, use_cache=False)
    return filter_narratives(narratives, search=search, tag=tag)


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(db: Session = Depends(get_db)):
    return build_dashboard(list_narratives(db))


@router.get("/edges", response_model=List[BeliefEdgeView])
def get_edges(db: Session = Depends(get_db)):
    return list_belief_edges(db)


@router.get("/graph", response_model=BeliefGraph)
def get_graph(db: Session = Depends(get_db)):
    return layout_graph(list_narratives(db), list_belief_edges(db))


@router.post("/refresh", response_model=RefreshResult)
@limiter.limit(REFRESH_RATE_LIMIT)
async def refresh(request: Request, db: Session = Depends(get_db)):
    """
    Regenerate narratives and belief edges from the LLM.
    Safe to call manually or from a cron job.
    """
    try:
        return await refresh_narratives(db)
    except NarrativeRefreshError as e:
        logger.error("narrative_refresh_failed error=%s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("/{narrative_id}", response_model=NarrativeView)
def get_one(narrative_id: str, db: Session = Depends(get_db)):
    narrative = get_narrative(db, narrative_id)
    if narrative is None:
        raise HTTPException(status_code=404, detail="Narrative not found")
    return narrative
