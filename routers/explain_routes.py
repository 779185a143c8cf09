# routers/explain_routes.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from database import get_db
from middleware.rate_limit import EXPLAIN_RATE_LIMIT, limiter
from schemas.explain import ExplainRequest, HoldingExplainRequest
from services.ai.explain.explain_prompts import (
    asset_exposure_request,
    edge_request,
    evidence_request,
    holding_request,
    node_request,
)
from services.ai.explain.explain_service import (
    SSE_HEADERS,
    open_explanation_stream,
    provider_error_message,
)
from services.ai.llm_service import LLMProviderError
from services.narratives.belief_graph import edge_endpoints
from services.narratives.narrative_service import (
    get_belief_edge,
    get_narrative,
    list_belief_edges,
    list_narratives,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _stream(req: ExplainRequest):
    try:
        body = await open_explanation_stream(req)
    except LLMProviderError as e:
        status = e.status_code if e.status_code in (402, 429) else 500
        return JSONResponse(status_code=status, content={"error": provider_error_message(e.status_code)})
    except RuntimeError as e:
        # missing OPENAI_API_KEY and friends
        logger.error("explain_unavailable type=%s error=%s", req.type, e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return StreamingResponse(body, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/explain")
@limiter.limit(EXPLAIN_RATE_LIMIT)
async def explain(request: Request, req: ExplainRequest):
    return await _stream(req)


@router.post("/explain/narratives/{narrative_id}/assets/{ticker}")
@limiter.limit(EXPLAIN_RATE_LIMIT)
async def explain_asset_exposure(request: Request, narrative_id: str, ticker: str, db: Session = Depends(get_db)):
    narrative = get_narrative(db, narrative_id)
    if narrative is None:
        raise HTTPException(status_code=404, detail="Narrative not found")
    asset = next((a for a in narrative.affected_assets if a.ticker.upper() == ticker.upper()), None)
    if asset is None:
        raise HTTPException(status_code=404, detail="Asset not linked to this narrative")
    return await _stream(asset_exposure_request(narrative, asset))


@router.post("/explain/narratives/{narrative_id}/evidence/{evidence_id}")
@limiter.limit(EXPLAIN_RATE_LIMIT)
async def explain_evidence(request: Request, narrative_id: str, evidence_id: str, db: Session = Depends(get_db)):
    narrative = get_narrative(db, narrative_id)
    if narrative is None:
        raise HTTPException(status_code=404, detail="Narrative not found")
    evidence = next(
        (e for e in narrative.supporting_evidence + narrative.contradicting_evidence if e.id == evidence_id),
        None,
    )
    if evidence is None:
        raise HTTPException(status_code=404, detail="Evidence not found")
    return await _stream(evidence_request(narrative, evidence))


@router.post("/explain/holdings")
@limiter.limit(EXPLAIN_RATE_LIMIT)
async def explain_holding(request: Request, req: HoldingExplainRequest, db: Session = Depends(get_db)):
    ticker = req.ticker.strip().upper()
    return await _stream(holding_request(ticker, req.name or ticker, list_narratives(db)))


@router.post("/explain/graph/nodes/{narrative_id}")
@limiter.limit(EXPLAIN_RATE_LIMIT)
async def explain_graph_node(request: Request, narrative_id: str, db: Session = Depends(get_db)):
    narratives = list_narratives(db)
    narrative = next((n for n in narratives if n.id == narrative_id), None)
    if narrative is None:
        raise HTTPException(status_code=404, detail="Narrative not found")
    return await _stream(node_request(narrative, list_belief_edges(db), narratives))


@router.post("/explain/graph/edges/{edge_id}")
@limiter.limit(EXPLAIN_RATE_LIMIT)
async def explain_graph_edge(request: Request, edge_id: str, db: Session = Depends(get_db)):
    edge = get_belief_edge(db, edge_id)
    if edge is None:
        raise HTTPException(status_code=404, detail="Edge not found")
    endpoints = edge_endpoints(edge, list_narratives(db))
    if endpoints is None:
        raise HTTPException(status_code=404, detail="Edge endpoints not found")
    return await _stream(edge_request(edge, *endpoints))
