# services/narratives/narrative_service.py
"""
Read side of the narrative store.

Rows come from an LLM-written table, so the JSON columns are loosely shaped:
both camelCase and snake_case keys show up, and lists may be null. The
mappers below normalize everything into the view models in schemas.narrative.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from models.narrative import BeliefEdge, Narrative
from schemas.narrative import (
    AffectedAsset,
    Assumption,
    BeliefEdgeView,
    Confidence,
    DashboardResponse,
    DashboardStats,
    Decay,
    Evidence,
    HistoryPoint,
    NarrativeView,
    RelatedNarratives,
)
from services.cache.cache_backend import cache_delete, cache_get, cache_set
from utils.common_helpers import parse_timestamp, round_half_up, to_float

logger = logging.getLogger(__name__)

NARRATIVES_CACHE_KEY = "narratives:all"
EDGES_CACHE_KEY = "belief_edges:all"
READ_CACHE_TTL_SEC = 5 * 60


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _first_present(d: dict, *keys: str, default: Any) -> Any:
    for key in keys:
        if d.get(key) is not None:
            return d[key]
    return default


def _map_assumption(raw: Any) -> Assumption:
    a = _as_dict(raw)
    return Assumption(
        id=str(a.get("id") or ""),
        text=str(a.get("text") or ""),
        fragility_score=to_float(_first_present(a, "fragilityScore", "fragility_score", default=50), 50),
    )


def _map_evidence(raw: Any) -> Evidence:
    e = _as_dict(raw)
    return Evidence(
        id=str(e.get("id") or ""),
        source=str(e.get("source") or ""),
        description=str(e.get("description") or ""),
        timestamp=parse_timestamp(e.get("timestamp")),
        weight=to_float(_first_present(e, "weight", default=0.5), 0.5),
    )


def _map_asset(raw: Any) -> AffectedAsset:
    a = _as_dict(raw)
    return AffectedAsset(
        ticker=str(a.get("ticker") or ""),
        name=str(a.get("name") or ""),
        exposure_weight=to_float(_first_present(a, "exposureWeight", "exposure_weight", default=0)),
    )


def _map_history(raw: Any) -> HistoryPoint:
    h = _as_dict(raw)
    return HistoryPoint(
        timestamp=parse_timestamp(h.get("timestamp")),
        confidence_score=to_float(_first_present(h, "confidenceScore", "confidence_score", default=50), 50),
        summary=str(h.get("summary") or ""),
    )


def map_narrative_row(row: Narrative) -> NarrativeView:
    return NarrativeView(
        id=row.id,
        name=row.name,
        summary=row.summary,
        confidence=Confidence(
            score=row.confidence_score,
            trend=row.confidence_trend or "flat",
            last_updated=parse_timestamp(row.confidence_last_updated),
        ),
        assumptions=[_map_assumption(a) for a in _as_list(row.assumptions)],
        supporting_evidence=[_map_evidence(e) for e in _as_list(row.supporting_evidence)],
        contradicting_evidence=[_map_evidence(e) for e in _as_list(row.contradicting_evidence)],
        decay=Decay(
            half_life_days=row.decay_half_life_days,
            last_reinforced=parse_timestamp(row.decay_last_reinforced),
        ),
        related_narratives=RelatedNarratives(
            reinforces=list(row.related_reinforces or []),
            conflicts=list(row.related_conflicts or []),
            overlaps=list(row.related_overlaps or []),
        ),
        affected_assets=[_map_asset(a) for a in _as_list(row.affected_assets)],
        history=[_map_history(h) for h in _as_list(row.history)],
        created_at=parse_timestamp(row.created_at),
        tags=list(row.tags or []),
    )


def map_edge_row(row: BeliefEdge) -> BeliefEdgeView:
    return BeliefEdgeView(
        id=row.id,
        from_narrative_id=row.from_narrative_id,
        to_narrative_id=row.to_narrative_id,
        relationship=row.relationship,
        strength=row.strength,
    )


# ── Queries ────────────────────────────────────────────────────────────

def list_narratives(db: Session, *, use_cache: bool = True) -> List[NarrativeView]:
    if use_cache:
        cached = cache_get(NARRATIVES_CACHE_KEY)
        if isinstance(cached, list):
            return [NarrativeView.model_validate(item) for item in cached]

    rows = db.query(Narrative).order_by(Narrative.confidence_score.desc()).all()
    narratives = [map_narrative_row(r) for r in rows]
    logger.info("narratives_loaded count=%d", len(narratives))

    if use_cache and narratives:
        cache_set(
            NARRATIVES_CACHE_KEY,
            [n.model_dump(mode="json", by_alias=True) for n in narratives],
            READ_CACHE_TTL_SEC,
        )
    return narratives


def list_belief_edges(db: Session, *, use_cache: bool = True) -> List[BeliefEdgeView]:
    if use_cache:
        cached = cache_get(EDGES_CACHE_KEY)
        if isinstance(cached, list):
            return [BeliefEdgeView.model_validate(item) for item in cached]

    edges = [map_edge_row(r) for r in db.query(BeliefEdge).all()]
    if use_cache and edges:
        cache_set(
            EDGES_CACHE_KEY,
            [e.model_dump(mode="json", by_alias=True) for e in edges],
            READ_CACHE_TTL_SEC,
        )
    return edges


def get_narrative(db: Session, narrative_id: str) -> Optional[NarrativeView]:
    row = db.get(Narrative, narrative_id)
    return map_narrative_row(row) if row else None


def get_belief_edge(db: Session, edge_id: str) -> Optional[BeliefEdgeView]:
    row = db.get(BeliefEdge, edge_id)
    return map_edge_row(row) if row else None


def narratives_exist(db: Session) -> bool:
    return db.query(Narrative.id).limit(1).first() is not None


def invalidate_narrative_cache() -> None:
    cache_delete(NARRATIVES_CACHE_KEY, EDGES_CACHE_KEY)


# ── Dashboard derivations ──────────────────────────────────────────────

def dashboard_stats(narratives: List[NarrativeView]) -> DashboardStats:
    total = len(narratives)
    avg = round_half_up(sum(n.confidence.score for n in narratives) / total) if total else 0
    return DashboardStats(
        total=total,
        avg_confidence=avg,
        rising=sum(1 for n in narratives if n.confidence.trend == "up"),
        fading=sum(1 for n in narratives if n.confidence.trend == "down"),
        high_fragility=sum(
            1 for n in narratives if any(a.fragility_score > 50 for a in n.assumptions)
        ),
    )


def all_tags(narratives: Iterable[NarrativeView]) -> List[str]:
    seen: dict = {}
    for n in narratives:
        for tag in n.tags:
            seen.setdefault(tag, None)
    return list(seen)


def filter_narratives(
    narratives: List[NarrativeView],
    search: str = "",
    tag: str = "all",
) -> List[NarrativeView]:
    q = (search or "").lower()
    out = []
    for n in narratives:
        matches_search = q in n.name.lower() or q in n.summary.lower()
        matches_tag = tag in ("", "all") or tag in n.tags
        if matches_search and matches_tag:
            out.append(n)
    return out


def build_dashboard(narratives: List[NarrativeView]) -> DashboardResponse:
    return DashboardResponse(stats=dashboard_stats(narratives), tags=all_tags(narratives))
