# services/narratives/narrative_refresh_service.py
"""
Regenerate the narrative dataset with the LLM and write it to the store.

Safe to call manually or from a cron job: narratives are upserted on id and
the edge set is replaced wholesale.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.narrative import BeliefEdge, Narrative
from schemas.narrative import RefreshResult
from services.ai.llm_service import LLMClient, LLMProviderError, get_llm_service
from services.helpers.json_helpers import extract_json_object
from services.narratives.narrative_service import invalidate_narrative_cache, narratives_exist
from services.narratives.refresh_prompts import build_refresh_prompt
from utils.common_helpers import to_float, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TREND = "flat"
DEFAULT_HALF_LIFE_DAYS = 30
DEFAULT_EDGE_STRENGTH = 0.5


class NarrativeRefreshError(RuntimeError):
    pass


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NarrativeRefreshError(f"Unsupported database dialect for upsert: {dialect}")


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _str_list(value: Any) -> List[str]:
    return [str(v) for v in _list(value) if v is not None]


def narrative_values(raw: Dict[str, Any], now: datetime) -> Optional[Dict[str, Any]]:
    nid = str(raw.get("id") or "").strip()
    name = str(raw.get("name") or "").strip()
    if not nid or not name:
        return None

    score = raw.get("confidence_score")
    score = 50 if score is None else max(0, min(100, int(round(to_float(score, 50)))))

    return {
        "id": nid,
        "name": name,
        "summary": str(raw.get("summary") or ""),
        "confidence_score": score,
        "confidence_trend": raw.get("confidence_trend") or DEFAULT_TREND,
        "confidence_last_updated": now,
        "assumptions": _list(raw.get("assumptions")),
        "supporting_evidence": _list(raw.get("supporting_evidence")),
        "contradicting_evidence": _list(raw.get("contradicting_evidence")),
        "decay_half_life_days": int(to_float(raw.get("decay_half_life_days"))) or DEFAULT_HALF_LIFE_DAYS,
        "decay_last_reinforced": now,
        "related_reinforces": _str_list(raw.get("related_reinforces")),
        "related_conflicts": _str_list(raw.get("related_conflicts")),
        "related_overlaps": _str_list(raw.get("related_overlaps")),
        "affected_assets": _list(raw.get("affected_assets")),
        "history": _list(raw.get("history")),
        "tags": _str_list(raw.get("tags")),
    }


def edge_values(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    eid = str(raw.get("id") or "").strip()
    src = str(raw.get("from_narrative_id") or "").strip()
    dst = str(raw.get("to_narrative_id") or "").strip()
    relationship = str(raw.get("relationship") or "").strip()
    if not (eid and src and dst and relationship):
        return None
    return {
        "id": eid,
        "from_narrative_id": src,
        "to_narrative_id": dst,
        "relationship": relationship,
        "strength": to_float(raw.get("strength")) or DEFAULT_EDGE_STRENGTH,
    }


def _upsert_narratives(db: Session, items: List[Any], now: datetime) -> int:
    insert = _insert_for(db)
    written = 0
    for raw in items:
        try:
            values = narrative_values(raw, now) if isinstance(raw, dict) else None
        except (ValueError, OverflowError):
            logger.warning("narrative_refresh_skipped_row reason=bad_values")
            continue
        if values is None:
            logger.warning("narrative_refresh_skipped_row reason=missing_id_or_name")
            continue
        stmt = insert(Narrative).values(**values)
        update = {k: stmt.excluded[k] for k in values if k != "id"}
        update["updated_at"] = func.now()
        try:
            with db.begin_nested():
                db.execute(stmt.on_conflict_do_update(index_elements=["id"], set_=update))
            written += 1
        except (SQLAlchemyError, OverflowError):
            # OverflowError: driver rejects ints the column can't hold
            logger.exception("narrative_upsert_failed id=%s", values["id"])
    return written


def _replace_edges(db: Session, items: List[Any]) -> int:
    db.query(BeliefEdge).delete(synchronize_session=False)

    known = {nid for (nid,) in db.query(Narrative.id).all()}
    insert = _insert_for(db)
    written = 0
    for raw in items:
        values = edge_values(raw) if isinstance(raw, dict) else None
        if values is None:
            logger.warning("edge_refresh_skipped_row reason=missing_fields")
            continue
        if values["from_narrative_id"] not in known or values["to_narrative_id"] not in known:
            logger.warning("edge_refresh_skipped_row id=%s reason=unknown_narrative", values["id"])
            continue
        stmt = insert(BeliefEdge).values(**values)
        try:
            with db.begin_nested():
                db.execute(
                    stmt.on_conflict_do_update(
                        index_elements=["id"],
                        set_={k: stmt.excluded[k] for k in values if k != "id"},
                    )
                )
            written += 1
        except SQLAlchemyError:
            logger.exception("edge_upsert_failed id=%s", values["id"])
    return written


async def refresh_narratives(db: Session, llm: Optional[LLMClient] = None) -> RefreshResult:
    llm = llm or get_llm_service()
    update_existing = narratives_exist(db)
    prompt = build_refresh_prompt(update_existing=update_existing)
    logger.info("narrative_refresh_started mode=%s", "update" if update_existing else "initial")

    try:
        content = await llm.complete(prompt=prompt)
    except LLMProviderError as e:
        raise NarrativeRefreshError(str(e)) from e
    except RuntimeError as e:
        # client not configured, e.g. OPENAI_API_KEY unset
        logger.error("narrative_refresh_unavailable error=%s", e)
        raise NarrativeRefreshError(str(e)) from e

    try:
        parsed = extract_json_object(content)
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        logger.error("narrative_refresh_bad_json length=%d", len(content or ""))
        raise NarrativeRefreshError(f"Could not parse AI response: {e}") from e

    narratives = _list(parsed.get("narratives"))
    edges = _list(parsed.get("edges"))
    logger.info("narrative_refresh_parsed narratives=%d edges=%d", len(narratives), len(edges))

    now = utcnow()
    try:
        written_narratives = _upsert_narratives(db, narratives, now)
        written_edges = _replace_edges(db, edges)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("narrative_refresh_write_failed")
        raise NarrativeRefreshError("Failed to write narratives") from e

    invalidate_narrative_cache()
    logger.info(
        "narrative_refresh_finished narratives_written=%d edges_written=%d",
        written_narratives, written_edges,
    )
    return RefreshResult(success=True, narratives=len(narratives), edges=len(edges))
