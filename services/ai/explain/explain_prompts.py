# services/ai/explain/explain_prompts.py
from __future__ import annotations

from typing import List

from schemas.explain import ExplainRequest
from schemas.narrative import AffectedAsset, BeliefEdgeView, Evidence, NarrativeView
from services.portfolio.exposure_service import holding_connections_context
from utils.common_helpers import pct

SYSTEM_PROMPT = """
You are a market narrative analyst explaining belief-driven market themes to an investor.

You must NOT:
- give personalised financial advice or price targets
- invent data that is not in the request

You MUST:
- explain the causal mechanism in plain English
- stay under 200 words
- use short paragraphs or a few bullet points, no headings
""".strip()


def _fmt_weight(weight: float | None) -> str:
    if weight is None:
        return "unknown"
    sign = "+" if weight > 0 else ""
    return f"{sign}{pct(weight)}%"


def build_user_prompt(req: ExplainRequest) -> str:
    narrative = req.narrativeName or "this narrative"
    summary = f"\nNarrative summary: {req.narrativeSummary}" if req.narrativeSummary else ""
    context = f"\nAdditional context: {req.context}" if req.context else ""

    if req.type == "asset_exposure":
        asset = req.assetName or req.assetTicker or "this asset"
        return (
            f'Explain why {asset} ({req.assetTicker or "n/a"}) has {_fmt_weight(req.exposureWeight)} '
            f'exposure to the "{narrative}" narrative.{summary}{context}\n'
            "Cover the transmission channel, what would strengthen or weaken the link, "
            "and the key risk if the narrative breaks."
        )

    if req.type == "evidence":
        return (
            f'Explain how this piece of evidence bears on the "{narrative}" narrative.{summary}\n'
            f"Evidence source: {req.evidenceSource or 'unknown'}\n"
            f"Evidence: {req.evidenceDescription or 'n/a'}{context}\n"
            "Say whether it is strong or weak evidence and why."
        )

    if req.type == "portfolio_analysis":
        asset = req.assetName or req.assetTicker or "this position"
        return (
            f"Analyse the narrative exposure of the position {asset} ({req.assetTicker or 'n/a'}).{context}\n"
            "Explain which narratives drive it, where they agree or pull in opposite directions, "
            "and what the position implicitly assumes."
        )

    if req.type == "belief_graph_node":
        return (
            f'Explain the "{narrative}" narrative and its place in the belief graph.{summary}{context}\n'
            "Describe what reinforces it, what conflicts with it, and what would change its confidence."
        )

    # belief_graph_edge
    return (
        f"Explain this relationship between two market narratives.{context}\n"
        "Describe the mechanism linking them and how strong the link really is."
    )


# ── Request builders for dashboard interactions ────────────────────────

def asset_exposure_request(narrative: NarrativeView, asset: AffectedAsset) -> ExplainRequest:
    return ExplainRequest(
        type="asset_exposure",
        narrativeName=narrative.name,
        narrativeSummary=narrative.summary,
        assetTicker=asset.ticker,
        assetName=asset.name,
        exposureWeight=asset.exposure_weight,
    )


def evidence_request(narrative: NarrativeView, evidence: Evidence) -> ExplainRequest:
    return ExplainRequest(
        type="evidence",
        narrativeName=narrative.name,
        narrativeSummary=narrative.summary,
        evidenceSource=evidence.source,
        evidenceDescription=evidence.description,
    )


def holding_request(ticker: str, name: str, narratives: List[NarrativeView]) -> ExplainRequest:
    return ExplainRequest(
        type="portfolio_analysis",
        assetTicker=ticker,
        assetName=name,
        context=holding_connections_context(ticker, narratives),
    )


def node_context(narrative: NarrativeView, edges: List[BeliefEdgeView], narratives: List[NarrativeView]) -> str:
    names = {n.id: n.name for n in narratives}
    parts = []
    for e in edges:
        if narrative.id not in (e.from_narrative_id, e.to_narrative_id):
            continue
        other_id = e.to_narrative_id if e.from_narrative_id == narrative.id else e.from_narrative_id
        parts.append(f'{e.relationship} "{names.get(other_id) or other_id}"')
    connections = ", ".join(parts) or "None"
    return (
        f"Connections: {connections}. Confidence: {narrative.confidence.score}%, "
        f"trend: {narrative.confidence.trend}. Tags: {', '.join(narrative.tags)}."
    )


def node_request(narrative: NarrativeView, edges: List[BeliefEdgeView], narratives: List[NarrativeView]) -> ExplainRequest:
    return ExplainRequest(
        type="belief_graph_node",
        narrativeName=narrative.name,
        narrativeSummary=narrative.summary,
        context=node_context(narrative, edges, narratives),
    )


def edge_context(edge: BeliefEdgeView, src: NarrativeView, dst: NarrativeView) -> str:
    return (
        f'"{src.name}" ({src.summary}) {edge.relationship} "{dst.name}" ({dst.summary}). '
        f"Strength: {pct(edge.strength)}%."
    )


def edge_request(edge: BeliefEdgeView, src: NarrativeView, dst: NarrativeView) -> ExplainRequest:
    return ExplainRequest(type="belief_graph_edge", context=edge_context(edge, src, dst))
