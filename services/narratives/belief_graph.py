# services/narratives/belief_graph.py
from __future__ import annotations

import math
from typing import Dict, List, Optional

from schemas.narrative import (
    BeliefEdgeView,
    BeliefGraph,
    GraphEdge,
    GraphNode,
    GraphNodeData,
    GraphPosition,
    NarrativeView,
)

GRID_ORIGIN = 80
GRID_COL_WIDTH = 280
GRID_ROW_HEIGHT = 180
GRID_MAX_COLS = 4

_COLOR_KEYS = {"reinforces": "reinforce", "conflicts": "conflict"}


def confidence_band(score: float) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def _grid_cols(n: int) -> int:
    if n <= 0:
        return 1
    return min(GRID_MAX_COLS, math.ceil(math.sqrt(n)))


def layout_graph(narratives: List[NarrativeView], edges: List[BeliefEdgeView]) -> BeliefGraph:
    """Place narratives on a fixed grid; the client runs its own force layout from there."""
    cols = _grid_cols(len(narratives))
    nodes = []
    for i, n in enumerate(narratives):
        col, row = i % cols, i // cols
        nodes.append(
            GraphNode(
                id=n.id,
                position=GraphPosition(
                    x=GRID_ORIGIN + col * GRID_COL_WIDTH,
                    y=GRID_ORIGIN + row * GRID_ROW_HEIGHT,
                ),
                data=GraphNodeData(
                    label=n.name,
                    confidence=n.confidence.score,
                    confidence_band=confidence_band(n.confidence.score),
                    trend=n.confidence.trend,
                    tags=n.tags,
                    summary=n.summary,
                ),
            )
        )

    graph_edges = [
        GraphEdge(
            id=e.id,
            source=e.from_narrative_id,
            target=e.to_narrative_id,
            label=e.relationship,
            animated=e.relationship == "reinforces",
            color_key=_COLOR_KEYS.get(e.relationship, "depends"),
            stroke_width=max(1.5, e.strength * 3),
        )
        for e in edges
    ]
    return BeliefGraph(nodes=nodes, edges=graph_edges)


def index_by_id(narratives: List[NarrativeView]) -> Dict[str, NarrativeView]:
    return {n.id: n for n in narratives}


def edge_endpoints(
    edge: BeliefEdgeView, narratives: List[NarrativeView]
) -> Optional[tuple[NarrativeView, NarrativeView]]:
    by_id = index_by_id(narratives)
    src = by_id.get(edge.from_narrative_id)
    dst = by_id.get(edge.to_narrative_id)
    if src is None or dst is None:
        return None
    return src, dst
