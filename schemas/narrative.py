# schemas/narrative.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Trend = Literal["up", "down", "flat"]
Relationship = Literal["reinforces", "conflicts", "depends_on"]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (matches the dashboard client)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Assumption(CamelModel):
    id: str = ""
    text: str = ""
    fragility_score: float = 50


class Evidence(CamelModel):
    id: str = ""
    source: str = ""
    description: str = ""
    timestamp: datetime
    weight: float = 0.5


class AffectedAsset(CamelModel):
    ticker: str = ""
    name: str = ""
    exposure_weight: float = 0


class HistoryPoint(CamelModel):
    timestamp: datetime
    confidence_score: float = 50
    summary: str = ""


class Confidence(CamelModel):
    score: int
    trend: str = "flat"
    last_updated: datetime


class Decay(CamelModel):
    half_life_days: int
    last_reinforced: datetime


class RelatedNarratives(CamelModel):
    reinforces: List[str] = Field(default_factory=list)
    conflicts: List[str] = Field(default_factory=list)
    overlaps: List[str] = Field(default_factory=list)


class NarrativeView(CamelModel):
    id: str
    name: str
    summary: str
    confidence: Confidence
    assumptions: List[Assumption] = Field(default_factory=list)
    supporting_evidence: List[Evidence] = Field(default_factory=list)
    contradicting_evidence: List[Evidence] = Field(default_factory=list)
    decay: Decay
    related_narratives: RelatedNarratives = Field(default_factory=RelatedNarratives)
    affected_assets: List[AffectedAsset] = Field(default_factory=list)
    history: List[HistoryPoint] = Field(default_factory=list)
    created_at: datetime
    tags: List[str] = Field(default_factory=list)


class BeliefEdgeView(CamelModel):
    id: str
    from_narrative_id: str
    to_narrative_id: str
    relationship: str
    strength: float


class DashboardStats(CamelModel):
    total: int
    avg_confidence: int
    rising: int
    fading: int
    high_fragility: int


class DashboardResponse(CamelModel):
    stats: DashboardStats
    tags: List[str] = Field(default_factory=list)


class RefreshResult(BaseModel):
    success: bool = True
    narratives: int
    edges: int


# ── Belief graph ───────────────────────────────────────────────────────

class GraphPosition(BaseModel):
    x: float
    y: float


class GraphNodeData(CamelModel):
    label: str
    confidence: int
    confidence_band: Literal["high", "medium", "low"]
    trend: str
    tags: List[str] = Field(default_factory=list)
    summary: str


class GraphNode(CamelModel):
    id: str
    type: str = "narrative"
    position: GraphPosition
    data: GraphNodeData


class GraphEdge(CamelModel):
    id: str
    source: str
    target: str
    label: str
    animated: bool
    color_key: Literal["reinforce", "conflict", "depends"]
    stroke_width: float


class BeliefGraph(CamelModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
