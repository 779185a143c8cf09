# schemas/explain.py
from typing import Literal, Optional

from pydantic import BaseModel, Field

ExplainType = Literal[
    "asset_exposure",
    "evidence",
    "portfolio_analysis",
    "belief_graph_node",
    "belief_graph_edge",
]


class ExplainRequest(BaseModel):
    # field names mirror the dashboard client's payload
    type: ExplainType
    narrativeName: Optional[str] = Field(default=None, max_length=300)
    narrativeSummary: Optional[str] = Field(default=None, max_length=3000)
    assetTicker: Optional[str] = Field(default=None, max_length=32)
    assetName: Optional[str] = Field(default=None, max_length=300)
    exposureWeight: Optional[float] = None
    evidenceDescription: Optional[str] = Field(default=None, max_length=3000)
    evidenceSource: Optional[str] = Field(default=None, max_length=300)
    context: Optional[str] = Field(default=None, max_length=8000)


class HoldingExplainRequest(BaseModel):
    ticker: str = Field(min_length=1, max_length=32)
    name: str = ""
