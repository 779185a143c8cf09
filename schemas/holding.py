# schemas/holding.py
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator

from schemas.narrative import CamelModel


class Holding(CamelModel):
    ticker: str = Field(min_length=1, max_length=32)
    name: str = ""
    weight: float = Field(gt=0)

    # before-mode so min_length sees the stripped value
    @field_validator("ticker", mode="before")
    @classmethod
    def _upper_ticker(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class PortfolioImportResponse(CamelModel):
    portfolio_name: str
    holdings: List[Holding]


class ExposureRequest(CamelModel):
    holdings: List[Holding] = Field(max_length=500)


class NarrativeExposure(CamelModel):
    narrative_id: str
    name: str
    confidence: int
    exposure: float
    raw: float


class HoldingNarrativeLink(CamelModel):
    id: str
    name: str
    confidence: int
    exposure: float
    direction: Literal["bullish", "bearish"]


class HoldingWithNarratives(CamelModel):
    ticker: str
    name: str
    weight: float
    narratives: List[HoldingNarrativeLink] = Field(default_factory=list)


class ExposureReport(CamelModel):
    exposures: List[NarrativeExposure] = Field(default_factory=list)
    concentration: float = 0.0
    top_narratives_count: int = 0
    headline: Optional[str] = None
    detail: Optional[str] = None
    holdings: List[HoldingWithNarratives] = Field(default_factory=list)
