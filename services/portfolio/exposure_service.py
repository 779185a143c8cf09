# services/portfolio/exposure_service.py
from __future__ import annotations

from typing import List, Optional

from schemas.holding import (
    ExposureReport,
    Holding,
    HoldingNarrativeLink,
    HoldingWithNarratives,
    NarrativeExposure,
)
from schemas.narrative import AffectedAsset, NarrativeView
from utils.common_helpers import pct

MIN_EXPOSURE = 0.01
CONCENTRATION_TOP_N = 3


def _asset_for(narrative: NarrativeView, ticker: str) -> Optional[AffectedAsset]:
    for asset in narrative.affected_assets:
        if asset.ticker == ticker:
            return asset
    return None


def narrative_exposures(holdings: List[Holding], narratives: List[NarrativeView]) -> List[NarrativeExposure]:
    """
    Portfolio exposure per narrative: sum of holding weight x asset exposure
    weight over matching tickers. Negligible exposures (<= 1%) are dropped;
    the rest are ranked by absolute size.
    """
    out: List[NarrativeExposure] = []
    for n in narratives:
        raw = 0.0
        for h in holdings:
            asset = _asset_for(n, h.ticker)
            if asset is not None:
                raw += h.weight * asset.exposure_weight
        exposure = abs(raw)
        if exposure > MIN_EXPOSURE:
            out.append(
                NarrativeExposure(
                    narrative_id=n.id,
                    name=n.name,
                    confidence=n.confidence.score,
                    exposure=exposure,
                    raw=raw,
                )
            )
    out.sort(key=lambda e: e.exposure, reverse=True)
    return out


def holdings_with_narratives(
    holdings: List[Holding], narratives: List[NarrativeView]
) -> List[HoldingWithNarratives]:
    rows: List[HoldingWithNarratives] = []
    for h in holdings:
        links = []
        for n in narratives:
            asset = _asset_for(n, h.ticker)
            if asset is None:
                continue
            exposure = asset.exposure_weight or 0
            links.append(
                HoldingNarrativeLink(
                    id=n.id,
                    name=n.name,
                    confidence=n.confidence.score,
                    exposure=exposure,
                    direction="bullish" if exposure > 0 else "bearish",
                )
            )
        rows.append(HoldingWithNarratives(ticker=h.ticker, name=h.name, weight=h.weight, narratives=links))
    return rows


def portfolio_exposure_report(holdings: List[Holding], narratives: List[NarrativeView]) -> ExposureReport:
    exposures = narrative_exposures(holdings, narratives)
    top = exposures[:CONCENTRATION_TOP_N]

    headline = detail = None
    if exposures:
        lead = exposures[0]
        headline = f"Your portfolio assumes {lead.name} holds true."
        detail = f"{pct(lead.exposure)}% exposure to this {lead.confidence}% confidence narrative."

    return ExposureReport(
        exposures=exposures,
        concentration=sum(e.exposure for e in top),
        top_narratives_count=len(top),
        headline=headline,
        detail=detail,
        holdings=holdings_with_narratives(holdings, narratives),
    )


def holding_connections_context(ticker: str, narratives: List[NarrativeView]) -> str:
    """Explain-prompt context listing every tracked narrative that names the ticker."""
    parts = []
    for n in narratives:
        asset = _asset_for(n, ticker)
        if asset is None:
            continue
        parts.append(f"{n.name} ({pct(asset.exposure_weight or 0)}% exposure, {n.confidence.score}% confidence)")
    connections = ", ".join(parts)
    return f"Known narrative connections: {connections or 'None found in tracked narratives'}"
