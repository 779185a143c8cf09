# services/narratives/refresh_prompts.py
NARRATIVE_THEMES = [
    "AI Capex Supercycle",
    "US Soft Landing",
    "Tech Valuation Bubble",
    "Energy Demand Surge",
    "Fed Rate Cuts 2025",
    "China Stimulus Pivot",
    "Japan Reflation",
    "De-dollarization",
    "Commodity Supercycle",
    "Defense Spending Boom",
    "India Growth Story",
    "Commercial Real Estate Crisis",
    "Private Credit Boom",
    "Onshoring/Reshoring",
    "Crypto Institutional Adoption",
    "Healthcare AI Revolution",
]

MIN_EDGES = 15

_SCHEMA = """Return a JSON object with two keys:
- "narratives": array of narrative objects
- "edges": array of belief edge objects

Each narrative must have: id (kebab-case slug), name, summary (2-3 sentences), confidence_score (0-100), confidence_trend ("up"/"down"/"flat"), assumptions (array of {{id, text, fragilityScore 0-100}}), supporting_evidence (array of {{id, source, description, weight 0-1}}), contradicting_evidence (same format), decay_half_life_days, related_reinforces (array of narrative ids), related_conflicts, related_overlaps, affected_assets (array of {{ticker, name, exposureWeight from -1 to 1}}), tags (array of strings).

Each edge must have: id, from_narrative_id, to_narrative_id, relationship ("reinforces"/"conflicts"/"depends_on"), strength (0-1).

Generate exactly {count} narratives covering these themes: {themes}.

Make confidence scores and evidence reflect current real-world conditions. Include at least {min_edges} edges connecting related narratives. Each narrative should have 3-6 affected real tickers with sensible exposure weights.

Return ONLY valid JSON, no markdown."""

_UPDATE_INTRO = (
    "You are a market narrative analyst. Update the following existing narratives with the latest "
    "market conditions as of today. For each narrative, provide updated confidence scores, trends, "
    "and any new evidence."
)

_INITIAL_INTRO = (
    "You are a market narrative analyst. Create an initial set of market narratives reflecting "
    "current conditions."
)


def build_refresh_prompt(*, update_existing: bool) -> str:
    intro = _UPDATE_INTRO if update_existing else _INITIAL_INTRO
    body = _SCHEMA.format(
        count=len(NARRATIVE_THEMES),
        themes=", ".join(NARRATIVE_THEMES),
        min_edges=MIN_EDGES,
    )
    return f"{intro}\n\n{body}"
