import unittest
from datetime import timezone

from factories import edge_row, make_narrative, make_session_factory, narrative_row
from services.cache.cache_backend import clear_local_cache
from services.narratives.narrative_service import (
    all_tags,
    build_dashboard,
    filter_narratives,
    get_belief_edge,
    get_narrative,
    invalidate_narrative_cache,
    list_belief_edges,
    list_narratives,
    map_narrative_row,
    narratives_exist,
)


class NarrativeMappingTests(unittest.TestCase):
    def test_loose_json_shapes_are_normalized(self) -> None:
        row = narrative_row(
            "ai-capex",
            "AI Capex Supercycle",
            72,
            confidence_trend=None,
            assumptions=[
                {"id": "a1", "text": "Hyperscalers keep spending", "fragilityScore": 80},
                {"id": "a2", "text": "Power is available", "fragility_score": 35},
                {"id": "a3", "text": "No score"},
            ],
            supporting_evidence=[{"id": "e1", "source": "10-K", "description": "Capex up", "timestamp": "2026-02-01T00:00:00Z"}],
            affected_assets=[
                {"ticker": "NVDA", "name": "NVIDIA", "exposureWeight": 0.9},
                {"ticker": "SMCI", "exposure_weight": "0.4"},
            ],
            history=[{"timestamp": 1767225600000, "confidenceScore": 65}],
        )
        view = map_narrative_row(row)

        self.assertEqual(view.confidence.trend, "flat")
        self.assertEqual([a.fragility_score for a in view.assumptions], [80, 35, 50])
        self.assertEqual(view.supporting_evidence[0].weight, 0.5)
        self.assertEqual(view.supporting_evidence[0].timestamp.tzinfo, timezone.utc)
        self.assertEqual([a.exposure_weight for a in view.affected_assets], [0.9, 0.4])
        self.assertEqual(view.history[0].confidence_score, 65)
        self.assertEqual(view.history[0].timestamp.year, 2026)

    def test_serializes_camel_case(self) -> None:
        view = map_narrative_row(narrative_row("a", "A", 50, tags=["macro"]))
        body = view.model_dump(by_alias=True)
        self.assertIn("relatedNarratives", body)
        self.assertIn("lastUpdated", body["confidence"])
        self.assertIn("halfLifeDays", body["decay"])


class NarrativeStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        clear_local_cache()
        self.db = make_session_factory()()
        self.db.add_all([
            narrative_row("soft-landing", "US Soft Landing", 55),
            narrative_row("ai-capex", "AI Capex Supercycle", 72),
            narrative_row("cre-crisis", "Commercial Real Estate Crisis", 31),
        ])
        self.db.flush()
        self.db.add(edge_row("e1", "ai-capex", "soft-landing", "reinforces", 0.6))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()
        clear_local_cache()

    def test_ordered_by_confidence(self) -> None:
        ids = [n.id for n in list_narratives(self.db)]
        self.assertEqual(ids, ["ai-capex", "soft-landing", "cre-crisis"])

    def test_reads_are_cached_until_invalidated(self) -> None:
        self.assertEqual(len(list_narratives(self.db)), 3)
        self.db.add(narrative_row("japan", "Japan Reflation", 60))
        self.db.commit()

        self.assertEqual(len(list_narratives(self.db)), 3)
        self.assertEqual(len(list_narratives(self.db, use_cache=False)), 4)

        invalidate_narrative_cache()
        self.assertEqual(len(list_narratives(self.db)), 4)

    def test_cached_views_round_trip(self) -> None:
        fresh = list_narratives(self.db)
        cached = list_narratives(self.db)
        self.assertEqual(cached, fresh)

    def test_single_lookups(self) -> None:
        self.assertEqual(get_narrative(self.db, "ai-capex").name, "AI Capex Supercycle")
        self.assertIsNone(get_narrative(self.db, "nope"))
        self.assertEqual(get_belief_edge(self.db, "e1").strength, 0.6)
        self.assertIsNone(get_belief_edge(self.db, "e9"))
        self.assertEqual([e.id for e in list_belief_edges(self.db)], ["e1"])
        self.assertTrue(narratives_exist(self.db))


class DashboardTests(unittest.TestCase):
    def setUp(self) -> None:
        self.narratives = [
            make_narrative("a", "AI Capex Supercycle", 72, trend="up", tags=["ai", "tech"], fragility=[80, 20]),
            make_narrative("b", "Fed Rate Cuts", 45, trend="down", tags=["macro"], fragility=[50]),
            make_narrative("c", "India Growth Story", 60, tags=["em", "macro"], summary="Domestic tech demand."),
        ]

    def test_stats(self) -> None:
        stats = build_dashboard(self.narratives).stats
        self.assertEqual(stats.total, 3)
        # (72 + 45 + 60) / 3 = 59.0
        self.assertEqual(stats.avg_confidence, 59)
        self.assertEqual((stats.rising, stats.fading), (1, 1))
        self.assertEqual(stats.high_fragility, 1)

    def test_average_rounds_half_up(self) -> None:
        stats = build_dashboard([make_narrative("a", "A", 50), make_narrative("b", "B", 51)]).stats
        self.assertEqual(stats.avg_confidence, 51)

    def test_empty_dashboard(self) -> None:
        stats = build_dashboard([]).stats
        self.assertEqual((stats.total, stats.avg_confidence), (0, 0))

    def test_tags_keep_first_seen_order(self) -> None:
        self.assertEqual(all_tags(self.narratives), ["ai", "tech", "macro", "em"])

    def test_search_matches_name_or_summary(self) -> None:
        ids = [n.id for n in filter_narratives(self.narratives, search="TECH")]
        self.assertEqual(ids, ["c"])
        self.assertEqual(len(filter_narratives(self.narratives, search="")), 3)

    def test_tag_filter(self) -> None:
        self.assertEqual([n.id for n in filter_narratives(self.narratives, tag="macro")], ["b", "c"])
        self.assertEqual(len(filter_narratives(self.narratives, tag="all")), 3)
        self.assertEqual(filter_narratives(self.narratives, search="india", tag="ai"), [])


if __name__ == "__main__":
    unittest.main()
