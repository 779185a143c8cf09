import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from services.cache import cache_backend
from services.cache.cache_backend import cache_delete, cache_get, cache_set, clear_local_cache
from services.helpers.json_helpers import extract_json_object, strip_code_fences
from utils.common_helpers import parse_leading_float, parse_timestamp, pct, round_half_up, to_float


class CommonHelpersTests(unittest.TestCase):
    def test_to_float_rejects_non_finite(self) -> None:
        self.assertEqual(to_float("0.25"), 0.25)
        self.assertEqual(to_float(float("nan"), 50), 50)
        self.assertEqual(to_float(float("inf")), 0.0)
        self.assertEqual(to_float("-Infinity", 30), 30)
        self.assertEqual(to_float("n/a", 1.5), 1.5)

    def test_parse_leading_float(self) -> None:
        self.assertEqual(parse_leading_float("20.5"), 20.5)
        self.assertEqual(parse_leading_float(" 12 (approx)"), 12.0)
        self.assertEqual(parse_leading_float(".5"), 0.5)
        self.assertIsNone(parse_leading_float("abc"))
        self.assertIsNone(parse_leading_float(""))
        self.assertIsNone(parse_leading_float(None))

    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(58.5), 59)
        self.assertEqual(round_half_up(-0.5), 0)
        self.assertEqual(pct(0.125), 13)

    def test_parse_timestamp(self) -> None:
        self.assertEqual(
            parse_timestamp("2026-03-02T10:00:00Z"),
            datetime(2026, 3, 2, 10, tzinfo=timezone.utc),
        )
        self.assertEqual(parse_timestamp(0), datetime(1970, 1, 1, tzinfo=timezone.utc))
        naive = parse_timestamp(datetime(2026, 1, 1))
        self.assertEqual(naive.tzinfo, timezone.utc)

    def test_parse_timestamp_falls_back_to_now(self) -> None:
        before = datetime.now(timezone.utc)
        self.assertGreaterEqual(parse_timestamp("last tuesday"), before)
        self.assertGreaterEqual(parse_timestamp(None), before)


class JsonHelpersTests(unittest.TestCase):
    def test_strips_every_fence(self) -> None:
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')
        self.assertEqual(strip_code_fences("```JSON {} ```"), "{}")

    def test_extract_object(self) -> None:
        self.assertEqual(extract_json_object('```json\n{"narratives": [1, 2,]}\n```'), {"narratives": [1, 2]})

    def test_double_encoded(self) -> None:
        self.assertEqual(extract_json_object('"{\\"edges\\": []}"'), {"edges": []})

    def test_rejects_non_objects(self) -> None:
        with self.assertRaises(ValueError):
            extract_json_object("[1, 2]")
        with self.assertRaises(ValueError):
            extract_json_object("   ")
        with self.assertRaises(ValueError):
            extract_json_object("{broken")


class CacheBackendTests(unittest.TestCase):
    def setUp(self) -> None:
        clear_local_cache()

    def tearDown(self) -> None:
        clear_local_cache()

    def test_local_round_trip_without_redis(self) -> None:
        with patch.object(cache_backend, "get_redis_client", return_value=None):
            cache_set("Narratives:All", [{"id": "a"}], 300)
            self.assertEqual(cache_get("narratives:all"), [{"id": "a"}])
            cache_delete("narratives:all")
            self.assertIsNone(cache_get("narratives:all"))

    def test_expired_local_entry_is_dropped(self) -> None:
        with patch.object(cache_backend, "get_redis_client", return_value=None), \
                patch.object(cache_backend.time, "time", side_effect=[1000.0, 2000.0]):
            cache_set("k", {"v": 1}, 300)
            self.assertIsNone(cache_get("k"))

    def test_redis_read_through_and_write_through(self) -> None:
        r = MagicMock()
        r.get.return_value = '{"v": 2}'
        with patch.object(cache_backend, "get_redis_client", return_value=r):
            self.assertEqual(cache_get("k"), {"v": 2})
            r.get.assert_called_once_with(f"{cache_backend.REDIS_PREFIX}k")

            cache_set("other", [1], 120)
            r.setex.assert_called_once_with(f"{cache_backend.REDIS_PREFIX}other", 120, "[1]")

            cache_delete("k", "other")
            r.delete.assert_called_once_with(f"{cache_backend.REDIS_PREFIX}k", f"{cache_backend.REDIS_PREFIX}other")

    def test_redis_errors_degrade_to_miss(self) -> None:
        r = MagicMock()
        r.get.side_effect = ConnectionError("down")
        with patch.object(cache_backend, "get_redis_client", return_value=r):
            with self.assertLogs("services.cache.cache_backend", level="WARNING"):
                self.assertIsNone(cache_get("k"))


if __name__ == "__main__":
    unittest.main()
