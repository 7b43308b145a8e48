import datetime as dt
import math
import tempfile
import time
import unittest
from pathlib import Path
from zoneinfo import ZoneInfo

from beach_conditions.cache_store import CacheStore
from beach_conditions.data_sources.tide_table import StaticTideTable, load_tide_table
from beach_conditions.data_sources.tides import (
    TideEngine,
    TimedPrediction,
    raised_cosine,
    tide_state_and_height,
)
from beach_conditions.errors import NoDataAvailable, ParseFailure
from beach_conditions.models import TideInfo, TidePrediction, TideState

TZ = ZoneInfo("America/Vancouver")


def _at(day, hour, minute=0, second=0):
    return dt.datetime(2026, 1, day, hour, minute, second, tzinfo=TZ)


def _tide_info(height=3.3, state=TideState.FALLING):
    return TideInfo(
        current_height=height,
        tide_state=state,
        fetched_at=dt.datetime.now(dt.timezone.utc),
    )


class TestRaisedCosine(unittest.TestCase):
    def test_endpoints_and_midpoint(self):
        self.assertAlmostEqual(raised_cosine(1.0, 3.0, 0.0), 1.0)
        self.assertAlmostEqual(raised_cosine(1.0, 3.0, 0.5), 2.0)
        self.assertAlmostEqual(raised_cosine(1.0, 3.0, 1.0), 3.0)

    def test_progress_is_clamped(self):
        self.assertAlmostEqual(raised_cosine(1.0, 3.0, -0.5), 1.0)
        self.assertAlmostEqual(raised_cosine(1.0, 3.0, 1.7), 3.0)

    def test_slow_near_extremes(self):
        # a quarter of the way through covers well under a quarter of the range
        self.assertLess(raised_cosine(0.0, 1.0, 0.25), 0.25)
        self.assertAlmostEqual(raised_cosine(0.0, 1.0, 0.25), (1 - math.cos(math.pi / 4)) / 2)


class TestTideStateAndHeight(unittest.TestCase):
    def setUp(self):
        self.low = TimedPrediction(at=_at(1, 8, 45), height=1.2, is_high=False)
        self.high = TimedPrediction(at=_at(1, 14, 30), height=4.5, is_high=True)

    def test_neither_side_uses_neutral_default(self):
        state, height = tide_state_and_height(None, None, _at(1, 12))
        self.assertEqual(state, TideState.RISING)
        self.assertEqual(height, 2.5)

    def test_neutral_default_is_configurable(self):
        state, height = tide_state_and_height(
            None, None, _at(1, 12), neutral_height=3.0, neutral_state=TideState.FALLING
        )
        self.assertEqual(state, TideState.FALLING)
        self.assertEqual(height, 3.0)

    def test_only_previous_holds_its_height(self):
        state, height = tide_state_and_height(self.high, None, _at(1, 20))
        self.assertEqual(state, TideState.FALLING)
        self.assertEqual(height, 4.5)

        state, height = tide_state_and_height(self.low, None, _at(1, 10))
        self.assertEqual(state, TideState.RISING)
        self.assertEqual(height, 1.2)

    def test_only_next_uses_its_height(self):
        state, height = tide_state_and_height(None, self.high, _at(1, 12))
        self.assertEqual(state, TideState.RISING)
        self.assertEqual(height, 4.5)

        state, height = tide_state_and_height(None, self.low, _at(1, 7))
        self.assertEqual(state, TideState.FALLING)
        self.assertEqual(height, 1.2)

    def test_identical_timestamps_use_half_progress(self):
        twin = TimedPrediction(at=self.low.at, height=4.0, is_high=True)
        _, height = tide_state_and_height(self.low, twin, self.low.at)
        self.assertAlmostEqual(height, 2.6)

    def test_zero_slack_never_snaps(self):
        state, _ = tide_state_and_height(self.low, self.high, _at(1, 14, 25), slack_fraction=0.0)
        self.assertEqual(state, TideState.RISING)


class TestTideEngine(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.table = load_tide_table()

    def setUp(self):
        self.engine = TideEngine(self.table)

    def test_midpoint_rising(self):
        info = self.engine.generate(_at(1, 11, 37, 30))
        self.assertEqual(info.tide_state, TideState.RISING)
        self.assertAlmostEqual(info.current_height, 2.85, places=6)

    def test_midpoint_falling(self):
        info = self.engine.generate(_at(1, 5, 30))
        self.assertEqual(info.tide_state, TideState.FALLING)
        self.assertAlmostEqual(info.current_height, 3.0, places=6)

    def test_height_stays_within_bracketing_extremes(self):
        for minute in range(0, 345, 15):
            now = _at(1, 8, 45) + dt.timedelta(minutes=minute)
            info = self.engine.generate(now)
            self.assertGreaterEqual(info.current_height, 1.2 - 1e-9)
            self.assertLessEqual(info.current_height, 4.5 + 1e-9)

    def test_snaps_to_high_near_high_tide(self):
        info = self.engine.generate(_at(1, 14, 25))
        self.assertEqual(info.tide_state, TideState.HIGH)
        self.assertGreater(info.current_height, 4.49)

    def test_snaps_to_low_just_after_low_tide(self):
        info = self.engine.generate(_at(1, 8, 50))
        self.assertEqual(info.tide_state, TideState.LOW)

    def test_exactly_at_high_tide(self):
        info = self.engine.generate(_at(1, 14, 30))
        self.assertEqual(info.tide_state, TideState.HIGH)
        self.assertAlmostEqual(info.current_height, 4.5)

    def test_next_high_and_low(self):
        info = self.engine.generate(_at(1, 11, 37, 30))
        self.assertEqual(info.next_high.time, _at(1, 14, 30))
        self.assertEqual(info.next_high.height, 4.5)
        self.assertEqual(info.next_low.time, _at(1, 21, 0))
        self.assertEqual(info.next_low.height, 0.8)

    def test_next_events_roll_into_tomorrow(self):
        info = self.engine.generate(_at(1, 22))
        self.assertEqual(info.next_high.time, _at(2, 3, 0))
        self.assertEqual(info.next_low.time, _at(2, 9, 30))

    def test_naive_and_utc_inputs_are_station_time(self):
        naive = self.engine.generate(dt.datetime(2026, 1, 1, 11, 37, 30))
        utc = self.engine.generate(dt.datetime(2026, 1, 1, 19, 37, 30, tzinfo=dt.timezone.utc))
        self.assertAlmostEqual(naive.current_height, 2.85, places=6)
        self.assertAlmostEqual(utc.current_height, 2.85, places=6)

    def test_before_first_prediction_uses_next(self):
        info = self.engine.generate(dt.datetime(2025, 12, 31, 23, 0, tzinfo=TZ))
        self.assertEqual(info.tide_state, TideState.RISING)
        self.assertEqual(info.current_height, 4.8)
        self.assertEqual(info.next_high.time, _at(1, 2, 15))

    def test_after_last_prediction_holds_last(self):
        info = self.engine.generate(_at(31, 22))
        self.assertEqual(info.tide_state, TideState.RISING)
        self.assertEqual(info.current_height, 1.5)
        self.assertIsNone(info.next_high)
        self.assertIsNone(info.next_low)

    def test_uncovered_date_raises(self):
        with self.assertRaises(NoDataAvailable):
            self.engine.generate(dt.datetime(2026, 3, 1, 12, 0, tzinfo=TZ))

    def test_cache_key_names_station(self):
        self.assertEqual(self.engine.cache_key, "tides_point_atkinson")


class TestTideEngineCache(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache = CacheStore(Path(self._tmp.name))
        self.engine = TideEngine(load_tide_table(), self.cache)
        self.uncovered = dt.datetime(2026, 3, 1, 12, 0, tzinfo=TZ)

    def tearDown(self):
        self._tmp.cleanup()

    def test_generated_result_is_cached(self):
        info = self.engine.fetch(_at(1, 11, 37, 30))
        cached = self.cache.read(self.engine.cache_key, TideInfo)
        self.assertIsNotNone(cached)
        self.assertAlmostEqual(cached.data.current_height, info.current_height)

    def test_fresh_cache_is_served(self):
        self.cache.write(self.engine.cache_key, _tide_info(height=3.3), ttl_hours=24)
        info = self.engine.fetch(self.uncovered)
        self.assertEqual(info.current_height, 3.3)

    def test_stale_cache_covers_missing_table_data(self):
        self.cache.write(self.engine.cache_key, _tide_info(height=1.9), ttl_hours=0)
        time.sleep(0.01)
        info = self.engine.fetch(self.uncovered)
        self.assertEqual(info.current_height, 1.9)

    def test_no_cache_and_no_data_raises(self):
        with self.assertRaises(NoDataAvailable):
            self.engine.fetch(self.uncovered)


class TestTideTable(unittest.TestCase):
    def test_bundled_table(self):
        table = load_tide_table()
        self.assertEqual(table.station, "point_atkinson")
        self.assertEqual(table.timezone, "America/Vancouver")
        self.assertEqual(table.first_date, dt.date(2026, 1, 1))
        self.assertEqual(table.last_date, dt.date(2026, 1, 31))

        day = table.predictions_for(dt.date(2026, 1, 1))
        self.assertEqual(len(day), 4)
        self.assertEqual(day[0].time, dt.time(2, 15))
        self.assertTrue(day[0].is_high)
        self.assertEqual(day[1].height, 1.2)
        self.assertFalse(day[1].is_high)

    def test_uncovered_day_is_empty(self):
        self.assertEqual(load_tide_table().predictions_for(dt.date(2026, 2, 1)), [])

    def test_rows_are_sorted_per_day(self):
        rows = [
            TidePrediction(date=dt.date(2026, 6, 1), time=dt.time(18, 0), height=1.0, is_high=False),
            TidePrediction(date=dt.date(2026, 6, 1), time=dt.time(6, 0), height=4.0, is_high=True),
        ]
        table = StaticTideTable(rows, station="test", timezone="UTC")
        self.assertEqual([p.time for p in table.predictions_for(dt.date(2026, 6, 1))], [dt.time(6), dt.time(18)])
        self.assertEqual(len(table), 2)

    def test_invalid_file_raises_parse_failure(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "table.json"
            path.write_text("{}", encoding="utf-8")
            with self.assertRaises(ParseFailure):
                load_tide_table(path)
            with self.assertRaises(ParseFailure):
                load_tide_table(Path(tmp) / "missing.json")


if __name__ == "__main__":
    unittest.main()
