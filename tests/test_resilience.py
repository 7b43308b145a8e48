import tempfile
import time
import unittest
from pathlib import Path

from pydantic import BaseModel

from beach_conditions.cache_store import CacheStore
from beach_conditions.errors import CacheIOFailure, NoDataAvailable, TransportFailure
from beach_conditions.resilience import LiveResult, fetch_with_cache, resolve


class Reading(BaseModel):
    value: int


class _FailingWriteCache(CacheStore):
    def write(self, key, data, ttl_hours):
        raise CacheIOFailure("disk full")


class TestResolve(unittest.TestCase):
    def test_fresh_hit_wins(self):
        live = LiveResult(error=TransportFailure("x", "down"))
        self.assertEqual(resolve(1, live, 2), 1)

    def test_live_success(self):
        self.assertEqual(resolve(None, LiveResult(value=5), 2), 5)

    def test_live_failure_falls_back_to_stale(self):
        live = LiveResult(error=TransportFailure("x", "down"))
        self.assertEqual(resolve(None, live, 2), 2)

    def test_live_failure_without_stale_raises_live_error(self):
        err = TransportFailure("x", "down")
        with self.assertRaises(TransportFailure) as ctx:
            resolve(None, LiveResult(error=err), None)
        self.assertIs(ctx.exception, err)

    def test_missing_live_result_without_fresh_hit(self):
        with self.assertRaises(ValueError):
            resolve(None, None, 3)

    def test_capture_records_conditions_errors_only(self):
        def boom():
            raise NoDataAvailable("empty")

        captured = LiveResult.capture(boom)
        self.assertFalse(captured.ok)
        self.assertIsInstance(captured.error, NoDataAvailable)

        def crash():
            raise RuntimeError("bug")

        with self.assertRaises(RuntimeError):
            LiveResult.capture(crash)


class TestFetchWithCache(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache = CacheStore(Path(self._tmp.name))
        self.calls = 0

    def tearDown(self):
        self._tmp.cleanup()

    def _live(self, value=None, error=None):
        def fetch():
            self.calls += 1
            if error is not None:
                raise error
            return Reading(value=value)
        return fetch

    def test_fresh_entry_skips_live_fetch(self):
        self.cache.write("k", Reading(value=1), ttl_hours=24)

        result = fetch_with_cache(self.cache, "k", Reading, 24, self._live(value=2))

        self.assertEqual(result.value, 1)
        self.assertEqual(self.calls, 0)

    def test_miss_fetches_and_writes_back(self):
        result = fetch_with_cache(self.cache, "k", Reading, 24, self._live(value=2))

        self.assertEqual(result.value, 2)
        self.assertEqual(self.calls, 1)
        cached = self.cache.read("k", Reading)
        self.assertEqual(cached.data.value, 2)
        self.assertFalse(cached.is_expired)

    def test_expired_entry_is_refreshed(self):
        self.cache.write("k", Reading(value=1), ttl_hours=0)
        time.sleep(0.01)

        result = fetch_with_cache(self.cache, "k", Reading, 24, self._live(value=2))

        self.assertEqual(result.value, 2)
        self.assertEqual(self.cache.read("k", Reading).data.value, 2)

    def test_live_failure_serves_expired_entry(self):
        self.cache.write("k", Reading(value=1), ttl_hours=0)
        time.sleep(0.01)

        result = fetch_with_cache(
            self.cache, "k", Reading, 24, self._live(error=TransportFailure("x", "timeout"))
        )

        self.assertEqual(result.value, 1)
        self.assertEqual(self.calls, 1)
        # the stale entry is not rewritten, so it stays expired
        self.assertTrue(self.cache.read("k", Reading).is_expired)

    def test_live_failure_without_cache_entry_raises(self):
        with self.assertRaises(TransportFailure):
            fetch_with_cache(self.cache, "k", Reading, 24, self._live(error=TransportFailure("x", "timeout")))

    def test_undecodable_entry_falls_through_to_live_fetch(self):
        self.cache.path_for("k").write_bytes(b"\xff\xfe{garbage")

        result = fetch_with_cache(self.cache, "k", Reading, 24, self._live(value=6))

        self.assertEqual(result.value, 6)
        self.assertEqual(self.cache.read("k", Reading).data.value, 6)

    def test_no_cache_configured(self):
        result = fetch_with_cache(None, "k", Reading, 24, self._live(value=4))
        self.assertEqual(result.value, 4)

        with self.assertRaises(TransportFailure):
            fetch_with_cache(None, "k", Reading, 24, self._live(error=TransportFailure("x", "down")))

    def test_cache_write_failure_still_returns_live_value(self):
        cache = _FailingWriteCache(Path(self._tmp.name))
        result = fetch_with_cache(cache, "k", Reading, 24, self._live(value=9))
        self.assertEqual(result.value, 9)

    def test_unexpected_errors_propagate(self):
        self.cache.write("k", Reading(value=1), ttl_hours=0)
        time.sleep(0.01)

        with self.assertRaises(RuntimeError):
            fetch_with_cache(self.cache, "k", Reading, 24, self._live(error=RuntimeError("bug")))


if __name__ == "__main__":
    unittest.main()
