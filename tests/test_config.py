import os
import unittest

from pydantic import ValidationError

from beach_conditions.config import Settings


class TestConfig(unittest.TestCase):
    def _with_env(self, name, value):
        previous = os.environ.get(name)
        os.environ[name] = value

        def restore():
            if previous is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = previous

        self.addCleanup(restore)

    def test_settings_defaults(self):
        previous = os.environ.pop("BEACH_TIMEZONE", None)
        try:
            s = Settings()
            self.assertEqual(s.timezone, "America/Vancouver")
            self.assertEqual(s.tide_slack_fraction, 0.05)
            self.assertEqual(s.tide_neutral_height, 2.5)
            self.assertEqual(s.stale_sample_days, 7)
        finally:
            if previous is not None:
                os.environ["BEACH_TIMEZONE"] = previous

    def test_settings_env_override(self):
        self._with_env("BEACH_TIMEZONE", "America/Edmonton")
        self._with_env("BEACH_WEATHER_TTL_HOURS", "3")
        s = Settings()
        self.assertEqual(s.timezone, "America/Edmonton")
        self.assertEqual(s.weather_ttl_hours, 3)

    def test_cache_can_be_disabled(self):
        self._with_env("BEACH_CACHE_ENABLED", "false")
        self.assertFalse(Settings().cache_enabled)

    def test_trailing_slash_stripped(self):
        self._with_env("BEACH_OPEN_METEO_URL", "http://example.com/v1/forecast/")
        self.assertEqual(Settings().open_meteo_url, "http://example.com/v1/forecast")

    def test_slack_fraction_bounds(self):
        self._with_env("BEACH_TIDE_SLACK_FRACTION", "0.7")
        with self.assertRaises(ValidationError):
            Settings()


if __name__ == "__main__":
    unittest.main()
