from __future__ import annotations

from pathlib import Path
import unittest

from focusgate.config import DEFAULT_TICK_SECONDS, AppConfig
from focusgate.store import default_db_path


class TestAppConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = AppConfig.from_env({})
        self.assertEqual(config.db_path, default_db_path())
        self.assertEqual(config.tick_seconds, DEFAULT_TICK_SECONDS)
        self.assertTrue(config.notify)
        self.assertFalse(config.speak)
        self.assertEqual(config.log_level, "INFO")
        self.assertIsNone(config.log_file)

    def test_reads_environment(self) -> None:
        config = AppConfig.from_env(
            {
                "FOCUSGATE_DB": "/tmp/fg/state.sqlite",
                "FOCUSGATE_TICK_SECONDS": "15",
                "FOCUSGATE_NOTIFY": "off",
                "FOCUSGATE_SPEAK": "yes",
                "FOCUSGATE_LOG_LEVEL": "debug",
                "FOCUSGATE_LOG_FILE": "/tmp/fg/focusgate.log",
            }
        )
        self.assertEqual(config.db_path, Path("/tmp/fg/state.sqlite"))
        self.assertEqual(config.tick_seconds, 15.0)
        self.assertFalse(config.notify)
        self.assertTrue(config.speak)
        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.log_file, Path("/tmp/fg/focusgate.log"))

    def test_invalid_values_fall_back(self) -> None:
        config = AppConfig.from_env(
            {
                "FOCUSGATE_TICK_SECONDS": "0.2",
                "FOCUSGATE_NOTIFY": "maybe",
                "FOCUSGATE_LOG_LEVEL": "loud",
            }
        )
        self.assertEqual(config.tick_seconds, DEFAULT_TICK_SECONDS)
        self.assertTrue(config.notify)
        self.assertEqual(config.log_level, "INFO")
        self.assertEqual(AppConfig.from_env({"FOCUSGATE_TICK_SECONDS": "nan"}).tick_seconds, DEFAULT_TICK_SECONDS)


if __name__ == "__main__":
    unittest.main()
