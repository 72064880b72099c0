"""
Tests for configuration loading and validation
"""

import os
import unittest
from unittest.mock import patch

from src.utils.config import Config, ConfigurationError, DEFAULT_GMAIL_QUERY

# Variables Config reads; cleared so the host environment cannot leak in
CONFIG_VARS = (
    "GMAIL_ACCESS_TOKEN", "GMAIL_API_BASE_URL", "GMAIL_QUERY", "GMAIL_MAX_RESULTS",
    "GMAIL_REQUEST_TIMEOUT", "RULES_FILE", "MISSING_DATE_FALLBACK_TO_NOW",
    "LOG_LEVEL", "LOG_FILE", "LOG_FORMAT", "MAX_WORKERS", "CHECK_INTERVAL",
)


class ConfigTestCase(unittest.TestCase):

    def setUp(self):
        clean = {k: v for k, v in os.environ.items() if k not in CONFIG_VARS}
        patcher = patch.dict(os.environ, clean, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def load(self, **env):
        os.environ.update(env)
        return Config("nonexistent.env")


class TestConfigDefaults(ConfigTestCase):

    def test_defaults(self):
        config = self.load()

        self.assertIsNone(config.gmail.access_token)
        self.assertEqual(config.gmail.api_base_url, "https://gmail.googleapis.com/gmail/v1")
        self.assertEqual(config.gmail.query, DEFAULT_GMAIL_QUERY)
        self.assertEqual(config.gmail.max_results, 15)
        self.assertEqual(config.gmail.request_timeout, 10)
        self.assertEqual(config.rules.rules_file, "data/rules.json")
        self.assertTrue(config.parsing.missing_date_fallback_to_now)
        self.assertEqual(config.system.log_level, "INFO")
        self.assertEqual(config.system.log_format, "text")
        self.assertEqual(config.system.max_workers, 8)
        self.assertEqual(config.system.check_interval, 300)

    def test_default_query_matches_task_keywords(self):
        self.assertIn('"call letter"', DEFAULT_GMAIL_QUERY)
        self.assertIn("newer_than:3m", DEFAULT_GMAIL_QUERY)


class TestConfigOverrides(ConfigTestCase):

    def test_env_overrides(self):
        config = self.load(
            GMAIL_ACCESS_TOKEN="tok",
            GMAIL_API_BASE_URL="https://proxy.example.test/gmail/v1/",
            GMAIL_MAX_RESULTS="25",
            RULES_FILE="/tmp/rules.json",
            MISSING_DATE_FALLBACK_TO_NOW="false",
            LOG_FORMAT=" JSON ",
            MAX_WORKERS="2",
        )

        self.assertEqual(config.gmail.access_token, "tok")
        self.assertEqual(config.gmail.api_base_url, "https://proxy.example.test/gmail/v1")
        self.assertEqual(config.gmail.max_results, 25)
        self.assertEqual(config.rules.rules_file, "/tmp/rules.json")
        self.assertFalse(config.parsing.missing_date_fallback_to_now)
        self.assertEqual(config.system.log_format, "json")
        self.assertEqual(config.system.max_workers, 2)

    def test_bool_variants(self):
        for value in ("1", "yes", "on", "TRUE"):
            self.assertTrue(self.load(MISSING_DATE_FALLBACK_TO_NOW=value).parsing.missing_date_fallback_to_now)
        for value in ("0", "no", "off", "nope"):
            self.assertFalse(self.load(MISSING_DATE_FALLBACK_TO_NOW=value).parsing.missing_date_fallback_to_now)

    def test_garbage_int_keeps_default(self):
        with self.assertLogs("Config", level="WARNING"):
            config = self.load(GMAIL_MAX_RESULTS="lots")
        self.assertEqual(config.gmail.max_results, 15)

    def test_empty_token_is_none(self):
        self.assertIsNone(self.load(GMAIL_ACCESS_TOKEN="").gmail.access_token)


class TestConfigValidation(ConfigTestCase):

    def test_valid(self):
        self.assertTrue(self.load(GMAIL_ACCESS_TOKEN="tok").validate())

    def test_missing_token(self):
        with self.assertRaisesRegex(ConfigurationError, "GMAIL_ACCESS_TOKEN"):
            self.load().validate()

    def test_non_positive_values(self):
        for key in ("GMAIL_MAX_RESULTS", "GMAIL_REQUEST_TIMEOUT", "MAX_WORKERS"):
            with self.subTest(key=key):
                config = self.load(GMAIL_ACCESS_TOKEN="tok", **{key: "0"})
                with self.assertRaisesRegex(ConfigurationError, key):
                    config.validate()
                os.environ.pop(key)

    def test_bad_log_format(self):
        config = self.load(GMAIL_ACCESS_TOKEN="tok", LOG_FORMAT="xml")
        with self.assertRaisesRegex(ConfigurationError, "LOG_FORMAT"):
            config.validate()

    def test_configuration_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))


if __name__ == "__main__":
    unittest.main()
