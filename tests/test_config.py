import os
import unittest
from unittest import mock

from cardinalnews.config import DEFAULT_PG_DSN, Settings
from cardinalnews.errors import ConfigurationError, NotFoundError, require_key


class TestSettings(unittest.TestCase):
    def _load(self, env):
        with mock.patch("cardinalnews.config.load_dotenv"), mock.patch.dict(os.environ, env, clear=True):
            return Settings.from_env()

    def test_defaults(self):
        settings = self._load({})
        self.assertEqual(settings.pg_dsn, DEFAULT_PG_DSN)
        self.assertEqual(settings.admin_api_keys, [])
        self.assertTrue(settings.auto_init_schema)
        self.assertEqual(settings.automation_mode, "once")
        self.assertEqual(settings.request_timeout, 30)

    def test_env_overrides(self):
        settings = self._load(
            {
                "ADMIN_API_KEYS": " k1, ,k2 ",
                "AUTO_INIT_SCHEMA": "false",
                "AUTOMATION_MODE": " Scheduled ",
                "SITE_BASE_URL": "https://example.org/",
                "REQUEST_TIMEOUT": "5",
            }
        )
        self.assertEqual(settings.admin_api_keys, ["k1", "k2"])
        self.assertFalse(settings.auto_init_schema)
        self.assertEqual(settings.automation_mode, "scheduled")
        self.assertEqual(settings.site_base_url, "https://example.org")
        self.assertEqual(settings.request_timeout, 5)

    def test_validate_reports_problems(self):
        settings = Settings(supabase_url="https://x.supabase.co", request_timeout=0, automation_mode="often")
        problems = settings._validate()
        self.assertTrue(any("SUPABASE_URL" in p for p in problems))
        self.assertTrue(any("REQUEST_TIMEOUT" in p for p in problems))
        self.assertTrue(any("AUTOMATION_MODE" in p for p in problems))

    def test_complete_config_has_no_problems(self):
        settings = Settings(lovable_api_key="k", serper_api_key="s", openweather_api_key="w")
        self.assertEqual(settings._validate(), [])


class TestErrors(unittest.TestCase):
    def test_status_codes(self):
        self.assertEqual(NotFoundError("Article not found").status_code, 404)
        self.assertEqual(str(NotFoundError("Article not found")), "Article not found")

    def test_require_key(self):
        self.assertEqual(require_key("abc", "SERPER_API_KEY"), "abc")
        with self.assertRaises(ConfigurationError) as ctx:
            require_key("", "SERPER_API_KEY")
        self.assertEqual(str(ctx.exception), "SERPER_API_KEY not configured")


if __name__ == "__main__":
    unittest.main()
