import os
import unittest
from unittest.mock import patch

from newsletter_archive.config.settings import Settings
from newsletter_archive.errors import ConfigurationError


class TestSettings(unittest.TestCase):
    def test_default_repository(self):
        settings = Settings(_env_file=None, github_repository=None)
        self.assertEqual(settings.repository, ("remix-run", "newsletter"))

    def test_owner_repo_string(self):
        settings = Settings(_env_file=None, github_repository="acme/letters")
        self.assertEqual(settings.repository, ("acme", "letters"))

    def test_malformed_owner_repo(self):
        for value in ["acme", "acme/", "/letters", "a/b/c"]:
            settings = Settings(_env_file=None, github_repository=value)
            with self.assertRaises(ConfigurationError):
                settings.repository

    def test_require_token(self):
        with self.assertRaises(ConfigurationError):
            Settings(_env_file=None, github_token=None).require_token()
        self.assertEqual(Settings(_env_file=None, github_token="abc").require_token(), "abc")

    def test_ttl(self):
        settings = Settings(_env_file=None)
        self.assertEqual(settings.cache_ttl_ms, 3_600_000)
        self.assertEqual(settings.cache_ttl_seconds, 3600)

    def test_loaded_from_environment(self):
        env = {
            "GITHUB_TOKEN": "from-env",
            "GITHUB_REPOSITORY": "acme/letters",
            "CACHE_TTL_MS": "5000",
            "NO_CACHE": "true",
        }
        with patch.dict(os.environ, env):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.require_token(), "from-env")
        self.assertEqual(settings.repository, ("acme", "letters"))
        self.assertEqual(settings.cache_ttl_ms, 5000)
        self.assertTrue(settings.no_cache)

    def test_use_redis(self):
        self.assertFalse(Settings(_env_file=None, redis_url=None).use_redis)
        self.assertTrue(Settings(_env_file=None, redis_url="redis://localhost").use_redis)


if __name__ == "__main__":
    unittest.main()
