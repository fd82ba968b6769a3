import base64
import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from newsletter_archive.config.settings import Settings
from newsletter_archive.repository.redis_repository import RedisRepository
from newsletter_archive.schema.cache import ArchiveMetadata


class TestRedisRepository(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.settings = Settings(
            _env_file=None, redis_url="redis://localhost:6379/0", archive_retention_seconds=60
        )
        self.repo = RedisRepository(self.settings)
        self.client = AsyncMock()
        self.repo._client = self.client

    async def test_set_content_stores_base64_with_retention(self):
        await self.repo.set_content("acme", "letters", "main", b"tar bytes")

        self.client.setex.assert_awaited_once_with(
            "newsletter:content:acme:letters@main",
            60,
            base64.b64encode(b"tar bytes").decode("utf-8"),
        )

    async def test_get_content_decodes_base64(self):
        self.client.get.return_value = base64.b64encode(b"tar bytes").decode("utf-8")
        self.assertEqual(await self.repo.get_content("acme", "letters", "main"), b"tar bytes")

    async def test_metadata_round_trip(self):
        metadata = ArchiveMetadata(
            fetched_at=datetime(2024, 1, 1, tzinfo=timezone.utc), size=10, file_count=2
        )
        await self.repo.set_metadata("acme", "letters", "main", metadata)
        stored = self.client.setex.await_args.args[2]

        self.client.get.return_value = stored
        self.assertEqual(await self.repo.get_metadata("acme", "letters", "main"), metadata)

    async def test_invalid_metadata_is_a_miss(self):
        self.client.get.return_value = "{broken"
        self.assertIsNone(await self.repo.get_metadata("acme", "letters", "main"))

    async def test_reconnects_once_on_connection_error(self):
        reconnected = AsyncMock()
        reconnected.get.return_value = None
        self.client.get.side_effect = RedisConnectionError("gone")

        async def connect():
            self.repo._client = reconnected

        self.repo.connect = connect

        self.assertIsNone(await self.repo.get_content("acme", "letters", "main"))
        reconnected.get.assert_awaited_once_with("newsletter:content:acme:letters@main")


if __name__ == "__main__":
    unittest.main()
