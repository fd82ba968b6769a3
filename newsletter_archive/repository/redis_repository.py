"""Redis repository for persisted archive metadata and tar content."""

import base64
import json
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from pydantic import ValidationError

from newsletter_archive.config.settings import Settings
from newsletter_archive.repository.base_repository import ArchiveRepository
from newsletter_archive.schema.cache import ArchiveMetadata


class RedisRepository(ArchiveRepository):
    """Repository for keeping repository archives in Redis."""

    def __init__(self, settings: Settings) -> None:
        """Initialize Redis repository."""
        self.settings = settings
        self._client: Optional[Redis] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None

        self._client = Redis.from_url(
            self.settings.redis_url,
            decode_responses=True,
        )

        # Test connection
        try:
            await self._client.ping()
        except Exception:
            self._client = None
            raise

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _make_key(self, owner: str, repo: str, ref: str) -> str:
        """Generate metadata key from components."""
        return f"newsletter:{owner}:{repo}@{ref}"

    def _make_content_key(self, owner: str, repo: str, ref: str) -> str:
        """Generate archive content key from components."""
        return f"newsletter:content:{owner}:{repo}@{ref}"

    async def _get(self, key: str) -> Optional[str]:
        if not self._client:
            await self.connect()
        try:
            return await self._client.get(key)
        except (RedisConnectionError, OSError):
            await self.connect()
            return await self._client.get(key)

    async def _setex(self, key: str, value: str) -> None:
        if not self._client:
            await self.connect()
        ttl = self.settings.archive_retention_seconds
        try:
            await self._client.setex(key, ttl, value)
        except (RedisConnectionError, OSError):
            await self.connect()
            await self._client.setex(key, ttl, value)

    async def get_metadata(
        self, owner: str, repo: str, ref: str
    ) -> Optional[ArchiveMetadata]:
        """Get metadata for a persisted archive."""
        data = await self._get(self._make_key(owner, repo, ref))
        if not data:
            return None

        try:
            return ArchiveMetadata(**json.loads(data))
        except (json.JSONDecodeError, ValidationError, ValueError):
            return None

    async def set_metadata(
        self, owner: str, repo: str, ref: str, metadata: ArchiveMetadata
    ) -> None:
        """Store metadata for a persisted archive."""
        await self._setex(self._make_key(owner, repo, ref), metadata.model_dump_json())

    async def get_content(self, owner: str, repo: str, ref: str) -> Optional[bytes]:
        """Get persisted tar bytes."""
        data = await self._get(self._make_content_key(owner, repo, ref))
        if not data:
            return None
        return base64.b64decode(data)

    async def set_content(
        self, owner: str, repo: str, ref: str, content: bytes
    ) -> None:
        """Store tar bytes as a base64 string (client decodes responses)."""
        encoded = base64.b64encode(content).decode("utf-8")
        await self._setex(self._make_content_key(owner, repo, ref), encoded)

    async def delete(self, owner: str, repo: str, ref: str) -> None:
        """Delete archive metadata and content."""
        if not self._client:
            await self.connect()

        key = self._make_key(owner, repo, ref)
        content_key = self._make_content_key(owner, repo, ref)
        try:
            await self._client.delete(key, content_key)
        except (RedisConnectionError, OSError):
            await self.connect()
            await self._client.delete(key, content_key)
