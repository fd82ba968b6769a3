"""In-process stale-while-revalidate cache of repository contents."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from newsletter_archive.config.settings import Settings
from newsletter_archive.schema.newsletter import RepositoryContents
from newsletter_archive.service.content_loader import ContentLoader

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, str]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    """A complete bundle and the time it was fetched. Replaced, never mutated."""

    contents: RepositoryContents
    fetched_at_ms: int


class RepositoryCache:
    """
    Cache of RepositoryContents keyed by (owner, repo, ref).

    Fresh entries are served directly. Stale entries are served directly too,
    while at most one background refresh per key replaces them. Only the very
    first request for a key waits on GitHub.
    """

    def __init__(
        self,
        settings: Settings,
        loader: ContentLoader,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize repository cache."""
        self.settings = settings
        self.loader = loader
        self.clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        # In-flight background refreshes; a key is present while its task runs
        self._refresh_tasks: Dict[CacheKey, asyncio.Task] = {}
        # Lock dictionary to prevent concurrent initial loads of the same key
        self._load_locks: Dict[CacheKey, asyncio.Lock] = {}

    def _is_stale(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at_ms >= self.settings.cache_ttl_ms

    def is_refreshing(self, owner: str, repo: str, ref: str) -> bool:
        return (owner, repo, ref) in self._refresh_tasks

    async def get_contents(self, owner: str, repo: str, ref: str) -> RepositoryContents:
        """
        Get the repository bundle for owner/repo@ref.

        With no_cache set every call fetches from GitHub.
        """
        if self.settings.no_cache:
            logger.info(f"Cache disabled: fetching {owner}/{repo}@{ref} from GitHub")
            return await self.loader.fetch(owner, repo, ref)

        key = (owner, repo, ref)
        entry = self._entries.get(key)
        if entry is None:
            logger.info(f"Cache MISS: no contents for {owner}/{repo}@{ref}")
            entry = await self._load_initial(key)
        elif self._is_stale(entry):
            logger.info(f"Cache STALE: serving old contents for {owner}/{repo}@{ref}")
            self._schedule_refresh(key)
        return entry.contents

    async def _load_initial(self, key: CacheKey) -> CacheEntry:
        owner, repo, ref = key
        if key not in self._load_locks:
            self._load_locks[key] = asyncio.Lock()

        async with self._load_locks[key]:
            # Another request might have loaded it while we waited
            entry = self._entries.get(key)
            if entry is not None:
                logger.info(
                    f"Cache HIT after lock: {owner}/{repo}@{ref} was loaded by concurrent request"
                )
                return entry

            restored = await self.loader.restore(owner, repo, ref)
            if restored is not None:
                contents, fetched_at_ms = restored
                entry = CacheEntry(contents=contents, fetched_at_ms=fetched_at_ms)
            else:
                logger.info(f"Fetching and caching {owner}/{repo}@{ref} from GitHub")
                contents = await self.loader.fetch(owner, repo, ref)
                entry = CacheEntry(contents=contents, fetched_at_ms=self.clock())
            self._entries[key] = entry

        if self._is_stale(entry):
            self._schedule_refresh(key)
        return entry

    def _schedule_refresh(self, key: CacheKey) -> None:
        if key in self._refresh_tasks:
            return
        self._refresh_tasks[key] = asyncio.create_task(self._refresh(key))

    async def _refresh(self, key: CacheKey) -> None:
        owner, repo, ref = key
        logger.info(f"Refreshing {owner}/{repo}@{ref} in the background")
        try:
            contents = await self.loader.fetch(owner, repo, ref)
        except Exception:
            logger.exception(
                f"Background refresh of {owner}/{repo}@{ref} failed, keeping stale contents"
            )
        else:
            self._entries[key] = CacheEntry(contents=contents, fetched_at_ms=self.clock())
            logger.info(
                f"Refreshed {owner}/{repo}@{ref}, cached for {self.settings.cache_ttl_seconds}s"
            )
        finally:
            self._refresh_tasks.pop(key, None)

    async def wait_for_refreshes(self) -> None:
        """Wait until every in-flight background refresh has finished."""
        tasks = list(self._refresh_tasks.values())
        if tasks:
            await asyncio.gather(*tasks)
