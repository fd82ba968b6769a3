"""Assembles RepositoryContents from GitHub or from a persisted archive."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from newsletter_archive.repository.base_repository import ArchiveRepository
from newsletter_archive.repository.github_repository import GitHubRepository
from newsletter_archive.schema.cache import ArchiveMetadata
from newsletter_archive.schema.newsletter import RepositoryContents
from newsletter_archive.service.archive import build_contents
from newsletter_archive.errors import CorruptArchiveError

logger = logging.getLogger(__name__)


class ContentLoader:
    """Fetch, extract and derive a repository bundle."""

    def __init__(
        self,
        github_repo: GitHubRepository,
        archive_repo: Optional[ArchiveRepository] = None,
    ) -> None:
        self.github_repo = github_repo
        self.archive_repo = archive_repo

    async def fetch(self, owner: str, repo: str, ref: str) -> RepositoryContents:
        """
        Download the repository tarball and build a fresh bundle.

        Successful fetches are persisted to the archive repository when one
        is configured. Upstream and archive errors propagate.
        """
        data = await self.github_repo.fetch_tarball(owner, repo, ref)
        contents = await asyncio.to_thread(build_contents, data)
        await self._persist(owner, repo, ref, data, contents)
        return contents

    async def restore(
        self, owner: str, repo: str, ref: str
    ) -> Optional[tuple[RepositoryContents, int]]:
        """
        Rebuild a bundle from the persisted archive.

        Returns (contents, fetched_at_ms) or None when nothing usable is stored.
        """
        if self.archive_repo is None:
            return None

        try:
            metadata = await self.archive_repo.get_metadata(owner, repo, ref)
            if not metadata:
                return None
            data = await self.archive_repo.get_content(owner, repo, ref)
        except Exception as e:
            logger.error(f"Error reading persisted archive for {owner}/{repo}@{ref}: {e}")
            return None

        if not data:
            logger.info(
                f"Persisted archive content missing for {owner}/{repo}@{ref}, cleaning up"
            )
            await self._delete(owner, repo, ref)
            return None

        try:
            contents = await asyncio.to_thread(build_contents, data)
        except CorruptArchiveError as e:
            logger.error(f"Discarding corrupt persisted archive for {owner}/{repo}@{ref}: {e}")
            await self._delete(owner, repo, ref)
            return None

        logger.info(
            f"Restored {owner}/{repo}@{ref} from persisted archive fetched at {metadata.fetched_at}"
        )
        return contents, metadata.fetched_at_ms

    async def _persist(
        self,
        owner: str,
        repo: str,
        ref: str,
        data: bytes,
        contents: RepositoryContents,
    ) -> None:
        if self.archive_repo is None:
            return

        metadata = ArchiveMetadata(
            fetched_at=datetime.now(timezone.utc),
            size=len(data),
            file_count=len(contents.files),
        )
        try:
            await self.archive_repo.set_content(owner, repo, ref, data)
            await self.archive_repo.set_metadata(owner, repo, ref, metadata)
        except Exception as e:
            logger.error(f"Error persisting archive for {owner}/{repo}@{ref}: {e}")

    async def _delete(self, owner: str, repo: str, ref: str) -> None:
        try:
            await self.archive_repo.delete(owner, repo, ref)
        except Exception as e:
            logger.error(f"Error deleting persisted archive for {owner}/{repo}@{ref}: {e}")
