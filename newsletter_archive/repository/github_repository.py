"""GitHub REST repository for fetching whole-repository tarballs."""

import asyncio
import gzip
import logging
import zlib

import httpx

from newsletter_archive.config.settings import Settings
from newsletter_archive.errors import CorruptArchiveError, UpstreamFetchError

logger = logging.getLogger(__name__)


class GitHubRepository:
    """Repository for downloading repository archives from api.github.com."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub repository. Fails fast without a token."""
        self.settings = settings
        self.token = settings.require_token()
        self.client = httpx.AsyncClient(
            base_url=self.settings.github_api_url,
            timeout=60.0,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    def _build_tarball_url(self, owner: str, repo: str, ref: str) -> str:
        return f"/repos/{owner}/{repo}/tarball/{ref}"

    async def fetch_tarball(self, owner: str, repo: str, ref: str) -> bytes:
        """
        Download the gzip tarball of owner/repo at ref and return the
        decompressed tar bytes.

        Raises UpstreamFetchError for non-2xx responses and
        CorruptArchiveError when the body is not valid gzip.
        """
        url = self._build_tarball_url(owner, repo, ref)
        response = await self.client.get(
            url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github.raw",
            },
        )
        if not response.is_success:
            raise UpstreamFetchError(response.status_code, response.reason_phrase)

        logger.info(
            f"Downloaded tarball for {owner}/{repo}@{ref} ({len(response.content)} bytes)"
        )

        try:
            return await asyncio.to_thread(gzip.decompress, response.content)
        except (OSError, EOFError, zlib.error) as e:
            raise CorruptArchiveError(
                f"Could not decompress tarball for {owner}/{repo}@{ref}: {e}"
            ) from e
