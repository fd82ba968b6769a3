"""Newsletter queries built on top of the repository cache."""

import logging
from typing import List

from newsletter_archive.config.settings import Settings
from newsletter_archive.errors import NewsletterFileNotFoundError, NewsletterNotFoundError
from newsletter_archive.schema.newsletter import NewsletterMetadata, RepositoryContents
from newsletter_archive.service.archive import DIRECTORY_PREFIX
from newsletter_archive.service.cache_service import RepositoryCache

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"

MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
    ".avif": "image/avif",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".pdf": "application/pdf",
    ".json": "application/json",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".css": "text/css",
    ".html": "text/html",
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".ico")


def detect_media_type(filename: str) -> str:
    """Media type for a filename, based on its extension only."""
    _, dot, extension = filename.rpartition(".")
    if not dot:
        return DEFAULT_MEDIA_TYPE
    return MEDIA_TYPES.get(f".{extension.lower()}", DEFAULT_MEDIA_TYPE)


def newsletter_directory(number: int) -> str:
    return f"{DIRECTORY_PREFIX}-{number}"


class NewsletterService:
    """Service answering newsletter queries for the configured repository."""

    def __init__(self, settings: Settings, cache: RepositoryCache) -> None:
        self.settings = settings
        self.cache = cache

    async def get_contents(self) -> RepositoryContents:
        owner, repo = self.settings.repository
        return await self.cache.get_contents(owner, repo, self.settings.github_ref)

    async def list_newsletters(self) -> List[NewsletterMetadata]:
        """All newsletters, highest number first."""
        contents = await self.get_contents()
        return contents.newsletters

    async def fetch_newsletter(self, number: int) -> str:
        """Markdown source of a newsletter."""
        contents = await self.get_contents()
        newsletter = contents.find_newsletter(number)
        if newsletter is None:
            raise NewsletterNotFoundError(number)

        data = contents.get_file_content(newsletter.path)
        if data is None:
            logger.error(f"Newsletter {number} is listed but {newsletter.path} has no content")
            raise NewsletterNotFoundError(number)
        return data.decode("utf-8", errors="replace")

    async def fetch_newsletter_file(self, number: int, filename: str) -> tuple[bytes, str]:
        """
        Get a file stored next to a newsletter's markdown.

        Returns (content, media_type).
        """
        contents = await self.get_contents()
        data = contents.get_file_content(f"{newsletter_directory(number)}/{filename}")
        if data is None:
            raise NewsletterFileNotFoundError(number, filename)
        return data, detect_media_type(filename)

    async def list_newsletter_images(self, number: int) -> List[str]:
        """Filenames of images directly inside a newsletter's directory."""
        contents = await self.get_contents()
        directory = newsletter_directory(number)
        images = []
        for record in contents.files.values():
            parts = record.path.split("/")
            if (
                len(parts) == 2
                and parts[0] == directory
                and record.name.lower().endswith(IMAGE_EXTENSIONS)
            ):
                images.append(record.name)
        return images
