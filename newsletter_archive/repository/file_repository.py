"""Temporary-directory repository for persisted archives."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from newsletter_archive.config.settings import Settings
from newsletter_archive.repository.base_repository import ArchiveRepository
from newsletter_archive.schema.cache import ArchiveMetadata

logger = logging.getLogger(__name__)


class FileRepository(ArchiveRepository):
    """Keeps one tar file and one metadata file per archive key on disk."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.cache_dir = Path(settings.archive_cache_dir)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Writes fail and get logged later; reads are misses
            logger.error(f"Error creating archive cache dir {self.cache_dir}: {e}")

    def _make_key(self, owner: str, repo: str, ref: str) -> str:
        return f"{owner}-{repo}-{ref}".replace("/", "_")

    def _content_path(self, owner: str, repo: str, ref: str) -> Path:
        return self.cache_dir / f"{self._make_key(owner, repo, ref)}.tar"

    def _metadata_path(self, owner: str, repo: str, ref: str) -> Path:
        return self.cache_dir / f"{self._make_key(owner, repo, ref)}.json"

    def _is_expired(self, metadata: ArchiveMetadata) -> bool:
        retention = timedelta(seconds=self.settings.archive_retention_seconds)
        return metadata.fetched_at + retention < datetime.now(timezone.utc)

    async def get_metadata(
        self, owner: str, repo: str, ref: str
    ) -> Optional[ArchiveMetadata]:
        path = self._metadata_path(owner, repo, ref)
        try:
            metadata = ArchiveMetadata.model_validate_json(path.read_text("utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValidationError) as e:
            logger.error(f"Error reading archive metadata from {path}: {e}")
            return None

        if self._is_expired(metadata):
            logger.info(f"Persisted archive {path.name} is past retention, ignoring")
            return None
        return metadata

    async def set_metadata(
        self, owner: str, repo: str, ref: str, metadata: ArchiveMetadata
    ) -> None:
        path = self._metadata_path(owner, repo, ref)
        try:
            path.write_text(metadata.model_dump_json(), "utf-8")
        except OSError as e:
            logger.error(f"Error writing archive metadata to {path}: {e}")

    async def get_content(self, owner: str, repo: str, ref: str) -> Optional[bytes]:
        path = self._content_path(owner, repo, ref)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading archive from {path}: {e}")
            return None

    @staticmethod
    def _write_atomic(path: Path, content: bytes) -> None:
        # Readers only ever see a complete archive file
        tmp_path = path.with_suffix(".tar.tmp")
        tmp_path.write_bytes(content)
        tmp_path.replace(path)

    async def set_content(
        self, owner: str, repo: str, ref: str, content: bytes
    ) -> None:
        path = self._content_path(owner, repo, ref)
        try:
            await asyncio.to_thread(self._write_atomic, path, content)
        except OSError as e:
            logger.error(f"Error writing archive to {path}: {e}")

    async def delete(self, owner: str, repo: str, ref: str) -> None:
        self._metadata_path(owner, repo, ref).unlink(missing_ok=True)
        self._content_path(owner, repo, ref).unlink(missing_ok=True)

    async def disconnect(self) -> None:
        pass
