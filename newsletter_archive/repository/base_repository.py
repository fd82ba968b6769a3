"""Base interface for persisted archive repositories."""

from typing import Protocol, Optional, runtime_checkable

from newsletter_archive.schema.cache import ArchiveMetadata


@runtime_checkable
class ArchiveRepository(Protocol):
    """Protocol for stores that keep decompressed repository tarballs."""

    async def get_metadata(
        self, owner: str, repo: str, ref: str
    ) -> Optional[ArchiveMetadata]: ...

    async def set_metadata(
        self, owner: str, repo: str, ref: str, metadata: ArchiveMetadata
    ) -> None: ...

    async def get_content(self, owner: str, repo: str, ref: str) -> Optional[bytes]: ...

    async def set_content(
        self, owner: str, repo: str, ref: str, content: bytes
    ) -> None: ...

    async def delete(self, owner: str, repo: str, ref: str) -> None: ...

    async def disconnect(self) -> None: ...
