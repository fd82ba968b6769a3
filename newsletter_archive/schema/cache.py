"""Cache-related data schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ArchiveMetadata(BaseModel):
    """Metadata stored alongside a persisted repository archive."""

    fetched_at: datetime = Field(..., description="When the archive was fetched")
    size: int = Field(..., description="Decompressed archive size in bytes")
    file_count: int = Field(..., description="Files found under the content root")

    @property
    def fetched_at_ms(self) -> int:
        return int(self.fetched_at.timestamp() * 1000)
