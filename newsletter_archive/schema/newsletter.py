"""Newsletter content schemas."""

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileRecord(BaseModel):
    """A file found under the content root of a repository archive."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path below the content root")
    name: str = Field(..., description="Final path segment")
    size: int = Field(..., description="Size declared by the tar header")


class NewsletterMetadata(BaseModel):
    """One newsletter issue derived from a numbered directory."""

    model_config = ConfigDict(frozen=True)

    number: int
    date: datetime.date
    path: str
    filename: str


class RepositoryContents(BaseModel):
    """Immutable bundle of everything extracted from one archive fetch."""

    model_config = ConfigDict(frozen=True)

    files: dict[str, FileRecord]
    contents: dict[str, bytes]
    newsletters: list[NewsletterMetadata]

    def get_file_content(self, path: str) -> Optional[bytes]:
        return self.contents.get(path)

    def find_newsletter(self, number: int) -> Optional[NewsletterMetadata]:
        for newsletter in self.newsletters:
            if newsletter.number == number:
                return newsletter
        return None
