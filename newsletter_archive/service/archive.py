"""Tar extraction and newsletter metadata derivation."""

import io
import logging
import re
import tarfile
from datetime import date
from typing import Dict, Iterable, List, Tuple

from newsletter_archive.errors import CorruptArchiveError
from newsletter_archive.schema.newsletter import (
    FileRecord,
    NewsletterMetadata,
    RepositoryContents,
)

logger = logging.getLogger(__name__)

CONTENT_ROOT = "newsletters"
DIRECTORY_PREFIX = "newsletter"
MARKDOWN_EXTENSION = ".md"
FILENAME_TOKEN = "remix-newsletter"

# newsletter-:n
_DIRECTORY_RE = re.compile(rf"^{DIRECTORY_PREFIX}-(\d+)$")
# :yyyy-:mm-:dd-remix-newsletter-:n.md
_FILENAME_RE = re.compile(
    rf"^(\d{{4}})-(\d{{2}})-(\d{{2}})-{FILENAME_TOKEN}-\d+{re.escape(MARKDOWN_EXTENSION)}$"
)


def _relative_path(name: str) -> str | None:
    """Return the part of an archive path below the content root, if any."""
    segments = name.split("/")
    try:
        index = segments.index(CONTENT_ROOT)
    except ValueError:
        return None
    relative = "/".join(segments[index + 1 :])
    if not relative or relative.endswith("/"):
        return None
    return relative


def extract_archive(data: bytes) -> Tuple[Dict[str, FileRecord], Dict[str, bytes]]:
    """
    Read every regular file below the content root of a tar archive.

    Returns (files, contents), both keyed by the path below the content root.
    Everything is buffered in memory, so this is O(total content size).
    """
    files: Dict[str, FileRecord] = {}
    contents: Dict[str, bytes] = {}

    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as archive:
            for member in archive:
                if member.isdir() or member.name.endswith("/"):
                    continue
                path = _relative_path(member.name)
                if path is None:
                    continue
                # Symlinks, devices and the like carry no payload
                handle = archive.extractfile(member)
                if handle is None:
                    continue
                name = path.rsplit("/", 1)[-1]
                files[path] = FileRecord(path=path, name=name, size=member.size)
                contents[path] = handle.read()
    except tarfile.TarError as e:
        raise CorruptArchiveError(f"Could not read tar archive: {e}") from e

    return files, contents


def _group_by_directory(files: Iterable[FileRecord]) -> Dict[str, List[FileRecord]]:
    groups: Dict[str, List[FileRecord]] = {}
    for record in files:
        if "/" not in record.path:
            continue
        directory = record.path.split("/", 1)[0]
        groups.setdefault(directory, []).append(record)
    return groups


def derive_newsletters(files: Dict[str, FileRecord]) -> List[NewsletterMetadata]:
    """
    Build newsletter metadata from the indexed files.

    Directories that do not follow the naming conventions (name, markdown
    file present, dated filename) are skipped. The result is sorted by
    newsletter number, highest first.
    """
    newsletters: List[NewsletterMetadata] = []

    for directory, records in _group_by_directory(files.values()).items():
        dir_match = _DIRECTORY_RE.match(directory)
        if not dir_match:
            continue

        markdown_file = next(
            (r for r in records if r.name.endswith(MARKDOWN_EXTENSION)), None
        )
        if markdown_file is None:
            continue

        filename_match = _FILENAME_RE.match(markdown_file.name)
        if not filename_match:
            continue

        year, month, day = (int(part) for part in filename_match.groups())
        try:
            published = date(year, month, day)
        except ValueError:
            logger.info(f"Skipping {markdown_file.path}: invalid date in filename")
            continue

        newsletters.append(
            NewsletterMetadata(
                number=int(dir_match.group(1)),
                date=published,
                path=markdown_file.path,
                filename=markdown_file.name,
            )
        )

    newsletters.sort(key=lambda n: n.number, reverse=True)
    return newsletters


def build_contents(data: bytes) -> RepositoryContents:
    """Extract an archive and derive its newsletter listing."""
    files, contents = extract_archive(data)
    newsletters = derive_newsletters(files)
    logger.info(
        f"Extracted {len(files)} files and {len(newsletters)} newsletters from archive"
    )
    return RepositoryContents(files=files, contents=contents, newsletters=newsletters)
