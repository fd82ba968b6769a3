"""Domain errors raised by the content acquisition layer."""


class NewsletterArchiveError(Exception):
    """Base class for all newsletter archive errors."""


class ConfigurationError(NewsletterArchiveError):
    """Required credential or repository identifier is missing or malformed."""


class UpstreamFetchError(NewsletterArchiveError):
    """GitHub answered with a non-success status."""

    def __init__(self, status: int, status_text: str) -> None:
        self.status = status
        self.status_text = status_text
        super().__init__(f"Failed to fetch tarball: {status} {status_text}")


class CorruptArchiveError(NewsletterArchiveError):
    """The downloaded archive could not be decompressed or parsed."""


class NewsletterNotFoundError(NewsletterArchiveError):
    def __init__(self, number: int) -> None:
        self.number = number
        super().__init__(f"Newsletter {number} not found")


class NewsletterFileNotFoundError(NewsletterArchiveError):
    def __init__(self, number: int, filename: str) -> None:
        self.number = number
        self.filename = filename
        super().__init__(f'File "{filename}" not found in newsletter {number}')
