"""Exception types raised by the scraper."""

from typing import Optional

__all__ = [
    "ScrapeError",
    "FetchError",
    "ConfigurationError",
    "BrandModelsError",
    "BatchWriteError",
]


class ScrapeError(Exception):
    """Base class for scraper errors."""
    pass


class FetchError(ScrapeError):
    """Raised when a page could not be fetched.

    ``transient`` is True for failures that were retried and may succeed
    later (timeouts, connection errors, 429/5xx). Permanent failures such as
    a 404 or a rejected URL have ``transient`` set to False.
    """

    def __init__(
        self,
        url: str,
        message: str,
        status: Optional[int] = None,
        transient: bool = False,
    ) -> None:
        self.url = url
        self.status = status
        self.transient = transient
        super().__init__(message)


class ConfigurationError(ScrapeError):
    """Raised when required run configuration cannot be obtained."""
    pass


class BrandModelsError(ConfigurationError):
    """Raised when the brand/model data is missing or malformed."""
    pass


class BatchWriteError(ScrapeError):
    """Raised when a batch could not be persisted to the output file."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)
