"""Exception types for fetch, ingest and job-control failures."""

from typing import Optional

__all__ = [
    "StorefrontError",
    "FetchFailure",
    "ProductNotFound",
    "InvalidHandle",
    "TaskTimeout",
    "RetriesExhausted",
    "JobConflict",
]


class StorefrontError(Exception):
    """Base class for all storefront errors."""


class FetchFailure(StorefrontError):
    """Network error or non-success HTTP status.

    Never escapes the fetcher: callers see it as "no data".
    """

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        detail = f"HTTP {status}" if status is not None else (reason or "network error")
        super().__init__(f"{detail} fetching {url}")


class ProductNotFound(StorefrontError):
    """A handle resolved to no product."""

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"No product for {handle}")


class InvalidHandle(StorefrontError):
    """A handle failed validation."""


class TaskTimeout(StorefrontError):
    """A single ingestion task exceeded its time budget."""

    def __init__(self, label: str, seconds: float):
        self.label = label
        self.seconds = seconds
        super().__init__(f"{label} timed out after {int(seconds * 1000)}ms")


class RetriesExhausted(StorefrontError):
    """A task failed on every attempt."""

    def __init__(self, label: str, attempts: int, last_error: Optional[BaseException]):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        cause = str(last_error) if last_error is not None else "unknown error"
        super().__init__(f"{label} failed after {attempts} attempts: {cause}")


class JobConflict(StorefrontError):
    """A bulk ingest job is already running."""

    def __init__(self, message: str = "Bulk ingest already running"):
        super().__init__(message)
