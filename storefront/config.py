"""Configuration and constants for the storefront ingester."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

__all__ = [
    "STORE_DOMAIN",
    "BASE_URL",
    "HEADERS",
    "HTML_ACCEPT",
    "JSON_ACCEPT",
    "REQUEST_TIMEOUT",
    "CATALOG_PAGE_SIZE",
    "SEARCH_MAX_PAGES",
    "LIST_ALL_MAX_PAGES",
    "LIST_PAGE_DELAY",
    "KEYWORD_PAGE_DELAY",
    "ANY_WORD_PAGE_DELAY",
    "FIRST_MATCH_PAGE_DELAY",
    "SUGGEST_LIMIT",
    "SEARCH_MAX_RESULTS",
    "CACHE_LIMIT",
    "INGEST_CONCURRENCY",
    "INGEST_TIMEOUT",
    "INGEST_RETRIES",
    "INGEST_BATCH_DELAY",
    "RETRY_BACKOFF_BASE",
    "ERROR_LOG_LIMIT",
    "STATUS_ERROR_PREVIEW",
    "BulkSettings",
]

_PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

# Store domain without protocol, e.g. yourshop.myshopify.com
STORE_DOMAIN = os.getenv("STORE_DOMAIN", "example-store.myshopify.com").strip().rstrip("/")
BASE_URL = f"https://{STORE_DOMAIN}"

# HTTP headers for polite scraping
HEADERS = {
    "User-Agent": os.getenv(
        "STOREFRONT_USER_AGENT", "storefront-ingest/0.1 (catalog indexer)"
    ),
}
HTML_ACCEPT = "text/html,application/xhtml+xml"
JSON_ACCEPT = "application/json"

# Request timeout (seconds)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))

# Catalog paging. A page shorter than CATALOG_PAGE_SIZE is the last one.
CATALOG_PAGE_SIZE = 250
SEARCH_MAX_PAGES = 5
LIST_ALL_MAX_PAGES = 50

# Delay between catalog pages (in seconds)
LIST_PAGE_DELAY = 0.1
KEYWORD_PAGE_DELAY = 0.1
ANY_WORD_PAGE_DELAY = 0.08
FIRST_MATCH_PAGE_DELAY = 0.2

# Suggestion lookup / search result limits
SUGGEST_LIMIT = 6
SEARCH_MAX_RESULTS = 8

# In-memory product cache capacity
CACHE_LIMIT = int(os.getenv("CACHE_LIMIT", "1000"))

# Bulk ingest knobs (safe defaults; tune via .env)
INGEST_CONCURRENCY = int(os.getenv("INGEST_CONCURRENCY", "50"))
INGEST_TIMEOUT = float(os.getenv("INGEST_TIMEOUT", "20"))
INGEST_RETRIES = int(os.getenv("INGEST_RETRIES", "2"))
INGEST_BATCH_DELAY = float(os.getenv("INGEST_BATCH_DELAY", "0.2"))

# Linear backoff: RETRY_BACKOFF_BASE * (attempt + 1) seconds
RETRY_BACKOFF_BASE = 0.3

# Most recent task failures kept per job / shown in status
ERROR_LOG_LIMIT = 20
STATUS_ERROR_PREVIEW = 10


@dataclass
class BulkSettings:
    """Tunable parameters for one bulk ingest run."""

    concurrency: int = INGEST_CONCURRENCY
    timeout: float = INGEST_TIMEOUT
    retries: int = INGEST_RETRIES
    batch_delay: float = INGEST_BATCH_DELAY
    backoff_base: float = RETRY_BACKOFF_BASE
    error_limit: int = ERROR_LOG_LIMIT

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")
        if self.batch_delay < 0:
            raise ValueError(f"batch_delay must be >= 0, got {self.batch_delay}")

    @classmethod
    def from_env(cls) -> "BulkSettings":
        """Build settings from the environment-derived module constants."""
        return cls(
            concurrency=INGEST_CONCURRENCY,
            timeout=INGEST_TIMEOUT,
            retries=INGEST_RETRIES,
            batch_delay=INGEST_BATCH_DELAY,
        )

    def describe(self) -> dict:
        """Job parameters as reported when a bulk ingest starts."""
        return {
            "concurrency": self.concurrency,
            "timeout_ms": int(self.timeout * 1000),
            "retries": self.retries,
            "batch_delay_ms": int(self.batch_delay * 1000),
        }
