"""Storefront product ingestion: fetch, normalize, search and bulk-ingest catalog products."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from storefront.bulk import BulkJob, JobManager
from storefront.cache import ProductCache
from storefront.config import BASE_URL, STORE_DOMAIN, BulkSettings
from storefront.errors import (
    InvalidHandle,
    JobConflict,
    ProductNotFound,
    StorefrontError,
)
from storefront.fetcher import create_client, fetch_product
from storefront.html_utils import extract_sections
from storefront.models import CatalogHit, ProductFacets, ProductRecord, Sections, SpecEntry
from storefront.search import CatalogSearch
from storefront.service import ProductService

__all__ = [
    # Version
    "__version__",
    # Config
    "BASE_URL",
    "STORE_DOMAIN",
    "BulkSettings",
    # Models
    "ProductRecord",
    "Sections",
    "SpecEntry",
    "CatalogHit",
    "ProductFacets",
    # Errors
    "StorefrontError",
    "ProductNotFound",
    "InvalidHandle",
    "JobConflict",
    # Core
    "create_client",
    "fetch_product",
    "extract_sections",
    "ProductCache",
    "ProductService",
    "CatalogSearch",
    "BulkJob",
    "JobManager",
]
