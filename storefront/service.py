"""Product service: cache-or-fetch access to normalized product records.

This is the one read path shared by the bulk ingestion controller, the
HTTP blueprint and the CLI.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from storefront.attributes import infer_facets
from storefront.cache import ProductCache
from storefront.config import STORE_DOMAIN
from storefront.errors import ProductNotFound
from storefront.fetcher import create_client, fetch_catalog_page, fetch_product, handle_exists
from storefront.logging_config import get_logger
from storefront.models import ProductFacets, ProductRecord
from storefront.search import CatalogSearch
from storefront.url_validation import validate_handle

__all__ = ["ProductService", "FetchFn"]

logger = get_logger("service")

FetchFn = Callable[[httpx.AsyncClient, str], Awaitable[Optional[ProductRecord]]]


class ProductService:
    """Resolve handles to records, fetching and caching on a miss."""

    def __init__(
        self,
        cache: Optional[ProductCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        fetch: FetchFn = fetch_product,
        store_domain: str = STORE_DOMAIN,
        page_delay_scale: float = 1.0,
    ):
        """
        Args:
            cache: Record cache; a default-capacity one is created if omitted
            client: Shared AsyncClient; one rooted at the configured store otherwise
            fetch: Coroutine turning (client, handle) into a record or None
            store_domain: Domain used when recognizing pasted product URLs
            page_delay_scale: Passed to CatalogSearch (0 disables page pacing)
        """
        self.cache = cache if cache is not None else ProductCache()
        self._owns_client = client is None
        self.client = client if client is not None else create_client()
        self._fetch = fetch
        self.search = CatalogSearch(
            self.client,
            store_domain=store_domain,
            page_delay_scale=page_delay_scale,
        )
        self.fetch_count = 0

    async def _load(self, handle: str) -> Optional[ProductRecord]:
        self.fetch_count += 1
        record = await self._fetch(self.client, handle)
        if record is not None:
            self.cache.put(handle, record)
        return record

    async def ensure_product(self, handle: str) -> Optional[ProductRecord]:
        """Cached record for ``handle``, fetching it on a miss.

        Raises:
            InvalidHandle: If the handle is not a well-formed catalog handle
        """
        handle = validate_handle(handle)
        cached = self.cache.get(handle)
        if cached is not None:
            return cached
        logger.debug(f"Cache miss for {handle}, fetching")
        return await self._load(handle)

    async def refresh_product(self, handle: str) -> Optional[ProductRecord]:
        """Always re-fetch and fully replace the cached record."""
        handle = validate_handle(handle)
        return await self._load(handle)

    async def require_product(self, handle: str, refresh: bool = False) -> ProductRecord:
        """Like ensure_product, but a missing product raises ProductNotFound."""
        if refresh:
            record = await self.refresh_product(handle)
        else:
            record = await self.ensure_product(handle)
        if record is None:
            raise ProductNotFound(handle)
        return record

    async def facets(self, handle: str) -> ProductFacets:
        """Typed facets for a product, inferred from its cached record."""
        return infer_facets(await self.require_product(handle))

    async def ingest(self, handle: str) -> ProductRecord:
        """Bulk ingestion unit: refresh one handle, failing if it has no page."""
        return await self.require_product(handle, refresh=True)

    async def health(self) -> Dict[str, Any]:
        """Store reachability: the first catalog page, then one sample handle."""
        out: Dict[str, Any] = {
            "store_domain": self.search.store_domain,
            "can_fetch_store": False,
            "sample_handle": None,
            "sample_handle_ok": None,
            "cached_count": len(self.cache),
        }
        items = await fetch_catalog_page(self.client, 1, 1)
        if items is None:
            return out
        out["can_fetch_store"] = True
        if items and items[0].get("handle"):
            out["sample_handle"] = items[0]["handle"]
            out["sample_handle_ok"] = await handle_exists(self.client, items[0]["handle"])
        return out

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ProductService":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
