"""Async HTTP access to the storefront.

Every public fetch treats a non-2xx response or a network error as
absence: ``None`` or an empty collection, never an exception. There is no
retry here; bulk ingestion layers retry on top.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from storefront.config import (
    BASE_URL,
    HEADERS,
    HTML_ACCEPT,
    JSON_ACCEPT,
    REQUEST_TIMEOUT,
    SUGGEST_LIMIT,
)
from storefront.errors import FetchFailure
from storefront.formatting import usd, usd_cents
from storefront.html_utils import extract_sections, extract_title
from storefront.logging_config import get_logger, log_ingest_event
from storefront.models import CatalogHit, ProductRecord, Variant

__all__ = [
    "create_client",
    "fetch_page_html",
    "fetch_variant_feed",
    "fetch_catalog_page",
    "fetch_suggestions",
    "handle_exists",
    "fetch_product",
    "build_product_record",
    "product_url",
]

logger = get_logger("fetcher")


def create_client(
    base_url: str = BASE_URL,
    timeout: float = REQUEST_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with connection pooling and polite headers.

    Args:
        base_url: Store root, e.g. https://yourshop.myshopify.com
        timeout: Per-request timeout in seconds
        transport: Optional transport (tests pass an httpx.MockTransport)
    """
    return httpx.AsyncClient(
        base_url=base_url,
        headers=HEADERS,
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        transport=transport,
    )


def product_url(client: httpx.AsyncClient, handle: str) -> str:
    return f"{str(client.base_url).rstrip('/')}/products/{handle}"


async def _get(
    client: httpx.AsyncClient,
    path: str,
    accept: str,
    params: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    """GET ``path``; raises FetchFailure on network error or non-2xx."""
    try:
        resp = await client.get(path, params=params, headers={"Accept": accept})
    except httpx.HTTPError as e:
        raise FetchFailure(path, reason=str(e) or type(e).__name__) from e
    if not resp.is_success:
        raise FetchFailure(path, status=resp.status_code)
    return resp


async def _get_json(
    client: httpx.AsyncClient,
    path: str,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    resp = await _get(client, path, JSON_ACCEPT, params)
    try:
        return resp.json()
    except ValueError as e:
        raise FetchFailure(path, reason="invalid JSON") from e


async def fetch_page_html(client: httpx.AsyncClient, handle: str) -> Optional[str]:
    """Product page HTML, or None if the page is missing or unreachable."""
    try:
        resp = await _get(client, f"/products/{handle}", HTML_ACCEPT)
    except FetchFailure as e:
        logger.debug(f"Page fetch failed for {handle}: {e}")
        return None
    return resp.text


async def fetch_variant_feed(client: httpx.AsyncClient, handle: str) -> Dict[str, Any]:
    """The ``/products/<handle>.js`` feed, or {} on any failure."""
    try:
        data = await _get_json(client, f"/products/{handle}.js")
    except FetchFailure as e:
        logger.debug(f"Variant feed unavailable for {handle}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


async def fetch_catalog_page(
    client: httpx.AsyncClient,
    page: int,
    limit: int,
) -> Optional[List[Dict[str, Any]]]:
    """One page of ``/products.json``; None when the page cannot be read."""
    try:
        data = await _get_json(client, "/products.json", {"limit": limit, "page": page})
    except FetchFailure as e:
        logger.warning(f"Catalog page {page} unavailable: {e}")
        return None
    items = data.get("products") if isinstance(data, dict) else None
    return [p for p in (items or []) if isinstance(p, dict)]


async def fetch_suggestions(
    client: httpx.AsyncClient,
    query: str,
    limit: int = SUGGEST_LIMIT,
) -> List[CatalogHit]:
    """Hosted predictive-search suggestions for a phrase."""
    params = {
        "q": query,
        "resources[type]": "product",
        "resources[limit]": limit,
        "section_id": "predictive-search",
    }
    try:
        data = await _get_json(client, "/search/suggest.json", params)
    except FetchFailure as e:
        logger.debug(f"Suggestion lookup failed for {query!r}: {e}")
        return []
    try:
        products = data["resources"]["results"]["products"]
    except (KeyError, TypeError):
        return []
    return [
        CatalogHit(handle=p["handle"], title=str(p.get("title") or ""))
        for p in products
        if isinstance(p, dict) and p.get("handle")
    ][:limit]


async def handle_exists(client: httpx.AsyncClient, handle: str) -> bool:
    """Probe the variant feed to test whether a handle exists."""
    try:
        await _get(client, f"/products/{handle}.js", JSON_ACCEPT)
    except FetchFailure:
        return False
    return True


def build_product_record(
    handle: str,
    html: str,
    feed: Dict[str, Any],
    url: str,
) -> ProductRecord:
    """Assemble a normalized record from page HTML and the variant feed."""
    soup = BeautifulSoup(html, "html.parser")
    title = extract_title(soup, fallback=handle)

    variants = [Variant.from_feed(v) for v in feed.get("variants") or [] if isinstance(v, dict)]
    price_from_cents = min((v.price_cents for v in variants), default=None)
    price_from = price_from_cents / 100 if price_from_cents is not None else None
    if price_from_cents:
        price_formatted = usd_cents(price_from_cents)
    else:
        price_formatted = usd(price_from)

    sections = extract_sections(soup, base_url=url)
    haystack = f"{title} {sections.text_blob()}".lower()

    return ProductRecord(
        handle=handle,
        title=title,
        url=url,
        vendor=feed.get("vendor") or None,
        price_from=price_from,
        price_from_formatted=price_formatted,
        variants=variants,
        sections=sections,
        haystack=haystack,
    )


async def fetch_product(client: httpx.AsyncClient, handle: str) -> Optional[ProductRecord]:
    """Fetch and normalize one product; None if the handle has no page.

    The page and its variant feed are requested together; a failed feed
    only means the record has no variants.
    """
    html, feed = await asyncio.gather(
        fetch_page_html(client, handle),
        fetch_variant_feed(client, handle),
    )
    if html is None:
        log_ingest_event("product_missing", {"handle": handle}, logger_name="fetcher")
        return None

    # HTML parsing runs off the event loop thread
    record = await asyncio.to_thread(build_product_record, handle, html, feed, product_url(client, handle))
    log_ingest_event(
        "product_fetched",
        {
            "message": f"Fetched {handle}",
            "handle": handle,
            "variants": len(record.variants),
            "specifications": len(record.sections.specifications),
        },
        level=logging.DEBUG,
        logger_name="fetcher",
    )
    return record
