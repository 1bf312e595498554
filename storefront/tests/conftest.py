"""Shared fixtures for the storefront test suite: an in-memory fake store."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Set

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from storefront.fetcher import create_client  # noqa: E402

STORE_DOMAIN = "shop.example.com"


class FakeStore:
    """Serves catalog pages, variant feeds, product pages and suggestions."""

    def __init__(self) -> None:
        self.pages: Dict[str, str] = {}
        self.feeds: Dict[str, Dict[str, Any]] = {}
        self.catalog: List[Dict[str, Any]] = []
        self.suggestions: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_catalog_pages: Set[int] = set()
        self.requests: List[httpx.Request] = []

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/products.json":
            page = int(request.url.params.get("page", "1"))
            limit = int(request.url.params.get("limit", "30"))
            if page in self.failing_catalog_pages:
                return httpx.Response(500)
            start = (page - 1) * limit
            return httpx.Response(200, json={"products": self.catalog[start:start + limit]})

        if path == "/search/suggest.json":
            query = request.url.params.get("q", "").lower()
            products = self.suggestions.get(query, [])
            return httpx.Response(200, json={"resources": {"results": {"products": products}}})

        if path.startswith("/products/"):
            rest = path[len("/products/"):]
            if rest.endswith(".js"):
                feed = self.feeds.get(rest[:-3])
                if feed is None:
                    return httpx.Response(404)
                return httpx.Response(200, json=feed)
            html = self.pages.get(rest)
            if html is None:
                return httpx.Response(404)
            return httpx.Response(200, text=html)

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return create_client(
            base_url=f"https://{STORE_DOMAIN}",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def store():
    """Empty fake store; tests fill in what they need."""
    return FakeStore()


@pytest.fixture
def catalog_store(store):
    """Fake store with a small sauna catalog."""
    store.catalog = [
        {"handle": "nordic-barrel-sauna", "title": "Nordic Barrel Sauna"},
        {"handle": "cedar-infrared-sauna", "title": "Cedar Infrared Sauna"},
        {"handle": "sauna-stones", "title": "Sauna Stones"},
        {"handle": "outdoor-barrel-sauna-large", "title": "Outdoor Barrel Sauna Large Deluxe Edition"},
        {"handle": "heater-kit", "title": "Heater Kit"},
    ]
    return store


@pytest.fixture
def spec_page_html():
    """A product page with a flat specifications list."""
    return """
    <html>
      <head><meta property="og:title" content="Nordic Barrel Sauna"></head>
      <body>
        <h1>Nordic Barrel Sauna (Sale)</h1>
        <div class="product__description">
          <h2>Specifications</h2>
          <ul>
            <li>Capacity: 2</li>
            <li>Voltage: 240V</li>
          </ul>
        </div>
      </body>
    </html>
    """
