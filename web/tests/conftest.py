"""Shared test fixtures for the web test suite."""

import sys
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest


@pytest.fixture
def repo_root():
    """Get the repository root directory."""
    return Path(__file__).resolve().parents[2]


@pytest.fixture(autouse=True)
def sys_path_setup(repo_root):
    """Make both the storefront and web packages importable."""
    root = str(repo_root)
    if root not in sys.path:
        sys.path.insert(0, root)
    yield


class FakeShop:
    """Minimal store: catalog pages, variant feeds and product pages."""

    def __init__(self) -> None:
        self.catalog: List[Dict[str, Any]] = []
        self.pages: Dict[str, str] = {}
        self.feeds: Dict[str, Dict[str, Any]] = {}

    def add_product(self, handle: str, title: str, price_cents: int = 129900) -> None:
        self.catalog.append({"handle": handle, "title": title})
        self.feeds[handle] = {
            "title": title,
            "variants": [{"id": 1, "title": "Default", "price": price_cents, "available": True}],
        }
        self.pages[handle] = f"""
        <html>
          <head><meta property="og:title" content="{title}"></head>
          <body>
            <div class="product__description">
              <h2>Specifications</h2>
              <ul><li>Capacity: 4</li><li>Voltage: 240V</li></ul>
              <h2>Features</h2>
              <ul><li>Outdoor rated cedar</li></ul>
            </div>
          </body>
        </html>
        """

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/products.json":
            page = int(request.url.params.get("page", "1"))
            limit = int(request.url.params.get("limit", "30"))
            start = (page - 1) * limit
            return httpx.Response(200, json={"products": self.catalog[start:start + limit]})
        if path == "/search/suggest.json":
            return httpx.Response(200, json={"resources": {"results": {"products": []}}})
        if path.startswith("/products/"):
            rest = path[len("/products/"):]
            if rest.endswith(".js"):
                feed = self.feeds.get(rest[:-3])
                return httpx.Response(200, json=feed) if feed else httpx.Response(404)
            html = self.pages.get(rest)
            return httpx.Response(200, text=html) if html else httpx.Response(404)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        from storefront.fetcher import create_client

        return create_client(
            base_url="https://shop.example.com",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def shop():
    """Fake shop with two saunas."""
    s = FakeShop()
    s.add_product("nordic-barrel-sauna", "Nordic Barrel Sauna")
    s.add_product("cedar-infrared-sauna", "Cedar Infrared Sauna", price_cents=249900)
    return s
