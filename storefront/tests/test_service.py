"""Tests for the cache-or-fetch product service."""

import asyncio

import pytest

from storefront.cache import ProductCache
from storefront.errors import InvalidHandle, ProductNotFound
from storefront.models import ProductRecord
from storefront.service import ProductService


class FakeFetch:
    """Stands in for fetch_product; counts calls and returns fresh records."""

    def __init__(self, missing=(), haystack: str = ""):
        self.calls = []
        self.missing = set(missing)
        self.haystack = haystack

    async def __call__(self, client, handle):
        self.calls.append(handle)
        if handle in self.missing:
            return None
        return ProductRecord(
            handle=handle,
            title=handle.replace("-", " ").title(),
            url=f"https://shop.example.com/products/{handle}",
            price_from=4999.0,
            haystack=self.haystack,
        )


def _run(store, fetch, scenario, capacity: int = 10):
    async def main():
        async with ProductService(ProductCache(capacity), client=store.client(), fetch=fetch) as service:
            return await scenario(service)

    return asyncio.run(main())


class TestEnsureProduct:
    """Idempotent resolution through the cache."""

    def test_second_lookup_is_served_from_cache(self, store):
        """Resolving twice returns the identical record and fetches once."""
        fetch = FakeFetch()

        async def scenario(service):
            first = await service.ensure_product("nordic-sauna")
            second = await service.ensure_product("nordic-sauna")
            return first, second

        first, second = _run(store, fetch, scenario)
        assert first is second
        assert fetch.calls == ["nordic-sauna"]

    def test_missing_product_returns_none_and_is_not_cached(self, store):
        fetch = FakeFetch(missing={"ghost"})

        async def scenario(service):
            result = await service.ensure_product("ghost")
            return result, len(service.cache)

        result, size = _run(store, fetch, scenario)
        assert result is None
        assert size == 0

    def test_handle_is_normalized(self, store):
        fetch = FakeFetch()

        async def scenario(service):
            await service.ensure_product("  Nordic-Sauna ")
            return service.cache.handles()

        assert _run(store, fetch, scenario) == ["nordic-sauna"]

    def test_invalid_handle_raises(self, store):
        fetch = FakeFetch()

        async def scenario(service):
            await service.ensure_product("../etc/passwd")

        with pytest.raises(InvalidHandle):
            _run(store, fetch, scenario)
        assert fetch.calls == []


class TestRefreshAndRequire:
    """Re-ingestion replaces records; require raises on absence."""

    def test_refresh_replaces_cached_record(self, store):
        fetch = FakeFetch()

        async def scenario(service):
            first = await service.ensure_product("a")
            refreshed = await service.refresh_product("a")
            return first, refreshed, service.cache.get("a")

        first, refreshed, cached = _run(store, fetch, scenario)
        assert refreshed is not first
        assert cached is refreshed
        assert fetch.calls == ["a", "a"]

    def test_require_missing_raises(self, store):
        fetch = FakeFetch(missing={"ghost"})

        async def scenario(service):
            await service.require_product("ghost")

        with pytest.raises(ProductNotFound, match="No product for ghost"):
            _run(store, fetch, scenario)

    def test_ingest_always_fetches(self, store):
        fetch = FakeFetch()

        async def scenario(service):
            await service.ingest("a")
            await service.ingest("a")

        _run(store, fetch, scenario)
        assert fetch.calls == ["a", "a"]


class TestFacetsAndHealth:
    """Facet inference and store health probing."""

    def test_facets_from_cached_record(self, store):
        fetch = FakeFetch(haystack="outdoor barrel sauna with wood-burning stove for 4 person groups")

        async def scenario(service):
            return await service.facets("nordic-barrel")

        facets = _run(store, fetch, scenario)
        assert facets.placement == "outdoor"
        assert facets.style == "barrel"
        assert facets.heater_type == "wood"
        assert facets.capacity == 4
        assert facets.price == 4999.0

    def test_health_reports_sample_handle(self, catalog_store):
        catalog_store.feeds["nordic-barrel-sauna"] = {"variants": []}

        async def scenario(service):
            return await service.health()

        out = _run(catalog_store, FakeFetch(), scenario)
        assert out["can_fetch_store"] is True
        assert out["sample_handle"] == "nordic-barrel-sauna"
        assert out["sample_handle_ok"] is True

    def test_health_when_catalog_unreachable(self, store):
        store.failing_catalog_pages.add(1)

        async def scenario(service):
            return await service.health()

        out = _run(store, FakeFetch(), scenario)
        assert out["can_fetch_store"] is False
        assert out["sample_handle"] is None
