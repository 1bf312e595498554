"""Tests for catalog search against a fake store."""

import asyncio

import pytest

from storefront.search import CatalogSearch, extract_product_query, slugify


def _search(store, scenario, page_size: int = 2):
    async def main():
        async with store.client() as client:
            search = CatalogSearch(
                client,
                store_domain="shop.example.com",
                page_size=page_size,
                page_delay_scale=0,
            )
            return await scenario(search)

    return asyncio.run(main())


class TestHelpers:
    """Pure text helpers."""

    @pytest.mark.parametrize(
        "text,slug",
        [
            ("Nordic 4-Person Sauna™", "nordic-4-person-sauna"),
            ("Cedar & Glass  Sauna", "cedar-glass-sauna"),
            ("  --Odd--Name-- ", "-odd-name-"),
            ("", ""),
        ],
    )
    def test_slugify(self, text, slug):
        assert slugify(text) == slug

    def test_extract_product_query(self):
        assert extract_product_query("specs for Nordic Barrel Sauna") == "Nordic Barrel Sauna"
        assert extract_product_query("What is the lead time on the cedar cabin") == "the cedar cabin"
        assert extract_product_query("  nordic barrel  ") == "nordic barrel"


class TestPagedScans:
    """Keyword, any-word and listing scans."""

    def test_keyword_requires_every_word(self, catalog_store):
        hits = _search(catalog_store, lambda s: s.search_by_keyword("barrel sauna"))
        assert [h.handle for h in hits] == ["nordic-barrel-sauna", "outdoor-barrel-sauna-large"]

    def test_keyword_stops_at_max_results(self, catalog_store):
        hits = _search(catalog_store, lambda s: s.search_by_keyword("sauna", max_results=2))
        assert [h.handle for h in hits] == ["nordic-barrel-sauna", "cedar-infrared-sauna"]
        assert len(catalog_store.requests) == 1

    def test_any_word_ranked_by_score_then_title_length(self, catalog_store):
        hits = _search(catalog_store, lambda s: s.search_by_any_word("barrel sauna"))
        assert [h.handle for h in hits] == [
            "nordic-barrel-sauna",
            "outdoor-barrel-sauna-large",
            "sauna-stones",
            "cedar-infrared-sauna",
        ]
        assert [h.score for h in hits] == [2, 2, 1, 1]

    def test_any_word_only_stop_words_makes_no_requests(self, catalog_store):
        hits = _search(catalog_store, lambda s: s.search_by_any_word("specs for the"))
        assert hits == []
        assert catalog_store.requests == []

    def test_scan_stops_at_short_page(self, catalog_store):
        _search(catalog_store, lambda s: s.search_by_keyword("zebra"))
        # 5 items at 2 per page: pages 1, 2 and the short page 3
        assert len(catalog_store.requests) == 3

    def test_list_all_handles_dedupes(self, catalog_store):
        catalog_store.catalog.append({"handle": "sauna-stones", "title": "Sauna Stones (dup)"})
        handles = _search(catalog_store, lambda s: s.list_all_handles())
        assert handles == [
            "nordic-barrel-sauna",
            "cedar-infrared-sauna",
            "sauna-stones",
            "outdoor-barrel-sauna-large",
            "heater-kit",
        ]

    def test_failed_page_ends_scan(self, catalog_store):
        catalog_store.failing_catalog_pages.add(2)
        handles = _search(catalog_store, lambda s: s.list_all_handles())
        assert handles == ["nordic-barrel-sauna", "cedar-infrared-sauna"]

    def test_find_first_matches_slug(self, catalog_store):
        handle = _search(catalog_store, lambda s: s.find_first("Heater  Kit"))
        assert handle == "heater-kit"


class TestThreeTierSearch:
    """Suggestions, then exact keyword, then any-word."""

    def test_suggestions_win(self, catalog_store):
        catalog_store.suggestions["nordic"] = [{"handle": "nordic-barrel-sauna", "title": "Nordic Barrel Sauna"}]
        hits = _search(catalog_store, lambda s: s.search("nordic"))
        assert [h.handle for h in hits] == ["nordic-barrel-sauna"]
        assert catalog_store.paths() == ["/search/suggest.json"]

    def test_keyword_tier(self, catalog_store):
        hits = _search(catalog_store, lambda s: s.search("infrared sauna"))
        assert [h.handle for h in hits] == ["cedar-infrared-sauna"]

    def test_any_word_tier(self, catalog_store):
        hits = _search(catalog_store, lambda s: s.search("barrel zebra"))
        assert [h.handle for h in hits] == ["nordic-barrel-sauna", "outdoor-barrel-sauna-large"]

    def test_blank_phrase(self, catalog_store):
        assert _search(catalog_store, lambda s: s.search("   ")) == []
        assert catalog_store.requests == []


class TestResolveHandle:
    """Single-handle resolution."""

    def test_product_url_short_circuits(self, catalog_store):
        text = "tell me about https://shop.example.com/products/nordic-barrel-sauna please"
        assert _search(catalog_store, lambda s: s.resolve_handle(text)) == "nordic-barrel-sauna"
        assert catalog_store.requests == []

    def test_top_suggestion(self, catalog_store):
        catalog_store.suggestions["cedar"] = [
            {"handle": "cedar-infrared-sauna", "title": "Cedar Infrared Sauna"},
            {"handle": "sauna-stones", "title": "Sauna Stones"},
        ]
        assert _search(catalog_store, lambda s: s.resolve_handle("price of cedar")) == "cedar-infrared-sauna"

    def test_slug_guess_confirmed_by_feed(self, catalog_store):
        catalog_store.feeds["heater-kit"] = {"variants": []}
        assert _search(catalog_store, lambda s: s.resolve_handle("specs for Heater Kit")) == "heater-kit"
        assert "/products.json" not in catalog_store.paths()

    def test_falls_back_to_catalog_scan(self, catalog_store):
        handle = _search(catalog_store, lambda s: s.resolve_handle("price of cedar infrared"))
        assert handle == "cedar-infrared-sauna"

    def test_unresolvable(self, catalog_store):
        assert _search(catalog_store, lambda s: s.resolve_handle("price of a zebra")) is None

    def test_loose_resolution(self, catalog_store):
        assert _search(catalog_store, lambda s: s.resolve_handle_loose("infrared thing")) == "cedar-infrared-sauna"
