"""Tests for section extraction from product page HTML."""

import json
import time

import pytest
from bs4 import BeautifulSoup

from storefront.html_utils import (
    element_text_lines,
    extract_ld_json_specs,
    extract_sections,
    extract_strict_product_info,
    extract_title,
    find_content_block,
    find_description_root,
    kv_from_dl,
    kv_from_li,
    kv_from_table,
)
from storefront.models import SpecEntry


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _page(body: str) -> BeautifulSoup:
    return _soup(f'<html><body><div class="product__description">{body}</div></body></html>')


MIXED_PAGE = """
<html><body>
  <div class="product__description">
    <h2>Product Overview</h2>
    <p>This handcrafted cedar sauna brings authentic Finnish heat to your backyard all year.</p>
    <h2>Specifications</h2>
    <ul>
      <li><strong>Capacity:</strong> 4 people</li>
      <li><span>Heater</span><span>Harvia 8 kW</span></li>
      <li>Voltage: 240V</li>
    </ul>
    <table>
      <tr><th>Weight</th><td>450 lbs</td></tr>
    </table>
    <h3>Features</h3>
    <ul><li>Panoramic glass front</li><li>LED lighting</li></ul>
    <h3>What's Included</h3>
    <ul><li>Sauna stones</li><li>Bucket and ladle</li></ul>
  </div>
</body></html>
"""


class TestExtractSectionsScenarios:
    """End-to-end extraction over representative page shapes."""

    def test_flat_specifications_list(self, spec_page_html):
        """An h2 Specifications heading followed by a list yields exactly those specs."""
        sections = extract_sections(_soup(spec_page_html))

        assert sections.specifications == [
            SpecEntry("Capacity", "2"),
            SpecEntry("Voltage", "240V"),
        ]
        assert sections.product_info == []
        assert sections.features == []
        assert sections.whats_included == []
        assert sections.warranty == []
        assert sections.shipping == []
        assert sections.returns == []
        assert sections.manuals == []

    def test_extraction_is_deterministic(self):
        """Repeated runs over one fixture produce byte-identical output."""
        first = json.dumps(extract_sections(_soup(MIXED_PAGE)).to_dict(), sort_keys=True)
        for _ in range(5):
            again = json.dumps(extract_sections(_soup(MIXED_PAGE)).to_dict(), sort_keys=True)
            assert again == first

    def test_mixed_page(self):
        sections = extract_sections(_soup(MIXED_PAGE))

        assert sections.product_info == [
            "This handcrafted cedar sauna brings authentic Finnish heat to your backyard all year."
        ]
        assert SpecEntry("Capacity", "4 people") in sections.specifications
        assert SpecEntry("Heater", "Harvia 8 kW") in sections.specifications
        assert SpecEntry("Voltage", "240V") in sections.specifications
        assert SpecEntry("Weight", "450 lbs") in sections.specifications
        assert sections.features == ["Panoramic glass front", "LED lighting"]
        assert sections.whats_included == ["Sauna stones", "Bucket and ladle"]

    def test_specifications_have_unique_signatures(self):
        sections = extract_sections(_soup(MIXED_PAGE))
        signatures = [s.signature() for s in sections.specifications]
        assert len(signatures) == len(set(signatures))
        assert all(s.key and s.value for s in sections.specifications)

    def test_aria_controls_panel(self):
        page = _page(
            '<button aria-controls="panel-features"><h3>Features</h3></button>'
            '<div id="panel-features"><ul><li>Cedar interior</li><li>LED lighting</li></ul></div>'
        )
        sections = extract_sections(page)
        assert sections.features == ["Cedar interior", "LED lighting"]

    def test_details_accordion_text_panel(self):
        page = _soup(
            "<html><body><details><summary><strong>Warranty</strong></summary>"
            "<div><p>5 year limited warranty on the cabin and heater.</p></div>"
            "</details></body></html>"
        )
        sections = extract_sections(page)
        assert sections.warranty == ["5 year limited warranty on the cabin and heater."]

    def test_faq_is_discarded(self):
        page = _page("<h2>FAQ</h2><p>Is assembly required? Yes, about two hours of work.</p>")
        assert extract_sections(page).is_empty()

    def test_prose_lines_filtered_by_vocabulary_and_css(self):
        page = _page(
            "<p>Capacity: 4 people<br>margin: 12px<br>Width: 24 in<br>"
            "Height: 100%<br>Favorite color: blue</p>"
        )
        sections = extract_sections(page)
        assert sections.specifications == [
            SpecEntry("Capacity", "4 people"),
            SpecEntry("Width", "24 in"),
        ]

    def test_definition_list(self):
        page = _page("<dl><dt>Door:</dt><dd>Tempered glass</dd><dt>Bench</dt><dd>Cedar</dd></dl>")
        sections = extract_sections(page)
        assert sections.specifications == [
            SpecEntry("Door", "Tempered glass"),
            SpecEntry("Bench", "Cedar"),
        ]

    def test_json_ld_description_specs(self):
        html = (
            "<html><body><p>Nothing here</p>"
            '<script type="application/ld+json">'
            '{"@type": "Product", "description": "Capacity: 3 people\\nHeater: 4.5 kW\\nGreat for families"}'
            "</script></body></html>"
        )
        sections = extract_sections(_soup(html))
        assert sections.specifications == [
            SpecEntry("Capacity", "3 people"),
            SpecEntry("Heater", "4.5 kW"),
        ]

    def test_manual_links_absolutized(self):
        page = _page('<h3>Downloads</h3><p><a href="/files/owner-manual.pdf">Owner manual</a></p>')
        sections = extract_sections(page, base_url="https://shop.example.com/products/nordic")
        assert "https://shop.example.com/files/owner-manual.pdf" in sections.manuals


class TestProductInfo:
    """Strict product-information mining."""

    def test_boilerplate_and_short_paragraphs_skipped(self):
        root = find_description_root(_page(
            "<h2>Product Overview</h2>"
            "<p>This handcrafted cedar sauna brings authentic Finnish heat to your backyard all year.</p>"
            "<p>Free shipping on all orders over fifty dollars this weekend only, shop now.</p>"
            "<p>Too short.</p>"
        ))
        assert extract_strict_product_info(root) == [
            "This handcrafted cedar sauna brings authentic Finnish heat to your backyard all year."
        ]

    def test_capped_at_three_paragraphs(self):
        paragraph = "<p>Paragraph number {n} describes the sauna cabin in plenty of detail.</p>"
        body = "<h2>Description</h2>" + "".join(paragraph.format(n=n) for n in range(5))
        info = extract_strict_product_info(find_description_root(_page(body)))
        assert len(info) == 3

    def test_no_overview_heading(self):
        root = find_description_root(_page("<p>Some words that form a long enough paragraph here.</p>"))
        assert extract_strict_product_info(root) == []


class TestHelpers:
    """Individual parsing helpers."""

    def test_title_prefers_og_title(self, spec_page_html):
        assert extract_title(_soup(spec_page_html), fallback="x") == "Nordic Barrel Sauna"

    def test_title_falls_back_to_h1_then_handle(self):
        assert extract_title(_soup("<h1>Cedar Sauna</h1>"), fallback="x") == "Cedar Sauna"
        assert extract_title(_soup("<p>nothing</p>"), fallback="cedar-sauna") == "cedar-sauna"

    def test_description_root_falls_back_to_body(self):
        soup = _soup("<html><body><p>hi</p></body></html>")
        assert find_description_root(soup).name == "body"

    @pytest.mark.parametrize(
        "html,expected",
        [
            ("<li><strong>Heater:</strong> 6 kW Harvia</li>", SpecEntry("Heater", "6 kW Harvia")),
            ("<li><span>Voltage</span><span>240V</span></li>", SpecEntry("Voltage", "240V")),
            ("<li>Interior: Canadian cedar</li>", SpecEntry("Interior", "Canadian cedar")),
            ("<li>Plain bullet</li>", None),
        ],
    )
    def test_kv_from_li(self, html, expected):
        assert kv_from_li(_soup(html).li) == expected

    def test_kv_from_table_skips_single_cell_rows(self):
        table = _soup(
            "<table><tr><th colspan='2'>Specs</th></tr>"
            "<tr><td>Heater</td><td>6 kW</td></tr></table>"
        ).table
        assert kv_from_table(table) == [SpecEntry("Heater", "6 kW")]

    def test_kv_from_dl_strips_colon(self):
        dl = _soup("<dl><dt>Door:</dt><dd>Glass</dd></dl>").dl
        assert kv_from_dl(dl) == [SpecEntry("Door", "Glass")]

    def test_content_block_for_flat_heading_is_none(self):
        soup = _page("<h2>Specifications</h2><ul><li>Capacity: 2</li></ul>")
        assert find_content_block(soup, soup.h2) is None

    def test_content_block_for_details(self):
        soup = _soup(
            "<details><summary><strong>Warranty</strong></summary><div id='body'>Five years</div></details>"
        )
        block = find_content_block(soup, soup.strong)
        assert block is not None and block.get("id") == "body"

    def test_invalid_json_ld_ignored(self):
        soup = _soup('<script type="application/ld+json">{not json</script>')
        assert extract_ld_json_specs(soup) == []


class TestProseSpecs:
    """"Key: Value" lines mined from paragraphs and divs."""

    def test_nested_div_lines_each_mined(self):
        sections = extract_sections(_page(
            "<div>Material: Cedar<div>Voltage: 240V<br>Weight: 300 lb</div></div>"
        ))
        assert sections.specifications == [
            SpecEntry("Material", "Cedar"),
            SpecEntry("Voltage", "240V"),
            SpecEntry("Weight", "300 lb"),
        ]

    def test_script_text_ignored(self):
        sections = extract_sections(_page("<div><script>Capacity: 99</script><p>Capacity: 2</p></div>"))
        assert sections.specifications == [SpecEntry("Capacity", "2")]

    def test_element_text_lines_split_at_blocks(self):
        el = _soup("<div>Door: Glass <b>tempered</b><p>Bench: Aspen</p>tail</div>").div
        assert element_text_lines(el) == ["Door: Glass tempered", "Bench: Aspen", "tail"]

    def test_deeply_nested_page_stays_fast(self):
        block = "<div>" * 25 + "<p>Capacity: 4</p><p>Interior: Hemlock</p>" + "</div>" * 25
        page = _page(block * 200)

        started = time.perf_counter()
        sections = extract_sections(page)
        elapsed = time.perf_counter() - started

        assert sections.specifications == [SpecEntry("Capacity", "4"), SpecEntry("Interior", "Hemlock")]
        assert elapsed < 3.0
