"""HTML parsing and section extraction for storefront product pages.

Product pages come in many shapes: flat headings followed by lists,
accordions and tabs wired up with aria-controls, tables, definition lists
and plain "Key: Value" prose. Everything found here is raw; noise filtering
and dedup happen in ``finalize_sections``.
"""

import copy
import json
from typing import Callable, Iterator, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString, PageElement, PreformattedString

from storefront.logging_config import get_logger
from storefront.models import Sections, SpecEntry
from storefront.noise import filter_css_pairs, finalize_sections, is_boilerplate
from storefront.sections import (
    DISCARDED_SECTIONS,
    DOCUMENT_URL_RE,
    INCLUDED_HEADER_RE,
    PRODUCT_INFO_HEAD_RE,
    classify_heading,
    is_spec_key,
    kv_from_text_lines,
    normalize_text,
    split_colon_pair,
)

__all__ = [
    "DESCRIPTION_SELECTORS",
    "HEADING_TAGS",
    "find_description_root",
    "find_content_block",
    "extract_title",
    "kv_from_li",
    "kv_from_table",
    "kv_from_dl",
    "element_text_lines",
    "extract_strict_product_info",
    "extract_ld_json_specs",
    "extract_sections",
]

logger = get_logger("html_utils")

# Description region, accordions and tabs included. First match in
# document order wins.
DESCRIPTION_SELECTORS = ", ".join([
    ".product__description",
    "[data-product-description]",
    ".product-single__description",
    ".product__accordion", ".accordion", ".collapsible-content",
    ".tabs", ".product-tabs", ".tab-content", ".tabs__panel",
    ".product-v2", ".product-v2-desc", ".product-v2-tab-content",
    ".product-template--tabs",
    ".rte", "main",
])

HEADING_TAGS = ["h1", "h2", "h3", "strong", "b"]
LIST_TAGS = ["ul", "ol"]

ACCORDION_CLASSES = frozenset({
    "accordion", "product__accordion", "collapsible-content", "tabs",
    "product-tabs", "tab-content", "accordion__item",
})
# Panels that directly follow their heading
NEXT_PANEL_CLASSES = frozenset({
    "accordion__content", "collapsible-content__inner", "product__accordion-content",
    "tab-panel", "tabs__panel", "content", "rte",
})
INNER_PANEL_SELECTOR = (
    ".accordion__content, .collapsible-content__inner, .product__accordion-content, "
    ".tab-panel, .tabs__panel, .rte"
)

INFO_SKIP_TAGS = ("style", "script", "noscript", "template", "form", "button", "figure", "table")
INFO_STRIP_TAGS = ["ul", "ol", "table", "form", "button", "a", "svg", "style", "script"]
LINE_BREAK_TAGS = ["p", "li", "div", "h1", "h2", "h3", "h4", "h5", "h6", "tr", "dt", "dd"]
PROSE_BLOCK_TAGS = ("p", "div")
TEXT_SKIP_TAGS = ("style", "script", "noscript", "template")

MIN_INFO_WORDS = 8
MAX_INFO_PARAGRAPHS = 3
MIN_PANEL_TEXT = 30
MIN_FLAT_TEXT = 6

# Sections fed by plain list bullets
BULLET_SECTIONS = frozenset({"features", "whats_included", "warranty", "shipping", "returns", "manuals"})


def _text(el: Optional[Tag]) -> str:
    if el is None:
        return ""
    return normalize_text(el.get_text(" "))


def _has_class(el: Tag, classes: frozenset) -> bool:
    return bool(set(el.get("class") or []) & classes)


def _closest(el: Tag, predicate: Callable[[Tag], bool]) -> Optional[Tag]:
    """Nearest element, starting with ``el`` itself, matching ``predicate``."""
    node: Optional[Tag] = el
    while node is not None and isinstance(node, Tag):
        if predicate(node):
            return node
        node = node.parent
    return None


def _next_element(el: Tag) -> Optional[Tag]:
    return el.find_next_sibling()


def _previous_element(el: Tag) -> Optional[Tag]:
    return el.find_previous_sibling()


def _siblings_until_heading(heading: Tag) -> Iterator[Tag]:
    el = _next_element(heading)
    while el is not None and el.name not in HEADING_TAGS:
        yield el
        el = _next_element(el)


def find_description_root(soup: BeautifulSoup) -> Tag:
    """Locate the product description region, falling back to <body>."""
    root = soup.select_one(DESCRIPTION_SELECTORS)
    if root is not None:
        return root
    return soup.body or soup


def extract_title(soup: BeautifulSoup, fallback: str) -> str:
    """og:title, then the first <h1>, then <title>, then ``fallback``."""
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and normalize_text(og.get("content")):
        return normalize_text(og.get("content"))
    h1 = _text(soup.find("h1"))
    if h1:
        return h1
    title = _text(soup.find("title"))
    return title or fallback


def find_content_block(soup: BeautifulSoup, heading: Tag) -> Optional[Tag]:
    """Find the panel that holds a heading's content.

    Tries, in order: a panel linked through ``aria-controls`` (on the
    heading or an ancestor), then the nearest accordion/tab container's
    panel. Returns None when the caller should walk flat siblings instead.
    """
    owner = _closest(heading, lambda t: t.has_attr("aria-controls"))
    if owner is not None:
        panel_id = owner.get("aria-controls")
        panel = soup.find(id=panel_id) if panel_id else None
        if panel is not None:
            return panel

    container = _closest(
        heading, lambda t: t.name == "details" or _has_class(t, ACCORDION_CLASSES)
    )
    if container is None:
        return None

    following = _next_element(heading)
    if following is not None and _has_class(following, NEXT_PANEL_CLASSES):
        return following
    inner = container.select_one(INNER_PANEL_SELECTOR)
    if inner is not None:
        return inner
    if container.name == "details":
        for child in container.find_all(True, recursive=False):
            if child.name != "summary":
                return child
    return None


def kv_from_li(li: Tag) -> Optional[SpecEntry]:
    """Split a list item into a key/value pair.

    Tries a bold/strong key, then first/last <span>, then a trailing
    "Key: Value" shape.
    """
    strong = li.find(["strong", "b"])
    strong_text = _text(strong)
    if strong_text:
        key = strong_text.rstrip(":：").strip()
        clone = copy.copy(li)
        dropped_span = False
        for child in clone.find_all(True, recursive=False):
            if child.name in ("strong", "b"):
                child.decompose()
            elif child.name == "span" and not dropped_span:
                child.decompose()
                dropped_span = True
        value = _text(clone)
        if not value:
            value = normalize_text(" ".join(s for s in li.find_all(string=True, recursive=False)))
        value = value.lstrip(":：-– ").strip()
        if key and value:
            return SpecEntry(key, value)

    spans = li.find_all("span")
    if len(spans) >= 2:
        key, value = _text(spans[0]), _text(spans[-1])
        if key and value:
            return SpecEntry(key, value)

    return split_colon_pair(_text(li))


def kv_from_table(table: Tag) -> List[SpecEntry]:
    """Row-wise key/value pairs from the first two cells of each row."""
    out: List[SpecEntry] = []
    for tr in table.find_all("tr"):
        cells = tr.find_all(["th", "td"])
        if len(cells) >= 2:
            key, value = _text(cells[0]), _text(cells[1])
            if key and value:
                out.append(SpecEntry(key, value))
    return out


def kv_from_dl(dl: Tag) -> List[SpecEntry]:
    """Term/definition pairs from a <dl>."""
    out: List[SpecEntry] = []
    for dt in dl.find_all("dt"):
        dd = dt.find_next_sibling()
        if dd is None or dd.name != "dd":
            continue
        key, value = _text(dt).rstrip(":").strip(), _text(dd)
        if key and value:
            out.append(SpecEntry(key, value))
    return out


def element_text_lines(el: Tag, blocks_only: bool = False) -> List[str]:
    """Lines of ``el``'s text, split at <br> and block boundaries.

    One pass over the subtree with no cloning. With ``blocks_only``, only
    text inside a <p> or <div> below ``el`` is kept.
    """
    lines: List[str] = []
    buf: List[str] = []

    def flush() -> None:
        for line in " ".join(buf).splitlines():
            line = normalize_text(line)
            if line:
                lines.append(line)
        buf.clear()

    # None marks the end of a block element
    pending: List[Tuple[Optional[PageElement], bool]] = [(el, not blocks_only)]
    while pending:
        node, keep = pending.pop()
        if node is None:
            flush()
        elif isinstance(node, Tag):
            if node.name in TEXT_SKIP_TAGS:
                continue
            if node.name == "br":
                flush()
                continue
            if node is not el and node.name in LINE_BREAK_TAGS:
                flush()
                keep = keep or node.name in PROSE_BLOCK_TAGS
                pending.append((None, keep))
            pending.extend((child, keep) for child in reversed(node.contents))
        elif keep and isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
            buf.append(str(node))
    flush()
    return lines


def extract_strict_product_info(root: Tag) -> List[str]:
    """Paragraphs right after the first overview/description heading.

    Only paragraphs of at least eight words that are neither marketing
    boilerplate nor legal/contact text, at most three.
    """
    head = None
    for candidate in root.find_all(HEADING_TAGS):
        if PRODUCT_INFO_HEAD_RE.search(_text(candidate)):
            head = candidate
            break
    if head is None:
        return []

    out: List[str] = []
    for el in _siblings_until_heading(head):
        if el.name in INFO_SKIP_TAGS:
            continue
        if el.name in LIST_TAGS:
            break
        if el.name in ("p", "div", "section"):
            clone = copy.copy(el)
            for junk in clone.find_all(INFO_STRIP_TAGS):
                junk.decompose()
            text = _text(clone)
            if text and not is_boilerplate(text) and len(text.split()) >= MIN_INFO_WORDS:
                out.append(text)
        if len(out) >= MAX_INFO_PARAGRAPHS:
            break
    return out


def _iter_ld_nodes(data) -> Iterator[dict]:
    if isinstance(data, list):
        nodes = data
    elif isinstance(data, dict):
        nodes = data.get("@graph") or [data]
    else:
        nodes = []
    for node in nodes:
        if isinstance(node, dict):
            yield node


def extract_ld_json_specs(soup: BeautifulSoup) -> List[SpecEntry]:
    """Spec lines from JSON-LD ``description`` fields."""
    out: List[SpecEntry] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Skipping unparsable JSON-LD block")
            continue
        for node in _iter_ld_nodes(data):
            description = node.get("description")
            if not description:
                continue
            lines = [line.strip() for line in str(description).splitlines() if line.strip()]
            entries = [e for e in kv_from_text_lines(lines) if is_spec_key(e.key)]
            out.extend(filter_css_pairs(entries))
    return out


def _document_links(block: Tag, base_url: str) -> List[str]:
    links: List[str] = []
    for a in block.find_all("a", href=True):
        href = urljoin(base_url, a["href"]) if base_url else a["href"]
        if DOCUMENT_URL_RE.search(href):
            links.append(href)
    return links


class _SectionCollector:
    """Accumulates raw section content for one page."""

    def __init__(self, base_url: str):
        self.raw = Sections()
        self.base_url = base_url

    def add_text(self, kind: str, text: str) -> None:
        if kind in DISCARDED_SECTIONS or kind in ("product_info", "specifications"):
            return
        getattr(self.raw, kind).append(text)

    def add_list(self, lst: Tag, kind: str) -> int:
        """Route a list's items by section kind; returns items taken."""
        taken = 0
        for li in lst.find_all("li"):
            if kind == "specifications":
                entry = kv_from_li(li)
                if entry is not None:
                    self.raw.specifications.append(entry)
                    taken += 1
            elif kind in BULLET_SECTIONS:
                text = _text(li)
                if text:
                    getattr(self.raw, kind).append(text)
                    taken += 1
        return taken

    def add_block(self, block: Tag, kind: str) -> None:
        bullets = 0
        for lst in block.find_all(LIST_TAGS):
            bullets += self.add_list(lst, kind)
        for table in block.find_all("table"):
            self.raw.specifications.extend(kv_from_table(table))
        if kind == "manuals":
            links = _document_links(block, self.base_url)
            self.raw.manuals.extend(links)
            bullets += len(links)
        if bullets == 0:
            text = _text(block)
            if len(text) > MIN_PANEL_TEXT:
                self.add_text(kind, text)

    def walk_flat(self, heading: Tag, kind: str) -> None:
        for el in _siblings_until_heading(heading):
            if kind == "product_info" and el.name in ("ul", "ol", "table"):
                break
            if el.name in LIST_TAGS:
                self.add_list(el, kind)
            elif el.name == "table":
                self.raw.specifications.extend(kv_from_table(el))
            else:
                if kind == "manuals":
                    self.raw.manuals.extend(_document_links(el, self.base_url))
                text = _text(el)
                if len(text) > MIN_FLAT_TEXT:
                    self.add_text(kind, text)


def extract_sections(soup: BeautifulSoup, base_url: str = "") -> Sections:
    """Extract, filter and dedupe every section of a product page.

    Args:
        soup: Parsed product page
        base_url: Used to absolutize manual/document links

    Returns:
        Finalized Sections
    """
    root = find_description_root(soup)
    collector = _SectionCollector(base_url)
    raw = collector.raw

    raw.product_info = extract_strict_product_info(root)

    # Headings: accordion/tab panels or a flat sibling walk
    for heading in root.find_all(HEADING_TAGS):
        label = _text(heading)
        if not label:
            continue
        kind = classify_heading(label)
        block = find_content_block(soup, heading)
        if block is not None:
            collector.add_block(block, kind)
        else:
            collector.walk_flat(heading, kind)

    # Unlabeled lists: vocabulary-matched specs and "included" bullets
    for lst in root.find_all(LIST_TAGS):
        for li in lst.find_all("li"):
            entry = kv_from_li(li)
            if entry is not None and is_spec_key(entry.key):
                raw.specifications.append(entry)
        header = _previous_element(lst)
        if header is not None and header.name in ("h2", "h3", "strong", "b"):
            if INCLUDED_HEADER_RE.search(_text(header)):
                raw.whats_included.extend(t for t in (_text(li) for li in lst.find_all("li")) if t)

    for table in root.find_all("table"):
        raw.specifications.extend(kv_from_table(table))
    for dl in root.find_all("dl"):
        raw.specifications.extend(kv_from_dl(dl))
    prose = kv_from_text_lines(element_text_lines(root, blocks_only=True))
    raw.specifications.extend(filter_css_pairs([e for e in prose if is_spec_key(e.key)]))

    raw.specifications.extend(extract_ld_json_specs(soup))

    return finalize_sections(raw)
