"""Noise filtering and deduplication for extracted sections.

Two independent filters run over specification candidates: a CSS-styling
detector and a case-insensitive (key, value) signature set. Product-info
paragraphs are screened against boilerplate and non-product text.
"""

import re
from typing import Iterable, List

from storefront.models import SpecEntry, Sections, STRING_SECTIONS
from storefront.sections import normalize_text

__all__ = [
    "CSS_PROP_RE",
    "CSS_VALUE_RE",
    "MEASURE_RE",
    "STORE_BOILER_RE",
    "NON_PRODUCT_INFO_RE",
    "MAX_PRODUCT_INFO",
    "is_likely_css_pair",
    "filter_css_pairs",
    "is_boilerplate",
    "dedupe_specs",
    "dedupe_strings",
    "finalize_sections",
]

MAX_PRODUCT_INFO = 3

CSS_PROP_RE = re.compile(
    r"^(width|height|(?:max|min)-[a-z-]+|margin|padding|left|right|top|bottom|display|position"
    r"|z-index|background|color|font|line-height|letter-spacing|border|box-shadow|opacity"
    r"|transform|transition|animation|overflow|grid|flex|align|justify|gap|object-fit|text"
    r"|white-space|word|clip|visibility)$",
    re.I,
)
# A bare percentage only counts when it is the whole tail ("50%"), so
# "100% cedar" stays a material.
CSS_VALUE_RE = re.compile(
    r"\b\d+(\.\d+)?(px|vw|vh|rem|em)\b|\b\d+(\.\d+)?%$|calc\(|!important|^var\(",
    re.I,
)
MEASURE_RE = re.compile(
    r"\b\d+(\.\d+)?\s*(in(?:ches)?|cm|mm|ft|feet)\b|\d\s*[\"″”]",
    re.I,
)

STORE_BOILER_RE = re.compile(
    r"(free shipping|lowest price|price match|call us|\bmon[-\s]?fri\b|reviews?\b|add to cart"
    r"|choose an option|unit price|easy returns|why buy from us|family[-\s]owned"
    r"|join our community|contact us|privacy policy|terms of service|legal terms|payment policy)",
    re.I,
)
NON_PRODUCT_INFO_RE = re.compile(
    r"(copyright|©\s?\d{4}|phone|email|info@|@media|bundle-button|modal|script|style"
    r"|newsletter|login|sign in|account|cart|cookies?)",
    re.I,
)


def is_likely_css_pair(entry: SpecEntry) -> bool:
    """True when a key/value pair looks like leaked CSS.

    Physical measurements always survive, even under a style-like key.
    """
    key = (entry.key or "").strip()
    value = (entry.value or "").strip()
    if MEASURE_RE.search(value):
        return False
    if CSS_PROP_RE.match(key):
        return True
    if CSS_VALUE_RE.search(value):
        return True
    return False


def filter_css_pairs(entries: Iterable[SpecEntry]) -> List[SpecEntry]:
    return [e for e in entries if not is_likely_css_pair(e)]


def is_boilerplate(text: str) -> bool:
    """Store marketing or non-product (legal, contact, widget) text."""
    return bool(STORE_BOILER_RE.search(text) or NON_PRODUCT_INFO_RE.search(text))


def dedupe_specs(entries: Iterable[SpecEntry]) -> List[SpecEntry]:
    """Keep the first entry of each case-folded (key, value) signature."""
    seen = set()
    out: List[SpecEntry] = []
    for entry in entries:
        if entry is None:
            continue
        key = normalize_text(entry.key)
        value = normalize_text(entry.value)
        if not key or not value:
            continue
        cleaned = SpecEntry(key, value)
        sig = cleaned.signature()
        if sig not in seen:
            seen.add(sig)
            out.append(cleaned)
    return out


def dedupe_strings(items: Iterable[str]) -> List[str]:
    """Order-preserving dedup on trimmed content; blanks dropped."""
    seen = set()
    out: List[str] = []
    for item in items:
        text = (item or "").strip()
        if text and text not in seen:
            seen.add(text)
            out.append(text)
    return out


def finalize_sections(raw: Sections) -> Sections:
    """Apply every filter and dedup pass to freshly mined sections."""
    product_info = [normalize_text(t) for t in raw.product_info]
    product_info = [t for t in product_info if t and not is_boilerplate(t)]

    final = Sections(
        product_info=dedupe_strings(product_info)[:MAX_PRODUCT_INFO],
        specifications=filter_css_pairs(dedupe_specs(raw.specifications)),
    )
    for name in STRING_SECTIONS:
        if name == "product_info":
            continue
        setattr(final, name, dedupe_strings(getattr(raw, name)))
    return final
