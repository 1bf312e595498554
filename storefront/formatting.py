"""Plain-text rendering of product records."""

import re
from typing import Iterable, List, Optional

from storefront.models import ProductRecord, SpecEntry
from storefront.sections import DOCUMENT_URL_RE

__all__ = [
    "usd",
    "usd_cents",
    "clip",
    "format_kv_list",
    "format_bullets",
    "extract_manual_links",
    "format_product_full",
    "format_product_info_only",
    "format_product_overview",
]

MAX_MANUAL_LINKS = 10
MAX_OVERVIEW_BULLETS = 6
OVERVIEW_CLIP = 180

PREFERRED_SPEC_RE = re.compile(
    r"capacity|people|material|wood|dimension|width|depth|height|roof|glass|door|bench|lighting|warranty",
    re.I,
)


def usd(amount: Optional[float]) -> Optional[str]:
    """Whole-dollar display string: 1299.0 -> "$1,299"."""
    if not amount or amount <= 0:
        return None
    return f"${amount:,.0f}"


def usd_cents(cents: Optional[int]) -> Optional[str]:
    """Dollar string from minor units, up to two decimals: 129950 -> "$1,299.5"."""
    if cents is None:
        return None
    text = f"{cents / 100:,.2f}".rstrip("0").rstrip(".")
    return f"${text}"


def clip(text: Optional[str], limit: int = 1200) -> Optional[str]:
    if text is None:
        return None
    text = re.sub(r"\s+", " ", str(text)).strip()
    return text[:limit] + " …" if len(text) > limit else text


def format_kv_list(entries: Iterable[SpecEntry]) -> str:
    return "\n".join(f"{e.key}: {e.value}" for e in entries)


def format_bullets(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def extract_manual_links(record: ProductRecord) -> List[str]:
    """Document URLs (PDF/DOC) found anywhere in a record's sections."""
    s = record.sections
    texts: List[str] = []
    for name in ("manuals", "product_info", "features", "shipping", "warranty", "returns"):
        texts.extend(getattr(s, name))
    texts.extend(str(e) for e in s.specifications)

    links: List[str] = []
    for text in texts:
        for url in DOCUMENT_URL_RE.findall(text):
            if url not in links:
                links.append(url)
    return links[:MAX_MANUAL_LINKS]


def format_product_full(record: ProductRecord) -> str:
    """Every extracted section as plain text."""
    s = record.sections
    parts = [record.title, record.url]
    price = record.price_from_formatted or usd(record.price_from)
    if price:
        parts.append(f"Price from: {price}")

    blocks = [
        ("Product Information", s.product_info),
        ("Features", s.features),
    ]
    for heading, items in blocks:
        if items:
            parts.extend(["", heading, format_bullets(items)])
    if s.specifications:
        parts.extend(["", "Specifications", format_kv_list(s.specifications)])
    for heading, items in (
        ("What's Included", s.whats_included),
        ("Warranty", s.warranty),
        ("Shipping / Lead Time", s.shipping),
        ("Returns", s.returns),
    ):
        if items:
            parts.extend(["", heading, format_bullets(items)])

    manuals = extract_manual_links(record)
    if manuals:
        parts.extend(["", "Manuals", format_bullets(manuals)])
    return "\n".join(parts)


def format_product_info_only(record: ProductRecord) -> str:
    info = record.sections.product_info
    if not info:
        return "No product information available."
    return format_bullets(info)


def _bullet(text: str) -> str:
    line = re.sub(r"^[-•\s]+", "", text).strip()
    return f"- {clip(line, OVERVIEW_CLIP)}" if line else ""


def format_product_overview(record: ProductRecord) -> str:
    """Short overview: up to six bullets from features, info, then key specs."""
    s = record.sections
    bullets: List[str] = []

    candidates: List[str] = list(s.features) + list(s.product_info)
    specs = [e for e in s.specifications if e.key and e.value]
    preferred = [e for e in specs if PREFERRED_SPEC_RE.search(f"{e.key} {e.value}")]
    candidates.extend(str(e) for e in preferred + specs)

    for text in candidates:
        if len(bullets) >= MAX_OVERVIEW_BULLETS:
            break
        bullet = _bullet(str(text))
        if bullet and bullet not in bullets:
            bullets.append(bullet)

    lines = [record.title, ""]
    if record.url:
        lines.extend([f"Click here - {record.url}", ""])
    lines.extend(bullets)
    return "\n".join(lines)
