"""Pure, table-driven classification for product page sections.

Nothing here touches HTML: headings come in as label strings and prose
comes in as lines, so the rules can be tested on their own.
"""

import re
from typing import List, Optional, Pattern, Sequence, Tuple

from storefront.models import SpecEntry

__all__ = [
    "SECTION_PATTERNS",
    "DISCARDED_SECTIONS",
    "SPEC_KEY_RE",
    "INCLUDED_HEADER_RE",
    "PRODUCT_INFO_HEAD_RE",
    "DOCUMENT_URL_RE",
    "classify_heading",
    "is_spec_key",
    "normalize_text",
    "kv_from_text_lines",
    "split_colon_pair",
]

SectionTable = Sequence[Tuple[str, Pattern[str]]]

# Order matters: the first matching pattern wins.
SECTION_PATTERNS: SectionTable = (
    ("specifications", re.compile(r"\b(specs|specification|specifications|technical|tech specs?)\b", re.I)),
    ("features", re.compile(r"\b(features?|key features|additional features|highlights?)\b", re.I)),
    ("whats_included", re.compile(r"\b(what'?s included|included|in the box|box contents?|package contents?)\b", re.I)),
    ("warranty", re.compile(r"\b(warranty|guarantee)\b", re.I)),
    ("shipping", re.compile(r"\b(shipping|delivery|lead[-\s]?time)\b", re.I)),
    ("returns", re.compile(r"\b(returns?|refunds?|exchanges?)\b", re.I)),
    ("faq", re.compile(r"\b(faq|questions?\s*&\s*answers?|frequently asked)\b", re.I)),
    ("manuals", re.compile(r"\b(manual|downloads?|documents?|spec sheet|installation|owner'?s?)\b", re.I)),
    ("product_info", re.compile(r"\b(product information|overview|about|description|summary|details)\b", re.I)),
)

DEFAULT_SECTION = "product_info"

# Recognized but never kept
DISCARDED_SECTIONS = frozenset({"faq"})

SPEC_KEY_RE = re.compile(
    r"^(capacity|heater|heaters|power|watt|kw|amps?|voltage|electrical|interior|exterior"
    r"|dimension|width|depth|height|size|volume|material|wood|door|glass|controls?|weight"
    r"|shipping|timer|speaker|chromotherapy|light|temperature|warranty|window|bench)",
    re.I,
)

INCLUDED_HEADER_RE = re.compile(r"included|in the box|box contents|package contents", re.I)

PRODUCT_INFO_HEAD_RE = re.compile(r"\b(product information|overview|about|description|details)\b", re.I)

DOCUMENT_URL_RE = re.compile(r"(https?://[^\s)\"'<>]+\.(?:pdf|docx?))", re.I)

# Key: Value | Key - Value | Key – Value
_LINE_KV_RE = re.compile(r"^([^:–-]{2,80}?)\s*[:–-]\s*(.+)$")

# Trailing "Key: Value" shape on a list item
_COLON_KV_RE = re.compile(r"^(.{2,80}?):\s*(.+)$")

_WS_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def classify_heading(label: str, table: SectionTable = SECTION_PATTERNS) -> str:
    """Return the section kind for a heading label.

    Labels that match nothing fall into the product-info bucket.
    """
    for kind, pattern in table:
        if pattern.search(label or ""):
            return kind
    return DEFAULT_SECTION


def is_spec_key(key: str) -> bool:
    """True when a key belongs to the specification vocabulary."""
    return bool(SPEC_KEY_RE.match(key or ""))


def kv_from_text_lines(lines: Sequence[str]) -> List[SpecEntry]:
    """Pick "Key: Value" shaped lines out of free text."""
    out: List[SpecEntry] = []
    for raw in lines:
        line = normalize_text(raw)
        if not line:
            continue
        m = _LINE_KV_RE.match(line)
        if m:
            key, value = m.group(1).strip(), m.group(2).strip()
            if key and value:
                out.append(SpecEntry(key, value))
    return out


def split_colon_pair(text: str) -> Optional[SpecEntry]:
    """Split a "Key: Value" string, or return None."""
    m = _COLON_KV_RE.match(normalize_text(text))
    if not m:
        return None
    key, value = m.group(1).strip(), m.group(2).strip()
    if key and value:
        return SpecEntry(key, value)
    return None
