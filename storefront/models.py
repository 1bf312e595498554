"""Data models for product records."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

__all__ = [
    "Variant",
    "SpecEntry",
    "Sections",
    "ProductRecord",
    "CatalogHit",
    "ProductFacets",
    "STRING_SECTIONS",
]

# Sections holding plain strings, in display order
STRING_SECTIONS = (
    "product_info",
    "features",
    "whats_included",
    "warranty",
    "shipping",
    "returns",
    "manuals",
)


def _to_cents(raw: Any) -> int:
    """Coerce a feed price (int cents or numeric string) to int minor units."""
    if raw is None or raw == "":
        return 0
    try:
        return int(round(float(raw)))
    except (TypeError, ValueError):
        return 0


@dataclass
class Variant:
    """One purchasable variant from the product's JSON feed."""

    id: Optional[int]
    title: str
    price_cents: int
    available: bool = False
    compare_at_price_cents: int = 0
    sku: Optional[str] = None
    barcode: Optional[str] = None
    option1: Optional[str] = None
    option2: Optional[str] = None
    option3: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: Optional[str] = None

    @classmethod
    def from_feed(cls, data: Dict[str, Any]) -> "Variant":
        return cls(
            id=data.get("id"),
            title=str(data.get("title") or ""),
            price_cents=_to_cents(data.get("price")),
            available=bool(data.get("available")),
            compare_at_price_cents=_to_cents(data.get("compare_at_price")),
            sku=data.get("sku") or None,
            barcode=data.get("barcode") or None,
            option1=data.get("option1"),
            option2=data.get("option2"),
            option3=data.get("option3"),
            weight=data.get("weight"),
            weight_unit=data.get("weight_unit"),
        )


@dataclass(frozen=True)
class SpecEntry:
    """A single specification key/value pair."""

    key: str
    value: str

    def signature(self) -> Tuple[str, str]:
        """Case-folded identity used for deduplication."""
        return (self.key.casefold(), self.value.casefold())

    def __str__(self) -> str:
        return f"{self.key}: {self.value}"


@dataclass
class Sections:
    """Named content sections extracted from a product page."""

    product_info: List[str] = field(default_factory=list)
    specifications: List[SpecEntry] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    whats_included: List[str] = field(default_factory=list)
    warranty: List[str] = field(default_factory=list)
    shipping: List[str] = field(default_factory=list)
    returns: List[str] = field(default_factory=list)
    manuals: List[str] = field(default_factory=list)

    def text_blob(self) -> str:
        """All textual content joined with spaces, for keyword matching."""
        parts = [
            " ".join(self.product_info),
            " ".join(self.features),
            " ".join(self.whats_included),
            " ".join(self.warranty),
            " ".join(self.shipping),
            " ".join(self.returns),
            " ".join(f"{s.key} {s.value}" for s in self.specifications),
        ]
        return " ".join(parts)

    def is_empty(self) -> bool:
        return not self.specifications and not any(
            getattr(self, name) for name in STRING_SECTIONS
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {name: list(getattr(self, name)) for name in STRING_SECTIONS}
        out["specifications"] = [{"key": s.key, "value": s.value} for s in self.specifications]
        return out


@dataclass
class ProductRecord:
    """Normalized product record keyed by its catalog handle.

    A record is fully replaced on re-ingestion, never merged.
    """

    handle: str
    title: str
    url: str
    vendor: Optional[str] = None
    price_from: Optional[float] = None
    price_from_formatted: Optional[str] = None
    variants: List[Variant] = field(default_factory=list)
    sections: Sections = field(default_factory=Sections)
    # Lowercase concatenation of title + all section text
    haystack: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handle": self.handle,
            "title": self.title,
            "url": self.url,
            "vendor": self.vendor,
            "price_from": self.price_from,
            "price_from_formatted": self.price_from_formatted,
            "variants": [asdict(v) for v in self.variants],
            "sections": self.sections.to_dict(),
        }


@dataclass
class CatalogHit:
    """A search result pointing at a catalog handle."""

    handle: str
    title: str
    score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"handle": self.handle, "title": self.title, "score": self.score}


@dataclass
class ProductFacets:
    """Typed attributes inferred from a record's text.

    Every field is optional; None means unknown, not excluded.
    """

    placement: Optional[str] = None
    heat: Optional[str] = None
    heater_type: Optional[str] = None
    power: Optional[str] = None
    style: Optional[str] = None
    capacity: Optional[int] = None
    price: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
