"""Typed facets inferred from a product record's text.

Detection is keyword based and best-effort. A facet that cannot be
detected is None, which matching treats as unknown: it contributes
nothing, it never counts as a mismatch.
"""

import re
from typing import Dict, Mapping, Optional

from storefront.models import ProductFacets, ProductRecord

__all__ = [
    "infer_facets",
    "is_likely_sauna_product",
    "is_within_budget",
    "facet_match_score",
    "FACET_WEIGHTS",
]

_HYBRID_RE = re.compile(r"hybrid", re.I)
_INFRARED_RE = re.compile(r"infrared", re.I)
_TRADITIONAL_RE = re.compile(r"(traditional|electric\s*heater|wood\b|steam)", re.I)

_WOOD_HEATER_RE = re.compile(r"wood[-\s]*(burn(ing)?|stove|fired)", re.I)
_ELECTRIC_HEATER_RE = re.compile(r"(electric\s*(heater|stove)|\b240v\b|\b120v\b)", re.I)

_POWER_120_RE = re.compile(r"\b(110|115|120)v\b", re.I)
_POWER_240_RE = re.compile(r"\b(220|230|240)v\b", re.I)

_OUTDOOR_RE = re.compile(r"outdoor|barrel", re.I)
_INDOOR_RE = re.compile(r"indoor", re.I)
_BARREL_RE = re.compile(r"barrel", re.I)

_CAPACITY_RE = re.compile(r"\b([1-8])\s*[- ]?\s*(person|people|seater)\b", re.I)

_SAUNA_RE = re.compile(r"\bsaunas?\b", re.I)
_ACCESSORY_RE = re.compile(
    r"(sconce|light|lighting|kit|floor kit|stones|thermometer|hygrometer|bucket|ladle|backrest"
    r"|headrest|pillow|cushion|towel|oil|aroma|essence|lamp|controller|control panel|cable|mat"
    r"|underlay|cover|salt|timer|sand\s*timer)",
    re.I,
)
_HEATER_RE = re.compile(r"\bheater\b", re.I)

# Budget bucket -> inclusive/exclusive price test
_BUDGETS = {
    "<2000": lambda p: p < 2000,
    "<3000": lambda p: p < 3000,
    "2000-5000": lambda p: 2000 <= p <= 5000,
    "3000-6000": lambda p: 3000 <= p <= 6000,
    "5000-10000": lambda p: 5000 <= p <= 10000,
    "6000-10000": lambda p: 6000 < p <= 10000,
    ">10000": lambda p: p > 10000,
}

FACET_WEIGHTS: Dict[str, int] = {
    "placement": 20,
    "heat": 20,
    "heater_type": 10,
    "style": 10,
    "capacity": 15,
    "power": 8,
    "budget": 15,
}


def infer_facets(record: ProductRecord) -> ProductFacets:
    """Derive placement, heat style, heater type, power, style, capacity and price."""
    hay = f"{record.haystack} {record.title or ''}"

    heat: Optional[str] = None
    if _HYBRID_RE.search(hay):
        heat = "hybrid"
    elif _INFRARED_RE.search(hay):
        heat = "infrared"
    elif _TRADITIONAL_RE.search(hay):
        heat = "traditional"

    heater_type: Optional[str] = None
    if _WOOD_HEATER_RE.search(hay):
        heater_type = "wood"
    elif _ELECTRIC_HEATER_RE.search(hay):
        heater_type = "electric"

    power: Optional[str] = None
    if _POWER_120_RE.search(hay):
        power = "120v"
    elif _POWER_240_RE.search(hay):
        power = "240v"

    placement: Optional[str] = None
    if _OUTDOOR_RE.search(hay):
        placement = "outdoor"
    elif _INDOOR_RE.search(hay):
        placement = "indoor"

    capacity: Optional[int] = None
    m = _CAPACITY_RE.search(hay)
    if m:
        capacity = int(m.group(1))

    return ProductFacets(
        placement=placement,
        heat=heat,
        heater_type=heater_type,
        power=power,
        style="barrel" if _BARREL_RE.search(hay) else "rect",
        capacity=capacity,
        price=record.price_from,
    )


def is_likely_sauna_product(record: ProductRecord) -> bool:
    """Full sauna units only: accessories and standalone heaters are out."""
    title = (record.title or "").lower()
    if not (_SAUNA_RE.search(title) or _SAUNA_RE.search(record.haystack or "")):
        return False
    if _ACCESSORY_RE.search(title):
        return False
    if _HEATER_RE.search(title):
        return False
    return True


def is_within_budget(price: Optional[float], budget: Optional[str]) -> bool:
    """Whether a price fits a budget bucket; unknown buckets accept anything."""
    if price is None:
        return False
    if not budget or budget == "exploring":
        return True
    test = _BUDGETS.get(budget)
    return test(price) if test else True


def _capacity_matches(wanted: str, capacity: int) -> bool:
    """Match a wanted bucket ("2", "3-4", "5+") against a detected capacity."""
    m = re.fullmatch(r"(\d+)(?:-(\d+)|(\+))?", wanted.strip())
    if not m:
        return False
    low = int(m.group(1))
    if m.group(3):
        return capacity >= low
    high = int(m.group(2)) if m.group(2) else low
    return low <= capacity <= high


def facet_match_score(facets: ProductFacets, wanted: Mapping[str, Optional[str]]) -> int:
    """Score how well facets fit a set of wanted values.

    ``wanted`` maps facet names (placement, heat, heater_type, style,
    capacity, power, budget) to the requested value; "any" or None skips
    the facet. A matching facet adds its weight, a conflicting known facet
    subtracts half of it, and an unknown facet adds nothing.
    """
    score = 0
    for name in ("placement", "heat", "heater_type", "style", "power"):
        want = wanted.get(name)
        have = getattr(facets, name)
        if not want or want == "any" or have is None:
            continue
        weight = FACET_WEIGHTS[name]
        if want == have:
            score += weight
        elif name == "heat" and want == "hybrid" and have in ("traditional", "infrared"):
            score += 8
        elif name != "power":
            score -= weight // 2

    want_capacity = wanted.get("capacity")
    if want_capacity and facets.capacity is not None:
        if _capacity_matches(str(want_capacity), facets.capacity):
            score += FACET_WEIGHTS["capacity"]

    budget = wanted.get("budget")
    if budget and budget != "exploring" and facets.price is not None:
        if is_within_budget(facets.price, budget):
            score += FACET_WEIGHTS["budget"]
    return score
