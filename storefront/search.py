"""Catalog search: resolve free text to catalog handles.

Three strategies, in order of looseness:

1. Hosted suggestion lookup for a short phrase.
2. Exact paged scan: every word must appear in the title or handle.
3. Any-word paged scan: stop-words dropped, candidates scored by the
   number of matching words.

Paged scans stop at a short or unreadable page and pause between pages.
"""

import asyncio
import re
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from storefront.config import (
    ANY_WORD_PAGE_DELAY,
    CATALOG_PAGE_SIZE,
    FIRST_MATCH_PAGE_DELAY,
    KEYWORD_PAGE_DELAY,
    LIST_ALL_MAX_PAGES,
    LIST_PAGE_DELAY,
    SEARCH_MAX_PAGES,
    SEARCH_MAX_RESULTS,
    STORE_DOMAIN,
    SUGGEST_LIMIT,
)
from storefront.fetcher import fetch_catalog_page, fetch_suggestions, handle_exists
from storefront.logging_config import get_logger
from storefront.models import CatalogHit
from storefront.url_validation import handle_from_url

__all__ = [
    "CatalogSearch",
    "STOP_WORDS",
    "slugify",
    "extract_product_query",
]

logger = get_logger("search")

STOP_WORDS = frozenset({
    "what", "whats", "what's", "with", "for", "on", "about", "of", "the", "and", "&",
    "size", "sizes", "dimensions", "dimension", "specs", "spec", "included", "include",
    "warranty", "shipping", "returns", "return", "lead", "time", "leadtime",
})

_QUERY_RE = re.compile(
    r"\b(price|cost|specs?|specifications?|features?|overview|summary|information|info|details?"
    r"|size|dimensions?|warranty|lead\s*time|shipping|delivery|returns?)\b.*?"
    r"\b(for|on|about|regarding|of)\b\s+(.+)",
    re.I,
)
_ANY_WORD_SPLIT_RE = re.compile(r"[^a-z0-9+.-]+", re.I)
_STRICT_CUT_RE = re.compile(r"\s(?:with|–|-|:)\s", re.I)
_LOOSE_CUT_RE = re.compile(r"[,;]|\band\b|\bwith\b|\bfor\b", re.I)


def slugify(text: str) -> str:
    """Handle-style slug: "Nordic 4-Person Sauna™" -> "nordic-4-person-sauna"."""
    s = (text or "").lower()
    s = re.sub(r"[™®©]", "", s)
    s = re.sub(r"[^a-z0-9\s-]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    s = s.replace(" ", "-")
    return re.sub(r"-+", "-", s)


def extract_product_query(message: str) -> str:
    """Pull the product phrase out of "specs for the Nordic sauna" style text."""
    m = _QUERY_RE.search(message or "")
    if m and m.group(3):
        return m.group(3).strip()
    return (message or "").strip()


def _matches_word(word: str, title: str, handle: str) -> bool:
    return word in title or slugify(word) in handle


class CatalogSearch:
    """Free-text search over one store's catalog."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        store_domain: str = STORE_DOMAIN,
        page_size: int = CATALOG_PAGE_SIZE,
        page_delay_scale: float = 1.0,
    ):
        """
        Args:
            client: Shared AsyncClient rooted at the store
            store_domain: Used to recognize pasted product URLs
            page_size: Catalog page size; a shorter page ends a scan
            page_delay_scale: Multiplier on inter-page delays (0 disables them)
        """
        self.client = client
        self.store_domain = store_domain
        self.page_size = page_size
        self.page_delay_scale = page_delay_scale

    async def _pages(self, max_pages: int, delay: float) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield catalog pages until a short, empty or failed page."""
        for page in range(1, max_pages + 1):
            items = await fetch_catalog_page(self.client, page, self.page_size)
            if not items:
                return
            yield items
            if len(items) < self.page_size:
                return
            await asyncio.sleep(delay * self.page_delay_scale)

    async def suggest(self, phrase: str, limit: int = SUGGEST_LIMIT) -> List[CatalogHit]:
        """Upstream-ranked suggestions for a short phrase."""
        if not phrase or not phrase.strip():
            return []
        return await fetch_suggestions(self.client, phrase.strip(), limit)

    async def find_first(self, keyword: str, max_pages: int = SEARCH_MAX_PAGES) -> Optional[str]:
        """First handle whose title contains the phrase or whose handle contains its slug."""
        kw = (keyword or "").lower().strip()
        if not kw:
            return None
        slug = slugify(keyword)
        async for items in self._pages(max_pages, FIRST_MATCH_PAGE_DELAY):
            for p in items:
                title = str(p.get("title") or "").lower()
                handle = str(p.get("handle") or "").lower()
                if handle and (kw in title or (slug and slug in handle)):
                    return p["handle"]
        return None

    async def search_by_keyword(
        self,
        keyword: str,
        max_pages: int = SEARCH_MAX_PAGES,
        max_results: int = SEARCH_MAX_RESULTS,
    ) -> List[CatalogHit]:
        """Items whose title or handle contains every word of the query."""
        words = [w for w in (keyword or "").lower().split() if w]
        if not words:
            return []
        results: List[CatalogHit] = []
        seen = set()
        async for items in self._pages(max_pages, KEYWORD_PAGE_DELAY):
            for p in items:
                title = str(p.get("title") or "")
                handle = str(p.get("handle") or "")
                if not handle or handle.lower() in seen:
                    continue
                if all(_matches_word(w, title.lower(), handle.lower()) for w in words):
                    seen.add(handle.lower())
                    results.append(CatalogHit(handle=handle, title=title))
                    if len(results) >= max_results:
                        return results
        return results

    async def search_by_any_word(
        self,
        keyword: str,
        max_pages: int = SEARCH_MAX_PAGES,
        max_results: int = SEARCH_MAX_RESULTS,
    ) -> List[CatalogHit]:
        """Items matching any significant word, best score first.

        Ties go to the shorter title.
        """
        words: List[str] = []
        for w in _ANY_WORD_SPLIT_RE.split((keyword or "").lower()):
            w = w.strip()
            if len(w) >= 2 and w not in STOP_WORDS and w not in words:
                words.append(w)
        if not words:
            return []

        scored: List[CatalogHit] = []
        seen = set()
        async for items in self._pages(max_pages, ANY_WORD_PAGE_DELAY):
            for p in items:
                title = str(p.get("title") or "")
                handle = str(p.get("handle") or "")
                if not handle or handle.lower() in seen:
                    continue
                score = sum(1 for w in words if _matches_word(w, title.lower(), handle.lower()))
                if score > 0:
                    seen.add(handle.lower())
                    scored.append(CatalogHit(handle=handle, title=title, score=score))

        scored.sort(key=lambda h: (-h.score, len(h.title)))
        return scored[:max_results]

    async def list_all_handles(self, max_pages: int = LIST_ALL_MAX_PAGES) -> List[str]:
        """Every handle in the catalog, de-duplicated in listing order."""
        handles: List[str] = []
        seen = set()
        async for items in self._pages(max_pages, LIST_PAGE_DELAY):
            for p in items:
                handle = p.get("handle")
                if handle and handle not in seen:
                    seen.add(handle)
                    handles.append(handle)
        logger.info(f"Catalog listing found {len(handles)} handles")
        return handles

    async def search(self, phrase: str, max_results: int = SEARCH_MAX_RESULTS) -> List[CatalogHit]:
        """Three-tier search: suggestions, then exact keyword, then any-word."""
        phrase = (phrase or "").strip()
        if not phrase:
            return []

        hits = await self.suggest(phrase)
        if hits:
            logger.debug(f"search {phrase!r}: {len(hits)} suggestion hits")
            return hits[:max_results]

        hits = await self.search_by_keyword(phrase, max_results=max_results)
        if hits:
            logger.debug(f"search {phrase!r}: {len(hits)} keyword hits")
            return hits

        hits = await self.search_by_any_word(phrase, max_results=max_results)
        logger.debug(f"search {phrase!r}: {len(hits)} any-word hits")
        return hits

    async def resolve_handle(self, text: str) -> Optional[str]:
        """Best single handle for a message, or None.

        A pasted product URL wins; then the top suggestion; then slug
        guesses confirmed against the variant feed; then the first exact
        catalog match.
        """
        from_url = handle_from_url(text, self.store_domain)
        if from_url:
            return from_url

        phrase = extract_product_query(text)
        if not phrase:
            return None

        hits = await self.suggest(phrase)
        if hits:
            return hits[0].handle

        guesses: List[str] = []
        full = slugify(phrase)
        if full:
            guesses.append(full)
        cut = _STRICT_CUT_RE.split(phrase)[0]
        if cut and len(cut) > 6 and slugify(cut) not in guesses:
            guesses.append(slugify(cut))
        for guess in guesses:
            if await handle_exists(self.client, guess):
                return guess

        return await self.find_first(phrase)

    async def resolve_handle_loose(self, text: str) -> Optional[str]:
        """Any-word fallback resolution, retrying on the phrase's first clause."""
        phrase = extract_product_query(text)
        hits = await self.search_by_any_word(phrase, max_results=5)
        if hits:
            return hits[0].handle
        cut = _LOOSE_CUT_RE.split(phrase)[0].strip()
        if len(cut) > 3 and cut != phrase:
            hits = await self.search_by_any_word(cut, max_results=5)
            if hits:
                return hits[0].handle
        return None
