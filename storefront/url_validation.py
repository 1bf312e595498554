"""Handle and product URL validation utilities."""

import re
from typing import List, Optional

from storefront.errors import InvalidHandle

__all__ = [
    "sanitize_handle",
    "validate_handle",
    "is_valid_handle",
    "handle_from_url",
    "parse_handle_list",
    "MAX_HANDLE_LENGTH",
]

MAX_HANDLE_LENGTH = 255

# Catalog handles are URL path segments: lowercase slug characters
HANDLE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


def sanitize_handle(raw: str) -> str:
    """Strip whitespace and control characters and lowercase a handle.

    Args:
        raw: Raw handle string

    Returns:
        Sanitized handle (may be empty)
    """
    if not raw:
        return ""
    handle = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", str(raw)).strip()
    return handle.strip("/").lower()


def validate_handle(raw: str) -> str:
    """Validate a catalog handle.

    Args:
        raw: Handle to validate

    Returns:
        Sanitized, validated handle

    Raises:
        InvalidHandle: If the handle is empty, too long or has bad characters
    """
    handle = sanitize_handle(raw)
    if not handle:
        raise InvalidHandle("Handle is empty")
    if len(handle) > MAX_HANDLE_LENGTH:
        raise InvalidHandle(f"Handle longer than {MAX_HANDLE_LENGTH} characters")
    if ".." in handle or not HANDLE_PATTERN.match(handle):
        raise InvalidHandle(f"Invalid handle: {raw!r}")
    return handle


def is_valid_handle(raw: str) -> bool:
    """Check a handle without raising."""
    try:
        validate_handle(raw)
        return True
    except InvalidHandle:
        return False


def handle_from_url(text: str, store_domain: str) -> Optional[str]:
    """Extract a product handle from a store product URL inside free text.

    >>> handle_from_url("see https://shop.example.com/products/big-sauna?v=1", "shop.example.com")
    'big-sauna'
    """
    if not text or not store_domain:
        return None
    pattern = re.compile(
        rf"https?://[^\s]*{re.escape(store_domain)}/products/([a-z0-9-]+)",
        re.IGNORECASE,
    )
    m = pattern.search(text)
    return m.group(1).lower() if m else None


def parse_handle_list(text: Optional[str]) -> List[str]:
    """Split a comma-separated handle list, dropping blanks and duplicates."""
    if not text:
        return []
    seen = set()
    handles: List[str] = []
    for part in text.split(","):
        handle = part.strip()
        if handle and handle not in seen:
            seen.add(handle)
            handles.append(handle)
    return handles
