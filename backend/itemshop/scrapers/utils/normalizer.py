"""Text normalization helpers shared by the extraction stages."""

import re
from typing import Optional


_DIGITS_RE = re.compile(r"[0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_first_integer(text: Optional[str]) -> int:
    """Parse the first run of ASCII digits in a string.

    Thousands separators split the run, so "1,500" yields 1. Storefront
    prices are rendered without separators.

    Args:
        text: Raw text such as "1500" or "512w"

    Returns:
        The parsed integer, or 0 when the text holds no digits
    """
    if not text:
        return 0
    match = _DIGITS_RE.search(text)
    return int(match.group(0)) if match else 0


def normalize_for_match(text: Optional[str]) -> str:
    """Lowercase and drop every whitespace character."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub("", text).lower()


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces and strip the ends."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def absolutize_url(href: Optional[str], base_url: str) -> str:
    """Resolve a storefront href against the site base URL.

    Hrefs that already start with "http" are returned unchanged; anything
    else is appended to base_url as-is.
    """
    if not href:
        return ""
    if href.startswith("http"):
        return href
    return f"{base_url}{href}"
