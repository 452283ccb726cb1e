"""Responsive image extraction from catalog tiles."""

from typing import List

from bs4 import Tag

from itemshop.scrapers.base import ImageRecord
from itemshop.scrapers.utils.normalizer import extract_first_integer


ORIGINAL_RESOLUTION = "original"


def _is_usable_url(url: str) -> bool:
    return bool(url) and not url.startswith(",")


def _parse_srcset(srcset: str) -> List[ImageRecord]:
    records = []
    for candidate in srcset.split(","):
        parts = candidate.split()
        if len(parts) < 2:
            continue
        url, descriptor = parts[0], parts[1]
        if not _is_usable_url(url):
            continue
        records.append(
            ImageRecord(url=url, resolution=descriptor, width=extract_first_integer(descriptor))
        )
    return records


def extract_images(item: Tag) -> List[ImageRecord]:
    """Collect every image candidate under a catalog tile.

    Each <img> contributes its srcset candidates, or its plain src (as
    resolution "original", width 0) when it has no srcset.

    Args:
        item: The catalog tile element

    Returns:
        Images unique by url (first occurrence wins), widest first
    """
    collected: List[ImageRecord] = []
    for img in item.find_all("img"):
        srcset = img.get("srcset")
        if srcset:
            collected.extend(_parse_srcset(srcset))
            continue
        src = img.get("src") or ""
        if _is_usable_url(src):
            collected.append(ImageRecord(url=src, resolution=ORIGINAL_RESOLUTION, width=0))

    seen = set()
    unique = []
    for record in collected:
        if record.url in seen:
            continue
        seen.add(record.url)
        unique.append(record)

    # sorted() is stable, so equal widths keep document order
    return sorted(unique, key=lambda r: r.width, reverse=True)
