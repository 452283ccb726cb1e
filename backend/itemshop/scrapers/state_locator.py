"""Locate catalog offers inside the storefront's embedded client state.

The state blob is an arbitrary JSON tree whose shape changes between
storefront releases, so offers are found structurally: any mapping that
carries both an ``offerId`` and a ``title`` is treated as an offer.
"""

from typing import Any, List, Optional, Set

import structlog

from itemshop.scrapers.base import CatalogEntry

logger = structlog.get_logger(__name__)

DEFAULT_MAX_DEPTH = 10


def locate_catalog_entries(state: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> List[CatalogEntry]:
    """Collect every offer record found in a state tree.

    The walk is depth-first. Nodes deeper than max_depth are skipped, and a
    container already on the current path is not entered again. A recorded
    offer is still descended into, so nested offers are found too.

    Args:
        state: Decoded state value (mapping, list, scalar or None)
        max_depth: Deepest level that is still inspected

    Returns:
        Entries in traversal order, without deduplication
    """
    entries: List[CatalogEntry] = []
    _walk(state, 0, max_depth, set(), entries)
    logger.debug("state_entries_located", count=len(entries))
    return entries


def _walk(node: Any, depth: int, max_depth: int, path: Set[int], entries: List[CatalogEntry]) -> None:
    if depth > max_depth or not isinstance(node, (dict, list)):
        return
    marker = id(node)
    if marker in path:
        return

    if isinstance(node, dict):
        if node.get("offerId") and node.get("title"):
            entries.append(CatalogEntry.from_state_node(node))
        children = list(node.values())
    else:
        children = node

    path.add(marker)
    try:
        for child in children:
            _walk(child, depth + 1, max_depth, path, entries)
    finally:
        path.discard(marker)


def find_root_offer_id(state: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[str]:
    """Return the first string ``offerId`` met in a depth-first walk."""
    return _find_offer_id(state, 0, max_depth, set())


def _find_offer_id(node: Any, depth: int, max_depth: int, path: Set[int]) -> Optional[str]:
    if depth > max_depth or not isinstance(node, (dict, list)):
        return None
    if id(node) in path:
        return None

    if isinstance(node, dict):
        offer_id = node.get("offerId")
        if isinstance(offer_id, str) and offer_id:
            return offer_id
        children = node.values()
    else:
        children = node

    path.add(id(node))
    try:
        for child in children:
            found = _find_offer_id(child, depth + 1, max_depth, path)
            if found:
                return found
    finally:
        path.discard(id(node))
    return None
