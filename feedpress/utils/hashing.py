"""
Content-addressed identifiers for news items.

The item ID is the join key between a freshly ingested entry and the
deduplication ledger, so it must depend on nothing but the entry's
source, link and title.
"""

import hashlib

ID_SEPARATOR = "|"
ID_LENGTH = 16


def hash_string(value: str) -> str:
    """Return the first 16 hex characters of the SHA-256 of ``value``."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:ID_LENGTH]


def compute_item_id(source: str, link: str, title: str) -> str:
    """Compute the deterministic ID of a news item.

    Args:
        source: Feed name the item came from
        link: Item link
        title: Raw item title (empty string when the entry has none)

    Returns:
        16-character lowercase hex digest
    """
    return hash_string(ID_SEPARATOR.join((source or "", link or "", title or "")))
