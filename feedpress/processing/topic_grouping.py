"""Partition classified items by primary topic for routing."""

from typing import Dict, List

from ..database.models import NewsItem

UNCATEGORIZED_TOPIC = "uncategorized"


def group_by_topic(items: List[NewsItem]) -> Dict[str, List[NewsItem]]:
    """Place each item under its first topic, or under ``uncategorized``.

    Every item lands in exactly one group; groups keep first-seen order.
    """
    grouped: Dict[str, List[NewsItem]] = {}
    for item in items:
        grouped.setdefault(item.primary_topic or UNCATEGORIZED_TOPIC, []).append(item)
    return grouped
