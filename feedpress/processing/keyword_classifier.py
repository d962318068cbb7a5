"""
Keyword Classifier
==================

Filters a feed's items by that feed's keyword list and tags each match
with the keywords it contains and the topics derived from them.
"""

from typing import List

from ..database.models import NewsItem, FeedSource, TopicRoute
from ..utils.logging import get_logger_for_component


def match_keywords(text: str, keywords: List[str]) -> List[str]:
    """Return the keywords contained in ``text`` (case-insensitive), in keyword order."""
    lower_text = text.lower()
    return [keyword for keyword in keywords if keyword.lower() in lower_text]


def build_search_text(item: NewsItem) -> str:
    return f"{item.title} {item.description} {item.content or ''}"


class KeywordClassifier:
    """Substring keyword filter with route-aware topic derivation."""

    def __init__(self):
        self.logger = get_logger_for_component("keyword_classifier")

    def classify(
        self,
        items: List[NewsItem],
        feed: FeedSource,
        routes: List[TopicRoute],
    ) -> List[NewsItem]:
        """Keep the items matching at least one of the feed's keywords.

        A feed without keywords matches nothing. Each kept item is a copy
        with ``matched_keywords`` set and ``topics`` set to the matched
        keywords that have a route, or to all matched keywords when none do.

        Args:
            items: Items ingested from ``feed``
            feed: Feed whose keywords apply
            routes: Configured topic routes

        Returns:
            Matching items only
        """
        if not feed.keywords:
            self.logger.warning(f"Feed {feed.name} has no keywords configured")
            return []

        filtered = []
        for item in items:
            matched = match_keywords(build_search_text(item), feed.keywords)
            if not matched:
                continue

            routed_topics = [route.topic for route in routes if route.topic in matched]
            filtered.append(
                item.model_copy(
                    update={
                        "matched_keywords": matched,
                        "topics": routed_topics or list(matched),
                    }
                )
            )
            self.logger.debug(f'Item "{item.title}" matched keywords: {", ".join(matched)}')

        self.logger.info(
            f"Filtered {len(filtered)} relevant items from {len(items)} total items "
            f"for feed {feed.name}"
        )
        return filtered
