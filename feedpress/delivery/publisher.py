"""
Wiki Publisher
==============

Publication operations used by the pipeline, layered over the Confluence
client. Lookups degrade instead of raising: a failed "content exists"
check reads as "not found" and a failed parent lookup publishes at the
space root. A failed create returns None so the item stays unrecorded and
is retried on the next run.
"""

from typing import Optional

from ..database.models import NewsItem, TopicRoute
from ..utils.logging import get_logger_for_component
from .page_formatter import PageFormatter
from .wiki_client import ConfluenceClient, WikiContent


class WikiPublisher:
    """Publishes news items as wiki pages according to topic routes."""

    def __init__(self, client: ConfluenceClient, formatter: Optional[PageFormatter] = None):
        """Initialize publisher.

        Args:
            client: Wiki content client
            formatter: Page body renderer
        """
        self.client = client
        self.formatter = formatter or PageFormatter()
        self.logger = get_logger_for_component("publisher")

    async def find_existing(self, space_key: str, title: str) -> Optional[WikiContent]:
        """Return the page titled ``title`` in ``space_key``, if any."""
        try:
            return await self.client.find_content(space_key, title)
        except Exception as e:
            self.logger.error(f"Error checking if page exists: {e}")
            return None

    async def resolve_parent(self, route: TopicRoute) -> Optional[str]:
        """Parent page ID for a route: explicit ID, then title lookup, else None."""
        if route.parent_container_id:
            return route.parent_container_id
        if not route.parent_container_title:
            return None

        try:
            parent = await self.client.find_content(route.target_space, route.parent_container_title)
        except Exception as e:
            self.logger.error(f"Error finding parent page: {e}")
            return None

        if parent is None:
            self.logger.warning(
                f'Parent page "{route.parent_container_title}" not found in space {route.target_space}'
            )
            return None
        return parent.id

    async def publish_item(self, item: NewsItem, route: TopicRoute) -> Optional[WikiContent]:
        """Create a page for ``item`` under ``route``.

        Returns:
            Created content, or None if the wiki rejected or failed the call
        """
        self.logger.info(
            f'Publishing item "{item.title}" to space {route.target_space}, topic: {route.topic}'
        )
        parent_id = await self.resolve_parent(route)
        body = self.formatter.render(item)

        try:
            return await self.client.create_content(
                route.target_space, item.title, body, parent_id=parent_id
            )
        except Exception as e:
            self.logger.error(f'Error publishing item "{item.title}": {e}', exc_info=True)
            return None
