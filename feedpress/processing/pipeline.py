"""
Processing Pipeline Orchestrator
================================

Runs one complete pass: load configuration, ingest all enabled feeds in
parallel, classify and group each feed's items, then publish new items
one at a time and record them in the deduplication ledger.

Every recoverable failure is collected into ``ProcessingResult.errors``;
``process_all_feeds`` returns a result even amid partial failure.
"""

from typing import List, Optional

from ..database.models import AppConfig, NewsItem, ProcessingResult, TopicRoute
from ..delivery.publisher import WikiPublisher
from ..storage.config_repository import ConfigRepository
from ..storage.ledger_repository import DeduplicationLedger
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import FeedPressError

from .feed_fetcher import FeedFetcher, FetchResult
from .keyword_classifier import KeywordClassifier
from .topic_grouping import group_by_topic


class ProcessingPipeline:
    """Feed-to-wiki publication orchestrator."""

    def __init__(
        self,
        config_repository: ConfigRepository,
        ledger: DeduplicationLedger,
        publisher: WikiPublisher,
        feed_fetcher: Optional[FeedFetcher] = None,
        classifier: Optional[KeywordClassifier] = None,
    ):
        """Initialize processing pipeline.

        Args:
            config_repository: Source of the AppConfig aggregate
            ledger: Processed-item ledger
            publisher: Wiki publisher
            feed_fetcher: Feed ingestion component
            classifier: Keyword classifier
        """
        self.config_repository = config_repository
        self.ledger = ledger
        self.publisher = publisher
        self.feed_fetcher = feed_fetcher or FeedFetcher()
        self.classifier = classifier or KeywordClassifier()
        self.logger = get_logger_for_component("pipeline")

    async def process_all_feeds(self) -> ProcessingResult:
        """Process all feeds and publish relevant items to the wiki."""
        config = self.config_repository.load_config()
        result = ProcessingResult(total_feeds=len(config.feeds))

        self.logger.info(f"Starting feed processing for {len(config.feeds)} feeds")

        with PerformanceLogger(self.logger, "feed processing run"):
            fetch_results = await self.feed_fetcher.ingest_all(config.feeds)
            result.successful_feeds = sum(1 for r in fetch_results if r.success)

            for fetch_result in fetch_results:
                await self._process_feed(fetch_result, config, result)

        self.logger.info(
            f"Processing complete: {result.published_items} published, "
            f"{result.skipped_items} skipped, {len(result.errors)} errors",
            extra=result.to_dict(),
        )
        return result

    async def _process_feed(
        self, fetch_result: FetchResult, config: AppConfig, result: ProcessingResult
    ) -> None:
        feed = fetch_result.feed

        if fetch_result.error:
            result.errors.append(f"Feed {feed.name}: {fetch_result.error}")
            return

        result.total_items += len(fetch_result.items)

        filtered = self.classifier.classify(fetch_result.items, feed, config.topic_routes)
        result.filtered_items += len(filtered)

        for topic, items in group_by_topic(filtered).items():
            route = config.find_route(topic)
            if route is None:
                self.logger.warning(f"No mapping found for topic: {topic}")
                result.errors.append(f"No mapping for topic: {topic}")
                continue

            await self._publish_group(items, route, result)

    async def _publish_group(
        self, items: List[NewsItem], route: TopicRoute, result: ProcessingResult
    ) -> None:
        # Sequential on purpose: each create must see the previous one
        for item in items:
            try:
                await self._publish_item(item, route, result)
            except Exception as e:
                message = e.message if isinstance(e, FeedPressError) else (str(e) or type(e).__name__)
                self.logger.error(
                    f'Error processing item "{item.title}": {message}',
                    exc_info=True,
                    extra={"item_id": item.id},
                )
                result.errors.append(f'Error processing "{item.title}": {message}')

    async def _publish_item(
        self, item: NewsItem, route: TopicRoute, result: ProcessingResult
    ) -> None:
        if self.ledger.is_processed(item.id):
            self.logger.debug(f"Skipping already processed item: {item.title}")
            result.skipped_items += 1
            return

        existing = await self.publisher.find_existing(route.target_space, item.title)
        if existing is not None:
            self.logger.debug(f"Page already exists for: {item.title}")
            self.ledger.mark_processed(item.id, existing.id)
            result.skipped_items += 1
            return

        published = await self.publisher.publish_item(item, route)
        if published is None:
            result.errors.append(f"Failed to publish: {item.title}")
            return

        self.ledger.mark_processed(item.id, published.id, published.url)
        result.published_items += 1
        self.logger.info(f"Published: {item.title}", extra={"item_id": item.id})
