"""
RSS Feed Fetcher
================

Concurrent RSS/Atom ingestion: fetches each enabled feed with a bounded
timeout and redirect count, parses it with feedparser and normalizes the
entries into ``NewsItem`` models. A failing feed becomes an error result
and never aborts its siblings.
"""

import asyncio
import re
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

import aiohttp
import certifi
import feedparser
from bs4 import BeautifulSoup

from ..database.models import FeedSource, NewsItem
from ..config.settings import FeedPressSettings, get_settings
from ..utils.hashing import compute_item_id
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import FeedError, FeedFetchError, ErrorCode

_WHITESPACE = re.compile(r"\s+")


@dataclass
class FetchResult:
    """Result of ingesting one feed."""

    feed: FeedSource
    items: List[NewsItem] = field(default_factory=list)
    error: Optional[str] = None
    fetch_time: Optional[datetime] = None

    def __post_init__(self):
        if not self.fetch_time:
            self.fetch_time = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def item_count(self) -> int:
        return len(self.items)


class FeedFetcher:
    """Concurrent feed fetcher with per-feed failure isolation."""

    def __init__(
        self,
        settings: Optional[FeedPressSettings] = None,
        max_concurrent: Optional[int] = None,
        timeout: Optional[int] = None,
        max_redirects: Optional[int] = None,
    ):
        """Initialize feed fetcher.

        Args:
            settings: Application settings (default: process settings)
            max_concurrent: Maximum concurrent feed fetches
            timeout: Total request timeout in seconds
            max_redirects: Maximum redirects followed per feed
        """
        settings = settings or get_settings()
        self.max_concurrent = max_concurrent or settings.fetch.parallel_feeds
        self.timeout = timeout or settings.fetch.request_timeout
        self.max_redirects = (
            max_redirects if max_redirects is not None else settings.fetch.max_redirects
        )
        self.user_agent = settings.fetch.user_agent
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=self.max_concurrent * 2,
            limit_per_host=5,
        )

        timeout = aiohttp.ClientTimeout(total=self.timeout)

        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def ingest_feed(
        self, feed: FeedSource, session: Optional[aiohttp.ClientSession] = None
    ) -> FetchResult:
        """Fetch, parse and normalize a single feed.

        Args:
            feed: Feed to ingest
            session: Shared aiohttp session (a private one is opened if omitted)

        Returns:
            FetchResult with items, or with ``error`` set and no items
        """
        if session is None:
            async with self.get_session() as own_session:
                return await self.ingest_feed(feed, own_session)

        log = get_logger_for_component("feed_fetcher", feed_id=feed.id)
        start_time = datetime.now(timezone.utc)
        log.info(f"Parsing feed: {feed.name} ({feed.url})")

        try:
            content = await self._download(feed.url, session)
            items = self.parse_document(content, feed)

            log.info(
                f"Parsed {len(items)} items from {feed.name} "
                f"in {(datetime.now(timezone.utc) - start_time).total_seconds():.2f}s"
            )
            return FetchResult(feed=feed, items=items, fetch_time=start_time)

        except FeedError as e:
            log.warning(f"Error parsing feed {feed.name}: {e.message}")
            return FetchResult(feed=feed, error=e.message, fetch_time=start_time)

        except Exception as e:
            error_msg = str(e) or type(e).__name__
            log.error(
                f"Error parsing feed {feed.name}: {error_msg}", exc_info=True
            )
            return FetchResult(feed=feed, error=error_msg, fetch_time=start_time)

    async def _download(self, url: str, session: aiohttp.ClientSession) -> bytes:
        """Download the raw feed document.

        Raises:
            FeedFetchError: On timeout, redirect loop or an HTTP error status
        """
        try:
            async with session.get(url, max_redirects=self.max_redirects) as response:
                if response.status >= 400:
                    raise FeedFetchError(
                        f"HTTP {response.status}: {response.reason}",
                        feed_url=url,
                        error_code=ErrorCode.FEED_HTTP_ERROR,
                    )
                return await response.read()

        except asyncio.TimeoutError as e:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e

        except aiohttp.TooManyRedirects as e:
            raise FeedFetchError(
                f"Too many redirects (max {self.max_redirects})",
                feed_url=url,
                error_code=ErrorCode.FEED_TOO_MANY_REDIRECTS,
            ) from e

        except aiohttp.ClientError as e:
            raise FeedFetchError(
                f"Network error: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

    def parse_document(self, content: Any, feed: FeedSource) -> List[NewsItem]:
        """Parse a feed document into news items.

        Args:
            content: Raw document (bytes or str)
            feed: Feed the document belongs to

        Raises:
            FeedError: If the document is malformed and has no entries
        """
        feed_data = feedparser.parse(content)

        if getattr(feed_data, "bozo", False) and not feed_data.entries:
            reason = getattr(feed_data, "bozo_exception", None) or "Invalid XML structure"
            raise FeedError(
                f"Feed parse error: {reason}",
                feed_url=feed.url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )

        return [self._build_item(entry, feed) for entry in feed_data.entries]

    def _build_item(self, entry: Any, feed: FeedSource) -> NewsItem:
        raw_title = entry.get("title") or ""
        link = entry.get("link") or ""
        summary = entry.get("summary") or ""
        full_content = self._full_content(entry)

        description = self._snippet(full_content or summary)
        content = full_content or summary or ""

        return NewsItem(
            id=compute_item_id(feed.name, link, raw_title),
            title=raw_title or "Untitled",
            description=description,
            content=content,
            link=link,
            pub_date=self._parse_date(entry),
            source=feed.name,
            source_url=feed.url,
        )

    @staticmethod
    def _full_content(entry: Any) -> str:
        """Return the entry's full body, preferring HTML (content:encoded) parts."""
        parts = entry.get("content") or []
        values = [p for p in parts if isinstance(p, dict) and p.get("value")]
        if not values:
            return ""
        html_parts = [p for p in values if "html" in (p.get("type") or "")]
        return (html_parts or values)[0]["value"]

    @staticmethod
    def _snippet(markup: str) -> str:
        """Plain-text rendering of an HTML fragment."""
        if not markup:
            return ""
        text = BeautifulSoup(markup, "html.parser").get_text(" ", strip=True)
        return _WHITESPACE.sub(" ", text).strip()

    @staticmethod
    def _parse_date(entry: Any) -> datetime:
        """Publication date: published, then updated, then now (UTC)."""
        for date_field in ("published_parsed", "updated_parsed"):
            date_tuple = entry.get(date_field)
            if date_tuple:
                try:
                    return datetime(*date_tuple[:6], tzinfo=timezone.utc)
                except (TypeError, ValueError):
                    continue
        return datetime.now(timezone.utc)

    async def ingest_all(self, feeds: List[FeedSource]) -> List[FetchResult]:
        """Ingest every enabled feed concurrently.

        Args:
            feeds: Configured feeds; disabled ones are skipped

        Returns:
            One FetchResult per enabled feed, in input order
        """
        enabled = [feed for feed in feeds if feed.enabled]
        self.logger.info(f"Parsing {len(enabled)} enabled feeds")
        if not enabled:
            return []

        with PerformanceLogger(self.logger, "feed ingestion", feed_count=len(enabled)):
            async with self.get_session() as session:
                semaphore = asyncio.Semaphore(self.max_concurrent)

                async def ingest_with_semaphore(feed: FeedSource) -> FetchResult:
                    async with semaphore:
                        return await self.ingest_feed(feed, session)

                outcomes = await asyncio.gather(
                    *(ingest_with_semaphore(feed) for feed in enabled),
                    return_exceptions=True,
                )

        results = []
        for feed, outcome in zip(enabled, outcomes):
            if isinstance(outcome, FetchResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                self.logger.error(f"Feed parsing failed for {feed.name}: {outcome}")
                results.append(FetchResult(feed=feed, error=str(outcome) or type(outcome).__name__))
            else:
                raise outcome

        successful = sum(1 for r in results if r.success)
        self.logger.info(
            f"Feed fetch complete: {successful}/{len(results)} feeds successful, "
            f"{sum(r.item_count for r in results)} total items"
        )
        return results
