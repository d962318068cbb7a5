"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for FeedPress tests.

All fixtures are network-free: storage is the in-memory key-value store
and the wiki client is an AsyncMock with the ``ConfluenceClient`` surface.
"""

import pytest
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDPRESS_WIKI__BASE_URL"] = "https://wiki.example.com"
os.environ["FEEDPRESS_WIKI__USERNAME"] = "bot@example.com"
os.environ["FEEDPRESS_WIKI__API_TOKEN"] = "test-token"
os.environ["FEEDPRESS_LOGGING__FILE_PATH"] = ""
os.environ["FEEDPRESS_STORAGE__PATH"] = ":memory:"


# ============================================================================
# Settings and Storage Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """Settings with wiki credentials and no log file."""
    from feedpress.config.settings import FeedPressSettings, WikiSettings, LoggingSettings, StorageSettings

    return FeedPressSettings(
        wiki=WikiSettings(
            base_url="https://wiki.example.com/",
            username="bot@example.com",
            api_token="test-token",
        ),
        logging=LoggingSettings(file_path=None, console_logging=False),
        storage=StorageSettings(path=":memory:"),
    )


@pytest.fixture
def memory_store():
    """Empty in-memory key-value store."""
    from feedpress.database.connection import MemoryKeyValueStore

    return MemoryKeyValueStore()


@pytest.fixture
def config_repository(memory_store):
    from feedpress.storage.config_repository import ConfigRepository

    return ConfigRepository(memory_store)


@pytest.fixture
def ledger(memory_store, config_repository):
    from feedpress.storage.ledger_repository import DeduplicationLedger

    return DeduplicationLedger(memory_store, config_repository)


# ============================================================================
# Domain Fixtures
# ============================================================================


@pytest.fixture
def sample_feed():
    from feedpress.database.models import FeedSource

    return FeedSource(
        id="feed-1",
        name="Tech Blog",
        url="https://techblog.example.com/feed.xml",
        keywords=["AI", "Rovo Agent"],
    )


@pytest.fixture
def sample_routes():
    from feedpress.database.models import TopicRoute

    return [
        TopicRoute(topic="Rovo Agent", target_space="AI", parent_container_id="12345"),
        TopicRoute(topic="AI", target_space="AI", parent_container_title="AI Updates"),
    ]


@pytest.fixture
def sample_config(sample_feed, sample_routes):
    from feedpress.database.models import AppConfig

    return AppConfig(feeds=[sample_feed], topic_routes=sample_routes)


@pytest.fixture
def make_item():
    """Factory for news items."""
    from feedpress.database.models import NewsItem
    from feedpress.utils.hashing import compute_item_id

    def _make(title="Rovo Agent now available", link="https://techblog.example.com/rovo",
              description="Announcing the Rovo Agent", content=None, source="Tech Blog",
              topics=None, matched_keywords=None):
        return NewsItem(
            id=compute_item_id(source, link, title),
            title=title,
            description=description,
            content=content,
            link=link,
            pub_date=datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc),
            source=source,
            source_url="https://techblog.example.com/feed.xml",
            topics=topics or [],
            matched_keywords=matched_keywords or [],
        )

    return _make


@pytest.fixture
def mock_wiki_client():
    """AsyncMock standing in for ConfluenceClient: nothing exists, creates succeed."""
    from feedpress.delivery.wiki_client import WikiContent

    client = AsyncMock()
    client.find_content = AsyncMock(return_value=None)

    counter = {"next": 1000}

    async def create_content(space_key, title, body, parent_id=None):
        counter["next"] += 1
        page_id = str(counter["next"])
        return WikiContent(
            id=page_id,
            title=title,
            url=f"https://wiki.example.com/wiki/spaces/{space_key}/pages/{page_id}",
        )

    client.create_content = AsyncMock(side_effect=create_content)
    return client


# ============================================================================
# Sample Feed Documents
# ============================================================================


SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Tech Blog</title>
    <link>https://techblog.example.com</link>
    <description>Engineering news</description>
    <item>
      <title>Rovo Agent now available</title>
      <link>https://techblog.example.com/rovo</link>
      <description>Announcing the Rovo Agent for everyone</description>
      <content:encoded><![CDATA[<p>The <b>Rovo Agent</b> is here.</p>]]></content:encoded>
      <pubDate>Wed, 05 Mar 2025 12:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Quarterly gardening tips</title>
      <link>https://techblog.example.com/garden</link>
      <description>Tomatoes and more</description>
      <pubDate>Thu, 06 Mar 2025 09:30:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Dev Blog</title>
  <link href="https://dev.example.com/"/>
  <updated>2025-03-07T10:00:00Z</updated>
  <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
  <entry>
    <title>Forge platform update</title>
    <link href="https://dev.example.com/forge"/>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2025-03-07T10:00:00Z</updated>
    <summary>Forge gets new AI features</summary>
  </entry>
</feed>
"""


@pytest.fixture
def sample_rss():
    return SAMPLE_RSS.encode("utf-8")


@pytest.fixture
def sample_atom():
    return SAMPLE_ATOM.encode("utf-8")
