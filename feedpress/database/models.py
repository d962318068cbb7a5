"""
FeedPress Data Models
=====================

Pydantic data models for the stored configuration aggregate, the
processed-item ledger and the transient news items flowing through the
pipeline.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field, asdict
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedSource(BaseModel):
    """Operator-configured RSS/Atom feed."""
    id: str = Field(..., min_length=1, description="Operator-assigned unique feed ID")
    name: str = Field(..., min_length=1, max_length=255, description="Feed display name")
    url: str = Field(..., description="RSS/Atom document URL")
    keywords: List[str] = Field(default_factory=list, description="Keywords in match order, used exactly as entered")
    enabled: bool = Field(default=True, description="Whether the feed is polled")
    last_processed: Optional[datetime] = Field(default=None, description="Last processing time")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Require an absolute http(s) URL, kept verbatim."""
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Feed URL must be an absolute http(s) URL: {v!r}")
        return v

    def __str__(self) -> str:
        return f"Feed({self.name}:{self.url})"


class TopicRoute(BaseModel):
    """Maps a topic to a wiki space and optional parent page."""
    topic: str = Field(..., min_length=1, description="Topic name, unique across routes")
    target_space: str = Field(..., min_length=1, description="Wiki space key")
    parent_container_id: Optional[str] = Field(default=None, description="Parent page ID")
    parent_container_title: Optional[str] = Field(default=None, description="Parent page title to look up")

    @field_validator("topic", "target_space")
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v

    @field_validator("parent_container_id", "parent_container_title")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    def __str__(self) -> str:
        return f"TopicRoute({self.topic}->{self.target_space})"


class AppConfig(BaseModel):
    """Stored configuration aggregate (one record)."""
    feeds: List[FeedSource] = Field(default_factory=list)
    topic_routes: List[TopicRoute] = Field(default_factory=list)
    schedule_interval_minutes: int = Field(default=360, ge=1, description="Minutes between scheduled runs")
    enable_summarization: bool = Field(default=False, description="Reserved for AI summaries")
    deduplication_window_days: int = Field(default=30, ge=1, description="Ledger retention in days")

    @model_validator(mode="after")
    def validate_unique_keys(self):
        feed_ids = [feed.id for feed in self.feeds]
        duplicates = sorted({fid for fid in feed_ids if feed_ids.count(fid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate feed ids: {', '.join(duplicates)}")

        topics = [route.topic for route in self.topic_routes]
        duplicates = sorted({t for t in topics if topics.count(t) > 1})
        if duplicates:
            raise ValueError(f"Duplicate route topics: {', '.join(duplicates)}")
        return self

    def find_feed(self, feed_id: str) -> Optional[FeedSource]:
        return next((f for f in self.feeds if f.id == feed_id), None)

    def find_route(self, topic: str) -> Optional[TopicRoute]:
        return next((r for r in self.topic_routes if r.topic == topic), None)

    @property
    def enabled_feeds(self) -> List[FeedSource]:
        return [f for f in self.feeds if f.enabled]


def default_app_config() -> AppConfig:
    """Configuration used when nothing has been stored yet."""
    return AppConfig(
        feeds=[
            FeedSource(
                id="atlassian-blog",
                name="Atlassian Blog",
                url="https://www.atlassian.com/blog/feed",
                keywords=["Rovo Agent", "Rovo Dev CLI", "Atlassian Intelligence", "AI",
                          "Artificial Intelligence"],
            ),
            FeedSource(
                id="atlassian-developer-blog",
                name="Atlassian Developer Blog",
                url="https://developer.atlassian.com/blog/feed",
                keywords=["Rovo", "AI", "Forge", "Intelligence"],
            ),
        ],
        topic_routes=[
            TopicRoute(topic="Rovo Agent", target_space="AI",
                       parent_container_title="Rovo Agent Updates"),
            TopicRoute(topic="Rovo Dev CLI", target_space="AI",
                       parent_container_title="Rovo Dev CLI Updates"),
            TopicRoute(topic="Atlassian Intelligence", target_space="AI",
                       parent_container_title="Atlassian Intelligence Updates"),
        ],
        schedule_interval_minutes=360,
        enable_summarization=False,
        deduplication_window_days=30,
    )


class NewsItem(BaseModel):
    """Normalized feed entry; rebuilt on every ingestion pass."""
    id: str = Field(..., description="Content hash of source, link and title")
    title: str
    description: str = ""
    content: Optional[str] = None
    link: str = ""
    pub_date: datetime = Field(default_factory=utc_now)
    source: str = Field(..., description="Feed name")
    source_url: str = Field(..., description="Feed URL")
    matched_keywords: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)

    @property
    def primary_topic(self) -> Optional[str]:
        return self.topics[0] if self.topics else None

    def __str__(self) -> str:
        return f"NewsItem({self.title[:50]})"


class ProcessedItemRecord(BaseModel):
    """Ledger entry: the item needs no further publish attempt."""
    item_id: str
    processed_at: datetime = Field(default_factory=utc_now)
    published_content_id: Optional[str] = None
    published_content_url: Optional[str] = None

    @field_validator("processed_at")
    @classmethod
    def ensure_timezone(cls, v):
        """Treat naive timestamps as UTC so window comparisons work."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


@dataclass
class ProcessingResult:
    """Summary of one pipeline run."""
    total_feeds: int = 0
    successful_feeds: int = 0
    total_items: int = 0
    filtered_items: int = 0
    published_items: int = 0
    skipped_items: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"ProcessingResult(published={self.published_items}, "
            f"skipped={self.skipped_items}, errors={len(self.errors)})"
        )


# Type aliases for persisted shapes
AppConfigDict = Dict[str, Any]
LedgerDict = Dict[str, Dict[str, Any]]
