"""
FeedPress - Feed to Wiki Publishing Pipeline
============================================

Polls RSS/Atom feeds, keeps the items matching each feed's keywords and
publishes them as Confluence pages routed by topic.

Main Components:
- Storage: key-value store with configuration and dedup ledger repositories
- Configuration: environment variables with Pydantic validation
- Processing: feed ingestion, keyword classification, topic grouping
- Delivery: Confluence client, page formatting and publishing
"""

__version__ = "1.0.0"
__author__ = "FeedPress Development Team"
__description__ = "Keyword-filtered feed aggregation published to a wiki"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import SQLiteKeyValueStore
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedPressError

__all__ = [
    "get_settings",
    "SQLiteKeyValueStore",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedPressError",
]
