"""
FeedPress Storage Layer
=======================

Repository pattern implementations over the key-value store.

This module provides:
- Configuration repository for the stored AppConfig aggregate
- Deduplication ledger of processed news items
"""

from .config_repository import ConfigRepository, APP_CONFIG_KEY
from .ledger_repository import DeduplicationLedger, PROCESSED_ITEMS_KEY

__all__ = [
    "ConfigRepository",
    "DeduplicationLedger",
    "APP_CONFIG_KEY",
    "PROCESSED_ITEMS_KEY",
]
