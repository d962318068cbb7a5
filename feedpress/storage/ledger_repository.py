"""
Deduplication Ledger
====================

Tracks which news item IDs need no further publish attempt. The whole
ledger is one stored mapping of item ID to ``ProcessedItemRecord``; every
write re-reads it, upserts, sweeps records older than the configured
window and writes it back.
"""

from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..database.connection import KeyValueStore
from ..database.models import ProcessedItemRecord, LedgerDict
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import StorageError
from .config_repository import ConfigRepository

PROCESSED_ITEMS_KEY = "processed_items"


class DeduplicationLedger:
    """Repository for processed-item records with rolling-window eviction."""

    def __init__(self, store: KeyValueStore, config_repository: ConfigRepository):
        """Initialize ledger.

        Args:
            store: Key-value persistence collaborator
            config_repository: Source of the current deduplication window
        """
        self.store = store
        self.config_repository = config_repository
        self.logger = get_logger_for_component("ledger")

    def load_records(self) -> Dict[str, ProcessedItemRecord]:
        """Load the ledger; unreadable storage yields an empty ledger."""
        try:
            stored = self.store.get(PROCESSED_ITEMS_KEY)
        except Exception as e:
            self.logger.warning(f"Error loading processed items: {e}")
            return {}

        if not stored or not isinstance(stored, dict):
            return {}

        records: Dict[str, ProcessedItemRecord] = {}
        for item_id, raw in stored.items():
            try:
                records[item_id] = ProcessedItemRecord.model_validate(raw)
            except PydanticValidationError as e:
                self.logger.warning(f"Dropping unreadable ledger record {item_id}: {e}")
        return records

    def save_records(self, records: Dict[str, ProcessedItemRecord]) -> None:
        """Persist the whole ledger.

        Raises:
            StorageError: If the store rejects the write
        """
        payload: LedgerDict = {
            item_id: record.model_dump(mode="json") for item_id, record in records.items()
        }
        try:
            self.store.set(PROCESSED_ITEMS_KEY, payload)
        except StorageError:
            self.logger.error("Error saving processed items", exc_info=True)
            raise
        except Exception as e:
            self.logger.error(f"Error saving processed items: {e}", exc_info=True)
            raise StorageError(
                f"Failed to save processed items: {e}", key=PROCESSED_ITEMS_KEY
            ) from e

    def is_processed(self, item_id: str) -> bool:
        return item_id in self.load_records()

    def get_record(self, item_id: str) -> Optional[ProcessedItemRecord]:
        return self.load_records().get(item_id)

    def mark_processed(
        self,
        item_id: str,
        published_content_id: Optional[str] = None,
        published_content_url: Optional[str] = None,
    ) -> ProcessedItemRecord:
        """Record an item as resolved, then evict records outside the window.

        Args:
            item_id: News item ID
            published_content_id: ID of the created or pre-existing page
            published_content_url: UI URL of the created page

        Returns:
            The stored record
        """
        now = datetime.now(timezone.utc)
        records = self.load_records()

        record = ProcessedItemRecord(
            item_id=item_id,
            processed_at=now,
            published_content_id=published_content_id,
            published_content_url=published_content_url,
        )
        records[item_id] = record

        evicted = self._evict_expired(records, now)
        self.save_records(records)

        self.logger.debug(
            f"Marked item {item_id} processed",
            extra={"item_id": item_id, "evicted": evicted, "ledger_size": len(records)},
        )
        return record

    def prune(self, now: Optional[datetime] = None) -> int:
        """Evict expired records without adding one.

        Returns:
            Number of records removed
        """
        now = now or datetime.now(timezone.utc)
        records = self.load_records()
        evicted = self._evict_expired(records, now)
        if evicted:
            self.save_records(records)
            self.logger.info(f"Pruned {evicted} expired ledger records")
        return evicted

    def _evict_expired(self, records: Dict[str, ProcessedItemRecord], now: datetime) -> int:
        # Window is read on every call so config changes apply retroactively
        window_days = self.config_repository.load_config().deduplication_window_days
        cutoff = now - timedelta(days=window_days)

        expired = [item_id for item_id, record in records.items() if record.processed_at < cutoff]
        for item_id in expired:
            del records[item_id]
        return len(expired)
