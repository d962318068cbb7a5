"""
Service wiring shared by the CLI and the scheduler.
"""

from dataclasses import dataclass
from typing import Optional

from ..config.settings import FeedPressSettings, get_settings
from ..database.connection import KeyValueStore, SQLiteKeyValueStore
from ..delivery.publisher import WikiPublisher
from ..delivery.wiki_client import ConfluenceClient
from ..processing.feed_fetcher import FeedFetcher
from ..processing.pipeline import ProcessingPipeline
from ..storage.config_repository import ConfigRepository
from ..storage.ledger_repository import DeduplicationLedger
from .action_service import ActionService


@dataclass
class ServiceContainer:
    """Fully wired application components."""
    settings: FeedPressSettings
    store: KeyValueStore
    config_repository: ConfigRepository
    ledger: DeduplicationLedger
    wiki_client: ConfluenceClient
    pipeline: ProcessingPipeline
    actions: ActionService

    async def close(self) -> None:
        await self.wiki_client.close()
        self.store.close()


def build_services(
    settings: Optional[FeedPressSettings] = None,
    store: Optional[KeyValueStore] = None,
    wiki_client: Optional[ConfluenceClient] = None,
) -> ServiceContainer:
    """Wire the store, repositories, publisher, pipeline and action service."""
    settings = settings or get_settings()
    store = store or SQLiteKeyValueStore(settings.storage.path)
    wiki_client = wiki_client or ConfluenceClient(settings)

    config_repository = ConfigRepository(store)
    ledger = DeduplicationLedger(store, config_repository)
    pipeline = ProcessingPipeline(
        config_repository,
        ledger,
        WikiPublisher(wiki_client),
        feed_fetcher=FeedFetcher(settings),
    )

    return ServiceContainer(
        settings=settings,
        store=store,
        config_repository=config_repository,
        ledger=ledger,
        wiki_client=wiki_client,
        pipeline=pipeline,
        actions=ActionService(config_repository, pipeline),
    )
