"""
Configuration Repository
========================

Loads and saves the ``AppConfig`` aggregate through the key-value store.
Every mutation is a full read-modify-write of the aggregate; concurrent
edits are last-writer-wins.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ..database.connection import KeyValueStore
from ..database.models import AppConfig, FeedSource, TopicRoute, default_app_config
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import StorageError, ValidationError, ErrorCode

APP_CONFIG_KEY = "app_config"


class ConfigRepository:
    """Repository for the stored configuration aggregate."""

    def __init__(self, store: KeyValueStore):
        """Initialize configuration repository.

        Args:
            store: Key-value persistence collaborator
        """
        self.store = store
        self.logger = get_logger_for_component("config_repository")

    def load_config(self) -> AppConfig:
        """Load the stored configuration.

        Read or parse failures fall back to the default configuration
        rather than aborting the caller.
        """
        try:
            stored = self.store.get(APP_CONFIG_KEY)
            if stored:
                config = AppConfig.model_validate(stored)
                self.logger.debug("Loaded configuration from storage")
                return config
        except Exception as e:
            self.logger.warning(f"Error loading config from storage, using defaults: {e}")

        self.logger.info("Using default configuration")
        return default_app_config()

    def save_config(self, config: AppConfig) -> None:
        """Persist the whole aggregate.

        Raises:
            StorageError: If the store rejects the write
        """
        try:
            self.store.set(APP_CONFIG_KEY, config.model_dump(mode="json"))
        except StorageError:
            self.logger.error("Error saving configuration", exc_info=True)
            raise
        except Exception as e:
            self.logger.error(f"Error saving configuration: {e}", exc_info=True)
            raise StorageError(
                f"Failed to save configuration: {e}", key=APP_CONFIG_KEY
            ) from e

        self.logger.info(
            "Configuration saved",
            extra={"feeds": len(config.feeds), "topic_routes": len(config.topic_routes)},
        )

    def upsert_feed(self, feed: FeedSource) -> AppConfig:
        """Add a feed, or replace the one with the same ID in place."""
        config = self.load_config()
        feeds = list(config.feeds)

        for index, existing in enumerate(feeds):
            if existing.id == feed.id:
                feeds[index] = feed
                break
        else:
            feeds.append(feed)

        updated = config.model_copy(update={"feeds": feeds})
        self.save_config(updated)
        return updated

    def remove_feed(self, feed_id: str) -> AppConfig:
        """Remove a feed by ID; unknown IDs leave the feed list unchanged."""
        config = self.load_config()
        updated = config.model_copy(
            update={"feeds": [f for f in config.feeds if f.id != feed_id]}
        )
        self.save_config(updated)
        return updated

    def upsert_topic_route(self, route: TopicRoute) -> AppConfig:
        """Add a route, or replace the one with the same topic in place."""
        config = self.load_config()
        routes = list(config.topic_routes)

        for index, existing in enumerate(routes):
            if existing.topic == route.topic:
                routes[index] = route
                break
        else:
            routes.append(route)

        updated = config.model_copy(update={"topic_routes": routes})
        self.save_config(updated)
        return updated

    def remove_topic_route(self, topic: str) -> AppConfig:
        """Remove the route for ``topic``."""
        config = self.load_config()
        updated = config.model_copy(
            update={"topic_routes": [r for r in config.topic_routes if r.topic != topic]}
        )
        self.save_config(updated)
        return updated

    def get_feed(self, feed_id: str) -> Optional[FeedSource]:
        return self.load_config().find_feed(feed_id)

    @staticmethod
    def parse_config(data: dict) -> AppConfig:
        """Validate an operator-supplied configuration document.

        Raises:
            ValidationError: If the document is not a valid AppConfig
        """
        try:
            return AppConfig.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                str(e), field_name="config", error_code=ErrorCode.VALIDATION_INVALID_FORMAT
            ) from e
