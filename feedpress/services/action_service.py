"""
Operator Action Service
=======================

Single entry point for operator actions coming from any front end (CLI,
web page, chat bot). Requests arrive as one typed envelope
``{"action": ..., "payload": {...}}`` that is validated once here; each
action either delegates to the configuration repository or runs the
pipeline.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..database.models import AppConfig, FeedSource, TopicRoute
from ..processing.pipeline import ProcessingPipeline
from ..storage.config_repository import ConfigRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ValidationError, ErrorCode, get_user_friendly_message


class ActionName(str, Enum):
    """Supported operator actions."""
    GET_CONFIG = "getConfig"
    SAVE_CONFIG = "saveConfig"
    UPSERT_FEED = "upsertFeed"
    REMOVE_FEED = "removeFeed"
    UPSERT_TOPIC_MAPPING = "upsertTopicMapping"
    REMOVE_TOPIC_MAPPING = "removeTopicMapping"
    PROCESS_FEEDS = "processFeeds"


class ActionRequest(BaseModel):
    """Request envelope."""
    action: ActionName
    payload: Dict[str, Any] = Field(default_factory=dict)


class SaveConfigPayload(BaseModel):
    config: AppConfig


class UpsertFeedPayload(BaseModel):
    feed: FeedSource


class RemoveFeedPayload(BaseModel):
    feedId: str = Field(..., min_length=1)


class UpsertTopicMappingPayload(BaseModel):
    mapping: TopicRoute


class RemoveTopicMappingPayload(BaseModel):
    topic: str = Field(..., min_length=1)


PAYLOAD_MODELS = {
    ActionName.SAVE_CONFIG: SaveConfigPayload,
    ActionName.UPSERT_FEED: UpsertFeedPayload,
    ActionName.REMOVE_FEED: RemoveFeedPayload,
    ActionName.UPSERT_TOPIC_MAPPING: UpsertTopicMappingPayload,
    ActionName.REMOVE_TOPIC_MAPPING: RemoveTopicMappingPayload,
}


class ActionService:
    """Dispatches validated operator actions."""

    def __init__(self, config_repository: ConfigRepository, pipeline: ProcessingPipeline):
        """Initialize the action service.

        Args:
            config_repository: Configuration aggregate repository
            pipeline: Pipeline run by ``processFeeds``
        """
        self.config_repository = config_repository
        self.pipeline = pipeline
        self.logger = get_logger_for_component("action_service")

    @staticmethod
    def parse_request(raw: Any) -> ActionRequest:
        """Validate a raw envelope.

        Raises:
            ValidationError: Unknown action or malformed envelope
        """
        try:
            return ActionRequest.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid action request: {e.errors()[0]['msg']}",
                field_name="action",
                error_code=ErrorCode.VALIDATION_UNKNOWN_ACTION,
                user_message="Unknown action",
            ) from e

    @staticmethod
    def parse_payload(request: ActionRequest) -> Optional[BaseModel]:
        model = PAYLOAD_MODELS.get(request.action)
        if model is None:
            return None
        try:
            return model.model_validate(request.payload)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid payload for {request.action.value}: {e}",
                field_name="payload",
                user_message=f"Invalid payload for {request.action.value}",
            ) from e

    async def handle(self, raw: Any) -> Dict[str, Any]:
        """Handle one envelope and return the response document.

        Errors never escape: they are logged and returned as ``{"error": ...}``.
        """
        try:
            request = self.parse_request(raw)
            payload = self.parse_payload(request)
            return await self._dispatch(request.action, payload)
        except ValidationError as e:
            self.logger.warning(f"Rejected action request: {e}")
            return {"error": e.user_message}
        except Exception as e:
            self.logger.error(f"Error in action handler: {e}", exc_info=True)
            return {"error": get_user_friendly_message(e)}

    async def _dispatch(self, action: ActionName, payload: Optional[BaseModel]) -> Dict[str, Any]:
        self.logger.info(f"Handling action {action.value}")

        if action is ActionName.GET_CONFIG:
            return {"config": self.config_repository.load_config().model_dump(mode="json")}

        if action is ActionName.SAVE_CONFIG:
            self.config_repository.save_config(payload.config)
        elif action is ActionName.UPSERT_FEED:
            self.config_repository.upsert_feed(payload.feed)
        elif action is ActionName.REMOVE_FEED:
            self.config_repository.remove_feed(payload.feedId)
        elif action is ActionName.UPSERT_TOPIC_MAPPING:
            self.config_repository.upsert_topic_route(payload.mapping)
        elif action is ActionName.REMOVE_TOPIC_MAPPING:
            self.config_repository.remove_topic_route(payload.topic)
        elif action is ActionName.PROCESS_FEEDS:
            result = await self.pipeline.process_all_feeds()
            return {"success": True, "result": result.to_dict()}

        return {"success": True}
