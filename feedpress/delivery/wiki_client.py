"""
Confluence REST Client
======================

Thin async client for the two content operations the pipeline needs:
finding a page by space and exact title, and creating a page.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..config.settings import FeedPressSettings, get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import PublishError, ErrorCode


@dataclass
class WikiContent:
    """Content metadata returned by the wiki."""
    id: str
    title: str
    url: str = ""


class ConfluenceClient:
    """Async Confluence content API client."""

    CONTENT_PATH = "/wiki/rest/api/content"

    def __init__(
        self,
        settings: Optional[FeedPressSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize client.

        Args:
            settings: Application settings (default: process settings)
            session: Existing aiohttp session; one is created lazily if omitted
        """
        settings = settings or get_settings()
        self.base_url = settings.wiki.base_url
        self.timeout = settings.wiki.request_timeout
        self._auth = (
            aiohttp.BasicAuth(settings.wiki.username, settings.wiki.api_token)
            if settings.wiki.username and settings.wiki.api_token
            else None
        )
        self._session = session
        self._owns_session = session is None
        self.logger = get_logger_for_component("wiki_client")

    async def __aenter__(self) -> "ConfluenceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=self._auth,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    def content_url(self) -> str:
        return f"{self.base_url}{self.CONTENT_PATH}"

    def page_url(self, data: Dict[str, Any]) -> str:
        """Absolute UI URL of a content payload, or '' when the wiki gives none."""
        links = data.get("_links") or {}
        webui = links.get("webui")
        if not webui:
            return ""
        if webui.startswith("http"):
            return webui
        base = links.get("base") or f"{self.base_url}/wiki"
        return f"{base.rstrip('/')}{webui}"

    def _to_content(self, data: Dict[str, Any]) -> WikiContent:
        return WikiContent(
            id=str(data["id"]),
            title=data.get("title", ""),
            url=self.page_url(data),
        )

    async def _check_status(self, response, space_key: str, failure_code: ErrorCode) -> None:
        if response.status < 300:
            return
        text = await response.text()
        code = (
            ErrorCode.PUBLISH_AUTHENTICATION if response.status in (401, 403) else failure_code
        )
        raise PublishError(
            f"Confluence API error: {response.status} - {text}",
            space_key=space_key,
            status=response.status,
            error_code=code,
        )

    async def find_content(self, space_key: str, title: str) -> Optional[WikiContent]:
        """Find a page by space key and exact title.

        Raises:
            PublishError: On transport failure or non-2xx response
        """
        params = {"spaceKey": space_key, "title": title, "expand": "version"}
        try:
            async with self._get_session().get(self.content_url(), params=params) as response:
                await self._check_status(response, space_key, ErrorCode.LOOKUP_FAILED)
                data = await response.json()
        except aiohttp.ClientError as e:
            raise PublishError(
                f"Confluence lookup failed: {e}",
                space_key=space_key,
                error_code=ErrorCode.LOOKUP_FAILED,
            ) from e
        except asyncio.TimeoutError as e:
            raise PublishError(
                f"Confluence lookup timed out after {self.timeout}s",
                space_key=space_key,
                error_code=ErrorCode.PUBLISH_TIMEOUT,
            ) from e

        results = data.get("results") or []
        if not results:
            return None
        return self._to_content(results[0])

    async def create_content(
        self,
        space_key: str,
        title: str,
        body: str,
        parent_id: Optional[str] = None,
    ) -> WikiContent:
        """Create a page in storage representation.

        Raises:
            PublishError: On transport failure or non-2xx response
        """
        request: Dict[str, Any] = {
            "title": title,
            "space": {"key": space_key},
            "type": "page",
            "body": {"storage": {"value": body, "representation": "storage"}},
        }
        if parent_id:
            request["ancestors"] = [{"id": parent_id}]

        try:
            async with self._get_session().post(self.content_url(), json=request) as response:
                await self._check_status(response, space_key, ErrorCode.PUBLISH_REJECTED)
                data = await response.json()
        except aiohttp.ClientError as e:
            raise PublishError(
                f"Confluence create failed: {e}", space_key=space_key
            ) from e
        except asyncio.TimeoutError as e:
            raise PublishError(
                f"Confluence create timed out after {self.timeout}s",
                space_key=space_key,
                error_code=ErrorCode.PUBLISH_TIMEOUT,
            ) from e

        content = self._to_content(data)
        self.logger.info(f'Successfully created page "{title}" with ID {content.id}')
        return content
