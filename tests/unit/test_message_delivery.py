"""
Unit tests for wiki delivery: page formatting, the Confluence client and
the publisher layered over it.
"""

import asyncio
import pytest
from xml.dom import minidom
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from feedpress.database.models import TopicRoute
from feedpress.delivery.page_formatter import PageFormatter, format_pub_date, FOOTER_TEXT, NO_DESCRIPTION
from feedpress.delivery.publisher import WikiPublisher
from feedpress.delivery.wiki_client import ConfluenceClient, WikiContent
from feedpress.processing.feed_fetcher import FeedFetcher
from feedpress.utils.exceptions import PublishError, ErrorCode


def _response_cm(status=200, json_data=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data or {})
    response.text = AsyncMock(return_value=text)

    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=response)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def _session():
    session = MagicMock()
    session.closed = False
    return session


class TestPageFormatter:
    def test_format_pub_date(self):
        assert format_pub_date(datetime(2025, 3, 5, tzinfo=timezone.utc)) == "March 5, 2025"

    def test_render_sections(self, make_item):
        item = make_item(content="<p>Body</p>", topics=["Rovo Agent", "AI"])
        body = PageFormatter().render(item)

        assert body.startswith("<h2>Summary</h2>")
        assert "<p>Announcing the Rovo Agent</p>" in body
        assert "<td>Tech Blog</td>" in body
        assert "<td>March 5, 2025</td>" in body
        assert '<a href="https://techblog.example.com/rovo">https://techblog.example.com/rovo</a>' in body
        assert "<td>Rovo Agent, AI</td>" in body
        assert "<h2>Full Content</h2><div><p>Body</p></div>" in body
        assert body.endswith(f"<hr/>\n<p><em>{FOOTER_TEXT}</em></p>")

    def test_render_without_description_or_content(self, make_item):
        body = PageFormatter().render(make_item(description="", content=None))

        assert f"<p>{NO_DESCRIPTION}</p>" in body
        assert "Full Content" not in body
        assert "<td>N/A</td>" in body

    def test_link_and_source_escaped(self, make_item):
        item = make_item(link='https://x.example.com/?a=1&b="2"', source="R&D <Blog>")
        body = PageFormatter().render(item)

        assert "https://x.example.com/?a=1&amp;b=&quot;2&quot;" in body
        assert "<td>R&amp;D &lt;Blog&gt;</td>" in body

    def test_description_escaped(self, make_item):
        body = PageFormatter().render(make_item(description="R&D notes: a < b"))
        assert "<p>R&amp;D notes: a &lt; b</p>" in body

    def test_page_from_encoded_content_is_well_formed(self, test_settings, sample_feed):
        doc = b"""<?xml version="1.0"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel><title>Tech Blog</title>
<item><title>Lab notes</title><link>https://techblog.example.com/lab</link>
<content:encoded><![CDATA[<p>R&amp;D notes: a &lt; b for AI</p>]]></content:encoded></item>
</channel></rss>"""
        item = FeedFetcher(test_settings).parse_document(doc, sample_feed)[0]

        body = PageFormatter().render(item)
        dom = minidom.parseString(f"<root>{body}</root>")

        summary = dom.getElementsByTagName("p")[0]
        assert summary.firstChild.data == "R&D notes: a < b for AI"
        assert "<p>R&amp;D notes: a &lt; b for AI</p>" in body


class TestConfluenceClient:
    @pytest.fixture
    def session(self):
        return _session()

    @pytest.fixture
    def client(self, test_settings, session):
        return ConfluenceClient(test_settings, session=session)

    def test_base_url_trailing_slash_stripped(self, client):
        assert client.content_url() == "https://wiki.example.com/wiki/rest/api/content"

    def test_page_url(self, client):
        assert client.page_url({"_links": {"base": "https://wiki.example.com/wiki", "webui": "/spaces/AI/pages/1"}}) \
            == "https://wiki.example.com/wiki/spaces/AI/pages/1"
        assert client.page_url({"_links": {"webui": "/spaces/AI/pages/1"}}) \
            == "https://wiki.example.com/wiki/spaces/AI/pages/1"
        assert client.page_url({}) == ""

    @pytest.mark.asyncio
    async def test_find_content_found(self, client, session):
        session.get.return_value = _response_cm(json_data={
            "results": [{"id": 42, "title": "Hello", "_links": {"webui": "/x"}}]
        })

        found = await client.find_content("AI", "Hello")

        assert found == WikiContent(id="42", title="Hello", url="https://wiki.example.com/wiki/x")
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"spaceKey": "AI", "title": "Hello", "expand": "version"}

    @pytest.mark.asyncio
    async def test_find_content_not_found(self, client, session):
        session.get.return_value = _response_cm(json_data={"results": []})
        assert await client.find_content("AI", "Missing") is None

    @pytest.mark.asyncio
    async def test_find_content_error_status(self, client, session):
        session.get.return_value = _response_cm(status=500, text="boom")

        with pytest.raises(PublishError) as exc_info:
            await client.find_content("AI", "Hello")
        assert exc_info.value.error_code == ErrorCode.LOOKUP_FAILED
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_create_content_request(self, client, session):
        session.post.return_value = _response_cm(json_data={
            "id": "77", "title": "T", "_links": {"base": "https://wiki.example.com/wiki", "webui": "/p/77"}
        })

        created = await client.create_content("AI", "T", "<p>x</p>", parent_id="12345")

        assert created.id == "77"
        assert created.url == "https://wiki.example.com/wiki/p/77"
        _, kwargs = session.post.call_args
        assert kwargs["json"] == {
            "title": "T",
            "space": {"key": "AI"},
            "type": "page",
            "body": {"storage": {"value": "<p>x</p>", "representation": "storage"}},
            "ancestors": [{"id": "12345"}],
        }

    @pytest.mark.asyncio
    async def test_create_content_without_parent(self, client, session):
        session.post.return_value = _response_cm(json_data={"id": "1", "title": "T"})

        await client.create_content("AI", "T", "<p>x</p>")

        _, kwargs = session.post.call_args
        assert "ancestors" not in kwargs["json"]

    @pytest.mark.asyncio
    async def test_create_content_rejected(self, client, session):
        session.post.return_value = _response_cm(status=400, text="title already exists")

        with pytest.raises(PublishError) as exc_info:
            await client.create_content("AI", "T", "<p>x</p>")
        assert exc_info.value.status == 400
        assert exc_info.value.error_code == ErrorCode.PUBLISH_REJECTED

    @pytest.mark.asyncio
    async def test_unauthorized_maps_to_authentication(self, client, session):
        session.post.return_value = _response_cm(status=401, text="Unauthorized")

        with pytest.raises(PublishError) as exc_info:
            await client.create_content("AI", "T", "<p>x</p>")
        assert exc_info.value.status == 401
        assert exc_info.value.error_code == ErrorCode.PUBLISH_AUTHENTICATION

    @pytest.mark.asyncio
    async def test_lookup_timeout(self, client, session):
        session.get.side_effect = asyncio.TimeoutError()

        with pytest.raises(PublishError) as exc_info:
            await client.find_content("AI", "Hello")
        assert exc_info.value.error_code == ErrorCode.PUBLISH_TIMEOUT
        assert exc_info.value.message == "Confluence lookup timed out after 30s"

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self, client, session):
        session.close = AsyncMock()
        await client.close()
        session.close.assert_not_called()


class TestWikiPublisher:
    @pytest.mark.asyncio
    async def test_find_existing_degrades_to_none(self, mock_wiki_client):
        mock_wiki_client.find_content.side_effect = PublishError("lookup down")
        publisher = WikiPublisher(mock_wiki_client)

        assert await publisher.find_existing("AI", "Title") is None

    @pytest.mark.asyncio
    async def test_parent_id_used_directly(self, mock_wiki_client):
        publisher = WikiPublisher(mock_wiki_client)
        route = TopicRoute(topic="AI", target_space="AI", parent_container_id="999",
                           parent_container_title="ignored")

        assert await publisher.resolve_parent(route) == "999"
        mock_wiki_client.find_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_parent_resolved_by_title(self, mock_wiki_client):
        mock_wiki_client.find_content.return_value = WikiContent(id="555", title="AI Updates")
        publisher = WikiPublisher(mock_wiki_client)
        route = TopicRoute(topic="AI", target_space="AI", parent_container_title="AI Updates")

        assert await publisher.resolve_parent(route) == "555"
        mock_wiki_client.find_content.assert_awaited_once_with("AI", "AI Updates")

    @pytest.mark.asyncio
    async def test_parent_missing_publishes_at_root(self, mock_wiki_client, make_item):
        publisher = WikiPublisher(mock_wiki_client)
        route = TopicRoute(topic="AI", target_space="AI", parent_container_title="Nowhere")

        created = await publisher.publish_item(make_item(), route)

        assert created is not None
        _, kwargs = mock_wiki_client.create_content.call_args
        assert kwargs["parent_id"] is None

    @pytest.mark.asyncio
    async def test_parent_lookup_error_publishes_at_root(self, mock_wiki_client, make_item):
        mock_wiki_client.find_content.side_effect = PublishError("lookup down")
        publisher = WikiPublisher(mock_wiki_client)
        route = TopicRoute(topic="AI", target_space="AI", parent_container_title="AI Updates")

        assert await publisher.publish_item(make_item(), route) is not None

    @pytest.mark.asyncio
    async def test_publish_item_renders_body(self, mock_wiki_client, make_item):
        publisher = WikiPublisher(mock_wiki_client)
        route = TopicRoute(topic="AI", target_space="AI", parent_container_id="12345")
        item = make_item(topics=["AI"])

        created = await publisher.publish_item(item, route)

        assert created.title == item.title
        args, kwargs = mock_wiki_client.create_content.call_args
        assert args[0] == "AI"
        assert args[1] == item.title
        assert "<h2>Summary</h2>" in args[2]
        assert kwargs["parent_id"] == "12345"

    @pytest.mark.asyncio
    async def test_publish_failure_returns_none(self, mock_wiki_client, make_item):
        mock_wiki_client.create_content.side_effect = PublishError("rejected", status=400)
        publisher = WikiPublisher(mock_wiki_client)
        route = TopicRoute(topic="AI", target_space="AI")

        assert await publisher.publish_item(make_item(), route) is None
