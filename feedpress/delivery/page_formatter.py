"""
Wiki Page Formatter
===================

Renders a news item into Confluence storage-format markup: summary,
details table, optional full content and a generated-by footer.
"""

import html
from datetime import datetime

from ..database.models import NewsItem

FOOTER_TEXT = "Automatically aggregated by FeedPress"
NO_DESCRIPTION = "No description available."


def format_pub_date(value: datetime) -> str:
    """Long US date, e.g. 'March 5, 2025'."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


class PageFormatter:
    """Builds the page body for one published item."""

    def __init__(self, footer: str = FOOTER_TEXT):
        self.footer = footer

    def render(self, item: NewsItem) -> str:
        # Description is plain text; content is feed-supplied markup and passes through
        link = html.escape(item.link, quote=True)
        topics = html.escape(", ".join(item.topics)) or "N/A"

        sections = [
            "<h2>Summary</h2>",
            f"<p>{html.escape(item.description or NO_DESCRIPTION)}</p>",
            "",
            "<h2>Details</h2>",
            "<table>",
            f"  <tr>\n    <th>Source</th>\n    <td>{html.escape(item.source)}</td>\n  </tr>",
            f"  <tr>\n    <th>Published</th>\n    <td>{format_pub_date(item.pub_date)}</td>\n  </tr>",
            f'  <tr>\n    <th>Link</th>\n    <td><a href="{link}">{link}</a></td>\n  </tr>',
            f"  <tr>\n    <th>Topics</th>\n    <td>{topics}</td>\n  </tr>",
            "</table>",
            "",
        ]

        if item.content:
            sections.append(f"<h2>Full Content</h2><div>{item.content}</div>")
            sections.append("")

        sections.append("<hr/>")
        sections.append(f"<p><em>{html.escape(self.footer)}</em></p>")

        return "\n".join(sections).strip()
