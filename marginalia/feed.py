"""Rendering recommendations as an RSS 2.0 feed."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any

from marginalia.errors import ServiceError
from marginalia.wayback import archive_url

log = logging.getLogger(__name__)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"

_XML_ESCAPES = {
    "&": "&amp;", "<": "&lt;", ">": "&gt;", "'": "&#39;", '"': "&#34;",
    "\t": "&#x9;", "\n": "&#xA;", "\r": "&#xD;",
}
_HTML_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", "'": "&#39;", '"': "&#34;"}


@dataclass(frozen=True)
class RssOutput:
    """A rendered feed with its cache validators."""

    content: bytes
    etag: str
    last_modified: datetime


def _escape(text: str, table: dict[str, str]) -> str:
    return "".join(table.get(ch, ch) for ch in text)


def feed_title(owner: str) -> str:
    """The feed title for an owner, e.g. "Ann's Marginalia"."""
    if not owner:
        return "Marginalia"
    if owner[-1] in "sS":
        return owner + "' Marginalia"
    return owner + "'s Marginalia"


def _element(indent: int, name: str, text: str) -> str:
    return f"{'  ' * indent}<{name}>{_escape(text, _XML_ESCAPES)}</{name}>"


class FeedService:
    """Builds the RSS feed from the recommendation service."""

    def __init__(self, recommendations: Any) -> None:
        self.recommendations = recommendations

    def _item_lines(self, rec: Any) -> list[str]:
        added_at = datetime.fromtimestamp(rec.added_at, tz=timezone.utc)
        cache_url = archive_url(added_at, rec.url)
        content = (
            rec.content + '<br><hr><p><i><a href="' + _escape(cache_url, _HTML_ESCAPES)
            + '">View Archived Snapshot</a></i></p>'
        )
        lines = [
            "    <item>",
            _element(3, "title", rec.title),
            _element(3, "link", rec.url),
            _element(3, "description", rec.excerpt),
            _element(3, "content:encoded", content),
        ]
        if rec.byline:
            lines.append(_element(3, "author", rec.byline))
        lines += [
            _element(3, "pubDate", format_datetime(added_at)),
            _element(3, "guid", rec.url),
            "    </item>",
        ]
        return lines

    def render_rss(self, owner: str) -> RssOutput:
        try:
            recs = self.recommendations.all()
        except Exception as exc:
            raise ServiceError("failed to fetch recommendations", 500) from exc

        desc = "Articles worth reading"
        if owner:
            desc = "Articles worth reading, recommended by " + owner

        lines = [
            f'<rss version="2.0" xmlns:content="{_escape(CONTENT_NS, _XML_ESCAPES)}">',
            "  <channel>",
            _element(2, "title", feed_title(owner)),
            _element(2, "link", ""),
            _element(2, "description", desc),
        ]
        for rec in recs:
            lines += self._item_lines(rec)
        lines += ["  </channel>", "</rss>"]

        data = (XML_HEADER + "\n".join(lines)).encode("utf-8")
        etag = '"' + hashlib.sha256(data).digest()[:8].hex() + '"'
        if recs:
            last_modified = datetime.fromtimestamp(recs[0].added_at, tz=timezone.utc)
        else:
            last_modified = datetime.now(timezone.utc)
        return RssOutput(content=data, etag=etag, last_modified=last_modified)