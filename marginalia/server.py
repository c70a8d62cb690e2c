"""The HTTP application: the public list page, the feed and the write API."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound
from werkzeug.http import http_date, parse_date
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from marginalia.auth import AuthConfig, TokenAuth
from marginalia.errors import ServiceError
from marginalia.ratelimit import default_failed_auth_limiter
from marginalia.responses import RecommendationAdded, error_response, json_error, json_response
from marginalia.wayback import archive_url

log = logging.getLogger(__name__)

CACHE_ICON_PATH = Path(__file__).resolve().parent / "resources" / "images" / "building.columns.fill.svg"
_INT_RE = re.compile(r"[+-]?[0-9]+")

_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ title }}</title>
<link rel="alternate" type="application/rss+xml" title="{{ title }}" href="/rss">
<style>
{{ style|safe }}
</style>
</head>
<body>
<header>
  <h1>{{ title }}</h1>
  <a class="rss-link" href="/rss" title="RSS Feed"><svg xmlns="http://www.w3.org/2000/svg" width="12" height="12" viewBox="0 0 256 256" fill="currentColor"><circle cx="68" cy="189" r="28"/><path d="M160 213h-34a89 89 0 0 0-89-89V90a123 123 0 0 1 123 123z"/><path d="M224 213h-34a157 157 0 0 0-157-157V22a191 191 0 0 1 191 191z"/></svg> rss</a>
</header>
<hr>
<ul>
{% for item in items %}<li>
  <a href="{{ item.url|safe_url }}">{{ item.title }}</a>
  <div class="meta">{% if item.byline %}{{ item.byline }}{% endif %}{% if item.byline and item.site_name %} · {% endif %}{{ item.site_name }}{% if item.byline or item.site_name %} · {% endif %}{{ item.added_at }}{% if item.cache_url %} · <a href="{{ item.cache_url|safe_url }}" target="_blank" rel="noopener noreferrer" title="Cached snapshot" style="color:inherit"><span style="display:inline-flex;align-items:center;width:14px;height:14px;vertical-align:-0.15em">{{ cache_icon|safe }}</span></a>{% endif %}</div>
</li>
{% else %}<li class="empty">Nothing here yet.</li>
{% endfor %}</ul>
<footer>
  <a href="/rss">rss feed</a>
</footer>
</body>
</html>"""


def _safe_url(url: str) -> str:
    scheme, sep, _ = url.partition(":")
    if sep and "/" not in scheme and scheme.lower() not in {"http", "https", "mailto"}:
        return "#ZgotmplZ"
    return url


_env = Environment(autoescape=True)
_env.filters["safe_url"] = _safe_url
_list_template = _env.from_string(_PAGE)


def _load_cache_icon() -> str:
    try:
        return CACHE_ICON_PATH.read_text(encoding="utf-8")
    except OSError:
        return ""


@dataclass
class App:
    """Everything the HTTP handlers need."""

    auth_config: AuthConfig
    database: Any
    owner: str
    theme: str
    feed: Any
    recommendations: Any
    cache_icon: str = field(default_factory=_load_cache_icon)


def owner_title(owner: str) -> str:
    """The page title for an owner, e.g. "Ann's Marginalia"."""
    if not owner:
        return "Marginalia"
    return owner + ("' Marginalia" if owner[-1] in "sS" else "'s Marginalia")


def _requested_url(body: bytes) -> Optional[str]:
    """The url of an add request body; None when the body is not valid."""
    text = body.decode("utf-8", errors="replace").lstrip(" \t\r\n")
    try:
        payload, _ = json.JSONDecoder().raw_decode(text)
    except json.JSONDecodeError:
        return None
    if payload is None:
        return ""
    if not isinstance(payload, dict):
        return None
    value = payload.get("url", next((v for k, v in payload.items() if k.casefold() == "url"), None))
    if value is None:
        return ""
    return value if isinstance(value, str) else None


class _Server:
    """WSGI application serving an App."""

    def __init__(self, app: App) -> None:
        self.app = app
        config = app.auth_config.with_defaults()
        limiter = default_failed_auth_limiter() if config.enable_rate_limit else None
        self.auth = TokenAuth(config, limiter)
        self.title = owner_title(app.owner)
        self.urls = Map(
            [
                Rule("/recommend", methods=["POST"], endpoint=self._handle_add),
                Rule("/recommend/<rec_id>", methods=["DELETE"], endpoint=self._handle_delete),
                Rule("/rss", methods=["GET"], endpoint=self._handle_rss),
                Rule("/", methods=["GET"], endpoint=self._handle_list),
            ],
            strict_slashes=False,
            merge_slashes=False,
        )

    def __call__(self, environ, start_response):
        response = self._dispatch(Request(environ))
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response(environ, start_response)

    def _dispatch(self, request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status=204)
        try:
            handler, args = self.urls.bind_to_environ(request.environ).match()
        except MethodNotAllowed as exc:
            response = Response(status=405)
            if exc.valid_methods:
                response.headers["Allow"] = ", ".join(sorted(exc.valid_methods))
            return response
        except NotFound:
            return Response("404 page not found\n", status=404, content_type="text/plain; charset=utf-8")
        except HTTPException as exc:
            return exc.get_response(request.environ)

        if handler in (self._handle_add, self._handle_delete):
            denied = self.auth.authorize(request)
            if denied is not None:
                return denied
        return handler(request, **args)

    def _handle_add(self, request: Request) -> Response:
        url = _requested_url(request.get_data())
        if not url:
            return json_error("missing or invalid url", 400)
        try:
            rec = self.app.recommendations.insert(url)
        except ServiceError as exc:
            return error_response(exc)
        log.info("added: %s — %s", url, rec.title)
        return json_response(RecommendationAdded(id=rec.id, title=rec.title), 201)

    def _handle_delete(self, request: Request, rec_id: str) -> Response:
        if not _INT_RE.fullmatch(rec_id) or not -(2**63) <= int(rec_id) < 2**63:
            return json_error("invalid id", 400)
        try:
            self.app.recommendations.delete(int(rec_id))
        except ServiceError as exc:
            return error_response(exc)
        return Response(status=204)

    def _handle_rss(self, request: Request) -> Response:
        try:
            result = self.app.feed.render_rss(self.app.owner)
        except ServiceError as exc:
            return json_error(f"feed error: {exc}", 500)

        if_none_match = request.headers.get("If-None-Match", "")
        if_modified_since = request.headers.get("If-Modified-Since", "")
        log.info(
            "rss: %s %s If-None-Match=%r If-Modified-Since=%r",
            request.method, request.url, if_none_match, if_modified_since,
        )

        not_modified = if_none_match == result.etag
        if not not_modified and if_modified_since:
            since = parse_date(if_modified_since)
            not_modified = since is not None and not result.last_modified > since

        response = Response(status=304) if not_modified else Response(result.content, status=200)
        response.headers["Content-Type"] = "application/rss+xml"
        response.headers["ETag"] = result.etag
        response.headers["Last-Modified"] = http_date(result.last_modified)
        response.headers["Cache-Control"] = "no-store, must-revalidate"
        return response

    def _handle_list(self, request: Request) -> Response:
        try:
            recs = self.app.recommendations.all()
        except ServiceError as exc:
            return json_error(str(exc), 500)

        items = []
        for rec in recs:
            added_at = datetime.fromtimestamp(rec.added_at, tz=timezone.utc)
            items.append(
                {
                    "url": rec.url,
                    "title": rec.title,
                    "byline": rec.byline,
                    "site_name": rec.site_name,
                    "added_at": f"{added_at:%b} {added_at.day}, {added_at.year}",
                    "cache_url": archive_url(added_at, rec.url),
                }
            )
        page = _list_template.render(
            title=self.title, style=self.app.theme, items=items, cache_icon=self.app.cache_icon
        )
        return Response(page, status=200, content_type="text/html; charset=utf-8")


def create_app(app: App) -> _Server:
    """Build the WSGI application for the given App."""
    return _Server(app)